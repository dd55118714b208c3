"""Content layer — the document as rendered HTML.

Handles markdown rendering (Patitas + Rosettes) and watching the document
for changes.
"""

from mdwatch.content.renderer import DocumentRenderer, render, wrap_page
from mdwatch.content.watcher import ChangeSource, RawChangeEvent

__all__ = [
    "ChangeSource",
    "DocumentRenderer",
    "RawChangeEvent",
    "render",
    "wrap_page",
]
