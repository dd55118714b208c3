"""Code-block highlighting via Rosettes.

Implements Patitas' ``Highlighter`` protocol.  Fenced blocks tagged with a
language Rosettes does not know are rendered as plain text instead of
failing, so an unusual info string never breaks the preview.
"""

from __future__ import annotations

import functools
from typing import Literal

import rosettes
from rosettes.themes import get_palette

# Rosettes' plain-text lexer; used for unknown language tags.
FALLBACK_LANGUAGE = "text"

type ClassStyle = Literal["semantic", "pygments"]


class CodeHighlighter:
    """Rosettes-backed highlighter with a plain-text fallback.

    Thread-safe: Rosettes lexers keep no shared state, and this object is
    immutable after construction.

    Args:
        class_style: CSS class naming used in the generated markup. Must match
            the style passed to :func:`theme_css`.

    """

    __slots__ = ("_class_style",)

    def __init__(self, class_style: ClassStyle = "semantic") -> None:
        self._class_style = class_style

    def resolve_language(self, language: str) -> str:
        """Return *language* if Rosettes supports it, else the fallback."""
        if language and rosettes.supports_language(language):
            return language
        return FALLBACK_LANGUAGE

    def highlight(
        self,
        code: str,
        language: str,
        *,
        hl_lines: list[int] | None = None,
        show_linenos: bool = False,
    ) -> str:
        """Highlight *code* as *language* and return HTML."""
        return rosettes.highlight(
            code,
            self.resolve_language(language),
            hl_lines=set(hl_lines) if hl_lines else None,
            show_linenos=show_linenos,
            css_class_style=self._class_style,
        )

    def supports_language(self, language: str) -> bool:
        # Everything is renderable thanks to the plain-text fallback.
        return True


@functools.cache
def theme_css(theme: str, class_style: ClassStyle = "semantic") -> str:
    """Stylesheet for a Rosettes palette.

    Raises:
        LookupError: If *theme* is not a registered palette.

    """
    return get_palette(theme).generate_css(class_style=class_style)
