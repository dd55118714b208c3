"""Reactive layer — change propagation pipeline.

Connects document changes to browser notifications through debouncing,
the shared artifact store, and SSE broadcasting.
"""

from mdwatch.reactive.broadcaster import Broadcaster, UpdateFrame, ViewerConnection
from mdwatch.reactive.debouncer import Debouncer, SettledUpdate
from mdwatch.reactive.pipeline import PreviewPipeline
from mdwatch.reactive.store import ArtifactStore, ReadWriteLock

__all__ = [
    "ArtifactStore",
    "Broadcaster",
    "Debouncer",
    "PreviewPipeline",
    "ReadWriteLock",
    "SettledUpdate",
    "UpdateFrame",
    "ViewerConnection",
]
