"""Shared type definitions for mdwatch."""

from collections.abc import Callable
from typing import Literal

# Mode of operation, derived from the -s / -w flags
type PreviewMode = Literal["stdout", "serve", "watch"]

# Kind of filesystem change seen for the watched document
type ChangeKind = Literal["modified", "removed", "other"]

# SSE viewer identifier
type ClientID = str

# Zero-argument callable producing the current artifact bytes
type ArtifactProducer = Callable[[], bytes]
