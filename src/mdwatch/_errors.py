"""mdwatch error hierarchy.

All mdwatch-specific errors inherit from MdwatchError for easy catching.
"""


class MdwatchError(Exception):
    """Base error for all mdwatch operations."""


class UsageError(MdwatchError):
    """Bad command-line flag combination."""


class ConfigError(UsageError):
    """Invalid or missing configuration."""


class RenderError(MdwatchError):
    """The document could not be read or rendered."""


class WatchError(MdwatchError):
    """The file watch could not be established or re-armed."""


class BrowserError(MdwatchError):
    """No browser could be launched for the rendered page."""


class FatalEnvironmentError(MdwatchError):
    """The environment cannot support a live preview at all."""


class BindError(FatalEnvironmentError):
    """No loopback listener could be bound."""


class StreamingUnsupportedError(FatalEnvironmentError):
    """The HTTP transport cannot flush a streaming response incrementally."""
