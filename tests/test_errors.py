"""Tests for mdwatch._errors."""

from mdwatch._errors import (
    BindError,
    BrowserError,
    ConfigError,
    FatalEnvironmentError,
    MdwatchError,
    RenderError,
    StreamingUnsupportedError,
    UsageError,
    WatchError,
)


class TestErrorHierarchy:
    """All mdwatch errors inherit from MdwatchError."""

    def test_mdwatch_error_is_exception(self) -> None:
        assert issubclass(MdwatchError, Exception)

    def test_config_error_is_usage_error(self) -> None:
        assert issubclass(ConfigError, UsageError)

    def test_fatal_environment_errors(self) -> None:
        assert issubclass(BindError, FatalEnvironmentError)
        assert issubclass(StreamingUnsupportedError, FatalEnvironmentError)

    def test_recoverable_errors_are_not_fatal(self) -> None:
        for error_cls in (RenderError, WatchError):
            assert not issubclass(error_cls, FatalEnvironmentError)

    def test_catch_all_mdwatch_errors(self) -> None:
        """All specific errors are catchable via MdwatchError."""
        for error_cls in (
            UsageError, ConfigError, RenderError, WatchError, BrowserError,
            FatalEnvironmentError, BindError, StreamingUnsupportedError,
        ):
            try:
                raise error_cls("test")
            except MdwatchError:
                pass  # Expected — all caught by base class
