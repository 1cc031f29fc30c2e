# src/sasspipe/errors.py
from typing import Optional, Union

# Attributes copied from a wrapped exception onto a PluginError.
PROPAGATED_PROPERTIES = (
    "file",
    "line",
    "column",
    "relative_path",
    "message_formatted",
    "message_original",
)


class SassPipeError(Exception):
    """Base class for errors raised by sasspipe."""


class CompileError(SassPipeError):
    """A compiler failure. `file` may be the literal "stdin"."""

    def __init__(self, message: str, file: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.column = column


class PluginError(SassPipeError):
    """
    A tagged error reported through the per-file failure channel.

    Wraps either a message or another exception. When wrapping an exception,
    its message and diagnostic attributes are copied over and the original is
    kept in `error`.
    """

    def __init__(self, plugin: str, error: Union[str, BaseException],
                 show_properties: bool = True):
        if isinstance(error, BaseException):
            message = getattr(error, "message", None) or str(error)
            self.error = error
        else:
            message = error
            self.error = None
        super().__init__(message)
        self.plugin = plugin
        self.message = message
        self.show_properties = show_properties

        for name in PROPAGATED_PROPERTIES:
            setattr(self, name, getattr(self.error, name, None))

    def details(self) -> dict:
        return {
            name: getattr(self, name)
            for name in ("file", "line", "column", "relative_path")
            if getattr(self, name) is not None
        }

    def __str__(self) -> str:
        lines = [f'Error in plugin "{self.plugin}"', "Message:"]
        lines.extend(f"    {line}" for line in self.message.splitlines() or [""])
        details = self.details() if self.show_properties else {}
        if details:
            lines.append("Details:")
            lines.extend(f"    {key}: {value}" for key, value in details.items())
        return "\n".join(lines)


class StreamError(SassPipeError):
    """Misuse of the host stream contract."""


class MultipleCallbackError(StreamError):
    """A continuation was invoked more than once for a single input."""


class StalledStreamError(StreamError):
    """A transform returned without ever invoking its continuation."""
