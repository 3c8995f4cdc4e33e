from imbue.toolbelt.primitives import CancelReason


class BaseToolbeltError(Exception):
    """Base exception for all toolbelt errors."""


class UsageError(BaseToolbeltError, ValueError):
    """Raised when a function is called with invalid arguments."""


class PollError(BaseToolbeltError):
    """Base class for errors raised by the polling helpers."""


class ProbeError(PollError):
    """Raised when a probe fails outright, as opposed to reporting "not ready yet".

    The original exception is available as __cause__.
    """

    def __init__(self, attempt: int) -> None:
        self.attempt = attempt
        if attempt == 1:
            super().__init__("condition failed with error")
        else:
            super().__init__(f"condition failed with error on try {attempt}")


class PollCancelledError(PollError):
    """Raised when the cancel token fires while waiting between attempts."""

    def __init__(self, reason: CancelReason, attempts: int) -> None:
        self.reason = reason
        self.attempts = attempts
        super().__init__(f"waiting canceled after {attempts} tries: {reason}")


class PollExhaustedError(PollError):
    """Raised when every allowed attempt completed without the condition being met."""

    def __init__(self, max_tries: int) -> None:
        self.max_tries = max_tries
        super().__init__(f"condition not met after {max_tries} tries")


class PathExpansionError(BaseToolbeltError):
    """Raised when a path cannot be expanded to an absolute path."""


class UnsupportedFileFormatError(UsageError):
    """Raised when a file extension does not map to a known encoding."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"unsupported file format: {path} (expected .yaml, .yml, or .json)")


class ModelFileError(BaseToolbeltError):
    """Raised when a model cannot be loaded from or saved to a file."""


class EmptyModelFileError(ModelFileError):
    """Raised when a model file decodes to an empty document."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"decoded data is empty: {path}")


class TemplateExpansionError(BaseToolbeltError):
    """Raised when a string template cannot be parsed or rendered."""
