from __future__ import annotations


class TocEditError(Exception):
    """Base class for errors raised by the document side of the editor."""


class PasswordRequiredError(TocEditError):
    def __init__(self, file_name: str = "") -> None:
        super().__init__("Password required")
        self.file_name = file_name


class OutlineLoadError(TocEditError):
    pass


class OutlineParseError(TocEditError):
    DEFAULT_MESSAGE = "Could not parse the Table of Contents. Please check the format."

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


class OpenCancelledError(TocEditError):
    """The user dismissed the password prompt."""


class WorkerClosedError(TocEditError):
    pass


class OutlineSyncError(TocEditError):
    """The native outline cursor was not where the tree walk expected it."""
