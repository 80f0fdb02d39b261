from __future__ import annotations

from typing import Optional


class WorkbenchError(Exception):
    """Base class for every error raised by the workbench core."""


class NotLoaded(WorkbenchError):
    def __init__(self, operation: str = ''):
        self.operation = operation
        msg = 'No JSON document loaded.'
        if operation:
            msg = f"No JSON document loaded (needed by {operation})."
        super().__init__(msg)


class ParseFailure(WorkbenchError):
    """Input text is not valid JSON, or a product artifact has the wrong shape."""

    def __init__(self, source: str, cause: Optional[BaseException] = None, detail: str = ''):
        self.source = source
        self.cause = cause
        self.detail = detail or (str(cause) if cause is not None else '')
        super().__init__(f"Could not parse {source}: {self.detail}" if self.detail else f"Could not parse {source}.")


class AddressError(WorkbenchError):
    INVALID = 'invalid'
    NO_MATCH = 'no_match'
    NOT_UPDATABLE = 'not_updatable'

    _MESSAGES = {
        INVALID: 'Invalid address',
        NO_MATCH: 'No node matches address',
        NOT_UPDATABLE: 'Address cannot be updated',
    }

    def __init__(self, address: str, reason: str, detail: str = ''):
        if reason not in self._MESSAGES:
            raise ValueError(f"Unknown address error reason: {reason!r}")
        self.address = address
        self.reason = reason
        self.detail = detail
        msg = f"{self._MESSAGES[reason]}: {address}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class IoFailure(WorkbenchError):
    def __init__(self, path: Optional[str], cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        where = path if path else '(no location)'
        super().__init__(f"I/O failure at {where}: {cause}" if cause is not None else f"I/O failure at {where}.")


class SessionBusy(WorkbenchError):
    """Raised when a second mutation starts while another is still running."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Session is busy; cannot run {operation} while another mutation is in progress.")


class NestingTooDeep(WorkbenchError):
    """A document is nested too deeply for the JSON encoder."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Document is nested too deeply to {operation}.")
