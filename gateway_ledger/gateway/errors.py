"""Gateway client errors."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base class for failures talking to the gateway."""


class GatewayHTTPError(GatewayError):
    """A gateway request failed.

    `status` is the HTTP status when the gateway answered, None when it
    could not be reached.
    """

    def __init__(self, operation: str, status: int | None, detail: str | None = None):
        self.operation = operation
        self.status = status
        self.detail = detail or (str(status) if status is not None else "request failed")
        super().__init__(f"{operation} failed: {self.detail}")


class StreamConnectError(GatewayHTTPError):
    """The ledger stream could not be opened.

    Raised before any entry is delivered: the connection failed, the status
    was not a success (`status` is set), or the response had no body.
    """

    def __init__(self, detail: str | None = None, status: int | None = None):
        super().__init__("stream_ledger", status, detail)


class StreamInterruptedError(GatewayError):
    """The ledger stream broke after it was established.

    `last_cursor` is the cursor of the last delivered entry (None if nothing
    was delivered); reopen the stream after it to resume.
    """

    def __init__(self, message: str, last_cursor: int | None = None):
        self.last_cursor = last_cursor
        super().__init__(message)
