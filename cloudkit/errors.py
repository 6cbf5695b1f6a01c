"""
Error taxonomy for CloudKit Web Services calls.

Intent:
    Let callers tell a transport failure (nothing reached the service) apart
    from a protocol failure (the service answered with a non-2xx status) and
    from a decode failure (the service answered 2xx with a body we cannot
    read). Every error carries the operation name and chains the original
    exception as ``__cause__``.

Notes:
    - Nothing here is retried internally; retry policy belongs to the caller.
    - Task cancellation is never wrapped: ``asyncio.CancelledError`` propagates
      unchanged so deadlines and cancel scopes keep working.
"""

from __future__ import annotations


class CloudKitError(Exception):
    """Base class for CloudKit client failures.

    Parameters:
        operation: Logical operation name, e.g. ``assets.upload``.
        message: Short machine-friendly reason.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class RequestBuildError(CloudKitError):
    """The outbound request could not be constructed (bad URL, bad body)."""


class TransportError(CloudKitError):
    """Connection, DNS, TLS or timeout failure before a response arrived."""


class ProtocolError(CloudKitError):
    """The service answered with a non-success status.

    The raw response body is preserved for diagnostics; it is not decoded
    because error bodies are not guaranteed to be JSON.
    """

    def __init__(self, operation: str, status_code: int, body: bytes = b"") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(operation, f"unexpected_status:{status_code}")


class DecodeError(CloudKitError):
    """A 2xx body was not valid JSON or did not have the expected shape."""


__all__ = [
    "CloudKitError",
    "RequestBuildError",
    "TransportError",
    "ProtocolError",
    "DecodeError",
]
