"""Custom exception classes for InvoiceFlow."""
from typing import Optional


class InvoiceFlowError(Exception):
    """Base exception for InvoiceFlow."""
    pass


class ConfigError(InvoiceFlowError):
    """Configuration-related errors."""
    pass


class CredentialError(InvoiceFlowError):
    """Stored credential cannot be used for the requested flow."""
    pass


class NotFoundError(InvoiceFlowError):
    """A lookup produced no result."""
    pass


class CredentialNotFoundError(NotFoundError, CredentialError):
    """No credential has been persisted yet; bootstrap is required."""
    pass


class CorruptRecordError(CredentialError):
    """Persisted credential file is unreadable."""
    pass


class ScopeMismatchError(CredentialError):
    """Authorization granted a different number of scopes than required."""

    def __init__(self, granted: list, required: list):
        super().__init__(
            f"Authorization granted {len(granted)} scope(s), {len(required)} required: "
            f"granted={' '.join(granted) or '<none>'}"
        )
        self.granted = granted
        self.required = required


class AmbiguousMatchError(InvoiceFlowError):
    """A lookup that must match exactly one document matched several."""
    pass


class DecodeError(InvoiceFlowError):
    """Response body does not match the expected schema."""
    pass


# Retryable errors
class RetryableError(InvoiceFlowError):
    """Base class for errors that should trigger retry."""
    pass


class TransportError(RetryableError):
    """Network, TLS or deadline failure before a response was received."""
    pass


class RemoteError(InvoiceFlowError):
    """Non-2xx response from a remote endpoint."""

    def __init__(self, operation: str, status: Optional[int], body: str = ""):
        reason = f"HTTP {status}" if status is not None else "an error response"
        super().__init__(f"{operation} failed with {reason}: {body[:500]}")
        self.operation = operation
        self.status = status
        self.body = body


class AuthenticationError(RemoteError):
    """Access token rejected; a refresh may fix it."""
    pass


class AuthServerError(RemoteError):
    """Token endpoint answered with a non-2xx status."""
    pass


class PartialRunError(InvoiceFlowError):
    """A step failed after the invoice copy was created remotely."""

    def __init__(self, step: str, copy_ref, cause: Exception):
        super().__init__(
            f"{step} failed after creating copy '{copy_ref.name}' ({copy_ref.id}); "
            f"inspect or delete it: {copy_ref.web_view_link or copy_ref.id}. Cause: {cause}"
        )
        self.step = step
        self.copy_ref = copy_ref
        self.cause = cause
