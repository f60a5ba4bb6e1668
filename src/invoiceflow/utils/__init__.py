"""Utility modules."""
from .logger import get_logger, set_run_context, configure_file_logging
from .exceptions import (
    InvoiceFlowError,
    ConfigError,
    CredentialError,
    NotFoundError,
    CredentialNotFoundError,
    CorruptRecordError,
    ScopeMismatchError,
    AmbiguousMatchError,
    DecodeError,
    RetryableError,
    TransportError,
    RemoteError,
    AuthenticationError,
    AuthServerError,
    PartialRunError
)
from .retry import retry_with_backoff

__all__ = [
    "get_logger",
    "set_run_context",
    "configure_file_logging",
    "InvoiceFlowError",
    "ConfigError",
    "CredentialError",
    "NotFoundError",
    "CredentialNotFoundError",
    "CorruptRecordError",
    "ScopeMismatchError",
    "AmbiguousMatchError",
    "DecodeError",
    "RetryableError",
    "TransportError",
    "RemoteError",
    "AuthenticationError",
    "AuthServerError",
    "PartialRunError",
    "retry_with_backoff"
]
