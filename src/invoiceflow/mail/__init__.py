"""Outbound invoice email."""
from .composer import EmailComposer, MimeMessage, GMAIL_SEND_URI

__all__ = ["EmailComposer", "MimeMessage", "GMAIL_SEND_URI"]
