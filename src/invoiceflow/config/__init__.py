"""Configuration module."""
from .settings import (
    Settings,
    OAuthSettings,
    InvoiceSettings,
    NetworkSettings,
    PathSettings,
    DUPLICATE_POLICIES
)

__all__ = [
    "Settings",
    "OAuthSettings",
    "InvoiceSettings",
    "NetworkSettings",
    "PathSettings",
    "DUPLICATE_POLICIES"
]
