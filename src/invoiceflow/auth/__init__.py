"""OAuth credential lifecycle."""
from .models import Credential
from .store import CredentialStore
from .client import AuthClient

__all__ = ["Credential", "CredentialStore", "AuthClient"]
