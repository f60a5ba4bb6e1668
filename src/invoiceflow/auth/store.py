"""Credential persistence."""
import json
from pathlib import Path

from invoiceflow.auth.models import Credential
from invoiceflow.utils.exceptions import (
    CorruptRecordError,
    CredentialNotFoundError,
    DecodeError
)
from invoiceflow.utils.files import atomic_write_bytes
from invoiceflow.utils.logger import get_logger

logger = get_logger()

# Holds a bearer-equivalent secret
TOKEN_FILE_MODE = 0o600


class CredentialStore:
    """Loads and saves the Credential as human-readable JSON."""

    def __init__(self, token_path: Path):
        self.token_path = Path(token_path)

    def exists(self) -> bool:
        return self.token_path.exists()

    def load(self) -> Credential:
        """Load the stored credential.

        Raises:
            CredentialNotFoundError: Nothing has been stored yet
            CorruptRecordError: The file does not hold a valid credential
        """
        try:
            raw = self.token_path.read_bytes()
        except FileNotFoundError:
            raise CredentialNotFoundError(f"No saved credential at {self.token_path}") from None

        try:
            credential = Credential.from_token_response(json.loads(raw.decode("utf-8")))
        except (ValueError, DecodeError) as e:
            raise CorruptRecordError(f"Credential file {self.token_path} is unreadable: {e}") from e

        logger.debug(f"Loaded saved OAuth credential from {self.token_path}")
        return credential

    def save(self, credential: Credential) -> Credential:
        """Persist ``credential`` atomically and return it unchanged."""
        payload = json.dumps(credential.to_dict(), indent=2).encode("utf-8")
        atomic_write_bytes(self.token_path, payload, mode=TOKEN_FILE_MODE)
        logger.debug(f"Saved OAuth credential to {self.token_path}")
        return credential
