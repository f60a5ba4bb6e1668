"""Application settings loader from YAML configuration."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from invoiceflow.utils.exceptions import ConfigError

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/gmail.send"
]

DUPLICATE_POLICIES = ("allow", "overwrite", "version")

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def get_default_home() -> Path:
    """Get default application directory."""
    env_home = os.getenv("INVOICEFLOW_HOME")
    if env_home:
        return Path(env_home)
    return Path.home() / ".invoiceflow"


@dataclass
class OAuthSettings:
    """OAuth client registration and endpoints."""
    client_id: str = ""
    client_secret: str = ""
    auth_uri: str = "https://accounts.google.com/o/oauth2/auth"
    token_uri: str = "https://oauth2.googleapis.com/token"
    redirect_uri: str = "urn:ietf:wg:oauth:2.0:oob"
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))


@dataclass
class InvoiceSettings:
    """What the pipeline looks up, writes and sends."""
    template_name: str = "Invoice Template"
    template_mime_type: str = SPREADSHEET_MIME_TYPE
    folder_name: str = "Invoices"
    cell_range: str = "Sheet1!E2:F2"
    display_date_format: str = "%B %d, %Y"
    export_mime_type: str = "application/pdf"
    name_prefix: str = "Invoice"
    recipient: str = ""
    boundary: str = "invoiceflow-7c1d2e0b5a"
    duplicate_policy: str = "allow"
    confirm_before_send: bool = True


@dataclass
class NetworkSettings:
    """Deadlines and retry limits for outbound calls."""
    request_timeout_seconds: float = 30.0
    max_auth_refreshes: int = 1
    transport_retries: int = 2
    retry_initial_delay_seconds: float = 1.0
    retry_backoff_factor: float = 2.0


@dataclass
class PathSettings:
    """Filesystem locations; relative entries resolve against ``home_dir``."""
    home_dir: Path = field(default_factory=get_default_home)
    token_file: Path = Path("tokens.json")
    output_dir: Path = Path("output")
    logs_dir: Path = Path("logs")

    def __post_init__(self):
        self.home_dir = Path(self.home_dir).expanduser()
        self.token_file = self._resolve(self.token_file)
        self.output_dir = self._resolve(self.output_dir)
        self.logs_dir = self._resolve(self.logs_dir)

    def _resolve(self, value) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.home_dir / path


@dataclass
class Settings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str = "InvoiceFlow"
    app_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_max_file_size_mb: int = 10
    log_backup_count: int = 30

    oauth: OAuthSettings = field(default_factory=OAuthSettings)
    invoice: InvoiceSettings = field(default_factory=InvoiceSettings)
    network: NetworkSettings = field(default_factory=NetworkSettings)
    paths: PathSettings = field(default_factory=PathSettings)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file."""
        if config_path is None:
            config_path = Path(os.getenv("INVOICEFLOW_CONFIG", "config.yaml"))
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "Settings":
        """Build settings from a parsed config mapping; missing keys keep defaults."""
        if not isinstance(config, dict):
            raise ConfigError("Configuration root must be a mapping")

        app = config.get("app") or {}
        logging_cfg = config.get("logging") or {}

        try:
            oauth = OAuthSettings(**(config.get("oauth") or {}))
            invoice = InvoiceSettings(**(config.get("invoice") or {}))
            network = NetworkSettings(**(config.get("network") or {}))
            paths = PathSettings(**(config.get("paths") or {}))
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key: {e}") from e

        # Secrets from the environment win over the file
        oauth.client_id = os.getenv("INVOICEFLOW_CLIENT_ID", oauth.client_id)
        oauth.client_secret = os.getenv("INVOICEFLOW_CLIENT_SECRET", oauth.client_secret)

        return cls(
            app_name=app.get("name", cls.app_name),
            app_version=str(app.get("version", cls.app_version)),
            log_level=logging_cfg.get("level", cls.log_level),
            log_max_file_size_mb=logging_cfg.get("max_file_size_mb", cls.log_max_file_size_mb),
            log_backup_count=logging_cfg.get("backup_count", cls.log_backup_count),
            oauth=oauth,
            invoice=invoice,
            network=network,
            paths=paths
        )

    def validate(self) -> Tuple[bool, str]:
        """Validate configuration values."""
        if not self.oauth.client_id or not self.oauth.client_secret:
            return False, "OAuth client_id and client_secret are required"

        if not self.oauth.scopes:
            return False, "At least one OAuth scope is required"

        if not self.invoice.recipient:
            return False, "Invoice recipient is required"

        if self.invoice.duplicate_policy not in DUPLICATE_POLICIES:
            return False, (
                f"Unknown duplicate_policy '{self.invoice.duplicate_policy}', "
                f"expected one of {', '.join(DUPLICATE_POLICIES)}"
            )

        if self.network.request_timeout_seconds <= 0:
            return False, "request_timeout_seconds must be positive"

        if self.network.max_auth_refreshes < 0 or self.network.transport_retries < 0:
            return False, "Retry counts cannot be negative"

        return True, "Configuration is valid"
