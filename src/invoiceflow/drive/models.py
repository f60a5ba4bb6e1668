"""Data models for Drive operations."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Tuple

from invoiceflow.config.settings import FOLDER_MIME_TYPE
from invoiceflow.utils.exceptions import DecodeError

FILE_FIELDS = "id, name, mimeType, parents, webViewLink"


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_query(name: str, mime_type: str) -> str:
    """Drive query matching a non-trashed file by exact name and MIME type."""
    return (
        f"name='{escape_query_value(name)}' "
        f"and mimeType='{escape_query_value(mime_type)}' "
        f"and trashed = false"
    )


@dataclass(frozen=True)
class DocumentRef:
    """Drive file identity: template, destination folder, or invoice copy."""
    id: str
    name: str
    mime_type: str
    parents: Tuple[str, ...] = ()
    web_view_link: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "DocumentRef":
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a file resource, got {type(data).__name__}")
        try:
            return cls(
                id=data["id"],
                name=data["name"],
                mime_type=data["mimeType"],
                parents=tuple(data.get("parents", ())),
                web_view_link=data.get("webViewLink", "")
            )
        except KeyError as e:
            raise DecodeError(f"File resource is missing field {e}") from e


@dataclass(frozen=True)
class Identity:
    """The account the token belongs to."""
    display_name: str
    email_address: str

    @classmethod
    def from_about(cls, data: Any) -> "Identity":
        try:
            user = data["user"]
            return cls(display_name=user["displayName"], email_address=user["emailAddress"])
        except (KeyError, TypeError) as e:
            raise DecodeError(f"About response is missing user field {e}") from e


@dataclass(frozen=True)
class PipelineRequest:
    """Everything one run needs to know up front, fixed at start time."""
    template_query: str
    folder_query: str
    display_date: str
    iso_date: str

    @classmethod
    def for_date(cls, invoice_settings, now: datetime) -> "PipelineRequest":
        return cls(
            template_query=build_query(invoice_settings.template_name, invoice_settings.template_mime_type),
            folder_query=build_query(invoice_settings.folder_name, FOLDER_MIME_TYPE),
            display_date=now.strftime(invoice_settings.display_date_format),
            iso_date=now.date().isoformat()
        )


@dataclass
class InvoiceArtifact:
    """Exported invoice bytes and the copy they were rendered from."""
    data: bytes = field(repr=False)
    document_ref: DocumentRef
    local_path: Any = None

    @property
    def size(self) -> int:
        return len(self.data)
