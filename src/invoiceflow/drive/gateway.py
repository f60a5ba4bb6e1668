"""Typed access to the Drive, Sheets and Gmail endpoints the pipeline uses."""
import concurrent.futures
from typing import Callable, Dict, List, Optional, Tuple

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from invoiceflow.config.settings import NetworkSettings
from invoiceflow.drive.models import (
    FILE_FIELDS,
    DocumentRef,
    Identity,
    escape_query_value
)
from invoiceflow.utils.exceptions import (
    AmbiguousMatchError,
    AuthenticationError,
    DecodeError,
    NotFoundError,
    RemoteError,
    TransportError
)
from invoiceflow.utils.logger import get_logger
from invoiceflow.utils.retry import retry_with_backoff

logger = get_logger()

UNAUTHORIZED = 401


def classify_http_error(operation: str, status: Optional[int], body: str) -> RemoteError:
    """Map a non-2xx status to the error kind the orchestrator acts on."""
    if status == UNAUTHORIZED:
        return AuthenticationError(operation, status, body)
    return RemoteError(operation, status, body)


class DocumentGateway:
    """
    Stateless wrapper over the Google APIs.

    Every call takes the bearer token to use; the gateway never caches or
    refreshes it. Each call builds its own client because the underlying
    httplib2 transport is not thread-safe.
    """

    def __init__(
        self,
        network: Optional[NetworkSettings] = None,
        service_factory: Optional[Callable] = None,
        http_factory: Optional[Callable] = None
    ):
        self.network = network or NetworkSettings()
        self._service_factory = service_factory or self._build_service
        self._http_factory = http_factory or self._authorized_http
        self._read_retry = retry_with_backoff(
            max_retries=self.network.transport_retries,
            initial_delay=self.network.retry_initial_delay_seconds,
            backoff_factor=self.network.retry_backoff_factor,
            retryable_exceptions=(TransportError,)
        )

    def _authorized_http(self, token: str) -> AuthorizedHttp:
        """httplib2 transport carrying ``token`` with the configured deadline.

        Refresh-on-401 is switched off so rejections surface as
        AuthenticationError for the orchestrator to handle.
        """
        return AuthorizedHttp(
            Credentials(token=token),
            http=httplib2.Http(timeout=self.network.request_timeout_seconds),
            refresh_status_codes=()
        )

    def _build_service(self, api: str, version: str, token: str):
        return build(api, version, http=self._authorized_http(token), cache_discovery=False)

    def _execute(self, request, operation: str):
        try:
            return request.execute()
        except HttpError as e:
            body = e.content.decode("utf-8", "replace") if isinstance(e.content, bytes) else str(e.content)
            raise classify_http_error(operation, e.resp.status, body) from e
        except (httplib2.HttpLib2Error, OSError) as e:
            # socket.timeout and ssl.SSLError are OSErrors
            raise TransportError(f"{operation}: {e}") from e

    # Lookup

    def lookup(self, token: str, template_query: str, folder_query: str) -> Tuple[DocumentRef, DocumentRef]:
        """
        Find the template and the destination folder concurrently.

        Both queries run at once; results are inspected template first, so
        a failing template lookup is the error reported when both fail.

        Raises:
            NotFoundError: A query matched nothing
            AmbiguousMatchError: A query matched more than one file
            AuthenticationError: The token was rejected
        """
        return self._read_retry(self._lookup)(token, template_query, folder_query)

    def _lookup(self, token: str, template_query: str, folder_query: str) -> Tuple[DocumentRef, DocumentRef]:
        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            template_future = executor.submit(self._find_one, token, template_query, "template")
            folder_future = executor.submit(self._find_one, token, folder_query, "folder")
            template = template_future.result()
            folder = folder_future.result()

        logger.info(f"Found template '{template.name}' ({template.id}) and folder '{folder.name}' ({folder.id})")
        return template, folder

    def _find_one(self, token: str, query: str, what: str) -> DocumentRef:
        service = self._service_factory("drive", "v3", token)
        results = self._execute(
            service.files().list(q=query, fields=f"files({FILE_FIELDS})", pageSize=2, spaces="drive"),
            f"list {what}"
        )

        files = results.get("files", [])
        if not files:
            raise NotFoundError(f"No {what} matches query: {query}")
        if len(files) > 1:
            ids = ", ".join(f.get("id", "?") for f in files)
            raise AmbiguousMatchError(f"More than one {what} matches query: {query} ({ids})")
        return DocumentRef.from_api(files[0])

    def find_in_folder(self, token: str, folder_id: str, name: str) -> List[DocumentRef]:
        """Non-trashed files named ``name`` directly inside ``folder_id``."""
        return self._read_retry(self._find_in_folder)(token, folder_id, name)

    def _find_in_folder(self, token: str, folder_id: str, name: str) -> List[DocumentRef]:
        query = (
            f"name='{escape_query_value(name)}' "
            f"and '{escape_query_value(folder_id)}' in parents "
            f"and trashed = false"
        )
        service = self._service_factory("drive", "v3", token)
        results = self._execute(
            service.files().list(q=query, fields=f"files({FILE_FIELDS})", pageSize=100, spaces="drive"),
            "list existing copies"
        )
        return [DocumentRef.from_api(f) for f in results.get("files", [])]

    # Side-effecting calls: never retried

    def copy(self, token: str, file_id: str, folder_id: str, name: str) -> DocumentRef:
        """Copy ``file_id`` into ``folder_id`` under ``name``."""
        service = self._service_factory("drive", "v3", token)
        result = self._execute(
            service.files().copy(
                fileId=file_id,
                body={"name": name, "parents": [folder_id]},
                fields=FILE_FIELDS
            ),
            "copy template"
        )
        copy_ref = DocumentRef.from_api(result)
        logger.info(f"Created copy '{copy_ref.name}' ({copy_ref.id})")
        return copy_ref

    def trash(self, token: str, file_id: str) -> None:
        service = self._service_factory("drive", "v3", token)
        self._execute(
            service.files().update(fileId=file_id, body={"trashed": True}, fields="id"),
            "trash file"
        )
        logger.info(f"Moved {file_id} to trash")

    def patch_cell(self, token: str, document_id: str, cell_range: str, value: str) -> None:
        """Write one value into ``cell_range`` as if a user had typed it."""
        service = self._service_factory("sheets", "v4", token)
        self._execute(
            service.spreadsheets().values().update(
                spreadsheetId=document_id,
                range=cell_range,
                valueInputOption="USER_ENTERED",
                body={"values": [[value]]}
            ),
            "update cell"
        )
        logger.debug(f"Wrote '{value}' to {cell_range} of {document_id}")

    def export(self, token: str, document_id: str, mime_type: str) -> bytes:
        """Render ``document_id`` as ``mime_type``; the whole body is buffered."""
        service = self._service_factory("drive", "v3", token)
        content = self._execute(
            service.files().export(fileId=document_id, mimeType=mime_type),
            "export document"
        )
        if not isinstance(content, bytes):
            raise DecodeError(f"Export returned {type(content).__name__}, expected bytes")
        logger.info(f"Exported {document_id} as {mime_type} ({len(content)} bytes)")
        return content

    # Identity and raw transport

    def identity(self, token: str) -> Identity:
        """Display name and address of the account behind ``token``."""
        return self._read_retry(self._identity)(token)

    def _identity(self, token: str) -> Identity:
        service = self._service_factory("drive", "v3", token)
        result = self._execute(
            service.about().get(fields="user(displayName,emailAddress)"),
            "about"
        )
        return Identity.from_about(result)

    def post_raw(self, token: str, uri: str, body: bytes, headers: Dict[str, str], operation: str) -> bytes:
        """POST ``body`` verbatim with ``headers`` over the authorized transport."""
        http = self._http_factory(token)
        try:
            response, content = http.request(uri, method="POST", body=body, headers=headers)
        except (httplib2.HttpLib2Error, OSError) as e:
            raise TransportError(f"{operation}: {e}") from e

        if not 200 <= response.status < 300:
            text = content.decode("utf-8", "replace") if isinstance(content, bytes) else str(content)
            raise classify_http_error(operation, response.status, text)
        return content
