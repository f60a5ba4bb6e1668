"""Invoice pipeline: lookup -> copy -> patch -> export -> persist.

Only the lookup (and the identity fetch used later for the email) recover
from an expired access token: an AuthenticationError triggers a refresh and
one more attempt, up to ``max_auth_refreshes`` cycles. Every other error,
and any error from a step with a remote side effect, ends the run.
"""
from enum import Enum
from typing import Callable, List, Optional, Tuple, TypeVar

from invoiceflow.auth.client import AuthClient
from invoiceflow.auth.models import Credential
from invoiceflow.config.settings import Settings
from invoiceflow.drive.gateway import DocumentGateway
from invoiceflow.drive.models import DocumentRef, Identity, InvoiceArtifact, PipelineRequest
from invoiceflow.orchestrator.sink import LocalArtifactSink
from invoiceflow.utils.exceptions import (
    AuthenticationError,
    InvoiceFlowError,
    PartialRunError
)
from invoiceflow.utils.logger import get_logger

logger = get_logger()

T = TypeVar("T")


class Step(Enum):
    START = "start"
    LOOKUP = "lookup"
    AUTH_REFRESH = "auth refresh"
    COPY = "copy"
    REPLACE = "replace"
    PATCH = "patch"
    EXPORT = "export"
    PERSIST = "persist"
    DONE = "done"


class PipelineOrchestrator:
    """Orchestrates the flow: Drive lookup -> copy -> Sheets patch -> PDF export -> disk."""

    def __init__(
        self,
        settings: Settings,
        auth_client: AuthClient,
        gateway: DocumentGateway,
        credential: Credential,
        sink: Optional[LocalArtifactSink] = None
    ):
        self.settings = settings
        self.auth_client = auth_client
        self.gateway = gateway
        self.sink = sink or LocalArtifactSink(settings.paths.output_dir)
        self._credential = credential
        self.step = Step.START
        self.refresh_count = 0

    @property
    def credential(self) -> Credential:
        """The credential in use, including any refresh made during the run."""
        return self._credential

    def run(self, request: PipelineRequest) -> InvoiceArtifact:
        """Run one pipeline and return the exported invoice."""
        invoice = self.settings.invoice

        self.step = Step.LOOKUP
        template, folder = self._call_with_refresh(
            "lookup",
            lambda token: self.gateway.lookup(token, request.template_query, request.folder_query)
        )

        self.step = Step.COPY
        name, replaced = self._copy_name(folder, f"{invoice.name_prefix}-{request.iso_date}")
        copy_ref = self.gateway.copy(self._token, template.id, folder.id, name)

        try:
            self.step = Step.REPLACE
            for ref in replaced:
                if ref.id != copy_ref.id:
                    logger.info(f"Replacing earlier copy '{ref.name}' ({ref.id})")
                    self.gateway.trash(self._token, ref.id)

            self.step = Step.PATCH
            self.gateway.patch_cell(self._token, copy_ref.id, invoice.cell_range, request.display_date)

            self.step = Step.EXPORT
            data = self.gateway.export(self._token, copy_ref.id, invoice.export_mime_type)

            self.step = Step.PERSIST
            local_path = self.sink.write(copy_ref.name, data)
        except (InvoiceFlowError, OSError) as e:
            logger.error(f"Step '{self.step.value}' failed after copy {copy_ref.id} was created: {e}")
            raise PartialRunError(self.step.value, copy_ref, e) from e

        self.step = Step.DONE
        logger.info(f"Invoice '{copy_ref.name}' ready: {copy_ref.web_view_link or copy_ref.id}")
        return InvoiceArtifact(data=data, document_ref=copy_ref, local_path=local_path)

    def fetch_identity(self) -> Identity:
        """Who the credential belongs to, with the same refresh policy as lookup."""
        return self._call_with_refresh("identity", self.gateway.identity)

    @property
    def _token(self) -> str:
        return self._credential.access_token

    def _call_with_refresh(self, operation: str, func: Callable[[str], T]) -> T:
        max_refreshes = self.settings.network.max_auth_refreshes
        refreshes = 0

        while True:
            try:
                return func(self._token)
            except AuthenticationError as e:
                if refreshes >= max_refreshes:
                    logger.error(
                        f"{operation} still rejected after {refreshes} token refresh(es): {e}"
                    )
                    raise

                refreshes += 1
                logger.warning(
                    f"{operation} rejected the access token (HTTP {e.status}); "
                    f"refreshing ({refreshes}/{max_refreshes})"
                )
                resume_step = self.step
                self.step = Step.AUTH_REFRESH
                self._credential = self.auth_client.refresh(self._credential)
                self.refresh_count += 1
                self.step = resume_step

    def _copy_name(self, folder: DocumentRef, base_name: str) -> Tuple[str, List[DocumentRef]]:
        """Apply the same-day duplicate policy to ``base_name``.

        Returns the name for the new copy and the earlier copies to trash
        once it exists.
        """
        policy = self.settings.invoice.duplicate_policy
        if policy == "allow":
            return base_name, []

        existing = self.gateway.find_in_folder(self._token, folder.id, base_name)
        if policy == "overwrite":
            return base_name, list(existing)

        # version
        if not existing:
            return base_name, []
        suffix = 2
        while True:
            candidate = f"{base_name}-{suffix}"
            if not self.gateway.find_in_folder(self._token, folder.id, candidate):
                logger.info(f"'{base_name}' already exists, using '{candidate}'")
                return candidate, []
            suffix += 1
