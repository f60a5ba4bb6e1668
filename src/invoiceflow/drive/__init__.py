"""Google Drive integration module."""
from .models import DocumentRef, Identity, InvoiceArtifact, PipelineRequest, build_query
from .gateway import DocumentGateway

__all__ = [
    "DocumentRef",
    "Identity",
    "InvoiceArtifact",
    "PipelineRequest",
    "build_query",
    "DocumentGateway"
]
