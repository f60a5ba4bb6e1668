"""Local persistence of exported invoices."""
from pathlib import Path

from invoiceflow.utils.files import atomic_write_bytes, sanitize_filename
from invoiceflow.utils.logger import get_logger

logger = get_logger()


class LocalArtifactSink:
    """Writes rendered invoices under a fixed output directory."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def path_for(self, name: str) -> Path:
        return self.output_dir / sanitize_filename(name)

    def write(self, name: str, data: bytes) -> Path:
        """Write ``data`` byte-for-byte; returns only after it is synced to disk."""
        path = atomic_write_bytes(self.path_for(name), data)
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path
