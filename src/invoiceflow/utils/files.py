"""Filesystem helpers shared by the credential store and the artifact sink."""
import os
import re
import tempfile
import unicodedata
from pathlib import Path
from typing import Optional
from uuid import uuid4


def atomic_write_bytes(path: Path, data: bytes, mode: Optional[int] = None) -> Path:
    """Write ``data`` to ``path`` so readers see either the old file or the new one.

    The bytes go to a temp file in the same directory, are flushed and
    fsynced, and the temp file is renamed over the target.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    _fsync_directory(path.parent)
    return path


def _fsync_directory(directory: Path) -> None:
    # Not supported on Windows; the rename is still atomic there.
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def sanitize_filename(name: str) -> str:
    """Return a sanitized ASCII-only filename while preserving the extension.

    Strategy:
    - Normalize Unicode to NFKD and drop non-ASCII characters
    - Replace whitespace and path separators with underscores
    - Strip other problematic characters
    - Keep extension
    - Use a fallback name if result is empty
    """
    if '.' in name:
        base, ext = name.rsplit('.', 1)
        ext = '.' + re.sub(r'[^A-Za-z0-9]+', '', ext)
        if ext == '.':
            ext = ''
    else:
        base, ext = name, ''

    normalized = unicodedata.normalize('NFKD', base)
    ascii_str = normalized.encode('ascii', 'ignore').decode('ascii')

    ascii_str = re.sub(r'[\s/\\]+', '_', ascii_str)
    ascii_str = re.sub(r'[^A-Za-z0-9._-]+', '', ascii_str)
    ascii_str = re.sub(r'__+', '_', ascii_str).strip('_.')

    if not ascii_str:
        ascii_str = f"file_{uuid4().hex}"

    if len(ascii_str) > 200:
        ascii_str = ascii_str[:200]

    return ascii_str + ext
