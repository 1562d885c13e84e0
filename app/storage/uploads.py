"""Upload storage: persists incoming documents where workers can read them."""

import logging
import os
import re
import tempfile
from typing import Optional, Protocol

from app.jobs.errors import PayloadTooLargeError, StorageError

logger = logging.getLogger(__name__)

_CHUNK_BYTES = 1024 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


def safe_filename(filename: str) -> str:
    """Reduce an untrusted client filename to a single safe path component."""
    name = os.path.basename(filename.replace("\\", "/"))
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


class UploadStore:
    """Writes uploads to ``<base_dir>/<job_id>_<safe filename>``."""

    def __init__(self, base_dir: Optional[str] = None, max_bytes: int = 100 * 1024 * 1024):
        if base_dir:
            self._base_dir = base_dir
        else:
            self._base_dir = os.path.join(tempfile.gettempdir(), "docqueue_uploads")
        os.makedirs(self._base_dir, exist_ok=True)
        self._max_bytes = max_bytes

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def path_for(self, job_id: str, filename: str) -> str:
        return os.path.join(self._base_dir, f"{job_id}_{safe_filename(filename)}")

    async def save(self, job_id: str, filename: str, source: AsyncReadable) -> str:
        """Stream ``source`` to disk in chunks and return the stored path.

        Raises PayloadTooLargeError past ``max_bytes`` and StorageError on I/O
        failure. A partial file is removed in both cases.
        """
        path = self.path_for(job_id, filename)
        total = 0
        try:
            with open(path, "wb") as dst:
                while True:
                    chunk = await source.read(_CHUNK_BYTES)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > self._max_bytes:
                        raise PayloadTooLargeError(
                            f"file too large (max {self._max_bytes} bytes)"
                        )
                    dst.write(chunk)
        except PayloadTooLargeError:
            self._discard(path)
            raise
        except OSError as exc:
            self._discard(path)
            raise StorageError(f"failed to save upload: {exc}") from exc

        logger.debug(f"Stored upload for job {job_id} at {path} ({total} bytes)")
        return path

    def _discard(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning(f"Could not remove partial upload {path}: {exc}")
