# storage/local_temp.py
import os
import logging
from contextlib import contextmanager

from services.utils import new_id

logger = logging.getLogger("Scratch")


def cleanup_temp_file(file_path: str):
    """Deletes a local scratch file once it is no longer needed."""
    if file_path and os.path.exists(file_path):
        os.remove(file_path)
        logger.info(f"[Cleanup] Deleted temporary file: {file_path}")


class ScratchSpace:
    """Local working directory for downloads and publish payloads."""

    def __init__(self, root: str):
        self.root = root

    def ensure(self) -> str:
        os.makedirs(self.root, exist_ok=True)
        return self.root

    def allocate(self, prefix: str = "media", suffix: str = ".mp4") -> str:
        self.ensure()
        return os.path.join(self.root, f"{prefix}_{new_id()}{suffix}")

    @contextmanager
    def scratch_file(self, prefix: str = "media", suffix: str = ".mp4"):
        """Yields a fresh path; the file is removed on exit whatever happened inside."""
        path = self.allocate(prefix, suffix)
        try:
            yield path
        finally:
            cleanup_temp_file(path)
