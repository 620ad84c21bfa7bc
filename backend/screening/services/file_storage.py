"""
File Storage
Stores attachments in a local "active folder" and hands out file:// URIs.
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from screening.core.exceptions import FileProcessingError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = '<>:"/\\|?*\x00'


def safe_file_name(name: str) -> str:
    cleaned = "".join("_" if ch in _UNSAFE_CHARS else ch for ch in name).strip()
    return cleaned or "attachment"


class FileStorage:
    def __init__(self, folder: str = "./resumes"):
        self.folder = Path(folder).resolve()
        self.folder.mkdir(parents=True, exist_ok=True)

    def _unique_path(self, name: str) -> Path:
        """Existing files are never overwritten; a numeric suffix is added instead"""
        path = self.folder / safe_file_name(name)
        if not path.exists():
            return path
        stem, suffix = path.stem, path.suffix
        counter = 1
        while True:
            candidate = self.folder / f"{stem}_{counter}{suffix}"
            if not candidate.exists():
                return candidate
            counter += 1

    def create_file(self, name: str, content: bytes, media_type: Optional[str] = None) -> str:
        """Write a file and return its URI"""
        try:
            path = self._unique_path(name)
            path.write_bytes(content)
        except OSError as e:
            raise FileProcessingError(str(e), filename=name) from e
        logger.debug(f"Stored {path.name} ({media_type or 'unknown type'}, {len(content)} bytes)")
        return path.as_uri()

    def list_files(self) -> List[Path]:
        return sorted(p for p in self.folder.iterdir() if p.is_file())

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete files last modified before `cutoff`; returns how many went"""
        deleted = 0
        cutoff_ts = cutoff.timestamp()
        for path in self.list_files():
            try:
                if path.stat().st_mtime < cutoff_ts:
                    os.remove(path)
                    deleted += 1
            except OSError as e:
                logger.warning(f"Could not delete {path.name}: {e}")
        if deleted:
            logger.info(f"🗑️ Deleted {deleted} file(s) older than {cutoff.date()}")
        return deleted

    def ping(self) -> bool:
        return self.folder.is_dir() and os.access(self.folder, os.W_OK)
