"""
Local object storage for uploaded resume files

Objects are addressed by a relative name such as
``resumes/2024/05/17/ab12cd34_cv.pdf`` under ``UPLOAD_DIR``.
"""
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import structlog

from app.core.config import settings
from app.core.exceptions import ProcessingError

logger = structlog.get_logger()

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+")


def sanitize_file_name(file_name: Optional[str]) -> str:
    """Strip directories and anything outside [word . -] from a client file name"""
    name = Path(file_name or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name[:200] or "resume"


class FileStorage:
    """Store and read resume bytes under a base directory"""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR)

    def build_object_name(self, file_hash: str, file_name: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        return f"resumes/{now:%Y/%m/%d}/{file_hash[:8]}_{sanitize_file_name(file_name)}"

    def save(self, object_name: str, content: bytes) -> str:
        path = self._resolve(object_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.info("resume_file_stored", object_name=object_name, size=len(content))
        return object_name

    def read(self, object_name: str) -> bytes:
        path = self._resolve(object_name)
        if not path.is_file():
            raise ProcessingError("Resume file missing from storage", details={"object_name": object_name})
        return path.read_bytes()

    def delete(self, object_name: str) -> None:
        path = self._resolve(object_name)
        if path.is_file():
            path.unlink()

    def _resolve(self, object_name: str) -> Path:
        base = self.base_dir.resolve()
        path = (base / object_name).resolve()
        if base != path and base not in path.parents:
            raise ProcessingError("Invalid storage path", details={"object_name": object_name})
        return path


file_storage = FileStorage()
