"""Local filesystem storage for uploaded note files, addressed only by generated names."""

import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel

from studyshare.core.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset(
    {".pdf", ".doc", ".docx", ".ppt", ".pptx", ".txt", ".jpg", ".jpeg", ".png", ".gif"}
)
CHUNK_SIZE = 1024 * 1024
PARTIAL_SUFFIX = ".part"


class StoredFile(BaseModel):
    """Where an upload landed: the generated name and the number of bytes written."""

    file_name: str
    size: int


def allowed_extension(original_name: str) -> str:
    """Return the lowercased extension of original_name, or raise ValidationFailed."""
    ext = os.path.splitext(original_name or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationFailed(
            "Invalid file type",
            errors=[
                {
                    "field": "file",
                    "message": "Only PDF, DOC, DOCX, PPT, PPTX, TXT, JPG, JPEG, PNG and GIF files are allowed",
                }
            ],
        )
    return ext


class FileStorage:
    """
    Writes uploads under root as <uuid4 hex><ext>.

    The client-supplied filename never becomes part of a path. Bytes go to a
    .part file first and are renamed once complete, so a crash mid-upload
    leaves only an orphaned .part file.
    """

    def __init__(self, root: str | Path, max_bytes: int) -> None:
        self.root = Path(root).resolve()
        self.max_bytes = max_bytes

    def save(self, stream: BinaryIO, original_name: str) -> StoredFile:
        ext = allowed_extension(original_name)
        self.root.mkdir(parents=True, exist_ok=True)
        file_name = f"{uuid.uuid4().hex}{ext}"
        final_path = self.root / file_name
        partial_path = self.root / f"{file_name}{PARTIAL_SUFFIX}"
        written = 0
        try:
            with open(partial_path, "wb") as out:
                while chunk := stream.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise ValidationFailed(
                            "File too large",
                            errors=[
                                {
                                    "field": "file",
                                    "message": f"File size must not exceed {self.max_bytes // (1024 * 1024)} MB",
                                }
                            ],
                        )
                    out.write(chunk)
            partial_path.replace(final_path)
        except Exception:
            partial_path.unlink(missing_ok=True)
            raise
        logger.info("Stored upload %r as %s (%d bytes)", original_name, file_name, written)
        return StoredFile(file_name=file_name, size=written)

    def path_for(self, file_name: str) -> Path:
        """Resolve a stored name to its path; names with path components are rejected."""
        if not file_name or Path(file_name).name != file_name or file_name in (".", ".."):
            raise NotFound("File not found")
        return self.root / file_name

    def exists(self, file_name: str) -> bool:
        try:
            return self.path_for(file_name).is_file()
        except NotFound:
            return False

    def delete(self, file_name: str) -> bool:
        """Remove a stored file. Returns False if it was already gone."""
        try:
            self.path_for(file_name).unlink()
        except (FileNotFoundError, NotFound):
            return False
        return True
