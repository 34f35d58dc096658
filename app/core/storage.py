"""
Local file storage for uploaded documents.

Files are written under settings.UPLOAD_DIR with a random name; the database
keeps only the relative path plus the original filename, size and MIME type.
"""
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import uuid4

from app.core.config import settings
from app.core.errors import InvalidArgumentError, NotFoundError
from app.models.enums import DocumentType

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "application/pdf": DocumentType.PDF,
    "image/png": DocumentType.IMAGE,
    "image/jpeg": DocumentType.IMAGE,
    "image/gif": DocumentType.IMAGE,
    "image/webp": DocumentType.IMAGE,
    "application/msword": DocumentType.WORD,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentType.WORD,
    "application/vnd.ms-excel": DocumentType.EXCEL,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentType.EXCEL,
}


@dataclass
class StoredFile:
    file_path: str
    file_name: str
    file_size: int
    mime_type: str
    document_type: DocumentType


def _upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def classify_document_type(mime_type: Optional[str], filename: Optional[str]) -> DocumentType:
    """Map a MIME type (falling back to the filename extension) to pdf/image/word/excel."""
    content_type = (mime_type or "").split(";")[0].strip().lower()
    if content_type in MIME_TYPES:
        return MIME_TYPES[content_type]

    # Browsers often send application/octet-stream; try the extension
    guessed = mimetypes.guess_type(filename or "")[0] or ""
    if guessed in MIME_TYPES:
        return MIME_TYPES[guessed]

    raise InvalidArgumentError(
        f"Unsupported file type: {content_type or guessed or 'unknown'}. Allowed: pdf, image, word, excel"
    )


def store_upload(data: bytes, filename: Optional[str], content_type: Optional[str]) -> StoredFile:
    if not data:
        raise InvalidArgumentError("Uploaded file is empty")

    size_mb = len(data) / (1024 * 1024)
    if size_mb > settings.MAX_UPLOAD_MB:
        raise InvalidArgumentError(
            f"File too large: {size_mb:.1f} MB. Max size: {settings.MAX_UPLOAD_MB} MB."
        )

    original_name = Path(filename or "upload").name
    document_type = classify_document_type(content_type, original_name)
    mime_type = (content_type or "").split(";")[0].strip().lower()
    if mime_type not in MIME_TYPES:
        mime_type = mimetypes.guess_type(original_name)[0] or "application/octet-stream"

    root = _upload_root()
    root.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid4().hex}{Path(original_name).suffix.lower()}"
    (root / stored_name).write_bytes(data)
    logger.info("Stored upload %s as %s (%d bytes)", original_name, stored_name, len(data))

    return StoredFile(
        file_path=stored_name,
        file_name=original_name,
        file_size=len(data),
        mime_type=mime_type,
        document_type=document_type,
    )


def resolve(file_path: str) -> Path:
    root = _upload_root().resolve()
    path = (root / file_path).resolve()
    if root not in path.parents or not path.is_file():
        raise NotFoundError(f"Stored file {file_path} not found")
    return path


def release(file_path: str) -> None:
    """Remove a stored file. A file that is already gone is only logged."""
    path = _upload_root() / file_path
    try:
        path.unlink()
        logger.info("Released stored file %s", file_path)
    except FileNotFoundError:
        logger.warning("Stored file %s already missing, nothing to release", file_path)
