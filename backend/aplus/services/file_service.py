"""
A+ Marketplace Backend — File Storage Service
===============================================

What:  Validates and stores uploaded note documents, cover images, course
       thumbnails and lesson videos, and resolves stored files for serving.
How:   Checks extension, size and libmagic MIME type for the upload's kind,
       stores under YYYY/MM/DD/<uuid>.<ext> with async writes, and returns
       the public URL under `settings.files_url_prefix`.
Who:   NoteService, CourseService, routes/files.py.

Security Model:
    1. Extension check per kind (fast rejection)
    2. Size check per kind (Content-Length first, then actual bytes)
    3. MIME check with python-magic on the file header bytes
    4. UUID filenames (no user input reaches the file system)
    5. resolve() refuses any path escaping the storage root

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.pdf
                └── e5f6g7h8-9012.webp
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, NamedTuple, Optional, Tuple

import aiofiles
import magic

from aplus.config import settings
from aplus.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# ── Allowed File Types ────────────────────────────────────────────────────
@dataclass(frozen=True)
class FileKind:
    name: str
    extensions: FrozenSet[str]
    mime_types: FrozenSet[str]
    max_size_setting: str

    @property
    def max_size(self) -> int:
        return getattr(settings, self.max_size_setting)


DOCUMENT = FileKind(
    name="document",
    extensions=frozenset({".pdf"}),
    mime_types=frozenset({"application/pdf"}),
    max_size_setting="max_document_size",
)
IMAGE = FileKind(
    name="image",
    extensions=frozenset({".png", ".jpg", ".jpeg", ".webp"}),
    mime_types=frozenset({"image/png", "image/jpeg", "image/webp"}),
    max_size_setting="max_image_size",
)
VIDEO = FileKind(
    name="video",
    extensions=frozenset({".mp4", ".webm", ".mov"}),
    mime_types=frozenset({"video/mp4", "video/webm", "video/quicktime"}),
    max_size_setting="max_video_size",
)


class StoredFile(NamedTuple):
    absolute_path: str
    relative_path: str
    url: str


class FileService:
    """
    Manages the upload, validation, storage and lookup of files.

    Every public upload goes through `upload()`; a failed DB write after an
    upload should be followed by `cleanup_file()` on the stored path.
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def _validate_extension(self, filename: str, kind: FileKind = IMAGE) -> str:
        """Returns the normalized extension (lowercase with dot)."""
        ext = Path(filename or "").suffix.lower()
        if ext not in kind.extensions:
            raise ValidationError(
                field="file",
                code="file.unsupported_type",
                extension=ext or "(none)",
                allowed=", ".join(sorted(kind.extensions)),
            )
        return ext

    def _validate_size(
        self,
        content: bytes,
        content_length: Optional[int],
        kind: FileKind = IMAGE,
    ) -> None:
        if not content:
            raise ValidationError(field="file", code="file.empty")

        max_mb = f"{kind.max_size / (1024 * 1024):.0f}"
        if content_length and content_length > kind.max_size:
            raise ValidationError(
                field="file",
                code="file.too_large",
                context={"reported_size": content_length},
                max_mb=max_mb,
            )
        if len(content) > kind.max_size:
            raise ValidationError(
                field="file",
                code="file.too_large",
                context={"actual_size": len(content)},
                max_mb=max_mb,
            )

    def _validate_mime_type(self, content: bytes, kind: FileKind = IMAGE) -> str:
        """Detect the MIME type from the header bytes with libmagic."""
        try:
            mime_type = magic.from_buffer(content[:4096], mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(context={"error": str(e)})

        if mime_type not in kind.mime_types:
            raise ValidationError(
                field="file",
                code="file.unsupported_content",
                context={"allowed": sorted(kind.mime_types)},
                mime=mime_type,
            )
        return mime_type

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Creates a YYYY/MM/DD/<uuid>.<ext> path; returns (absolute, relative)."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def url_for(self, relative_path: str) -> str:
        return f"{settings.files_url_prefix.rstrip('/')}/{relative_path}"

    def relative_from_url(self, url: str) -> Optional[str]:
        """Inverse of url_for; None for URLs that don't point at this storage."""
        prefix = settings.files_url_prefix.rstrip("/") + "/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    async def store_file(self, content: bytes, extension: str) -> StoredFile:
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(context={"path": str(absolute_path), "os_error": str(e)})

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return StoredFile(str(absolute_path), relative_path, self.url_for(relative_path))

    async def upload(
        self,
        filename: str,
        content: bytes,
        kind: FileKind = IMAGE,
        content_length: Optional[int] = None,
    ) -> StoredFile:
        """
        Complete validation and storage pipeline: extension → size → MIME → write.
        """
        ext = self._validate_extension(filename, kind)
        self._validate_size(content, content_length, kind)
        self._validate_mime_type(content, kind)
        return await self.store_file(content, ext)

    # ── Lookup & Cleanup ──────────────────────────────────────────────────

    def resolve(self, relative_path: str) -> Path:
        """
        Map a relative storage path to an existing file under the storage root.

        Raises:
            ValidationError: the path escapes the storage root
            NotFoundError: no such file
        """
        candidate = (self.storage_root / relative_path).resolve()
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            raise ValidationError(code="file.invalid_path", context={"path": relative_path})
        if not candidate.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return candidate

    async def cleanup_file(self, file_path: str) -> None:
        """Best-effort removal of a stored file; never raises."""
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except Exception as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
