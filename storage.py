"""
Blob store for uploaded images (post thumbnails and avatars).

Files live flat in one directory and are referenced from records by their
stored name. Stored names embed a uuid4, so writes never need an existence
check.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Union

import settings
from errors import BlobNotFound, InternalError, SizeExceeded, ValidationError

logger = logging.getLogger(__name__)


def make_stored_name(original_name: str) -> str:
    """Return "<base><uuid4><ext>" for an uploaded file name."""
    base_name = os.path.basename((original_name or "").replace("\\", "/"))
    stem, ext = os.path.splitext(base_name)
    return f"{stem}{uuid.uuid4()}{ext}"


class BlobStore:
    """Stores uploaded files under a single root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path(self, name: str) -> Path:
        if not name or name != os.path.basename(name) or name in (".", ".."):
            raise ValidationError(f"Invalid file name: {name!r}")
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    @staticmethod
    def check_size(size: int, max_size: int, message: Optional[str] = None) -> None:
        if size > max_size:
            raise SizeExceeded(message or f"File is too big, should be at most {max_size} bytes")

    def store(self, data: bytes, original_name: str, max_size: int, too_big_message: Optional[str] = None) -> str:
        """
        Write an upload and return its stored name.

        Raises:
            SizeExceeded: data is larger than max_size bytes.
            InternalError: the file could not be written.
        """
        self.check_size(len(data), max_size, too_big_message)

        stored_name = make_stored_name(original_name)
        target = self.path(stored_name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write blob {stored_name}: {e}")
            raise InternalError("File move failed")

        logger.debug(f"Stored blob {stored_name} ({len(data)} bytes)")
        return stored_name

    def remove(self, name: str) -> None:
        """
        Delete a stored file.

        Raises:
            BlobNotFound: no file with that name exists.
            InternalError: the file exists but could not be deleted.
        """
        target = self.path(name)
        try:
            target.unlink()
        except FileNotFoundError:
            raise BlobNotFound(f"File {name} not found")
        except OSError as e:
            logger.error(f"Failed to delete blob {name}: {e}")
            raise InternalError(f"Failed to delete {name}")
        logger.debug(f"Removed blob {name}")


def get_blob_store() -> BlobStore:
    return BlobStore(settings.UPLOADS_DIR)
