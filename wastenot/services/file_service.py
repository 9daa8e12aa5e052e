"""File handling service for meal photo uploads."""
import logging
import uuid
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from wastenot.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

ALLOWED_EXTENSIONS = set(ALLOWED_TYPES.values()) | {".jpeg"}


class FileService:
    """
    Stores uploaded photos on disk.

    Photos are referenced by their public URL (``/uploads/<name>``), which is
    what meals store. Bytes are written unchanged: the duplicate-photo check
    compares the sizes of the original uploads.
    """

    def __init__(self, upload_dir: str = "uploads", max_bytes: int = 5 * 1024 * 1024):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_bytes

    async def save_meal_photo(self, file: UploadFile) -> str:
        """
        Save an uploaded meal photo to disk.

        Args:
            file: Uploaded file from FastAPI

        Returns:
            URL of the stored photo

        Raises:
            InvalidImageError: If the file type, size or content is invalid
        """
        if file.content_type not in ALLOWED_TYPES:
            raise InvalidImageError(
                f"Invalid file type: {file.content_type}. "
                f"Allowed: {sorted(set(ALLOWED_TYPES))}"
            )

        contents = await file.read()
        # Stored name follows the checked content type, never the client filename
        return self.save_bytes(contents, ALLOWED_TYPES[file.content_type])

    def save_bytes(self, contents: bytes, extension: str = ".jpg") -> str:
        """Validate and store raw image bytes, returning the photo URL."""
        extension = extension.lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise InvalidImageError(f"Unsupported file extension: {extension or '(none)'}")
        if not contents:
            raise InvalidImageError("No photo uploaded")
        if len(contents) > self.max_bytes:
            raise InvalidImageError(
                f"Photo too large: {len(contents)} bytes (max {self.max_bytes})"
            )
        self._verify_image(contents)

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        unique_id = uuid.uuid4().hex[:8]
        filename = f"{timestamp}_{unique_id}{extension}"

        file_path = self.upload_dir / filename
        with open(file_path, "wb") as f:
            f.write(contents)

        return self.get_file_url(filename)

    def _verify_image(self, contents: bytes) -> None:
        """Reject bytes Pillow cannot identify as an image."""
        try:
            with Image.open(BytesIO(contents)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise InvalidImageError("Uploaded file is not a readable image") from e

    def path_for(self, photo_url: str) -> Path:
        """Map a photo URL back to its file on disk."""
        name = Path(photo_url.removeprefix(URL_PREFIX)).name
        return self.upload_dir / name

    def exists(self, photo_url: Optional[str]) -> bool:
        if not photo_url:
            return False
        return self.path_for(photo_url).is_file()

    def read_bytes(self, photo_url: str) -> bytes:
        return self.path_for(photo_url).read_bytes()

    def size_of(self, photo_url: str) -> int:
        return self.path_for(photo_url).stat().st_size

    def delete_file(self, photo_url: Optional[str]) -> bool:
        """
        Delete a stored photo.

        Args:
            photo_url: URL returned when the photo was saved

        Returns:
            True if deleted, False if file not found
        """
        if not photo_url:
            return False
        try:
            path = self.path_for(photo_url)
            if path.exists():
                path.unlink()
                return True
            return False
        except OSError as e:
            logger.error("Error deleting file %s: %s", photo_url, e)
            return False

    def get_file_url(self, filename: str) -> str:
        return f"{URL_PREFIX}{filename}"
