"""Profile image validation and storage."""

import base64
import binascii
import logging
import os
import secrets
import string
from pathlib import Path

from app.config import get_settings

logger = logging.getLogger("accounts.files")

# Content signatures; the client-supplied name and MIME type are never trusted.
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

FILENAME_ALPHABET = string.ascii_letters + string.digits


class FileService:
    """Handles profile image decoding, sniffing, and storage on disk."""

    def profile_folder(self) -> Path:
        return Path(get_settings().profile_folder)

    def create_folders(self) -> None:
        self.profile_folder().mkdir(parents=True, exist_ok=True)

    def decode_image(self, encoded: str) -> bytes | None:
        """Decode a base64 image. Returns None if it is not valid base64."""
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            return None

    def is_within_size_limit(self, data: bytes) -> bool:
        return len(data) <= get_settings().MAX_PROFILE_IMAGE_BYTES

    def sniff_image_type(self, data: bytes) -> str | None:
        """Return the MIME type of a supported image, or None."""
        if data.startswith(PNG_SIGNATURE):
            return "image/png"
        if data.startswith(JPEG_SIGNATURE):
            return "image/jpeg"
        return None

    def save_profile_image(self, data: bytes) -> str:
        """Write image bytes under a random name. Returns the stored filename."""
        self.create_folders()
        filename = "".join(secrets.choice(FILENAME_ALPHABET) for _ in range(32))
        file_path = self.profile_folder() / filename
        with open(file_path, "wb") as f:
            f.write(data)
        return filename

    def delete_profile_image(self, filename: str) -> None:
        file_path = self.profile_folder() / filename
        if file_path.exists():
            os.remove(file_path)
        else:
            logger.warning("Profile image %s already missing", filename)


_file_service: FileService | None = None


def get_file_service() -> FileService:
    """Get singleton file service instance."""
    global _file_service
    if _file_service is None:
        _file_service = FileService()
    return _file_service
