import base64
import binascii
import datetime
import logging
import secrets
from pathlib import Path
from typing import Optional, Tuple

from .config import IMAGE_ROUTE, Settings
from .errors import ValidationFailedError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}


def decode_base64_image(base64_str: str) -> Tuple[bytes, str]:
    """
    Decode a base64 image string.
    - base64_str: may be raw base64 or a data URL (data:image/png;base64,...)
    Returns: (data, content_type)
    """
    if not base64_str or not base64_str.strip():
        raise ValidationFailedError("Empty image data")

    s = base64_str.strip()
    content_type = "image/jpeg"
    # if data URL present, strip header
    if s.startswith("data:"):
        comma = s.find(",")
        if comma == -1:
            raise ValidationFailedError("Malformed image data URL")
        header, s = s[5:comma], s[comma + 1:]
        content_type = header.split(";")[0] or content_type

    # sanitize whitespace/newlines
    s = "".join(s.split())
    try:
        data = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationFailedError(f"Invalid base64 image: {e}")
    return data, content_type


class ImageStore:
    """Candidate images on local disk, exposed under IMAGE_ROUTE by the app."""

    def __init__(self, upload_dir: str, public_base_url: str, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageStore":
        return cls(settings.upload_dir, settings.public_base_url, settings.max_image_bytes)

    def public_url(self, filename: str) -> str:
        return f"{self.public_base_url}{IMAGE_ROUTE}/{filename}"

    def save(self, data: bytes, content_type: Optional[str], filename: Optional[str] = None) -> str:
        """Validate and write an image, returning its public URL."""
        if not content_type or not content_type.startswith("image/"):
            raise ValidationFailedError("Invalid file type. Please upload an image file.")
        if not data:
            raise ValidationFailedError("Empty image file")
        if len(data) > self.max_bytes:
            raise ValidationFailedError(
                f"File too large. Maximum file size is {self.max_bytes // (1024 * 1024)}MB.",
                details={"size": len(data), "max_bytes": self.max_bytes},
            )

        ext = _extension(filename, content_type)
        # random prefix plus millisecond timestamp
        name = f"{secrets.token_hex(6)}_{int(datetime.datetime.now(datetime.timezone.utc).timestamp() * 1000)}.{ext}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / name
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Stored candidate image {name} ({len(data)} bytes)")
        return self.public_url(name)


def _extension(filename: Optional[str], content_type: str) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext in ALLOWED_EXTENSIONS:
            return ext
    subtype = content_type.split("/", 1)[1].split("+")[0].lower()
    return subtype if subtype in ALLOWED_EXTENSIONS else "jpg"
