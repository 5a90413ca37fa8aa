from pathlib import Path
from PIL import Image, UnidentifiedImageError
import io
import logging
import mimetypes
import time
import uuid
from typing import Optional
from urllib.parse import urlsplit, unquote

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type("image/heif", ".heif")


def get_image_extension(filename: str, default: str = "jpg") -> str:
    ext = Path(filename).suffix[1:].lower()
    if ext in ["jpg", "jpeg", "png", "gif", "webp", "heic", "heif"]:
        return ext
    return default


def generate_storage_key(source: Optional[str] = None) -> str:
    """Generates a unique storage key: epoch millis plus a random suffix."""
    extension = get_image_extension(source) if source else "jpg"
    millis = int(time.time() * 1000)
    random_str = uuid.uuid4().hex[:8]
    return f"ai_image_{millis}_{random_str}.{extension}"


def extract_storage_key(storage_url: str) -> Optional[str]:
    """Returns the final path segment of a public storage URL, or None."""
    path = urlsplit(storage_url).path if "://" in storage_url else storage_url
    key = unquote(path.rstrip("/").split("/")[-1]) if path else ""
    return key or None


def detect_content_type(data: bytes, filename: Optional[str] = None) -> str:
    """Returns the MIME type of encoded image bytes.

    Formats Pillow cannot read (HEIC without a plugin, for one) fall back to
    a guess from ``filename`` and then to ``application/octet-stream``.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.debug(f"Pillow could not identify {filename or 'upload'}: {e}")
        image_format = None
    if image_format in Image.MIME:
        return Image.MIME[image_format]
    guessed = mimetypes.guess_type(filename)[0] if filename else None
    return guessed or DEFAULT_CONTENT_TYPE
