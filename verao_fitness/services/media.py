"""Photo evidence validation."""

import io
import os
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from verao_fitness.core.config import settings
from verao_fitness.core.errors import ValidationError

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

# Checked only in the first 1KB; image payloads can contain any byte sequence
MALICIOUS_SIGNATURES = [
    b"<script",
    b"javascript:",
    b"vbscript:",
    b"data:text/html",
    b"<?php",
    b"<%",
]


@dataclass
class PhotoUpload:
    filename: str
    content_type: str
    data: bytes


def validate_photo(photo: PhotoUpload) -> None:
    """Raise ValidationError (field ``photo``) if the upload is not a usable image."""
    if not photo.data:
        raise ValidationError("The photo is empty.", field="photo")

    if len(photo.data) > settings.MAX_PHOTO_SIZE_BYTES:
        limit_mb = settings.MAX_PHOTO_SIZE_BYTES // (1024 * 1024)
        raise ValidationError(f"Photo exceeds the {limit_mb}MB limit.", field="photo")

    if photo.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"File type {photo.content_type} not allowed. "
            f"Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}",
            field="photo",
        )

    extension = os.path.splitext(photo.filename)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"File extension {extension} not allowed", field="photo")

    header = photo.data[:1024].lower()
    if any(signature in header for signature in MALICIOUS_SIGNATURES):
        raise ValidationError(
            "File contains potentially malicious content", field="photo"
        )

    try:
        with Image.open(io.BytesIO(photo.data)) as img:
            if (
                img.width > settings.MAX_PHOTO_DIMENSION
                or img.height > settings.MAX_PHOTO_DIMENSION
            ):
                raise ValidationError(
                    "Image dimensions too large "
                    f"(max {settings.MAX_PHOTO_DIMENSION}x{settings.MAX_PHOTO_DIMENSION})",
                    field="photo",
                )
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError(f"Invalid image file: {exc}", field="photo") from exc
