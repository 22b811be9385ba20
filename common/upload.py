"""
Jomla - Media Storage
======================
Image upload for categories, products and variant items.

save_upload_file() validates, resizes and stores an image, and returns a
stable public URL (``/static/uploads/<folder>/<name>``). That URL is also
the identifier delete_file() accepts.
"""

import logging
import os
import uuid
from typing import Optional, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from common.exceptions import ValidationError
from config.settings import UPLOAD_DIR, ALLOWED_IMAGE_EXTENSIONS, MAX_FILE_SIZE, DEFAULT_IMAGE_MAX_SIZE

logger = logging.getLogger("jomla.media")

PUBLIC_PREFIX = "/static/uploads"


def _url_to_path(url: str) -> Optional[str]:
    if not url or not url.startswith(PUBLIC_PREFIX + "/"):
        return None
    relative = url[len(PUBLIC_PREFIX) + 1:]
    if ".." in relative.split("/"):
        return None
    return os.path.join(UPLOAD_DIR, *relative.split("/"))


def save_upload_file(
    upload_file: Optional[UploadFile],
    folder: str = "products",
    max_size: Tuple[int, int] = DEFAULT_IMAGE_MAX_SIZE,
) -> Optional[str]:
    """
    Store an uploaded image and return its public URL.

    Returns None when no file was submitted. Raises ValidationError for
    oversized files, disallowed extensions or unreadable images.
    """
    if not upload_file or not upload_file.filename:
        return None

    upload_file.file.seek(0, 2)
    file_size = upload_file.file.tell()
    upload_file.file.seek(0)
    if file_size > MAX_FILE_SIZE:
        raise ValidationError(f"حجم الملف كبير جداً (الحد الأقصى {MAX_FILE_SIZE // (1024 * 1024)} ميغابايت)")

    ext = os.path.splitext(upload_file.filename)[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(f"صيغة الملف غير مسموحة. الصيغ المسموحة: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}")

    target_dir = os.path.join(UPLOAD_DIR, folder)
    os.makedirs(target_dir, exist_ok=True)

    unique_name = f"{uuid.uuid4().hex}{ext}"
    file_path = os.path.join(target_dir, unique_name)

    try:
        img = Image.open(upload_file.file)
        img.thumbnail(max_size)
        if ext in (".jpg", ".jpeg"):
            img.convert("RGB").save(file_path, optimize=True, quality=80)
        else:
            img.save(file_path)
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Image save failed for {upload_file.filename}: {e}")
        raise ValidationError("تعذر قراءة الصورة") from e

    return f"{PUBLIC_PREFIX}/{folder}/{unique_name}"


def delete_file(url: Optional[str]) -> bool:
    """Delete a stored image by its public URL. Returns True if deleted."""
    path = _url_to_path(url)
    if not path:
        return False
    try:
        if os.path.exists(path):
            os.remove(path)
            return True
    except OSError as e:
        logger.warning(f"Could not delete {path}: {e}")
    return False
