# media.py
# Validation and upload of recipe images (primary image and per-step images).

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import magic

from recipebox.core.config import settings
from recipebox.core.errors import InvalidInput, UpstreamFailure
from recipebox.storage import RECIPES_FOLDER, RECIPE_STEPS_FOLDER

logger = logging.getLogger(__name__)

# Detected MIME type -> stored extension
ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}


@dataclass
class ImageUpload:
    filename: str
    content_type: Optional[str]
    data: bytes


def detect_mime_type(data: bytes) -> str:
    """
    Inspect the file header with libmagic; the declared content type is not trusted.
    """
    try:
        return magic.from_buffer(data, mime=True)
    except magic.MagicException as e:
        logger.error(f"MIME type detection failed: {e}")
        raise UpstreamFailure("Could not verify file type. Please try again.", context={"error": str(e)})


def validate_image(upload: ImageUpload, field: str) -> str:
    """
    Check an upload is a JPEG or PNG within the size cap.
    Returns the extension to store it under.
    """
    if upload.content_type and upload.content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise InvalidInput(
            f"{field}: only JPEG and PNG images are allowed (got '{upload.content_type}')",
            field=field,
        )
    if len(upload.data) == 0:
        raise InvalidInput(f"{field}: uploaded image is empty", field=field)
    if len(upload.data) > settings.MAX_IMAGE_BYTES:
        max_mb = settings.MAX_IMAGE_BYTES / (1024 * 1024)
        raise InvalidInput(f"{field}: image exceeds the {max_mb:.0f}MB limit", field=field)
    mime_type = detect_mime_type(upload.data)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidInput(
            f"{field}: file content is not a JPEG or PNG image (detected '{mime_type}')",
            field=field,
        )
    return ALLOWED_MIME_TYPES[mime_type]


def validate_step_images(step_images: Dict[int, ImageUpload], step_count: int) -> Dict[int, str]:
    extensions = {}
    for index in sorted(step_images):
        field = f"stepImages[{index}]"
        if index >= step_count:
            raise InvalidInput(f"{field}: recipe has no step {index}", field=field)
        extensions[index] = validate_image(step_images[index], field)
    return extensions


def delete_blobs(store, urls: Iterable[Optional[str]]) -> None:
    """
    Best-effort removal; a failing deletion is logged and skipped.
    """
    for url in urls:
        if not url:
            continue
        try:
            store.delete(url)
        except Exception as e:
            logger.warning(f"Could not delete blob {url}: {e}")


def upload_images(
    store,
    primary: Optional[ImageUpload],
    step_images: Dict[int, ImageUpload],
    step_count: int,
) -> Tuple[Optional[str], Dict[int, str]]:
    """
    Validate and upload the primary image and step images.

    Step images are uploaded concurrently and their URLs keyed by step index.
    If any upload fails, every blob uploaded by this call is removed again and
    UpstreamFailure is raised, so nothing is persisted for a half-uploaded recipe.
    """
    primary_ext = validate_image(primary, "image") if primary else None
    step_exts = validate_step_images(step_images, step_count)

    jobs = {}
    with ThreadPoolExecutor(max_workers=settings.UPLOAD_WORKERS) as executor:
        if primary:
            jobs["image"] = executor.submit(store.upload, primary.data, RECIPES_FOLDER, primary_ext)
        for index, extension in step_exts.items():
            jobs[index] = executor.submit(
                store.upload, step_images[index].data, RECIPE_STEPS_FOLDER, extension
            )

    uploaded = {}
    failures = []
    for key, future in jobs.items():
        try:
            uploaded[key] = future.result()
        except Exception as e:
            failures.append((key, e))

    if failures:
        delete_blobs(store, uploaded.values())
        logger.error(f"Image upload failed: {failures}")
        raise UpstreamFailure(
            "Failed to upload recipe images. Please try again.",
            context={"failed": [str(key) for key, _ in failures]},
        )

    primary_url = uploaded.pop("image", None)
    return primary_url, uploaded
