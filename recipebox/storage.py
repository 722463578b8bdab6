# storage.py
# Blob store for uploaded recipe images.

import logging
import uuid
from functools import lru_cache
from pathlib import Path

from recipebox.core.config import settings

logger = logging.getLogger(__name__)

RECIPES_FOLDER = "recipes"
RECIPE_STEPS_FOLDER = "recipe_steps"


class BlobStoreError(Exception):
    pass


class LocalBlobStore:
    """
    Stores blobs on the local filesystem and hands out URLs under `base_url`.

    Layout:
        <root>/<folder>/<uuid><extension>  ->  <base_url>/<folder>/<uuid><extension>

    The generated filename never contains client input, so URLs are stable
    and cannot escape the storage root.
    """

    def __init__(self, root: str, base_url: str):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def upload(self, data: bytes, folder: str, extension: str) -> str:
        relative = f"{folder}/{uuid.uuid4()}{extension}"
        path = self.root / relative
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store blob at {path}: {e}")
            raise BlobStoreError(f"Could not store blob in '{folder}'") from e
        logger.info(f"Stored blob {relative} ({len(data)} bytes)")
        return f"{self.base_url}/{relative}"

    def _path_for(self, url: str) -> Path:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            raise BlobStoreError(f"URL is not managed by this store: {url}")
        path = (self.root / url[len(prefix):]).resolve()
        if self.root not in path.parents:
            raise BlobStoreError(f"URL resolves outside the storage root: {url}")
        return path

    def delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete blob {path}: {e}")
            raise BlobStoreError(f"Could not delete blob {url}") from e
        logger.info(f"Deleted blob {url}")


@lru_cache
def get_blob_store() -> LocalBlobStore:
    """
    Dependency returning the process-wide blob store.
    """
    return LocalBlobStore(settings.MEDIA_ROOT, settings.MEDIA_URL)
