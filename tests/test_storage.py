import threading
from unittest.mock import patch

import magic
import pytest

from recipebox.core.config import settings
from recipebox.core.errors import InvalidInput, UpstreamFailure
from recipebox.media import ImageUpload, delete_blobs, upload_images, validate_image
from recipebox.storage import BlobStoreError, LocalBlobStore

from tests.images import JPEG_BYTES, PNG_BYTES


def png(name="photo.png"):
    return ImageUpload(filename=name, content_type="image/png", data=PNG_BYTES)


def jpeg(name="photo.jpg"):
    return ImageUpload(filename=name, content_type="image/jpeg", data=JPEG_BYTES)


def stored(store, url):
    return (store.root / url[len(store.base_url) + 1:]).is_file()


class FlakyStore(LocalBlobStore):
    """Fails every upload into the given folder."""

    def __init__(self, root, failing_folder):
        super().__init__(root, "/media")
        self.failing_folder = failing_folder
        self.lock = threading.Lock()
        self.deleted = []

    def upload(self, data, folder, extension):
        if folder == self.failing_folder:
            raise BlobStoreError("disk full")
        return super().upload(data, folder, extension)

    def delete(self, url):
        with self.lock:
            self.deleted.append(url)
        super().delete(url)


# --- LocalBlobStore ---

def test_upload_returns_url_under_base(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media/")
    url = store.upload(PNG_BYTES, "recipes", ".png")

    assert url.startswith("/media/recipes/")
    assert url.endswith(".png")
    assert stored(store, url)
    assert (tmp_path / url[len("/media/"):]).read_bytes() == PNG_BYTES


def test_uploads_get_unique_names(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    assert store.upload(PNG_BYTES, "recipes", ".png") != store.upload(PNG_BYTES, "recipes", ".png")


def test_delete_removes_blob_and_tolerates_missing(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    url = store.upload(JPEG_BYTES, "recipe_steps", ".jpg")

    store.delete(url)
    assert not stored(store, url)
    # second delete is a no-op
    store.delete(url)


def test_foreign_urls_are_rejected(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    with pytest.raises(BlobStoreError):
        store.delete("https://elsewhere.example.com/x.png")
    with pytest.raises(BlobStoreError):
        store.delete("/media/../../etc/passwd")


# --- image validation ---

def test_png_and_jpeg_are_accepted():
    assert validate_image(png(), "image") == ".png"
    assert validate_image(jpeg(), "image") == ".jpg"


def test_content_type_must_be_image():
    upload = ImageUpload(filename="notes.txt", content_type="text/plain", data=PNG_BYTES)
    with pytest.raises(InvalidInput, match="only JPEG and PNG"):
        validate_image(upload, "image")


def test_content_is_sniffed():
    upload = ImageUpload(filename="fake.png", content_type="image/png", data=b"GIF89a" + b"\x00" * 10)
    with pytest.raises(InvalidInput, match="not a JPEG or PNG image \(detected 'image/gif'\)"):
        validate_image(upload, "stepImages[0]")


def test_renamed_text_file_is_rejected():
    upload = ImageUpload(filename="notes.png", content_type="image/png", data=b"just some plain text\n" * 4)
    with pytest.raises(InvalidInput, match="text/plain"):
        validate_image(upload, "image")


def test_extension_follows_detected_type():
    # declared as PNG, content is JPEG
    upload = ImageUpload(filename="photo.png", content_type="image/png", data=JPEG_BYTES)
    assert validate_image(upload, "image") == ".jpg"


def test_detection_failure_is_upstream_error():
    with patch("recipebox.media.magic.from_buffer", side_effect=magic.MagicException("libmagic broke")):
        with pytest.raises(UpstreamFailure, match="Could not verify file type"):
            validate_image(png(), "image")


def test_empty_upload_is_rejected():
    upload = ImageUpload(filename="empty.png", content_type="image/png", data=b"")
    with pytest.raises(InvalidInput, match="empty"):
        validate_image(upload, "image")


def test_size_limit(monkeypatch):
    monkeypatch.setattr(settings, "MAX_IMAGE_BYTES", 32)
    with pytest.raises(InvalidInput, match="exceeds"):
        validate_image(png(), "image")


# --- upload_images ---

def test_upload_images_keys_step_urls_by_index(blob_store):
    primary_url, step_urls = upload_images(blob_store, png(), {2: jpeg(), 0: png()}, step_count=3)

    assert primary_url.startswith("/media/recipes/")
    assert sorted(step_urls) == [0, 2]
    assert step_urls[2].endswith(".jpg")
    assert all(url.startswith("/media/recipe_steps/") for url in step_urls.values())
    assert all(stored(blob_store, url) for url in [primary_url, *step_urls.values()])


def test_upload_images_without_files(blob_store):
    assert upload_images(blob_store, None, {}, step_count=2) == (None, {})


def test_step_image_index_must_exist(blob_store):
    with pytest.raises(InvalidInput, match=r"stepImages\[2\]: recipe has no step 2"):
        upload_images(blob_store, None, {2: png()}, step_count=2)


def test_invalid_image_uploads_nothing(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    bad = ImageUpload(filename="x.gif", content_type="image/gif", data=b"GIF89a")
    with pytest.raises(InvalidInput):
        upload_images(store, png(), {0: bad}, step_count=1)
    assert not any(path.is_file() for path in tmp_path.rglob("*"))


def test_failed_step_upload_removes_uploaded_blobs(tmp_path):
    store = FlakyStore(str(tmp_path), failing_folder="recipe_steps")

    with pytest.raises(UpstreamFailure) as exc:
        upload_images(store, png(), {0: jpeg(), 1: jpeg()}, step_count=2)

    assert exc.value.status_code == 500
    assert sorted(exc.value.context["failed"]) == ["0", "1"]
    # the primary image made it to the store and was cleaned up again
    assert len(store.deleted) == 1
    assert not any(path.is_file() for path in tmp_path.rglob("*"))


def test_delete_blobs_skips_failures(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    url = store.upload(PNG_BYTES, "recipes", ".png")

    with patch("recipebox.media.logger") as mock_logger:
        delete_blobs(store, [None, "ftp://bad/url.png", url])

    assert not stored(store, url)
    assert mock_logger.warning.call_count == 1
    assert "ftp://bad/url.png" in mock_logger.warning.call_args[0][0]
