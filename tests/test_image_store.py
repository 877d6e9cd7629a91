import asyncio
import io
import os

import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import UploadFile
from starlette.datastructures import Headers

from minisocial.errors import ConfigurationError, ValidationError
from minisocial.image_store import (
    CloudinaryImageStore,
    LocalImageStore,
    UnknownImageStore,
    build_image_store,
    read_image,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_upload(filename="cat.png", data=PNG_BYTES, content_type="image/png"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_local_store_writes_file_and_returns_public_url(tmp_path):
    store = LocalImageStore(upload_dir=str(tmp_path), public_base_url="http://localhost:8000/")

    url = asyncio.run(store.ingest(make_upload()))

    assert url.startswith("http://localhost:8000/uploads/")
    assert url.endswith(".png")
    saved = tmp_path / url.rsplit("/", 1)[1]
    assert saved.read_bytes() == PNG_BYTES


def test_local_store_without_public_origin_writes_nothing(tmp_path):
    store = LocalImageStore(upload_dir=str(tmp_path), public_base_url="")

    with pytest.raises(ConfigurationError):
        asyncio.run(store.ingest(make_upload(filename="photo.JPG", content_type="image/jpeg")))

    assert os.listdir(tmp_path) == []


def test_read_image_rejects_other_formats():
    with pytest.raises(ValidationError):
        asyncio.run(read_image(make_upload(filename="doc.pdf", content_type="application/pdf")))


def test_read_image_accepts_known_content_type_without_extension():
    contents = asyncio.run(read_image(make_upload(filename="blob", content_type="image/png")))
    assert contents == PNG_BYTES


def test_read_image_enforces_size_limit():
    with pytest.raises(ValidationError) as exc:
        asyncio.run(read_image(make_upload(data=b"x" * 2048), max_bytes=1024))
    assert "at most" in exc.value.message


def test_cloudinary_store_returns_secure_url(monkeypatch):
    calls = []

    def fake_upload(contents, **options):
        calls.append(options)
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/minisocial_posts/abc.png"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    store = CloudinaryImageStore(folder="minisocial_posts")

    url = asyncio.run(store.ingest(make_upload()))

    assert url == "https://res.cloudinary.com/demo/image/upload/minisocial_posts/abc.png"
    assert calls[0]["folder"] == "minisocial_posts"


def test_cloudinary_failure_is_a_configuration_error(monkeypatch):
    def failing_upload(contents, **options):
        raise CloudinaryError("Must supply api_key")

    monkeypatch.setattr(cloudinary.uploader, "upload", failing_upload)

    with pytest.raises(ConfigurationError):
        asyncio.run(CloudinaryImageStore().ingest(make_upload()))


def test_build_image_store_by_name():
    assert isinstance(build_image_store("local"), LocalImageStore)
    assert isinstance(build_image_store("Cloudinary"), CloudinaryImageStore)


def test_unknown_image_store_fails_only_on_upload():
    store = build_image_store("ftp")

    assert isinstance(store, UnknownImageStore)
    with pytest.raises(ConfigurationError) as exc:
        asyncio.run(store.ingest(make_upload()))
    assert exc.value.message == "Unknown image store 'ftp'"
