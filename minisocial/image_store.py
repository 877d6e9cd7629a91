import logging
import os
import uuid

import aiofiles
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from minisocial import config
from minisocial.errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}


def _extension(filename: str | None) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


async def read_image(file: UploadFile, max_bytes: int | None = None) -> bytes:
    """Read an uploaded image, enforcing the allowed formats and size limit."""
    max_bytes = max_bytes or config.MAX_IMAGE_BYTES
    extension = _extension(file.filename)
    if extension not in ALLOWED_EXTENSIONS and file.content_type not in ALLOWED_CONTENT_TYPES:
        logger.warning("Rejected upload %r with content type %s", file.filename, file.content_type)
        raise ValidationError("Only jpg, jpeg and png images are allowed")

    contents = await file.read()
    if len(contents) > max_bytes:
        logger.warning("Rejected upload %r of %d bytes", file.filename, len(contents))
        raise ValidationError(f"Image must be at most {max_bytes // 1024} KB")
    if not contents:
        raise ValidationError("Uploaded image is empty")
    return contents


class ImageStore:
    """Turns an uploaded file into a URL the post can reference."""

    async def ingest(self, file: UploadFile) -> str:
        raise NotImplementedError


class CloudinaryImageStore(ImageStore):
    def __init__(self, folder: str | None = None):
        self.folder = folder or config.CLOUDINARY_FOLDER
        cloudinary.config(
            cloud_name=config.CLOUDINARY_CLOUD_NAME,
            api_key=config.CLOUDINARY_API_KEY,
            api_secret=config.CLOUDINARY_API_SECRET,
            secure=True,
        )

    async def ingest(self, file: UploadFile) -> str:
        """
        Upload an image to Cloudinary and return its secure URL
        """
        contents = await read_image(file)
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                contents,
                folder=self.folder,
                resource_type="image",
                transformation=[
                    {"width": 1200, "height": 1200, "crop": "limit"},
                    {"quality": "auto:good"},
                ],
            )
        except (CloudinaryError, ValueError) as e:
            # ValueError is what the SDK raises for missing cloud_name / api_key
            logger.error("Cloudinary upload failed: %s", e)
            raise ConfigurationError("Image storage is not available")
        return result.get("secure_url")


class LocalImageStore(ImageStore):
    """Stores uploads on disk; they are served by the app under /uploads."""

    def __init__(self, upload_dir: str | None = None, public_base_url: str | None = None):
        self.upload_dir = upload_dir or config.UPLOAD_DIR
        self.public_base_url = public_base_url if public_base_url is not None else config.PUBLIC_BASE_URL

    async def ingest(self, file: UploadFile) -> str:
        contents = await read_image(file)
        if not self.public_base_url:
            # nothing reaches disk without a public origin to serve it from
            logger.error("Local image store has no PUBLIC_BASE_URL; rejecting upload %r", file.filename)
            raise ConfigurationError("Image storage is misconfigured: PUBLIC_BASE_URL is not set")

        extension = _extension(file.filename) or "jpg"
        filename = f"{uuid.uuid4().hex}.{extension}"

        os.makedirs(self.upload_dir, exist_ok=True)
        async with aiofiles.open(os.path.join(self.upload_dir, filename), "wb") as out:
            await out.write(contents)

        return f"{self.public_base_url.rstrip('/')}/uploads/{filename}"


class UnknownImageStore(ImageStore):
    """Stands in for an unrecognised IMAGE_STORE so only uploads fail."""

    def __init__(self, kind: str):
        self.kind = kind

    async def ingest(self, file: UploadFile) -> str:
        logger.error("Upload %r rejected: unknown image store '%s'", file.filename, self.kind)
        raise ConfigurationError(f"Unknown image store '{self.kind}'")


IMAGE_STORES = {
    "cloudinary": CloudinaryImageStore,
    "local": LocalImageStore,
}


def build_image_store(kind: str | None = None) -> ImageStore:
    kind = (kind or config.IMAGE_STORE).lower()
    if kind not in IMAGE_STORES:
        return UnknownImageStore(kind)
    return IMAGE_STORES[kind]()
