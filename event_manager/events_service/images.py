"""
Event poster preparation and upload.

Posters are validated before any network activity, recompressed when large,
and uploaded with a fixed timeout. Compression is best effort: if Pillow
cannot decode or encode the image, the original file is uploaded instead.
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Dict

from PIL import Image, UnidentifiedImageError

from event_manager.config import UPLOAD_TIMEOUT_SECONDS
from event_manager.errors import UploadTimeoutError, ValidationError

MIB = 1024 * 1024

# --- CONSTANTS FOR VALIDATION ---
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_UPLOAD_BYTES = 10 * MIB

# --- COMPRESSION POLICY ---
COMPRESSION_THRESHOLD_BYTES = 1 * MIB
MAX_WIDTH = 1200
JPEG_QUALITY = 80
JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImageFile:
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class PreparedImage:
    """Result of prepare_image: the file to upload and whether it was recompressed."""

    file: ImageFile
    compressed: bool


def validate_image(image: ImageFile) -> None:
    """
    Reject posters with an unsupported type or above the size limit.

    Raises:
        ValidationError: With a message naming the problem.
    """
    content_type = (image.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            f"Unsupported image type '{image.content_type}'. "
            "Please upload a JPEG, PNG, GIF or WebP image.",
            fields={"poster": "Unsupported image type"},
        )
    if image.size > MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"Image is too large ({image.size / MIB:.1f} MB). The maximum size is 10 MB.",
            fields={"poster": "Image must be 10 MB or smaller"},
        )


def _compress(image: ImageFile) -> ImageFile:
    with Image.open(io.BytesIO(image.content)) as img:
        img.load()
        if img.width > MAX_WIDTH:
            height = max(1, round(img.height * MAX_WIDTH / img.width))
            img = img.resize((MAX_WIDTH, height), Image.Resampling.LANCZOS)
        if img.mode != "RGB":
            img = img.convert("RGB")

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)

    return ImageFile(
        filename=image.filename,
        content=buffer.getvalue(),
        content_type=JPEG_CONTENT_TYPE,
    )


def prepare_image(image: ImageFile) -> PreparedImage:
    """
    Recompress a poster at or over the 1 MB threshold.

    Large images are scaled down to at most 1200 px wide and re-encoded as
    JPEG (quality 80) under their original filename. The result is not
    guaranteed to be smaller than the input.

    Args:
        image (ImageFile): A poster that already passed validate_image().

    Returns:
        PreparedImage: compressed=False means the original is returned as-is.
    """
    if image.size < COMPRESSION_THRESHOLD_BYTES:
        return PreparedImage(file=image, compressed=False)

    try:
        compressed = _compress(image)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logging.warning(f"[Images] Compression failed for {image.filename}, uploading original: {e}")
        return PreparedImage(file=image, compressed=False)

    logging.info(
        f"[Images] Compressed {image.filename} from {image.size} to {compressed.size} bytes"
    )
    return PreparedImage(file=compressed, compressed=True)


def upload_image(client, image: ImageFile, timeout: float = UPLOAD_TIMEOUT_SECONDS) -> Dict[str, str]:
    """
    Upload a file to the Parse Server, racing the upload against a timer.

    Args:
        client (ParseClient): The shared backend client.
        image (ImageFile): File to upload.
        timeout (float): Seconds before giving up.

    Returns:
        dict: {"name": ..., "url": ...} of the stored file.

    Raises:
        UploadTimeoutError: The timer fired first.
        RemoteCallError: The upload itself failed.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(
        client.upload_file, image.filename, image.content, image.content_type, timeout
    )
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logging.error(f"[Images] Upload of {image.filename} timed out after {timeout:g}s")
        raise UploadTimeoutError(
            f"Image upload timed out after {timeout:g} seconds. "
            "Check that the Parse Server is reachable."
        )
    finally:
        # Do not block on a hung upload
        executor.shutdown(wait=False)
