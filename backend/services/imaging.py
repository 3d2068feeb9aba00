"""
Image intake for leaf photos.

Accepts images as data URIs, raw uploads or URLs, checks type and size, and
downscales large photos before they are sent inline to the model.
"""
import base64
import binascii
import logging
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from backend import config
from backend.errors import ImageValidationError

logger = logging.getLogger(__name__)

PIL_FORMAT_TO_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}

EXIF_ORIENTATION_TAG = 0x0112


@dataclass
class InlineImage:
    mime_type: str
    data: bytes

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def size(self) -> int:
        return len(self.data)


def describe_data_uri(uri: Optional[str]) -> str:
    """Log-safe summary of a data URI."""
    length = len(uri) if uri else 0
    if length == 0:
        return "<empty>"
    if length <= 200:
        return uri
    return f"{uri[:100]}... (Total length: {length})"


def parse_data_uri(uri: str) -> InlineImage:
    """Split a `data:<mime>;base64,<payload>` URI into mime type and bytes."""
    if not uri or not isinstance(uri, str):
        raise ImageValidationError("Please select an image file.")

    uri = uri.strip()
    if not uri.startswith("data:") or "," not in uri:
        raise ImageValidationError("Image must be a data URI of the form 'data:<mimetype>;base64,<encoded_data>'.")

    header, payload = uri[5:].split(",", 1)
    params = header.split(";")
    mime_type = params[0].strip().lower()
    if "base64" not in [p.strip().lower() for p in params[1:]]:
        raise ImageValidationError("Image data URI must use base64 encoding.")
    if mime_type not in config.ALLOWED_IMAGE_TYPES:
        raise ImageValidationError(f"Unsupported image type '{mime_type}'. Use PNG, JPG, or WEBP.", status_code=415)

    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ImageValidationError("Could not decode image. Please upload a valid image file.")

    return validate_image_bytes(data, mime_type)


def _too_large_error(pixels: Optional[int] = None) -> ImageValidationError:
    detail = f" ({pixels} pixels)" if pixels else ""
    return ImageValidationError(f"Image dimensions are too large{detail}. Please upload a smaller photo.", status_code=413)


def _open_image(data: bytes) -> Image.Image:
    # Pillow refuses absurd headers at open time with its own error type
    try:
        return Image.open(BytesIO(data))
    except Image.DecompressionBombError as e:
        logger.info("[Vision] Rejected decompression bomb (%s bytes): %s", len(data), e)
        raise _too_large_error()


def _check_pixels(img: Image.Image):
    w, h = img.size
    if w * h > config.IMAGE_MAX_PIXELS:
        logger.info("[Vision] Rejected %sx%s image (limit %s pixels)", w, h, config.IMAGE_MAX_PIXELS)
        raise _too_large_error(w * h)


def validate_image_bytes(data: bytes, mime_type: Optional[str] = None) -> InlineImage:
    """Check size limit and that Pillow can decode the bytes.

    The returned mime type is the one detected from the bytes, not the declared one.
    """
    if not data:
        raise ImageValidationError("Please select an image file.")
    if len(data) > config.MAX_UPLOAD_BYTES:
        limit_mb = config.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise ImageValidationError(f"Image is too large. Maximum size is {limit_mb:.0f}MB.", status_code=413)

    try:
        with _open_image(data) as img:
            detected = img.format
            _check_pixels(img)
            img.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.info("[Vision] Pillow could not decode upload (%s bytes): %s", len(data), e)
        raise ImageValidationError("Could not decode image. Please upload a valid image file.")

    detected_mime = PIL_FORMAT_TO_MIME.get(detected or "")
    if detected_mime is None:
        raise ImageValidationError(f"Unsupported image format '{detected}'. Use PNG, JPG, or WEBP.", status_code=415)
    if mime_type and mime_type != detected_mime:
        logger.debug("[Vision] Declared %s but bytes are %s; using detected type", mime_type, detected_mime)

    return InlineImage(mime_type=detected_mime, data=data)


def prepare_image(image: InlineImage) -> InlineImage:
    """Downscale and re-encode large or rotated photos as JPEG.

    Large inline images make provider requests slow or rejected, so anything
    over IMAGE_REENCODE_BYTES or IMAGE_MAX_DIMENSION is shrunk. Small images
    pass through unchanged.
    """
    with _open_image(image.data) as img:
        _check_pixels(img)
        w, h = img.size
        orientation = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
        need_reencode = (
            image.size > config.IMAGE_REENCODE_BYTES
            or max(w, h) > config.IMAGE_MAX_DIMENSION
            or orientation != 1
        )
        if not need_reencode:
            return image

        img_obj = ImageOps.exif_transpose(img).convert("RGB")
        max_dim = config.IMAGE_MAX_DIMENSION
        w, h = img_obj.size
        new_w, new_h = w, h
        if max(w, h) > max_dim:
            scale = max_dim / float(max(w, h))
            new_w = max(1, int(w * scale))
            new_h = max(1, int(h * scale))
            img_obj = img_obj.resize((new_w, new_h), Image.LANCZOS)

        out = BytesIO()
        img_obj.save(out, format="JPEG", quality=config.IMAGE_JPEG_QUALITY, optimize=True)

    out_bytes = out.getvalue()
    logger.info("[Vision] Re-encoded image: %s -> %s bytes, %sx%s", image.size, len(out_bytes), new_w, new_h)
    return InlineImage(mime_type="image/jpeg", data=out_bytes)


def to_data_uri(image: InlineImage) -> str:
    return f"data:{image.mime_type};base64,{image.base64}"


def load_image_from_url(image_url: str) -> InlineImage:
    """Fetch an image over HTTP, retrying slow hosts with longer timeouts."""
    last_exc: Optional[Exception] = None
    for timeout in (10.0, 20.0, 30.0):
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True) as client:
                r = client.get(image_url)
                r.raise_for_status()
            content_type = r.headers.get("content-type", "").split(";")[0].strip().lower() or None
            return validate_image_bytes(r.content, content_type)
        except httpx.HTTPStatusError as e:
            raise ImageValidationError(f"Could not fetch image: HTTP {e.response.status_code}")
        except httpx.TransportError as e:
            logger.warning("[Vision] fetch image_url attempt failed (timeout=%ss): %s", timeout, e)
            last_exc = e
            time.sleep(0.25)
    raise ImageValidationError(f"Failed to fetch image from URL after retries: {last_exc}")
