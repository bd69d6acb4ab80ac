"""
Raster rendering for Prompt Canvas.

This module turns encoded image bytes into new rasters: destructive resizes
and natural-space crops. Every result is re-encoded as PNG regardless of the
input format so repeated edits do not accumulate compression artifacts.

Functions:
    decode_raster: Validate raw bytes and wrap them in a SourceImage
    open_image: Decode a SourceImage into a Pillow image
    encode_png: Encode a Pillow image as a PNG SourceImage
    resize: Stretch a raster to an exact size
    crop: Cut a natural-space rectangle out of a raster
    to_data_uri: Encode a raster as a data: URI
    media_type: MIME type of a raster's encoded format
"""

from io import BytesIO
from typing import Any
import base64
import logging

from PIL import Image, UnidentifiedImageError

from PC_Libs.ImageEditingLib.image_models import Rect, SourceImage
from PC_Libs.constants import DEFAULT_OUTPUT_FORMAT, PNG_MEDIA_TYPE
from PC_Libs.errors import DecodeFailureError, InvalidDimensionsError

logger = logging.getLogger(__name__)

# Modes Pillow can write to PNG without conversion
PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


def open_image(source: SourceImage) -> Any:
    """
    Decode a SourceImage into a fully loaded Pillow image.

    Raises:
        DecodeFailureError: If the bytes are not a readable image
    """
    try:
        image = Image.open(BytesIO(source.data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeFailureError(f"Cannot decode raster: {exc}") from exc
    return image


def decode_raster(data: bytes) -> SourceImage:
    """
    Validate raw image bytes and measure their natural size.

    Args:
        data: Encoded image bytes in any format Pillow can read

    Returns:
        SourceImage wrapping the original bytes

    Raises:
        DecodeFailureError: If the bytes are empty or not a readable image
    """
    if not data:
        raise DecodeFailureError("Empty image data")

    probe = SourceImage(data=bytes(data), width=0, height=0)
    with open_image(probe) as image:
        width, height = image.size
        image_format = image.format or DEFAULT_OUTPUT_FORMAT

    if width <= 0 or height <= 0:
        raise DecodeFailureError(f"Decoded image has no pixels ({width}x{height})")

    return SourceImage(data=probe.data, width=width, height=height, format=image_format)


def encode_png(image: Any) -> SourceImage:
    """Encode a Pillow image as PNG."""
    if image.mode not in PNG_MODES:
        image = image.convert("RGBA")

    buffer = BytesIO()
    image.save(buffer, format=DEFAULT_OUTPUT_FORMAT)
    return SourceImage(
        data=buffer.getvalue(),
        width=image.width,
        height=image.height,
        format=DEFAULT_OUTPUT_FORMAT,
    )


def resize(source: SourceImage, target_width: int, target_height: int) -> SourceImage:
    """
    Stretch or compress a raster to exactly target_width x target_height.

    This is not a fit: the aspect ratio follows the target.

    Raises:
        InvalidDimensionsError: If either target dimension is not positive
        DecodeFailureError: If the source cannot be decoded
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidDimensionsError(f"Resize target must be positive, got {target_width}x{target_height}")

    with open_image(source) as image:
        resized = image.resize((int(target_width), int(target_height)), Image.Resampling.LANCZOS)

    logger.debug(f"Resized {source.width}x{source.height} -> {target_width}x{target_height}")
    return encode_png(resized)


def crop(source: SourceImage, natural_rect: Rect) -> SourceImage:
    """
    Cut natural_rect out of a raster.

    Callers clamp the rectangle beforehand; this check only rejects
    rectangles that are empty or reach outside the source.

    Raises:
        InvalidDimensionsError: If the rectangle is empty or out of bounds
        DecodeFailureError: If the source cannot be decoded
    """
    if natural_rect.width <= 0 or natural_rect.height <= 0:
        raise InvalidDimensionsError(f"Crop size must be positive, got {natural_rect.width}x{natural_rect.height}")

    with open_image(source) as image:
        img_width, img_height = image.size
        if (natural_rect.x < 0 or natural_rect.y < 0
                or natural_rect.right > img_width or natural_rect.bottom > img_height):
            raise InvalidDimensionsError(
                f"Crop region {natural_rect.as_box()} lies outside the {img_width}x{img_height} source"
            )
        cropped = image.crop(natural_rect.as_box())

    logger.debug(f"Cropped {natural_rect.as_box()} from {img_width}x{img_height}")
    return encode_png(cropped)


def to_data_uri(source: SourceImage) -> str:
    """Return the raster as a ``data:`` URI, re-encoding to PNG when needed."""
    if source.format.upper() != DEFAULT_OUTPUT_FORMAT:
        with open_image(source) as image:
            source = encode_png(image)
    encoded = base64.b64encode(source.data).decode("ascii")
    return f"data:{PNG_MEDIA_TYPE};base64,{encoded}"


def media_type(source: SourceImage) -> str:
    """MIME type for the raster's encoded format, e.g. ``image/jpeg``."""
    Image.init()
    return Image.MIME.get(source.format.upper(), "application/octet-stream")
