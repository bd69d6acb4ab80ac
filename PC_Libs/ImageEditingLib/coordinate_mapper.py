"""
Coordinate conversions between natural, display and crop space.

Images are shown letterboxed inside a container, so the editor works in
display coordinates while rasterization has to happen in the image's natural
pixel space. All functions here are pure arithmetic.

Functions:
    fit_to_container: Scale natural dimensions to fit a container
    to_natural_rect: Map a display-space rectangle to natural pixels
    to_natural_size: Map a display-space size to natural pixels
    clamp_rect: Clamp a rectangle into bounds with a minimum size
    default_crop_region: Centered crop rectangle at half the display size
"""

from PC_Libs.ImageEditingLib.image_models import Rect, Size
from PC_Libs.constants import DEFAULT_CROP_FRACTION
from PC_Libs.errors import InvalidDimensionsError


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def fit_to_container(
    natural_width: int,
    natural_height: int,
    container_width: int,
    container_height: int,
) -> Size:
    """
    Scale an image to fit entirely inside a container, preserving aspect ratio.

    The image is first scaled to the container width; if the resulting height
    overflows the container, it is scaled to the container height instead.

    Args:
        natural_width: Intrinsic image width in pixels
        natural_height: Intrinsic image height in pixels
        container_width: Available width
        container_height: Available height

    Returns:
        Display Size, each side at least 1 and at most the container bound

    Raises:
        InvalidDimensionsError: If any argument is not positive
    """
    if natural_width <= 0 or natural_height <= 0:
        raise InvalidDimensionsError(f"Natural size must be positive, got {natural_width}x{natural_height}")
    if container_width <= 0 or container_height <= 0:
        raise InvalidDimensionsError(f"Container size must be positive, got {container_width}x{container_height}")

    scale = container_width / natural_width
    if natural_height * scale > container_height:
        scale = container_height / natural_height

    width = _clamp(round(natural_width * scale), 1, container_width)
    height = _clamp(round(natural_height * scale), 1, container_height)
    return Size(width, height)


def to_natural_rect(display_rect: Rect, display_dims: Size, natural_dims: Size) -> Rect:
    """
    Map a rectangle from display space to natural pixel space.

    X and Y use independent ratios so rounding in fit_to_container does not
    skew the result.

    Raises:
        InvalidDimensionsError: If display_dims is not positive
    """
    if not display_dims.is_positive:
        raise InvalidDimensionsError(f"Display size must be positive, got {display_dims}")

    ratio_x = natural_dims.width / display_dims.width
    ratio_y = natural_dims.height / display_dims.height
    return Rect(
        x=round(display_rect.x * ratio_x),
        y=round(display_rect.y * ratio_y),
        width=round(display_rect.width * ratio_x),
        height=round(display_rect.height * ratio_y),
    )


def to_natural_size(display_size: Size, display_dims: Size, natural_dims: Size) -> Size:
    """Map a display-space size (e.g. a dragged resize target) to natural pixels."""
    if not display_dims.is_positive:
        raise InvalidDimensionsError(f"Display size must be positive, got {display_dims}")

    return Size(
        round(display_size.width * natural_dims.width / display_dims.width),
        round(display_size.height * natural_dims.height / display_dims.height),
    )


def clamp_rect(rect: Rect, bounds: Size, min_size: int = 1) -> Rect:
    """
    Clamp a rectangle so it lies inside (0, 0, bounds.width, bounds.height).

    Width and height are floored at min_size (capped by the bounds themselves
    when the bounds are smaller than the floor). Position is adjusted after
    sizing so the rectangle never sticks out.
    """
    min_w = min(min_size, bounds.width)
    min_h = min(min_size, bounds.height)

    width = _clamp(rect.width, min_w, bounds.width)
    height = _clamp(rect.height, min_h, bounds.height)
    x = _clamp(rect.x, 0, bounds.width - width)
    y = _clamp(rect.y, 0, bounds.height - height)
    return Rect(x, y, width, height)


def default_crop_region(display: Size, fraction: float = DEFAULT_CROP_FRACTION) -> Rect:
    """Centered crop rectangle covering ``fraction`` of each display side."""
    width = max(1, round(display.width * fraction))
    height = max(1, round(display.height * fraction))
    return Rect(
        x=(display.width - width) // 2,
        y=(display.height - height) // 2,
        width=width,
        height=height,
    )
