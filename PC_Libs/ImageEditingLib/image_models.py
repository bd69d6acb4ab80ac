"""
Image editing data models for Prompt Canvas.

This module defines core data structures used throughout the image editing system.

Classes:
    Size: Width/height pair in pixels (natural or display space)
    Rect: Axis-aligned rectangle with top-left origin
    SourceImage: Immutable encoded raster with its natural dimensions
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Size:
    width: int
    height: int

    @property
    def is_positive(self) -> bool:
        return self.width > 0 and self.height > 0

    def as_tuple(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def translated(self, dx: int, dy: int) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def as_box(self) -> Tuple[int, int, int, int]:
        """Return (left, upper, right, lower) as Pillow expects for crop()."""
        return (self.x, self.y, self.right, self.bottom)


@dataclass(frozen=True)
class SourceImage:
    """An encoded raster and its natural pixel dimensions.

    Instances are never mutated; every edit produces a new SourceImage.
    """

    data: bytes
    width: int
    height: int
    format: str = "PNG"

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def __repr__(self) -> str:
        return f"SourceImage({self.width}x{self.height} {self.format}, {len(self.data)} bytes)"
