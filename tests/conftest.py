"""
Pytest configuration and shared fixtures for Prompt Canvas tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

from io import BytesIO

import pytest
from PIL import Image

from PC_Libs.ImageEditingLib.edit_session import EditSession
from PC_Libs.ImageEditingLib.image_models import Size
from PC_Libs.ImageEditingLib.render_engine import decode_raster


@pytest.fixture
def make_image_bytes():
    """
    Provide a factory that encodes a solid-color image.

    Returns:
        Callable (width, height, color=..., image_format="PNG") -> bytes
    """
    def _make(width, height, color=(255, 0, 0, 255), image_format="PNG"):
        mode = "RGBA" if image_format == "PNG" else "RGB"
        fill = color if mode == "RGBA" else color[:3]
        buffer = BytesIO()
        Image.new(mode, (width, height), fill).save(buffer, format=image_format)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_512(make_image_bytes):
    """512x512 PNG bytes, the typical size returned by the generation webhook."""
    return make_image_bytes(512, 512)


@pytest.fixture
def raster_512(png_512):
    """The 512x512 PNG as a decoded SourceImage."""
    return decode_raster(png_512)


@pytest.fixture
def session():
    """A fresh EditSession with the default 800x600 container."""
    return EditSession(container=Size(800, 600))


@pytest.fixture
def loaded_session(session, png_512):
    """An EditSession holding the 512x512 image."""
    session.load_image(png_512)
    return session


@pytest.fixture
def gallery_dir(tmp_path):
    """
    Provide a temporary directory for the local gallery.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path / "Gallery"
