"""
ImageEditingLib - Core image editing functionality

This module provides coordinate mapping, rasterization, drag handling and
the edit session controller for the Prompt Canvas project.
"""

from PC_Libs.ImageEditingLib.image_models import Rect, Size, SourceImage
from PC_Libs.ImageEditingLib.coordinate_mapper import (
    clamp_rect,
    default_crop_region,
    fit_to_container,
    to_natural_rect,
    to_natural_size,
)
from PC_Libs.ImageEditingLib.render_engine import (
    crop,
    decode_raster,
    encode_png,
    media_type,
    resize,
    to_data_uri,
)
from PC_Libs.ImageEditingLib.drag_interaction import (
    DragHandle,
    DragStateMachine,
    drag_crop_corner,
    drag_resize_corner,
    move_rect,
)
from PC_Libs.ImageEditingLib.edit_session import EditMode, EditSession, suggest_filename

__all__ = [
    "Rect",
    "Size",
    "SourceImage",
    "clamp_rect",
    "default_crop_region",
    "fit_to_container",
    "to_natural_rect",
    "to_natural_size",
    "crop",
    "decode_raster",
    "encode_png",
    "media_type",
    "resize",
    "to_data_uri",
    "DragHandle",
    "DragStateMachine",
    "drag_crop_corner",
    "drag_resize_corner",
    "move_rect",
    "EditMode",
    "EditSession",
    "suggest_filename",
]
