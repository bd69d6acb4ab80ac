"""
GalleryStoreLib - Gallery persistence

This module stores generated images: a local JSON gallery used as the
fallback, and optional SQLite/PostgreSQL backends for remote persistence.
"""

from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry, SaveOutcome
from PC_Libs.GalleryStoreLib.local_store import LocalGalleryStore, get_gallery_file
from PC_Libs.GalleryStoreLib.backends import (
    GalleryBackend,
    NullGalleryBackend,
    PostgresGalleryBackend,
    SqliteGalleryBackend,
    create_gallery_backend,
)
from PC_Libs.GalleryStoreLib.gallery_service import GalleryService

__all__ = [
    "GalleryEntry",
    "SaveOutcome",
    "LocalGalleryStore",
    "get_gallery_file",
    "GalleryBackend",
    "NullGalleryBackend",
    "PostgresGalleryBackend",
    "SqliteGalleryBackend",
    "create_gallery_backend",
    "GalleryService",
]
