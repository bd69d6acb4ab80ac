"""
Gallery data models for Prompt Canvas.

A gallery entry references its image one of two ways, never both:

- ``storage_url``: an external URL returned by the upload service, used for
  entries persisted in a database
- ``inline_data``: a ``data:image/png;base64,...`` URI, used for entries kept
  only in the local fallback store

Classes:
    GalleryEntry: One saved image
    SaveOutcome: Where an added image ended up
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import uuid

from PC_Libs.constants import (
    FIELD_CREATED_AT,
    FIELD_ID,
    FIELD_INLINE_DATA,
    FIELD_PROMPT,
    FIELD_STORAGE_URL,
)
from PC_Libs.errors import PromptCanvasError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class GalleryEntry:
    id: str
    prompt: str
    created_at: datetime
    storage_url: Optional[str] = None
    inline_data: Optional[str] = None

    def __post_init__(self):
        if bool(self.storage_url) == bool(self.inline_data):
            raise ValueError("GalleryEntry needs exactly one of storage_url or inline_data")

    @classmethod
    def new(
        cls,
        prompt: str,
        storage_url: Optional[str] = None,
        inline_data: Optional[str] = None,
    ) -> "GalleryEntry":
        """Create an entry with a fresh id and the current UTC time."""
        return cls(
            id=str(uuid.uuid4()),
            prompt=prompt or "",
            created_at=_utc_now(),
            storage_url=storage_url,
            inline_data=inline_data,
        )

    @property
    def image_reference(self) -> str:
        """URL or data URI usable to display the image."""
        return self.storage_url or self.inline_data

    @property
    def is_local_only(self) -> bool:
        return self.inline_data is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            FIELD_ID: self.id,
            FIELD_PROMPT: self.prompt,
            FIELD_CREATED_AT: self.created_at.isoformat(),
        }
        if self.storage_url:
            data[FIELD_STORAGE_URL] = self.storage_url
        if self.inline_data:
            data[FIELD_INLINE_DATA] = self.inline_data
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GalleryEntry":
        """
        Build an entry from stored data.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        entry_id = str(data.get(FIELD_ID) or "").strip()
        if not entry_id:
            raise ValueError("Gallery entry has no id")

        created_raw = data.get(FIELD_CREATED_AT)
        if created_raw is None:
            raise ValueError(f"Gallery entry {entry_id} has no created_at")

        return cls(
            id=entry_id,
            prompt=str(data.get(FIELD_PROMPT) or ""),
            created_at=parse_datetime(created_raw),
            storage_url=data.get(FIELD_STORAGE_URL) or None,
            inline_data=data.get(FIELD_INLINE_DATA) or None,
        )


@dataclass(frozen=True)
class SaveOutcome:
    """Where an image added to the gallery was stored.

    Attributes:
        remote_entry: Entry persisted in the database, if any
        local_entry: Entry written to the local fallback store, if any
        error: Error that forced the local fallback (surfaced to the user)
    """

    remote_entry: Optional[GalleryEntry] = None
    local_entry: Optional[GalleryEntry] = None
    error: Optional[PromptCanvasError] = None

    @property
    def entry(self) -> Optional[GalleryEntry]:
        return self.remote_entry or self.local_entry

    @property
    def stored_remotely(self) -> bool:
        return self.remote_entry is not None
