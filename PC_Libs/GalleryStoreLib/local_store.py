"""
Local gallery storage.

Entries live in a single JSON file (``gallery.json``) inside the gallery
directory, newest first. This store is the fallback whenever no database is
configured or a remote save did not go through.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging

from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry
from PC_Libs.constants import FIELD_ENTRIES, GALLERY_FILE_NAME, MAX_GALLERY_IMAGES
from PC_Libs.errors import GalleryFullError

logger = logging.getLogger(__name__)


def get_gallery_file(gallery_dir: Path) -> Path:
    gallery_dir = Path(gallery_dir)
    gallery_dir.mkdir(parents=True, exist_ok=True)
    return gallery_dir / GALLERY_FILE_NAME


class LocalGalleryStore:
    def __init__(self, gallery_dir: Path, max_entries: Optional[int] = MAX_GALLERY_IMAGES) -> None:
        self.gallery_dir = Path(gallery_dir)
        self.max_entries = max_entries

    @property
    def path(self) -> Path:
        return get_gallery_file(self.gallery_dir)

    def list(self) -> List[GalleryEntry]:
        """
        Load all entries, newest first.

        A missing file is an empty gallery. An unreadable file is logged and
        treated as empty; malformed entries are skipped.
        """
        path = self.path
        if not path.exists():
            return []

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.error(f"Failed to load gallery from {path}: {exc}")
            return []

        raw_entries = payload.get(FIELD_ENTRIES) if isinstance(payload, dict) else None
        if not isinstance(raw_entries, list):
            return []

        entries: List[GalleryEntry] = []
        for raw in raw_entries:
            if not isinstance(raw, dict):
                continue
            try:
                entries.append(GalleryEntry.from_dict(raw))
            except ValueError as exc:
                logger.warning(f"Skipping malformed gallery entry: {exc}")
        return entries

    def add(self, entry: GalleryEntry) -> GalleryEntry:
        """
        Prepend an entry.

        Raises:
            GalleryFullError: If the gallery already holds max_entries entries
            OSError: If the gallery file cannot be written
        """
        entries = self.list()
        if self.max_entries and len(entries) >= self.max_entries:
            raise GalleryFullError(
                f"Local gallery holds {len(entries)} entries",
                f"Cannot add more than {self.max_entries} images.",
            )

        entries.insert(0, entry)
        self._write(entries)
        logger.info(f"Added {entry.id} to the local gallery ({len(entries)} entries)")
        return entry

    def remove(self, entry_id: str) -> bool:
        entries = self.list()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            return False
        self._write(remaining)
        return True

    def clear(self) -> None:
        self._write([])

    def _write(self, entries: List[GalleryEntry]) -> None:
        payload: Dict[str, Any] = {FIELD_ENTRIES: [entry.to_dict() for entry in entries]}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
