"""
Unit tests for the local gallery store and gallery entry models.
"""

from datetime import datetime, timedelta, timezone
import json

import pytest

from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry, SaveOutcome
from PC_Libs.GalleryStoreLib.local_store import LocalGalleryStore, get_gallery_file
from PC_Libs.errors import GalleryFullError

INLINE = "data:image/png;base64,AAAA"


def make_entry(entry_id, minutes_ago=0, prompt="a prompt"):
    return GalleryEntry(
        id=entry_id,
        prompt=prompt,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
        inline_data=INLINE,
    )


class TestGalleryEntry:
    """Tests for GalleryEntry class."""

    def test_requires_exactly_one_reference(self):
        """An entry holds either a storage URL or inline data."""
        now = datetime.now(timezone.utc)
        with pytest.raises(ValueError):
            GalleryEntry(id="1", prompt="", created_at=now)
        with pytest.raises(ValueError):
            GalleryEntry(id="1", prompt="", created_at=now, storage_url="https://x", inline_data=INLINE)

    def test_new_assigns_id_and_time(self):
        """new() generates an id and a timezone-aware timestamp."""
        entry = GalleryEntry.new("a castle", storage_url="https://cdn.example.test/a.png")
        assert entry.id
        assert entry.created_at.tzinfo is not None
        assert entry.image_reference == "https://cdn.example.test/a.png"
        assert not entry.is_local_only

    def test_dict_round_trip(self):
        """Entries survive serialization."""
        entry = make_entry("abc")
        assert GalleryEntry.from_dict(entry.to_dict()) == entry

    def test_naive_timestamp_is_utc(self):
        """Timestamps without a timezone are read as UTC."""
        entry = GalleryEntry.from_dict({"id": "1", "created_at": "2024-05-01T12:00:00", "inline_data": INLINE})
        assert entry.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("data", [
        {"created_at": "2024-05-01T12:00:00", "inline_data": INLINE},
        {"id": "1", "inline_data": INLINE},
        {"id": "1", "created_at": "yesterday", "inline_data": INLINE},
    ])
    def test_from_dict_rejects_malformed(self, data):
        """Missing or malformed fields raise ValueError."""
        with pytest.raises(ValueError):
            GalleryEntry.from_dict(data)

    def test_save_outcome_entry(self):
        """SaveOutcome.entry prefers the remote entry."""
        local = make_entry("local")
        assert SaveOutcome(local_entry=local).entry is local
        assert not SaveOutcome(local_entry=local).stored_remotely


class TestLocalGalleryStore:
    """Tests for LocalGalleryStore class."""

    def test_missing_file_is_empty(self, gallery_dir):
        """A new gallery has no entries."""
        assert LocalGalleryStore(gallery_dir).list() == []

    def test_add_prepends(self, gallery_dir):
        """Newly added entries come first."""
        store = LocalGalleryStore(gallery_dir)
        store.add(make_entry("old", minutes_ago=5))
        store.add(make_entry("new"))

        assert [entry.id for entry in store.list()] == ["new", "old"]

    def test_file_format(self, gallery_dir):
        """Entries are stored under an 'entries' key."""
        store = LocalGalleryStore(gallery_dir)
        store.add(make_entry("abc"))

        payload = json.loads(get_gallery_file(gallery_dir).read_text(encoding="utf-8"))
        assert payload["entries"][0]["id"] == "abc"
        assert payload["entries"][0]["inline_data"] == INLINE

    def test_full_gallery_refuses(self, gallery_dir):
        """Adding beyond max_entries raises GalleryFullError."""
        store = LocalGalleryStore(gallery_dir, max_entries=2)
        store.add(make_entry("1"))
        store.add(make_entry("2"))

        with pytest.raises(GalleryFullError) as exc_info:
            store.add(make_entry("3"))
        assert "2" in exc_info.value.user_message
        assert len(store.list()) == 2

    def test_corrupt_file_is_empty(self, gallery_dir):
        """An unreadable gallery file is treated as empty."""
        get_gallery_file(gallery_dir).write_text("{not json", encoding="utf-8")
        assert LocalGalleryStore(gallery_dir).list() == []

    def test_malformed_entries_are_skipped(self, gallery_dir):
        """Bad entries do not hide good ones."""
        good = make_entry("good").to_dict()
        payload = {"entries": [good, {"prompt": "no id"}, "junk"]}
        get_gallery_file(gallery_dir).write_text(json.dumps(payload), encoding="utf-8")

        assert [entry.id for entry in LocalGalleryStore(gallery_dir).list()] == ["good"]

    def test_remove_and_clear(self, gallery_dir):
        """Entries can be removed individually or all at once."""
        store = LocalGalleryStore(gallery_dir)
        store.add(make_entry("1"))
        store.add(make_entry("2"))

        assert store.remove("1") is True
        assert store.remove("missing") is False
        assert [entry.id for entry in store.list()] == ["2"]

        store.clear()
        assert store.list() == []
