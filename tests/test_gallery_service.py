"""
Unit tests for gallery_service module.

Tests the remote-first save path, the local fallback and merged listing.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from PC_Libs.GalleryStoreLib.backends import NullGalleryBackend, SqliteGalleryBackend
from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry
from PC_Libs.GalleryStoreLib.gallery_service import GalleryService
from PC_Libs.GalleryStoreLib.local_store import LocalGalleryStore
from PC_Libs.ServicesLib.upload_client import UploadClient
from PC_Libs.errors import (
    GalleryFullError,
    NetworkFailureError,
    PersistenceUnavailableError,
    UploadTooLargeError,
)

STORAGE_URL = "https://cdn.example.test/uploads/a_red_circle.png"


@pytest.fixture
def uploader():
    mock = Mock(spec=UploadClient)
    mock.upload.return_value = STORAGE_URL
    return mock


@pytest.fixture
def sqlite_backend(tmp_path):
    backend = SqliteGalleryBackend(tmp_path / "gallery.db")
    yield backend
    backend.close()


class TestAddImage:
    """Tests for GalleryService.add_image."""

    def test_local_only_without_configuration(self, gallery_dir, raster_512):
        """Without a database the image is kept locally as a data URI."""
        service = GalleryService(LocalGalleryStore(gallery_dir))
        outcome = service.add_image(raster_512, "a red circle")

        assert not service.is_configured()
        assert not outcome.stored_remotely
        assert outcome.error is None
        assert outcome.local_entry.inline_data.startswith("data:image/png;base64,")
        assert outcome.local_entry.prompt == "a red circle"

    def test_remote_save(self, gallery_dir, raster_512, uploader, sqlite_backend):
        """With upload and database configured the entry is stored remotely."""
        store = LocalGalleryStore(gallery_dir)
        service = GalleryService(store, sqlite_backend, uploader)

        outcome = service.add_image(raster_512, "a red circle")

        assert outcome.stored_remotely
        assert outcome.remote_entry.storage_url == STORAGE_URL
        uploader.upload.assert_called_once_with(raster_512, "a_red_circle.png")
        assert store.list() == []
        assert [entry.id for entry in sqlite_backend.list()] == [outcome.remote_entry.id]

    def test_upload_too_large_falls_back(self, gallery_dir, raster_512, uploader, sqlite_backend):
        """An oversized upload is saved locally and the error is reported."""
        uploader.upload.side_effect = UploadTooLargeError()
        service = GalleryService(LocalGalleryStore(gallery_dir), sqlite_backend, uploader)

        outcome = service.add_image(raster_512, "a red circle")

        assert not outcome.stored_remotely
        assert outcome.local_entry is not None
        assert isinstance(outcome.error, UploadTooLargeError)
        assert outcome.error.user_message == "File size exceeds the 10MB limit."
        assert sqlite_backend.list() == []

    def test_network_failure_falls_back(self, gallery_dir, raster_512, uploader, sqlite_backend):
        """Upload outages also fall back to local storage."""
        uploader.upload.side_effect = NetworkFailureError("down")
        service = GalleryService(LocalGalleryStore(gallery_dir), sqlite_backend, uploader)

        outcome = service.add_image(raster_512)

        assert outcome.local_entry is not None
        assert isinstance(outcome.error, NetworkFailureError)

    def test_database_failure_falls_back(self, gallery_dir, raster_512, uploader):
        """A backend that does not persist the entry leads to a local save."""
        backend = Mock()
        backend.is_configured.return_value = True
        backend.save.return_value = None
        service = GalleryService(LocalGalleryStore(gallery_dir), backend, uploader)

        outcome = service.add_image(raster_512, "x")

        assert outcome.local_entry is not None
        assert outcome.error is None

    def test_upload_needs_uploader(self, gallery_dir, raster_512, sqlite_backend):
        """A database alone is not enough for remote saves."""
        service = GalleryService(LocalGalleryStore(gallery_dir), sqlite_backend, None)
        assert not service.is_configured()
        assert service.add_image(raster_512).local_entry is not None

    def test_full_local_gallery(self, gallery_dir, raster_512):
        """The local fallback refuses additions when full."""
        service = GalleryService(LocalGalleryStore(gallery_dir, max_entries=1), NullGalleryBackend())
        service.add_image(raster_512)
        with pytest.raises(GalleryFullError):
            service.add_image(raster_512)


class TestListImages:
    """Tests for GalleryService.list_images."""

    def test_merges_newest_first(self, gallery_dir, raster_512, uploader, sqlite_backend):
        """Remote and local entries are merged by creation time."""
        store = LocalGalleryStore(gallery_dir)
        old_time = datetime.now(timezone.utc) - timedelta(days=1)
        store.add(GalleryEntry(id="local-old", prompt="old", created_at=old_time, inline_data="data:image/png;base64,AA"))
        service = GalleryService(store, sqlite_backend, uploader)

        remote = service.add_image(raster_512, "new").remote_entry
        entries = service.list_images()

        assert [entry.id for entry in entries] == [remote.id, "local-old"]

    def test_remote_failure_returns_local(self, gallery_dir, raster_512):
        """If the database cannot be read, local entries are still listed."""
        backend = Mock()
        backend.is_configured.return_value = True
        backend.list.side_effect = PersistenceUnavailableError("down")
        store = LocalGalleryStore(gallery_dir)
        service = GalleryService(store, backend)
        local = service.add_image(raster_512).local_entry

        assert [entry.id for entry in service.list_images()] == [local.id]

    def test_close_releases_resources(self, gallery_dir, uploader):
        """close() closes the backend and the uploader."""
        backend = Mock()
        GalleryService(LocalGalleryStore(gallery_dir), backend, uploader).close()
        backend.close.assert_called_once_with()
        uploader.close.assert_called_once_with()


class TestConnectionStatus:
    """Tests for GalleryService.connection_status."""

    def test_without_database(self, gallery_dir):
        """No database is a successful check with an explanatory message."""
        ok, message = GalleryService(LocalGalleryStore(gallery_dir)).connection_status()
        assert ok
        assert message == 'DB_TYPE is "none" or not set. No database connection to test.'

    def test_sqlite_with_uploader(self, gallery_dir, uploader, sqlite_backend):
        """A reachable database with an upload endpoint reports success as is."""
        ok, message = GalleryService(LocalGalleryStore(gallery_dir), sqlite_backend, uploader).connection_status()
        assert ok
        assert "upload endpoint" not in message

    def test_sqlite_without_uploader(self, gallery_dir, sqlite_backend):
        """A database without an upload endpoint notes that images stay local."""
        ok, message = GalleryService(LocalGalleryStore(gallery_dir), sqlite_backend).connection_status()
        assert ok
        assert message.endswith("images are kept locally.")

    def test_failure_is_passed_through(self, gallery_dir, uploader):
        """A failed backend check is reported unchanged."""
        backend = Mock(spec=SqliteGalleryBackend)
        backend.is_configured.return_value = True
        backend.test_connection.return_value = (False, "Failed to open SQLite database")

        status = GalleryService(LocalGalleryStore(gallery_dir), backend, uploader).connection_status()

        assert status == (False, "Failed to open SQLite database")
