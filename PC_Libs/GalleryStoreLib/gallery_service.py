"""
Gallery service: remote persistence with a local fallback.

Adding an image tries the remote path first (upload the PNG, then save an
entry pointing at the storage URL). Whenever that path is unavailable or
fails, the image is kept in the local store as inline data instead. A failed
remote save is never fatal; the error that caused the fallback is returned
so it can be shown to the user.
"""

from typing import Dict, List, Optional, Tuple
import logging

from PC_Libs.GalleryStoreLib.backends import GalleryBackend, NullGalleryBackend
from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry, SaveOutcome
from PC_Libs.GalleryStoreLib.local_store import LocalGalleryStore
from PC_Libs.ImageEditingLib.edit_session import suggest_filename
from PC_Libs.ImageEditingLib.image_models import SourceImage
from PC_Libs.ImageEditingLib.render_engine import to_data_uri
from PC_Libs.ServicesLib.upload_client import UploadClient
from PC_Libs.errors import PersistenceUnavailableError, PromptCanvasError, ServiceError

logger = logging.getLogger(__name__)


class GalleryService:
    def __init__(
        self,
        local_store: LocalGalleryStore,
        backend: Optional[GalleryBackend] = None,
        uploader: Optional[UploadClient] = None,
    ) -> None:
        self.local_store = local_store
        self.backend = backend if backend is not None else NullGalleryBackend()
        self.uploader = uploader

    def is_configured(self) -> bool:
        """True when images can be persisted remotely (database and upload endpoint)."""
        return self.backend.is_configured() and self.uploader is not None

    def connection_status(self) -> Tuple[bool, str]:
        """Check the database connection; the message is suitable for the status bar."""
        ok, message = self.backend.test_connection()
        if ok and self.backend.is_configured() and self.uploader is None:
            message = f"{message} No upload endpoint is set, so images are kept locally."
        return ok, message

    def add_image(self, raster: SourceImage, prompt: str = "") -> SaveOutcome:
        """
        Add an image to the gallery.

        Args:
            raster: PNG raster to store
            prompt: Prompt the image was generated from

        Returns:
            SaveOutcome; ``error`` is set when a remote failure forced the local fallback

        Raises:
            GalleryFullError: If the local fallback store is full
        """
        remote_entry: Optional[GalleryEntry] = None
        error: Optional[PromptCanvasError] = None

        if self.is_configured():
            try:
                storage_url = self.uploader.upload(raster, suggest_filename(prompt))
                remote_entry = self.backend.save(GalleryEntry.new(prompt, storage_url=storage_url))
                if remote_entry is None:
                    logger.warning("Database did not persist the image; falling back to local storage")
            except ServiceError as exc:
                logger.warning(f"Upload failed ({exc}); falling back to local storage")
                error = exc
        else:
            logger.debug("No remote gallery configured; using local storage")

        if remote_entry is not None:
            return SaveOutcome(remote_entry=remote_entry)

        local_entry = self.local_store.add(GalleryEntry.new(prompt, inline_data=to_data_uri(raster)))
        return SaveOutcome(local_entry=local_entry, error=error)

    def list_images(self) -> List[GalleryEntry]:
        """
        All gallery entries, newest first.

        Remote entries are merged with local ones; if the database cannot be
        read, only local entries are returned.
        """
        remote: List[GalleryEntry] = []
        if self.backend.is_configured():
            try:
                remote = self.backend.list()
            except PersistenceUnavailableError as exc:
                logger.warning(f"Could not load remote gallery: {exc}")

        merged: Dict[str, GalleryEntry] = {entry.id: entry for entry in remote}
        for entry in self.local_store.list():
            merged.setdefault(entry.id, entry)
        return sorted(merged.values(), key=lambda entry: entry.created_at, reverse=True)

    def close(self) -> None:
        self.backend.close()
        if self.uploader is not None:
            self.uploader.close()
