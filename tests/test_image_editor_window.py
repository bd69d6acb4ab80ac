"""
Unit tests for image_editor_window module.

The window is built on Qt's offscreen platform with mocked services; only the
hand-off between the worker thread and the UI thread is exercised here.
"""

import os
import threading
from unittest.mock import Mock

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5.QtWidgets import QApplication

from PC_Libs.GalleryStoreLib.gallery_models import GalleryEntry
from PC_Libs.GalleryStoreLib.gallery_service import GalleryService
from PC_Libs.ImageEditingLib.image_editor_window import PromptCanvasWindow
from PC_Libs.ServicesLib.generation_workflow import GenerationWorkflow


@pytest.fixture(scope="module")
def qt_app():
    return QApplication.instance() or QApplication([])


@pytest.fixture
def gallery():
    mock = Mock(spec=GalleryService)
    mock.list_images.return_value = [
        GalleryEntry.new("a red circle", inline_data="data:image/png;base64,AAAA"),
    ]
    mock.connection_status.return_value = (True, "Successfully connected to SQLite.")
    return mock


@pytest.fixture
def window(qt_app, session, gallery):
    win = PromptCanvasWindow(session, Mock(spec=GenerationWorkflow), gallery)
    yield win
    win._worker.shutdown(wait=True)


def drain(window):
    """Wait for queued worker jobs, then deliver their signals."""
    window._worker.submit(lambda: None).result(timeout=5)
    QApplication.processEvents()


class TestBackgroundGalleryCalls:
    """Tests for gallery calls made off the UI thread."""

    def test_gallery_listed_on_worker(self, window, gallery):
        """Listing runs on the worker and fills the list once its signal arrives."""
        threads = []

        def list_images():
            threads.append(threading.current_thread())
            return [GalleryEntry.new("a blue square", inline_data="data:image/png;base64,AAAA")]

        gallery.list_images.side_effect = list_images

        window.refresh_gallery()
        drain(window)

        assert threads and threads[0] is not threading.main_thread()
        assert window.gallery_list.count() == 1
        assert window.gallery_list.item(0).text().startswith("a blue square  [local,")

    def test_connection_status_shown(self, window, gallery):
        """The startup connection check ends up in the status bar."""
        drain(window)
        gallery.connection_status.assert_called_once_with()
        assert window.statusBar().currentMessage() == "Successfully connected to SQLite."
