from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Tuple
import logging

from PyQt5.QtCore import QPoint, QRect, Qt, pyqtSignal
from PyQt5.QtGui import QColor, QPainter, QPen, QPixmap
from PyQt5.QtWidgets import (
    QFileDialog,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from PC_Libs.GalleryStoreLib.gallery_models import SaveOutcome
from PC_Libs.GalleryStoreLib.gallery_service import GalleryService
from PC_Libs.ImageEditingLib.drag_interaction import DragHandle
from PC_Libs.ImageEditingLib.edit_session import EditMode, EditSession, suggest_filename
from PC_Libs.ImageEditingLib.image_models import Rect
from PC_Libs.ServicesLib.generation_workflow import GenerationOutcome, GenerationWorkflow
from PC_Libs.constants import (
    CROP_OVERLAY_COLOR,
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    HANDLE_DRAW_SIZE,
    RESIZE_OVERLAY_COLOR,
)
from PC_Libs.errors import PromptCanvasError

logger = logging.getLogger(__name__)

HANDLE_CURSORS = {
    DragHandle.MOVE: Qt.SizeAllCursor,
    DragHandle.CROP_TOP_LEFT: Qt.SizeFDiagCursor,
    DragHandle.CROP_BOTTOM_RIGHT: Qt.SizeFDiagCursor,
    DragHandle.CROP_TOP_RIGHT: Qt.SizeBDiagCursor,
    DragHandle.CROP_BOTTOM_LEFT: Qt.SizeBDiagCursor,
    DragHandle.RESIZE_CORNER: Qt.SizeFDiagCursor,
}


class EditCanvas(QWidget):
    """Shows the session's current image and the crop/resize overlay."""

    def __init__(self, session: EditSession, on_error: Callable[[PromptCanvasError], None], parent=None) -> None:
        super().__init__(parent)
        self.session = session
        self.on_error = on_error
        self._pixmap: Optional[QPixmap] = None
        self._pixmap_source = None
        self.setMinimumSize(450, 450)
        self.setMouseTracking(True)
        self.setStyleSheet("border: 1px solid #888;")

    def image_origin(self) -> Tuple[int, int]:
        display = self.session.display
        if display is None:
            return 0, 0
        return (self.width() - display.width) // 2, (self.height() - display.height) // 2

    def _to_display(self, pos: QPoint) -> Tuple[float, float]:
        ox, oy = self.image_origin()
        return float(pos.x() - ox), float(pos.y() - oy)

    def _current_pixmap(self) -> Optional[QPixmap]:
        current = self.session.current
        if current is None:
            self._pixmap = None
            self._pixmap_source = None
            return None

        if self._pixmap_source is not current:
            pixmap = QPixmap()
            if not pixmap.loadFromData(self.session.preview_png(), "PNG"):
                logger.error("Preview failed to load into a QPixmap")
                return None
            self._pixmap = pixmap
            self._pixmap_source = current
        return self._pixmap

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        if self.width() > 0 and self.height() > 0:
            self.session.set_container_size(self.width(), self.height())

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#1e1e1e"))

        pixmap = self._current_pixmap()
        if pixmap is None:
            painter.setPen(QColor("#aaaaaa"))
            painter.drawText(self.rect(), Qt.AlignCenter, "Your generated image will appear here")
            painter.end()
            return

        ox, oy = self.image_origin()
        display = self.session.display
        if self.session.mode is EditMode.RESIZING and self.session.active_resize_display is not None:
            target = self.session.active_resize_display
            painter.drawPixmap(QRect(ox, oy, target.width, target.height), pixmap)
            painter.setPen(QPen(QColor(RESIZE_OVERLAY_COLOR), 2, Qt.DashLine))
            painter.drawRect(ox, oy, target.width, target.height)
            self._draw_handle(painter, ox + target.width, oy + target.height, RESIZE_OVERLAY_COLOR)
        else:
            painter.drawPixmap(QRect(ox, oy, display.width, display.height), pixmap)

        region = self.session.active_crop_region
        if self.session.mode is EditMode.CROPPING and region is not None:
            self._draw_crop_overlay(painter, region, ox, oy)

        painter.end()

    def _draw_crop_overlay(self, painter: QPainter, region: Rect, ox: int, oy: int) -> None:
        display = self.session.display
        shade = QColor(0, 0, 0, 120)
        # Darken everything outside the crop rectangle
        painter.fillRect(ox, oy, display.width, region.y, shade)
        painter.fillRect(ox, oy + region.bottom, display.width, display.height - region.bottom, shade)
        painter.fillRect(ox, oy + region.y, region.x, region.height, shade)
        painter.fillRect(ox + region.right, oy + region.y, display.width - region.right, region.height, shade)

        painter.setPen(QPen(QColor(CROP_OVERLAY_COLOR), 2, Qt.DashLine))
        painter.drawRect(ox + region.x, oy + region.y, region.width, region.height)
        for cx, cy in ((region.x, region.y), (region.right, region.y), (region.x, region.bottom), (region.right, region.bottom)):
            self._draw_handle(painter, ox + cx, oy + cy, CROP_OVERLAY_COLOR)

    def _draw_handle(self, painter: QPainter, x: int, y: int, color: str) -> None:
        half = HANDLE_DRAW_SIZE // 2
        painter.fillRect(x - half, y - half, HANDLE_DRAW_SIZE, HANDLE_DRAW_SIZE, QColor(color))

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton and self.session.mode is not EditMode.VIEWING:
            x, y = self._to_display(event.pos())
            try:
                self.session.pointer_down(x, y)
            except PromptCanvasError as exc:
                self.on_error(exc)
            event.accept()
            self.update()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        x, y = self._to_display(event.pos())
        if self.session.is_dragging and event.buttons() & Qt.LeftButton:
            self.session.pointer_move(x, y)
            event.accept()
            self.update()
            return

        handle = self.session.handle_at(x, y)
        if handle is not None:
            self.setCursor(HANDLE_CURSORS[handle])
        else:
            self.unsetCursor()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        if event.button() == Qt.LeftButton and self.session.is_dragging:
            x, y = self._to_display(event.pos())
            self.session.pointer_up(x, y)
            event.accept()
            self.update()
            return
        super().mouseReleaseEvent(event)


class PromptCanvasWindow(QMainWindow):
    generation_done = pyqtSignal(object)
    render_done = pyqtSignal(object)
    gallery_done = pyqtSignal(object)
    gallery_listed = pyqtSignal(object)
    connection_checked = pyqtSignal(object)

    def __init__(
        self,
        session: EditSession,
        workflow: GenerationWorkflow,
        gallery: GalleryService,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Prompt Canvas")
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        self.session = session
        self.workflow = workflow
        self.gallery = gallery
        self.last_prompt = ""
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="editor")

        self._build_ui()
        self._connect_signals()
        self.refresh_controls()
        self.refresh_gallery()
        self.check_connection()

    def _build_ui(self) -> None:
        central = QWidget(self)
        self.setCentralWidget(central)

        root = QHBoxLayout(central)
        controls_col = QVBoxLayout()

        self.prompt_edit = QPlainTextEdit()
        self.prompt_edit.setPlaceholderText(
            "A serene landscape with cherry blossoms and a Fuji mountain backdrop, digital art"
        )
        self.btn_generate = QPushButton("Generate Image")
        self.label_modified_prompt = QLabel("")
        self.label_modified_prompt.setWordWrap(True)

        self.btn_crop = QPushButton("Crop")
        self.btn_resize = QPushButton("Resize")
        self.btn_apply = QPushButton("Apply")
        self.btn_cancel = QPushButton("Cancel")
        self.btn_reset = QPushButton("Reset Edits")

        self.spin_width = QSpinBox()
        self.spin_height = QSpinBox()
        for spin in (self.spin_width, self.spin_height):
            spin.setRange(0, 10000)
        self.btn_resize_to = QPushButton("Resize To")

        self.spin_crop = [QSpinBox() for _ in range(4)]
        for spin in self.spin_crop:
            spin.setRange(0, 10000)
        self.btn_set_crop = QPushButton("Set Crop Area")

        self.btn_save_disk = QPushButton("Save to Disk")
        self.btn_add_gallery = QPushButton("Add to Gallery")
        self.gallery_list = QListWidget()

        size_grid = QGridLayout()
        size_grid.addWidget(QLabel("Width"), 0, 0)
        size_grid.addWidget(self.spin_width, 0, 1)
        size_grid.addWidget(QLabel("Height"), 1, 0)
        size_grid.addWidget(self.spin_height, 1, 1)
        size_grid.addWidget(self.btn_resize_to, 2, 0, 1, 2)

        crop_grid = QGridLayout()
        for index, name in enumerate(("X", "Y", "W", "H")):
            crop_grid.addWidget(QLabel(name), index // 2, (index % 2) * 2)
            crop_grid.addWidget(self.spin_crop[index], index // 2, (index % 2) * 2 + 1)
        crop_grid.addWidget(self.btn_set_crop, 2, 0, 1, 4)

        controls_col.addWidget(QLabel("Enter your prompt"))
        controls_col.addWidget(self.prompt_edit)
        controls_col.addWidget(self.btn_generate)
        controls_col.addWidget(self.label_modified_prompt)
        controls_col.addWidget(QLabel("Edit"))
        controls_col.addWidget(self.btn_crop)
        controls_col.addWidget(self.btn_resize)
        controls_col.addWidget(self.btn_apply)
        controls_col.addWidget(self.btn_cancel)
        controls_col.addWidget(self.btn_reset)
        controls_col.addLayout(size_grid)
        controls_col.addLayout(crop_grid)
        controls_col.addWidget(self.btn_save_disk)
        controls_col.addWidget(self.btn_add_gallery)
        controls_col.addWidget(QLabel("Gallery"))
        controls_col.addWidget(self.gallery_list)

        self.canvas = EditCanvas(self.session, self._show_error)

        root.addLayout(controls_col, stretch=1)
        root.addWidget(self.canvas, stretch=3)
        self.statusBar().showMessage("Ready")

    def _connect_signals(self) -> None:
        self.btn_generate.clicked.connect(self.generate)
        self.btn_crop.clicked.connect(self.start_cropping)
        self.btn_resize.clicked.connect(self.start_resizing)
        self.btn_apply.clicked.connect(self.apply_edit)
        self.btn_cancel.clicked.connect(self.cancel_edit)
        self.btn_reset.clicked.connect(self.reset_edits)
        self.btn_resize_to.clicked.connect(self.resize_to)
        self.btn_set_crop.clicked.connect(self.set_crop_area)
        self.btn_save_disk.clicked.connect(self.save_to_disk)
        self.btn_add_gallery.clicked.connect(self.add_to_gallery)
        self.generation_done.connect(self._on_generation_done)
        self.render_done.connect(self._on_render_done)
        self.gallery_done.connect(self._on_gallery_done)
        self.gallery_listed.connect(self._on_gallery_listed)
        self.connection_checked.connect(self._on_connection_checked)

    # Generation

    def generate(self) -> None:
        prompt = self.prompt_edit.toPlainText()
        self.label_modified_prompt.setText("")
        try:
            future = self.workflow.submit(prompt)
        except PromptCanvasError as exc:
            self._show_error(exc)
            return

        self.last_prompt = prompt.strip()
        self.btn_generate.setEnabled(False)
        self.statusBar().showMessage("Generating...")
        future.add_done_callback(lambda f: self.generation_done.emit(f))

    def _on_generation_done(self, future: Future) -> None:
        self.btn_generate.setEnabled(True)
        try:
            outcome: GenerationOutcome = future.result()
        except PromptCanvasError as exc:
            self._show_error(exc)
            return

        if not outcome.applied:
            return

        if outcome.was_modified:
            message = f'Your prompt was modified for safety. New prompt: "{outcome.final_prompt}"'
            self.label_modified_prompt.setText(message)
            self._show_info("Prompt Modified", message)

        self.statusBar().showMessage("Image generated")
        self.refresh_controls()

    # Editing

    def start_cropping(self) -> None:
        try:
            self.session.start_cropping()
        except PromptCanvasError as exc:
            self._show_error(exc)
        self.refresh_controls()

    def start_resizing(self) -> None:
        try:
            self.session.start_resizing()
        except PromptCanvasError as exc:
            self._show_error(exc)
        self.refresh_controls()

    def apply_edit(self) -> None:
        if self.session.mode is EditMode.CROPPING:
            self._run_render(self.session.apply_crop, "Crop Applied")
        elif self.session.mode is EditMode.RESIZING:
            self._run_render(self.session.apply_resize, "Resize Applied")

    def resize_to(self) -> None:
        width, height = self.spin_width.value(), self.spin_height.value()
        self._run_render(lambda: self.session.apply_resize(width, height), f"Image resized to {width}x{height}px.")

    def set_crop_area(self) -> None:
        x, y, w, h = (spin.value() for spin in self.spin_crop)
        try:
            self.session.set_crop_region(Rect(x, y, w, h))
        except PromptCanvasError as exc:
            self._show_error(exc)
        self.refresh_controls()

    def cancel_edit(self) -> None:
        self.session.cancel()
        self.refresh_controls()

    def reset_edits(self) -> None:
        try:
            self.session.reset_edits()
        except PromptCanvasError as exc:
            self._show_error(exc)
            return
        self.btn_generate.setEnabled(True)
        self.statusBar().showMessage("Image restored to original generated version.")
        self.refresh_controls()

    def _run_render(self, operation: Callable[[], Any], success_message: str) -> None:
        future = self._worker.submit(operation)
        future.add_done_callback(lambda f: self.render_done.emit((f, success_message)))

    def _on_render_done(self, payload) -> None:
        future, success_message = payload
        try:
            result = future.result()
        except PromptCanvasError as exc:
            self._show_error(exc)
            return
        if result is not None:
            self.statusBar().showMessage(success_message)
        self.refresh_controls()

    # Output

    def save_to_disk(self) -> None:
        if not self.session.has_image:
            return

        save_path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Image",
            suggest_filename(self.last_prompt),
            "PNG Images (*.png)",
        )
        if not save_path:
            return

        try:
            self.session.save_current(Path(save_path))
        except (PromptCanvasError, OSError) as exc:
            self._show_error(exc)
            return
        self.statusBar().showMessage("Image downloaded successfully.")

    def add_to_gallery(self) -> None:
        try:
            raster = self.session.current_png()
        except PromptCanvasError as exc:
            self._show_error(exc)
            return

        prompt = self.last_prompt
        future = self._worker.submit(self.gallery.add_image, raster, prompt)
        future.add_done_callback(lambda f: self.gallery_done.emit(f))

    def _on_gallery_done(self, future: Future) -> None:
        try:
            outcome: SaveOutcome = future.result()
        except (PromptCanvasError, OSError) as exc:
            self._show_error(exc)
            return

        if outcome.error is not None:
            self._show_error(outcome.error)
        where = "database" if outcome.stored_remotely else "local gallery"
        self.statusBar().showMessage(f"Image saved to your {where}.")
        self.refresh_gallery()

    def refresh_gallery(self) -> None:
        future = self._worker.submit(self.gallery.list_images)
        future.add_done_callback(lambda f: self.gallery_listed.emit(f))

    def _on_gallery_listed(self, future: Future) -> None:
        try:
            entries = future.result()
        except (PromptCanvasError, OSError) as exc:
            self._show_error(exc)
            return

        self.gallery_list.clear()
        for entry in entries:
            origin = "local" if entry.is_local_only else "remote"
            label = entry.prompt[:40] or "(no prompt)"
            self.gallery_list.addItem(f"{label}  [{origin}, {entry.created_at:%Y-%m-%d %H:%M}]")

    def check_connection(self) -> None:
        future = self._worker.submit(self.gallery.connection_status)
        future.add_done_callback(lambda f: self.connection_checked.emit(f))

    def _on_connection_checked(self, future: Future) -> None:
        ok, message = future.result()
        if ok:
            logger.info(message)
        else:
            logger.warning(message)
        self.statusBar().showMessage(message)

    # State

    def refresh_controls(self) -> None:
        has_image = self.session.has_image
        editing = self.session.mode is not EditMode.VIEWING
        self.btn_crop.setEnabled(has_image)
        self.btn_resize.setEnabled(has_image)
        self.btn_apply.setEnabled(editing)
        self.btn_cancel.setEnabled(editing)
        self.btn_reset.setEnabled(has_image)
        self.btn_resize_to.setEnabled(has_image)
        self.btn_set_crop.setEnabled(self.session.mode is EditMode.CROPPING)
        self.btn_save_disk.setEnabled(has_image)
        self.btn_add_gallery.setEnabled(has_image)

        current = self.session.current
        if current is not None and not editing:
            self.spin_width.setValue(current.width)
            self.spin_height.setValue(current.height)
        region = self.session.crop_region
        if region is not None:
            for spin, value in zip(self.spin_crop, (region.x, region.y, region.width, region.height)):
                spin.setValue(value)
        self.canvas.update()

    def _show_error(self, exc: Exception) -> None:
        message = getattr(exc, "user_message", None) or str(exc)
        logger.warning(f"{type(exc).__name__}: {exc}")
        self.statusBar().showMessage(message)
        QMessageBox.warning(self, "Error", message)

    def _show_info(self, title: str, message: str) -> None:
        QMessageBox.information(self, title, message)

    def closeEvent(self, event) -> None:
        self.workflow.shutdown()
        self._worker.shutdown(wait=True)
        self.session.close()
        self.gallery.close()
        super().closeEvent(event)
