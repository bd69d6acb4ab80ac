"""
Edit session controller for Prompt Canvas.

An EditSession owns one image at a time: the ``original`` as it was
generated or opened, and the ``current`` raster after any applied edits. It
switches between viewing, cropping and resizing, routes pointer events to the
drag state machine, and applies edits through the render engine.

Threading:
    UI events arrive on one thread. Rasterization may run on a worker; only
    one may be in flight per session and a second request raises
    RenderBusyError. Results of a render (or of a network generation) that
    was overtaken by a reset or a newer image are dropped.

Classes:
    EditMode: viewing / cropping / resizing
    EditSession: The controller

Functions:
    suggest_filename: Download filename derived from a prompt
"""

from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Optional, Union
import logging
import re
import threading

from PC_Libs.ImageEditingLib import render_engine
from PC_Libs.ImageEditingLib.coordinate_mapper import (
    clamp_rect,
    default_crop_region,
    fit_to_container,
    to_natural_rect,
    to_natural_size,
)
from PC_Libs.ImageEditingLib.drag_interaction import (
    DragHandle,
    DragStateMachine,
    drag_resize_corner,
    hit_test_crop_handle,
)
from PC_Libs.ImageEditingLib.image_models import Rect, Size, SourceImage
from PC_Libs.constants import (
    DEFAULT_CONTAINER_HEIGHT,
    DEFAULT_CONTAINER_WIDTH,
    DEFAULT_FILENAME_STEM,
    DEFAULT_OUTPUT_FORMAT,
    FILENAME_PROMPT_CHARS,
    HANDLE_HIT_RADIUS,
    MIN_CROP_SIZE,
    MIN_RESIZE_SIZE,
    MODE_CROPPING,
    MODE_RESIZING,
    MODE_VIEWING,
)
from PC_Libs.errors import EditStateError, InvalidDimensionsError, RenderBusyError

logger = logging.getLogger(__name__)


class EditMode(str, Enum):
    VIEWING = MODE_VIEWING
    CROPPING = MODE_CROPPING
    RESIZING = MODE_RESIZING


def suggest_filename(prompt: str) -> str:
    """
    Build a PNG filename from the first characters of a prompt.

    Whitespace becomes underscores and other unsafe characters are replaced;
    an empty result falls back to "ai-image.png".
    """
    stem = re.sub(r"\s+", "_", (prompt or "")[:FILENAME_PROMPT_CHARS])
    stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in stem).strip("_")
    return f"{stem or DEFAULT_FILENAME_STEM}.png"


class EditSession:
    """
    Controller for one editing session.

    Example:
        >>> session = EditSession(container=Size(800, 600))
        >>> session.load_image(png_bytes)
        True
        >>> session.start_cropping()
        Rect(x=150, y=150, width=300, height=300)
        >>> session.apply_crop().size
        Size(width=256, height=256)
    """

    def __init__(self, container: Size = Size(DEFAULT_CONTAINER_WIDTH, DEFAULT_CONTAINER_HEIGHT)) -> None:
        if not container.is_positive:
            raise InvalidDimensionsError(f"Container size must be positive, got {container}")

        self._container = container
        self._original: Optional[SourceImage] = None
        self._current: Optional[SourceImage] = None
        self._display: Optional[Size] = None
        self._mode = EditMode.VIEWING
        self._crop_region: Optional[Rect] = None
        self._resize_display: Optional[Size] = None
        self._resize_aspect: Optional[float] = None
        self._drag = DragStateMachine(MIN_CROP_SIZE, MIN_RESIZE_SIZE)
        self._generation = 0
        self._preview: Optional[Any] = None

        self._lock = threading.RLock()
        self._render_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def original(self) -> Optional[SourceImage]:
        return self._original

    @property
    def current(self) -> Optional[SourceImage]:
        return self._current

    @property
    def has_image(self) -> bool:
        return self._current is not None

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def container(self) -> Size:
        return self._container

    @property
    def display(self) -> Optional[Size]:
        """Fitted on-screen size of the current image."""
        return self._display

    @property
    def crop_region(self) -> Optional[Rect]:
        """Committed crop rectangle in display space."""
        return self._crop_region

    @property
    def resize_display(self) -> Optional[Size]:
        """Committed resize target in display space."""
        return self._resize_display

    @property
    def active_crop_region(self) -> Optional[Rect]:
        """Crop rectangle including an in-progress drag, for drawing."""
        live = self._drag.current
        return live if isinstance(live, Rect) else self._crop_region

    @property
    def active_resize_display(self) -> Optional[Size]:
        """Resize target including an in-progress drag, for drawing."""
        live = self._drag.current
        return live if isinstance(live, Size) else self._resize_display

    @property
    def is_dragging(self) -> bool:
        return self._drag.is_dragging

    @property
    def is_rendering(self) -> bool:
        return self._render_lock.locked()

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Image lifecycle
    # ------------------------------------------------------------------

    def begin_generation(self) -> int:
        """
        Start a new generation request and return its token.

        Any result still in flight for an older token will be discarded by
        load_image().
        """
        with self._lock:
            self._generation += 1
            logger.debug(f"Generation token advanced to {self._generation}")
            return self._generation

    def is_current_generation(self, token: int) -> bool:
        return token == self._generation

    def load_image(self, raster: Union[SourceImage, bytes], token: Optional[int] = None) -> bool:
        """
        Make ``raster`` the new original and current image.

        Args:
            raster: Encoded bytes or an already decoded SourceImage
            token: Generation token from begin_generation(); stale tokens are ignored

        Returns:
            True if the image was loaded, False if the result was stale

        Raises:
            DecodeFailureError: If raw bytes cannot be decoded (state unchanged)
        """
        if token is not None and token != self._generation:
            logger.info(f"Discarding stale image for generation {token} (current {self._generation})")
            return False

        source = raster if isinstance(raster, SourceImage) else render_engine.decode_raster(raster)
        display = fit_to_container(source.width, source.height, self._container.width, self._container.height)

        with self._lock:
            if token is not None and token != self._generation:
                logger.info(f"Discarding stale image for generation {token} (current {self._generation})")
                return False

            self._original = source
            self._current = source
            self._display = display
            self._clear_edit_state()
            self._release_preview()

        logger.info(f"Loaded {source.width}x{source.height} image, display {display.width}x{display.height}")
        return True

    def set_container_size(self, width: int, height: int) -> Optional[Size]:
        """
        Update the container and refit the current image.

        Pending crop rectangles and resize targets are scaled with the display,
        so they keep the same natural-pixel meaning.
        """
        container = Size(int(width), int(height))
        if not container.is_positive:
            raise InvalidDimensionsError(f"Container size must be positive, got {container}")

        with self._lock:
            self._drag.cancel()
            self._container = container
            if self._current is None:
                return None

            old_display = self._display
            self._display = fit_to_container(
                self._current.width, self._current.height, container.width, container.height
            )

            if self._crop_region is not None and old_display is not None:
                scaled = to_natural_rect(self._crop_region, old_display, self._display)
                self._crop_region = clamp_rect(scaled, self._display, MIN_CROP_SIZE)
            if self._resize_display is not None and self._resize_aspect is not None and old_display is not None:
                scaled = to_natural_size(self._resize_display, old_display, self._display)
                self._resize_display = drag_resize_corner(
                    scaled, 0, self._resize_aspect, container, MIN_RESIZE_SIZE
                )
            return self._display

    def close(self) -> None:
        """End the session: drop the image, release previews, invalidate in-flight results."""
        with self._lock:
            self._generation += 1
            self._release_preview()
            self._original = None
            self._current = None
            self._display = None
            self._clear_edit_state()

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def start_cropping(self) -> Rect:
        """Enter crop mode with a centered region at half the display size."""
        with self._lock:
            self._require_image()
            self._clear_edit_state()
            self._crop_region = default_crop_region(self._display)
            self._mode = EditMode.CROPPING
            logger.debug(f"Cropping started with region {self._crop_region}")
            return self._crop_region

    def start_resizing(self) -> Size:
        """Enter resize mode tracking the current display size."""
        with self._lock:
            current = self._require_image()
            self._clear_edit_state()
            self._resize_display = self._display
            self._resize_aspect = current.width / current.height
            self._mode = EditMode.RESIZING
            logger.debug(f"Resizing started at {self._resize_display}")
            return self._resize_display

    def set_crop_region(self, rect: Rect) -> Rect:
        """Replace the crop region (e.g. from numeric entry), clamped to the display."""
        with self._lock:
            self._require_mode(EditMode.CROPPING)
            self._drag.cancel()
            self._crop_region = clamp_rect(rect, self._display, MIN_CROP_SIZE)
            return self._crop_region

    def cancel(self) -> None:
        """Discard the pending rectangle or dimensions and return to viewing."""
        with self._lock:
            self._clear_edit_state()

    # ------------------------------------------------------------------
    # Pointer routing
    # ------------------------------------------------------------------

    def handle_at(self, x: float, y: float) -> Optional[DragHandle]:
        """Return the handle under a display-space position for the active mode."""
        if self._mode is EditMode.CROPPING and self._crop_region is not None:
            return hit_test_crop_handle(self._crop_region, x, y)
        if self._mode is EditMode.RESIZING and self._resize_display is not None:
            corner_x, corner_y = self._resize_display.width, self._resize_display.height
            if abs(x - corner_x) <= HANDLE_HIT_RADIUS and abs(y - corner_y) <= HANDLE_HIT_RADIUS:
                return DragHandle.RESIZE_CORNER
        return None

    def pointer_down(self, x: float, y: float, handle: Optional[DragHandle] = None) -> Optional[DragHandle]:
        """
        Start a drag at (x, y).

        Args:
            x, y: Pointer position in display space
            handle: Handle to drag; hit-tested from the position when omitted

        Returns:
            The handle being dragged, or None if nothing is under the pointer
        """
        with self._lock:
            if handle is None:
                handle = self.handle_at(x, y)
                if handle is None:
                    return None
            handle = DragHandle(handle)

            if handle.is_crop_handle:
                self._require_mode(EditMode.CROPPING)
                self._drag.pointer_down(handle, x, y, self._crop_region, self._display)
            else:
                self._require_mode(EditMode.RESIZING)
                self._drag.pointer_down(
                    handle, x, y, self._resize_display, self._container, self._resize_aspect
                )
            return handle

    def pointer_move(self, x: float, y: float) -> Optional[Union[Rect, Size]]:
        """Feed a pointer position to the active drag; no-op when idle."""
        with self._lock:
            if not self._drag.is_dragging:
                return None
            return self._drag.pointer_move(x, y)

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[Union[Rect, Size]]:
        """Finish the active drag and commit its value; no-op when idle."""
        with self._lock:
            if not self._drag.is_dragging:
                return None
            committed = self._drag.pointer_up(x, y)
            if isinstance(committed, Rect):
                self._crop_region = committed
            else:
                self._resize_display = committed
            return committed

    # ------------------------------------------------------------------
    # Applying edits
    # ------------------------------------------------------------------

    def natural_crop_rect(self) -> Rect:
        """
        The committed crop region in natural pixels, clamped to the image.

        Raises:
            EditStateError: If not cropping or no region is committed
            InvalidDimensionsError: If the region maps to less than one natural pixel
        """
        with self._lock:
            current = self._require_mode(EditMode.CROPPING)
            if self._crop_region is None:
                raise EditStateError("No crop region selected", "Select a crop area first.")
            natural = to_natural_rect(self._crop_region, self._display, current.size)
            if natural.width <= 0 or natural.height <= 0:
                raise InvalidDimensionsError(f"Crop area is empty: {natural}")
            return clamp_rect(natural, current.size, 1)

    def apply_crop(self) -> Optional[SourceImage]:
        """
        Rasterize the committed crop region and make it the current image.

        Returns:
            The new current image, or None if the session changed while rendering

        Raises:
            EditStateError: If not cropping or no region is committed
            InvalidDimensionsError: If the natural rectangle is empty
            RenderBusyError: If another render is in flight
        """
        with self._lock:
            natural = self.natural_crop_rect()
            self._drag.cancel()
            source = self._current
            generation = self._generation

        result = self._render(render_engine.crop, source, natural)
        if self._commit(source, result, generation):
            logger.info(f"Crop applied: {natural.as_box()} -> {result.width}x{result.height}")
            return result
        return None

    def apply_resize(self, width: Optional[int] = None, height: Optional[int] = None) -> Optional[SourceImage]:
        """
        Resize the current image.

        With explicit width/height the image is resized to that natural size.
        Without arguments, the committed resize target from resize mode is
        scaled from display to natural pixels.

        Returns:
            The new current image, or None if the session changed while rendering

        Raises:
            InvalidDimensionsError: If the target is not positive (state unchanged)
            EditStateError: If no image is loaded, or no target is available
            RenderBusyError: If another render is in flight
        """
        with self._lock:
            current = self._require_image()
            if width is None and height is None:
                self._require_mode(EditMode.RESIZING)
                if self._resize_display is None:
                    raise EditStateError("No resize target", "Drag the resize handle first.")
                target = to_natural_size(self._resize_display, self._display, current.size)
            elif width is None or height is None:
                raise InvalidDimensionsError("Both width and height are required")
            else:
                target = Size(int(width), int(height))

            if not target.is_positive:
                raise InvalidDimensionsError(f"Resize target must be positive, got {target.width}x{target.height}")
            self._drag.cancel()
            source = current
            generation = self._generation

        result = self._render(render_engine.resize, source, target.width, target.height)
        if self._commit(source, result, generation):
            logger.info(f"Resize applied: {source.width}x{source.height} -> {result.width}x{result.height}")
            return result
        return None

    def reset_edits(self) -> SourceImage:
        """
        Restore the original image and leave any edit mode.

        Results still in flight (renders or generations) are invalidated.
        """
        with self._lock:
            if self._original is None:
                raise EditStateError("No image loaded", "There is no image to reset.")

            self._generation += 1
            self._current = self._original
            self._display = fit_to_container(
                self._original.width, self._original.height, self._container.width, self._container.height
            )
            self._clear_edit_state()
            self._release_preview()
            logger.info("Edits reset to the original image")
            return self._current

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def preview_image(self) -> Any:
        """
        Decoded Pillow image of the current raster.

        The handle is owned by the session and closed when the current image
        is replaced or the session ends; callers must not keep it.
        """
        with self._lock:
            current = self._require_image()
            if self._preview is None:
                self._preview = render_engine.open_image(current)
            return self._preview

    def preview_png(self) -> bytes:
        """
        PNG bytes of the current preview, encoded under the session lock.

        Safe to call from the UI thread while a render may commit on a worker.
        """
        with self._lock:
            buffer = BytesIO()
            self.preview_image().save(buffer, format=DEFAULT_OUTPUT_FORMAT)
            return buffer.getvalue()

    def current_png(self) -> SourceImage:
        """The current raster as PNG (re-encoded if it came in another format)."""
        current = self._require_image()
        if current.format.upper() == "PNG":
            return current
        with render_engine.open_image(current) as image:
            return render_engine.encode_png(image)

    def save_current(self, path: Path) -> Path:
        """
        Write the current image to disk as PNG.

        Raises:
            EditStateError: If no image is loaded
            OSError: If the file cannot be written
        """
        path = Path(path)
        if not path.parent.exists():
            raise OSError(f"Output directory does not exist: {path.parent}")

        path.write_bytes(self.current_png().data)
        logger.info(f"Saved current image to {path}")
        return path

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _render(self, operation: Callable[..., SourceImage], *args: Any) -> SourceImage:
        if not self._render_lock.acquire(blocking=False):
            raise RenderBusyError("A render is already in flight for this session")
        try:
            return operation(*args)
        finally:
            self._render_lock.release()

    def _commit(self, source: SourceImage, result: SourceImage, generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding render result: the session was reset while rendering")
                return False
            if self._current is not source:
                logger.info("Discarding render result: the image changed while rendering")
                return False

            self._current = result
            self._display = fit_to_container(
                result.width, result.height, self._container.width, self._container.height
            )
            self._clear_edit_state()
            self._release_preview()
            return True

    def _clear_edit_state(self) -> None:
        self._drag.cancel()
        self._crop_region = None
        self._resize_display = None
        self._resize_aspect = None
        self._mode = EditMode.VIEWING

    def _release_preview(self) -> None:
        if self._preview is not None:
            self._preview.close()
            self._preview = None

    def _require_image(self) -> SourceImage:
        if self._current is None:
            raise EditStateError("No image loaded", "Generate or open an image first.")
        return self._current

    def _require_mode(self, mode: EditMode) -> SourceImage:
        current = self._require_image()
        if self._mode is not mode:
            raise EditStateError(
                f"Operation requires {mode.value} mode, session is {self._mode.value}",
                f"Start {mode.value} first.",
            )
        return current
