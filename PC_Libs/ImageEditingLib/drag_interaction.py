"""
Pointer-drag handling for the crop and resize overlays.

A drag session starts when the pointer goes down on a handle and ends when it
is released. Every move is applied to the snapshot taken at pointer-down,
never to the live value, so rounding cannot drift over a long drag.

Handle rules:
    move               translate the crop rectangle, kept inside the display
    crop-<corner>      move the two adjacent edges, opposite corner pinned,
                       each side floored at MIN_CROP_SIZE
    resize-corner      change the display width, derive height from the
                       aspect ratio, clamp to the container, floor at
                       MIN_RESIZE_SIZE

Classes:
    DragHandle: The draggable handles
    DragSession: Snapshot captured at pointer-down
    DragStateMachine: idle/dragging state machine

Functions:
    move_rect: Apply a move drag
    drag_crop_corner: Apply a corner drag to a crop rectangle
    drag_resize_corner: Apply a resize-corner drag to display dimensions
    hit_test_crop_handle: Find the crop handle under a pointer position
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import logging

from PC_Libs.ImageEditingLib.image_models import Rect, Size
from PC_Libs.constants import (
    HANDLE_CROP_BOTTOM_LEFT,
    HANDLE_CROP_BOTTOM_RIGHT,
    HANDLE_CROP_TOP_LEFT,
    HANDLE_CROP_TOP_RIGHT,
    HANDLE_HIT_RADIUS,
    HANDLE_MOVE,
    HANDLE_RESIZE_CORNER,
    MIN_CROP_SIZE,
    MIN_RESIZE_SIZE,
)
from PC_Libs.errors import DragStateError

logger = logging.getLogger(__name__)

DragTarget = Union[Rect, Size]

STATE_IDLE = "idle"
STATE_DRAGGING = "dragging"


class DragHandle(str, Enum):
    MOVE = HANDLE_MOVE
    RESIZE_CORNER = HANDLE_RESIZE_CORNER
    CROP_TOP_LEFT = HANDLE_CROP_TOP_LEFT
    CROP_TOP_RIGHT = HANDLE_CROP_TOP_RIGHT
    CROP_BOTTOM_LEFT = HANDLE_CROP_BOTTOM_LEFT
    CROP_BOTTOM_RIGHT = HANDLE_CROP_BOTTOM_RIGHT

    @property
    def is_crop_handle(self) -> bool:
        return self is not DragHandle.RESIZE_CORNER


CROP_CORNER_HANDLES = (
    DragHandle.CROP_TOP_LEFT,
    DragHandle.CROP_TOP_RIGHT,
    DragHandle.CROP_BOTTOM_LEFT,
    DragHandle.CROP_BOTTOM_RIGHT,
)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def move_rect(snapshot: Rect, dx: int, dy: int, display: Size) -> Rect:
    """Translate snapshot by (dx, dy), keeping it fully inside the display."""
    x = _clamp(snapshot.x + dx, 0, max(0, display.width - snapshot.width))
    y = _clamp(snapshot.y + dy, 0, max(0, display.height - snapshot.height))
    return Rect(x, y, snapshot.width, snapshot.height)


def drag_crop_corner(
    handle: DragHandle,
    snapshot: Rect,
    dx: int,
    dy: int,
    display: Size,
    min_size: int = MIN_CROP_SIZE,
) -> Rect:
    """
    Move the corner ``handle`` of snapshot by (dx, dy).

    The diagonally opposite corner never moves. When a side reaches min_size
    (or the display edge) the moving edge simply stops there.

    Raises:
        ValueError: If handle is not a crop corner handle
    """
    if handle not in CROP_CORNER_HANDLES:
        raise ValueError(f"Not a crop corner handle: {handle}")

    min_w = min(min_size, display.width)
    min_h = min(min_size, display.height)
    left, top, right, bottom = snapshot.as_box()

    if handle in (DragHandle.CROP_TOP_LEFT, DragHandle.CROP_BOTTOM_LEFT):
        left = _clamp(snapshot.x + dx, 0, right - min_w)
    else:
        right = _clamp(snapshot.right + dx, left + min_w, display.width)

    if handle in (DragHandle.CROP_TOP_LEFT, DragHandle.CROP_TOP_RIGHT):
        top = _clamp(snapshot.y + dy, 0, bottom - min_h)
    else:
        bottom = _clamp(snapshot.bottom + dy, top + min_h, display.height)

    return Rect(left, top, right - left, bottom - top)


def drag_resize_corner(
    snapshot: Size,
    dx: int,
    aspect_ratio: float,
    container: Size,
    min_size: int = MIN_RESIZE_SIZE,
) -> Size:
    """
    Resize display dimensions by dragging the bottom-right corner.

    Args:
        snapshot: Display size at drag start
        dx: Horizontal pointer travel since drag start
        aspect_ratio: Width / height of the original image
        container: Bounds the result must fit in
        min_size: Floor applied to each side

    Returns:
        New display Size
    """
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be positive, got {aspect_ratio}")

    width = float(snapshot.width + dx)
    height = width / aspect_ratio

    if width > container.width:
        width = float(container.width)
        height = width / aspect_ratio
    if height > container.height:
        height = float(container.height)
        width = height * aspect_ratio

    return Size(max(min_size, round(width)), max(min_size, round(height)))


def hit_test_crop_handle(rect: Rect, px: float, py: float, radius: float = HANDLE_HIT_RADIUS) -> Optional[DragHandle]:
    """
    Return the crop handle under (px, py), or None.

    Corners take priority over the move handle (the rectangle interior).
    """
    corners = {
        DragHandle.CROP_TOP_LEFT: (rect.x, rect.y),
        DragHandle.CROP_TOP_RIGHT: (rect.right, rect.y),
        DragHandle.CROP_BOTTOM_LEFT: (rect.x, rect.bottom),
        DragHandle.CROP_BOTTOM_RIGHT: (rect.right, rect.bottom),
    }
    for handle, (cx, cy) in corners.items():
        if abs(px - cx) <= radius and abs(py - cy) <= radius:
            return handle

    if rect.contains(px, py):
        return DragHandle.MOVE
    return None


@dataclass(frozen=True)
class DragSession:
    """State captured at pointer-down.

    Attributes:
        handle: Handle being dragged
        start_x: Pointer x at drag start
        start_y: Pointer y at drag start
        snapshot: Crop Rect or display Size at drag start
        bounds: Display size (crop handles) or container size (resize corner)
        aspect_ratio: Width / height used by the resize corner
    """

    handle: DragHandle
    start_x: float
    start_y: float
    snapshot: DragTarget
    bounds: Size
    aspect_ratio: Optional[float] = None


class DragStateMachine:
    """
    Tracks a single pointer drag.

    Example:
        >>> machine = DragStateMachine()
        >>> machine.pointer_down(DragHandle.CROP_BOTTOM_RIGHT, 450, 450,
        ...                      Rect(150, 150, 300, 300), Size(600, 600))
        >>> machine.pointer_move(500, 480)
        Rect(x=150, y=150, width=350, height=330)
        >>> machine.pointer_up()
        Rect(x=150, y=150, width=350, height=330)
    """

    def __init__(self, min_crop_size: int = MIN_CROP_SIZE, min_resize_size: int = MIN_RESIZE_SIZE) -> None:
        self.min_crop_size = min_crop_size
        self.min_resize_size = min_resize_size
        self._session: Optional[DragSession] = None
        self._current: Optional[DragTarget] = None

    @property
    def state(self) -> str:
        return STATE_DRAGGING if self._session is not None else STATE_IDLE

    @property
    def is_dragging(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    @property
    def current(self) -> Optional[DragTarget]:
        """In-progress value of the active drag (None when idle)."""
        return self._current

    def pointer_down(
        self,
        handle: DragHandle,
        x: float,
        y: float,
        target: DragTarget,
        bounds: Size,
        aspect_ratio: Optional[float] = None,
    ) -> None:
        """
        Start a drag on ``handle``.

        Args:
            handle: Handle under the pointer
            x, y: Pointer position
            target: Crop Rect for crop handles, display Size for resize-corner
            bounds: Display size for crop handles, container size for resize-corner
            aspect_ratio: Required for resize-corner

        Raises:
            DragStateError: If a drag is already active
            ValueError: If target does not match the handle kind
        """
        if self._session is not None:
            raise DragStateError(f"Drag already active on {self._session.handle.value}")

        handle = DragHandle(handle)
        if handle.is_crop_handle and not isinstance(target, Rect):
            raise ValueError(f"{handle.value} drags a crop Rect, got {type(target).__name__}")
        if handle is DragHandle.RESIZE_CORNER:
            if not isinstance(target, Size):
                raise ValueError(f"{handle.value} drags a display Size, got {type(target).__name__}")
            if aspect_ratio is None or aspect_ratio <= 0:
                raise ValueError("resize-corner drags need a positive aspect_ratio")

        self._session = DragSession(handle, float(x), float(y), target, bounds, aspect_ratio)
        self._current = target
        logger.debug(f"Drag started on {handle.value} at ({x}, {y})")

    def pointer_move(self, x: float, y: float) -> DragTarget:
        """
        Apply the pointer position to the drag snapshot.

        Returns:
            The in-progress Rect or Size

        Raises:
            DragStateError: If no drag is active
        """
        session = self._require_session()
        dx = round(x - session.start_x)
        dy = round(y - session.start_y)

        if session.handle is DragHandle.MOVE:
            self._current = move_rect(session.snapshot, dx, dy, session.bounds)
        elif session.handle is DragHandle.RESIZE_CORNER:
            self._current = drag_resize_corner(
                session.snapshot, dx, session.aspect_ratio, session.bounds, self.min_resize_size
            )
        else:
            self._current = drag_crop_corner(
                session.handle, session.snapshot, dx, dy, session.bounds, self.min_crop_size
            )
        return self._current

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> DragTarget:
        """
        Finish the drag and return the committed value.

        If a release position is given it is applied as a final move.
        """
        session = self._require_session()
        if x is not None and y is not None:
            self.pointer_move(x, y)

        committed = self._current
        self._session = None
        self._current = None
        logger.debug(f"Drag on {session.handle.value} committed: {committed}")
        return committed

    def cancel(self) -> Optional[DragTarget]:
        """Abandon the active drag, returning the snapshot (None when idle)."""
        if self._session is None:
            return None
        snapshot = self._session.snapshot
        self._session = None
        self._current = None
        return snapshot

    def _require_session(self) -> DragSession:
        if self._session is None:
            raise DragStateError("No drag in progress")
        return self._session
