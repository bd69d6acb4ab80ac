"""
Exception hierarchy for Prompt Canvas.

Every error raised by the library derives from PromptCanvasError and carries
a short ``user_message`` suitable for a status bar or message box. Errors are
recoverable: the operation that raised leaves the edit session untouched and
can simply be retried.

Classes:
    PromptCanvasError: Base class for all library errors
    RenderError: Rasterization failures (dimensions, decoding, busy)
    EditStateError: Operation not valid in the current editor mode
    DragStateError: Pointer event not valid in the current drag state
    ServiceError: Remote service failures (network, upload size)
    PersistenceUnavailableError: Gallery save/list failed or is unconfigured
    InvalidPromptError: Empty prompt submitted for generation
    GalleryFullError: Local gallery reached its size limit
"""

from typing import Optional


class PromptCanvasError(Exception):
    """Base class for Prompt Canvas errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str = "", user_message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.user_message = user_message or self.default_message


class RenderError(PromptCanvasError):
    default_message = "The image could not be processed."


class InvalidDimensionsError(RenderError, ValueError):
    default_message = "Width and height must be positive numbers."


class DecodeFailureError(RenderError):
    default_message = "The image data could not be read."


class RenderBusyError(RenderError):
    default_message = "Another edit is still being applied."


class EditStateError(PromptCanvasError):
    default_message = "That action is not available right now."


class DragStateError(PromptCanvasError):
    default_message = "Unexpected pointer event."


class ServiceError(PromptCanvasError):
    default_message = "The remote service failed."


class NetworkFailureError(ServiceError):
    default_message = "The service could not be reached."

    def __init__(
        self,
        message: str = "",
        user_message: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, user_message)
        self.status_code = status_code


class UploadTooLargeError(ServiceError):
    default_message = "File size exceeds the 10MB limit."


class PersistenceUnavailableError(PromptCanvasError):
    default_message = "The gallery database is unavailable."


class InvalidPromptError(PromptCanvasError, ValueError):
    default_message = "Prompt cannot be empty."


class GalleryFullError(PromptCanvasError):
    default_message = "The local gallery is full."
