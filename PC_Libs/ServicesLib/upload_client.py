"""
Client for the image upload endpoint.

Images are sent as a multipart form with a single ``image`` field and the
endpoint answers ``{"storageUrl": "..."}``. Relative URLs are resolved
against the endpoint. Files above 10MB are refused before sending; a 413, or
a size-limit message in an error body, is reported as UploadTooLargeError.
"""

import logging

import httpx

from PC_Libs.ImageEditingLib.image_models import SourceImage
from PC_Libs.ImageEditingLib.render_engine import media_type
from PC_Libs.ServicesLib.http_base import HttpServiceClient
from PC_Libs.constants import MAX_UPLOAD_BYTES, UPLOAD_FIELD_NAME
from PC_Libs.errors import NetworkFailureError, UploadTooLargeError

logger = logging.getLogger(__name__)

SIZE_LIMIT_MARKER = "file size exceeds"


class UploadClient(HttpServiceClient):
    service_name = "upload service"

    def __init__(self, endpoint: str, max_bytes: int = MAX_UPLOAD_BYTES, **kwargs) -> None:
        super().__init__(**kwargs)
        self.endpoint = endpoint
        self.max_bytes = max_bytes

    def upload(self, raster: SourceImage, filename: str) -> str:
        """
        Upload a raster and return its storage URL.

        Raises:
            UploadTooLargeError: If the raster exceeds the size ceiling
            NetworkFailureError: On transport errors, non-2xx status or a malformed body
        """
        size = len(raster.data)
        if size > self.max_bytes:
            raise UploadTooLargeError(f"Upload of {size} bytes exceeds the {self.max_bytes} byte limit")

        files = {UPLOAD_FIELD_NAME: (filename, raster.data, media_type(raster))}
        response = self._post(self.endpoint, files=files)

        if response.status_code == 413 or (
            not response.is_success and SIZE_LIMIT_MARKER in response.text.lower()
        ):
            raise UploadTooLargeError(f"Upload rejected by server: {response.status_code}")
        self._raise_for_status(response)

        try:
            storage_url = response.json().get("storageUrl")
        except (ValueError, AttributeError) as exc:
            raise NetworkFailureError(
                f"Upload response is not a JSON object: {exc}",
                "The upload service returned an invalid response.",
            ) from exc

        if not storage_url:
            raise NetworkFailureError(
                "Upload response has no storageUrl",
                "The upload service returned an invalid response.",
            )

        resolved = str(httpx.URL(self.endpoint).join(str(storage_url)))
        logger.info(f"Uploaded {filename} ({size} bytes) to {resolved}")
        return resolved
