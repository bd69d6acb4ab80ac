"""
Client for the remote image-generation webhook.

The webhook accepts ``{"prompt": "..."}`` as JSON and answers with the image
bytes. A response is accepted when it is declared as ``image/*``, or when the
body decodes as an image despite a missing/odd content type; anything else is
treated as a failure.
"""

import logging

from PC_Libs.ImageEditingLib.image_models import SourceImage
from PC_Libs.ImageEditingLib.render_engine import decode_raster
from PC_Libs.ServicesLib.http_base import ERROR_BODY_PREVIEW_CHARS, HttpServiceClient
from PC_Libs.errors import DecodeFailureError, NetworkFailureError

logger = logging.getLogger(__name__)


class GenerationClient(HttpServiceClient):
    service_name = "image generation service"

    def __init__(self, endpoint: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.endpoint = endpoint

    def generate(self, prompt: str) -> SourceImage:
        """
        Generate an image for ``prompt``.

        Raises:
            NetworkFailureError: On transport errors, non-2xx status or a non-image body
        """
        logger.info(f"Requesting image generation ({len(prompt)} chars)")
        response = self._post(self.endpoint, json={"prompt": prompt})
        self._raise_for_status(response)

        content_type = response.headers.get("content-type", "")
        try:
            image = decode_raster(response.content)
        except DecodeFailureError as exc:
            preview = response.text[:ERROR_BODY_PREVIEW_CHARS] if not content_type.startswith("image/") else ""
            raise NetworkFailureError(
                f"Image generation service returned non-image data ({content_type or 'no content type'}): {preview}",
                "The image generation service did not return an image.",
                status_code=response.status_code,
            ) from exc

        if not content_type.startswith("image/"):
            logger.warning(f"Received content type '{content_type}', but the body decoded as {image.format}")

        logger.info(f"Generated {image.width}x{image.height} {image.format} image")
        return image
