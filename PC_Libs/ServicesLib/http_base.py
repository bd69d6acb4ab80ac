"""
Shared plumbing for the HTTP service clients.

Each client may be handed an existing ``httpx.Client`` (tests pass one built
on ``httpx.MockTransport``); otherwise it creates and owns its own.
"""

from typing import Any, Optional
import logging

import httpx

from PC_Libs.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from PC_Libs.errors import NetworkFailureError

logger = logging.getLogger(__name__)

ERROR_BODY_PREVIEW_CHARS = 200


class HttpServiceClient:
    """Base class owning an httpx.Client and translating transport errors."""

    service_name = "service"

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS, client: Optional[httpx.Client] = None) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.post(url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"{self.service_name} request to {url} failed: {exc}")
            raise NetworkFailureError(
                f"{self.service_name} unreachable: {exc}",
                f"Could not reach the {self.service_name}.",
            ) from exc
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        details = f"Status: {response.status_code}"
        body = response.text[:ERROR_BODY_PREVIEW_CHARS]
        if body:
            details += f", Body: {body}"
        logger.error(f"{self.service_name} returned an error. {details}")
        raise NetworkFailureError(
            f"{self.service_name} failed: {details}",
            f"The {self.service_name} failed ({response.status_code}).",
            status_code=response.status_code,
        )
