"""
Client for the prompt moderation service.

The service receives ``{"prompt": "..."}`` and answers
``{"modifiedPrompt": "...", "isModified": bool}``: the prompt rewritten to
conform to the content policy, or returned unchanged. Without a configured
endpoint prompts pass through untouched.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from PC_Libs.ServicesLib.http_base import HttpServiceClient
from PC_Libs.errors import NetworkFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModerationResult:
    final_prompt: str
    was_modified: bool


class ModerationClient(HttpServiceClient):
    service_name = "moderation service"

    def __init__(self, endpoint: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.endpoint = endpoint

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint)

    def moderate(self, prompt: str) -> ModerationResult:
        """
        Check ``prompt`` against the content policy.

        Raises:
            NetworkFailureError: On transport errors, non-2xx status or a malformed body
        """
        if not self.endpoint:
            return ModerationResult(final_prompt=prompt, was_modified=False)

        response = self._post(self.endpoint, json={"prompt": prompt})
        self._raise_for_status(response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkFailureError(
                f"Moderation response is not JSON: {exc}",
                "The moderation service returned an invalid response.",
            ) from exc

        if not isinstance(payload, dict) or "isModified" not in payload:
            raise NetworkFailureError(
                f"Moderation response missing fields: {payload!r}",
                "The moderation service returned an invalid response.",
            )

        was_modified = bool(payload.get("isModified"))
        modified_prompt = str(payload.get("modifiedPrompt") or "").strip()
        if was_modified and modified_prompt:
            logger.info("Prompt was modified by moderation")
            return ModerationResult(final_prompt=modified_prompt, was_modified=True)
        return ModerationResult(final_prompt=prompt, was_modified=False)
