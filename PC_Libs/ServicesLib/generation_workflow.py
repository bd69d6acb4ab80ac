"""
Prompt-to-image workflow.

Runs moderation, then generation, then loads the result into an EditSession.
The generation token is taken when the request is submitted, so a request
that finishes after the user started another one (or reset the session) is
dropped quietly instead of replacing the newer image, and its errors are
not reported.

Classes:
    GenerationOutcome: What happened to one request
    GenerationWorkflow: Synchronous run() and background submit()
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional
import logging

from PC_Libs.ImageEditingLib.edit_session import EditSession
from PC_Libs.ImageEditingLib.image_models import SourceImage
from PC_Libs.ServicesLib.generation_client import GenerationClient
from PC_Libs.ServicesLib.moderation_client import ModerationClient, ModerationResult
from PC_Libs.errors import InvalidPromptError, PromptCanvasError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of one generation request.

    Attributes:
        token: Generation token the request ran under
        prompt: Prompt as typed by the user
        final_prompt: Prompt actually sent to the generator
        was_modified: Whether moderation rewrote the prompt
        image: The generated image (None if the request went stale before finishing)
        applied: True if the image was loaded into the session
    """

    token: int
    prompt: str
    final_prompt: str
    was_modified: bool
    image: Optional[SourceImage]
    applied: bool

    @property
    def is_stale(self) -> bool:
        return not self.applied


class GenerationWorkflow:
    def __init__(
        self,
        session: EditSession,
        generator: GenerationClient,
        moderator: Optional[ModerationClient] = None,
        max_workers: int = 2,
    ) -> None:
        self.session = session
        self.generator = generator
        self.moderator = moderator
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def run(self, prompt: str, token: Optional[int] = None) -> GenerationOutcome:
        """
        Moderate, generate and load an image on the calling thread.

        Args:
            prompt: User prompt
            token: Token from session.begin_generation(); a new one is taken if omitted

        Raises:
            InvalidPromptError: If the prompt is blank
            PromptCanvasError: Service or decode failures of a request that is still current
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidPromptError("Prompt is empty")

        if token is None:
            token = self.session.begin_generation()

        moderation = ModerationResult(final_prompt=prompt, was_modified=False)
        try:
            if self.moderator is not None:
                moderation = self.moderator.moderate(prompt)
            if not self.session.is_current_generation(token):
                return self._stale(token, prompt, moderation, None)

            image = self.generator.generate(moderation.final_prompt)
            applied = self.session.load_image(image, token=token)
        except PromptCanvasError:
            if not self.session.is_current_generation(token):
                logger.debug(f"Ignoring failure of superseded generation {token}")
                return self._stale(token, prompt, moderation, None)
            raise

        if not applied:
            return self._stale(token, prompt, moderation, image)

        return GenerationOutcome(
            token=token,
            prompt=prompt,
            final_prompt=moderation.final_prompt,
            was_modified=moderation.was_modified,
            image=image,
            applied=True,
        )

    def submit(self, prompt: str) -> "Future[GenerationOutcome]":
        """
        Run the workflow on a worker thread.

        The token is taken immediately, so submitting again supersedes this
        request even before its worker starts.

        Raises:
            InvalidPromptError: If the prompt is blank
        """
        if not (prompt or "").strip():
            raise InvalidPromptError("Prompt is empty")

        token = self.session.begin_generation()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="generation")
        return self._executor.submit(self.run, prompt, token)

    def shutdown(self, wait: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def _stale(
        self,
        token: int,
        prompt: str,
        moderation: ModerationResult,
        image: Optional[SourceImage],
    ) -> GenerationOutcome:
        logger.info(f"Generation {token} was superseded; result discarded")
        return GenerationOutcome(
            token=token,
            prompt=prompt,
            final_prompt=moderation.final_prompt,
            was_modified=moderation.was_modified,
            image=image,
            applied=False,
        )
