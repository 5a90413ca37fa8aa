"""Client-side generation state: idle, pending, settled.

One orchestrator runs at most one generation at a time. A submission made
while another is pending is rejected, never queued, and leaves the running
one untouched.
"""

import logging
from typing import Callable, List, Optional

from photoprompt.client import ImageGenerationService
from photoprompt.errors import GenerationInProgressError, ValidationError
from photoprompt.models import GenerationRequest, GenerationResult, GenerationState

logger = logging.getLogger(__name__)

FALLBACK_ERROR_MESSAGE = "Image generation failed."

StateListener = Callable[["GenerationOrchestrator"], None]


class GenerationOrchestrator:
    def __init__(self, service: ImageGenerationService):
        self.service = service
        self.state = GenerationState.IDLE
        self.result: Optional[GenerationResult] = None
        self._listeners: List[StateListener] = []

    @property
    def is_pending(self) -> bool:
        return self.state is GenerationState.PENDING

    @property
    def error(self) -> Optional[str]:
        if self.result is not None and not self.result.success:
            return self.result.error
        return None

    @property
    def image_url(self) -> Optional[str]:
        if self.result is not None and self.result.success:
            return self.result.image_url
        return None

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _transition(self, state: GenerationState, result: Optional[GenerationResult] = None) -> None:
        self.state = state
        self.result = result
        for listener in self._listeners:
            try:
                listener(self)
            except Exception:
                logger.exception("State listener failed")

    async def submit(self, request: GenerationRequest) -> GenerationResult:
        """Uploads the request's images, invokes the gateway and settles.

        Raises:
            ValidationError: the prompt is blank after trimming.
            GenerationInProgressError: a submission is already pending.
        """
        if self.is_pending:
            raise GenerationInProgressError("A generation is already in progress")
        if not request.prompt or not request.prompt.strip():
            raise ValidationError("Please enter a description for the image")

        self._transition(GenerationState.PENDING)
        try:
            result = await self.service.generate_image(request)
        except Exception as e:
            logger.exception("Unexpected error during generation")
            result = GenerationResult(success=False, error=str(e) or FALLBACK_ERROR_MESSAGE)

        if result.success and not result.image_url and not result.task_id:
            result = GenerationResult(success=False, error=FALLBACK_ERROR_MESSAGE)
        elif not result.success and not result.error:
            result = result.model_copy(update={"error": FALLBACK_ERROR_MESSAGE})

        if result.is_async:
            logger.info(f"Generation queued as task {result.task_id}")
        self._transition(GenerationState.SETTLED, result)
        return result

    async def check_status(self, task_id: str) -> GenerationResult:
        """Polls an asynchronous task once. Does not change the orchestrator state."""
        return await self.service.check_task_status(task_id)

    def reset(self) -> None:
        if self.is_pending:
            raise GenerationInProgressError("Cannot reset while a generation is pending")
        if self.state is GenerationState.SETTLED:
            self._transition(GenerationState.IDLE)
