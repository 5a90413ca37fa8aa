"""Server-side generation: primary provider, secondary fallback, input cleanup.

The primary model sometimes answers a prompt with text instead of an image.
A response that parses but carries no image is therefore retried once against
the secondary provider, while an error status or a malformed body is fatal.
Input images are deleted once the provider stage has settled, whatever the
outcome.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from photoprompt.errors import GenerationError, NoImageError, ValidationError
from photoprompt.models import (
    GatewayRequest,
    GatewayResponse,
    ImageSegment,
    ImageUrl,
    ProviderMessage,
    StatusResponse,
    TextSegment,
    normalize_image_urls,
)
from photoprompt.providers.base_provider import BasePrimaryProvider, BaseSecondaryProvider
from photoprompt.storage import CleanupCoordinator

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = "Generate an image."
SUCCESS_MESSAGE = "Image generated successfully"


def build_message(prompt: str, image_urls: List[str], instructions: str) -> ProviderMessage:
    content = [TextSegment(text=f"{instructions} {prompt}")]
    content.extend(ImageSegment(image_url=ImageUrl(url=url)) for url in image_urls)
    return ProviderMessage(role="user", content=content)


class GenerationGateway:
    def __init__(
        self,
        primary: BasePrimaryProvider,
        secondary: BaseSecondaryProvider,
        cleanup: CleanupCoordinator,
        default_instructions: str = DEFAULT_INSTRUCTIONS,
    ):
        self.primary = primary
        self.secondary = secondary
        self.cleanup = cleanup
        self.default_instructions = default_instructions

    @asynccontextmanager
    async def _inputs_scope(self, image_urls: List[str]) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await self.release_inputs(image_urls)

    async def release_inputs(self, image_urls: List[str]) -> None:
        """Deletes uploaded input images. Failures are logged, never raised."""
        if not image_urls:
            return
        try:
            await self.cleanup.cleanup(image_urls)
        except Exception:
            logger.exception("Cleanup of input images failed")

    async def generate(
        self,
        prompt: Optional[str],
        image_urls: Optional[List[str]] = None,
        instructions: Optional[str] = None,
    ) -> str:
        """Generates one image and returns its URL.

        Raises:
            ValidationError: the prompt is missing or blank.
            ProviderError: the primary provider failed or answered malformed JSON.
            NoImageError: neither provider produced an image.
        """
        image_urls = list(image_urls or [])
        async with self._inputs_scope(image_urls):
            if not prompt or not prompt.strip():
                raise ValidationError("A prompt is required")

            message = build_message(
                prompt, image_urls, instructions or self.default_instructions
            )
            images = await self.primary.generate(message)

            if not images:
                if image_urls:
                    logger.warning(
                        f"Primary provider returned no image, falling back to edit with {len(image_urls)} image(s)"
                    )
                    images = await self.secondary.edit(prompt, image_urls)
                else:
                    logger.warning("Primary provider returned no image, falling back to text-to-image")
                    images = await self.secondary.text_to_image(prompt)
                if not images:
                    raise NoImageError("No image found in the provider responses")

            urls = normalize_image_urls(images)
            return urls[0]

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Runs ``generate`` and folds every outcome into a response body."""
        try:
            image_url = await self.generate(
                request.prompt, request.images, request.instructions
            )
        except GenerationError as e:
            logger.error(f"Generation failed: {e}")
            return GatewayResponse(success=False, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error during generation")
            return GatewayResponse(success=False, error=f"Unexpected error: {e}")
        return GatewayResponse(success=True, images_url=image_url, message=SUCCESS_MESSAGE)

    async def check_status(self, task_id: str) -> StatusResponse:
        try:
            status = await self.secondary.check_status(task_id)
        except Exception as e:
            logger.error(f"Status check for task {task_id} failed: {e}")
            return StatusResponse(success=False, task_id=task_id, error=str(e))
        if not status.completed:
            return StatusResponse(success=True, task_id=task_id, status=status.state)
        try:
            urls = normalize_image_urls(status.images)
        except GenerationError as e:
            return StatusResponse(success=False, task_id=task_id, error=str(e))
        if not urls:
            return StatusResponse(
                success=False, task_id=task_id, status=status.state,
                error="No image found in the task result",
            )
        return StatusResponse(
            success=True, task_id=task_id, status=status.state, image_url=urls[0]
        )

    async def close(self) -> None:
        try:
            await self.primary.close()
        finally:
            await self.secondary.close()
