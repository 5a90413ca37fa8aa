import fal_client
import logging
from photoprompt.config import SecondaryProviderConfig
from photoprompt.errors import ProviderError
from photoprompt.models import TaskStatus
from photoprompt.providers.base_provider import BaseSecondaryProvider
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

TASK_ID_SEPARATOR = "::"


def split_task_id(task_id: str) -> Tuple[str, str]:
    application, sep, request_id = task_id.rpartition(TASK_ID_SEPARATOR)
    if not sep or not application or not request_id:
        raise ValueError(f"Malformed task id: {task_id!r}")
    return application, request_id


class FalProvider(BaseSecondaryProvider):
    """Secondary provider backed by fal.ai queue applications."""

    def __init__(
        self,
        config: SecondaryProviderConfig,
        timeout: float = 120.0,
        client: Optional[Any] = None,
    ):
        self.config = config
        self._owns_client = client is None
        self.client = client or fal_client.AsyncClient(
            key=config.api_key or None, default_timeout=timeout
        )

    async def _subscribe(self, application: str, arguments: dict) -> List[Any]:
        logger.info(f"Calling fal application {application}")
        try:
            result = await self.client.subscribe(
                application, arguments=arguments, with_logs=True
            )
        except Exception as e:
            raise ProviderError(f"fal application {application} failed: {e}") from e
        return (result or {}).get("images") or []

    async def edit(self, prompt: str, image_urls: List[str]) -> List[Any]:
        return await self._subscribe(
            self.config.edit_application,
            {"prompt": prompt, "image_urls": list(image_urls)},
        )

    async def text_to_image(self, prompt: str) -> List[Any]:
        return await self._subscribe(
            self.config.text_to_image_application, {"prompt": prompt}
        )

    async def check_status(self, task_id: str) -> TaskStatus:
        application, request_id = split_task_id(task_id)
        status = await self.client.status(application, request_id)
        if isinstance(status, fal_client.Queued):
            return TaskStatus(state="queued")
        if isinstance(status, fal_client.InProgress):
            return TaskStatus(state="in_progress")
        result = await self.client.result(application, request_id)
        return TaskStatus(state="completed", images=(result or {}).get("images") or [])

    async def close(self) -> None:
        # The fal client builds its httpx client lazily on first use.
        if not self._owns_client or "_client" not in vars(self.client):
            return
        http_client = await self.client._client
        await http_client.aclose()
