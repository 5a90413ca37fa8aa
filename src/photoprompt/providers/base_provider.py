from abc import ABC, abstractmethod
from photoprompt.models import ProviderMessage, TaskStatus
from typing import Any, List


class BasePrimaryProvider(ABC):
    @abstractmethod
    async def generate(self, message: ProviderMessage) -> List[Any]:
        """
        Sends a multimodal message and returns the raw generated-image descriptors.
        An empty list means the model answered without producing an image.
        Raises ProviderError on an error status or a malformed response.
        """
        pass

    async def close(self) -> None:
        pass


class BaseSecondaryProvider(ABC):
    @abstractmethod
    async def edit(self, prompt: str, image_urls: List[str]) -> List[Any]:
        """Generates from a prompt and reference images; returns raw descriptors."""
        pass

    @abstractmethod
    async def text_to_image(self, prompt: str) -> List[Any]:
        """Generates from the prompt alone; returns raw descriptors."""
        pass

    async def check_status(self, task_id: str) -> TaskStatus:
        raise NotImplementedError(f"{type(self).__name__} does not track tasks")

    async def close(self) -> None:
        pass
