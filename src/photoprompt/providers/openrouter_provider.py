import httpx
import json
from openai import AsyncOpenAI, APIConnectionError, APIStatusError
from photoprompt.config import PrimaryProviderConfig
from photoprompt.errors import ProviderError
from photoprompt.models import ProviderMessage
from photoprompt.providers.base_provider import BasePrimaryProvider
from typing import Any, List, Optional
import logging

logger = logging.getLogger(__name__)


class OpenRouterProvider(BasePrimaryProvider):
    """Primary provider: an OpenAI-compatible chat completion endpoint asked for images."""

    def __init__(
        self,
        config: PrimaryProviderConfig,
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.client_params = {
            "api_key": self.config.api_key or "missing",
            "base_url": str(self.config.base_url),
            "timeout": timeout,
            # Fallback to the secondary provider replaces retries here.
            "max_retries": 0,
        }
        if http_client is not None:
            self.client_params["http_client"] = http_client
        self.async_client = AsyncOpenAI(**self.client_params)

    def _extra_headers(self) -> dict:
        extra_headers = {}
        if self.config.http_referer:
            extra_headers["HTTP-Referer"] = self.config.http_referer
        if self.config.x_title:
            extra_headers["X-Title"] = self.config.x_title
        return extra_headers

    async def generate(self, message: ProviderMessage) -> List[Any]:
        messages = [message.model_dump()]
        logger.debug(
            "OpenRouter request: %s",
            json.dumps({"model": self.config.model, "messages": messages}),
        )
        try:
            raw = await self.async_client.chat.completions.with_raw_response.create(
                model=self.config.model,
                messages=messages,
                response_format={"type": "image_url"},
                extra_headers=self._extra_headers() or None,
            )
        except APIStatusError as e:
            body = e.response.text
            raise ProviderError(
                f"OpenRouter API error: {e.status_code} - {body}",
                status_code=e.status_code,
                body=body,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(f"OpenRouter API unreachable: {e}") from e

        try:
            data = raw.http_response.json()
        except ValueError as e:
            raise ProviderError(
                "Invalid API response: body is not JSON",
                status_code=raw.http_response.status_code,
                body=raw.http_response.text,
            ) from e
        return extract_images(data)

    async def close(self):
        await self.async_client.close()


def extract_images(data: Any) -> List[Any]:
    """Returns ``choices[0].message.images`` from a chat completion body.

    A missing choice or message is a malformed response and raises ProviderError;
    a message without images yields an empty list.
    """
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        raise ProviderError("Invalid API response: no choices", body=json.dumps(data))
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise ProviderError("Invalid API response: no message", body=json.dumps(data))
    images = message.get("images") or []
    if not isinstance(images, list):
        raise ProviderError("Invalid API response: images is not a list", body=json.dumps(data))
    if not images and message.get("content"):
        logger.warning(f"Model answered with text instead of an image: {str(message['content'])[:200]}")
    return images
