import httpx
import logging
from typing import List, Optional

from photoprompt.errors import GenerationError, UploadError
from photoprompt.models import GatewayRequest, GenerationRequest, GenerationResult
from photoprompt.storage import StorageUploader

logger = logging.getLogger(__name__)

GENERATE_FUNCTION = "generate-image"
STATUS_FUNCTION = "check-task-status"
GENERIC_GENERATION_ERROR = "Error while generating the image"
GENERIC_STATUS_ERROR = "Error while checking the task status"


class ImageGenerationService:
    """Client side of the gateway: uploads inputs, invokes the functions."""

    def __init__(
        self,
        uploader: StorageUploader,
        gateway_url: str,
        api_key: str = "",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.uploader = uploader
        self.gateway_url = str(gateway_url).rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.http_client = http_client

    def _function_url(self, name: str) -> str:
        return f"{self.gateway_url}/functions/v1/{name}"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def _invoke(self, name: str, body: dict) -> dict:
        """POSTs to a gateway function and returns its JSON body.

        Error statuses with a JSON body are returned as is, since the gateway
        reports failures as ``{"success": false, "error": ...}``.
        """
        if self.http_client is not None:
            response = await self.http_client.post(
                self._function_url(name), json=body, headers=self._headers()
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._function_url(name), json=body, headers=self._headers()
                )
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise GenerationError(f"Gateway returned a non-JSON body ({response.status_code})")
        if not isinstance(data, dict):
            raise GenerationError(f"Gateway returned an unexpected body ({response.status_code})")
        if response.is_error and data.get("success") is not False:
            response.raise_for_status()
        return data

    async def upload_images(self, images: List[str]) -> List[str]:
        """Uploads images one at a time, preserving order."""
        storage_urls: List[str] = []
        for image_uri in images:
            storage_urls.append(await self.uploader.upload(image_uri))
        return storage_urls

    async def generate_image(self, request: GenerationRequest) -> GenerationResult:
        try:
            storage_urls = await self.upload_images(request.images)
        except UploadError as e:
            return GenerationResult(success=False, error=str(e))

        body = GatewayRequest(
            prompt=request.prompt,
            images=storage_urls,
            num_inference_steps=request.num_inference_steps,
            guidance_scale=request.guidance_scale,
            width=request.width,
            height=request.height,
        ).model_dump(exclude_none=True)

        try:
            data = await self._invoke(GENERATE_FUNCTION, body)
        except httpx.HTTPStatusError as e:
            logger.error(f"Gateway call failed: {e}")
            return GenerationResult(
                success=False,
                error=f"{GENERIC_GENERATION_ERROR} ({e.response.status_code})",
            )
        except (httpx.HTTPError, GenerationError) as e:
            logger.error(f"Gateway call failed: {e}")
            return GenerationResult(success=False, error=str(e) or GENERIC_GENERATION_ERROR)

        if not data.get("success"):
            return GenerationResult(
                success=False, error=data.get("error") or GENERIC_GENERATION_ERROR
            )
        return GenerationResult(
            success=True,
            image_url=data.get("images_url"),
            task_id=data.get("task_id"),
        )

    async def check_task_status(self, task_id: str) -> GenerationResult:
        try:
            data = await self._invoke(STATUS_FUNCTION, {"task_id": task_id})
        except (httpx.HTTPError, GenerationError) as e:
            logger.error(f"Status check for {task_id} failed: {e}")
            return GenerationResult(success=False, task_id=task_id, error=GENERIC_STATUS_ERROR)
        if not data.get("success"):
            return GenerationResult(
                success=False,
                task_id=task_id,
                error=data.get("error") or GENERIC_STATUS_ERROR,
            )
        return GenerationResult(
            success=True, image_url=data.get("image_url"), task_id=task_id
        )
