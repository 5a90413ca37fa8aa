from photoprompt.client import ImageGenerationService
from photoprompt.config import Settings
from photoprompt.gateway import GenerationGateway
from photoprompt.orchestrator import GenerationOrchestrator
from photoprompt.providers.fal_provider import FalProvider
from photoprompt.providers.openrouter_provider import OpenRouterProvider
from photoprompt.storage import CleanupCoordinator, StorageUploader, create_storage_client
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    pass


def storage_client_for(settings: Settings, key: str) -> Any:
    if not settings.storage.url or not key:
        raise ConfigurationError(
            "Storage is not configured. Set PHOTOPROMPT__STORAGE__URL and the matching key."
        )
    return create_storage_client(str(settings.storage.url).rstrip("/"), key)


def build_gateway(settings: Settings, storage_client: Optional[Any] = None) -> GenerationGateway:
    """Wires the server side: both providers and the cleanup coordinator."""
    timeout = settings.gateway.request_timeout
    if storage_client is None:
        storage_client = storage_client_for(settings, settings.storage.service_key)
    if not settings.primary.api_key:
        logger.warning("No OpenRouter API key configured; primary calls will be rejected")
    return GenerationGateway(
        primary=OpenRouterProvider(settings.primary, timeout=timeout),
        secondary=FalProvider(settings.secondary, timeout=timeout),
        cleanup=CleanupCoordinator(storage_client, settings.storage.bucket),
        default_instructions=settings.gateway.default_instructions,
    )


def build_orchestrator(
    settings: Settings, storage_client: Optional[Any] = None
) -> GenerationOrchestrator:
    """Wires the client side: uploader, gateway client and state machine."""
    if storage_client is None:
        storage_client = storage_client_for(settings, settings.storage.anon_key)
    service = ImageGenerationService(
        uploader=StorageUploader(storage_client, settings.storage.bucket),
        gateway_url=str(settings.gateway.gateway_url),
        api_key=settings.storage.anon_key,
        timeout=settings.gateway.request_timeout,
    )
    return GenerationOrchestrator(service)
