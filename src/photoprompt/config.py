from pydantic import BaseModel, HttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class StorageConfig(BaseModel):
    url: Optional[HttpUrl] = Field(
        None, description="Base URL of the Supabase project hosting the bucket."
    )
    service_key: str = Field(
        "", description="Service-role key used by the gateway to delete inputs."
    )
    anon_key: str = Field(
        "", description="Public anon key used by clients for uploads and invocations."
    )
    bucket: str = Field(
        "user pictures", description="Bucket holding uploaded reference images."
    )


class PrimaryProviderConfig(BaseModel):
    api_key: str = Field("", description="OpenRouter API key.")
    base_url: HttpUrl = Field(
        "https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible chat completion endpoint.",
    )
    model: str = Field(
        "google/gemini-2.5-flash-image-preview:free",
        description="Multimodal model asked for image output.",
    )
    http_referer: Optional[str] = Field(
        None, description="Optional OpenRouter ranking header (HTTP-Referer)."
    )
    x_title: Optional[str] = Field(
        None, description="Optional OpenRouter ranking header (X-Title)."
    )


class SecondaryProviderConfig(BaseModel):
    api_key: str = Field("", description="fal.ai API key.")
    edit_application: str = Field(
        "fal-ai/nano-banana/edit",
        description="fal application used when reference images are supplied.",
    )
    text_to_image_application: str = Field(
        "fal-ai/nano-banana",
        description="fal application used for prompt-only generation.",
    )


class GatewayConfig(BaseModel):
    default_instructions: str = Field(
        "Generate an image.",
        description="Instructions prefixed to every prompt sent to the primary model.",
    )
    request_timeout: float = Field(
        120.0, gt=0, description="Seconds to wait on any single provider or gateway call."
    )
    gateway_url: HttpUrl = Field(
        "http://localhost:5000",
        description="Base URL clients use to reach the gateway functions.",
    )
    host: str = Field("0.0.0.0", description="Interface the gateway server binds.")
    port: int = Field(5000, ge=1, le=65535, description="Port the gateway server binds.")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PHOTOPROMPT__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    storage: StorageConfig = StorageConfig()
    primary: PrimaryProviderConfig = PrimaryProviderConfig()
    secondary: SecondaryProviderConfig = SecondaryProviderConfig()
    gateway: GatewayConfig = GatewayConfig()


def load_settings(**overrides) -> Settings:
    """Builds settings from the environment and .env; keyword overrides win."""
    return Settings(**overrides)
