from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from typing import Any, List, Literal, Optional, Union

from photoprompt.errors import UnrecognizedImageShapeError


class GenerationRequest(BaseModel):
    prompt: str
    images: List[str] = Field(
        default_factory=list, description="Local image paths, in submission order."
    )
    num_inference_steps: Optional[int] = Field(None, ge=1)
    guidance_scale: Optional[float] = None
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)


class UploadedImageRef(BaseModel):
    source_uri: str
    storage_key: str
    public_url: str


class GenerationResult(BaseModel):
    success: bool
    image_url: Optional[str] = None
    task_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_async(self) -> bool:
        return self.success and not self.image_url and bool(self.task_id)


class GenerationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"


# Wire models for the gateway functions.


class GatewayRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    num_inference_steps: Optional[int] = None
    guidance_scale: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None


class GatewayResponse(BaseModel):
    success: bool
    # Singular generated URL despite the plural key.
    images_url: Optional[str] = None
    task_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None


class StatusRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    task_id: str


class StatusResponse(BaseModel):
    success: bool
    task_id: str
    image_url: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None


# Primary provider message.


class TextSegment(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str


class ImageSegment(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


class ProviderMessage(BaseModel):
    role: Literal["user", "assistant", "system"] = "user"
    content: List[Union[TextSegment, ImageSegment]]

    @property
    def image_urls(self) -> List[str]:
        return [s.image_url.url for s in self.content if isinstance(s, ImageSegment)]


# Generated image descriptors, as returned by either provider.


class NestedImageDescriptor(BaseModel):
    model_config = ConfigDict(extra="allow")

    image_url: ImageUrl

    @property
    def resolved_url(self) -> str:
        return self.image_url.url


class BareImageDescriptor(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str

    @property
    def resolved_url(self) -> str:
        return self.url


ImageDescriptor = Union[NestedImageDescriptor, BareImageDescriptor]

_descriptor_adapter = TypeAdapter(ImageDescriptor)


def parse_image_descriptor(item: Any) -> ImageDescriptor:
    """Parses one raw descriptor, preferring the nested ``image_url.url`` layout."""
    if isinstance(item, dict) and isinstance(item.get("image_url"), dict):
        try:
            return NestedImageDescriptor.model_validate(item)
        except PydanticValidationError:
            pass
    try:
        return _descriptor_adapter.validate_python(item)
    except PydanticValidationError as e:
        raise UnrecognizedImageShapeError(
            f"Unrecognized image descriptor in provider response: {item!r}"
        ) from e


def normalize_image_urls(items: List[Any]) -> List[str]:
    return [parse_image_descriptor(item).resolved_url for item in items or []]


class TaskStatus(BaseModel):
    state: Literal["queued", "in_progress", "completed"]
    images: List[Any] = Field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.state == "completed"
