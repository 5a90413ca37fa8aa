"""Shared pytest fixtures for photoprompt tests."""

import io
import os
from pathlib import Path
from typing import Any, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from photoprompt.config import Settings
from photoprompt.gateway import GenerationGateway
from photoprompt.providers.base_provider import BasePrimaryProvider, BaseSecondaryProvider
from photoprompt.storage import CleanupCoordinator

STORE_URL = "https://store"


class FakeBucket:
    """In-memory stand-in for a Supabase storage bucket."""

    def __init__(self):
        self.objects = {}
        self.uploads: List[str] = []
        self.removed: List[str] = []
        self.fail_upload = False
        self.fail_remove_keys = set()

    def upload(self, path, file, file_options=None):
        if self.fail_upload:
            raise RuntimeError("storage unavailable")
        self.uploads.append(path)
        self.objects[path] = (file, file_options)
        return {"Key": path}

    def get_public_url(self, path):
        return f"{STORE_URL}/{path}"

    def remove(self, paths):
        for path in paths:
            if path in self.fail_remove_keys:
                raise RuntimeError(f"cannot delete {path}")
            self.removed.append(path)
            self.objects.pop(path, None)
        return []


class FakePrimary(BasePrimaryProvider):
    def __init__(self, images: Any = None, error: Exception = None):
        self.generate = AsyncMock(side_effect=error, return_value=images or [])
        self.close = AsyncMock()

    async def generate(self, message):  # replaced per instance
        raise NotImplementedError


class FakeSecondary(BaseSecondaryProvider):
    def __init__(self, edit_images=None, text_images=None):
        self.edit = AsyncMock(return_value=edit_images or [])
        self.text_to_image = AsyncMock(return_value=text_images or [])
        self.check_status = AsyncMock()
        self.close = AsyncMock()

    async def edit(self, prompt, image_urls):  # replaced per instance
        raise NotImplementedError

    async def text_to_image(self, prompt):  # replaced per instance
        raise NotImplementedError


@pytest.fixture
def bucket() -> FakeBucket:
    return FakeBucket()


@pytest.fixture
def storage_client(bucket: FakeBucket) -> MagicMock:
    client = MagicMock()
    client.storage.from_.return_value = bucket
    return client


@pytest.fixture
def make_image(tmp_path: Path):
    """Factory writing a small valid image file and returning its path."""

    def _make(name: str = "photo.jpg", image_format: str = "JPEG") -> Path:
        buffer = io.BytesIO()
        Image.new("RGB", (8, 8), color=(200, 10, 10)).save(buffer, format=image_format)
        path = tmp_path / name
        path.write_bytes(buffer.getvalue())
        return path

    return _make


@pytest.fixture
def settings(monkeypatch) -> Settings:
    for key in list(os.environ):
        if key.startswith("PHOTOPROMPT__"):
            monkeypatch.delenv(key, raising=False)
    return Settings(
        _env_file=None,
        storage={"url": "https://project.supabase.co", "service_key": "svc", "anon_key": "anon"},
        primary={"api_key": "sk-or-test"},
        secondary={"api_key": "fal-test"},
    )


@pytest.fixture
def make_gateway(storage_client):
    """Factory building a gateway around fake providers and the fake bucket."""

    def _make(primary=None, secondary=None, cleanup=None) -> GenerationGateway:
        return GenerationGateway(
            primary=primary or FakePrimary(),
            secondary=secondary or FakeSecondary(),
            cleanup=cleanup or CleanupCoordinator(storage_client, "user pictures"),
        )

    return _make


@pytest.fixture
def fake_primary():
    """The FakePrimary class; call it with ``images=`` or ``error=``."""
    return FakePrimary


@pytest.fixture
def fake_secondary():
    """The FakeSecondary class; call it with ``edit_images=`` / ``text_images=``."""
    return FakeSecondary
