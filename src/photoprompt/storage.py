"""Object storage access: uploading reference images and deleting them afterwards.

Both components wrap a Supabase client and address a single bucket. Keys are
unique per upload, so concurrent writers never collide and no locking is done.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Union

from supabase import create_client

from photoprompt.errors import CleanupError, UploadError
from photoprompt.models import UploadedImageRef
from photoprompt.utils import detect_content_type, extract_storage_key, generate_storage_key

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Unable to upload the image to storage."


def create_storage_client(url: str, key: str) -> Any:
    return create_client(url, key)


class StorageUploader:
    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    async def upload(self, local_resource: Union[str, Path]) -> str:
        """Uploads one local image and returns its public URL."""
        ref = await self.upload_ref(local_resource)
        return ref.public_url

    async def upload_ref(self, local_resource: Union[str, Path]) -> UploadedImageRef:
        source = str(local_resource)
        storage_key = generate_storage_key(source)
        try:
            data = await asyncio.to_thread(Path(source).read_bytes)
            content_type = detect_content_type(data, source)
            bucket = self.client.storage.from_(self.bucket)
            await asyncio.to_thread(
                bucket.upload, storage_key, data, {"content-type": content_type}
            )
            public_url = bucket.get_public_url(storage_key)
        except Exception as e:
            logger.error(f"Upload of {source} to bucket '{self.bucket}' failed: {e}")
            raise UploadError(UPLOAD_FAILED_MESSAGE) from e
        logger.info(f"Uploaded {source} as {storage_key}")
        return UploadedImageRef(
            source_uri=source, storage_key=storage_key, public_url=public_url
        )


class CleanupCoordinator:
    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    async def cleanup(self, urls: List[str]) -> None:
        """Deletes the objects behind ``urls``. Never raises."""
        await self.cleanup_report(urls)

    async def cleanup_report(self, urls: List[str]) -> List[CleanupError]:
        failures: List[CleanupError] = []
        for url in urls or []:
            try:
                key = extract_storage_key(url)
            except Exception as e:
                failures.append(CleanupError(str(url), e))
                logger.error(f"Could not derive a storage key from {url!r}: {e}")
                continue
            if not key:
                logger.warning(f"Skipping cleanup of {url!r}: no storage key")
                continue
            try:
                await asyncio.to_thread(self.client.storage.from_(self.bucket).remove, [key])
            except Exception as e:
                failure = CleanupError(key, e)
                failures.append(failure)
                logger.error(str(failure))
            else:
                logger.info(f"Deleted input image {key}")
        return failures
