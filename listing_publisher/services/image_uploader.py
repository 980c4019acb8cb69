# listing_publisher/services/image_uploader.py
"""
Image upload pipeline.

Fetches source bytes from the blob store, encodes each image as a base64 data
URL and hands it to the platform adapter. Uploads run on a small thread pool;
results come back in the order of the input references. A failing image is
logged and skipped; only a batch where nothing succeeded is an error.
"""

import base64
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import requests

from listing_publisher.core.exceptions import UploadError
from listing_publisher.schemas.listing import UploadedImage
from listing_publisher.services.blob_store import BlobStore
from listing_publisher.services.platforms.base import PlatformAdapter

logger = logging.getLogger(__name__)

# magic bytes -> mime type; anything else is sent as jpeg
IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_mime_type(data: bytes) -> str:
    for signature, mime_type in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def to_data_url(data: bytes) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{sniff_mime_type(data)};base64,{encoded}"


class ImageUploadPipeline:

    def __init__(
        self,
        adapter: PlatformAdapter,
        blob_store: BlobStore,
        max_images: int = 10,
        max_workers: int = 3,
    ):
        self.adapter = adapter
        self.blob_store = blob_store
        self.max_images = max_images
        self.max_workers = max(1, max_workers)

    def upload(self, references: Sequence[str], session: requests.Session, token: str) -> List[UploadedImage]:
        """
        Upload up to `max_images` images and return the successful ones in input order.

        Raises:
            UploadError: when references were given but none could be uploaded.
        """
        references = list(references)[:self.max_images]
        if not references:
            raise UploadError("No images to upload")

        start_time = time.time()
        logger.info(f"Uploading {len(references)} images to {self.adapter.platform_id}")

        results: List[Optional[str]] = [None] * len(references)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(references))) as executor:
            future_to_index = {
                executor.submit(self._upload_one, reference, session, token): index
                for index, reference in enumerate(references)
            }
            for future, index in future_to_index.items():
                try:
                    results[index] = future.result()
                except Exception as e:
                    logger.error(f"Image {index + 1}/{len(references)} ({references[index]}) failed: {e}")

        uploaded = []
        failed = []
        for reference, platform_url in zip(references, results):
            if platform_url:
                uploaded.append(UploadedImage(
                    source_reference=reference,
                    platform_url_or_id=platform_url,
                    upload_order=len(uploaded),
                ))
            else:
                failed.append(reference)

        logger.info(
            f"Uploaded {len(uploaded)}/{len(references)} images to {self.adapter.platform_id} "
            f"in {time.time() - start_time:.2f} seconds"
        )
        if not uploaded:
            raise UploadError("no images uploaded", failed=failed)
        return uploaded

    def _upload_one(self, reference: str, session: requests.Session, token: str) -> str:
        data = self.blob_store.get(reference)
        if not data:
            raise UploadError(f"Empty image data for {reference}")
        return self.adapter.upload_image(session, to_data_url(data), token)
