# listing_publisher/services/blob_store.py
"""
Read-only access to the source images of a listing.

Image references on a ListingRequest are opaque keys; a BlobStore turns a key
into bytes (`get`) or a public URL (`url`).
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import requests

from listing_publisher.core.exceptions import BlobNotFoundError, TransportError

logger = logging.getLogger(__name__)


class BlobStore:

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def url(self, key: str) -> str:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Blobs stored as files under a root directory."""

    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/") if base_url else None

    def _path_for(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if self.root not in path.parents:
            raise BlobNotFoundError(f"Key outside blob root: {key}")
        return path

    def get(self, key):
        path = self._path_for(key)
        if not path.is_file():
            raise BlobNotFoundError(f"No blob for key: {key}")
        return path.read_bytes()

    def url(self, key):
        if self.base_url:
            return f"{self.base_url}/{quote(key.lstrip('/'))}"
        return self._path_for(key).as_uri()


class HttpBlobStore(BlobStore):
    """Blobs served over HTTP (e.g. a public S3 bucket or CDN)."""

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, key):
        return f"{self.base_url}/{quote(key.lstrip('/'))}"

    def get(self, key):
        url = self.url(key)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Blob fetch failed for {key}: {e}") from e
        if response.status_code == 404:
            raise BlobNotFoundError(f"No blob for key: {key}")
        if response.status_code != 200:
            raise TransportError(f"Blob fetch for {key} returned HTTP {response.status_code}")
        return response.content
