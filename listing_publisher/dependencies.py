# listing_publisher/dependencies.py
from functools import lru_cache

from listing_publisher.core.config import Settings, get_settings
from listing_publisher.services.blob_store import BlobStore, HttpBlobStore, LocalBlobStore
from listing_publisher.services.listing_service import ListingService
from listing_publisher.services.session_cache import FileSessionCache


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.BLOB_BASE_URL:
        return HttpBlobStore(settings.BLOB_BASE_URL, timeout=settings.HTTP_TIMEOUT)
    return LocalBlobStore(settings.BLOB_DIR)


def build_listing_service(settings: Settings) -> ListingService:
    return ListingService(
        settings=settings,
        cache=FileSessionCache(settings.SESSION_CACHE_FILE),
        blob_store=build_blob_store(settings),
    )


@lru_cache()
def get_listing_service() -> ListingService:
    """Dependency for the process-wide listing service."""
    return build_listing_service(get_settings())
