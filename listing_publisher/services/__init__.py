"""
Login, image upload, submission and response capture for the marketplace platforms.
"""
from .listing_service import ListingService, PlatformComponents
from .session_cache import SessionCache, MemorySessionCache, FileSessionCache
from .blob_store import BlobStore, LocalBlobStore, HttpBlobStore
