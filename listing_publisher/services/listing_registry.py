# listing_publisher/services/listing_registry.py
"""
Which subjects are already listed on a platform, kept in the session cache
under `listed_{platform}` as a `{subject_id: listing_url}` map.
"""

import logging
import threading
from typing import Dict, Optional

from listing_publisher.services.session_cache import SessionCache

logger = logging.getLogger(__name__)


class ListingRegistry:

    _lock = threading.Lock()

    def __init__(self, cache: SessionCache, platform_id: str, ttl: int):
        self.cache = cache
        self.platform_id = platform_id
        self.ttl = ttl

    @property
    def key(self) -> str:
        return f"listed_{self.platform_id}"

    def all(self) -> Dict[str, Optional[str]]:
        return dict(self.cache.get(self.key) or {})

    def record(self, subject_id: str, listing_url: Optional[str]):
        # read-modify-write of a single key, serialised within the process
        with self._lock:
            listed = self.all()
            listed[str(subject_id)] = listing_url
            self.cache.put(self.key, listed, self.ttl)
        logger.info(f"Marked subject {subject_id} as listed on {self.platform_id}: {listing_url}")

    def is_listed(self, subject_id: str) -> bool:
        return str(subject_id) in self.all()

    def listing_url(self, subject_id: str) -> Optional[str]:
        return self.all().get(str(subject_id))
