"""
Platform adapters, selected by platform id.
"""
from typing import Dict, Type

from listing_publisher.core.config import Settings
from listing_publisher.core.enums import PlatformName
from listing_publisher.core.exceptions import UnknownPlatformError
from listing_publisher.services.platforms.base import EncodedBody, PlatformAdapter
from listing_publisher.services.platforms.netgun import NetgunAdapter
from listing_publisher.services.platforms.otobron import OtobronAdapter

ADAPTERS: Dict[PlatformName, Type[PlatformAdapter]] = {
    PlatformName.NETGUN: NetgunAdapter,
    PlatformName.OTOBRON: OtobronAdapter,
}


def get_adapter(platform_id, settings: Settings) -> PlatformAdapter:
    try:
        platform = platform_id if isinstance(platform_id, PlatformName) else PlatformName.from_slug(str(platform_id))
    except ValueError:
        raise UnknownPlatformError(f"Unknown platform: {platform_id}")
    return ADAPTERS[platform](settings)
