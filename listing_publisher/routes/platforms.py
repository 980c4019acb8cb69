# listing_publisher/routes/platforms.py
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from listing_publisher.core.enums import SubmissionStatus
from listing_publisher.core.exceptions import UnknownPlatformError
from listing_publisher.dependencies import get_listing_service
from listing_publisher.schemas.listing import ListingPayload
from listing_publisher.services.listing_service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["platforms"])

# HTTP status returned for each terminal submission status
OUTCOME_STATUS_CODES = {
    SubmissionStatus.PUBLISHED.value: 201,
    SubmissionStatus.REJECTED.value: 422,
    SubmissionStatus.SESSION_EXPIRED.value: 401,
    SubmissionStatus.TRANSPORT_ERROR.value: 502,
}


def _require_platform(service: ListingService, platform: str):
    try:
        return service.platform(platform)
    except UnknownPlatformError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{platform}/login")
async def login(platform: str, service: ListingService = Depends(get_listing_service)):
    """Run the login handshake and cache the session"""
    _require_platform(service, platform)

    # The handshake is blocking requests code
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, service.login, platform)
    if not result["success"]:
        logger.warning(f"Login to {platform} failed: {result['message']}")
        raise HTTPException(status_code=401, detail=result["message"])
    return result


@router.get("/{platform}/status")
async def status(platform: str, service: ListingService = Depends(get_listing_service)):
    """Whether a usable session is cached for the platform"""
    _require_platform(service, platform)
    return service.status(platform)


@router.post("/{platform}/listings")
async def publish_listing(
    platform: str,
    payload: ListingPayload,
    service: ListingService = Depends(get_listing_service),
):
    """Publish one listing on the platform"""
    components = _require_platform(service, platform)
    request = payload.to_request(components.adapter.platform_id)

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, service.publish, request)

    logger.info(f"Publish {platform}:{request.subject_id} -> {result['status']}")
    return JSONResponse(status_code=OUTCOME_STATUS_CODES.get(result["status"], 500), content=result)
