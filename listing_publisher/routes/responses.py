# listing_publisher/routes/responses.py
"""
Serve captured platform responses by file name for debugging.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from listing_publisher.dependencies import get_listing_service
from listing_publisher.services.audit_log import is_allowed_filename
from listing_publisher.services.listing_service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["responses"])


@router.get("/{platform}-response/{filename}")
async def get_response(platform: str, filename: str, service: ListingService = Depends(get_listing_service)):
    if not is_allowed_filename(filename):
        raise HTTPException(status_code=404, detail="Response file not found")
    path = service.response_file(platform, filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Response file not found")
    return FileResponse(path, media_type="text/html")
