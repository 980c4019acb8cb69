# listing_publisher/services/listing_service.py
"""
Public entry point for logging in and publishing listings.

Wires adapter, session manager, image pipeline, response capture and the
submission state machine per platform, and turns every outcome (including
unexpected exceptions) into a plain result dict. Nothing here raises to the
caller.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import requests
from pydantic import ValidationError

from listing_publisher.core.config import Settings
from listing_publisher.core.enums import SubmissionStatus
from listing_publisher.core.exceptions import AuthError, BaseServiceError, UnknownPlatformError
from listing_publisher.schemas.listing import ListingRequest, LoginResult, SubmissionOutcome
from listing_publisher.services.audit_log import ResponseCapture
from listing_publisher.services.blob_store import BlobStore
from listing_publisher.services.image_uploader import ImageUploadPipeline
from listing_publisher.services.listing_registry import ListingRegistry
from listing_publisher.services.listing_submitter import ListingSubmitter
from listing_publisher.services.platforms import get_adapter
from listing_publisher.services.session_cache import SessionCache
from listing_publisher.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class PlatformComponents:
    """Everything needed to talk to one platform."""

    def __init__(self, settings: Settings, platform_id: str, cache: SessionCache, blob_store: BlobStore,
                 session_factory: Callable[[], requests.Session]):
        self.adapter = get_adapter(platform_id, settings)
        self.session_manager = SessionManager(self.adapter, cache, settings, session_factory=session_factory)
        self.capture = ResponseCapture(settings.AUDIT_DIR, self.adapter.platform_id)
        self.uploader = ImageUploadPipeline(
            self.adapter,
            blob_store,
            max_images=settings.MAX_IMAGES,
            max_workers=settings.IMAGE_UPLOAD_CONCURRENCY,
        )
        self.submitter = ListingSubmitter(self.adapter, self.session_manager, self.uploader, self.capture, settings)
        self.registry = ListingRegistry(cache, self.adapter.platform_id, settings.session_ttl_seconds)


class ListingService:

    def __init__(
        self,
        settings: Settings,
        cache: SessionCache,
        blob_store: BlobStore,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.settings = settings
        self.cache = cache
        self.blob_store = blob_store
        self.session_factory = session_factory
        self._platforms: Dict[str, PlatformComponents] = {}
        self._platforms_lock = threading.Lock()

    def platform(self, platform_id: str) -> PlatformComponents:
        """Components for a platform id. Raises UnknownPlatformError."""
        key = str(platform_id).strip().lower()
        with self._platforms_lock:
            if key not in self._platforms:
                self._platforms[key] = PlatformComponents(
                    self.settings, key, self.cache, self.blob_store, self.session_factory
                )
            return self._platforms[key]

    # --- login ---

    def login(self, platform_id: str) -> Dict[str, Any]:
        try:
            components = self.platform(platform_id)
            summary = components.session_manager.login()
            result = LoginResult(
                success=True,
                message=f"Logged in to {components.adapter.platform_id}",
                platform_id=components.adapter.platform_id,
                session=summary,
            )
        except UnknownPlatformError as e:
            result = LoginResult(success=False, message=str(e), platform_id=str(platform_id))
        except AuthError as e:
            result = LoginResult(success=False, message=f"Login failed: {e}", platform_id=str(platform_id))
        except BaseServiceError as e:
            result = LoginResult(success=False, message=f"Login error: {e}", platform_id=str(platform_id))
        except Exception as e:
            logger.exception(f"Unexpected error logging in to {platform_id}")
            result = LoginResult(success=False, message=f"Unexpected error: {e}", platform_id=str(platform_id))
        return result.model_dump(mode="json")

    def status(self, platform_id: str) -> Dict[str, Any]:
        try:
            components = self.platform(platform_id)
        except UnknownPlatformError as e:
            return {"success": False, "platform": str(platform_id), "message": str(e)}
        session = components.session_manager.current_session()
        return {
            "success": True,
            "platform": components.adapter.platform_id,
            "logged_in": session is not None,
            "cookie_count": len(session.cookie_jar) if session else 0,
        }

    # --- publish ---

    def publish(self, request: Union[ListingRequest, Dict[str, Any]]) -> Dict[str, Any]:
        """Publish one listing and return a result dict; never raises."""
        try:
            if not isinstance(request, ListingRequest):
                request = ListingRequest(**request)
            components = self.platform(request.platform_id)
        except (ValidationError, TypeError, ValueError, UnknownPlatformError) as e:
            logger.error(f"Invalid listing request: {e}")
            return {
                "success": False,
                "status": SubmissionStatus.REJECTED.value,
                "message": f"Invalid listing request: {e}",
                "listing_url": None,
                "audit_ref": None,
                "response_url": None,
            }

        outcome = components.submitter.submit(request)
        if outcome.success:
            try:
                components.registry.record(request.subject_id, outcome.listing_url)
            except Exception:
                logger.exception(f"Could not record subject {request.subject_id} as listed")
        return self._result(components, outcome)

    def _result(self, components: PlatformComponents, outcome: SubmissionOutcome) -> Dict[str, Any]:
        return {
            "success": outcome.success,
            "status": outcome.status.value,
            "message": outcome.message,
            "listing_url": outcome.listing_url,
            "audit_ref": outcome.audit_ref,
            "response_url": components.capture.response_url(outcome.audit_ref),
        }

    # --- registry / audit ---

    def _known_platform(self, platform_id: str) -> Optional[PlatformComponents]:
        try:
            return self.platform(platform_id)
        except UnknownPlatformError:
            logger.warning(f"Unknown platform: {platform_id}")
            return None

    def is_listed(self, platform_id: str, subject_id: str) -> bool:
        components = self._known_platform(platform_id)
        return components is not None and components.registry.is_listed(subject_id)

    def listing_url(self, platform_id: str, subject_id: str) -> Optional[str]:
        components = self._known_platform(platform_id)
        return components.registry.listing_url(subject_id) if components else None

    def response_file(self, platform_id: str, filename: str) -> Optional[Path]:
        components = self._known_platform(platform_id)
        return components.capture.resolve(filename) if components else None
