# listing_publisher/services/listing_submitter.py
"""
Listing submission state machine.

TOKEN_REFRESH -> UPLOADING_IMAGES -> SUBMITTING -> (AWAITING_PROMOTION_CONFIRM) -> DONE

Each submission runs on its own requests session rebuilt from the cached
cookies, so concurrent submissions share nothing mutable and the cache is only
read here. The raw submit response is captured before it is interpreted.
"""

import logging
from typing import Optional

import requests

from listing_publisher.core.config import Settings
from listing_publisher.core.enums import SubmissionState
from listing_publisher.core.exceptions import (
    AuditWriteError,
    BaseServiceError,
    SessionExpiredError,
    SubmissionRejectedError,
    TransportError,
    UploadError,
)
from listing_publisher.schemas.listing import ListingRequest, SubmissionOutcome
from listing_publisher.services.audit_log import ResponseCapture
from listing_publisher.services.http import is_redirect, location, send, snippet
from listing_publisher.services.image_uploader import ImageUploadPipeline
from listing_publisher.services.platforms.base import PlatformAdapter
from listing_publisher.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class ListingSubmitter:

    def __init__(
        self,
        adapter: PlatformAdapter,
        session_manager: SessionManager,
        uploader: ImageUploadPipeline,
        capture: ResponseCapture,
        settings: Settings,
    ):
        self.adapter = adapter
        self.session_manager = session_manager
        self.uploader = uploader
        self.capture = capture
        self.settings = settings

    def _enter(self, request: ListingRequest, state: SubmissionState):
        logger.info(f"[{self.adapter.platform_id}:{request.subject_id}] {state.value}")

    def submit(self, request: ListingRequest) -> SubmissionOutcome:
        """Run one submission to a terminal outcome. Never raises."""
        try:
            return self._submit(request)
        except SessionExpiredError as e:
            logger.warning(f"[{self.adapter.platform_id}:{request.subject_id}] session expired: {e}")
            return SubmissionOutcome.session_expired(reason=str(e))
        except UploadError as e:
            logger.error(f"[{self.adapter.platform_id}:{request.subject_id}] {e} (failed: {e.failed})")
            return SubmissionOutcome.rejected("no images uploaded")
        except SubmissionRejectedError as e:
            return SubmissionOutcome.rejected(str(e), e.audit_ref)
        except AuditWriteError as e:
            return SubmissionOutcome.transport_error(f"audit write failed: {e}")
        except TransportError as e:
            logger.error(f"[{self.adapter.platform_id}:{request.subject_id}] transport error: {e}")
            return SubmissionOutcome.transport_error(str(e))
        except Exception as e:
            logger.exception(f"[{self.adapter.platform_id}:{request.subject_id}] unexpected error during submission")
            return SubmissionOutcome.transport_error(f"Unexpected error: {e}")

    def _submit(self, request: ListingRequest) -> SubmissionOutcome:
        adapter = self.adapter
        timeout = self.settings.HTTP_TIMEOUT

        self._enter(request, SubmissionState.TOKEN_REFRESH)
        platform_session = self.session_manager.current_session()
        if platform_session is None:
            raise SessionExpiredError("No cached session")

        http = self.session_manager.open_http_session(platform_session)
        try:
            page_url = adapter.url(adapter.new_listing_path)
            page = send(http, "GET", page_url, timeout, headers=adapter.browser_headers())
            token = self._refresh_token(page, http)

            self._enter(request, SubmissionState.UPLOADING_IMAGES)
            images = self.uploader.upload(request.image_references, http, token)

            self._enter(request, SubmissionState.SUBMITTING)
            body = adapter.build_form_payload(request, images, token, page_html=page.text)
            response = send(
                http,
                "POST",
                adapter.url(adapter.submit_path or adapter.new_listing_path),
                timeout,
                headers=body.headers,
                **body.as_request_kwargs(),
            )
            audit_ref = self.capture.capture(request.subject_id, response.status_code, response.text)

            return self._classify(request, http, response, token, audit_ref)
        finally:
            http.close()

    def _refresh_token(self, page: requests.Response, http: requests.Session) -> str:
        adapter = self.adapter
        if page.status_code in adapter.session_expired_statuses:
            raise SessionExpiredError(f"Listing page returned HTTP {page.status_code}")
        if is_redirect(page) and adapter.is_login_location(location(page, adapter.base_url)):
            raise SessionExpiredError("Listing page redirected to login")

        token = adapter.token_extractor().extract(page.text, http.cookies)
        if not token:
            raise SessionExpiredError(f"No token on listing page (HTTP {page.status_code})")
        return token

    def _classify(
        self,
        request: ListingRequest,
        http: requests.Session,
        response: requests.Response,
        token: str,
        audit_ref: str,
    ) -> SubmissionOutcome:
        adapter = self.adapter
        target = location(response, adapter.base_url) if is_redirect(response) else ""

        promotion = adapter.parse_promotion_target(target)
        if promotion:
            number, promotion_token = promotion
            self._enter(request, SubmissionState.AWAITING_PROMOTION_CONFIRM)
            self._confirm_promotion(request, http, target, number, promotion_token, token)
            self._enter(request, SubmissionState.DONE)
            return SubmissionOutcome.published(adapter.listing_url(number), audit_ref)

        if target and adapter.is_listing_location(target):
            self._enter(request, SubmissionState.DONE)
            return SubmissionOutcome.published(target, audit_ref)

        listing_url = adapter.find_listing_url(response.text)
        if listing_url or adapter.has_success_phrase(response.text):
            self._enter(request, SubmissionState.DONE)
            return SubmissionOutcome.published(listing_url, audit_ref)

        if response.status_code in adapter.session_expired_statuses or adapter.is_login_location(target):
            return SubmissionOutcome.session_expired(
                reason=f"Submit answered HTTP {response.status_code}", audit_ref=audit_ref
            )

        logger.error(
            f"[{adapter.platform_id}:{request.subject_id}] no publish confirmation "
            f"(HTTP {response.status_code}): {snippet(response.text, 300)}"
        )
        raise SubmissionRejectedError("no publish confirmation", audit_ref)

    def _confirm_promotion(
        self,
        request: ListingRequest,
        http: requests.Session,
        target: str,
        number: str,
        promotion_token: str,
        token: str,
    ) -> Optional[str]:
        """
        Confirm the free promotion tier. Best effort: the listing already exists,
        so failures here are logged and do not change the outcome.
        """
        adapter = self.adapter
        timeout = self.settings.HTTP_TIMEOUT
        try:
            page = send(http, "GET", target, timeout, headers=adapter.browser_headers())
            page_token = adapter.token_extractor().extract(page.text) or token

            response = send(
                http,
                "POST",
                adapter.url(adapter.confirmation_path),
                timeout,
                headers=adapter.form_headers(referer=target),
                data=adapter.confirmation_form(number, promotion_token, page_token),
            )
            audit_ref = self.capture.capture(request.subject_id, response.status_code, response.text)
            if response.status_code >= 400:
                logger.error(
                    f"[{adapter.platform_id}:{request.subject_id}] promotion confirm for {number} "
                    f"returned HTTP {response.status_code}"
                )
            else:
                logger.info(f"[{adapter.platform_id}:{request.subject_id}] promotion confirmed for {number}")
            return audit_ref
        except BaseServiceError as e:
            logger.error(f"[{adapter.platform_id}:{request.subject_id}] promotion confirm for {number} failed: {e}")
            return None
        except Exception:
            logger.exception(f"[{adapter.platform_id}:{request.subject_id}] promotion confirm for {number} failed")
            return None
