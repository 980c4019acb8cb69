# listing_publisher/services/platforms/base.py
"""
Platform adapter interface.

An adapter holds everything that is protocol knowledge for one site: paths,
field names, token names, redirect patterns, success markers and the form
encoding. The session manager and the submission state machine only talk to
this interface.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import urlparse

import requests

from listing_publisher.core.config import Settings
from listing_publisher.core.enums import PlatformName
from listing_publisher.schemas.listing import ListingRequest, UploadedImage
from listing_publisher.services.token_extractor import TokenExtractor

logger = logging.getLogger(__name__)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8"
JSON_ACCEPT = "application/json, text/plain, */*"


@dataclass
class EncodedBody:
    """
    Request body ready for requests: `data` for urlencoded forms (a list of
    pairs keeps repeated keys), `files` for multipart parts.
    """
    data: Optional[Any] = None
    files: Optional[List[Tuple[str, Any]]] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def as_request_kwargs(self) -> Dict[str, Any]:
        kwargs = {}
        if self.data is not None:
            kwargs["data"] = self.data
        if self.files is not None:
            kwargs["files"] = self.files
        return kwargs


class PlatformAdapter:
    """Base class for the bespoke site adapters."""

    platform: PlatformName

    # Token discovery
    token_field: str = "_token"
    login_token_field: Optional[str] = None
    token_cookie: Optional[str] = None

    # Paths
    home_path: str = "/"
    login_path: str = "/login"
    new_listing_path: str = "/"
    submit_path: Optional[str] = None
    listing_path: str = "/"

    # Outcome markers
    promotion_pattern: Optional[Pattern] = None
    success_phrases: Sequence[str] = ()
    session_expired_statuses: Sequence[int] = (401, 419)

    # Set when the site proves a login with a cookie instead of the redirect target
    logged_in_cookie_prefix: Optional[str] = None

    accept_language = "pl,en-US;q=0.9,en;q=0.8"

    def __init__(self, settings: Settings):
        self.settings = settings

    # --- identity / URLs ---

    @property
    def platform_id(self) -> str:
        return self.platform.slug

    @property
    def base_url(self) -> str:
        raise NotImplementedError

    @property
    def cookie_domain(self) -> str:
        return urlparse(self.base_url).hostname or ""

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def listing_url(self, listing_id: str) -> str:
        return self.url(self.listing_path.rstrip("/") + "/" + str(listing_id))

    def credentials(self) -> Tuple[str, str]:
        raise NotImplementedError

    # --- tokens ---

    def token_extractor(self) -> TokenExtractor:
        return TokenExtractor(self.token_field, self.token_cookie)

    def login_token_extractor(self) -> TokenExtractor:
        return TokenExtractor(self.login_token_field or self.token_field, self.token_cookie)

    # --- headers ---

    def browser_headers(self, referer: Optional[str] = None, **extra) -> Dict[str, str]:
        headers = {
            "Accept": HTML_ACCEPT,
            "Accept-Language": self.accept_language,
            "Referer": referer or self.url("/"),
            "User-Agent": self.settings.USER_AGENT,
        }
        headers.update(extra)
        return headers

    def form_headers(self, referer: str, content_type: Optional[str] = "application/x-www-form-urlencoded") -> Dict[str, str]:
        headers = self.browser_headers(
            referer=referer,
            **{
                "Cache-Control": "max-age=0",
                "Origin": self.base_url,
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "same-origin",
                "Sec-Fetch-User": "?1",
                "Upgrade-Insecure-Requests": "1",
            }
        )
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def xhr_headers(self, token: str, referer: str) -> Dict[str, str]:
        return {
            "Accept": JSON_ACCEPT,
            "Accept-Language": self.accept_language,
            "Content-Type": "application/json;charset=UTF-8",
            "Origin": self.base_url,
            "Referer": referer,
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
            "User-Agent": self.settings.USER_AGENT,
            "X-CSRF-TOKEN": token,
            "X-Requested-With": "XMLHttpRequest",
            "X-XSRF-TOKEN": token,
        }

    # --- login ---

    def login_form(self, token: str) -> Dict[str, str]:
        raise NotImplementedError

    def login_rejection(self, target: str, jar) -> Optional[str]:
        """Why a redirected login POST was not accepted, or None when it was."""
        if self.logged_in_cookie_prefix:
            if any(cookie.name.startswith(self.logged_in_cookie_prefix) for cookie in jar):
                return None
            return f"no {self.logged_in_cookie_prefix}* cookie set"
        if self.is_login_location(target):
            return "redirected back to the login page"
        return None

    # --- images ---

    def upload_image(self, session: requests.Session, data_url: str, token: str) -> str:
        """Send one image; return the platform URL/id. Raise on failure."""
        raise NotImplementedError

    # --- listing form ---

    def build_form_payload(
        self,
        request: ListingRequest,
        images: List[UploadedImage],
        token: str,
        page_html: str = "",
    ) -> EncodedBody:
        raise NotImplementedError

    # --- promotion step ---

    def parse_promotion_target(self, target: str) -> Optional[Tuple[str, str]]:
        """(listing number, opaque token) embedded in a promotion redirect, or None."""
        if not self.promotion_pattern or not target:
            return None
        found = self.promotion_pattern.search(target)
        if not found:
            return None
        return found.group(1), found.group(2)

    def confirmation_form(self, number: str, promotion_token: str, page_token: str) -> Dict[str, str]:
        raise NotImplementedError

    @property
    def confirmation_path(self) -> str:
        raise NotImplementedError

    # --- outcome markers ---

    def listing_anchor_pattern(self) -> Pattern:
        prefix = re.escape(self.url(self.listing_path).rstrip("/") + "/")
        return re.compile(r"<a[^>]*href=[\"'](" + prefix + r"[^\"']+)[\"']", re.IGNORECASE)

    def find_listing_url(self, html: str) -> Optional[str]:
        found = self.listing_anchor_pattern().search(html or "")
        return found.group(1) if found else None

    def has_success_phrase(self, html: str) -> bool:
        html = html or ""
        return any(phrase in html for phrase in self.success_phrases)

    def is_listing_location(self, target: str) -> bool:
        prefix = self.url(self.listing_path).rstrip("/") + "/"
        return bool(target) and target.startswith(prefix)

    def is_login_location(self, target: str) -> bool:
        if not target:
            return False
        path = urlparse(target).path or target
        return path.rstrip("/") == self.login_path.rstrip("/")
