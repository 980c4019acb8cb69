# listing_publisher/services/session_manager.py
"""
Login handshake and session persistence for one platform.

The handshake mimics a browser: homepage, login page (token), credentials POST
without following the redirect, then a rescan of the jar for a rotated token.
Only a complete session (cookies and token) is written to the cache; the cache
is the single answer to "is this platform logged in".
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import requests

from listing_publisher.core.config import Settings
from listing_publisher.core.enums import LoginState
from listing_publisher.core.exceptions import AuthError
from listing_publisher.schemas.listing import PlatformSession, SessionSummary
from listing_publisher.services.cookies import jar_to_string, string_to_entries, string_to_jar
from listing_publisher.services.http import is_redirect, location, send, snippet
from listing_publisher.services.platforms.base import PlatformAdapter
from listing_publisher.services.session_cache import SessionCache

logger = logging.getLogger(__name__)


def token_preview(token: str, length: int = 10) -> str:
    return f"{token[:length]}..." if token else ""


class SessionManager:

    # One lock per platform, shared by every manager in the process
    _login_locks: Dict[str, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(
        self,
        adapter: PlatformAdapter,
        cache: SessionCache,
        settings: Settings,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.adapter = adapter
        self.cache = cache
        self.settings = settings
        self.session_factory = session_factory
        self.state = LoginState.ANONYMOUS

    @property
    def platform_id(self) -> str:
        return self.adapter.platform_id

    @property
    def cookies_key(self) -> str:
        return f"{self.platform_id}_session_cookies"

    @property
    def token_key(self) -> str:
        return f"{self.platform_id}_xsrf_token"

    def _login_lock(self) -> threading.Lock:
        with self._locks_guard:
            if self.platform_id not in self._login_locks:
                self._login_locks[self.platform_id] = threading.Lock()
            return self._login_locks[self.platform_id]

    def _set_state(self, state: LoginState):
        self.state = state
        logger.info(f"{self.platform_id} login: {state.value}")

    def _fail(self, reason: str):
        self._set_state(LoginState.LOGIN_FAILED)
        logger.error(f"{self.platform_id} login failed: {reason}")
        raise AuthError(reason)

    # --- login ---

    def login(self) -> SessionSummary:
        """
        Run the login handshake and cache the resulting session.

        Raises:
            AuthError: no token on the login page, credentials not accepted,
                or an incomplete session after login.
            TransportError: a request failed or timed out.
        """
        with self._login_lock():
            return self._login()

    def _login(self) -> SessionSummary:
        adapter = self.adapter
        timeout = self.settings.HTTP_TIMEOUT
        username, password = adapter.credentials()
        if not username or not password:
            self._fail(f"No credentials configured for {self.platform_id}")

        session = self.session_factory()
        self._set_state(LoginState.ANONYMOUS)
        try:
            send(session, "GET", adapter.url(adapter.home_path), timeout,
                 headers=adapter.browser_headers(), allow_redirects=True)
            self._set_state(LoginState.HOMEPAGE_VISITED)

            login_url = adapter.url(adapter.login_path)
            login_page = send(session, "GET", login_url, timeout,
                              headers=adapter.browser_headers(referer=adapter.url(adapter.home_path)),
                              allow_redirects=True)
            token = adapter.login_token_extractor().extract(login_page.text, session.cookies)
            if not token:
                self._fail(f"Could not find login token on {login_url} (HTTP {login_page.status_code})")
            self._set_state(LoginState.LOGIN_PAGE_FETCHED)
            logger.info(f"{self.platform_id} login token: {token_preview(token)}")

            response = send(session, "POST", login_url, timeout,
                            headers=adapter.form_headers(referer=login_url),
                            data=adapter.login_form(token))
            self._set_state(LoginState.CREDENTIALS_SUBMITTED)

            if not is_redirect(response):
                self._fail(
                    f"Login not accepted: expected redirect, got HTTP {response.status_code}: "
                    f"{snippet(response.text, 200)}"
                )
            reason = adapter.login_rejection(location(response, adapter.base_url), session.cookies)
            if reason:
                self._fail(f"Login not accepted: {reason}")

            fresh_token = adapter.token_extractor().extract_from_cookies(session.cookies) or token
            cookie_string = jar_to_string(session.cookies)
            if not cookie_string or not fresh_token:
                self._fail("Login produced an incomplete session (no cookies or token)")

            self.cache.put_many(
                {self.cookies_key: cookie_string, self.token_key: fresh_token},
                self.settings.session_ttl_seconds,
            )
            self._set_state(LoginState.AUTHENTICATED)
        finally:
            session.close()

        logger.info(
            f"{self.platform_id} session cached: {len(session.cookies)} cookies, "
            f"token {token_preview(fresh_token)}"
        )
        return SessionSummary(
            platform_id=self.platform_id,
            cookie_count=len(session.cookies),
            token_preview=token_preview(fresh_token),
            captured_at=datetime.now(timezone.utc),
        )

    # --- cached session ---

    def is_logged_in(self) -> bool:
        return bool(self.cache.get(self.cookies_key)) and bool(self.cache.get(self.token_key))

    def current_session(self) -> Optional[PlatformSession]:
        cookies = self.cache.get(self.cookies_key)
        token = self.cache.get(self.token_key)
        if not cookies or not token:
            return None
        return PlatformSession(
            platform_id=self.platform_id,
            cookie_jar=string_to_entries(cookies, self.adapter.cookie_domain),
            csrf_token=token,
        )

    def logout(self):
        self.cache.forget(self.cookies_key)
        self.cache.forget(self.token_key)
        self._set_state(LoginState.ANONYMOUS)

    def open_http_session(self, platform_session: PlatformSession) -> requests.Session:
        """A requests session carrying the cached cookies, bound to the platform domain."""
        session = self.session_factory()
        session.cookies = string_to_jar(platform_session.cookie_string, self.adapter.cookie_domain)
        return session
