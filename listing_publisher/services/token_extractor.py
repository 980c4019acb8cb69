# listing_publisher/services/token_extractor.py
"""
CSRF token discovery.

Runs an ordered list of matchers over a page (and optionally the cookie jar)
and returns the first hit. A miss is reported as an empty string, never raised:
callers treat "" as "cannot proceed", which is distinct from a network failure.
"""

import logging
import re
from typing import Iterable, List, Optional

from listing_publisher.services.cookies import find_cookie

logger = logging.getLogger(__name__)


class TokenMatcher:
    """One strategy for locating a token."""

    name = "matcher"

    def match(self, html: str, cookie_jar: Optional[Iterable] = None) -> str:
        raise NotImplementedError


class RegexInputMatcher(TokenMatcher):
    """Hidden input whose name attribute equals the token field; value captured by group 1."""

    def __init__(self, name: str, pattern: str):
        self.name = name
        self.pattern = re.compile(pattern, re.IGNORECASE)

    def match(self, html, cookie_jar=None):
        if not html:
            return ""
        found = self.pattern.search(html)
        return found.group(1) if found else ""


class CookieMatcher(TokenMatcher):
    """Token mirrored into a cookie (URL-encoded)."""

    def __init__(self, cookie_name: str):
        self.name = f"cookie:{cookie_name}"
        self.cookie_name = cookie_name

    def match(self, html, cookie_jar=None):
        return find_cookie(cookie_jar, self.cookie_name)


def input_matchers(field_name: str) -> List[TokenMatcher]:
    """The two tolerant patterns for `<input name=... value=...>` in either attribute order."""
    field = re.escape(field_name)
    return [
        RegexInputMatcher(
            "input:name-first",
            r"<input[^>]*name=[\"']" + field + r"[\"'][^>]*value=[\"']([^\"']+)[\"']",
        ),
        RegexInputMatcher(
            "input:value-first",
            r"<input[^>]*value=[\"']([^\"']+)[\"'][^>]*name=[\"']" + field + r"[\"']",
        ),
    ]


class TokenExtractor:
    """
    Ordered token lookup for one platform.

    Default order: hidden input (name-first, then value-first), then the token
    cookie if the platform mirrors one. Extra matchers can be appended for new
    markup variants without touching callers.
    """

    def __init__(self, field_name: str, cookie_name: Optional[str] = None, matchers: Optional[List[TokenMatcher]] = None):
        self.field_name = field_name
        self.cookie_name = cookie_name
        if matchers is None:
            matchers = input_matchers(field_name)
            if cookie_name:
                matchers.append(CookieMatcher(cookie_name))
        self.matchers = matchers

    def extract(self, html: str, cookie_jar: Optional[Iterable] = None) -> str:
        for matcher in self.matchers:
            token = matcher.match(html or "", cookie_jar)
            if token:
                logger.debug(f"Token '{self.field_name}' found via {matcher.name}")
                return token
        logger.debug(f"Token '{self.field_name}' not found ({len(self.matchers)} matchers tried)")
        return ""

    def extract_from_cookies(self, cookie_jar: Optional[Iterable]) -> str:
        """Cookie-only rescan, used after login when the jar may carry a rotated token."""
        if not self.cookie_name:
            return ""
        return find_cookie(cookie_jar, self.cookie_name)
