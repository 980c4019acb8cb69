# listing_publisher/services/cookies.py
"""
Helpers for moving a cookie jar in and out of the flat `name=value; name=value`
form stored in the session cache.
"""

import logging
from typing import Iterable, List, Optional
from urllib.parse import unquote

from requests.cookies import RequestsCookieJar

from listing_publisher.schemas.listing import CookieEntry

logger = logging.getLogger(__name__)


def jar_to_string(jar: RequestsCookieJar) -> str:
    """Serialize a jar to `name=value; name=value` (jar order)."""
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in jar)


def parse_cookie_string(cookie_string: str) -> List[tuple]:
    pairs = []
    if not cookie_string:
        return pairs
    for part in cookie_string.split(";"):
        if "=" not in part:
            continue
        name, value = part.split("=", 1)
        name = name.strip()
        if name:
            pairs.append((name, value.strip()))
    return pairs


def string_to_jar(cookie_string: str, domain: str, path: str = "/") -> RequestsCookieJar:
    """Rebuild a jar from a cached cookie string, binding every cookie to the platform domain."""
    jar = RequestsCookieJar()
    for name, value in parse_cookie_string(cookie_string):
        jar.set(name, value, domain=domain, path=path)
    return jar


def string_to_entries(cookie_string: str, domain: str) -> List[CookieEntry]:
    return [CookieEntry(name=name, value=value, domain=domain) for name, value in parse_cookie_string(cookie_string)]


def find_cookie(jar: Optional[Iterable], name: str, decode: bool = True) -> str:
    """Return the value of the first cookie called `name`, URL-decoded, or ""."""
    if not jar or not name:
        return ""
    for cookie in jar:
        if cookie.name == name and cookie.value:
            return unquote(cookie.value) if decode else cookie.value
    return ""
