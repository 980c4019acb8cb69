# listing_publisher/services/http.py
"""
Request wrapper shared by the login handshake, uploads and submissions.

Every call carries a bounded timeout and never follows redirects, so 3xx
answers (the success signal on these sites) stay observable. Network failures
come back as TransportError instead of a zoo of requests exceptions.
"""

import logging
from typing import Optional
from urllib.parse import urljoin

import requests

from listing_publisher.core.exceptions import TransportError

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


def send(session: requests.Session, method: str, url: str, timeout: float, **kwargs) -> requests.Response:
    kwargs.setdefault("allow_redirects", False)
    try:
        response = getattr(session, method.lower())(url, timeout=timeout, **kwargs)
    except requests.Timeout as e:
        raise TransportError(f"{method} {url} timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise TransportError(f"{method} {url} failed: {e}") from e
    logger.info(f"{method} {url} -> {response.status_code}")
    return response


def is_redirect(response: requests.Response) -> bool:
    return response.status_code in REDIRECT_STATUSES and bool(location(response))


def location(response: requests.Response, base_url: Optional[str] = None) -> str:
    """Location header of a response, made absolute against base_url when given."""
    value = response.headers.get("Location") or response.headers.get("location") or ""
    if value and base_url:
        return urljoin(base_url + "/", value)
    return value


def snippet(text: Optional[str], length: int = 500) -> str:
    return (text or "")[:length]
