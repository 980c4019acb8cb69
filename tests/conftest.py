# tests/conftest.py
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from listing_publisher.core.config import Settings
from listing_publisher.services.blob_store import LocalBlobStore
from listing_publisher.services.session_cache import MemorySessionCache

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def make_response(status_code=200, text="", headers=None, json_data=None, content=None):
    """A requests.Response stand-in, as returned by the patched session methods."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    response.content = content if content is not None else text.encode("utf-8")
    response.headers = headers or {}
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    return response


@pytest.fixture
def settings(tmp_path):
    """Provide test settings"""
    return Settings(
        _env_file=None,
        NETGUN_USERNAME="sklep@example.com",
        NETGUN_PASSWORD="secret",
        NETGUN_EMAIL="sklep@example.com",
        NETGUN_PHONE="500600700",
        NETGUN_NICKNAME="militariaforty",
        NETGUN_CITY="Białystok",
        NETGUN_PROVINCE="podlaskie",
        NETGUN_SHOP_URL="https://militariaforty.pl",
        OTOBRON_USERNAME="sklep",
        OTOBRON_PASSWORD="secret",
        OTOBRON_EMAIL="sklep@example.com",
        OTOBRON_PHONE="500600700",
        OTOBRON_ADDRESS="Białystok, Polska",
        OTOBRON_LAT="53.1325",
        OTOBRON_LNG="23.1688",
        AUDIT_DIR=str(tmp_path / "responses"),
        SESSION_CACHE_FILE=str(tmp_path / "session_cache.json"),
        BLOB_DIR=str(tmp_path / "blobs"),
    )


@pytest.fixture
def cache():
    return MemorySessionCache()


@pytest.fixture
def blob_dir(tmp_path):
    path = tmp_path / "blobs"
    path.mkdir()
    return path


@pytest.fixture
def blob_store(blob_dir):
    return LocalBlobStore(str(blob_dir))


@pytest.fixture
def http_session():
    """A real requests.Session whose get/post the tests patch."""
    session = requests.Session()
    yield session
    session.close()


@pytest.fixture
def netgun_logged_in(cache, settings):
    """Cache holding a usable netgun session."""
    cache.put_many(
        {
            "netgun_session_cookies": "netgun_session=abc123; XSRF-TOKEN=cached%3Dtoken",
            "netgun_xsrf_token": "cached=token",
        },
        settings.session_ttl_seconds,
    )
    return cache


def form_values(body, name):
    """All values sent under a field name in an EncodedBody, urlencoded pairs or multipart parts."""
    values = []
    if isinstance(body.data, dict):
        if name in body.data:
            values.append(body.data[name])
    elif body.data:
        values.extend(value for key, value in body.data if key == name)
    if body.files:
        values.extend(part[1] for key, part in body.files if key == name)
    return values
