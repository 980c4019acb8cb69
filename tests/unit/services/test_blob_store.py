from unittest.mock import MagicMock

import pytest
import requests

from listing_publisher.core.exceptions import BlobNotFoundError, TransportError
from listing_publisher.services.blob_store import HttpBlobStore, LocalBlobStore
from tests.conftest import make_response


def test_local_get(blob_dir, blob_store):
    (blob_dir / "products").mkdir()
    (blob_dir / "products" / "a.jpg").write_bytes(b"\xff\xd8jpeg")

    assert blob_store.get("products/a.jpg") == b"\xff\xd8jpeg"


def test_local_missing_key(blob_store):
    with pytest.raises(BlobNotFoundError):
        blob_store.get("nope.jpg")


def test_local_rejects_keys_outside_root(blob_dir, blob_store):
    (blob_dir.parent / "secret.txt").write_text("x")

    with pytest.raises(BlobNotFoundError):
        blob_store.get("../secret.txt")


def test_local_url(blob_dir):
    assert LocalBlobStore(str(blob_dir), base_url="https://cdn.example.com/").url("a b.jpg") == \
        "https://cdn.example.com/a%20b.jpg"
    assert LocalBlobStore(str(blob_dir)).url("a.jpg").startswith("file://")


def test_http_get(mocker):
    session = requests.Session()
    mock_get = mocker.patch.object(session, 'get', return_value=make_response(200, content=b"bytes"))
    store = HttpBlobStore("https://cdn.example.com", timeout=5, session=session)

    assert store.get("img/1.jpg") == b"bytes"
    mock_get.assert_called_once_with("https://cdn.example.com/img/1.jpg", timeout=5)


@pytest.mark.parametrize("status_code, error", [(404, BlobNotFoundError), (500, TransportError)])
def test_http_errors(status_code, error):
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response(status_code)
    store = HttpBlobStore("https://cdn.example.com", session=session)

    with pytest.raises(error):
        store.get("img/1.jpg")


def test_http_network_failure():
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(TransportError):
        HttpBlobStore("https://cdn.example.com", session=session).get("img/1.jpg")
