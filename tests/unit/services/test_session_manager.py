import threading
import time

import pytest
import requests

from listing_publisher.core.enums import LoginState
from listing_publisher.core.exceptions import AuthError, TransportError
from listing_publisher.services.platforms.netgun import NetgunAdapter
from listing_publisher.services.platforms.otobron import OtobronAdapter
from listing_publisher.services.session_manager import SessionManager
from tests.conftest import load_fixture, make_response

DOMAIN = "www.netgun.pl"


@pytest.fixture
def manager(settings, cache, http_session):
    return SessionManager(NetgunAdapter(settings), cache, settings, session_factory=lambda: http_session)


def patch_netgun_handshake(mocker, session, login_status=302, location="https://www.netgun.pl/", rotated="rotated%3Dtoken",
                           session_cookie="netgun_session=first"):
    """Patch get/post so they behave like the netgun login pages, setting cookies as the server would."""

    def fake_get(url, **kwargs):
        if url.endswith("/login"):
            session.cookies.set("XSRF-TOKEN", "pre-login%3D", domain=DOMAIN, path="/")
            return make_response(200, text=load_fixture("netgun_login.html"))
        session.cookies.set("netgun_session", "anonymous", domain=DOMAIN, path="/")
        return make_response(200, text="<html>home</html>")

    def fake_post(url, **kwargs):
        name, value = session_cookie.split("=", 1)
        session.cookies.set(name, value, domain=DOMAIN, path="/")
        if rotated:
            session.cookies.set("XSRF-TOKEN", rotated, domain=DOMAIN, path="/")
        headers = {"Location": location} if location else {}
        return make_response(login_status, text="", headers=headers)

    mock_get = mocker.patch.object(session, 'get', side_effect=fake_get)
    mock_post = mocker.patch.object(session, 'post', side_effect=fake_post)
    return mock_get, mock_post


def test_login_success_caches_session(manager, cache, http_session, mocker):
    mock_get, mock_post = patch_netgun_handshake(mocker, http_session)

    summary = manager.login()

    assert [c.args[0] for c in mock_get.call_args_list] == [
        "https://www.netgun.pl/",
        "https://www.netgun.pl/login",
    ]
    args, kwargs = mock_post.call_args
    assert args[0] == "https://www.netgun.pl/login"
    assert kwargs["data"] == {
        "_token": "login-token-123",
        "email": "sklep@example.com",
        "password": "secret",
        "remember": "on",
    }
    assert kwargs["allow_redirects"] is False
    assert kwargs["timeout"] == 30.0

    # cookielib iterates cookies sorted by name
    assert cache.get("netgun_session_cookies") == "XSRF-TOKEN=rotated%3Dtoken; netgun_session=first"
    assert cache.get("netgun_xsrf_token") == "rotated=token"
    assert manager.state == LoginState.AUTHENTICATED
    assert summary.platform_id == "netgun"
    assert summary.cookie_count == 2
    assert summary.token_preview == "rotated=to..."
    assert manager.is_logged_in()


def test_login_without_rotated_cookie_keeps_page_token(settings, cache, mocker):
    session = requests.Session()
    adapter = OtobronAdapter(settings)
    manager = SessionManager(adapter, cache, settings, session_factory=lambda: session)

    def fake_get(url, **kwargs):
        return make_response(200, text=load_fixture("otobron_login.html"))

    def fake_post(url, **kwargs):
        session.cookies.set("wordpress_logged_in_abc", "sklep%7C1", domain="otobron.pl", path="/")
        return make_response(302, headers={"Location": "https://otobron.pl/my-account/edit-account/"})

    mocker.patch.object(session, 'get', side_effect=fake_get)
    mock_post = mocker.patch.object(session, 'post', side_effect=fake_post)

    manager.login()

    assert mock_post.call_args.kwargs["data"]["woocommerce-login-nonce"] == "wc-nonce-42"
    assert cache.get("otobron_session_cookies") == "wordpress_logged_in_abc=sklep%7C1"
    assert cache.get("otobron_xsrf_token") == "wc-nonce-42"


def otobron_manager(settings, cache, mocker, logged_in_cookie=True):
    """Manager over a scripted WooCommerce login that always redirects back to my-account."""
    session = requests.Session()

    def fake_get(url, **kwargs):
        return make_response(200, text=load_fixture("otobron_login.html"))

    def fake_post(url, **kwargs):
        session.cookies.set("wordpress_test_cookie", "WP%20Cookie%20check", domain="otobron.pl", path="/")
        if logged_in_cookie:
            session.cookies.set("wordpress_logged_in_abc", "sklep%7C1", domain="otobron.pl", path="/")
        return make_response(302, headers={"Location": "https://otobron.pl/my-account/"})

    mocker.patch.object(session, 'get', side_effect=fake_get)
    mocker.patch.object(session, 'post', side_effect=fake_post)
    return SessionManager(OtobronAdapter(settings), cache, settings, session_factory=lambda: session)


def test_otobron_login_redirected_to_my_account_succeeds(settings, cache, mocker):
    manager = otobron_manager(settings, cache, mocker)

    summary = manager.login()

    assert manager.is_logged_in()
    assert manager.state == LoginState.AUTHENTICATED
    assert summary.cookie_count == 2
    assert "wordpress_logged_in_abc=sklep%7C1" in cache.get("otobron_session_cookies")
    assert cache.get("otobron_xsrf_token") == "wc-nonce-42"


def test_otobron_login_without_logged_in_cookie_fails(settings, cache, mocker):
    manager = otobron_manager(settings, cache, mocker, logged_in_cookie=False)

    with pytest.raises(AuthError, match="wordpress_logged_in_"):
        manager.login()

    assert not manager.is_logged_in()
    assert manager.state == LoginState.LOGIN_FAILED


def test_login_fails_without_token(manager, cache, http_session, mocker):
    mocker.patch.object(http_session, 'get', return_value=make_response(200, text="<html>maintenance</html>"))
    mock_post = mocker.patch.object(http_session, 'post')

    with pytest.raises(AuthError, match="login token"):
        manager.login()

    mock_post.assert_not_called()
    assert manager.state == LoginState.LOGIN_FAILED
    assert not manager.is_logged_in()


def test_login_fails_on_non_redirect(manager, cache, http_session, mocker):
    patch_netgun_handshake(mocker, http_session, login_status=200, location=None)

    with pytest.raises(AuthError, match="HTTP 200"):
        manager.login()

    assert cache.get("netgun_session_cookies") is None
    assert manager.state == LoginState.LOGIN_FAILED


def test_login_fails_when_redirected_back_to_login(manager, cache, http_session, mocker):
    patch_netgun_handshake(mocker, http_session, location="/login")

    with pytest.raises(AuthError):
        manager.login()

    assert not manager.is_logged_in()


def test_login_without_credentials(settings, cache, http_session, mocker):
    settings.NETGUN_PASSWORD = ""
    manager = SessionManager(NetgunAdapter(settings), cache, settings, session_factory=lambda: http_session)
    mock_get = mocker.patch.object(http_session, 'get')

    with pytest.raises(AuthError, match="No credentials"):
        manager.login()

    mock_get.assert_not_called()


def test_login_transport_error(manager, http_session, mocker):
    mocker.patch.object(http_session, 'get', side_effect=requests.Timeout("slow"))

    with pytest.raises(TransportError, match="timed out"):
        manager.login()

    assert not manager.is_logged_in()


def test_two_sequential_logins_keep_latest(manager, cache, http_session, mocker):
    patch_netgun_handshake(mocker, http_session, rotated="first-token", session_cookie="netgun_session=first")
    manager.login()

    http_session.cookies.clear()
    patch_netgun_handshake(mocker, http_session, rotated="second-token", session_cookie="netgun_session=second")
    manager.login()

    assert cache.get("netgun_xsrf_token") == "second-token"
    assert "netgun_session=second" in cache.get("netgun_session_cookies")
    assert "first" not in cache.get("netgun_session_cookies")


@pytest.mark.parametrize("cookies, token, expected", [
    ("a=1", "tok", True),
    ("a=1", None, False),
    (None, "tok", False),
    (None, None, False),
])
def test_is_logged_in_truth_table(manager, cache, cookies, token, expected):
    if cookies is not None:
        cache.put("netgun_session_cookies", cookies, 60)
    if token is not None:
        cache.put("netgun_xsrf_token", token, 60)

    assert manager.is_logged_in() is expected
    assert (manager.current_session() is not None) is expected


def test_current_session(manager, netgun_logged_in):
    session = manager.current_session()

    assert session.platform_id == "netgun"
    assert session.csrf_token == "cached=token"
    assert session.is_usable
    assert [c.name for c in session.cookie_jar] == ["netgun_session", "XSRF-TOKEN"]
    assert {c.domain for c in session.cookie_jar} == {DOMAIN}


def test_open_http_session_carries_cookies(manager, netgun_logged_in, http_session):
    session = manager.open_http_session(manager.current_session())

    assert session is http_session
    assert session.cookies.get("netgun_session", domain=DOMAIN) == "abc123"


def test_logout(manager, netgun_logged_in):
    manager.logout()

    assert not manager.is_logged_in()
    assert manager.state == LoginState.ANONYMOUS


def test_concurrent_logins_are_serialised(settings, cache, mocker):
    active = {"now": 0, "max": 0}
    guard = threading.Lock()

    def make_session():
        session = requests.Session()

        def fake_get(url, **kwargs):
            with guard:
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
            time.sleep(0.02)
            with guard:
                active["now"] -= 1
            if url.endswith("/login"):
                return make_response(200, text=load_fixture("netgun_login.html"))
            return make_response(200, text="home")

        def fake_post(url, **kwargs):
            session.cookies.set("netgun_session", "s", domain=DOMAIN, path="/")
            return make_response(302, headers={"Location": "https://www.netgun.pl/"})

        mocker.patch.object(session, 'get', side_effect=fake_get)
        mocker.patch.object(session, 'post', side_effect=fake_post)
        return session

    managers = [
        SessionManager(NetgunAdapter(settings), cache, settings, session_factory=make_session)
        for _ in range(4)
    ]
    threads = [threading.Thread(target=m.login) for m in managers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert active["max"] == 1
    assert cache.get("netgun_xsrf_token") == "login-token-123"
    assert cache.get("netgun_session_cookies") == "netgun_session=s"
