import pytest
from pydantic import ValidationError

from listing_publisher.core.enums import SubmissionStatus
from listing_publisher.schemas.listing import (
    CookieEntry,
    ListingPayload,
    ListingRequest,
    PlatformSession,
    SubmissionOutcome,
)


def test_listing_request_coercion():
    request = ListingRequest(platform_id="netgun", subject_id=12, title="t", price="599.99",
                             image_references=["a", "b"])

    assert request.subject_id == "12"
    assert request.price == 599
    assert request.image_references == ("a", "b")
    assert ListingRequest(platform_id="netgun", subject_id=1, title="t", price=1,
                          image_references=None).image_references == ()


def test_listing_request_is_immutable():
    request = ListingRequest(platform_id="netgun", subject_id="1", title="t", price=1)

    with pytest.raises(ValidationError):
        request.title = "changed"


def test_platform_session_usable_only_with_cookies_and_token():
    cookie = CookieEntry(name="a", value="1", domain="www.netgun.pl")

    assert PlatformSession(platform_id="netgun", cookie_jar=[cookie], csrf_token="t").is_usable
    assert not PlatformSession(platform_id="netgun", cookie_jar=[cookie]).is_usable
    assert not PlatformSession(platform_id="netgun", csrf_token="t").is_usable
    assert PlatformSession(platform_id="netgun", cookie_jar=[cookie, cookie]).cookie_string == "a=1; a=1"


def test_outcome_variants():
    published = SubmissionOutcome.published("https://www.netgun.pl/ogloszenie/1", "netgun_responses/x.html")
    rejected = SubmissionOutcome.rejected("no publish confirmation", "netgun_responses/y.html")
    expired = SubmissionOutcome.session_expired()
    transport = SubmissionOutcome.transport_error("timed out")

    assert published.success and published.status == SubmissionStatus.PUBLISHED
    assert not rejected.success
    assert rejected.message == "Listing rejected: no publish confirmation"
    assert expired.message == "Session expired, log in again"
    assert transport.message == "Transport error: timed out"


def test_listing_payload_to_request():
    payload = ListingPayload(subject_id=5, title="t", price=10.5, image_references=["a"])

    request = payload.to_request("otobron")

    assert request.platform_id == "otobron"
    assert request.subject_id == "5"
    assert request.price == 10
    assert request.image_references == ("a",)
