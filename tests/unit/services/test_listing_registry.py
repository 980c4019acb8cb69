from listing_publisher.services.listing_registry import ListingRegistry


def test_record_and_lookup(cache):
    registry = ListingRegistry(cache, "netgun", ttl=60)

    registry.record("42", "https://www.netgun.pl/ogloszenie/144073")
    registry.record(43, None)

    assert registry.is_listed("42")
    assert registry.is_listed("43")
    assert not registry.is_listed("44")
    assert registry.listing_url(42) == "https://www.netgun.pl/ogloszenie/144073"
    assert registry.listing_url("43") is None
    assert cache.get("listed_netgun") == {
        "42": "https://www.netgun.pl/ogloszenie/144073",
        "43": None,
    }


def test_platforms_are_separate(cache):
    ListingRegistry(cache, "netgun", ttl=60).record("1", "u")

    assert not ListingRegistry(cache, "otobron", ttl=60).is_listed("1")
