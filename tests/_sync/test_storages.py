import pytest
from inline_snapshot import snapshot

from outcache import InMemoryStore

NOW = 1440504000

FEED_BASE = "feeds-getrssfeed[feedid=33]"
FEED_KEY = "feeds-getrssfeed[feedid=33]:feedid=33:application/json"



def test_add_and_get(clock):
    store = InMemoryStore(clock=clock)

    store.add("key", b"value", NOW + 60)

    assert store.contains("key")
    assert store.get("key") == b"value"
    assert store.get("missing") is None
    assert not store.contains("missing")

    store.close()



def test_add_replaces_value(clock):
    store = InMemoryStore(clock=clock)

    store.add("key", b"first", NOW + 60)
    store.add("key", bytearray(b"second"), NOW + 60)

    assert store.get("key") == b"second"
    assert isinstance(store.get("key"), bytes)
    assert store.all_keys() == ["key"]



def test_expired_entries_are_missing(clock):
    store = InMemoryStore(clock=clock)
    store.add("key", b"value", NOW + 60)

    clock.advance(60)

    assert not store.contains("key")
    assert store.get("key") is None
    assert store.all_keys() == []



def test_add_variant(clock):
    store = InMemoryStore(clock=clock)

    store.add_variant(FEED_KEY, b"<rss/>", "application/rss+xml", "etag", NOW + 60, FEED_BASE)

    assert sorted(store.all_keys()) == snapshot(
        [
            "feeds-getrssfeed[feedid=33]",
            "feeds-getrssfeed[feedid=33]:feedid=33:application/json",
            "feeds-getrssfeed[feedid=33]:feedid=33:application/json:contenttype",
            "feeds-getrssfeed[feedid=33]:feedid=33:application/json:etag",
        ]
    )
    assert store.get(FEED_BASE) == ""
    assert store.get(FEED_KEY) == b"<rss/>"
    assert store.get(FEED_KEY + ":contenttype") == "application/rss+xml"
    assert store.get(FEED_KEY + ":etag") == "etag"



def test_add_variant_keeps_stored_variant(clock):
    store = InMemoryStore(clock=clock)

    assert store.add_variant(FEED_KEY, b"<rss/>", None, "etag1", NOW + 60, FEED_BASE) == (True, "etag1")
    assert store.add_variant(FEED_KEY, b"<rss>new</rss>", None, "etag2", NOW + 60, FEED_BASE) == (
        False,
        "etag1",
    )

    assert store.get(FEED_KEY) == b"<rss/>"
    assert store.get(FEED_KEY + ":etag") == "etag1"



def test_add_variant_replaces_expired_variant(clock):
    store = InMemoryStore(clock=clock)
    store.add_variant(FEED_KEY, b"<rss/>", None, "etag1", NOW + 60, FEED_BASE)

    clock.advance(60)

    assert store.add_variant(FEED_KEY, b"<rss>new</rss>", None, "etag2", NOW + 120, FEED_BASE) == (
        True,
        "etag2",
    )
    assert store.get(FEED_KEY) == b"<rss>new</rss>"



def test_add_variant_without_content_type(clock):
    store = InMemoryStore(clock=clock)

    store.add_variant(FEED_KEY, b"<rss/>", None, "etag", NOW + 60, FEED_BASE)

    assert not store.contains(FEED_KEY + ":contenttype")
    assert store.contains(FEED_KEY + ":etag")



def test_base_marker_outlives_its_variants(clock):
    store = InMemoryStore(clock=clock)

    store.add_variant(FEED_KEY, b"<rss/>", None, "etag", NOW + 60, FEED_BASE)
    store.add_variant(FEED_KEY + "&page=2", b"<rss/>", None, "etag", NOW + 30, FEED_BASE)

    clock.advance(40)

    assert store.contains(FEED_BASE)
    assert store.contains(FEED_KEY)
    assert not store.contains(FEED_KEY + "&page=2")



def test_remove_drops_siblings(clock):
    store = InMemoryStore(clock=clock)
    store.add_variant(FEED_KEY, b"<rss/>", "application/rss+xml", "etag", NOW + 60, FEED_BASE)

    store.remove(FEED_KEY + ":etag")

    assert store.all_keys() == [FEED_BASE]



def test_remove_drops_dependents(clock):
    store = InMemoryStore(clock=clock)
    store.add_variant(FEED_KEY, b"<rss/>", "application/rss+xml", "etag", NOW + 60, FEED_BASE)
    store.add_variant(FEED_KEY + "&page=2", b"<rss/>", None, "etag", NOW + 60, FEED_BASE)

    store.remove(FEED_BASE)

    assert store.all_keys() == []



def test_remove_missing_key(clock):
    store = InMemoryStore(clock=clock)

    store.remove("missing")

    assert store.all_keys() == []



def test_remove_by_prefix(clock):
    store = InMemoryStore(clock=clock)
    store.add_variant(FEED_KEY, b"<rss/>", "application/rss+xml", "etag", NOW + 60, FEED_BASE)
    store.add_variant(
        "feeds-getrssfeed[feedid=44]:feedid=44:application/json",
        b"<rss/>",
        "application/rss+xml",
        "etag",
        NOW + 60,
        "feeds-getrssfeed[feedid=44]",
    )
    store.add("comments-getcomments", b"[]", NOW + 60)

    assert store.remove_by_prefix(FEED_BASE) == 4
    assert store.remove_by_prefix(FEED_BASE) == 0

    assert sorted(store.all_keys()) == snapshot(
        [
            "comments-getcomments",
            "feeds-getrssfeed[feedid=44]",
            "feeds-getrssfeed[feedid=44]:feedid=44:application/json",
            "feeds-getrssfeed[feedid=44]:feedid=44:application/json:contenttype",
            "feeds-getrssfeed[feedid=44]:feedid=44:application/json:etag",
        ]
    )



def test_remove_by_prefix_is_literal(clock):
    store = InMemoryStore(clock=clock)
    store.add("feeds-getrssfeed", "", NOW + 60)
    store.add("feeds-getrssfeed[feedid=33]", "", NOW + 60)
    store.add("feeds-getrssfeeds", "", NOW + 60)

    assert store.remove_by_prefix("feeds-getrssfeed") == 3
    assert store.all_keys() == []



def test_expiration_does_not_cascade(clock):
    store = InMemoryStore(clock=clock)
    store.add("base", "", NOW + 10)
    store.add("base:variant:", b"value", NOW + 60, depends_on="base")

    clock.advance(20)

    assert not store.contains("base")
    assert store.get("base:variant:") == b"value"



def test_sweep_on_add(clock):
    store = InMemoryStore(clock=clock, sweep_interval=60)
    store.add("first", b"1", NOW + 10)
    store.add("second", b"2", NOW + 1000)

    clock.advance(30)
    store.add("third", b"3", NOW + 1000)
    assert sorted(store.all_keys()) == ["first", "second", "third"]

    clock.advance(30)
    store.add("fourth", b"4", NOW + 1000)
    assert sorted(store.all_keys()) == ["fourth", "second", "third"]



def test_remove_expired(clock):
    store = InMemoryStore(clock=clock)
    store.add("first", b"1", NOW + 10)
    store.add("second", b"2", NOW + 20)
    store.add("third", b"3", NOW + 1000)

    clock.advance(20)

    assert store.remove_expired() == 2
    assert store.all_keys() == ["third"]


def test_sweep_interval_must_be_positive():
    with pytest.raises(ValueError):
        InMemoryStore(sweep_interval=0)
