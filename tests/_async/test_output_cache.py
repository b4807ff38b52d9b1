import base64
import hashlib

import pytest
from inline_snapshot import snapshot

from outcache import (
    AsyncInMemoryStore,
    AsyncOutputCache,
    CachePolicy,
    HandlerOutcome,
    Headers,
    KeyGenerator,
    RequestContext,
    ResourceIdentity,
)

FEED = ResourceIdentity("Feeds", "GetRssFeed")
POLICY = CachePolicy.seconds(server=60, client=30, cache_args="feedId")
OUTCOME = HandlerOutcome(succeeded=True, payload=b"<rss/>", content_type="application/rss+xml")


@pytest.mark.anyio
async def test_miss(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)

    assert await output_cache.before_handle(RequestContext(FEED, {"feedId": 33}), POLICY) is None


@pytest.mark.anyio
async def test_store_and_hit(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    context = RequestContext(FEED, {"feedId": 33})

    result = await output_cache.after_handle(context, POLICY, OUTCOME)

    assert result is not None
    assert result.stored
    assert result.key == "feeds-getrssfeed[feedid=33]:feedid=33:application/json"
    assert result.etag is not None
    assert result.headers() == {"ETag": f'"{result.etag}"', "Cache-Control": "max-age=30"}

    cached = await output_cache.before_handle(RequestContext(FEED, {"feedId": 33}), POLICY)

    assert cached is not None
    assert cached.status_code == 200
    assert not cached.not_modified
    assert cached.payload == b"<rss/>"
    assert cached.content_type == "application/rss+xml"
    assert cached.etag == result.etag
    assert cached.headers() == {
        "Content-Type": "application/rss+xml",
        "ETag": f'"{result.etag}"',
        "Cache-Control": "max-age=30",
    }


@pytest.mark.anyio
async def test_variants_are_separate(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)

    await output_cache.after_handle(RequestContext(FEED, {"feedId": 33}), POLICY, OUTCOME)

    assert await output_cache.before_handle(RequestContext(FEED, {"feedId": 44}), POLICY) is None
    assert await output_cache.before_handle(RequestContext(FEED, {"feedId": 33}, query=[("page", "2")]), POLICY) is None
    assert (
        await output_cache.before_handle(RequestContext(FEED, {"feedId": 33}, representation="text/html"), POLICY)
        is None
    )


@pytest.mark.anyio
async def test_callback_param_does_not_vary(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)

    first = RequestContext(FEED, {"feedId": 33}, query=[("callback", "jQuery1")])
    second = RequestContext(FEED, {"feedId": 33}, query=[("callback", "jQuery2")])

    await output_cache.after_handle(first, POLICY, OUTCOME)
    cached = await output_cache.before_handle(second, POLICY)

    assert cached is not None
    assert cached.payload == b"<rss/>"


@pytest.mark.anyio
async def test_excluded_query_does_not_vary(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    policy = CachePolicy.seconds(server=60, exclude_query=True)

    await output_cache.after_handle(RequestContext(FEED, query=[("utm_source", "mail")]), policy, OUTCOME)

    assert await output_cache.before_handle(RequestContext(FEED, query=[("utm_source", "rss")]), policy) is not None


@pytest.mark.anyio
async def test_not_modified(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    result = await output_cache.after_handle(RequestContext(FEED, {"feedId": 33}), POLICY, OUTCOME)
    assert result is not None and result.etag is not None

    context = RequestContext(FEED, {"feedId": 33}, headers=Headers({"If-None-Match": f'"{result.etag}"'}))
    cached = await output_cache.before_handle(context, POLICY)

    assert cached is not None
    assert cached.status_code == 304
    assert cached.not_modified
    assert cached.payload == b""
    assert cached.headers() == {"ETag": f'"{result.etag}"', "Cache-Control": "max-age=30"}


@pytest.mark.anyio
async def test_stale_client_copy(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    await output_cache.after_handle(RequestContext(FEED, {"feedId": 33}), POLICY, OUTCOME)

    context = RequestContext(FEED, {"feedId": 33}, headers=Headers({"If-None-Match": '"outdated"'}))
    cached = await output_cache.before_handle(context, POLICY)

    assert cached is not None
    assert cached.status_code == 200
    assert cached.payload == b"<rss/>"


@pytest.mark.anyio
async def test_content_hash_etag(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    policy = CachePolicy.seconds(server=60, hash_content_for_etag=True)

    result = await output_cache.after_handle(RequestContext(FEED), policy, OUTCOME)

    assert result is not None
    assert result.etag == base64.b64encode(hashlib.sha256(b"<rss/>").digest()).decode("ascii")


@pytest.mark.anyio
async def test_already_stored(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    context = RequestContext(FEED, {"feedId": 33})

    first = await output_cache.after_handle(context, POLICY, OUTCOME)
    second = await output_cache.after_handle(
        context, POLICY, HandlerOutcome(succeeded=True, payload=b"<rss>new</rss>", content_type="application/rss+xml")
    )

    assert first is not None and second is not None
    assert not second.stored
    assert second.etag == first.etag

    cached = await output_cache.before_handle(context, POLICY)
    assert cached is not None
    assert cached.payload == b"<rss/>"


@pytest.mark.anyio
async def test_failed_operation_is_not_stored(clock):
    store = AsyncInMemoryStore(clock=clock)
    output_cache = AsyncOutputCache(store, clock=clock)

    result = await output_cache.after_handle(
        RequestContext(FEED, {"feedId": 33}), POLICY, HandlerOutcome(succeeded=False, payload=b"error")
    )

    assert result is None
    assert await store.all_keys() == []


@pytest.mark.anyio
async def test_not_cacheable(clock):
    store = AsyncInMemoryStore(clock=clock)
    output_cache = AsyncOutputCache(store, clock=clock)
    context = RequestContext(FEED, {"feedId": 33}, cacheable=False)

    assert await output_cache.after_handle(context, POLICY, OUTCOME) is None
    assert await store.all_keys() == []

    await output_cache.after_handle(RequestContext(FEED, {"feedId": 33}), POLICY, OUTCOME)
    assert await output_cache.before_handle(context, POLICY) is None


@pytest.mark.anyio
async def test_zero_retention(clock):
    store = AsyncInMemoryStore(clock=clock)
    output_cache = AsyncOutputCache(store, clock=clock)
    policy = CachePolicy.seconds(client=30, must_revalidate=True)

    result = await output_cache.after_handle(RequestContext(FEED), policy, OUTCOME)

    assert result is not None
    assert not result.stored
    assert result.etag is None
    assert result.headers() == snapshot({"Cache-Control": "max-age=30, must-revalidate"})
    assert await store.all_keys() == []


@pytest.mark.anyio
async def test_empty_response_is_not_stored(clock):
    store = AsyncInMemoryStore(clock=clock)
    output_cache = AsyncOutputCache(store, clock=clock)

    result = await output_cache.after_handle(RequestContext(FEED), POLICY, HandlerOutcome(succeeded=True))

    assert result is not None
    assert not result.stored
    assert await store.all_keys() == []


@pytest.mark.anyio
async def test_content_type_defaults_to_representation(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    context = RequestContext(FEED, representation="application/xml; charset=utf-8")

    await output_cache.after_handle(context, POLICY, HandlerOutcome(succeeded=True, payload=b"<feed/>"))
    cached = await output_cache.before_handle(context, POLICY)

    assert cached is not None
    assert cached.content_type == "application/xml"


@pytest.mark.anyio
async def test_expired_response(clock):
    output_cache = AsyncOutputCache(AsyncInMemoryStore(clock=clock), clock=clock)
    context = RequestContext(FEED, {"feedId": 33})
    await output_cache.after_handle(context, POLICY, OUTCOME)

    clock.advance(59)
    assert await output_cache.before_handle(context, POLICY) is not None

    clock.advance(1)
    assert await output_cache.before_handle(context, POLICY) is None


@pytest.mark.anyio
async def test_custom_key_generator(clock):
    class TenantKeyGenerator(KeyGenerator):
        def make_base_key(self, context, policy):
            return "tenant-1/" + super().make_base_key(context, policy)

    store = AsyncInMemoryStore(clock=clock)
    output_cache = AsyncOutputCache(store, key_generator=TenantKeyGenerator(), clock=clock)

    result = await output_cache.after_handle(RequestContext(FEED), POLICY, OUTCOME)

    assert result is not None
    assert result.key == "tenant-1/feeds-getrssfeed::application/json"
    assert "tenant-1/feeds-getrssfeed" in await store.all_keys()
