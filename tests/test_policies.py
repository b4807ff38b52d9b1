from inline_snapshot import snapshot

from outcache import CacheDirectives, CachePolicy, FreshnessSpec, evaluate, is_caching_allowed

NOW = 1440504000


def test_client_max_age():
    freshness = evaluate(FreshnessSpec(server_retention=60, client_max_age=30), NOW)

    assert freshness.absolute_expiration == NOW + 60
    assert freshness.is_storable(NOW)
    assert freshness.directives == CacheDirectives(max_age=30)
    assert freshness.directives.to_headers() == snapshot({"Cache-Control": "max-age=30"})


def test_shared_max_age():
    freshness = evaluate(FreshnessSpec(server_retention=60, client_max_age=30, shared_max_age=120), NOW)

    assert freshness.directives.to_headers() == snapshot({"Cache-Control": "max-age=30, s-maxage=120"})


def test_must_revalidate_without_client_max_age():
    freshness = evaluate(FreshnessSpec(server_retention=60, must_revalidate=True), NOW)

    assert freshness.directives.to_headers() == snapshot({"Cache-Control": "max-age=0, must-revalidate"})


def test_no_cache():
    freshness = evaluate(FreshnessSpec(server_retention=60, no_cache=True), NOW)

    assert freshness.directives.to_headers() == snapshot({"Cache-Control": "no-cache", "Pragma": "no-cache"})


def test_max_age_wins_over_no_cache():
    freshness = evaluate(FreshnessSpec(client_max_age=10, no_cache=True), NOW)

    assert freshness.directives == CacheDirectives(max_age=10)


def test_no_directives():
    freshness = evaluate(FreshnessSpec(server_retention=60), NOW)

    assert freshness.directives.empty
    assert freshness.directives.to_headers() == {}


def test_zero_retention_is_not_storable():
    freshness = evaluate(FreshnessSpec(client_max_age=30), NOW)

    assert freshness.absolute_expiration == NOW
    assert not freshness.is_storable(NOW)


def test_negative_durations_count_as_zero():
    freshness = evaluate(FreshnessSpec(server_retention=-5, client_max_age=-10, shared_max_age=-1), NOW)

    assert freshness.absolute_expiration == NOW
    assert freshness.directives.empty


def test_fractional_client_max_age_is_truncated():
    freshness = evaluate(FreshnessSpec(client_max_age=30.9), NOW)

    assert freshness.directives.max_age == 30


def test_policy_normalizes_cache_args():
    assert CachePolicy(cache_args="feedId, page").cache_args == ("feedId", "page")
    assert CachePolicy(cache_args=None).cache_args == ()


def test_policy_seconds():
    policy = CachePolicy.seconds(server=300, client=60, must_revalidate=True, exclude_query=True)

    assert policy.freshness == FreshnessSpec(server_retention=300, client_max_age=60, must_revalidate=True)
    assert policy.exclude_query
    assert not policy.hash_content_for_etag
    assert policy.default_representation == "application/json"


def test_only_get_requests_are_cached():
    assert is_caching_allowed("GET")
    assert is_caching_allowed("get")
    assert not is_caching_allowed("POST")
    assert not is_caching_allowed("HEAD")


def test_anonymous_only():
    assert is_caching_allowed("GET", authenticated=True)
    assert is_caching_allowed("GET", authenticated=False, anonymous_only=True)
    assert not is_caching_allowed("GET", authenticated=True, anonymous_only=True)
