from __future__ import annotations

import typing as tp
from dataclasses import dataclass, field

from ._keys import split_cache_args

__all__ = ("FreshnessSpec", "CacheDirectives", "Freshness", "CachePolicy", "evaluate", "is_caching_allowed")


@dataclass(frozen=True)
class FreshnessSpec:
    """
    Retention settings of one cached resource, in seconds.

    Attributes:
    ----------
    server_retention : float
        How long a captured response stays in the server-side store.

    client_max_age : float
        The ``max-age`` sent to clients.

    shared_max_age : float | None
        The ``s-maxage`` sent to shared caches (proxies, CDNs). Omitted when ``None``.

    must_revalidate : bool
        Adds ``must-revalidate``; also forces a ``Cache-Control`` header when
        ``client_max_age`` is zero.

    no_cache : bool
        Sends ``no-cache`` (and ``Pragma: no-cache``) when no max-age applies.
    """

    server_retention: float = 0
    client_max_age: float = 0
    shared_max_age: tp.Optional[float] = None
    must_revalidate: bool = False
    no_cache: bool = False


@dataclass(frozen=True)
class CacheDirectives:
    max_age: tp.Optional[int] = None
    s_maxage: tp.Optional[int] = None
    must_revalidate: bool = False
    no_cache: bool = False

    @property
    def empty(self) -> bool:
        return self.max_age is None and not self.must_revalidate and not self.no_cache

    def to_headers(self) -> tp.Dict[str, str]:
        directives: tp.List[str] = []

        if self.max_age is not None:
            directives.append(f"max-age={self.max_age}")

        if self.s_maxage is not None:
            directives.append(f"s-maxage={self.s_maxage}")

        if self.must_revalidate:
            directives.append("must-revalidate")

        if self.no_cache:
            directives.append("no-cache")

        headers = {}
        if directives:
            headers["Cache-Control"] = ", ".join(directives)
        if self.no_cache:
            headers["Pragma"] = "no-cache"
        return headers


@dataclass(frozen=True)
class Freshness:
    absolute_expiration: float
    directives: CacheDirectives

    def is_storable(self, now: float) -> bool:
        return self.absolute_expiration > now


def evaluate(spec: FreshnessSpec, now: float) -> Freshness:
    """
    Turns a ``FreshnessSpec`` into a concrete expiration instant and the client directives.

    ``now`` is a POSIX timestamp. Negative durations count as zero, so the
    expiration is never before ``now``.
    """
    absolute_expiration = now + max(0.0, spec.server_retention)
    client_max_age = int(max(0.0, spec.client_max_age))

    if client_max_age > 0 or spec.must_revalidate:
        directives = CacheDirectives(
            max_age=client_max_age,
            s_maxage=None if spec.shared_max_age is None else int(max(0.0, spec.shared_max_age)),
            must_revalidate=spec.must_revalidate,
        )
    elif spec.no_cache:
        directives = CacheDirectives(no_cache=True)
    else:
        directives = CacheDirectives()

    return Freshness(absolute_expiration=absolute_expiration, directives=directives)


@dataclass
class CachePolicy:
    """
    Caching configuration of one resource.

    Attributes:
    ----------
    freshness : FreshnessSpec
        Server retention and client directives.

    exclude_query : bool
        When True, query parameters do not vary the cached response.

    cache_args : tuple[str, ...]
        Names of the arguments folded into the base key, so that invalidation can
        target a single argument value (``"feedId"`` turns ``feeds-getrssfeed`` into
        ``feeds-getrssfeed[feedid=33]``). A comma separated string is accepted.

    hash_content_for_etag : bool
        When True, the ETag is a hash of the payload; otherwise a random token.

    anonymous_only : bool
        Only cache for callers that are not authenticated.

    default_representation : str
        Representation tag used when the request carries none.

    Examples:
    --------
    >>> policy = CachePolicy.seconds(server=300, client=60, cache_args="feedId")
    >>> policy.cache_args
    ('feedId',)
    """

    freshness: FreshnessSpec = field(default_factory=FreshnessSpec)
    exclude_query: bool = False
    cache_args: tp.Union[str, tp.Sequence[str], None] = ()
    hash_content_for_etag: bool = False
    anonymous_only: bool = False
    default_representation: str = "application/json"

    def __post_init__(self) -> None:
        self.cache_args = split_cache_args(self.cache_args)

    @classmethod
    def seconds(
        cls,
        server: float = 0,
        client: float = 0,
        shared: tp.Optional[float] = None,
        must_revalidate: bool = False,
        no_cache: bool = False,
        **kwargs: tp.Any,
    ) -> "CachePolicy":
        return cls(
            freshness=FreshnessSpec(
                server_retention=server,
                client_max_age=client,
                shared_max_age=shared,
                must_revalidate=must_revalidate,
                no_cache=no_cache,
            ),
            **kwargs,
        )


def is_caching_allowed(method: str, authenticated: bool = False, anonymous_only: bool = False) -> bool:
    """
    The default cacheability gate of a request pipeline.

    Only ``GET`` requests are cached, and with ``anonymous_only`` only those of
    callers that are not authenticated. The caller's identity is passed in by
    the pipeline.
    """
    if anonymous_only and authenticated:
        return False
    return method.upper() == "GET"
