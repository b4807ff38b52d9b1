from __future__ import annotations

import typing as tp
from dataclasses import dataclass, field

from ._fingerprint import format_etag
from ._headers import Headers
from ._keys import ResourceIdentity, split_cache_args
from ._policies import CacheDirectives

__all__ = (
    "RequestContext",
    "HandlerOutcome",
    "CachedResponse",
    "StoreResult",
    "InvalidationRule",
    "InvalidationReport",
)


@dataclass
class RequestContext:
    """
    What the request pipeline knows about one unit of work.

    ``cacheable`` is decided by the pipeline (usually with ``is_caching_allowed``);
    the engine never inspects the transport request itself.
    """

    identity: ResourceIdentity
    arguments: tp.Mapping[str, tp.Any] = field(default_factory=dict)
    query: tp.Sequence[tp.Tuple[str, str]] = ()
    representation: tp.Optional[str] = None
    headers: Headers = field(default_factory=Headers)
    cacheable: bool = True


@dataclass
class HandlerOutcome:
    succeeded: bool
    payload: tp.Optional[bytes] = None
    content_type: tp.Optional[str] = None


@dataclass
class CachedResponse:
    status_code: int
    payload: bytes
    content_type: tp.Optional[str]
    etag: tp.Optional[str]
    directives: CacheDirectives
    key: str

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304

    def headers(self) -> tp.Dict[str, str]:
        headers: tp.Dict[str, str] = {}
        if self.content_type and not self.not_modified:
            headers["Content-Type"] = self.content_type
        if self.etag is not None:
            headers["ETag"] = format_etag(self.etag)
        headers.update(self.directives.to_headers())
        return headers


@dataclass
class StoreResult:
    stored: bool
    key: str
    etag: tp.Optional[str]
    directives: CacheDirectives

    def headers(self) -> tp.Dict[str, str]:
        headers = {} if self.etag is None else {"ETag": format_etag(self.etag)}
        headers.update(self.directives.to_headers())
        return headers


@dataclass(frozen=True)
class InvalidationRule:
    """
    A read operation invalidated by a mutation.

    With ``cache_args`` the mutation's own arguments select the argument-scoped
    base key of the target, e.g. ``InvalidationRule(feed, "feedId")`` only drops
    the cached variants of the feed that was changed. ``by_arguments=False``
    always drops every variant of the target.
    """

    identity: ResourceIdentity
    cache_args: tp.Union[str, tp.Tuple[str, ...]] = ()
    by_arguments: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "cache_args", split_cache_args(self.cache_args))


@dataclass
class InvalidationReport:
    before: tp.List[str]
    after: tp.List[str]
    removed: int

    def __str__(self) -> str:
        return "=== Orig Keys ===\n" + "\n".join(self.before) + "\n\n=== After Keys ===\n" + "\n".join(self.after)
