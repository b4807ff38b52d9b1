from __future__ import annotations

import logging
import typing as tp

from .._fingerprint import compute_fingerprint
from .._headers import if_none_match_satisfied
from .._keys import KeyGenerator
from .._models import CachedResponse, HandlerOutcome, RequestContext, StoreResult
from .._policies import CachePolicy, evaluate
from .._utils import BaseClock, Clock
from ._storages import CONTENT_TYPE_SUFFIX, ETAG_SUFFIX, AsyncBaseStore

logger = logging.getLogger("outcache.output_cache")

__all__ = ("AsyncOutputCache",)


class AsyncOutputCache:
    """
    The two hooks a request pipeline calls around one unit of work.

    ``before_handle`` runs first and may answer the request from the store;
    ``after_handle`` runs once the work produced a response and stores it.
    Neither hook touches the transport objects: the pipeline copies the returned
    payload and headers into its own response.

    Args:
        store: The store, created once and shared with the invalidation coordinator.
        key_generator: Builds base and variant keys; defaults to ``KeyGenerator()``.
        clock: Source of the current time, defaults to the wall clock.
    """

    def __init__(
        self,
        store: AsyncBaseStore,
        key_generator: tp.Optional[KeyGenerator] = None,
        clock: tp.Optional[BaseClock] = None,
    ) -> None:
        self.store = store
        self.key_generator = key_generator if key_generator is not None else KeyGenerator()
        self._clock = clock if clock is not None else Clock()

    async def before_handle(self, context: RequestContext, policy: CachePolicy) -> tp.Optional[CachedResponse]:
        if not context.cacheable:
            logger.debug(f"Skipping the cache lookup for {context.identity} since the request is not cacheable.")
            return None

        key = self.key_generator.make_cache_key(context, policy)

        if not await self.store.contains(key):
            logger.debug(f"Cache miss for {key!r}.")
            return None

        etag = await self.store.get(key + ETAG_SUFFIX)
        if not isinstance(etag, str):
            etag = None
        content_type = await self.store.get(key + CONTENT_TYPE_SUFFIX)
        if not isinstance(content_type, str) or not content_type:
            content_type = key.rsplit(":", 1)[-1] or None

        directives = evaluate(policy.freshness, self._clock.now()).directives

        if if_none_match_satisfied(context.headers.get_list("If-None-Match"), etag):
            logger.debug(f"The client copy of {key!r} is still valid, answering with 304.")
            return CachedResponse(
                status_code=304,
                payload=b"",
                content_type=content_type,
                etag=etag,
                directives=directives,
                key=key,
            )

        payload = await self.store.get(key)
        if not isinstance(payload, bytes):
            # removed between the lookups
            logger.debug(f"Cache miss for {key!r}.")
            return None

        logger.debug(f"Serving {key!r} from the cache.")
        return CachedResponse(
            status_code=200,
            payload=payload,
            content_type=content_type,
            etag=etag,
            directives=directives,
            key=key,
        )

    async def after_handle(
        self, context: RequestContext, policy: CachePolicy, outcome: HandlerOutcome
    ) -> tp.Optional[StoreResult]:
        if not outcome.succeeded:
            logger.debug(f"Not storing the response of {context.identity} since the operation failed.")
            return None

        if not context.cacheable:
            return None

        now = self._clock.now()
        freshness = evaluate(policy.freshness, now)
        key = self.key_generator.make_cache_key(context, policy)

        if not freshness.is_storable(now):
            logger.debug(f"Not storing {key!r} since its server retention is zero.")
            return StoreResult(stored=False, key=key, etag=None, directives=freshness.directives)

        if await self.store.contains(key):
            etag = await self.store.get(key + ETAG_SUFFIX)
            logger.debug(f"Not storing {key!r} since it is already cached.")
            return StoreResult(
                stored=False,
                key=key,
                etag=etag if isinstance(etag, str) else None,
                directives=freshness.directives,
            )

        if outcome.payload is None:
            logger.debug(f"Not storing {key!r} since the response has no content.")
            return StoreResult(stored=False, key=key, etag=None, directives=freshness.directives)

        etag = compute_fingerprint(outcome.payload, policy.hash_content_for_etag)
        stored, etag = await self.store.add_variant(
            key,
            bytes(outcome.payload),
            outcome.content_type or self.key_generator.representation_for(context, policy),
            etag,
            freshness.absolute_expiration,
            self.key_generator.make_base_key(context, policy),
        )
        if not stored:
            logger.debug(f"Not storing {key!r} since a concurrent request stored it first.")
        return StoreResult(stored=stored, key=key, etag=etag, directives=freshness.directives)
