from __future__ import annotations

import logging
import typing as tp

from .._discovery import DEFAULT_READ_PREFIX, select_read_operations
from .._keys import ResourceIdentity, build_base_key, build_base_key_from_args
from .._models import InvalidationReport, InvalidationRule
from ._storages import AsyncBaseStore

logger = logging.getLogger("outcache.invalidation")

__all__ = ("AsyncInvalidationCoordinator",)

Target = tp.Union[ResourceIdentity, InvalidationRule]


class AsyncInvalidationCoordinator:
    """
    Removes every cached variant derived from a resource.

    Two modes are supported:

    - explicit: ``invalidate``, ``invalidate_arguments`` and ``invalidate_base_key``
      drop the scope of one base key;
    - automatic: mutations are registered once, at startup, with the read
      operations they make stale (``register`` or ``register_siblings``), and
      ``after_mutation`` drops all of them after the mutation succeeded.

    Invalidating something that is not cached is a no-op.

    Args:
        store: The store shared with the output cache.
    """

    def __init__(self, store: AsyncBaseStore) -> None:
        self.store = store
        self._registry: tp.Dict[ResourceIdentity, tp.List[InvalidationRule]] = {}

    async def invalidate_base_key(self, base_key: str) -> int:
        if not base_key:
            logger.debug("Skipping the invalidation of an empty base key.")
            return 0

        removed = await self.store.remove_by_prefix(base_key)
        logger.debug(f"Invalidated {removed} entries under the base key {base_key!r}.")
        return removed

    async def invalidate(self, identity: ResourceIdentity, extension: tp.Optional[str] = None) -> int:
        return await self.invalidate_base_key(build_base_key(identity, extension))

    async def invalidate_arguments(
        self,
        identity: ResourceIdentity,
        arguments: tp.Mapping[str, tp.Any],
        cache_args: tp.Union[str, tp.Iterable[str], None] = None,
    ) -> int:
        return await self.invalidate_base_key(build_base_key_from_args(identity, arguments, cache_args))

    def register(self, mutation: ResourceIdentity, *targets: Target) -> None:
        """
        Declares the read operations made stale by ``mutation``.

        A bare ``ResourceIdentity`` target drops all its variants. An
        ``InvalidationRule`` builds the target base key from the mutation's own
        arguments (``cache_args`` or a ``CacheKeyContributor`` argument), so it only
        drops the variants of the changed item when the read operation is cached
        with the same scoping.
        """
        rules = self._registry.setdefault(mutation, [])
        for target in targets:
            rule = target if isinstance(target, InvalidationRule) else InvalidationRule(target, by_arguments=False)
            if rule not in rules:
                rules.append(rule)

    def register_siblings(
        self,
        mutation: ResourceIdentity,
        operations: tp.Iterable[tp.Union[str, ResourceIdentity]],
        read_prefix: tp.Optional[str] = DEFAULT_READ_PREFIX,
        match: tp.Optional[tp.Callable[[ResourceIdentity], bool]] = None,
    ) -> tp.List[ResourceIdentity]:
        """
        Registers the read operations of the mutation's group.

        Plain names are resolved in the mutation's namespace. An operation is kept
        when its name starts with ``read_prefix`` and ``match`` (if any) accepts it;
        the selection happens here, once.

        Returns:
            The registered read operations, possibly none.
        """
        siblings = select_read_operations(mutation.namespace, operations, read_prefix, match)
        if not siblings:
            logger.debug(f"No read operation matched for {mutation}, nothing will be invalidated by it.")
        self.register(mutation, *siblings)
        return siblings

    def targets_of(self, mutation: ResourceIdentity) -> tp.List[InvalidationRule]:
        return list(self._registry.get(mutation, ()))

    async def after_mutation(
        self,
        mutation: ResourceIdentity,
        arguments: tp.Optional[tp.Mapping[str, tp.Any]] = None,
        succeeded: bool = True,
    ) -> int:
        """
        Runs the invalidations registered for ``mutation``.

        Args:
            mutation: The state-changing operation that just ran.
            arguments: Its arguments, used by argument-scoped rules.
            succeeded: Whether it succeeded; failed mutations invalidate nothing.

        Returns:
            The number of removed entries.
        """
        if not succeeded:
            logger.debug(f"Skipping the invalidation for {mutation} since it did not succeed.")
            return 0

        removed = 0
        for rule in self._registry.get(mutation, ()):
            if rule.by_arguments:
                base_key = build_base_key_from_args(rule.identity, arguments, rule.cache_args)
            else:
                base_key = build_base_key(rule.identity)
            removed += await self.invalidate_base_key(base_key)
        return removed

    async def keys(self) -> tp.List[str]:
        return sorted(await self.store.all_keys())

    async def invalidate_with_report(self, base_key: str) -> InvalidationReport:
        before = await self.keys()
        removed = await self.invalidate_base_key(base_key)
        return InvalidationReport(before=before, after=await self.keys(), removed=removed)
