from __future__ import annotations

import logging
import typing as tp
from dataclasses import dataclass

from typing_extensions import Protocol, runtime_checkable

from ._exceptions import InvalidKeyContext
from ._utils import filter_pairs, is_text, unique_everseen

if tp.TYPE_CHECKING:  # pragma: no cover
    from ._models import RequestContext
    from ._policies import CachePolicy

logger = logging.getLogger("outcache.keys")

__all__ = (
    "CacheKeyContributor",
    "ResourceIdentity",
    "operation_name",
    "stringify_value",
    "split_cache_args",
    "argument_pairs",
    "build_base_key",
    "build_base_key_from_args",
    "build_variant_key",
    "KeyGenerator",
    "DEFAULT_CALLBACK_PARAM",
)

DEFAULT_CALLBACK_PARAM = "callback"

F = tp.TypeVar("F", bound=tp.Callable[..., tp.Any])


@runtime_checkable
class CacheKeyContributor(Protocol):
    """
    Implemented by argument types that know how to describe themselves in a base key.

    When any argument of an operation implements this protocol, its contribution
    becomes the base-key extension and the named cache arguments are ignored.
    """

    def cache_key(self) -> str: ...


def is_contributor(value: tp.Any) -> bool:
    # the runtime protocol check only sees that the attribute exists
    return (
        not isinstance(value, type)
        and isinstance(value, CacheKeyContributor)
        and callable(getattr(value, "cache_key", None))
    )


def operation_name(name: str) -> tp.Callable[[F], F]:
    """
    Override the operation name used for keys derived from a method.

    Example:
    ```python
        class FeedsController:
            @operation_name("GetRSSFeed")
            def rss(self, feed_id: int) -> bytes: ...
    ```
    """

    def decorator(func: F) -> F:
        setattr(func, "__operation_name__", name)
        return func

    return decorator


@dataclass(frozen=True)
class ResourceIdentity:
    namespace: str
    operation: str

    @classmethod
    def of(cls, method: tp.Callable[..., tp.Any]) -> "ResourceIdentity":
        """
        Derive an identity from a method defined on a controller-like class.

        The namespace is the owning class name without a trailing ``Controller``;
        the operation is the function name unless ``operation_name`` overrides it.
        """
        func = getattr(method, "__func__", method)
        owner, _, name = func.__qualname__.rpartition(".")
        if not owner or owner.endswith("<locals>"):
            raise InvalidKeyContext(f"Cannot derive a resource identity from {func.__qualname__!r}: not a method.")
        return cls(controller_namespace(owner.rpartition(".")[2]), getattr(func, "__operation_name__", name))

    def __str__(self) -> str:
        return f"{self.namespace}.{self.operation}"


def controller_namespace(class_name: str) -> str:
    if class_name.endswith("Controller") and class_name != "Controller":
        return class_name[: -len("Controller")]
    return class_name


def _require_identity(identity: ResourceIdentity | None) -> ResourceIdentity:
    if identity is None:
        raise InvalidKeyContext("A resource identity is required to build a cache key.")
    if not identity.namespace:
        raise InvalidKeyContext(f"The namespace of {identity!r} must not be empty.")
    if not identity.operation:
        raise InvalidKeyContext(f"The operation of {identity!r} must not be empty.")
    return identity


def stringify_value(value: tp.Any) -> tp.Optional[str]:
    """
    Converts an argument value to its key form.

    ``None`` gives ``None``, a ``CacheKeyContributor`` gives its own contribution,
    a non-text iterable gives ``"element;"`` for every element, a ``bool`` gives
    ``"true"`` or ``"false"``, anything else gives ``str(value)``.
    """
    if value is None:
        return None

    if is_contributor(value):
        return tp.cast(str, value.cache_key())

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "replace")

    if isinstance(value, tp.Iterable) and not is_text(value):
        return "".join(f"{'' if element is None else element};" for element in value)

    return str(value)


def split_cache_args(cache_args: tp.Union[str, tp.Iterable[str], None]) -> tp.Tuple[str, ...]:
    """
    Normalizes cache argument names.

    Accepts the comma separated form (``"feedId, page"``) or any iterable of names,
    and drops blank entries.
    """
    if cache_args is None:
        return ()
    if isinstance(cache_args, str):
        cache_args = cache_args.split(",")
    return tuple(name.strip() for name in cache_args if name and name.strip())


def _lookup_argument(arguments: tp.Mapping[str, tp.Any], name: str) -> tp.Any:
    if name in arguments:
        return arguments[name]
    lowered = name.lower()
    for key, value in arguments.items():
        if key.lower() == lowered:
            return value
    return None


def argument_pairs(arguments: tp.Optional[tp.Mapping[str, tp.Any]]) -> tp.List[tp.Tuple[str, str]]:
    pairs = []
    for name, value in (arguments or {}).items():
        text = stringify_value(value)
        if text is not None:
            pairs.append((name, text))
    return pairs


def build_base_key(identity: ResourceIdentity, extension: tp.Optional[str] = None) -> str:
    identity = _require_identity(identity)

    if extension:
        key = f"{identity.namespace}-{identity.operation}[{extension}]"
    else:
        key = f"{identity.namespace}-{identity.operation}"
    return key.lower()


def build_base_key_from_args(
    identity: ResourceIdentity,
    arguments: tp.Optional[tp.Mapping[str, tp.Any]],
    extension_args: tp.Union[str, tp.Iterable[str], None] = None,
) -> str:
    """
    Builds a base key whose extension is derived from the operation arguments.

    Args:
        identity: The resource the key belongs to.
        arguments: The operation arguments, in declaration order.
        extension_args: Names of the arguments that scope the base key.

    Returns:
        The lower-cased base key.
    """
    extension: tp.Optional[str] = None

    if arguments:
        contributor = next((value for value in arguments.values() if is_contributor(value)), None)

        if contributor is not None:
            extension = contributor.cache_key()
            logger.debug(f"Using the key contribution of {type(contributor).__name__} for {identity}.")
        else:
            segments = []
            for name in split_cache_args(extension_args):
                text = stringify_value(_lookup_argument(arguments, name))
                if text:
                    segments.append(f"{name}={text}")
            extension = "&".join(segments) or None

    return build_base_key(identity, extension)


def build_variant_key(
    base_key: str,
    argument_pairs: tp.Iterable[tp.Tuple[str, str]],
    query_pairs: tp.Iterable[tp.Tuple[str, str]] = (),
    representation: tp.Optional[str] = None,
    exclude_query: bool = False,
    callback_param: tp.Optional[str] = DEFAULT_CALLBACK_PARAM,
) -> str:
    if not base_key:
        raise InvalidKeyContext("A variant key cannot be built without a base key.")

    pairs = list(argument_pairs)
    if not exclude_query:
        pairs.extend(query_pairs)
    if callback_param:
        # dropped from the arguments too, even when the query is excluded
        pairs = filter_pairs(pairs, [callback_param])

    params = "&".join(f"{name}={value}" for name, value in unique_everseen(pairs))
    return f"{base_key}:{params}:{representation or ''}".lower()


class KeyGenerator:
    """
    Builds the keys of one unit of work.

    Subclass and override ``make_base_key`` or ``make_cache_key`` to change the
    key scheme, then hand the instance to the output cache and the invalidation
    coordinator.
    """

    def __init__(self, callback_param: tp.Optional[str] = DEFAULT_CALLBACK_PARAM) -> None:
        self.callback_param = callback_param

    def representation_for(self, context: "RequestContext", policy: "CachePolicy") -> str:
        representation = context.representation or policy.default_representation
        return representation.split(";", 1)[0].strip()

    def make_base_key(self, context: "RequestContext", policy: "CachePolicy") -> str:
        return build_base_key_from_args(context.identity, context.arguments, policy.cache_args)

    def make_cache_key(self, context: "RequestContext", policy: "CachePolicy") -> str:
        key = build_variant_key(
            self.make_base_key(context, policy),
            argument_pairs(context.arguments),
            context.query,
            self.representation_for(context, policy),
            exclude_query=policy.exclude_query,
            callback_param=self.callback_param,
        )
        logger.debug(f"Built the cache key {key!r} for {context.identity}.")
        return key
