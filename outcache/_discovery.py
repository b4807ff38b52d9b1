from __future__ import annotations

import collections.abc
import inspect
import logging
import typing as tp

from ._keys import ResourceIdentity, controller_namespace

logger = logging.getLogger("outcache.discovery")

__all__ = (
    "read_operation",
    "discover_read_operations",
    "select_read_operations",
    "parameter_types",
    "returns_any_of",
    "DEFAULT_READ_PREFIX",
)

DEFAULT_READ_PREFIX = "get"

F = tp.TypeVar("F", bound=tp.Callable[..., tp.Any])


def read_operation(func: F) -> F:
    """Marks a method as a read operation whatever its name is."""
    setattr(func, "__read_operation__", True)
    return func


def _is_read_name(name: str, read_prefix: tp.Optional[str]) -> bool:
    return not read_prefix or name.lower().startswith(read_prefix.lower())


def discover_read_operations(
    controller_cls: type,
    read_prefix: tp.Optional[str] = DEFAULT_READ_PREFIX,
    match: tp.Optional[tp.Callable[[tp.Callable[..., tp.Any]], bool]] = None,
) -> tp.List[ResourceIdentity]:
    """
    Lists the read operations declared on a controller class.

    Meant to run once, when the invalidation registry is built, never per request.
    Only public functions declared on the class itself are considered; a function
    is a read operation when its name starts with ``read_prefix`` (case-insensitive)
    or when it is decorated with ``read_operation``.

    Args:
        controller_cls: The class grouping the operations of one resource.
        read_prefix: Name prefix of read operations. ``None`` accepts every name.
        match: Extra filter receiving the function, e.g. ``returns_any_of(Feed)``.

    Returns:
        The identities of the read operations, in declaration order.
    """
    namespace = controller_namespace(controller_cls.__name__)
    operations = []

    for name, attr in vars(controller_cls).items():
        if isinstance(attr, (staticmethod, classmethod)):
            attr = attr.__func__
        if name.startswith("_") or not inspect.isfunction(attr):
            continue
        if not (getattr(attr, "__read_operation__", False) or _is_read_name(name, read_prefix)):
            continue
        if match is not None and not match(attr):
            logger.debug(f"Skipping {controller_cls.__name__}.{name} since it does not match the filter.")
            continue
        operations.append(ResourceIdentity(namespace, getattr(attr, "__operation_name__", name)))

    return operations


def select_read_operations(
    namespace: str,
    operations: tp.Iterable[tp.Union[str, ResourceIdentity]],
    read_prefix: tp.Optional[str] = DEFAULT_READ_PREFIX,
    match: tp.Optional[tp.Callable[[ResourceIdentity], bool]] = None,
) -> tp.List[ResourceIdentity]:
    selected = []
    for operation in operations:
        identity = operation if isinstance(operation, ResourceIdentity) else ResourceIdentity(namespace, operation)
        if not _is_read_name(identity.operation, read_prefix):
            continue
        if match is not None and not match(identity):
            continue
        selected.append(identity)
    return selected


def _type_hints(func: tp.Callable[..., tp.Any]) -> tp.Dict[str, tp.Any]:
    try:
        return tp.get_type_hints(func)
    except (NameError, TypeError) as exc:
        logger.debug(f"Could not resolve the annotations of {func!r}: {exc}")
        return {}


def parameter_types(func: tp.Callable[..., tp.Any]) -> tp.List[tp.Any]:
    """The annotated parameter types of ``func``, ``self`` excluded."""
    hints = _type_hints(func)
    return [
        hints[name]
        for name in inspect.signature(func).parameters
        if name != "self" and name in hints
    ]


def returns_any_of(*types: tp.Any) -> tp.Callable[[tp.Callable[..., tp.Any]], bool]:
    """
    Builds a filter accepting functions that return one of ``types``
    or an iterable of one of them (``list[Feed]``, ``Sequence[Feed]``, ...).

    Example:
    ```python
        siblings = discover_read_operations(
            FeedsController,
            match=returns_any_of(*parameter_types(FeedsController.update_feed)),
        )
    ```
    """

    def predicate(func: tp.Callable[..., tp.Any]) -> bool:
        returned = _type_hints(func).get("return")
        if returned is None:
            return False
        if returned in types:
            return True
        origin = tp.get_origin(returned)
        if isinstance(origin, type) and issubclass(origin, collections.abc.Iterable):
            args = tp.get_args(returned)
            return bool(args) and args[0] in types
        return False

    return predicate
