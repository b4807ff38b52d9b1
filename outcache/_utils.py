from __future__ import annotations

import time
import typing as tp

T = tp.TypeVar("T")

__all__ = ("BaseClock", "Clock", "filter_pairs", "unique_everseen", "is_text")


class BaseClock:
    def now(self) -> float:
        raise NotImplementedError()


class Clock(BaseClock):
    def now(self) -> float:
        return time.time()


def filter_pairs(
    pairs: tp.Iterable[tp.Tuple[str, T]], names_to_exclude: tp.Iterable[str]
) -> tp.List[tp.Tuple[str, T]]:
    """
    Filter out pairs whose name matches one of the excluded names, ignoring case.

    Args:
        pairs: The (name, value) pairs to filter, order is preserved.
        names_to_exclude: Names to drop (case-insensitive).

    Returns:
        A new list without the excluded pairs.

    Example:
    ```python
        filtered = filter_pairs([("id", "1"), ("Callback", "cb")], ["callback"])
        # filtered will be [("id", "1")]
    ```
    """
    exclude_set = {name.lower() for name in names_to_exclude}
    return [(name, value) for name, value in pairs if name.lower() not in exclude_set]


def unique_everseen(iterable: tp.Iterable[T]) -> tp.List[T]:
    """Drop repeated items, keeping the first occurrence of each."""
    seen: tp.Set[T] = set()
    result = []
    for item in iterable:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def is_text(value: tp.Any) -> bool:
    return isinstance(value, (str, bytes, bytearray))
