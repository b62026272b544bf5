"""Ordered-list editing keyed by stable item ids.

The module-level functions are pure: they take a sequence and return a new
list, never touching the input. ``ReorderableCollection`` wraps them and keeps
its items in a tuple that is replaced on every change, so anyone still holding
the previous items keeps a consistent snapshot.
"""

import logging
from collections.abc import Callable, Sequence
from operator import attrgetter
from typing import Generic, TypeVar

from formengine.exceptions import NotFound, SchemaError
from formengine.services.ids import new_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

_by_id = attrgetter("id")


def _index_of(items: Sequence[T], item_id: str, key: Callable[[T], str]) -> int:
    for index, item in enumerate(items):
        if key(item) == item_id:
            return index
    logger.warning("Item %s not found in collection", item_id)
    raise NotFound(f"Item {item_id} not found")


def _check_index(items: Sequence, index: int) -> None:
    if not 0 <= index < len(items):
        logger.warning("Index %s out of range for collection of %s", index, len(items))
        raise NotFound(f"No item at position {index}")


def move_item(
    items: Sequence[T],
    item_id: str,
    *,
    before: str | None = None,
    after: str | None = None,
    to_end: bool = False,
    key: Callable[[T], str] = _by_id,
) -> list[T]:
    """Return a new list with ``item_id`` moved before/after another item or to the end."""
    if (before is not None) + (after is not None) + to_end != 1:
        raise ValueError("Exactly one of before, after or to_end must be given")
    source = _index_of(items, item_id, key)
    anchor = before if before is not None else after
    if anchor is not None:
        _index_of(items, anchor, key)
        if anchor == item_id:
            return list(items)

    item = items[source]
    remaining = [x for i, x in enumerate(items) if i != source]
    if to_end:
        remaining.append(item)
        return remaining
    target = _index_of(remaining, anchor, key)
    if after is not None:
        target += 1
    remaining.insert(target, item)
    return remaining


def duplicate_item(
    items: Sequence[T],
    item_id: str,
    clone: Callable[[T, str], T],
    *,
    key: Callable[[T], str] = _by_id,
    prefix: str = "q",
) -> tuple[list[T], str]:
    """Insert a copy of ``item_id`` right after it. Returns the new list and the copy's id."""
    source = _index_of(items, item_id, key)
    copy_id = new_id((key(x) for x in items), prefix)
    result = list(items)
    result.insert(source + 1, clone(items[source], copy_id))
    return result, copy_id


def remove_item(
    items: Sequence[T],
    item_id: str,
    *,
    key: Callable[[T], str] = _by_id,
    min_size: int = 0,
) -> list[T]:
    source = _index_of(items, item_id, key)
    if len(items) - 1 < min_size:
        raise SchemaError([f"Collection must keep at least {min_size} item(s)"])
    return [x for i, x in enumerate(items) if i != source]


# Positional variants, for collections of plain values such as option labels.

def move_index(items: Sequence[T], source: int, target: int) -> list[T]:
    _check_index(items, source)
    _check_index(items, target)
    result = list(items)
    result.insert(target, result.pop(source))
    return result


def remove_index(items: Sequence[T], index: int) -> list[T]:
    _check_index(items, index)
    return [x for i, x in enumerate(items) if i != index]


def replace_index(items: Sequence[T], index: int, value: T) -> list[T]:
    _check_index(items, index)
    result = list(items)
    result[index] = value
    return result


class ReorderableCollection(Generic[T]):
    """Copy-on-write ordered collection of items with unique ids."""

    def __init__(
        self,
        items: Sequence[T] = (),
        *,
        clone: Callable[[T, str], T],
        key: Callable[[T], str] = _by_id,
        id_prefix: str = "q",
        min_size: int = 0,
    ):
        self._items: tuple[T, ...] = tuple(items)
        self._clone = clone
        self._key = key
        self._id_prefix = id_prefix
        self.min_size = min_size

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    def ids(self) -> list[str]:
        return [self._key(item) for item in self._items]

    def get(self, item_id: str) -> T:
        return self._items[_index_of(self._items, item_id, self._key)]

    def new_id(self) -> str:
        return new_id(self.ids(), self._id_prefix)

    def append(self, item: T) -> None:
        if self._key(item) in self.ids():
            raise SchemaError([f"Item id {self._key(item)} already exists"])
        self._items = (*self._items, item)

    def replace(self, item_id: str, item: T) -> None:
        index = _index_of(self._items, item_id, self._key)
        updated = list(self._items)
        updated[index] = item
        self._items = tuple(updated)

    def move(self, item_id: str, *, before: str | None = None, after: str | None = None, to_end: bool = False) -> None:
        self._items = tuple(move_item(self._items, item_id, before=before, after=after, to_end=to_end, key=self._key))

    def duplicate(self, item_id: str) -> str:
        items, copy_id = duplicate_item(self._items, item_id, self._clone, key=self._key, prefix=self._id_prefix)
        self._items = tuple(items)
        return copy_id

    def remove(self, item_id: str) -> None:
        self._items = tuple(remove_item(self._items, item_id, key=self._key, min_size=self.min_size))
