"""Generic read-only collections for tagged items."""

from __future__ import annotations

from abc import ABC
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, RootModel


class TaggedModel(BaseModel, ABC):
    """ABC for objects identified by a tag."""

    model_config = ConfigDict(frozen=True)

    tag: str


T = TypeVar("T", bound=TaggedModel)


class TaggedCollection(RootModel[tuple[T, ...]]):
    """Ordered, immutable collection with dict-like access by tag.

    Wraps a tuple of items with a .tag attribute. Builds an internal
    tag-to-item mapping once at init. When tags repeat, lookup by tag
    returns the first item carrying it.
    """

    model_config = ConfigDict(frozen=True)

    root: tuple[T, ...] = Field(default_factory=tuple)
    _map: dict[str, T] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any, /) -> None:
        """Initialize the tag lookup after Pydantic validation."""
        self._map = {}
        for item in self.root:
            self._map.setdefault(item.tag, item)

    def __getitem__(self, item: str | int) -> T:
        if isinstance(item, int):
            return self.root[item]
        return self._map[item]

    def get(self, tag: str, default: T | None = None) -> T | None:
        """Get an item by tag, returning default if not found."""
        return self._map.get(tag, default)

    def __contains__(self, tag: object) -> bool:
        return tag in self._map

    def __iter__(self) -> Iterator[T]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __bool__(self) -> bool:
        return bool(self.root)

    @property
    def tags(self) -> tuple[str, ...]:
        """Tags of the items, in order."""
        return tuple(item.tag for item in self.root)

    def select(self, predicate: Callable[[T], bool]) -> TaggedCollection[T]:
        """New collection of the same type holding the items passing predicate.

        Items are shared with this collection, not copied.
        """
        return type(self)(tuple(item for item in self.root if predicate(item)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.tags)})"
