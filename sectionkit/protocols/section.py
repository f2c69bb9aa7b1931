# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import itertools
from collections.abc import Hashable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from typing_extensions import Self

from ._concepts import Ordering

T = TypeVar("T", bound=Hashable)

__all__ = ("Section",)

_uid_counter = itertools.count(1)


def _dedupe(items: Iterable[Any]) -> list[Any]:
    """Drop repeated values, keeping the first occurrence."""
    return list(dict.fromkeys(items))


class Section(BaseModel, Ordering[T], Generic[T]):
    """An ordered, duplicate-free group of items plus display labels.

    Equality and hashing are pure functions of the ordered items, ``name``
    and ``index_title``: two sections with identical content compare and
    hash equal. Each section also gets an opaque ``uid`` at creation,
    which containers use to answer "is this exact section held" in O(1)
    without hashing the item list.

    Once a section is handed to a container, mutate it only through the
    container; the positional primitives below are what the container's
    mutation pipeline calls.

    Attributes:
        items (list[T]): The ordered items.
        name (str): Display label, opaque to the container.
        index_title (str | None): Optional secondary label.
        sender (Any): Optional opaque owner reference.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: list[Any] = Field(
        default_factory=list,
        title="Items",
        description="Ordered, duplicate-free items of this section.",
    )
    name: str = Field(
        default="",
        title="Name",
        description="Display label of the section.",
    )
    index_title: str | None = Field(
        default=None,
        title="Index title",
        description="Optional secondary label.",
    )
    sender: Any = Field(default=None, exclude=True, repr=False)
    _members: set[Any] = PrivateAttr(default_factory=set)
    _uid: int = PrivateAttr(default_factory=lambda: next(_uid_counter))

    @field_validator("items", mode="before")
    def _validate_items(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            value = [value]
        try:
            return _dedupe(value)
        except TypeError as e:
            raise ValueError(f"Section items must be hashable: {e}") from e

    def model_post_init(self, __context: Any) -> None:
        """Initialize _members from items for O(1) membership checks."""
        super().model_post_init(__context)
        self._members = set(self.items)

    def _rebuild_members(self) -> None:
        self._members = set(self.items)

    # ==================== Copies ====================

    def _refresh_identity(self) -> None:
        # copies own their item list and never share a uid with the source
        self.__dict__["items"] = _dedupe(self.items)
        self._rebuild_members()
        self._uid = next(_uid_counter)

    def __copy__(self) -> Self:
        copied = super().__copy__()
        copied._refresh_identity()
        return copied

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> Self:
        copied = super().__deepcopy__(memo)
        copied._refresh_identity()
        return copied

    def model_copy(
        self, *, update: dict[str, Any] | None = None, deep: bool = False
    ) -> Self:
        """Copy with a fresh ``uid``; ``update['items']`` is deduplicated."""
        copied = super().model_copy(update=update, deep=deep)
        copied._refresh_identity()
        return copied

    @property
    def uid(self) -> int:
        return self._uid

    @property
    def number_of_objects(self) -> int:
        return len(self.items)

    @property
    def objects(self) -> list[T]:
        """A shallow copy of the items."""
        return self.items[:]

    @property
    def first(self) -> T | None:
        return self.items[0] if self.items else None

    @property
    def last(self) -> T | None:
        return self.items[-1] if self.items else None

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        # an empty section is still a section
        return True

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __contains__(self, item: Any) -> bool:
        try:
            return item in self._members
        except TypeError:
            return False

    def index_of(self, item: Any) -> int | None:
        """Position of ``item``, or None when it is not in this section."""
        if item not in self:
            return None
        return self.items.index(item)

    # ==================== Positional primitives ====================

    def append(self, items: Iterable[T], /) -> None:
        """Adds items to the end.

        Global uniqueness is the container's job; values already present
        in this section are skipped so the section stays duplicate-free.
        """
        for item in _dedupe(items):
            if item not in self._members:
                self.items.append(item)
                self._members.add(item)

    def _insert_at(self, index: int, items: Iterable[T]) -> None:
        new = [i for i in _dedupe(items) if i not in self._members]
        if index >= len(self.items):
            self.items.extend(new)
        else:
            self.items[index:index] = new
        self._members.update(new)

    def insert_before(self, items: Iterable[T], anchor: T, /) -> None:
        """Inserts items contiguously in front of ``anchor``.

        Does nothing when ``anchor`` is not in this section.
        """
        index = self.index_of(anchor)
        if index is None:
            return
        self._insert_at(index, items)

    def insert_after(self, items: Iterable[T], anchor: T, /) -> None:
        """Inserts items contiguously behind ``anchor``.

        Inserting after the last item appends. Does nothing when
        ``anchor`` is not in this section.
        """
        index = self.index_of(anchor)
        if index is None:
            return
        self._insert_at(index + 1, items)

    def delete(self, items: Iterable[T], /) -> None:
        """Removes the given values; absent values are ignored."""
        targets = {i for i in items if i in self._members}
        if not targets:
            return
        self.items = [i for i in self.items if i not in targets]
        self._rebuild_members()

    def _move(self, item: T, anchor: T, offset: int) -> None:
        if item == anchor or item not in self or anchor not in self:
            return
        self.items.remove(item)
        # anchor position recomputed after the removal
        self.items.insert(self.items.index(anchor) + offset, item)

    def move_before(self, item: T, anchor: T, /) -> None:
        """Moves ``item`` directly in front of ``anchor``."""
        self._move(item, anchor, 0)

    def move_after(self, item: T, anchor: T, /) -> None:
        """Moves ``item`` directly behind ``anchor``."""
        self._move(item, anchor, 1)

    def replace(self, item: T, new_item: T, /) -> None:
        """Substitutes ``new_item`` for ``item`` at the same position."""
        index = self.index_of(item)
        if index is None:
            return
        if new_item != item and new_item in self:
            return
        self.items[index] = new_item
        self._rebuild_members()

    def clear(self) -> None:
        self.items.clear()
        self._members.clear()

    # ==================== Identity ====================

    def _content_key(self) -> tuple[Any, ...]:
        return (tuple(self.items), self.name, self.index_title)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Section):
            return NotImplemented
        return self._content_key() == other._content_key()

    def __hash__(self) -> int:
        return hash(self._content_key())

    def __repr__(self) -> str:
        return (
            f"Section(name={self.name!r}, index_title={self.index_title!r}, "
            f"items={self.items!r})"
        )
