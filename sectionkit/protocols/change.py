# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from typing_extensions import override

from ._concepts import Observer
from .index_path import IndexPath

if TYPE_CHECKING:
    from .section import Section

__all__ = (
    "ChangeKind",
    "ChangeObserver",
    "ItemChange",
    "SectionChange",
    "ChangeEvent",
    "ChangeSet",
    "ChangeRecorder",
)


class ChangeKind(str, Enum):
    """Tag describing one structural effect of a mutation.

    Attributes:
        INSERT: An item or section appeared.
        DELETE: An item or section disappeared.
        MOVE: An item changed position.
        UPDATE: Soft refresh (reconfigure) of an item in place.
        RELOAD: Full redraw of an item or section in place.
    """

    INSERT = "insert"
    DELETE = "delete"
    MOVE = "move"
    UPDATE = "update"
    RELOAD = "reload"


class ChangeObserver(Observer):
    """Consumer of container change notifications.

    Every method is a no-op, so implementers override only what they
    need. For one mutation that changes anything, the container calls
    ``will_change_content`` once, then the item and section events in
    order, then ``did_change_content`` once. Mutations that turn out to be
    no-ops produce no calls at all.

    Callbacks run inside the container's mutation pipeline. Do not wait
    on the container from a callback; further mutation calls are fine,
    they are queued behind the current one.
    """

    def will_change_content(self, container: Any) -> None:
        pass

    def did_change_content(self, container: Any) -> None:
        pass

    def item_changed(
        self,
        container: Any,
        item: Any,
        index_path: IndexPath | None,
        kind: ChangeKind,
        new_index_path: IndexPath | None,
    ) -> None:
        pass

    def section_changed(
        self,
        container: Any,
        section: Section,
        section_index: int,
        kind: ChangeKind,
    ) -> None:
        pass

    def section_index_title(
        self, container: Any, section_name: str
    ) -> str | None:
        return None


@dataclass(slots=True, frozen=True)
class ItemChange:
    """One item-level effect.

    ``index_path`` is the position before the change (None for inserts);
    ``new_index_path`` is the position after it (None for deletes,
    updates and reloads).
    """

    item: Any
    kind: ChangeKind
    index_path: IndexPath | None = None
    new_index_path: IndexPath | None = None

    def dispatch(self, observer: ChangeObserver, container: Any) -> None:
        observer.item_changed(
            container, self.item, self.index_path, self.kind, self.new_index_path
        )


@dataclass(slots=True, frozen=True)
class SectionChange:
    """One section-level effect at ``section_index``."""

    section: Any
    kind: ChangeKind
    section_index: int

    def dispatch(self, observer: ChangeObserver, container: Any) -> None:
        observer.section_changed(
            container, self.section, self.section_index, self.kind
        )


ChangeEvent = ItemChange | SectionChange


@dataclass(slots=True, frozen=True)
class ChangeSet:
    """Events delivered between one will/did bracket, in delivery order."""

    events: tuple[ChangeEvent, ...] = ()

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def _items(self, kind: ChangeKind) -> list[ItemChange]:
        return [
            e for e in self.events if isinstance(e, ItemChange) and e.kind is kind
        ]

    def _sections(self, kind: ChangeKind) -> list[int]:
        return [
            e.section_index
            for e in self.events
            if isinstance(e, SectionChange) and e.kind is kind
        ]

    @property
    def inserted_rows(self) -> list[IndexPath]:
        return [e.new_index_path for e in self._items(ChangeKind.INSERT)]

    @property
    def deleted_rows(self) -> list[IndexPath]:
        return [e.index_path for e in self._items(ChangeKind.DELETE)]

    @property
    def moved_rows(self) -> list[tuple[IndexPath, IndexPath]]:
        return [
            (e.index_path, e.new_index_path)
            for e in self._items(ChangeKind.MOVE)
        ]

    @property
    def reloaded_rows(self) -> list[IndexPath]:
        return [e.index_path for e in self._items(ChangeKind.RELOAD)]

    @property
    def updated_rows(self) -> list[IndexPath]:
        return [e.index_path for e in self._items(ChangeKind.UPDATE)]

    @property
    def inserted_sections(self) -> list[int]:
        return self._sections(ChangeKind.INSERT)

    @property
    def deleted_sections(self) -> list[int]:
        return self._sections(ChangeKind.DELETE)

    @property
    def reloaded_sections(self) -> list[int]:
        return self._sections(ChangeKind.RELOAD)


class ChangeRecorder(ChangeObserver):
    """Observer that groups each will/did bracket into a ``ChangeSet``.

    Useful for adapters driving a batch-update list API, and for tests.
    ``open`` is True between ``will_change_content`` and
    ``did_change_content``.
    """

    def __init__(self) -> None:
        self.change_sets: list[ChangeSet] = []
        self._current: list[ChangeEvent] | None = None
        self.will_count = 0
        self.did_count = 0

    @property
    def open(self) -> bool:
        return self._current is not None

    @property
    def events(self) -> list[ChangeEvent]:
        """All recorded events, flattened across change sets."""
        return [e for cs in self.change_sets for e in cs]

    @property
    def last(self) -> ChangeSet | None:
        return self.change_sets[-1] if self.change_sets else None

    @override
    def will_change_content(self, container: Any) -> None:
        self.will_count += 1
        self._current = []

    @override
    def did_change_content(self, container: Any) -> None:
        self.did_count += 1
        self.change_sets.append(ChangeSet(tuple(self._current or ())))
        self._current = None

    @override
    def item_changed(self, container, item, index_path, kind, new_index_path):
        self._record(ItemChange(item, kind, index_path, new_index_path))

    @override
    def section_changed(self, container, section, section_index, kind):
        self._record(SectionChange(section, kind, section_index))

    def _record(self, event: ChangeEvent) -> None:
        if self._current is None:
            # event outside a bracket, keep it as its own change set
            self.change_sets.append(ChangeSet((event,)))
            return
        self._current.append(event)

    def clear(self) -> None:
        self.change_sets.clear()
        self._current = None
        self.will_count = 0
        self.did_count = 0
