# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from contextlib import AsyncExitStack
from typing import Any, Generic, TypeVar

import anyio
from typing_extensions import Self

from ..config import settings
from ..ln.concurrency import MutationSerializer, PendingOperation
from ..protocols.change import (
    ChangeEvent,
    ChangeKind,
    ChangeObserver,
    ItemChange,
    SectionChange,
)
from ..protocols.index_path import IndexPath
from ..protocols.observers import ObserverRegistry
from ..protocols.section import Section
from .base import DataSourceContainer

T = TypeVar("T", bound=Hashable)

__all__ = ("HashableContainer",)

logger = logging.getLogger(__name__)

_Change = Callable[[], list[ChangeEvent]]


def _unique(items: Iterable[Any]) -> list[Any]:
    return list(dict.fromkeys(items))


class HashableContainer(DataSourceContainer[T], Generic[T]):
    """Sections of unique, hashable items with serialized mutations.

    Every mutating method enqueues a ``(mutate, notify)`` pair on the
    container's ``MutationSerializer`` and returns immediately with the
    ``PendingOperation``. The mutate step works out the effect against
    the state committed at that moment, applies it, and captures the
    resulting change events; the notify step delivers them to the
    observers between ``will_change_content`` and ``did_change_content``.

    Invalid references (absent anchors, absent targets, self-relative
    moves, inputs that filter down to nothing) are no-ops: the operation
    still runs in order but changes nothing and notifies nobody.

    An item value lives at most at one index path across all sections.

    Usage:
        ```python
        section = Section(items=[1, 2, 3])
        async with HashableContainer([section]) as container:
            container.observers.subscribe(adapter)
            container.append_objects([4, 5], section)
            await container.settled()
            assert container.fetched_objects == [1, 2, 3, 4, 5]
        ```

    Outside ``async with``, pending work is applied by awaiting
    ``settled()``.
    """

    def __init__(
        self,
        sections: Iterable[Section[T]] | None = None,
        *,
        observer: ChangeObserver | None = None,
        offload: bool | None = None,
        name: str | None = None,
    ) -> None:
        self.name = name or f"{type(self).__name__}-{id(self):x}"
        self._sections: list[Section[T]] = []
        self._held: set[int] = set()
        self.observers = ObserverRegistry(
            raise_errors=settings.SECTIONKIT_RAISE_OBSERVER_ERRORS
        )
        # the registry holds observers weakly; keep the constructor one alive
        self._observer = observer
        if observer is not None:
            self.observers.subscribe(observer)
        self._serializer = MutationSerializer(offload=offload, name=self.name)
        self._exit_stack: AsyncExitStack | None = None
        sections = list(sections or ())
        if sections:
            self.append_sections(sections)

    # ==================== Lifecycle ====================

    async def __aenter__(self) -> Self:
        """Start the drain loop in a task group."""
        stack = AsyncExitStack()
        task_group = await stack.enter_async_context(anyio.create_task_group())
        await task_group.start(self._serializer.run)
        self._exit_stack = stack
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        """Apply pending work, then stop the drain loop.

        Pending work is applied whether the block exits cleanly or
        raises; an exception raised in the block propagates unchanged.
        """
        stack, self._exit_stack = self._exit_stack, None
        self._serializer.stop()
        if stack is not None:
            await stack.aclose()
        return False

    @property
    def serializer(self) -> MutationSerializer:
        return self._serializer

    async def settled(self) -> None:
        """Wait until every mutation enqueued so far is applied and delivered."""
        await self._serializer.settled()

    def perform_after_updates(
        self, block: Callable[[HashableContainer[T]], Any]
    ) -> PendingOperation:
        """Run ``block(self)`` after all previously enqueued mutations."""
        return self._serializer.run_after_drain(
            lambda: block(self), label="perform_after_updates"
        )

    # ==================== Queries ====================

    @property
    def sections(self) -> tuple[Section[T], ...]:
        return tuple(self._sections)

    def contains(self, item: T) -> bool:
        return any(item in section for section in self._sections)

    def __contains__(self, item: Any) -> bool:
        return self.contains(item)

    def section_containing(self, item: T) -> Section[T] | None:
        for section in self._sections:
            if item in section:
                return section
        return None

    def index_of_section(self, section: Section[T] | None) -> int | None:
        """Index of a held section.

        The exact object is found by ``uid``; an equal copy of a held
        section (same items and labels) matches too.
        """
        if section is None:
            return None
        if section.uid in self._held:
            for index, held in enumerate(self._sections):
                if held is section:
                    return index
        for index, held in enumerate(self._sections):
            if held == section:
                return index
        return None

    def index_path_for(self, item: T) -> IndexPath | None:
        located = self._locate(item)
        if located is None:
            return None
        section_index, _, row = located
        return IndexPath(section=section_index, row=row)

    def index_of_object(self, item: T) -> int | None:
        """Row of ``item`` within its section."""
        located = self._locate(item)
        return None if located is None else located[2]

    def objects_at_section_index(self, section_index: int) -> list[T]:
        if 0 <= section_index < len(self._sections):
            return self._sections[section_index].objects
        return []

    def objects_in_section(self, section: Section[T]) -> list[T]:
        return section.objects

    def objects_in_section_containing(self, item: T) -> list[T]:
        section = self.section_containing(item)
        return section.objects if section is not None else []

    def first_object(self, section: Section[T] | None) -> T | None:
        return section.first if section is not None else None

    def last_object(self, section: Section[T] | None) -> T | None:
        return section.last if section is not None else None

    def section_index_title(self, section_name: str) -> str | None:
        """Index title offered by the observers for ``section_name``."""
        return self.observers.section_index_title(self, section_name)

    def _locate(self, item: T) -> tuple[int, Section[T], int] | None:
        for section_index, section in enumerate(self._sections):
            row = section.index_of(item)
            if row is not None:
                return section_index, section, row
        return None

    def _reindex(self) -> None:
        self._held = {section.uid for section in self._sections}

    def _held_items(self) -> set[T]:
        held: set[T] = set()
        for section in self._sections:
            held.update(section.items)
        return held

    def _new_items(self, items: Iterable[T]) -> list[T]:
        held = self._held_items()
        return [item for item in _unique(items) if item not in held]

    def _claim_sections(self, sections: Iterable[Section[T]]) -> list[Section[T]]:
        """Strip items already held or claimed earlier in the batch.

        Sections already held are skipped, and sections left empty are
        dropped.
        """
        held = self._held_items()
        claimed: set[T] = set()
        seen: set[int] = set()
        accepted: list[Section[T]] = []
        for section in sections:
            if section.uid in self._held or section.uid in seen:
                continue
            seen.add(section.uid)
            taken = [i for i in section.items if i in held or i in claimed]
            section.delete(taken)
            claimed.update(section.items)
            if len(section):
                accepted.append(section)
        return accepted

    # ==================== Pipeline ====================

    def _submit(self, label: str, change: _Change) -> PendingOperation:
        events: list[ChangeEvent] = []

        def mutate() -> None:
            events.extend(change())

        def notify() -> None:
            if not events:
                logger.debug(f"{self.name}: {label} had no effect")
                return
            logger.debug(f"{self.name}: {label} produced {len(events)} change(s)")
            self.observers.deliver(self, events)

        return self._serializer.enqueue(mutate, notify, label=label)

    # ==================== Item mutations ====================

    def append_objects(
        self, items: Iterable[T], section: Section[T] | None
    ) -> PendingOperation:
        """Append items not yet held anywhere to ``section``."""
        items = list(items)

        def change() -> list[ChangeEvent]:
            section_index = self.index_of_section(section)
            if section_index is None:
                return []
            target = self._sections[section_index]
            new = self._new_items(items)
            if not new:
                return []
            start = len(target)
            target.append(new)
            return [
                ItemChange(
                    item,
                    ChangeKind.INSERT,
                    None,
                    IndexPath(section=section_index, row=start + offset),
                )
                for offset, item in enumerate(new)
            ]

        return self._submit("append_objects", change)

    def _insert_objects(
        self, label: str, items: Iterable[T], anchor: T, after: bool
    ) -> PendingOperation:
        items = list(items)

        def change() -> list[ChangeEvent]:
            located = self._locate(anchor)
            if located is None:
                return []
            section_index, section, row = located
            new = self._new_items(items)
            if not new:
                return []
            if after:
                section.insert_after(new, anchor)
                start = row + 1
            else:
                section.insert_before(new, anchor)
                start = row
            return [
                ItemChange(
                    item,
                    ChangeKind.INSERT,
                    None,
                    IndexPath(section=section_index, row=start + offset),
                )
                for offset, item in enumerate(new)
            ]

        return self._submit(label, change)

    def insert_objects_before(
        self, items: Iterable[T], anchor: T
    ) -> PendingOperation:
        """Insert new items contiguously in front of ``anchor``."""
        return self._insert_objects("insert_objects_before", items, anchor, False)

    def insert_objects_after(
        self, items: Iterable[T], anchor: T
    ) -> PendingOperation:
        """Insert new items contiguously behind ``anchor``."""
        return self._insert_objects("insert_objects_after", items, anchor, True)

    def delete_objects(self, items: Iterable[T]) -> PendingOperation:
        """Delete items; sections left empty are dropped.

        Item deletions are reported against the pre-deletion indexing in
        descending ``(section, row)`` order, followed by the dropped
        sections in descending index order.
        """
        items = _unique(items)

        def change() -> list[ChangeEvent]:
            grouped: dict[int, list[tuple[int, T]]] = {}
            for item in items:
                located = self._locate(item)
                if located is not None:
                    section_index, _, row = located
                    grouped.setdefault(section_index, []).append((row, item))
            if not grouped:
                return []

            events: list[ChangeEvent] = []
            emptied: list[int] = []
            for section_index in sorted(grouped, reverse=True):
                section = self._sections[section_index]
                found = sorted(grouped[section_index], reverse=True)
                section.delete([item for _, item in found])
                if not len(section):
                    emptied.append(section_index)
                events.extend(
                    ItemChange(
                        item,
                        ChangeKind.DELETE,
                        IndexPath(section=section_index, row=row),
                        None,
                    )
                    for row, item in found
                )

            for section_index in emptied:
                section = self._sections.pop(section_index)
                events.append(
                    SectionChange(section, ChangeKind.DELETE, section_index)
                )
            self._reindex()
            return events

        return self._submit("delete_objects", change)

    def delete_all_objects(self) -> PendingOperation:
        """Drop every section, reported in ascending pre-deletion index order."""

        def change() -> list[ChangeEvent]:
            removed, self._sections = self._sections, []
            self._reindex()
            return [
                SectionChange(section, ChangeKind.DELETE, index)
                for index, section in enumerate(removed)
            ]

        return self._submit("delete_all_objects", change)

    def _move_object(
        self, label: str, item: T, anchor: T, after: bool
    ) -> PendingOperation:
        def change() -> list[ChangeEvent]:
            if item == anchor:
                return []
            origin = self._locate(item)
            target = self._locate(anchor)
            if origin is None or target is None:
                return []
            section_index, section, row = origin
            anchor_section_index, anchor_section, anchor_row = target

            destination = anchor_row + (1 if after else 0)
            if section is anchor_section and row < anchor_row:
                # the anchor shifts up once the item is taken out
                destination -= 1
            old = IndexPath(section=section_index, row=row)
            if old == IndexPath(section=anchor_section_index, row=destination):
                return []

            if section is anchor_section:
                if after:
                    section.move_after(item, anchor)
                else:
                    section.move_before(item, anchor)
            else:
                section.delete([item])
                if after:
                    anchor_section.insert_after([item], anchor)
                else:
                    anchor_section.insert_before([item], anchor)
            return [ItemChange(item, ChangeKind.MOVE, old, self.index_path_for(item))]

        return self._submit(label, change)

    def move_object_before(self, item: T, anchor: T) -> PendingOperation:
        """Move ``item`` directly in front of ``anchor``, across sections too."""
        return self._move_object("move_object_before", item, anchor, False)

    def move_object_after(self, item: T, anchor: T) -> PendingOperation:
        """Move ``item`` directly behind ``anchor``, across sections too."""
        return self._move_object("move_object_after", item, anchor, True)

    def replace_object(self, item: T, new_item: T) -> PendingOperation:
        """Substitute ``new_item`` for ``item`` in place.

        Reported as a single reload at the unchanged index path carrying
        ``new_item``. No-op when ``item`` is absent or ``new_item`` is
        already held elsewhere.
        """

        def change() -> list[ChangeEvent]:
            located = self._locate(item)
            if located is None:
                return []
            if new_item != item and self.contains(new_item):
                return []
            section_index, section, row = located
            section.replace(item, new_item)
            return [
                ItemChange(
                    new_item,
                    ChangeKind.RELOAD,
                    IndexPath(section=section_index, row=row),
                    None,
                )
            ]

        return self._submit("replace_object", change)

    def _refresh_objects(
        self, label: str, items: Iterable[T], kind: ChangeKind
    ) -> PendingOperation:
        items = _unique(items)

        def change() -> list[ChangeEvent]:
            wanted = set(items)
            return [
                ItemChange(item, kind, index_path, None)
                for index_path, item in self.iter_index_paths()
                if item in wanted
            ]

        return self._submit(label, change)

    def reload_objects(self, items: Iterable[T]) -> PendingOperation:
        """Report a full reload of each held item in ``items``."""
        return self._refresh_objects("reload_objects", items, ChangeKind.RELOAD)

    def reconfigure_objects(self, items: Iterable[T]) -> PendingOperation:
        """Report a soft update of each held item in ``items``."""
        return self._refresh_objects(
            "reconfigure_objects", items, ChangeKind.UPDATE
        )

    # ==================== Section mutations ====================

    def _splice_sections(self, at: int, sections: list[Section[T]]) -> list[ChangeEvent]:
        self._sections[at:at] = sections
        self._reindex()
        return [
            SectionChange(section, ChangeKind.INSERT, at + offset)
            for offset, section in enumerate(sections)
        ]

    def append_sections(self, sections: Iterable[Section[T]]) -> PendingOperation:
        """Append sections after removing items already held."""
        sections = list(sections)

        def change() -> list[ChangeEvent]:
            accepted = self._claim_sections(sections)
            if not accepted:
                return []
            return self._splice_sections(len(self._sections), accepted)

        return self._submit("append_sections", change)

    def _insert_sections(
        self,
        label: str,
        sections: Iterable[Section[T]],
        anchor: Section[T],
        after: bool,
    ) -> PendingOperation:
        sections = list(sections)

        def change() -> list[ChangeEvent]:
            anchor_index = self.index_of_section(anchor)
            if anchor_index is None:
                return []
            accepted = self._claim_sections(sections)
            if not accepted:
                return []
            return self._splice_sections(anchor_index + (1 if after else 0), accepted)

        return self._submit(label, change)

    def insert_sections_before(
        self, sections: Iterable[Section[T]], anchor: Section[T]
    ) -> PendingOperation:
        return self._insert_sections("insert_sections_before", sections, anchor, False)

    def insert_sections_after(
        self, sections: Iterable[Section[T]], anchor: Section[T]
    ) -> PendingOperation:
        return self._insert_sections("insert_sections_after", sections, anchor, True)

    def delete_sections(self, sections: Iterable[Section[T]]) -> PendingOperation:
        """Remove held sections, reported in descending pre-deletion index order."""
        sections = list(sections)

        def change() -> list[ChangeEvent]:
            indexes = {
                index
                for index in map(self.index_of_section, sections)
                if index is not None
            }
            events: list[ChangeEvent] = []
            for index in sorted(indexes, reverse=True):
                section = self._sections.pop(index)
                events.append(SectionChange(section, ChangeKind.DELETE, index))
            self._reindex()
            return events

        return self._submit("delete_sections", change)

    def _move_section(
        self, label: str, section: Section[T], anchor: Section[T], after: bool
    ) -> PendingOperation:
        def change() -> list[ChangeEvent]:
            origin = self.index_of_section(section)
            target = self.index_of_section(anchor)
            if origin is None or target is None or origin == target:
                return []
            destination = target + (1 if after else 0)
            if origin < target:
                destination -= 1
            if destination == origin:
                return []
            moved = self._sections.pop(origin)
            self._sections.insert(destination, moved)
            return [
                SectionChange(moved, ChangeKind.DELETE, origin),
                SectionChange(moved, ChangeKind.INSERT, destination),
            ]

        return self._submit(label, change)

    def move_section_before(
        self, section: Section[T], anchor: Section[T]
    ) -> PendingOperation:
        return self._move_section("move_section_before", section, anchor, False)

    def move_section_after(
        self, section: Section[T], anchor: Section[T]
    ) -> PendingOperation:
        return self._move_section("move_section_after", section, anchor, True)

    def reload_sections(self, sections: Iterable[Section[T]]) -> PendingOperation:
        """Report a reload of each held section, in container order."""
        sections = list(sections)

        def change() -> list[ChangeEvent]:
            indexes = {
                index
                for index in map(self.index_of_section, sections)
                if index is not None
            }
            return [
                SectionChange(self._sections[index], ChangeKind.RELOAD, index)
                for index in sorted(indexes)
            ]

        return self._submit("reload_sections", change)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"sections={len(self._sections)}, "
            f"pending={self._serializer.pending_count})"
        )
