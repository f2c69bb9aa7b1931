# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable, Iterator, Sequence
from typing import Any, Generic, TypeVar

from ..protocols._concepts import Collective
from ..protocols.index_path import IndexPath
from ..protocols.section import Section

T = TypeVar("T")

__all__ = ("DataSourceContainer",)


class DataSourceContainer(Collective[T], Generic[T]):
    """Read side shared by containers.

    Subclasses provide the section list; lookups, counts and traversal
    are derived from it. Reads are synchronous and see whatever state is
    committed at the time of the call.
    """

    @property
    @abstractmethod
    def sections(self) -> Sequence[Section[T]]:
        pass

    @property
    def fetched_objects(self) -> list[T]:
        """All items, section by section."""
        return [item for section in self.sections for item in section]

    @property
    def has_data(self) -> bool:
        return any(len(section) for section in self.sections)

    def number_of_sections(self) -> int:
        return len(self.sections)

    def number_of_items(self, section_index: int) -> int | None:
        """Item count of a section, None when the index is out of range."""
        sections = self.sections
        if 0 <= section_index < len(sections):
            return len(sections[section_index])
        return None

    def object_at(self, index_path: IndexPath) -> T | None:
        """Bounds-checked lookup; None when either index is out of range."""
        sections = self.sections
        if not 0 <= index_path.section < len(sections):
            return None
        items = sections[index_path.section].items
        if not 0 <= index_path.row < len(items):
            return None
        return items[index_path.row]

    def iter_index_paths(self) -> Iterator[tuple[IndexPath, T]]:
        """Yield ``(index_path, item)`` in section-then-row order."""
        for section_index, section in enumerate(self.sections):
            for row, item in enumerate(section.items):
                yield IndexPath(section=section_index, row=row), item

    def search(self, predicate: Callable[[IndexPath, T], bool]) -> IndexPath | None:
        """First index path whose item satisfies ``predicate``."""
        for index_path, item in self.iter_index_paths():
            if predicate(index_path, item):
                return index_path
        return None

    def enumerate(self, visitor: Callable[[IndexPath, T], Any]) -> None:
        """Visit every ``(index_path, item)`` pair; no early exit."""
        for index_path, item in self.iter_index_paths():
            visitor(index_path, item)

    def index_path_for(self, item: T) -> IndexPath | None:
        return self.search(lambda _, candidate: candidate == item)

    # ==================== Matching lookups ====================

    def index_path_matching(
        self, item: T, matcher: Callable[[T, T], bool]
    ) -> IndexPath | None:
        """First index path whose item ``matcher(candidate, item)`` accepts."""
        return self.search(lambda _, candidate: matcher(candidate, item))

    def index_path_for_identifiable(self, item: T) -> IndexPath | None:
        """First index path holding an item with the same ``id`` attribute."""
        return self.index_path_matching(item, _same_id)

    def objects_for_identifiable(self, item: T) -> list[T]:
        """Every held item sharing ``item.id``."""
        found: list[T] = []
        self.enumerate(
            lambda _, candidate: found.append(candidate)
            if _same_id(candidate, item)
            else None
        )
        return found


_MISSING = object()


def _same_id(candidate: Any, item: Any) -> bool:
    ref = getattr(item, "id", _MISSING)
    if ref is _MISSING:
        return False
    return getattr(candidate, "id", _MISSING) == ref
