# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass

__all__ = ("IndexPath",)


@dataclass(slots=True, frozen=True, order=True)
class IndexPath:
    """Locates an item as ``(section, row)``.

    Index paths are derived from the current ordering every time they are
    needed; a container never stores them. Ordering compares the section
    first and the row second, which is the order deletions are reported in
    (descending).
    """

    section: int
    row: int

    @property
    def item(self) -> int:
        """Alias of ``row`` for collection-style consumers."""
        return self.row

    def with_row(self, row: int) -> IndexPath:
        return IndexPath(section=self.section, row=row)

    def __repr__(self) -> str:
        return f"IndexPath(section={self.section}, row={self.row})"
