# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Tests for change events, ChangeSet views and ChangeRecorder."""

from sectionkit.protocols.change import (
    ChangeKind,
    ChangeObserver,
    ChangeRecorder,
    ChangeSet,
    ItemChange,
    SectionChange,
)
from sectionkit.protocols.index_path import IndexPath


def ip(section, row):
    return IndexPath(section=section, row=row)


class TestIndexPath:
    def test_item_alias(self):
        assert ip(1, 4).item == 4

    def test_ordering_is_section_then_row(self):
        paths = [ip(1, 0), ip(0, 3), ip(0, 1)]
        assert sorted(paths, reverse=True) == [ip(1, 0), ip(0, 3), ip(0, 1)]

    def test_hashable_value(self):
        assert {ip(0, 1), ip(0, 1)} == {ip(0, 1)}

    def test_with_row(self):
        assert ip(2, 3).with_row(0) == ip(2, 0)


class TestChangeKind:
    def test_values(self):
        assert {k.value for k in ChangeKind} == {
            "insert",
            "delete",
            "move",
            "update",
            "reload",
        }

    def test_str_comparison(self):
        assert ChangeKind.INSERT == "insert"


class TestDefaultObserver:
    def test_every_callback_is_optional(self):
        observer = ChangeObserver()
        observer.will_change_content(None)
        observer.item_changed(None, 1, None, ChangeKind.INSERT, ip(0, 0))
        observer.section_changed(None, object(), 0, ChangeKind.DELETE)
        observer.did_change_content(None)
        assert observer.section_index_title(None, "a") is None


class TestDispatch:
    def test_item_change_dispatch(self):
        calls = []

        class Obs(ChangeObserver):
            def item_changed(self, container, item, index_path, kind, new_index_path):
                calls.append((container, item, index_path, kind, new_index_path))

        ItemChange("x", ChangeKind.MOVE, ip(0, 1), ip(0, 2)).dispatch(Obs(), "c")
        assert calls == [("c", "x", ip(0, 1), ChangeKind.MOVE, ip(0, 2))]

    def test_section_change_dispatch(self):
        calls = []

        class Obs(ChangeObserver):
            def section_changed(self, container, section, section_index, kind):
                calls.append((section, section_index, kind))

        SectionChange("s", ChangeKind.INSERT, 3).dispatch(Obs(), None)
        assert calls == [("s", 3, ChangeKind.INSERT)]


class TestChangeSet:
    def test_views(self):
        cs = ChangeSet(
            (
                ItemChange(1, ChangeKind.DELETE, ip(0, 3)),
                ItemChange(2, ChangeKind.DELETE, ip(0, 1)),
                ItemChange(3, ChangeKind.INSERT, None, ip(1, 0)),
                ItemChange(4, ChangeKind.MOVE, ip(0, 0), ip(0, 2)),
                ItemChange(5, ChangeKind.RELOAD, ip(0, 4)),
                ItemChange(6, ChangeKind.UPDATE, ip(0, 5)),
                SectionChange("a", ChangeKind.DELETE, 2),
                SectionChange("b", ChangeKind.INSERT, 0),
                SectionChange("c", ChangeKind.RELOAD, 1),
            )
        )
        assert len(cs) == 9
        assert cs.deleted_rows == [ip(0, 3), ip(0, 1)]
        assert cs.inserted_rows == [ip(1, 0)]
        assert cs.moved_rows == [(ip(0, 0), ip(0, 2))]
        assert cs.reloaded_rows == [ip(0, 4)]
        assert cs.updated_rows == [ip(0, 5)]
        assert cs.deleted_sections == [2]
        assert cs.inserted_sections == [0]
        assert cs.reloaded_sections == [1]

    def test_empty(self):
        assert len(ChangeSet()) == 0
        assert list(ChangeSet()) == []


class TestChangeRecorder:
    def test_groups_brackets(self):
        rec = ChangeRecorder()
        rec.will_change_content(None)
        assert rec.open
        rec.item_changed(None, 1, None, ChangeKind.INSERT, ip(0, 0))
        rec.section_changed(None, "s", 0, ChangeKind.RELOAD)
        rec.did_change_content(None)
        assert not rec.open

        rec.will_change_content(None)
        rec.item_changed(None, 2, ip(0, 1), ChangeKind.DELETE, None)
        rec.did_change_content(None)

        assert rec.will_count == rec.did_count == 2
        assert len(rec.change_sets) == 2
        assert rec.last.deleted_rows == [ip(0, 1)]
        assert [type(e).__name__ for e in rec.events] == [
            "ItemChange",
            "SectionChange",
            "ItemChange",
        ]

    def test_event_outside_bracket_kept(self):
        rec = ChangeRecorder()
        rec.item_changed(None, 1, ip(0, 0), ChangeKind.RELOAD, None)
        assert len(rec.change_sets) == 1
        assert rec.will_count == 0

    def test_clear(self):
        rec = ChangeRecorder()
        rec.will_change_content(None)
        rec.did_change_content(None)
        rec.clear()
        assert rec.change_sets == []
        assert rec.last is None
        assert rec.will_count == rec.did_count == 0
