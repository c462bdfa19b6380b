"""Tests for row layout."""

from datetime import date

import pytest

from roadmap_timeline.config import DEFAULT_CONFIG
from roadmap_timeline.exceptions import LayoutInvariantError
from roadmap_timeline.layout import (
    UNASSIGNED_GROUP,
    build_rows,
    check_contiguous,
    group_key,
)
from roadmap_timeline.models import GROUP_HEADER, RowEntry, WorkItem, WorkItemType
from roadmap_timeline.settings import TimelineSettings


def _item(work_item_id, item_type, **kwargs):
    return WorkItem(
        work_item_id=work_item_id,
        title=f"{item_type.value} {work_item_id}",
        type=item_type,
        **kwargs,
    )


def _epic(work_item_id, **kwargs):
    return _item(work_item_id, WorkItemType.EPIC, **kwargs)


def _feature(work_item_id, **kwargs):
    return _item(work_item_id, WorkItemType.FEATURE, **kwargs)


def _milestone(work_item_id, **kwargs):
    return _item(work_item_id, WorkItemType.MILESTONE, **kwargs)


def _keys(rows):
    return [row.key for row in rows]


class TestHierarchyLayout:
    """Tests for epic hierarchy mode."""

    def setup_method(self):
        self.items = [
            _epic(1, start_date=date(2025, 1, 1), target_date=date(2025, 6, 30)),
            _feature(2, parent_key="E-1"),
            _milestone(3, parent_key="E-1", target_date=date(2025, 3, 1)),
        ]

    def test_milestones_precede_features(self):
        rows = build_rows(self.items, TimelineSettings())
        assert _keys(rows) == ["E-1", "M-3", "F-2"]
        assert [row.level for row in rows] == [0, 1, 1]

    def test_rows_stack_from_zero(self):
        rows = build_rows(self.items, TimelineSettings())
        assert [row.y for row in rows] == [0, 48, 88]
        assert [row.height for row in rows] == [48, 40, 44]
        assert rows[-1].bottom == 132

    def test_epic_row_reports_children(self):
        epic_row = build_rows(self.items, TimelineSettings())[0]
        assert epic_row.is_parent
        assert epic_row.child_count == 2
        assert not epic_row.collapsed

    def test_collapsed_epic_hides_children(self):
        settings = TimelineSettings(collapsed_keys=frozenset({"E-1"}))
        rows = build_rows(self.items, settings)
        assert _keys(rows) == ["E-1"]
        assert rows[0].collapsed
        assert rows[0].child_count == 2

    def test_pdf_mode_expands_everything(self):
        settings = TimelineSettings(collapsed_keys=frozenset({"E-1"}), pdf_mode=True)
        rows = build_rows(self.items, settings)
        assert _keys(rows) == ["E-1", "M-3", "F-2"]
        assert settings.collapsed_keys == frozenset({"E-1"})

    def test_show_hierarchy_off_lists_only_epics(self):
        rows = build_rows(self.items, TimelineSettings(show_hierarchy=False))
        assert _keys(rows) == ["E-1"]

    def test_hidden_epics_list_other_items_flat(self):
        rows = build_rows(self.items, TimelineSettings(show_epics=False))
        assert _keys(rows) == ["F-2", "M-3"]
        assert all(row.level == 0 for row in rows)

    def test_hidden_type_is_filtered(self):
        rows = build_rows(self.items, TimelineSettings(show_milestones=False))
        assert _keys(rows) == ["E-1", "F-2"]
        assert rows[0].child_count == 1

    def test_children_follow_their_own_epic(self):
        items = [
            _epic(1),
            _epic(2),
            _feature(10, parent_key="E-2"),
            _feature(11, parent_key="E-1"),
            _feature(12, parent_key="E-2"),
        ]
        rows = build_rows(items, TimelineSettings())
        assert _keys(rows) == ["E-1", "F-11", "E-2", "F-10", "F-12"]

    def test_same_id_different_types_are_distinct(self):
        items = [_epic(5), _feature(5, parent_key="E-5")]
        rows = build_rows(items, TimelineSettings())
        assert _keys(rows) == ["E-5", "F-5"]

    def test_density_changes_row_heights(self):
        rows = build_rows(self.items, TimelineSettings(row_density="compact"))
        assert [row.height for row in rows] == [32, 28, 30]

    def test_empty_input(self):
        rows = build_rows([], TimelineSettings())
        assert rows == []

    def test_does_not_modify_input(self):
        items = list(self.items)
        build_rows(items, TimelineSettings())
        assert items == self.items


class TestGroupedLayout:
    """Tests for grouped mode."""

    def setup_method(self):
        self.items = [
            _feature(1, area_path="Org\\Team B"),
            _milestone(2, area_path="Org\\Team A"),
            _feature(3, area_path=""),
            _epic(4, area_path="Org\\Team A"),
            _feature(5, area_path="Org\\Team A"),
        ]
        self.settings = TimelineSettings(group_by="areaPath")

    def test_groups_sorted_with_headers(self):
        rows = build_rows(self.items, self.settings)
        headers = [row for row in rows if row.kind == GROUP_HEADER]
        assert [row.name for row in headers] == ["Team A", "Team B", UNASSIGNED_GROUP]
        assert [row.key for row in headers] == ["grp-Team A", "grp-Team B", "grp-Unassigned"]

    def test_members_ordered_by_type(self):
        rows = build_rows(self.items, self.settings)
        assert _keys(rows) == [
            "grp-Team A", "E-4", "M-2", "F-5",
            "grp-Team B", "F-1",
            "grp-Unassigned", "F-3",
        ]
        assert rows[0].child_count == 3
        assert all(row.level == 1 for row in rows if row.kind != GROUP_HEADER)

    def test_collapsed_group(self):
        settings = TimelineSettings(group_by="areaPath", collapsed_keys=frozenset({"grp-Team A"}))
        rows = build_rows(self.items, settings)
        assert _keys(rows)[:2] == ["grp-Team A", "grp-Team B"]
        assert rows[0].collapsed

    def test_group_header_height(self):
        rows = build_rows(self.items, self.settings)
        assert rows[0].height == DEFAULT_CONFIG.row_height("normal", GROUP_HEADER)
        check_contiguous(rows)

    def test_group_by_priority(self):
        items = [_feature(1, priority=2), _feature(2, priority=0), _feature(3, priority=1)]
        rows = build_rows(items, TimelineSettings(group_by="priority"))
        headers = [row.name for row in rows if row.kind == GROUP_HEADER]
        assert headers == ["1", "2", UNASSIGNED_GROUP]

    def test_unknown_group_field_uses_area_path(self):
        rows = build_rows(self.items, TimelineSettings(group_by="colour"))
        assert rows[0].name == "Team A"


class TestGroupKey:
    """Tests for group_key."""

    def test_path_uses_last_segment(self):
        item = _feature(1, iteration_path="Roadmap\\2025\\Sprint 4")
        assert group_key(item, "iterationPath") == "Sprint 4"

    def test_path_without_separator(self):
        assert group_key(_feature(1, area_path="Platform"), "areaPath") == "Platform"

    def test_empty_value_is_unassigned(self):
        assert group_key(_feature(1, assigned_to=""), "assignedTo") == UNASSIGNED_GROUP

    def test_non_path_field_kept_whole(self):
        assert group_key(_feature(1, tags="a\\b"), "tags") == "a\\b"


class TestCheckContiguous:
    """Tests for check_contiguous."""

    def test_accepts_stacked_rows(self):
        check_contiguous([RowEntry("Epic", 0, 48), RowEntry("Feature", 48, 44)])

    def test_rejects_gap(self):
        with pytest.raises(LayoutInvariantError):
            check_contiguous([RowEntry("Epic", 0, 48), RowEntry("Feature", 50, 44)])

    def test_rejects_non_zero_start(self):
        with pytest.raises(LayoutInvariantError):
            check_contiguous([RowEntry("Epic", 10, 48)])
