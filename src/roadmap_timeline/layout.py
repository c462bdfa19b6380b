"""Row layout: turn a flat work item collection into a vertical row stack."""

import logging
from collections.abc import Iterable

from roadmap_timeline.config import DEFAULT_CONFIG, EngineConfig
from roadmap_timeline.exceptions import LayoutInvariantError
from roadmap_timeline.models import (
    GROUP_HEADER,
    TYPE_PRECEDENCE,
    RowEntry,
    WorkItem,
    WorkItemType,
)
from roadmap_timeline.settings import TimelineSettings

logger = logging.getLogger(__name__)

UNASSIGNED_GROUP = "Unassigned"
GROUP_KEY_PREFIX = "grp-"

_FIELD_ATTRIBUTES = {
    "areaPath": "area_path",
    "iterationPath": "iteration_path",
    "assignedTo": "assigned_to",
    "state": "state",
    "priority": "priority",
    "tags": "tags",
}
_PATH_FIELDS = ("areaPath", "iterationPath")


class _RowStack:
    """Appends rows top to bottom, keeping them contiguous."""

    def __init__(self, settings: TimelineSettings, config: EngineConfig) -> None:
        self.rows: list[RowEntry] = []
        self._y: float = 0
        self._density = settings.row_density
        self._config = config

    def push(self, kind: str, **fields) -> None:
        height = self._config.row_height(self._density, kind)
        self.rows.append(RowEntry(kind=kind, y=self._y, height=height, **fields))
        self._y += height


def group_key(item: WorkItem, group_field: str, separator: str = "\\") -> str:
    """Bucket name of ``item`` for grouped mode.

    Path fields are keyed on their last segment; empty values land in the
    ``Unassigned`` bucket.
    """
    value = getattr(item, _FIELD_ATTRIBUTES.get(group_field, "area_path"))
    if not value:
        return UNASSIGNED_GROUP
    value = str(value)
    if group_field in _PATH_FIELDS:
        return value.split(separator)[-1] or value
    return value


def filter_visible_types(items: Iterable[WorkItem], settings: TimelineSettings) -> list[WorkItem]:
    shown = {
        WorkItemType.EPIC: settings.show_epics,
        WorkItemType.FEATURE: settings.show_features,
        WorkItemType.MILESTONE: settings.show_milestones,
    }
    return [item for item in items if shown.get(item.type, True)]


def build_rows(
    items: Iterable[WorkItem],
    settings: TimelineSettings,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[RowEntry]:
    """Lay out work items as an ordered, contiguous list of rows.

    With ``group_by == "epic"`` each Epic is followed by its Milestones and
    then its Features; any other ``group_by`` buckets items under sorted group
    headers. Collapsed keys hide a parent's children, except in pdf mode
    where everything is expanded.

    Args:
        items: Work items in input order
        settings: Normalised display settings, including the collapsed keys
        config: Engine constants (row heights per density)

    Returns:
        A new list of rows; the first row starts at y=0

    Raises:
        LayoutInvariantError: In debug runs, if the rows are not contiguous
    """
    visible_items = filter_visible_types(items, settings)
    collapsed = frozenset() if settings.pdf_mode else settings.collapsed_keys
    stack = _RowStack(settings, config)

    if settings.hierarchy_mode:
        _build_hierarchy(stack, visible_items, settings, collapsed)
    else:
        _build_groups(stack, visible_items, settings, collapsed, config.path_separator)

    if __debug__:
        check_contiguous(stack.rows)
    logger.debug("Built %d rows from %d visible items", len(stack.rows), len(visible_items))
    return stack.rows


def _build_hierarchy(
    stack: _RowStack,
    items: list[WorkItem],
    settings: TimelineSettings,
    collapsed: frozenset[str],
) -> None:
    epics = [item for item in items if item.type is WorkItemType.EPIC]
    others = [item for item in items if item.type is not WorkItemType.EPIC]

    children_by_parent: dict[str, list[WorkItem]] = {}
    for item in others:
        if item.parent_key:
            children_by_parent.setdefault(item.parent_key, []).append(item)

    for epic in epics:
        children = children_by_parent.get(epic.key, [])
        is_collapsed = epic.key in collapsed
        stack.push(
            WorkItemType.EPIC.value,
            item=epic,
            key=epic.key,
            level=0,
            collapsed=is_collapsed,
            is_parent=True,
            child_count=len(children),
        )
        if is_collapsed or not settings.show_hierarchy:
            continue
        # Milestones are key dates, so they lead
        for child_type in (WorkItemType.MILESTONE, WorkItemType.FEATURE):
            for child in children:
                if child.type is child_type:
                    stack.push(child.type.value, item=child, key=child.key, level=1)

    if not settings.show_epics:
        for item in others:
            stack.push(item.type.value, item=item, key=item.key, level=0)


def _build_groups(
    stack: _RowStack,
    items: list[WorkItem],
    settings: TimelineSettings,
    collapsed: frozenset[str],
    separator: str,
) -> None:
    groups: dict[str, list[WorkItem]] = {}
    for item in items:
        groups.setdefault(group_key(item, settings.group_field, separator), []).append(item)

    precedence = {item_type: rank for rank, item_type in enumerate(TYPE_PRECEDENCE)}

    for name in sorted(groups):
        members = groups[name]
        key = GROUP_KEY_PREFIX + name
        is_collapsed = key in collapsed
        stack.push(
            GROUP_HEADER,
            name=name,
            key=key,
            level=0,
            collapsed=is_collapsed,
            is_parent=True,
            child_count=len(members),
        )
        if is_collapsed or not settings.show_hierarchy:
            continue
        for item in sorted(members, key=lambda m: precedence.get(m.type, len(precedence))):
            stack.push(item.type.value, item=item, key=item.key, level=1)


def check_contiguous(rows: list[RowEntry]) -> None:
    """Raise LayoutInvariantError unless rows stack from y=0 without gaps or overlap."""
    expected_y: float = 0
    for i, row in enumerate(rows):
        if row.y != expected_y:
            raise LayoutInvariantError(
                f"Row {i} starts at y={row.y}, expected {expected_y}"
            )
        expected_y = row.bottom
