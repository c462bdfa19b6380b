"""Dependency connector routing between laid-out rows."""

import logging
from collections.abc import Sequence

from roadmap_timeline.coordinates import TimelineCoordinateMapper
from roadmap_timeline.models import (
    PARENT_CHILD,
    PREDECESSOR,
    Connector,
    Point,
    RowEntry,
    RowVisibility,
    WorkItemType,
)

logger = logging.getLogger(__name__)

_KEY_PREFIXES = tuple(
    f"{t.value[0]}-" for t in (WorkItemType.EPIC, WorkItemType.FEATURE, WorkItemType.MILESTONE)
)


class RowIndex:
    """Lookup of item rows by composite key and by numeric work item id.

    Built once per routing pass; every lookup afterwards is a dict hit.
    """

    def __init__(self, rows: Sequence[RowEntry]) -> None:
        self.by_key: dict[str, RowEntry] = {}
        self.by_id: dict[int, RowEntry] = {}
        for row in rows:
            if row.item is None:
                continue
            self.by_key[row.item.key] = row
            self.by_id[row.item.work_item_id] = row

    def parent_of(self, row: RowEntry) -> RowEntry | None:
        parent_key = row.item.parent_key
        return self.by_key.get(parent_key) if parent_key else None

    def predecessor_of(self, row: RowEntry) -> RowEntry | None:
        """Resolve a predecessor reference.

        References are not reliably type-tagged, so try the bare numeric id,
        the raw value as a key, then each type prefix in turn.
        """
        reference = row.item.predecessor_id
        if not reference:
            return None
        try:
            number = float(reference)
            found = self.by_id.get(int(number)) if number.is_integer() else None
        except (ValueError, OverflowError):
            found = None
        if found is None:
            found = self.by_key.get(reference)
        for prefix in _KEY_PREFIXES:
            if found is not None:
                break
            found = self.by_key.get(prefix + reference)
        return found


def _end_x(row: RowEntry, mapper: TimelineCoordinateMapper) -> float | None:
    target = row.item.target_date
    return mapper.date_to_x(target) if target else None


def _start_x(row: RowEntry, mapper: TimelineCoordinateMapper) -> float | None:
    start = row.item.start_date or row.item.target_date
    return mapper.date_to_x(start) if start else None


def _connect(
    family: str,
    source: RowEntry,
    target: RowEntry,
    mapper: TimelineCoordinateMapper,
) -> Connector | None:
    start_x = _end_x(source, mapper)
    end_x = _start_x(target, mapper)
    if start_x is None or end_x is None:
        return None
    return Connector(
        family=family,
        source_key=source.item.key,
        target_key=target.item.key,
        start=Point(start_x, source.center_y),
        end=Point(end_x, target.center_y),
    )


def route_connectors(
    rows: Sequence[RowEntry],
    mapper: TimelineCoordinateMapper,
    *,
    parent_child: bool = True,
    predecessors: bool = True,
    visible: Sequence[RowVisibility] | None = None,
) -> list[Connector]:
    """Compute dependency connectors between rows.

    Parent-child connectors run from the parent Epic's end to the child's
    start; predecessor connectors run from the predecessor's end to the
    successor's start. References that do not resolve to a routed row, and
    endpoints without dates, produce no connector.

    Args:
        rows: Laid-out rows with final y positions
        mapper: Coordinate mapper for x positions
        parent_child: Route the parent-child family
        predecessors: Route the predecessor family
        visible: Culling result; when given, only visible rows take part

    Returns:
        Parent-child connectors in row order, then predecessor connectors
    """
    if visible is not None:
        rows = [rows[v.index] for v in visible if v.is_visible]
    item_rows = [row for row in rows if row.item is not None]
    index = RowIndex(item_rows)

    connectors: list[Connector] = []
    unresolved = 0

    if parent_child:
        for row in item_rows:
            if not row.item.parent_key:
                continue
            parent = index.parent_of(row)
            if parent is None:
                unresolved += 1
                continue
            connector = _connect(PARENT_CHILD, parent, row, mapper)
            if connector:
                connectors.append(connector)

    if predecessors:
        for row in item_rows:
            if not row.item.predecessor_id:
                continue
            predecessor = index.predecessor_of(row)
            if predecessor is None:
                unresolved += 1
                continue
            connector = _connect(PREDECESSOR, predecessor, row, mapper)
            if connector:
                connectors.append(connector)

    if unresolved:
        logger.debug("Skipped %d dependency edges with unresolved endpoints", unresolved)
    return connectors
