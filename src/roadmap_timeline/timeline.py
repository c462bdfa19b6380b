"""One timeline update cycle: work items in, render-ready geometry out."""

import logging
from collections.abc import Iterable
from datetime import date

from roadmap_timeline.calendar_math import add_days, parse_date
from roadmap_timeline.calendar_math import today as calendar_today
from roadmap_timeline.config import DEFAULT_CONFIG, EngineConfig
from roadmap_timeline.coordinates import TimelineCoordinateMapper
from roadmap_timeline.culling import calculate_visible_rows
from roadmap_timeline.dependencies import route_connectors
from roadmap_timeline.gridlines import grid_lines, header_cells, today_x
from roadmap_timeline.layout import build_rows
from roadmap_timeline.models import (
    RowEntry,
    RowGeometry,
    RowVisibility,
    TimelineResult,
    TimeWindow,
    Viewport,
    WorkItem,
    WorkItemType,
)
from roadmap_timeline.settings import TimelineSettings

logger = logging.getLogger(__name__)


def _text(raw: dict, name: str, default: str = "") -> str:
    value = raw.get(name)
    return str(value) if value not in (None, "") else default


def _parse_type(value) -> WorkItemType:
    try:
        return WorkItemType(str(value))
    except ValueError:
        return WorkItemType.FEATURE


def _parse_int(value) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_reference(value) -> str | None:
    # Numeric ids may arrive as floats from the host's table
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if value is None or isinstance(value, bool):
        return None
    return str(value).strip() or None


def parse_work_item(raw: dict) -> WorkItem | None:
    """Convert one host record to a WorkItem.

    Records without a usable ``workItemId`` give None. Unknown types become
    Features; ``parentId`` always refers to an Epic and is stored as its
    composite key.
    """
    work_item_id = _parse_int(raw.get("workItemId", raw.get("id")))
    if work_item_id is None:
        return None

    parent = _parse_int(raw.get("parentId"))

    return WorkItem(
        work_item_id=work_item_id,
        title=_text(raw, "title"),
        type=_parse_type(raw.get("workItemType", raw.get("type"))),
        state=_text(raw, "state", "New"),
        start_date=parse_date(raw.get("startDate")),
        target_date=parse_date(raw.get("targetDate")),
        parent_key=f"E-{parent}" if parent else None,
        predecessor_id=_parse_reference(raw.get("predecessorId")),
        area_path=_text(raw, "areaPath"),
        iteration_path=_text(raw, "iterationPath"),
        assigned_to=_text(raw, "assignedTo"),
        priority=_parse_int(raw.get("priority")) or 0,
        tags=_text(raw, "tags"),
    )


def parse_work_items(raws: Iterable[dict]) -> list[WorkItem]:
    items: list[WorkItem] = []
    skipped = 0
    for raw in raws:
        item = parse_work_item(raw) if isinstance(raw, dict) else None
        if item is None:
            skipped += 1
            continue
        items.append(item)
    if skipped:
        logger.debug("Skipped %d records without a work item id", skipped)
    return items


def compute_time_window(
    items: Iterable[WorkItem],
    config: EngineConfig = DEFAULT_CONFIG,
    today: date | None = None,
) -> TimeWindow:
    """Visible span: every item date plus lead and trail padding.

    With no dated items the window starts today and runs for the default span,
    padded the same way.
    """
    dates = [
        d
        for item in items
        for d in (item.start_date, item.target_date)
        if d is not None
    ]
    if dates:
        first, last = min(dates), max(dates)
    else:
        first = today or calendar_today()
        last = add_days(first, config.default_span)

    return TimeWindow(
        view_start=add_days(first, -config.padding_before),
        view_end=add_days(last, config.padding_after),
    )


def _row_geometry(
    index: int,
    row: RowEntry,
    mapper: TimelineCoordinateMapper,
    settings: TimelineSettings,
    config: EngineConfig,
) -> RowGeometry:
    indent = row.level * config.indent_per_level
    item = row.item
    if item is None or not item.is_drawable:
        return RowGeometry(row_index=index, key=row.key, indent=indent)

    bar_height = config.bar_height(settings.row_density, row.kind)
    if item.type is WorkItemType.MILESTONE:
        return RowGeometry(
            row_index=index,
            key=row.key,
            milestone_x=mapper.get_milestone_x(item.target_date),
            bar_height=bar_height,
            indent=indent,
        )

    return RowGeometry(
        row_index=index,
        key=row.key,
        bar=mapper.get_bar_bounds(item.start_date, item.target_date),
        bar_height=bar_height,
        indent=indent,
    )


def build_timeline(
    items: list[WorkItem],
    settings: TimelineSettings | None = None,
    viewport: Viewport | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    today: date | None = None,
) -> TimelineResult:
    """Run one full update cycle.

    Args:
        items: Work items in host order
        settings: Display settings (defaults when omitted)
        viewport: Scroll offsets and size of the timeline body
        config: Engine constants
        today: Override for the today marker and the undated window

    Returns:
        TimelineResult with rows, visibility, geometry for visible rows,
        connectors, grid lines, header cells and the today marker
    """
    settings = settings or TimelineSettings()
    viewport = viewport or Viewport()

    window = compute_time_window(items, config, today=today)
    mapper = TimelineCoordinateMapper.from_window(window, settings, config)
    rows = build_rows(items, settings, config)

    # pdf mode renders everything; an unknown viewport width disables column culling
    x_range = None
    if settings.pdf_mode:
        visibility = [
            RowVisibility(index=i, y=row.y, height=row.height, is_visible=True)
            for i, row in enumerate(rows)
        ]
    else:
        visibility = calculate_visible_rows(
            rows, viewport.scroll_top, viewport.height, len(rows), config
        )
        if viewport.width > 0:
            x_range = mapper.calculate_visible_x_range(viewport.scroll_left, viewport.width)

    geometry = [
        _row_geometry(v.index, rows[v.index], mapper, settings, config)
        for v in visibility
        if v.is_visible
    ]

    connectors = []
    if settings.show_dependencies:
        connectors = route_connectors(
            rows,
            mapper,
            parent_child=settings.show_parent_child,
            predecessors=settings.show_predecessors,
            visible=visibility,
        )

    return TimelineResult(
        window=window,
        time_scale=mapper.time_scale,
        zoom_level=mapper.zoom_level,
        day_width=mapper.day_width,
        total_days=mapper.total_days,
        timeline_width=mapper.timeline_width,
        rows=rows,
        visibility=visibility,
        geometry=geometry,
        connectors=connectors,
        grid_lines=grid_lines(mapper, x_range),
        header_cells=header_cells(mapper, x_range),
        visible_x_range=x_range,
        today_x=today_x(mapper, today),
    )


def timeline_result_to_dict(result: TimelineResult, config: EngineConfig = DEFAULT_CONFIG) -> dict:
    """Convert TimelineResult to a JSON-serializable dict for the renderer.

    Connectors carry their family; the line style for each family is listed
    once under ``line_styles``.
    """

    def _date_str(d: date | None) -> str | None:
        return d.isoformat() if d else None

    def _row_dict(row: RowEntry, visible: bool) -> dict:
        item = row.item
        return {
            "kind": row.kind,
            "key": row.key,
            "name": row.name if item is None else item.title,
            "work_item_id": item.work_item_id if item else None,
            "state": item.state if item else None,
            "start_date": _date_str(item.start_date) if item else None,
            "target_date": _date_str(item.target_date) if item else None,
            "y": row.y,
            "height": row.height,
            "level": row.level,
            "collapsed": row.collapsed,
            "is_parent": row.is_parent,
            "child_count": row.child_count,
            "visible": visible,
        }

    def _geometry_dict(g: RowGeometry) -> dict:
        return {
            "row_index": g.row_index,
            "key": g.key,
            "bar": {"x": g.bar.x, "width": g.bar.width} if g.bar else None,
            "milestone_x": g.milestone_x,
            "bar_height": g.bar_height,
            "indent": g.indent,
        }

    return {
        "view_start": result.window.view_start.isoformat(),
        "view_end": result.window.view_end.isoformat(),
        "time_scale": result.time_scale,
        "zoom_level": result.zoom_level,
        "day_width": result.day_width,
        "total_days": result.total_days,
        "timeline_width": result.timeline_width,
        "total_height": result.total_height,
        "rows": [
            _row_dict(row, v.is_visible)
            for row, v in zip(result.rows, result.visibility)
        ],
        "geometry": [_geometry_dict(g) for g in result.geometry],
        "connectors": [
            {
                "family": c.family,
                "source": c.source_key,
                "target": c.target_key,
                "path": c.path,
            }
            for c in result.connectors
        ],
        "grid_lines": [
            {"x": g.x, "date": g.date.isoformat(), "kind": g.kind, "weekend": g.weekend}
            for g in result.grid_lines
        ],
        "header_cells": [
            {"x": h.x, "width": h.width, "label": h.label, "kind": h.kind, "row": h.row}
            for h in result.header_cells
        ],
        "visible_x_range": (
            [result.visible_x_range.start_x, result.visible_x_range.end_x]
            if result.visible_x_range else None
        ),
        "today_x": result.today_x,
        "line_styles": {
            family: {
                "width": style.width,
                "opacity": style.opacity,
                "dash": style.dash,
                "arrow": style.arrow,
            }
            for family, style in config.line_styles.items()
        },
    }
