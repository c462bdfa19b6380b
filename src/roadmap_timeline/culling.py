"""Viewport occlusion culling.

Decides which rows, and which horizontal span of the timeline, are worth
materialising for the current scroll position. All functions are pure; the
rows passed in are never modified.
"""

import logging
import math
from collections.abc import Sequence
from typing import Protocol

from roadmap_timeline.config import DEFAULT_CONFIG, EngineConfig
from roadmap_timeline.models import RowVisibility, VisibleRange

logger = logging.getLogger(__name__)


class RowBox(Protocol):
    y: float
    height: float


def calculate_visible_rows(
    rows: Sequence[RowBox],
    scroll_top: float,
    viewport_height: float,
    total_items: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[RowVisibility]:
    """Mark each row visible or hidden for the given scroll position.

    Below ``config.culling_threshold`` items every row is visible. Otherwise a
    row is visible when it overlaps the viewport grown by ``config.buffer_px``
    on both sides. If that leaves fewer than ``config.min_visible_items``
    visible rows (and there are at least that many rows), the hidden rows
    whose centres are nearest the viewport centre are added until the floor
    is met.

    Args:
        rows: Row boxes with ``y`` and ``height``
        scroll_top: Current vertical scroll offset in pixels
        viewport_height: Height of the scrolling area in pixels
        total_items: Item count used for the threshold check
        config: Engine constants

    Returns:
        One RowVisibility per row, in row order
    """
    if total_items < config.culling_threshold:
        return [
            RowVisibility(index=i, y=row.y, height=row.height, is_visible=True)
            for i, row in enumerate(rows)
        ]

    visible_start = scroll_top - config.buffer_px
    visible_end = scroll_top + viewport_height + config.buffer_px

    flags = [
        row.y + row.height >= visible_start and row.y <= visible_end
        for row in rows
    ]

    shortfall = config.min_visible_items - sum(flags)
    if shortfall > 0 and len(rows) >= config.min_visible_items:
        viewport_center = scroll_top + viewport_height / 2
        hidden = sorted(
            (i for i, flag in enumerate(flags) if not flag),
            key=lambda i: (abs(rows[i].y + rows[i].height / 2 - viewport_center), i),
        )
        for i in hidden[:shortfall]:
            flags[i] = True

    logger.debug("Occlusion culling: %d/%d rows visible", sum(flags), len(rows))

    return [
        RowVisibility(index=i, y=row.y, height=row.height, is_visible=flag)
        for i, (row, flag) in enumerate(zip(rows, flags))
    ]


def calculate_visible_x_range(
    scroll_left: float,
    viewport_width: float,
    timeline_width: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> VisibleRange:
    """Horizontal span of the timeline to render, clamped to its width."""
    return VisibleRange(
        start_x=max(0, scroll_left - config.buffer_px),
        end_x=min(timeline_width, scroll_left + viewport_width + config.buffer_px),
    )


def is_x_range_visible(
    start_x: float,
    end_x: float,
    scroll_left: float,
    viewport_width: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> bool:
    """Whether ``[start_x, end_x]`` overlaps the buffered horizontal viewport."""
    visible_start = scroll_left - config.buffer_px
    visible_end = scroll_left + viewport_width + config.buffer_px
    return end_x >= visible_start and start_x <= visible_end


def visible_day_span(visible_range: VisibleRange, day_width: float, total_days: int) -> range:
    """Day indices whose columns intersect ``visible_range``."""
    if total_days <= 0 or day_width <= 0 or visible_range.end_x < visible_range.start_x:
        return range(0)
    first = max(0, math.floor(visible_range.start_x / day_width))
    last = min(total_days, math.floor(visible_range.end_x / day_width) + 1)
    return range(first, max(first, last))
