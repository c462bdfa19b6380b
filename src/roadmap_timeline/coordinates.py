"""Date to pixel mapping for the timeline.

``TimelineCoordinateMapper`` converts between calendar days and horizontal
pixel offsets for one time scale and zoom level. It is immutable: changing the
scale, zoom or window means building a new mapper with ``with_updates``, which
recomputes every derived value.
"""

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace
from datetime import date

from roadmap_timeline.calendar_math import add_days, days_between
from roadmap_timeline.config import DEFAULT_CONFIG, DEFAULT_TIME_SCALE, EngineConfig
from roadmap_timeline.culling import (
    RowBox,
    calculate_visible_rows,
    calculate_visible_x_range,
    is_x_range_visible,
)
from roadmap_timeline.exceptions import LayoutInvariantError
from roadmap_timeline.models import BarBounds, RowVisibility, TimeWindow, VisibleRange
from roadmap_timeline.settings import TimelineSettings, normalize_zoom

# Pixel offsets are rounded to this many decimals before being turned back
# into whole days, so float noise in day_width cannot pull x below a boundary.
_X_PRECISION = 9


@dataclass(frozen=True)
class DaySequence:
    """Lazy, restartable sequence of ``(day_index, date)`` pairs."""

    start: date
    count: int

    def __iter__(self) -> Iterator[tuple[int, date]]:
        for i in range(self.count):
            yield i, add_days(self.start, i)

    def __len__(self) -> int:
        return self.count


@dataclass(frozen=True)
class TimelineCoordinateMapper:
    """Immutable date/pixel conversion for one window, scale and zoom."""

    view_start: date
    view_end: date
    time_scale: str = DEFAULT_TIME_SCALE
    zoom_level: float = 1.0
    config: EngineConfig = DEFAULT_CONFIG
    day_width: float = field(init=False)
    total_days: int = field(init=False)
    timeline_width: float = field(init=False)

    def __post_init__(self) -> None:
        if self.time_scale not in self.config.day_widths:
            object.__setattr__(self, "time_scale", DEFAULT_TIME_SCALE)
        object.__setattr__(self, "zoom_level", normalize_zoom(self.zoom_level, self.config))

        day_width = self.config.day_widths[self.time_scale] * self.zoom_level
        if __debug__ and not day_width > 0:
            raise LayoutInvariantError(f"Day width must be positive, got {day_width}")

        total_days = days_between(self.view_start, self.view_end)
        object.__setattr__(self, "day_width", day_width)
        object.__setattr__(self, "total_days", total_days)
        object.__setattr__(self, "timeline_width", total_days * day_width)

    @classmethod
    def from_window(
        cls,
        window: TimeWindow,
        settings: TimelineSettings,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> "TimelineCoordinateMapper":
        return cls(
            view_start=window.view_start,
            view_end=window.view_end,
            time_scale=settings.time_scale,
            zoom_level=settings.zoom_level,
            config=config,
        )

    def with_updates(self, **changes) -> "TimelineCoordinateMapper":
        """Return a new mapper with some inputs replaced and all derived values rebuilt."""
        return replace(self, **changes)

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.view_start, self.view_end)

    def date_to_x(self, value: date) -> float:
        """X offset in pixels of the start of ``value``'s day."""
        return days_between(self.view_start, value) * self.day_width

    def x_to_date(self, x: float) -> date:
        """Calendar day containing pixel offset ``x``."""
        days = math.floor(round(x / self.day_width, _X_PRECISION))
        return add_days(self.view_start, days)

    def get_bar_bounds(self, start: date, end: date) -> BarBounds:
        """Bar placement covering ``start`` through ``end`` inclusive.

        Same-day and inverted ranges still get ``config.min_bar_width``.
        """
        start_x = self.date_to_x(start)
        end_x = self.date_to_x(end)
        width = max(end_x - start_x + self.day_width, self.config.min_bar_width)
        return BarBounds(x=start_x, width=width)

    def get_milestone_x(self, value: date) -> float:
        """Centre x of a milestone marker."""
        return self.date_to_x(value)

    def is_date_visible(self, value: date) -> bool:
        return days_between(self.view_start, value) >= 0 and days_between(value, self.view_end) >= 0

    def is_range_visible(self, start: date | None, end: date | None) -> bool:
        """Whether any part of ``[start, end]`` falls inside the window.

        A range with one missing bound is tested as a single day; a range with
        neither bound is never visible.
        """
        if start is None and end is None:
            return False
        start = start if start is not None else end
        end = end if end is not None else start
        return days_between(start, self.view_end) >= 0 and days_between(self.view_start, end) >= 0

    def calculate_visible_rows(
        self,
        rows: Sequence[RowBox],
        scroll_top: float,
        viewport_height: float,
        total_items: int,
    ) -> list[RowVisibility]:
        return calculate_visible_rows(rows, scroll_top, viewport_height, total_items, self.config)

    def calculate_visible_x_range(self, scroll_left: float, viewport_width: float) -> VisibleRange:
        return calculate_visible_x_range(scroll_left, viewport_width, self.timeline_width, self.config)

    def is_x_range_visible(
        self, start_x: float, end_x: float, scroll_left: float, viewport_width: float
    ) -> bool:
        return is_x_range_visible(start_x, end_x, scroll_left, viewport_width, self.config)

    def get_date_at_offset(self, day_offset: int) -> date:
        return add_days(self.view_start, day_offset)

    def iterate_days(self) -> DaySequence:
        """Every day of the window as ``(day_index, date)``, computed on demand."""
        return DaySequence(self.view_start, max(0, self.total_days))

    def debug_info(self) -> dict:
        """Snapshot of the mapper's inputs and derived values."""
        return {
            "view_start": self.view_start.isoformat(),
            "view_end": self.view_end.isoformat(),
            "time_scale": self.time_scale,
            "zoom_level": self.zoom_level,
            "day_width": self.day_width,
            "total_days": self.total_days,
            "timeline_width": self.timeline_width,
        }
