"""Grid line and header cell positions for the timeline axis."""

from collections.abc import Callable, Iterable, Iterator
from datetime import date

from roadmap_timeline import calendar_math
from roadmap_timeline.calendar_math import days_between
from roadmap_timeline.coordinates import TimelineCoordinateMapper
from roadmap_timeline.culling import visible_day_span
from roadmap_timeline.models import GridLine, HeaderCell, VisibleRange

# Day numbers only fit in the header at this width and above
MIN_DAY_CELL_WIDTH = 20


def _grid_kind_daily(day: date) -> str | None:
    return "month" if calendar_math.is_first_of_month(day) else "day"


def _grid_kind_weekly(day: date) -> str | None:
    if calendar_math.is_first_of_month(day):
        return "month"
    if calendar_math.is_monday(day):
        return "week"
    return None


def _grid_kind_monthly(day: date) -> str | None:
    return "month" if calendar_math.is_first_of_month(day) else None


def _grid_kind_annual(day: date) -> str | None:
    if calendar_math.is_first_of_year(day):
        return "year"
    if calendar_math.is_first_of_quarter(day):
        return "quarter"
    return None


def _grid_kind_multi_year(day: date) -> str | None:
    return "year" if calendar_math.is_first_of_year(day) else None


_GRID_KINDS: dict[str, Callable[[date], str | None]] = {
    "daily": _grid_kind_daily,
    "weekly": _grid_kind_weekly,
    "monthly": _grid_kind_monthly,
    "annual": _grid_kind_annual,
    "multiYear": _grid_kind_multi_year,
}


def _overlaps(x_range: VisibleRange | None, start_x: float, end_x: float) -> bool:
    return x_range is None or (end_x >= x_range.start_x and start_x <= x_range.end_x)


def grid_lines(mapper: TimelineCoordinateMapper, x_range: VisibleRange | None = None) -> list[GridLine]:
    """Vertical grid lines for the mapper's time scale.

    Daily views get a line per day, weekly views one per Monday and month
    start, monthly views one per month, annual views one per quarter and
    multi-year views one per year. Lines outside ``x_range`` are dropped.
    """
    kind_of = _GRID_KINDS.get(mapper.time_scale, _grid_kind_monthly)
    days: Iterable[tuple[int, date]] = mapper.iterate_days()
    if x_range is not None:
        span = visible_day_span(x_range, mapper.day_width, mapper.total_days)
        days = ((i, mapper.get_date_at_offset(i)) for i in span)

    lines = []
    for day_index, day in days:
        kind = kind_of(day)
        if kind is None:
            continue
        x = day_index * mapper.day_width
        if not _overlaps(x_range, x, x):
            continue
        lines.append(GridLine(
            x=x,
            day_index=day_index,
            date=day,
            kind=kind,
            weekend=mapper.time_scale == "daily" and calendar_math.is_weekend(day),
        ))
    return lines


def _cell(
    mapper: TimelineCoordinateMapper, start: date, end: date, label: str, kind: str, row: int
) -> HeaderCell:
    # Width covers the end day itself
    x = mapper.date_to_x(start)
    width = days_between(start, end) * mapper.day_width + mapper.day_width
    return HeaderCell(x=x, width=width, label=label, kind=kind, row=row)


def _inclusive_days(mapper: TimelineCoordinateMapper) -> Iterator[tuple[int, date]]:
    """Days of the window including the view end itself."""
    yield from mapper.iterate_days()
    if mapper.total_days >= 0:
        yield mapper.total_days, mapper.view_end


def _period_starts(mapper: TimelineCoordinateMapper, is_start: Callable[[date], bool]) -> Iterator[date]:
    """The view start, then every later day for which ``is_start`` holds."""
    for day_index, day in _inclusive_days(mapper):
        if day_index == 0 or is_start(day):
            yield day


def _month_cells(mapper: TimelineCoordinateMapper) -> Iterator[HeaderCell]:
    for start in _period_starts(mapper, calendar_math.is_first_of_month):
        month_end = calendar_math.get_month_end(start.year, start.month)
        end = min(month_end, mapper.view_end)
        yield _cell(mapper, start, end, start.strftime("%b %Y"), "month", 0)


def _day_cells(mapper: TimelineCoordinateMapper) -> Iterator[HeaderCell]:
    if mapper.day_width < MIN_DAY_CELL_WIDTH:
        return
    for _, day in _inclusive_days(mapper):
        yield _cell(mapper, day, day, str(day.day), "day", 1)


def _week_cells(mapper: TimelineCoordinateMapper) -> Iterator[HeaderCell]:
    current = calendar_math.next_monday(mapper.view_start)
    while current <= mapper.view_end:
        end = min(calendar_math.add_days(current, 6), mapper.view_end)
        yield _cell(mapper, current, end, f"W{calendar_math.get_week_number(current)}", "week", 1)
        current = calendar_math.add_days(current, 7)


def _year_cells(mapper: TimelineCoordinateMapper) -> Iterator[HeaderCell]:
    for start in _period_starts(mapper, calendar_math.is_first_of_year):
        end = min(date(start.year, 12, 31), mapper.view_end)
        yield _cell(mapper, start, end, str(start.year), "year", 0)


def _quarter_cells(mapper: TimelineCoordinateMapper) -> Iterator[HeaderCell]:
    for start in _period_starts(mapper, calendar_math.is_first_of_quarter):
        quarter = calendar_math.get_quarter(start)
        quarter_end = calendar_math.get_quarter_end(start.year, quarter)
        end = min(quarter_end, mapper.view_end)
        yield _cell(mapper, start, end, f"Q{quarter}", "quarter", 1)


_HEADER_BANDS: dict[str, tuple[Callable[[TimelineCoordinateMapper], Iterator[HeaderCell]], ...]] = {
    "daily": (_month_cells, _day_cells),
    "weekly": (_month_cells, _week_cells),
    "monthly": (_month_cells,),
    "annual": (_year_cells, _quarter_cells),
    "multiYear": (_year_cells,),
}


def header_cells(mapper: TimelineCoordinateMapper, x_range: VisibleRange | None = None) -> list[HeaderCell]:
    """Labelled header cells for the mapper's time scale.

    Every scale has a primary band (months, or years for the annual and
    multi-year scales); daily, weekly and annual scales add a secondary band
    of days, ISO weeks or quarters. The view's first cell starts at the view
    start even mid-period, and the last is clipped at the view end.
    """
    bands = _HEADER_BANDS.get(mapper.time_scale, _HEADER_BANDS["monthly"])
    return [
        cell
        for band in bands
        for cell in band(mapper)
        if _overlaps(x_range, cell.x, cell.x + cell.width)
    ]


def today_x(mapper: TimelineCoordinateMapper, today: date | None = None) -> float | None:
    """X offset of the today marker, or None when today is outside the window."""
    today = today or calendar_math.today()
    if not mapper.is_date_visible(today):
        return None
    return mapper.date_to_x(today)
