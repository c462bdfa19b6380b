"""Data models for Roadmap Timeline."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class WorkItemType(str, Enum):
    """Kinds of work item that can appear on the timeline."""

    EPIC = "Epic"
    FEATURE = "Feature"
    MILESTONE = "Milestone"


GROUP_HEADER = "GroupHeader"

# Order used when members of a group are listed under their header
TYPE_PRECEDENCE = (WorkItemType.EPIC, WorkItemType.MILESTONE, WorkItemType.FEATURE)

PARENT_CHILD = "parent_child"
PREDECESSOR = "predecessor"


@dataclass(frozen=True)
class WorkItem:
    """A work item on the roadmap timeline."""

    work_item_id: int
    title: str
    type: WorkItemType
    state: str = "New"
    start_date: date | None = None
    target_date: date | None = None
    parent_key: str | None = None  # composite key of the parent Epic, e.g. "E-12"
    predecessor_id: str | None = None  # not type-prefixed in source data
    area_path: str = ""
    iteration_path: str = ""
    assigned_to: str = ""
    priority: int = 0
    tags: str = ""

    @property
    def key(self) -> str:
        """Composite key that tells apart items of different types sharing an id."""
        return f"{self.type.value[0]}-{self.work_item_id}"

    @property
    def is_drawable(self) -> bool:
        """Whether the item has enough dates for a bar or milestone marker."""
        if self.type is WorkItemType.MILESTONE:
            return self.target_date is not None
        return self.start_date is not None and self.target_date is not None


@dataclass(frozen=True)
class TimeWindow:
    """The visible calendar span of the timeline."""

    view_start: date
    view_end: date


@dataclass(frozen=True)
class RowEntry:
    """One row of the vertical layout.

    ``kind`` is a work item type value or ``"GroupHeader"``; group header rows
    have no ``item`` and carry a display ``name`` instead. ``key`` is what the
    host toggles in its collapsed set.
    """

    kind: str
    y: float
    height: float
    level: int = 0
    item: WorkItem | None = None
    name: str = ""
    key: str = ""
    collapsed: bool = False
    child_count: int = 0
    is_parent: bool = False

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class RowVisibility:
    """Visibility verdict for one row of the layout."""

    index: int
    y: float
    height: float
    is_visible: bool


@dataclass(frozen=True)
class VisibleRange:
    """Horizontal pixel span worth rendering."""

    start_x: float
    end_x: float


@dataclass(frozen=True)
class BarBounds:
    """Horizontal placement of a bar."""

    x: float
    width: float


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Connector:
    """A routed dependency line between two rows.

    The curve is a symmetric cubic: both control points sit on the vertical
    through the anchors' horizontal midpoint.
    """

    family: str  # PARENT_CHILD | PREDECESSOR
    source_key: str
    target_key: str
    start: Point
    end: Point

    @property
    def control_points(self) -> tuple[Point, Point]:
        mid_x = (self.start.x + self.end.x) / 2
        return Point(mid_x, self.start.y), Point(mid_x, self.end.y)

    @property
    def path(self) -> str:
        """SVG path data for the curve."""
        c1, c2 = self.control_points
        return (
            f"M {self.start.x:g} {self.start.y:g} "
            f"C {c1.x:g} {c1.y:g}, {c2.x:g} {c2.y:g}, {self.end.x:g} {self.end.y:g}"
        )


@dataclass(frozen=True)
class GridLine:
    """A vertical grid line on the timeline body."""

    x: float
    day_index: int
    date: date
    kind: str  # "day" | "week" | "month" | "quarter" | "year"
    weekend: bool = False


@dataclass(frozen=True)
class HeaderCell:
    """A labelled cell in the timeline header."""

    x: float
    width: float
    label: str
    kind: str  # "month" | "day" | "week" | "year" | "quarter"
    row: int = 0  # 0 primary band, 1 secondary band


@dataclass(frozen=True)
class RowGeometry:
    """Horizontal placement of a visible row's bar or milestone marker."""

    row_index: int
    key: str
    bar: BarBounds | None = None
    milestone_x: float | None = None
    bar_height: float = 0
    indent: float = 0


@dataclass(frozen=True)
class Viewport:
    """Scroll offsets and size of the host's scrolling timeline body."""

    width: float = 0
    height: float = 0
    scroll_top: float = 0
    scroll_left: float = 0


@dataclass
class TimelineResult:
    """Complete result of one update cycle."""

    window: TimeWindow
    time_scale: str
    zoom_level: float
    day_width: float
    total_days: int
    timeline_width: float
    rows: list[RowEntry]
    visibility: list[RowVisibility]
    geometry: list[RowGeometry] = field(default_factory=list)
    connectors: list[Connector] = field(default_factory=list)
    grid_lines: list[GridLine] = field(default_factory=list)
    header_cells: list[HeaderCell] = field(default_factory=list)
    visible_x_range: VisibleRange | None = None
    today_x: float | None = None

    @property
    def total_height(self) -> float:
        return self.rows[-1].bottom if self.rows else 0
