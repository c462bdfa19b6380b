"""Display settings handed to the engine on every update cycle."""

import logging
from dataclasses import dataclass, field

from roadmap_timeline.config import (
    DEFAULT_CONFIG,
    DEFAULT_ROW_DENSITY,
    DEFAULT_TIME_SCALE,
    DEFAULT_ZOOM_LEVEL,
    ROW_DENSITIES,
    TIME_SCALES,
    EngineConfig,
)

logger = logging.getLogger(__name__)

GROUP_BY_EPIC = "epic"
GROUP_FIELDS = ("areaPath", "iterationPath", "assignedTo", "state", "priority", "tags")
DEFAULT_GROUP_FIELD = "areaPath"


@dataclass(frozen=True)
class TimelineSettings:
    """Normalised settings bundle for one update cycle."""

    time_scale: str = DEFAULT_TIME_SCALE
    zoom_level: float = DEFAULT_ZOOM_LEVEL
    row_density: str = DEFAULT_ROW_DENSITY
    group_by: str = GROUP_BY_EPIC
    show_hierarchy: bool = True
    show_epics: bool = True
    show_features: bool = True
    show_milestones: bool = True
    show_dependencies: bool = False
    show_parent_child: bool = True
    show_predecessors: bool = True
    collapsed_keys: frozenset[str] = field(default_factory=frozenset)
    pdf_mode: bool = False

    @property
    def hierarchy_mode(self) -> bool:
        return self.group_by == GROUP_BY_EPIC

    @property
    def group_field(self) -> str:
        """Field used for grouped mode; unknown names fall back to the area path."""
        if self.group_by in GROUP_FIELDS:
            return self.group_by
        return DEFAULT_GROUP_FIELD

    @classmethod
    def from_dict(cls, data: dict | None, config: EngineConfig = DEFAULT_CONFIG) -> "TimelineSettings":
        """Build settings from the host's camelCase bundle.

        Never raises: unrecognised values fall back to their documented
        defaults (monthly scale, normal density, nearest zoom level).
        """
        data = data or {}
        defaults = cls()

        time_scale = str(data.get("timeScale") or DEFAULT_TIME_SCALE)
        if time_scale not in TIME_SCALES:
            logger.debug("Unknown time scale %r, using %s", time_scale, DEFAULT_TIME_SCALE)
            time_scale = DEFAULT_TIME_SCALE

        row_density = str(data.get("rowDensity") or DEFAULT_ROW_DENSITY)
        if row_density not in ROW_DENSITIES:
            logger.debug("Unknown row density %r, using %s", row_density, DEFAULT_ROW_DENSITY)
            row_density = DEFAULT_ROW_DENSITY

        collapsed = data.get("collapsedKeys") or ()
        if isinstance(collapsed, str):
            collapsed = (collapsed,)
        elif not isinstance(collapsed, (list, tuple, set, frozenset)):
            logger.debug("Collapsed keys %r are not a list, ignoring them", collapsed)
            collapsed = ()

        return cls(
            time_scale=time_scale,
            zoom_level=normalize_zoom(data.get("zoomLevel", DEFAULT_ZOOM_LEVEL), config),
            row_density=row_density,
            group_by=str(data.get("groupBy") or GROUP_BY_EPIC),
            show_hierarchy=_flag(data, "showHierarchy", defaults.show_hierarchy),
            show_epics=_flag(data, "showEpics", defaults.show_epics),
            show_features=_flag(data, "showFeatures", defaults.show_features),
            show_milestones=_flag(data, "showMilestones", defaults.show_milestones),
            show_dependencies=_flag(data, "showDependencies", defaults.show_dependencies),
            show_parent_child=_flag(data, "showParentChild", defaults.show_parent_child),
            show_predecessors=_flag(data, "showPredecessors", defaults.show_predecessors),
            collapsed_keys=frozenset(str(k) for k in collapsed),
            pdf_mode=_flag(data, "pdfMode", defaults.pdf_mode),
        )


def _flag(data: dict, name: str, default: bool) -> bool:
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


def normalize_zoom(value, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Snap a zoom value to the nearest configured level.

    Values that are not numbers fall back to 1x. Ties go to the smaller level.
    """
    try:
        zoom = float(value)
    except (TypeError, ValueError):
        logger.debug("Zoom level %r is not a number, using %s", value, DEFAULT_ZOOM_LEVEL)
        return DEFAULT_ZOOM_LEVEL
    if zoom != zoom:  # NaN
        return DEFAULT_ZOOM_LEVEL
    if zoom in config.zoom_levels:
        return zoom
    nearest = min(config.zoom_levels, key=lambda level: (abs(level - zoom), level))
    logger.debug("Zoom level %s is not supported, using %s", zoom, nearest)
    return nearest
