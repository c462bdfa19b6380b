"""Configuration management for Roadmap Timeline.

The engine's lookup tables (pixels per day, row and bar heights, padding and
culling constants) live in one immutable ``EngineConfig`` value that is passed
into every computation. Overrides can be kept in
``~/.roadmap-timeline/config.toml``.
"""

import logging
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import tomli_w

logger = logging.getLogger(__name__)

TIME_SCALES = ("daily", "weekly", "monthly", "annual", "multiYear")
ROW_DENSITIES = ("compact", "normal", "comfortable")
DEFAULT_TIME_SCALE = "monthly"
DEFAULT_ROW_DENSITY = "normal"
DEFAULT_ZOOM_LEVEL = 1.0


def _frozen(data: dict) -> Mapping:
    return MappingProxyType(
        {k: _frozen(v) if isinstance(v, dict) else v for k, v in data.items()}
    )


def _thawed(data: Mapping) -> dict:
    return {k: _thawed(v) if isinstance(v, Mapping) else v for k, v in data.items()}


def _default_day_widths() -> Mapping[str, float]:
    # Pixels per calendar day at zoom 1x
    return _frozen({
        "daily": 24,
        "weekly": 6,
        "monthly": 2,
        "annual": 0.5,
        "multiYear": 0.15,
    })


def _default_row_heights() -> Mapping[str, Mapping[str, int]]:
    return _frozen({
        "compact": {"Epic": 32, "Milestone": 28, "Feature": 30, "GroupHeader": 30},
        "normal": {"Epic": 48, "Milestone": 40, "Feature": 44, "GroupHeader": 44},
        "comfortable": {"Epic": 56, "Milestone": 48, "Feature": 52, "GroupHeader": 52},
    })


def _default_bar_heights() -> Mapping[str, Mapping[str, int]]:
    return _frozen({
        "compact": {"Epic": 22, "Milestone": 14, "Feature": 20},
        "normal": {"Epic": 32, "Milestone": 18, "Feature": 28},
        "comfortable": {"Epic": 40, "Milestone": 22, "Feature": 36},
    })


@dataclass(frozen=True)
class LineStyle:
    """Presentation hints for one connector family."""

    width: float
    opacity: float
    dash: str | None = None
    arrow: bool = False


def _default_line_styles() -> Mapping[str, LineStyle]:
    return MappingProxyType({
        "parent_child": LineStyle(width=1.5, opacity=0.6, dash="4,2"),
        "predecessor": LineStyle(width=2, opacity=0.8, arrow=True),
    })


@dataclass(frozen=True)
class EngineConfig:
    """Immutable lookup tables and constants used by the timeline engine."""

    day_widths: Mapping[str, float] = field(default_factory=_default_day_widths)
    zoom_levels: tuple[float, ...] = (0.5, 1.0, 2.0, 4.0)
    row_heights: Mapping[str, Mapping[str, int]] = field(default_factory=_default_row_heights)
    bar_heights: Mapping[str, Mapping[str, int]] = field(default_factory=_default_bar_heights)
    min_bar_width: float = 30
    indent_per_level: int = 16
    padding_before: int = 14  # days before the first dated item
    padding_after: int = 28  # days after the last dated item
    default_span: int = 90  # days shown when nothing is dated
    buffer_px: float = 200
    min_visible_items: int = 20
    culling_threshold: int = 100
    path_separator: str = "\\"
    line_styles: Mapping[str, LineStyle] = field(default_factory=_default_line_styles)

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        for scale in TIME_SCALES:
            width = self.day_widths.get(scale)
            if width is None:
                errors.append(f"Day width for time scale '{scale}' is required")
            elif width <= 0:
                errors.append(f"Day width for time scale '{scale}' must be positive")

        if not self.zoom_levels:
            errors.append("At least one zoom level is required")
        elif any(z <= 0 for z in self.zoom_levels):
            errors.append("Zoom levels must be positive")

        for table_name, table in (("row", self.row_heights), ("bar", self.bar_heights)):
            if DEFAULT_ROW_DENSITY not in table:
                errors.append(f"{table_name.capitalize()} heights need a '{DEFAULT_ROW_DENSITY}' density")
            for density, heights in table.items():
                if "Feature" not in heights:
                    errors.append(f"{table_name.capitalize()} heights for '{density}' need a Feature entry")
                if any(h <= 0 for h in heights.values()):
                    errors.append(f"{table_name.capitalize()} heights for '{density}' must be positive")

        if self.min_bar_width < 0:
            errors.append("Minimum bar width cannot be negative")
        if self.padding_before < 0 or self.padding_after < 0:
            errors.append("Timeline padding cannot be negative")
        if self.default_span <= 0:
            errors.append("Default timeline span must be positive")
        if self.buffer_px < 0:
            errors.append("Culling buffer cannot be negative")
        if self.min_visible_items < 0 or self.culling_threshold < 0:
            errors.append("Culling thresholds cannot be negative")

        return errors

    def row_height(self, density: str, kind: str) -> int:
        """Row height for a row kind, falling back to normal density and Feature rows."""
        heights = self.row_heights.get(density) or self.row_heights[DEFAULT_ROW_DENSITY]
        return heights.get(kind, heights["Feature"])

    def bar_height(self, density: str, kind: str) -> int:
        """Bar height for a work item type, with the same fallbacks as row_height."""
        heights = self.bar_heights.get(density) or self.bar_heights[DEFAULT_ROW_DENSITY]
        return heights.get(kind, heights["Feature"])


DEFAULT_CONFIG = EngineConfig()


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".roadmap-timeline"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def config_exists() -> bool:
    """Check if configuration file exists."""
    return get_config_path().exists()


_SCALAR_KEYS = {
    f.name for f in fields(EngineConfig)
    if f.name not in ("day_widths", "zoom_levels", "row_heights", "bar_heights", "line_styles")
}


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Invalid configuration: '{name}' must be a table")
    return section


def load_config() -> EngineConfig:
    """Load engine configuration from TOML file.

    Values in the file override the built-in defaults; sections that are
    missing keep their defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.roadmap-timeline/config.toml to set up."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    logger.debug("Loaded engine configuration from %s", config_path)

    engine_section = _section(data, "engine")
    overrides: dict = {k: v for k, v in engine_section.items() if k in _SCALAR_KEYS}

    if "day_widths" in data:
        day_widths = _thawed(DEFAULT_CONFIG.day_widths)
        day_widths.update(_section(data, "day_widths"))
        overrides["day_widths"] = _frozen(day_widths)

    try:
        if "zoom_levels" in engine_section:
            overrides["zoom_levels"] = tuple(float(z) for z in engine_section["zoom_levels"])

        for table_name in ("row_heights", "bar_heights"):
            if table_name in data:
                table = _thawed(getattr(DEFAULT_CONFIG, table_name))
                densities = _section(data, table_name)
                for density in densities:
                    table.setdefault(density, {}).update(_section(densities, density))
                overrides[table_name] = _frozen(table)

        config = replace(DEFAULT_CONFIG, **overrides)
        errors = config.validate()
    except TypeError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: EngineConfig) -> None:
    """Save engine configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    engine_data: dict = {name: getattr(config, name) for name in sorted(_SCALAR_KEYS)}
    engine_data["zoom_levels"] = list(config.zoom_levels)

    data: dict = {
        "engine": engine_data,
        "day_widths": _thawed(config.day_widths),
        "row_heights": _thawed(config.row_heights),
        "bar_heights": _thawed(config.bar_heights),
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
