"""Tests for engine configuration and display settings."""

from dataclasses import FrozenInstanceError, replace
from unittest.mock import patch

import pytest

from roadmap_timeline.config import (
    DEFAULT_CONFIG,
    EngineConfig,
    config_exists,
    load_config,
    save_config,
)
from roadmap_timeline.settings import TimelineSettings, normalize_zoom


class TestEngineConfig:
    """Tests for EngineConfig defaults and validation."""

    def test_defaults_are_valid(self):
        assert DEFAULT_CONFIG.validate() == []

    def test_default_day_widths(self):
        assert dict(DEFAULT_CONFIG.day_widths) == {
            "daily": 24,
            "weekly": 6,
            "monthly": 2,
            "annual": 0.5,
            "multiYear": 0.15,
        }

    def test_negative_values_reported(self):
        config = replace(DEFAULT_CONFIG, min_bar_width=-1, buffer_px=-5, default_span=0)
        errors = config.validate()
        assert len(errors) == 3

    def test_missing_zoom_levels_reported(self):
        errors = replace(DEFAULT_CONFIG, zoom_levels=()).validate()
        assert errors == ["At least one zoom level is required"]

    def test_row_height_lookup(self):
        assert DEFAULT_CONFIG.row_height("normal", "Epic") == 48
        assert DEFAULT_CONFIG.row_height("compact", "GroupHeader") == 30

    def test_row_height_fallbacks(self):
        assert DEFAULT_CONFIG.row_height("spacious", "Epic") == 48
        assert DEFAULT_CONFIG.row_height("normal", "Story") == 44

    def test_bar_height_lookup(self):
        assert DEFAULT_CONFIG.bar_height("comfortable", "Milestone") == 22

    def test_config_is_immutable(self):
        with pytest.raises(FrozenInstanceError):
            DEFAULT_CONFIG.min_bar_width = 10
        with pytest.raises(TypeError):
            DEFAULT_CONFIG.day_widths["monthly"] = 10


class TestLoadConfig:
    """Tests for reading and writing the TOML configuration."""

    def test_missing_file(self, tmp_path):
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            assert not config_exists()
            with pytest.raises(FileNotFoundError):
                load_config()

    def test_overrides_merge_with_defaults(self, tmp_path):
        (tmp_path / "config.toml").write_text(
            "[engine]\n"
            "min_bar_width = 40\n"
            "zoom_levels = [1, 2]\n"
            "\n"
            "[day_widths]\n"
            "monthly = 3\n"
            "\n"
            "[row_heights.compact]\n"
            "Epic = 36\n"
        )
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            config = load_config()

        assert config.min_bar_width == 40
        assert config.zoom_levels == (1.0, 2.0)
        assert config.day_widths["monthly"] == 3
        assert config.day_widths["daily"] == 24
        assert config.row_heights["compact"]["Epic"] == 36
        assert config.row_heights["compact"]["Feature"] == 30
        assert config.padding_before == DEFAULT_CONFIG.padding_before

    def test_unknown_engine_keys_ignored(self, tmp_path):
        (tmp_path / "config.toml").write_text("[engine]\ncolour = 'blue'\n")
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            assert load_config() == DEFAULT_CONFIG

    def test_invalid_values(self, tmp_path):
        (tmp_path / "config.toml").write_text("[day_widths]\nmonthly = -1\n")
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            with pytest.raises(ValueError, match="monthly"):
                load_config()

    def test_wrongly_typed_values(self, tmp_path):
        (tmp_path / "config.toml").write_text("[engine]\nbuffer_px = 'wide'\n")
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            with pytest.raises(ValueError):
                load_config()

    def test_malformed_toml(self, tmp_path):
        (tmp_path / "config.toml").write_text("[engine\n")
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            with pytest.raises(ValueError):
                load_config()

    @pytest.mark.parametrize(
        "content",
        [
            "engine = 5\n",
            "day_widths = 1\n",
            "row_heights = 'tall'\n",
            "row_heights = {normal = 3}\n",
            "[engine]\nzoom_levels = 2\n",
        ],
    )
    def test_sections_that_are_not_tables(self, tmp_path, content):
        (tmp_path / "config.toml").write_text(content)
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path):
            with pytest.raises(ValueError):
                load_config()

    def test_saved_config_loads_back(self, tmp_path):
        config = replace(DEFAULT_CONFIG, padding_after=60, min_visible_items=10)
        with patch("roadmap_timeline.config.get_config_dir", return_value=tmp_path / "cfg"):
            save_config(config)
            assert config_exists()
            loaded = load_config()
        assert loaded.padding_after == 60
        assert loaded.min_visible_items == 10
        assert dict(loaded.day_widths) == dict(config.day_widths)


class TestTimelineSettings:
    """Tests for TimelineSettings.from_dict."""

    def test_defaults(self):
        settings = TimelineSettings.from_dict({})
        assert settings == TimelineSettings()
        assert settings.hierarchy_mode
        assert not settings.show_dependencies

    def test_reads_host_keys(self):
        settings = TimelineSettings.from_dict({
            "timeScale": "weekly",
            "zoomLevel": 2,
            "rowDensity": "compact",
            "groupBy": "assignedTo",
            "showDependencies": True,
            "showPredecessors": False,
            "collapsedKeys": ["E-1", "grp-Team A"],
            "pdfMode": True,
        })
        assert settings.time_scale == "weekly"
        assert settings.zoom_level == 2.0
        assert settings.row_density == "compact"
        assert settings.group_field == "assignedTo"
        assert not settings.hierarchy_mode
        assert settings.show_dependencies
        assert not settings.show_predecessors
        assert settings.collapsed_keys == frozenset({"E-1", "grp-Team A"})
        assert settings.pdf_mode

    def test_unknown_values_fall_back(self):
        settings = TimelineSettings.from_dict({
            "timeScale": "hourly",
            "rowDensity": "tiny",
            "zoomLevel": "huge",
        })
        assert settings.time_scale == "monthly"
        assert settings.row_density == "normal"
        assert settings.zoom_level == 1.0

    def test_string_flags(self):
        settings = TimelineSettings.from_dict({"showEpics": "false", "showDependencies": "true"})
        assert not settings.show_epics
        assert settings.show_dependencies

    def test_single_collapsed_key(self):
        assert TimelineSettings.from_dict({"collapsedKeys": "E-7"}).collapsed_keys == frozenset({"E-7"})

    @pytest.mark.parametrize("value", [5, True, 2.5, {"E-1": True}])
    def test_unusable_collapsed_keys_are_ignored(self, value):
        assert TimelineSettings.from_dict({"collapsedKeys": value}).collapsed_keys == frozenset()

    def test_unknown_group_field(self):
        settings = TimelineSettings.from_dict({"groupBy": "colour"})
        assert not settings.hierarchy_mode
        assert settings.group_field == "areaPath"


class TestNormalizeZoom:
    """Tests for normalize_zoom."""

    @pytest.mark.parametrize(
        "value,expected",
        [(1, 1.0), (0.5, 0.5), (4, 4.0), (3, 2.0), (0.1, 0.5), (8, 4.0), ("2", 2.0)],
    )
    def test_snaps_to_levels(self, value, expected):
        assert normalize_zoom(value) == expected

    @pytest.mark.parametrize("value", [None, "abc", float("nan")])
    def test_unusable_values(self, value):
        assert normalize_zoom(value) == 1.0

    def test_uses_configured_levels(self):
        config = EngineConfig(zoom_levels=(1.0, 3.0))
        assert normalize_zoom(2.5, config) == 3.0
