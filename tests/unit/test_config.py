"""Tests for configuration loading and speed handling."""

import pytest

from thoughttree.config import (
    LayoutConfig,
    PlaybackConfig,
    clamp_speed,
    load_config,
    speed_to_interval_ms,
)


class TestSpeed:

    @pytest.mark.parametrize("speed,expected", [(1, 2000), (5, 1280), (10, 380)])
    def test_interval(self, speed, expected):
        assert speed_to_interval_ms(speed) == expected

    def test_clamp(self):
        assert clamp_speed(0) == 1
        assert clamp_speed(-4) == 1
        assert clamp_speed(11) == 10
        assert clamp_speed(7) == 7

    def test_clamp_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="thoughttree.config"):
            clamp_speed(50)
        assert "clamped to 10" in caplog.text

    def test_invalid_speed_falls_back_to_default(self):
        assert clamp_speed("fast") == 5
        assert clamp_speed(None) == 5

    def test_out_of_range_interval_uses_clamped_speed(self):
        assert speed_to_interval_ms(42) == 380


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config.layout == LayoutConfig()
        assert config.playback == PlaybackConfig()
        assert config.layout.node_width == 220.0
        assert config.playback.focus_scale == 1.5

    def test_overrides(self, tmp_path):
        path = tmp_path / "thoughttree.yaml"
        path.write_text(
            "layout:\n"
            "  min_distance: 240\n"
            "  viewport_width: 1600\n"
            "playback:\n"
            "  speed: 8\n"
            "  traversal_mode: sequential\n"
        )
        config = load_config(path)
        assert config.layout.min_distance == 240
        assert config.layout.viewport_width == 1600
        assert config.layout.level_height == 140.0
        assert config.playback.speed == 8
        assert config.playback.traversal_mode == "sequential"

    def test_speed_clamped_on_load(self, tmp_path):
        path = tmp_path / "thoughttree.yaml"
        path.write_text("playback:\n  speed: 25\n")
        assert load_config(path).playback.speed == 10

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path).layout == LayoutConfig()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("layout:\n  node_widht: 100\n")
        with pytest.raises(ValueError, match="node_widht"):
            load_config(path)

    def test_unknown_section(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("rendering:\n  theme: dark\n")
        with pytest.raises(ValueError, match="Unknown config sections"):
            load_config(path)

    def test_bad_traversal_mode(self, tmp_path):
        path = tmp_path / "mode.yaml"
        path.write_text("playback:\n  traversal_mode: random\n")
        with pytest.raises(ValueError, match="traversal_mode"):
            load_config(path)

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("layout: 12\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")
