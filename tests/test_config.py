"""
Tests for YAML configuration loading.
"""

from pathlib import Path

import pytest

from bookingcore.config import AppConfig
from bookingcore.domain.scoring import AssignmentStrategy


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        """Test the built-in defaults match the marketplace behaviour."""
        config = AppConfig()
        window = config.get_working_window()

        assert window.open_hour == 9
        assert window.close_hour == 17
        assert window.slot_interval_minutes == 60
        assert (window.min_duration_hours, window.max_duration_hours) == (1, 8)
        assert config.durations.default_hours == 2
        assert config.assignment.default_strategy is AssignmentStrategy.BALANCED
        assert config.assignment.fallback_distance_km == 5.0

    def test_load_from_yaml(self, tmp_path):
        path = _write(tmp_path, (
            "timezone: Europe/London\n"
            "working_hours:\n"
            "  open_hour: 8\n"
            "  close_hour: 18\n"
            "assignment:\n"
            "  default_strategy: RATING\n"
            "data_file: data.json\n"
        ))

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "Europe/London"
        assert config.working_hours.open_hour == 8
        assert config.assignment.default_strategy is AssignmentStrategy.RATING
        assert config.data_file == tmp_path / "data.json"

    def test_empty_file_uses_defaults(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, ""))

        assert config.working_hours.close_hour == 17

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(_write(tmp_path, "working_hours: [unclosed\n"))

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(_write(tmp_path, "- just\n- a list\n"))

    def test_window_must_open_before_close(self):
        with pytest.raises(ValueError, match="close_hour"):
            AppConfig(working_hours={"open_hour": 17, "close_hour": 9})

    def test_hour_range(self):
        with pytest.raises(ValueError, match="Hour must be between"):
            AppConfig(working_hours={"open_hour": -1})

    def test_default_duration_within_bounds(self):
        with pytest.raises(ValueError, match="default_hours"):
            AppConfig(durations={"default_hours": 10})

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown assignment strategy"):
            AppConfig(assignment={"default_strategy": "nearest"})
