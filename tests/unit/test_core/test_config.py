"""
Unit tests for the configuration manager.
"""

import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from pdca.core.config import Config


class TestConfig:
    """Tests for Config loading and saving."""

    def test_defaults_written_on_first_load(self, tmp_path):
        config = Config(tmp_path)

        assert (tmp_path / "settings.json").exists()
        assert (tmp_path / "preferences.json").exists()
        assert config.get("default_user_id") == "local"
        assert config.get("default_goal_level", section="preferences") == "MONTHLY"

    def test_missing_keys_fall_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text(
            json.dumps({"llm_provider": "glm"}), encoding="utf-8"
        )

        config = Config(tmp_path)

        assert config.get("llm_provider") == "glm"
        assert config.get("llm_timeout") == 60

    def test_get_unknown_key_returns_default(self, tmp_path):
        config = Config(tmp_path)
        assert config.get("nope", default=42) == 42
        assert config.get("nope", section="unknown", default="x") == "x"

    def test_set_persists(self, tmp_path):
        Config(tmp_path).set("default_goal_level", "WEEKLY", section="preferences")

        reloaded = Config(tmp_path)
        assert reloaded.get("default_goal_level", section="preferences") == "WEEKLY"

    def test_set_keeps_unicode_readable(self, tmp_path):
        Config(tmp_path).set("default_user_id", "小明")
        assert "小明" in (tmp_path / "settings.json").read_text(encoding="utf-8")

    def test_relative_database_path(self, tmp_path):
        config = Config(tmp_path)
        path = config.get_database_path()
        assert path.parts[-3:] == ("data", "database", "pdca.db")

    def test_absolute_database_path(self, tmp_path):
        config = Config(tmp_path)
        config.set("database_path", str(tmp_path / "custom.db"))
        assert config.get_database_path() == tmp_path / "custom.db"
