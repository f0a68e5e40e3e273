"""Tests for configuration loading and saving."""
from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from jlpt_reader.config import DEFAULTS, Settings, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.llm_provider == "anthropic"
        assert s.default_length_key == "medium"
        assert s.default_levels == ["N1"]
        assert s.explanation_language == "韓国語"
        assert s.analysis_temperature == 0.2

    def test_default_lists_not_shared(self):
        a, b = Settings(), Settings()
        a.default_levels.append("N2")
        assert b.default_levels == ["N1"]
        assert DEFAULTS["default_levels"] == ["N1"]

    def test_to_dict(self):
        d = Settings().to_dict()
        assert d["llm_provider"] == "anthropic"
        assert len(d) == 16  # all fields present

    def test_to_dict_roundtrip(self):
        s = Settings(llm_provider="ollama", temperature=0.5, selection_probabilities={"speaker": 1.0})
        s2 = Settings(**s.to_dict())
        assert s2.llm_provider == "ollama"
        assert s2.temperature == 0.5
        assert s2.selection_probabilities == {"speaker": 1.0}

    def test_relative_data_dir_resolves_under_project_root(self):
        s = Settings(data_dir="data")
        assert s.data_full_path == s.project_root / "data"

    def test_absolute_data_dir_kept(self, tmp_path):
        s = Settings(data_dir=str(tmp_path))
        assert s.data_full_path == Path(tmp_path)


class TestLoadSaveSettings:
    def test_load_from_file(self, tmp_path):
        config = {"llm_provider": "openai", "llm_model": "gpt-4o", "top_level": "N2"}
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(config))

        with patch("jlpt_reader.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.llm_provider == "openai"
        assert s.llm_model == "gpt-4o"
        assert s.top_level == "N2"
        # Defaults for unspecified fields
        assert s.max_output_tokens == 4000

    def test_load_missing_file(self, tmp_path):
        with patch("jlpt_reader.config.CONFIG_PATH", tmp_path / "nonexistent.json"):
            s = load_settings()
        assert s.llm_provider == "anthropic"  # all defaults

    def test_save_keeps_japanese_readable(self, tmp_path):
        config_path = tmp_path / "config.json"
        with patch("jlpt_reader.config.CONFIG_PATH", config_path):
            save_settings(Settings(explanation_language="英語"))

        text = config_path.read_text(encoding="utf-8")
        assert "英語" in text
        assert json.loads(text)["explanation_language"] == "英語"

    def test_unknown_keys_ignored(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"llm_provider": "ollama", "legacy_option": "x"}))

        with patch("jlpt_reader.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.llm_provider == "ollama"
        assert not hasattr(s, "legacy_option")
