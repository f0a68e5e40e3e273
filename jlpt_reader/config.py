from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "anthropic",
    "llm_model": "claude-sonnet-4-20250514",
    "ollama_url": "http://localhost:11434",
    "max_output_tokens": 4000,
    "temperature": 0.8,
    "analysis_temperature": 0.2,
    "data_dir": "data",
    "default_length_key": "medium",
    "default_levels": ["N1"],
    "top_level": "N1",
    "default_question_count": 3,
    "explanation_language": "韓国語",
    "log_full_prompt": False,
    "recent_cache_size": 50,
    "recent_cache_ttl_seconds": 3600,
    "selection_probabilities": {},
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    max_output_tokens: int = DEFAULTS["max_output_tokens"]
    temperature: float = DEFAULTS["temperature"]
    analysis_temperature: float = DEFAULTS["analysis_temperature"]
    data_dir: str = DEFAULTS["data_dir"]
    default_length_key: str = DEFAULTS["default_length_key"]
    default_levels: list[str] = field(default_factory=lambda: list(DEFAULTS["default_levels"]))
    top_level: str = DEFAULTS["top_level"]
    default_question_count: int = DEFAULTS["default_question_count"]
    explanation_language: str = DEFAULTS["explanation_language"]
    log_full_prompt: bool = DEFAULTS["log_full_prompt"]
    recent_cache_size: int = DEFAULTS["recent_cache_size"]
    recent_cache_ttl_seconds: float = DEFAULTS["recent_cache_ttl_seconds"]
    selection_probabilities: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULTS["selection_probabilities"])
    )

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def data_full_path(self) -> Path:
        path = Path(self.data_dir)
        if path.is_absolute():
            return path
        return self.project_root / path

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "max_output_tokens": self.max_output_tokens,
            "temperature": self.temperature,
            "analysis_temperature": self.analysis_temperature,
            "data_dir": self.data_dir,
            "default_length_key": self.default_length_key,
            "default_levels": self.default_levels,
            "top_level": self.top_level,
            "default_question_count": self.default_question_count,
            "explanation_language": self.explanation_language,
            "log_full_prompt": self.log_full_prompt,
            "recent_cache_size": self.recent_cache_size,
            "recent_cache_ttl_seconds": self.recent_cache_ttl_seconds,
            "selection_probabilities": self.selection_probabilities,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(
        json.dumps(settings.to_dict(), indent=4, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
