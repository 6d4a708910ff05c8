"""
Configuration for the claude-patterns toolkit.

Settings come from three layers, later ones winning:
defaults -> ~/.claude-patterns/config.yaml -> environment (after .env is loaded).
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

CONFIG_DIR_NAME = ".claude-patterns"
CONFIG_FILE_NAME = "config.yaml"
CATALOG_FILE_NAME = "patterns.yaml"
DETAIL_FILE_NAME = "patterns.md"
QUEUE_FILE_NAME = "queue.yaml"

SUPPORTED_PROVIDERS = ["anthropic", "openai", "gemini", "ollama", "deepseek", "claude-code"]


def get_default_patterns_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


class LLMConfig(BaseModel):
    """Completion provider selection."""

    provider: str = "claude-code"
    model: str = "claude-opus-4-20250514"
    api_key_env: str = ""  # Name of the env var holding the key, never the key itself
    base_url: Optional[str] = None  # DeepSeek, Ollama and other custom endpoints
    timeout: float = 300.0

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"provider must be one of {', '.join(SUPPORTED_PROVIDERS)}"
            )
        return v


class AnalysisConfig(BaseModel):
    """Session analysis options."""

    auto_analyze: bool = False
    min_session_length: int = Field(default=5, ge=0)
    exclude_patterns: List[str] = Field(default_factory=list)


class SyncConfig(BaseModel):
    """CLAUDE.md sync options."""

    auto_sync: bool = False
    target_projects: List[str] = Field(default_factory=list)


class Settings(BaseModel):
    """Application settings."""

    version: int = 1

    # Logging
    log_level: str = "INFO"
    dev_mode: bool = False
    log_file_path: Optional[Path] = None

    # Storage
    patterns_dir: Path = Field(default_factory=get_default_patterns_dir)

    llm: LLMConfig = Field(default_factory=LLMConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log_level: {v}")
        return level

    @property
    def config_path(self) -> Path:
        return self.patterns_dir / CONFIG_FILE_NAME

    @property
    def catalog_path(self) -> Path:
        return self.patterns_dir / CATALOG_FILE_NAME

    @property
    def global_detail_path(self) -> Path:
        return self.patterns_dir / DETAIL_FILE_NAME

    @property
    def queue_path(self) -> Path:
        return self.patterns_dir / QUEUE_FILE_NAME

    def get_log_file_path(self) -> Optional[Path]:
        """Return the log file path, creating its directory if needed."""
        if self.log_file_path is None:
            return None
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        return self.log_file_path

    def to_yaml_dict(self) -> dict:
        """Serializable form for config.yaml (paths as strings)."""
        data = self.model_dump(mode="json", exclude={"patterns_dir"})
        if data.get("log_file_path") is None:
            data.pop("log_file_path", None)
        return data


# Environment variable -> dotted settings key
ENV_OVERRIDES = {
    "CPL_LOG_LEVEL": "log_level",
    "CPL_LLM_PROVIDER": "llm.provider",
    "CPL_LLM_MODEL": "llm.model",
}


def _apply_env_overrides(data: dict) -> dict:
    for env_name, dotted in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if not value:
            continue
        target = data
        *parents, leaf = dotted.split(".")
        for key in parents:
            target = target.setdefault(key, {})
        target[leaf] = value
    return data


def load_settings(patterns_dir: Optional[Path] = None) -> Settings:
    """
    Build settings from config.yaml and the environment.

    Args:
        patterns_dir: Directory holding config.yaml (defaults to ~/.claude-patterns
            or CPL_PATTERNS_DIR)

    Returns:
        Validated settings
    """
    load_dotenv()

    if patterns_dir is None:
        env_dir = os.getenv("CPL_PATTERNS_DIR")
        patterns_dir = Path(env_dir).expanduser() if env_dir else get_default_patterns_dir()

    data: dict = {}
    config_file = patterns_dir / CONFIG_FILE_NAME
    if config_file.exists():
        loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data = loaded

    data = _apply_env_overrides(data)
    data["patterns_dir"] = patterns_dir
    return Settings(**data)


def save_settings(settings: Settings) -> Path:
    """Write settings to config.yaml, returning the path."""
    settings.patterns_dir.mkdir(parents=True, exist_ok=True)
    settings.config_path.write_text(
        yaml.safe_dump(settings.to_yaml_dict(), sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return settings.config_path


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (used by tests and `cpl init`)."""
    global _settings
    _settings = None
