"""Runtime settings.

Values resolve in this order (first wins):
1. keyword arguments to ``Settings(...)``
2. environment variables (``SELFRESOLVE_`` prefix, ``__`` for nesting,
   e.g. ``SELFRESOLVE_MARKET__MAX_ESTIMATES=50``)
3. the YAML file chosen by ``load_settings`` (default ``config/selfresolve.yaml``)
4. field defaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Tuple, Type

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_YAML_NAME = "selfresolve.yaml"

_SENSITIVE_KEYS = ("password", "secret", "token", "api_key")

_last_yaml_path: str | None = None


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _data_dir(test_mode: bool = False, override: str | None = None) -> str:
    if override:
        return os.path.abspath(os.path.expanduser(override))
    base = _project_root() / "data"
    return str(base / "test" if test_mode else base)


def last_yaml_path() -> str | None:
    """Path of the YAML file most recently handed to ``load_settings``."""
    return _last_yaml_path


def _read_yaml(path: str | os.PathLike[str] | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"settings file {p} must contain a mapping at the top level")
    return data


class DatabaseSettings(BaseModel):
    filename: str = "selfresolve.db"
    url: str | None = Field(
        default=None,
        description="Full SQLAlchemy async URL. Overrides filename when set.",
    )
    echo: bool = False


class MarketSettings(BaseModel):
    max_estimates: int = Field(
        default=100,
        ge=1,
        le=100_000,
        description="Hard cap on estimates per question; reaching it resolves the question.",
    )
    prior_belief: float = Field(
        default=0.5,
        gt=0.0,
        lt=1.0,
        description="Outcome weight used by CE-MSR in place of an observed outcome.",
    )
    epsilon: float = Field(
        default=1e-4,
        gt=0.0,
        le=1e-2,
        description="Smoothing constant added to every probability inside ln().",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the stopping rule RNG. None draws from OS entropy.",
    )
    max_question_text: int = Field(default=2000, ge=1)


class RetrySettings(BaseModel):
    max_attempts: int = Field(default=5, ge=1)
    initial_backoff_ms: int = Field(default=10, ge=0)
    max_backoff_ms: int = Field(default=500, ge=0)


class LoggingSettings(BaseModel):
    json_logs: bool = False
    level: str = "INFO"
    events_retention_size: int = Field(default=2 * 1024 * 1024, ge=1024)

    @model_validator(mode="before")
    @classmethod
    def _alias_json(cls, data: Any) -> Any:
        if isinstance(data, dict) and "json" in data and "json_logs" not in data:
            data = dict(data)
            data["json_logs"] = data.pop("json")
        return data


class _YamlSettingsSource(PydanticBaseSettingsSource):
    """Lowest-priority source backed by the YAML file from ``load_settings``."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        return _read_yaml(_last_yaml_path)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SELFRESOLVE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    test_mode: bool = False
    data_dir: str | None = None
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    market: MarketSettings = Field(default_factory=MarketSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _YamlSettingsSource(settings_cls),
            file_secret_settings,
        )

    def resolved_data_dir(self) -> str:
        return _data_dir(self.test_mode, self.data_dir)

    def database_path(self) -> str:
        """Return the full path to the SQLite database file, creating its directory."""
        data_dir = self.resolved_data_dir()
        os.makedirs(data_dir, exist_ok=True)
        return os.path.join(data_dir, self.database.filename)

    def database_url(self) -> str:
        if self.database.url:
            return self.database.url
        return f"sqlite+aiosqlite:///{os.path.abspath(self.database_path())}"


def load_settings(yaml_path: str | os.PathLike[str] | None = None, **overrides: Any) -> Settings:
    """Build Settings from env and YAML.

    When ``yaml_path`` is None, ``SELFRESOLVE_CONFIG`` is consulted, then
    ``<project root>/config/selfresolve.yaml``.
    """
    global _last_yaml_path
    candidate = yaml_path or os.getenv("SELFRESOLVE_CONFIG")
    if candidate is None:
        candidate = _project_root() / "config" / DEFAULT_YAML_NAME
    _last_yaml_path = str(Path(candidate).resolve())
    return Settings(**overrides)


def sanitize_dict(data: Any) -> Any:
    """Mask secrets before settings are logged."""
    if isinstance(data, dict):
        out: Dict[str, Any] = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if any(s in lowered for s in _SENSITIVE_KEYS) and value:
                out[key] = "***"
            elif lowered == "url" and isinstance(value, str) and "@" in value:
                scheme, _, rest = value.partition("://")
                out[key] = f"{scheme}://***@{rest.split('@', 1)[1]}"
            else:
                out[key] = sanitize_dict(value)
        return out
    if isinstance(data, list):
        return [sanitize_dict(v) for v in data]
    return data


__all__ = [
    "DatabaseSettings",
    "MarketSettings",
    "RetrySettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
    "last_yaml_path",
    "sanitize_dict",
    "_project_root",
    "_data_dir",
]
