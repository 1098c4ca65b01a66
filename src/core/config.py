"""Configuration models and YAML loader for the vacancy tracker."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_API_KEY_ENV = "JOOBLE_API_KEY"


class StoreConfig(BaseModel):
    """Local vacancy list persistence."""

    path: str = "data/vacancies.json"
    seed_examples: bool = True


class SearchApiConfig(BaseModel):
    """Jooble job-search API access.

    The API key is part of the request path. Leave ``api_key`` empty to read
    it from the environment variable named by ``api_key_env``.
    """

    endpoint: str = "https://jooble.org/api/"
    api_key: str = ""
    api_key_env: str = DEFAULT_API_KEY_ENV
    location: str = ""

    @field_validator("endpoint")
    @classmethod
    def endpoint_has_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "api endpoint must not be empty"
            raise ValueError(msg)
        return v if v.endswith("/") else f"{v}/"

    def resolve_api_key(self) -> str:
        """Return the configured key, falling back to the environment."""
        if self.api_key.strip():
            return self.api_key.strip()
        return os.environ.get(self.api_key_env, "").strip()


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    api: SearchApiConfig = Field(default_factory=SearchApiConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)


def write_default_settings(path: str | Path, **overrides: Any) -> dict[str, Any]:
    """Write a starter settings YAML file and return the dict written.

    Args:
        path: Destination file; parent directories are created.
        **overrides: Override any top-level key in the output dict.
    """
    settings: dict[str, Any] = Settings().model_dump(mode="json")
    settings.update(overrides)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(settings, default_flow_style=False, sort_keys=False))
    return settings
