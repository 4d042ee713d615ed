from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Lets the appointment lookups request past dates (admin roles only).
    allow_past_dates: bool = False


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    rotation: FileRotationSettings


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str
    file: FileLoggingSettings


class ApiSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    access_token: str = ""
    timeout_seconds: float = 30.0
    max_retries: int = 2


class CacheSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    lookup_ttl_seconds: float = 600.0


class SearchSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    debounce_seconds: float = 0.8
    result_limit: int = 20
    default_limit: int = 10


class TableSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    page_size_options: Sequence[int] = (10, 20, 30, 40, 50)
    default_page_size: int = 10

    @field_validator("page_size_options")
    @classmethod
    def _page_sizes_positive(cls, value: Sequence[int]) -> Sequence[int]:
        if not value or any(int(size) <= 0 for size in value):
            raise ValueError("page_size_options must be a non-empty list of positive integers")
        return tuple(int(size) for size in value)


class AppConfig(BaseModel):
    """
    Effective runtime configuration after applying all precedence rules.

    Precedence, lowest first: YAML file, .env file, APP__ environment variables.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings
    api: ApiSettings
    cache: CacheSettings = Field(default_factory=CacheSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    table: TableSettings = Field(default_factory=TableSettings)


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = "data/.env"
