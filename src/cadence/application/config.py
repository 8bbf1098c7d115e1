from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cadence.application.review.aggregate_tracker import SuccessRateMode
from cadence.domain.constants import (
    DEFAULT_CONFLICT_RETRIES,
    DEFAULT_DUE_LIMIT,
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_RETRY_BACKOFF,
)


def config_files() -> list[Path]:
    """Candidate TOML files, highest priority first."""
    return [
        Path.home() / ".config/cadence/config.toml",
        Path.home() / ".cadence.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for Cadence.
    Supports loading from:
    1. Environment variables (CADENCE_*)
    2. Config file (~/.config/cadence/config.toml or ~/.cadence.toml)
    3. Explicit overrides passed by the embedding service
    """

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "sqlite"] = "memory"
    database_path: Path = Field(default_factory=lambda: Path.home() / ".local/share/cadence/reviews.db")
    catalog_path: Path | None = None

    # Concurrency
    max_conflict_retries: int = Field(default=DEFAULT_CONFLICT_RETRIES, ge=0)
    conflict_retry_backoff: float = Field(default=DEFAULT_RETRY_BACKOFF, ge=0)
    operation_timeout: float | None = Field(default=DEFAULT_OPERATION_TIMEOUT, gt=0)

    # Scheduling
    success_rate_mode: SuccessRateMode = SuccessRateMode.DERIVED
    due_items_limit: int = Field(default=DEFAULT_DUE_LIMIT, ge=1)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("database_path", mode="before")
    @classmethod
    def resolve_database_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("catalog_path", mode="before")
    @classmethod
    def resolve_catalog_path(cls, v: Any) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("operation_timeout", mode="before")
    @classmethod
    def disable_timeout(cls, v: Any) -> Any:
        # 0 or empty string in env/TOML means "no deadline"
        if v in (0, "0", "", None):
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/cadence/config.toml (if exists)
    3. Environment variables (CADENCE_*)
    4. overrides (None values are ignored)
    """
    cleaned = {k: v for k, v in (overrides or {}).items() if v is not None}
    return AppConfig(**cleaned)
