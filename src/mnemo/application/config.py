from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from mnemo.domain import constants


def config_files() -> list[Path]:
    """Candidate TOML config locations, in priority order."""
    return [
        Path.home() / ".config/mnemo/config.toml",
        Path.home() / ".mnemo.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for mnemo.
    Supports loading from:
    1. Environment variables (MNEMO_*)
    2. Config file (~/.config/mnemo/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="MNEMO_",
        extra="ignore",
    )

    # Paths
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/mnemo/deck.json"
    )

    # Storage
    backend: Literal["file", "memory"] = "file"

    # Scheduling
    mastery_threshold: int = constants.MASTERY_THRESHOLD
    initial_ease_factor: float = constants.INITIAL_EASE_FACTOR
    min_ease_factor: float = constants.MIN_EASE_FACTOR
    max_ease_factor: float | None = None
    perfect_bonus: float = constants.PERFECT_BONUS

    # Queues
    due_share: float = constants.DUE_SHARE
    default_due_limit: int = constants.DEFAULT_DUE_LIMIT
    default_new_limit: int = constants.DEFAULT_NEW_LIMIT
    include_mastered_in_due: bool = True
    shuffle_seed: int | None = None

    # Sessions
    default_target_cards: int = constants.DEFAULT_TARGET_CARDS
    default_max_duration: int = constants.DEFAULT_MAX_DURATION_MINUTES

    # Calendar
    timezone: str = "UTC"

    verbose: int = 0

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
        return (init_settings, env_settings)

    @field_validator("data_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @field_validator("mastery_threshold", "default_target_cards", "default_max_duration")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("default_due_limit", "default_new_limit")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("due_share")
    @classmethod
    def check_share(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("due_share must be between 0 and 1")
        return v

    @field_validator("perfect_bonus")
    @classmethod
    def check_bonus(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("perfect_bonus must be at least 1.0")
        return v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @model_validator(mode="after")
    def check_ease_bounds(self) -> "AppConfig":
        if self.min_ease_factor < constants.MIN_EASE_FACTOR:
            raise ValueError(f"min_ease_factor cannot go below {constants.MIN_EASE_FACTOR}")
        if self.initial_ease_factor < self.min_ease_factor:
            raise ValueError("initial_ease_factor must be >= min_ease_factor")
        if self.max_ease_factor is not None and self.max_ease_factor < self.initial_ease_factor:
            raise ValueError("max_ease_factor must be >= initial_ease_factor")
        return self

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/mnemo/config.toml (if exists)
    3. Environment variables (MNEMO_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
