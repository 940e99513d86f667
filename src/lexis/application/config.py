from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexis.domain.constants import (
    DEFAULT_NEW_REVIEW_RATIO,
    DEFAULT_ROUND_SIZE,
    MAX_ROUND_SIZE,
    MIN_ROUND_SIZE,
    RETRY_DELAY_MINUTES,
)


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/lexis/config.toml",
        Path.home() / ".lexis.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for lexis.
    Supports loading from:
    1. Environment variables (LEXIS_*)
    2. Config file (~/.config/lexis/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXIS_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/lexis")
    decks_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/lexis/decks")

    # Storage
    store_backend: Literal["json", "memory"] = "json"

    # Session defaults
    default_round_size: int = Field(
        default=DEFAULT_ROUND_SIZE, ge=MIN_ROUND_SIZE, le=MAX_ROUND_SIZE
    )
    default_new_review_ratio: int = Field(default=DEFAULT_NEW_REVIEW_RATIO, ge=0, le=100)
    retry_minutes: int = Field(default=RETRY_DELAY_MINUTES, ge=0)
    seed: int | None = None

    # Server
    host: str = "127.0.0.1"
    port: int = 8787

    verbose: int = 1

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

        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources win: CLI overrides > env > file
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

    @field_validator("data_dir", "decks_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    def session_defaults(self) -> dict[str, Any]:
        return {
            "round_size": self.default_round_size,
            "new_review_ratio": self.default_new_review_ratio,
        }


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexis/config.toml (if exists)
    3. Environment variables (LEXIS_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not give.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
