from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lessfeed.domain.constants import REQUEST_TIMEOUT
from lessfeed.domain.models import Lang

CONFIG_FILES = [
    Path.home() / ".config/lessfeed/config.toml",
    Path.home() / ".lessfeed.toml",
]


def default_state_file() -> Path:
    return Path.home() / ".local/share/lessfeed/state.json"


class AppConfig(BaseSettings):
    """
    Configuration for the lessfeed CLI.
    Supports loading from:
    1. Environment variables (LESS_*)
    2. Config file (~/.config/lessfeed/config.toml or ~/.lessfeed.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LESS_",
        toml_file=CONFIG_FILES,
        extra="ignore",
    )

    # Paths
    state_file: Path = Field(default_factory=default_state_file)
    cards_file: Path | None = None

    # Remote content
    supabase_url: str | None = None
    supabase_key: str | None = None
    request_timeout: float = REQUEST_TIMEOUT

    default_lang: Lang = Lang.EN
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

        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("state_file", mode="before")
    @classmethod
    def expand_state_file(cls, v: Any) -> Path:
        if v is None or v == "":
            return default_state_file()
        return Path(v).expanduser()

    @field_validator("cards_file", mode="before")
    @classmethod
    def expand_cards_file(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    @field_validator("default_lang", mode="before")
    @classmethod
    def parse_lang(cls, v: Any) -> Lang:
        if isinstance(v, Lang):
            return v
        return Lang.from_code(str(v))

    @property
    def has_remote(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lessfeed/config.toml (if exists)
    3. Environment variables (LESS_*)
    4. cli_overrides (passed from Typer, None values dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
