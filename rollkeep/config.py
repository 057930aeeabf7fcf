from __future__ import annotations

from typing import Protocol

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="ROLLKEEP_", extra="ignore"
    )

    database_url: str = "sqlite+aiosqlite:///./rollkeep.db"
    environment: str = "local"
    debug: bool = True

    # Ten Dice Rule house variant: +2 to the total whenever fewer than ten dice are kept.
    lt_exception: bool = False

    # Per-kind display preference for the modifier prompt. The prompt is shown
    # when a caller's ask_for_options differs from this value.
    show_skill_roll_options: bool = False
    show_ring_roll_options: bool = False
    show_trait_roll_options: bool = False
    show_weapon_roll_options: bool = False
    show_npc_roll_options: bool = False

    allow_npc_void_points: bool = False


settings = Settings()


class ConfigProvider(Protocol):
    """Configuration read by the engine at call time."""

    def house_rule_enabled(self) -> bool: ...

    def show_roll_options(self, kind: str) -> bool: ...

    def allow_npc_void_points(self) -> bool: ...


class SettingsConfigProvider:
    """ConfigProvider backed by a live Settings object.

    Values are looked up on every call, so changes made to the settings object
    after construction are seen by the next roll.
    """

    def __init__(self, source: Settings | None = None) -> None:
        self._source = source

    @property
    def _settings(self) -> Settings:
        return self._source if self._source is not None else settings

    def house_rule_enabled(self) -> bool:
        return self._settings.lt_exception

    def show_roll_options(self, kind: str) -> bool:
        return bool(getattr(self._settings, f"show_{kind}_roll_options", False))

    def allow_npc_void_points(self) -> bool:
        return self._settings.allow_npc_void_points
