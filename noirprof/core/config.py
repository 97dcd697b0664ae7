"""Core configuration for the noirprof circuit profiler."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Profiler settings, overridable through ``NOIRPROF_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NOIRPROF_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Noir Circuit Profiler"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "WARNING"

    # ── Cost database ────────────────────────────────────────────────────
    stats_dir: str = "circuit_stats"
    cost_db_filename: str = "cost_database.json"

    # ── Cost model ───────────────────────────────────────────────────────
    proving_time_factor: float = 1.0
    bottleneck_threshold: int = 10_000

    # ── Comparator attribution ───────────────────────────────────────────
    attribution_min_delta: int = 100
    attribution_tolerance_percent: float = 5.0
    attribution_top_n: int = 3

    @property
    def cost_db_path(self) -> Path:
        return Path(self.stats_dir) / self.cost_db_filename


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
