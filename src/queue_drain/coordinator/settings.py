from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .sampler import DEFAULT_LOAD_THRESHOLD
from .types import DrainTarget


def _split_csv(v):
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


class DrainSettings(BaseSettings):
    """Environment-driven settings (prefix ``DRAIN_``).

    List values accept comma-separated strings, e.g.
    ``DRAIN_TARGETS="donations:contributions,recurring:contributions_recur"``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAIN_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    database_url: Optional[str] = None
    coordinator_name: str = "queue_drain"
    batch_size_key: str = "drain.batch_size"
    default_batch_size: int = 100
    load_threshold: float = DEFAULT_LOAD_THRESHOLD
    lease_seconds: int = 300
    pool_max: int = 4
    targets: Annotated[list[str], NoDecode] = []
    shunts: Annotated[list[str], NoDecode] = []
    server_name: str = "localhost"
    worker_name: str = "drain"
    metrics_port: Optional[int] = None
    alembic_ini: str = "alembic.ini"

    @field_validator("targets", "shunts", mode="before")
    @classmethod
    def _csv(cls, v):
        return _split_csv(v)

    @field_validator("default_batch_size", "lease_seconds")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def drain_targets(self) -> list[DrainTarget]:
        return [DrainTarget.parse(t) for t in self.targets]


@lru_cache()
def get_settings() -> DrainSettings:
    return DrainSettings()


class SettingsConfigProvider:
    """ConfigProvider serving the base batch size from DrainSettings."""

    def __init__(self, settings: DrainSettings):
        self._settings = settings

    async def get_int(self, key: str, default: int) -> int:
        if key == self._settings.batch_size_key:
            return self._settings.default_batch_size
        return default


class SettingsShuntGuard:
    """ShuntGuard tripped for names listed in ``DRAIN_SHUNTS``."""

    def __init__(self, settings: DrainSettings):
        self._names = {s.lower() for s in settings.shunts}

    async def is_enabled(self, name: str) -> bool:
        return name.lower() in self._names
