from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


PROJECT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = PROJECT_DIR / "data"
DEFAULT_GEOJSON_URL = (
    "https://raw.githubusercontent.com/giuliano-macedo/geodata-br-states/master/geojson/br_states.json"
)
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    geojson_url: str = DEFAULT_GEOJSON_URL
    geojson_timeout: float = 10.0
    top_n_cities: int = 10
    fan_out_joins: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])


def settings_from_env(env: Optional[dict] = None) -> Settings:
    """Build settings from ``OLIST_*`` environment variables."""
    env = os.environ if env is None else env
    defaults = Settings()
    origins = env.get("OLIST_CORS_ORIGINS")
    return Settings(
        data_dir=Path(env["OLIST_DATA_DIR"]) if env.get("OLIST_DATA_DIR") else defaults.data_dir,
        geojson_url=env.get("OLIST_GEOJSON_URL") or defaults.geojson_url,
        geojson_timeout=_as_float(env.get("OLIST_GEOJSON_TIMEOUT"), defaults.geojson_timeout),
        top_n_cities=max(1, _as_int(env.get("OLIST_TOP_N_CITIES"), defaults.top_n_cities)),
        fan_out_joins=_as_bool(env.get("OLIST_FAN_OUT_JOINS"), defaults.fan_out_joins),
        log_level=(env.get("OLIST_LOG_LEVEL") or defaults.log_level).upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings_from_env()


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
