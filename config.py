import os
from functools import lru_cache
from pathlib import Path

# "Other - Internal Transfer" and "Salary - Internal Transfer"
DEFAULT_INTERNAL_TRANSFER_CATEGORY_IDS = (
    "90eae994-67f1-426e-a8bc-ff6e2dbab51c",
    "ece52746-3984-4a1e-b8a4-dadfd916612e",
)


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        period_cache_ttl_secs: float,
        internal_transfer_category_ids: frozenset[str],
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.period_cache_ttl_secs = period_cache_ttl_secs
        self.internal_transfer_category_ids = internal_transfer_category_ids
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINTRACK_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _parse_id_list(raw: str) -> frozenset[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "fintrack.db"
    database_url = os.getenv("FINTRACK_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINTRACK_TIMEZONE", "Asia/Jakarta")
    period_cache_ttl_secs = float(os.getenv("FINTRACK_PERIOD_CACHE_TTL_SECS", "300"))
    internal_transfer_category_ids = _parse_id_list(
        os.getenv(
            "FINTRACK_INTERNAL_TRANSFER_CATEGORY_IDS",
            ",".join(DEFAULT_INTERNAL_TRANSFER_CATEGORY_IDS),
        )
    )
    log_level = os.getenv("FINTRACK_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        period_cache_ttl_secs=period_cache_ttl_secs,
        internal_transfer_category_ids=internal_transfer_category_ids,
        log_level=log_level,
    )
