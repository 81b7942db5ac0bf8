from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_RECEIPT_TYPES = ("image/jpeg", "image/png", "image/jpg", "image/webp")


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    storage_root: Path = REPO_ROOT / "data" / "storage"
    storage_public_base_url: str = "/storage"
    receipts_bucket: str = "transaction-receipts"
    receipt_max_bytes: int = 3_000_000
    receipt_allowed_types: tuple[str, ...] = DEFAULT_RECEIPT_TYPES
    log_level: str = "INFO"

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def load_settings(*, dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv(REPO_ROOT / ".env", override=False)

    storage_root = Path(os.getenv("STORAGE_ROOT") or (REPO_ROOT / "data" / "storage"))
    if not storage_root.is_absolute():
        storage_root = REPO_ROOT / storage_root

    allowed = os.getenv("RECEIPT_ALLOWED_TYPES")
    allowed_types = (
        tuple(t.strip() for t in allowed.split(",") if t.strip()) if allowed else DEFAULT_RECEIPT_TYPES
    )

    settings = Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        storage_root=storage_root,
        storage_public_base_url=(os.getenv("STORAGE_PUBLIC_BASE_URL") or "/storage").rstrip("/"),
        receipts_bucket=os.getenv("RECEIPTS_BUCKET") or "transaction-receipts",
        receipt_max_bytes=_int_env("RECEIPT_MAX_BYTES", 3_000_000),
        receipt_allowed_types=allowed_types,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
    if not settings.database_configured:
        logger.warning("DATABASE_URL is not set; transactions will be kept in memory only")
    return settings
