# backend/api/mediamod/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def _load_env_once() -> None:
    """
    Loads .env from:
      1) ENV_PATH if provided
      2) backend/api/.env (project default)
      3) current working directory .env (fallback)
    """
    env_path = os.getenv("ENV_PATH")
    if env_path:
        p = Path(env_path)
        if p.exists():
            load_dotenv(p, override=False)
            return

    # this file is backend/api/mediamod/config.py
    backend_api_dir = Path(__file__).resolve().parents[1]
    p2 = backend_api_dir / ".env"
    if p2.exists():
        load_dotenv(p2, override=False)
        return

    p3 = Path.cwd() / ".env"
    if p3.exists():
        load_dotenv(p3, override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    database_url: str
    auto_create_schema: bool
    blob_backend: str
    upload_dir: Path
    public_base_url: str
    media_folder: str
    default_author: str
    s3_bucket: str | None
    s3_region: str | None
    s3_public_base_url: str | None
    observer_queue_size: int
    cors_origins: list[str]
    log_level: str
    json_logs: bool


def load_settings() -> Settings:
    _load_env_once()

    origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "*").split(",") if o.strip()]

    return Settings(
        database_url=os.getenv("DATABASE_URL") or os.getenv("DB_URL") or "sqlite:///./media.db",
        auto_create_schema=_env_bool("MEDIA_AUTO_CREATE_SCHEMA", True),
        blob_backend=(os.getenv("BLOB_BACKEND") or "local").strip().lower(),
        upload_dir=Path(os.getenv("UPLOAD_DIR") or "./uploads"),
        public_base_url=(os.getenv("PUBLIC_BASE_URL") or "").rstrip("/"),
        media_folder=os.getenv("MEDIA_FOLDER") or "media",
        default_author=os.getenv("DEFAULT_AUTHOR") or "Invitado",
        s3_bucket=os.getenv("S3_BUCKET"),
        s3_region=os.getenv("S3_REGION"),
        s3_public_base_url=os.getenv("S3_PUBLIC_BASE_URL"),
        observer_queue_size=max(1, _env_int("OBSERVER_QUEUE_SIZE", 100)),
        cors_origins=origins or ["*"],
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        json_logs=_env_bool("JSON_LOGS", True),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
