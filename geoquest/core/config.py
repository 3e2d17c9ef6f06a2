"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


# Storage --------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))

DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'app.db'}"
DB_RESET = _env_bool("DB_RESET", False)


# HTTP -----------------------------------------------------------------------
ALLOWED_CORS_ORIGINS = _split_csv(os.getenv("ALLOWED_CORS_ORIGINS")) or ["*"]

# Compared case-insensitively against the x-user-email header.
SUPERUSER_EMAIL = (os.getenv("SUPERUSER_EMAIL") or "").strip()


# Game -----------------------------------------------------------------------
PROXIMITY_RADIUS_M = _env_int("PROXIMITY_RADIUS_M", 25)


# Background tasks -----------------------------------------------------------
TASK_POLL_INTERVAL_SEC = _env_float("TASK_POLL_INTERVAL_SEC", 2.0)
TASK_STREAM_MAX_ATTEMPTS = _env_int("TASK_STREAM_MAX_ATTEMPTS", 150)
TASK_IDLE_TIMEOUT_SEC = _env_int("TASK_IDLE_TIMEOUT_SEC", 120)
TASK_TOTAL_TIMEOUT_SEC = _env_int("TASK_TOTAL_TIMEOUT_SEC", 10 * 60)


# AI providers ---------------------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
MISTRAL_API_KEY = os.getenv("MISTRAL_API_KEY", "")
PROVIDER_STATUS_TTL_SEC = _env_int("PROVIDER_STATUS_TTL_SEC", 120)


# Logging --------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR") or None


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "ANTHROPIC_API_KEY",
    "DATABASE_URL",
    "DATA_DIR",
    "DB_RESET",
    "GEMINI_API_KEY",
    "LOG_DIR",
    "LOG_LEVEL",
    "MISTRAL_API_KEY",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "PROJECT_ROOT",
    "PROVIDER_STATUS_TTL_SEC",
    "PROXIMITY_RADIUS_M",
    "SUPERUSER_EMAIL",
    "TASK_IDLE_TIMEOUT_SEC",
    "TASK_POLL_INTERVAL_SEC",
    "TASK_STREAM_MAX_ATTEMPTS",
    "TASK_TOTAL_TIMEOUT_SEC",
]
