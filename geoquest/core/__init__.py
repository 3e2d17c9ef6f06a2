"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    LOG_DIR,
    LOG_LEVEL,
    OPENAI_API_KEY,
    OPENAI_MODEL,
    PROVIDER_STATUS_TTL_SEC,
    PROXIMITY_RADIUS_M,
    SUPERUSER_EMAIL,
    TASK_IDLE_TIMEOUT_SEC,
    TASK_POLL_INTERVAL_SEC,
    TASK_STREAM_MAX_ATTEMPTS,
    TASK_TOTAL_TIMEOUT_SEC,
)
from .database import engine, get_session, init_db, session_scope
from .errors import (
    GeoQuestError,
    InvalidTransition,
    NotFound,
    UpstreamError,
    ValidationError,
)
from .time import isoformat, utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "LOG_DIR",
    "LOG_LEVEL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "PROVIDER_STATUS_TTL_SEC",
    "PROXIMITY_RADIUS_M",
    "SUPERUSER_EMAIL",
    "TASK_IDLE_TIMEOUT_SEC",
    "TASK_POLL_INTERVAL_SEC",
    "TASK_STREAM_MAX_ATTEMPTS",
    "TASK_TOTAL_TIMEOUT_SEC",
    "GeoQuestError",
    "InvalidTransition",
    "NotFound",
    "UpstreamError",
    "ValidationError",
    "engine",
    "get_session",
    "init_db",
    "isoformat",
    "session_scope",
    "utcnow",
]
