"""System-level API endpoints."""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Header

from ...core import SUPERUSER_EMAIL

router = APIRouter(tags=["system"])


def is_superuser_email(email: Optional[str], superuser_email: Optional[str] = None) -> bool:
    """Case-insensitive match against the configured superuser email."""

    if superuser_email is None:
        superuser_email = SUPERUSER_EMAIL
    if not email or not superuser_email:
        return False
    return email.strip().lower() == superuser_email.strip().lower()


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/isSuperuser")
def is_superuser(x_user_email: Optional[str] = Header(default=None)) -> Dict[str, bool]:
    """Report whether the x-user-email header names the superuser."""

    return {"isSuperuser": is_superuser_email(x_user_email)}


__all__ = ["is_superuser_email", "router"]
