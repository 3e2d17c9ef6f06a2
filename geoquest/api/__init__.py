"""API assembly helpers."""

from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI

from .routers import ALL_ROUTERS

# Browser clients call the same endpoints under /api/.
API_ALIAS_PREFIXES = ("/api",)


def register_routes(app: FastAPI, alias_prefixes: Iterable[str] = API_ALIAS_PREFIXES) -> None:
    """Mount every router at the root and again under each alias prefix.

    Aliases are left out of the OpenAPI schema so operation ids stay unique.
    """

    for router in ALL_ROUTERS:
        app.include_router(router)
        for prefix in alias_prefixes:
            app.include_router(router, prefix=prefix, include_in_schema=False)


__all__ = ["API_ALIAS_PREFIXES", "register_routes"]
