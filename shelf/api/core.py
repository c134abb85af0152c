"""Status endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from shelf.core.services import Services
from shelf.core.status import get_status


def register_routes(router: APIRouter, svc: Services, **kw):

    @router.get("/status")
    def api_status():
        return get_status(svc)
