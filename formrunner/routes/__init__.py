"""APIRouter registration for the form runtime API."""

from __future__ import annotations

from fastapi import APIRouter

from formrunner.routes.forms import router as forms_router
from formrunner.routes.runtime import router as runtime_router

api_router = APIRouter()
api_router.include_router(forms_router, tags=["Forms"])
api_router.include_router(runtime_router, tags=["Runtime"])

__all__ = ["api_router"]
