"""
Shared FastAPI dependencies.

The order service and settings are built once in main.lifespan and kept on
app.state; routers read them through these functions so tests can swap in
their own instances via app.dependency_overrides.
"""

from __future__ import annotations

from fastapi import Request

from config import Settings
from services.order_service import OrderService


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
