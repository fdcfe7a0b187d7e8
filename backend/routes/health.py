"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status

from config import Settings
from deps import get_order_service, get_settings
from domain.summary import health_summary
from services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    service: OrderService = Depends(get_order_service),
    settings: Settings = Depends(get_settings),
):
    """Liveness plus order counts and persistence mode."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "orders_summary": health_summary(service.list_orders()),
        "mode": "manual_payments",
        "business_number": settings.business_number,
        "email_configured": service.notifier.configured,
        "cache_refresher_running": service.cache.refresher_running,
        **service.store.persistence_info(),
    }
