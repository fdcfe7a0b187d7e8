"""
Export endpoints — CSV download and JSON backup of every order.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from deps import get_order_service
from services import export_service
from services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["exports"])


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/export/csv")
async def export_csv(service: OrderService = Depends(get_order_service)):
    orders = service.list_orders()
    filename = export_service.dated_filename("ecospin_orders", "csv")
    logger.info(f"📁 Exporting {len(orders)} orders to {filename}")
    return Response(
        content=export_service.orders_to_csv(orders),
        media_type="text/csv",
        headers=_attachment(filename),
    )


@router.get("/backup")
async def backup(service: OrderService = Depends(get_order_service)):
    payload = await service.backup_snapshot()
    filename = export_service.dated_filename("ecospin_backup", "json")
    return JSONResponse(content=payload, headers=_attachment(filename))
