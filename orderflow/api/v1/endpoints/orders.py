"""
Order read endpoints.

GET /order/{order_uid} returns the full order aggregate, served from the
cache when possible.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from orderflow.domain.models import Order
from orderflow.services.orders.orchestrator import OrderOrchestrator
from orderflow.utils.error_handler import OrderNotFoundException, OrderServiceException

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> OrderOrchestrator:
    """Dependency: orchestrator built during application startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return orchestrator


@router.get(
    "/order/{order_uid}",
    response_model=Order,
    summary="Get order by id",
    responses={
        400: {"description": "Blank order id"},
        404: {"description": "Order not found"},
        500: {"description": "Internal error"},
    },
)
async def get_order(order_uid: str, orchestrator: OrderOrchestrator = Depends(get_orchestrator)) -> Order:
    """
    Obtiene un pedido por su identificador.

    Args:
        order_uid: Identificador del pedido

    Returns:
        Order: Pedido completo con delivery, payment e items
    """
    if not order_uid.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="order id is required")

    try:
        return await orchestrator.get_order(order_uid)
    except OrderNotFoundException:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="order not found")
    except OrderServiceException as e:
        logger.error(f"Failed to serve order {order_uid}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal server error")


@router.get("/order/", include_in_schema=False)
async def get_order_without_id():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="order id is required")
