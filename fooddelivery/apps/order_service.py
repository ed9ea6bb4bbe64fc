"""
Order Service

Owns orders and their status. Every status change is checked against the
transition table PLACED -> ACCEPTED -> DELIVERED -> RATED and written with a
compare-and-swap, so two racing updates cannot both apply.

Endpoints:
    POST  /api/orders                          - Place an order (status PLACED)
    GET   /api/orders?userId=                  - List orders, newest first
    GET   /api/orders/{order_id}               - One order
    PATCH /api/orders/{order_id}               - Partial update
    PATCH /api/orders/{order_id}/status        - Change status
    PATCH /api/orders/{order_id}/assign-agent  - Set the delivery agent
    POST  /api/orders/{order_id}/rate          - Rate a delivered order
    GET   /health                              - Health check
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, status
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.apps.common import create_service_app
from fooddelivery.core.config import Settings, get_settings, setup_logging
from fooddelivery.core.errors import InputValidationError
from fooddelivery.database import get_db
from fooddelivery.schemas import (
    AssignDeliveryAgent,
    ErrorResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    RateOrderRequest,
)
from fooddelivery.stores import OrderStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "order-service"

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

NON_NULLABLE_FIELDS = ("status", "items")

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def get_order_store(db: AsyncSession = Depends(get_db)) -> OrderStore:
    return OrderStore(db)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderCreate, store: OrderStore = Depends(get_order_store)):
    return await store.create_order(payload.user_id, payload.restaurant_id, payload.items)


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: OrderStore = Depends(get_order_store),
):
    return await store.list_orders(user_id=user_id)


@router.get("/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(order_id: str, store: OrderStore = Depends(get_order_store)):
    return await store.get_order(order_id)


@router.patch("/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def update_order(
    order_id: str,
    payload: OrderUpdate,
    store: OrderStore = Depends(get_order_store),
):
    """
    Apply only the fields present in the body.

    Unknown fields and unknown statuses are rejected with 400; a status change
    outside the transition table, or one that lost a race, with 409.
    """
    fields = payload.model_dump(exclude_unset=True)
    for key in NON_NULLABLE_FIELDS:
        if key in fields and fields[key] is None:
            raise InputValidationError(f"{to_camel(key)} cannot be null")
    return await store.update_order(order_id, fields)


@router.patch("/{order_id}/status", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    store: OrderStore = Depends(get_order_store),
):
    return await store.update_order(order_id, {"status": payload.status})


@router.patch("/{order_id}/assign-agent", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def assign_delivery_agent(
    order_id: str,
    payload: AssignDeliveryAgent,
    store: OrderStore = Depends(get_order_store),
):
    return await store.update_order(order_id, {"delivery_agent_id": payload.delivery_agent_id})


@router.post("/{order_id}/rate", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def rate_order(
    order_id: str,
    payload: RateOrderRequest,
    store: OrderStore = Depends(get_order_store),
):
    """Record user and agent ratings. Only a DELIVERED order can be rated."""
    return await store.rate_order(order_id, payload.user_rating, payload.agent_rating)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = create_service_app(
        service_name=SERVICE_NAME,
        description="Orders and their status workflow",
        settings=settings,
        database_url=settings.order_database_url,
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "fooddelivery.apps.order_service:app",
        host=_settings.api_host,
        port=_settings.order_service_port,
        reload=_settings.is_development,
        log_level="info",
    )
