"""
User Gateway

Customer-facing entry point. Holds no data of its own: it validates requests,
checks that the restaurant is open before an order is placed, and forwards
calls to the restaurant and order services. Downstream status codes and
bodies are passed through unchanged.

Endpoints:
    GET  /api/users/restaurants              - Restaurants open this hour
    POST /api/users/orders                   - Place an order
    POST /api/users/orders/{order_id}/rate   - Rate a delivered order
    GET  /api/users/orders/{user_id}         - A user's orders
    GET  /api/users/order/{order_id}         - One order
    GET  /health                             - Health check
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response

from fooddelivery.apps.common import create_service_app
from fooddelivery.core.config import Settings, get_settings, setup_logging
from fooddelivery.core.errors import InputValidationError
from fooddelivery.schemas import ErrorResponse, OrderCreate, RateOrderRequest
from fooddelivery.services.http import ServiceHttpClient

logger = logging.getLogger(__name__)

SERVICE_NAME = "user-service"

UPSTREAM_ERRORS = {
    400: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@dataclass
class Upstreams:
    """Downstream services the gateway forwards to."""
    orders: ServiceHttpClient
    restaurants: ServiceHttpClient


def get_upstreams(request: Request) -> Upstreams:
    return request.app.state.upstreams


def forward(upstream: httpx.Response) -> Response:
    """Relay a downstream response as-is."""
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )


router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/restaurants", responses=UPSTREAM_ERRORS)
async def list_open_restaurants(
    current_hour: Optional[int] = Query(None, alias="currentHour", ge=0, le=23),
    upstreams: Upstreams = Depends(get_upstreams),
):
    """Restaurants online and open now (or at ``currentHour``)."""
    hour = datetime.now().hour if current_hour is None else current_hour
    response = await upstreams.restaurants.request(
        "GET", "/api/restaurants", params={"currentHour": hour}
    )
    return forward(response)


@router.post("/orders", status_code=201, responses=UPSTREAM_ERRORS)
async def place_order(
    payload: OrderCreate,
    upstreams: Upstreams = Depends(get_upstreams),
):
    """
    Place an order at a restaurant that is open this hour.

    Returns 400 when the restaurant is offline or closed, otherwise whatever
    the order service answers.
    """
    hour = datetime.now().hour
    response = await upstreams.restaurants.request(
        "GET", "/api/restaurants", params={"currentHour": hour}
    )
    if response.status_code != 200:
        raise upstreams.restaurants.unexpected_status(response)

    open_ids = {restaurant.get("id") for restaurant in response.json()}
    if payload.restaurant_id not in open_ids:
        logger.info(f"Restaurant {payload.restaurant_id} not open at hour {hour}")
        raise InputValidationError("Restaurant is not available at this hour")

    response = await upstreams.orders.request(
        "POST", "/api/orders", json=payload.model_dump(by_alias=True)
    )
    return forward(response)


@router.post("/orders/{order_id}/rate", responses=UPSTREAM_ERRORS)
async def rate_order(
    order_id: str,
    payload: RateOrderRequest,
    upstreams: Upstreams = Depends(get_upstreams),
):
    response = await upstreams.orders.request(
        "POST", f"/api/orders/{order_id}/rate", json=payload.model_dump(by_alias=True)
    )
    return forward(response)


@router.get("/orders/{user_id}", responses=UPSTREAM_ERRORS)
async def list_user_orders(user_id: str, upstreams: Upstreams = Depends(get_upstreams)):
    response = await upstreams.orders.request("GET", "/api/orders", params={"userId": user_id})
    return forward(response)


@router.get("/order/{order_id}", responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
async def get_order(order_id: str, upstreams: Upstreams = Depends(get_upstreams)):
    response = await upstreams.orders.request("GET", f"/api/orders/{order_id}")
    return forward(response)


def create_app(
    settings: Optional[Settings] = None,
    *,
    order_http: Optional[httpx.AsyncClient] = None,
    restaurant_http: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the user gateway.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        order_http: Pre-built client for the order service
        restaurant_http: Pre-built client for the restaurant service
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def upstream_clients(app: FastAPI):
        upstreams = Upstreams(
            orders=ServiceHttpClient(
                "order-service", settings.order_service_url,
                settings.http_timeout_seconds, order_http,
            ),
            restaurants=ServiceHttpClient(
                "restaurant-service", settings.restaurant_service_url,
                settings.http_timeout_seconds, restaurant_http,
            ),
        )
        app.state.upstreams = upstreams
        try:
            yield
        finally:
            await upstreams.orders.aclose()
            await upstreams.restaurants.aclose()

    app = create_service_app(
        service_name=SERVICE_NAME,
        description="Customer gateway to restaurants and orders",
        settings=settings,
        resources=upstream_clients,
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "fooddelivery.apps.user_service:app",
        host=_settings.api_host,
        port=_settings.user_service_port,
        reload=_settings.is_development,
        log_level="info",
    )
