"""
Restaurant Service

Owns restaurant reference data and runs order acceptance: a restaurant
accepting an order reserves a delivery agent and marks the order ACCEPTED,
releasing the agent again if the order update fails.

Endpoints:
    GET  /api/restaurants?currentHour=              - Restaurants (open ones if hour given)
    POST /api/restaurants                           - Create a restaurant
    GET  /api/restaurants/{restaurant_id}           - One restaurant
    PUT  /api/restaurants/{restaurant_id}           - Update a restaurant
    POST /api/restaurants/orders/{order_id}/accept  - Accept an order
    GET  /health                                    - Health check
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.apps.common import create_service_app
from fooddelivery.core.config import Settings, get_settings, setup_logging
from fooddelivery.core.errors import (
    CompensationFailedError,
    InvalidOrderStateError,
    NoAgentAvailableError,
)
from fooddelivery.core.handlers import error_response
from fooddelivery.database import get_db
from fooddelivery.orchestration import OrderAcceptanceOrchestrator
from fooddelivery.schemas import (
    AcceptOrderResponse,
    ErrorResponse,
    RestaurantCreate,
    RestaurantResponse,
    RestaurantUpdate,
)
from fooddelivery.services.agents import BaseAgentClient, create_agent_client
from fooddelivery.services.orders import BaseOrderClient, create_order_client
from fooddelivery.stores import RestaurantStore
from fooddelivery.tasks import release_agent_reservation

logger = logging.getLogger(__name__)

SERVICE_NAME = "restaurant-service"

router = APIRouter(prefix="/api/restaurants", tags=["Restaurants"])


def get_restaurant_store(db: AsyncSession = Depends(get_db)) -> RestaurantStore:
    return RestaurantStore(db)


def get_orchestrator(request: Request) -> OrderAcceptanceOrchestrator:
    return request.app.state.orchestrator


# =============================================================================
# RESTAURANTS
# =============================================================================

@router.get("", response_model=List[RestaurantResponse])
async def list_restaurants(
    current_hour: Optional[int] = Query(None, alias="currentHour", ge=0, le=23),
    store: RestaurantStore = Depends(get_restaurant_store),
):
    """All restaurants, or with ``currentHour`` only those online and open then."""
    return await store.list_restaurants(current_hour=current_hour)


@router.post("", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    payload: RestaurantCreate,
    store: RestaurantStore = Depends(get_restaurant_store),
):
    return await store.create_restaurant(
        name=payload.name,
        opening_hour=payload.opening_hour,
        closing_hour=payload.closing_hour,
        is_online=payload.is_online,
    )


@router.get(
    "/{restaurant_id}",
    response_model=RestaurantResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_restaurant(
    restaurant_id: str,
    store: RestaurantStore = Depends(get_restaurant_store),
):
    return await store.get_restaurant(restaurant_id)


@router.put(
    "/{restaurant_id}",
    response_model=RestaurantResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_restaurant(
    restaurant_id: str,
    payload: RestaurantUpdate,
    store: RestaurantStore = Depends(get_restaurant_store),
):
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    return await store.update_restaurant(restaurant_id, fields)


# =============================================================================
# ORDER ACCEPTANCE
# =============================================================================

@router.post(
    "/orders/{order_id}/accept",
    response_model=AcceptOrderResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def accept_order(
    order_id: str,
    request: Request,
    orchestrator: OrderAcceptanceOrchestrator = Depends(get_orchestrator),
):
    """
    Accept a PLACED order and assign it the longest-idle delivery agent.

    Returns 404 if the order does not exist, 400 if it is not PLACED or no
    agent is free, 503 if a service could not be reached before an agent was
    held, and 500 if the order update failed after an agent was reserved.
    """
    try:
        result = await orchestrator.accept_order(order_id)
    except InvalidOrderStateError as exc:
        return error_response(400, exc.message)
    except NoAgentAvailableError:
        return error_response(400, "No delivery agents available")
    except CompensationFailedError as exc:
        if request.app.state.settings.compensation_retry_enabled:
            schedule_compensation_retry(exc)
        raise

    return AcceptOrderResponse(
        message="Order accepted",
        order=result.order,
        assigned_agent=result.agent,
    )


def schedule_compensation_retry(exc: CompensationFailedError) -> None:
    """Queue the release that could not be done inline."""
    try:
        task = release_agent_reservation.delay(exc.agent_id, exc.reservation_id, exc.order_id)
    except Exception as e:
        logger.error(f"Could not queue release of reservation {exc.reservation_id}: {e}")
        return
    logger.info(f"Release of reservation {exc.reservation_id} queued as task {task.id}")


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    *,
    agent_client: Optional[BaseAgentClient] = None,
    order_client: Optional[BaseOrderClient] = None,
) -> FastAPI:
    """
    Build the restaurant service.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        agent_client: Delivery agent service client; built from settings if omitted
        order_client: Order service client; built from settings if omitted
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def service_clients(app: FastAPI):
        agents = agent_client or create_agent_client(settings)
        orders = order_client or create_order_client(settings)
        logger.info(f"✅ Agent Service: {agents.provider_name}")
        logger.info(f"✅ Order Service: {orders.provider_name}")

        # Downstream services may still be starting; accept calls fail with 503 until they answer
        if not await agents.health_check():
            logger.warning(f"⚠️ Agent service not reachable at {settings.agent_service_url}")
        if not await orders.health_check():
            logger.warning(f"⚠️ Order service not reachable at {settings.order_service_url}")

        app.state.orchestrator = OrderAcceptanceOrchestrator(orders=orders, agents=agents)
        try:
            yield
        finally:
            await agents.aclose()
            await orders.aclose()

    app = create_service_app(
        service_name=SERVICE_NAME,
        description="Restaurants and order acceptance",
        settings=settings,
        database_url=settings.restaurant_database_url,
        resources=service_clients,
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "fooddelivery.apps.restaurant_service:app",
        host=_settings.api_host,
        port=_settings.restaurant_service_port,
        reload=_settings.is_development,
        log_level="info",
    )
