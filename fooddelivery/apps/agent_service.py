"""
Delivery Agent Service

Owns the delivery agent pool and is the only place an agent's availability
changes.

Endpoints:
    GET  /agents                                - Available agents, oldest first
    GET  /agents/all                            - Every agent
    GET  /agents/{agent_id}                     - One agent
    POST /agents                                - Register an agent
    POST /agents/assign                         - Reserve the longest-idle agent
    POST /agents/{agent_id}/available           - Release an agent
    POST /agents/reservations/{key}/release     - Release by reservation key
    GET  /health                                - Health check
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, status
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.apps.common import create_service_app
from fooddelivery.core.config import Settings, get_settings, setup_logging
from fooddelivery.database import get_db
from fooddelivery.schemas import (
    AssignAgentResponse,
    DeliveryAgentCreate,
    DeliveryAgentResponse,
    ErrorResponse,
    ReservationRequest,
)
from fooddelivery.stores import AgentStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "delivery-agent-service"

router = APIRouter(prefix="/agents", tags=["Agents"])


def get_agent_store(db: AsyncSession = Depends(get_db)) -> AgentStore:
    return AgentStore(db)


# =============================================================================
# QUERIES
# =============================================================================

@router.get("", response_model=List[DeliveryAgentResponse])
async def list_available_agents(store: AgentStore = Depends(get_agent_store)):
    """Agents that can take an order right now, longest idle first."""
    return await store.list_agents(available_only=True)


@router.get("/all", response_model=List[DeliveryAgentResponse])
async def list_all_agents(store: AgentStore = Depends(get_agent_store)):
    return await store.list_agents()


@router.get(
    "/{agent_id}",
    response_model=DeliveryAgentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_agent(agent_id: str, store: AgentStore = Depends(get_agent_store)):
    return await store.get_agent(agent_id)


# =============================================================================
# COMMANDS
# =============================================================================

@router.post("", response_model=DeliveryAgentResponse, status_code=status.HTTP_201_CREATED)
async def register_agent(
    payload: DeliveryAgentCreate,
    store: AgentStore = Depends(get_agent_store),
):
    """Register a new agent. New agents start out available."""
    return await store.create_agent(payload.name, payload.phone_number)


@router.post(
    "/assign",
    response_model=AssignAgentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def assign_agent(
    payload: Optional[ReservationRequest] = None,
    store: AgentStore = Depends(get_agent_store),
):
    """
    Reserve the available agent with the oldest ``createdAt``.

    At most one concurrent caller wins any given agent. Losers, and callers
    arriving when nobody is free, get 404 and may retry.
    """
    reservation_id = payload.reservation_id if payload else None
    agent = await store.reserve_agent(reservation_id)
    return AssignAgentResponse(assigned_agent=DeliveryAgentResponse.model_validate(agent))


@router.post(
    "/{agent_id}/available",
    response_model=DeliveryAgentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def release_agent(
    agent_id: str,
    payload: Optional[ReservationRequest] = None,
    store: AgentStore = Depends(get_agent_store),
):
    """
    Mark an agent available again.

    With a ``reservationId`` the release only applies while the agent still
    holds that reservation. Releasing an already available agent is a no-op.
    """
    reservation_id = payload.reservation_id if payload else None
    return await store.release_agent(agent_id, reservation_id=reservation_id)


@router.post(
    "/reservations/{reservation_id}/release",
    response_model=DeliveryAgentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def release_reservation(
    reservation_id: str,
    store: AgentStore = Depends(get_agent_store),
):
    """Release whichever agent holds ``reservation_id``; 404 if none does."""
    return await store.release_reservation(reservation_id)


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = create_service_app(
        service_name=SERVICE_NAME,
        description="Delivery agent pool and reservations",
        settings=settings,
        database_url=settings.agent_database_url,
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "fooddelivery.apps.agent_service:app",
        host=_settings.api_host,
        port=_settings.agent_service_port,
        reload=_settings.is_development,
        log_level="info",
    )
