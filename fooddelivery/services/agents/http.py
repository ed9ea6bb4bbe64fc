"""
HTTP Agent Client

Production implementation talking to the delivery agent service over
HTTP/JSON.

Status mapping:
    POST /agents/assign                         200 -> agent, 404 -> NoAgentAvailableError
    POST /agents/{id}/available                 200 -> agent, 404 -> AgentNotFoundError
    POST /agents/reservations/{key}/release     200 -> agent, 404 -> ReservationNotFoundError
    anything else                               -> UpstreamUnavailableError
"""

import logging
from typing import Optional

import httpx

from fooddelivery.core.errors import (
    AgentNotFoundError,
    NoAgentAvailableError,
    ReservationNotFoundError,
)
from fooddelivery.schemas import AssignAgentResponse, DeliveryAgentResponse
from fooddelivery.services.agents.base import BaseAgentClient
from fooddelivery.services.http import ServiceHttpClient, error_message

logger = logging.getLogger(__name__)


class HttpAgentClient(BaseAgentClient):
    """
    Delivery agent service client.

    Example:
        >>> client = HttpAgentClient("http://localhost:3003", timeout=5.0)
        >>> agent = await client.reserve_agent()
        >>> print(agent.id)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._http = ServiceHttpClient("agent-service", base_url, timeout, client)
        logger.info(f"HttpAgentClient initialized ({self._http.base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    async def reserve_agent(self, reservation_id: Optional[str] = None) -> DeliveryAgentResponse:
        body = {"reservationId": reservation_id} if reservation_id else None
        response = await self._http.request("POST", "/agents/assign", json=body)

        if response.status_code == 200:
            return self._http.parse(response, AssignAgentResponse).assigned_agent
        if response.status_code == 404:
            raise NoAgentAvailableError(error_message(response, "No available agents"))
        raise self._http.unexpected_status(response)

    async def release_agent(
        self,
        agent_id: str,
        reservation_id: Optional[str] = None,
    ) -> DeliveryAgentResponse:
        body = {"reservationId": reservation_id} if reservation_id else None
        response = await self._http.request("POST", f"/agents/{agent_id}/available", json=body)

        if response.status_code == 200:
            return self._http.parse(response, DeliveryAgentResponse)
        if response.status_code == 404:
            raise AgentNotFoundError(agent_id)
        raise self._http.unexpected_status(response)

    async def release_reservation(self, reservation_id: str) -> DeliveryAgentResponse:
        response = await self._http.request(
            "POST", f"/agents/reservations/{reservation_id}/release"
        )

        if response.status_code == 200:
            return self._http.parse(response, DeliveryAgentResponse)
        if response.status_code == 404:
            raise ReservationNotFoundError(reservation_id)
        raise self._http.unexpected_status(response)

    async def health_check(self) -> bool:
        return await self._http.health_check()

    async def aclose(self) -> None:
        await self._http.aclose()
