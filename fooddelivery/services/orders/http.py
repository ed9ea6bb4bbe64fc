"""
HTTP Order Client

Talks to the order service over HTTP/JSON.

Status mapping:
    GET   /api/orders/{id}    200 -> order, 404 -> OrderNotFoundError
    PATCH /api/orders/{id}    200 -> order, 404 -> OrderNotFoundError,
                              400 -> InputValidationError, 409 -> ConflictError
    anything else             -> UpstreamUnavailableError
"""

import logging
from typing import Any, Optional

import httpx

from fooddelivery.core.errors import ConflictError, InputValidationError, OrderNotFoundError
from fooddelivery.schemas import OrderResponse
from fooddelivery.services.http import ServiceHttpClient, error_message
from fooddelivery.services.orders.base import BaseOrderClient

logger = logging.getLogger(__name__)


class HttpOrderClient(BaseOrderClient):
    """Order service client."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._http = ServiceHttpClient("order-service", base_url, timeout, client)
        logger.info(f"HttpOrderClient initialized ({self._http.base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    async def get_order(self, order_id: str) -> OrderResponse:
        response = await self._http.request("GET", f"/api/orders/{order_id}")

        if response.status_code == 200:
            return self._http.parse(response, OrderResponse)
        if response.status_code == 404:
            raise OrderNotFoundError(order_id)
        raise self._http.unexpected_status(response)

    async def update_order(self, order_id: str, fields: dict[str, Any]) -> OrderResponse:
        response = await self._http.request("PATCH", f"/api/orders/{order_id}", json=fields)

        if response.status_code == 200:
            return self._http.parse(response, OrderResponse)
        if response.status_code == 404:
            raise OrderNotFoundError(order_id)
        if response.status_code == 400:
            raise InputValidationError(error_message(response, "Order update rejected"))
        if response.status_code == 409:
            raise ConflictError(error_message(response, "Order update conflicted"))
        raise self._http.unexpected_status(response)

    async def health_check(self) -> bool:
        return await self._http.health_check()

    async def aclose(self) -> None:
        await self._http.aclose()
