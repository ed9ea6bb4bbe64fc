"""
Order Client Abstract Base Class

Defines how the restaurant service reads and updates orders owned by the
order service.
"""

from abc import ABC, abstractmethod
from typing import Any

from fooddelivery.schemas import OrderResponse


class BaseOrderClient(ABC):
    """
    Abstract base class for order service clients.

    Errors are reported with the platform exceptions:
        - OrderNotFoundError: no such order
        - InvalidTransitionError / ConflictError: the update was rejected
        - InputValidationError: the update payload was rejected
        - UpstreamUnavailableError: the service could not be reached
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> OrderResponse:
        pass

    @abstractmethod
    async def update_order(self, order_id: str, fields: dict[str, Any]) -> OrderResponse:
        """
        Apply a partial update.

        Args:
            order_id: Order to update
            fields: camelCase wire fields, e.g. ``{"status": "ACCEPTED"}``
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
