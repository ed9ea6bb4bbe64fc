"""
Agent Client Abstract Base Class

Defines how other services talk to the delivery agent service. The order
acceptance orchestrator depends only on this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fooddelivery.schemas import DeliveryAgentResponse


class BaseAgentClient(ABC):
    """
    Abstract base class for delivery agent clients.

    Errors are reported with the platform exceptions:
        - NoAgentAvailableError: nobody could be reserved
        - AgentNotFoundError / ReservationNotFoundError: nothing to release
        - UpstreamUnavailableError: the service could not be reached
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the client implementation name (e.g. "http")."""
        pass

    @abstractmethod
    async def reserve_agent(self, reservation_id: Optional[str] = None) -> DeliveryAgentResponse:
        """
        Reserve the longest-idle available agent.

        Args:
            reservation_id: Idempotency key recorded with the reservation

        Returns:
            DeliveryAgentResponse: The reserved agent
        """
        pass

    @abstractmethod
    async def release_agent(
        self,
        agent_id: str,
        reservation_id: Optional[str] = None,
    ) -> DeliveryAgentResponse:
        """
        Make an agent available again.

        With ``reservation_id`` the release only applies while the agent
        still holds that reservation.
        """
        pass

    @abstractmethod
    async def release_reservation(self, reservation_id: str) -> DeliveryAgentResponse:
        """Release whichever agent holds ``reservation_id``."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the agent service.

        Returns:
            bool: True if the service is reachable and operational
        """
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
