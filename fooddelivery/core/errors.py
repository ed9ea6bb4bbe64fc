"""
Domain Exceptions

One hierarchy shared by all services. Each exception carries the HTTP status
it is rendered with by ``fooddelivery.core.handlers``; routes that expose a
different contract for the same failure translate it explicitly.
"""

from typing import Optional


class FoodDeliveryError(Exception):
    """Base exception for all platform errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(FoodDeliveryError):
    """Raised when a record does not exist."""

    status_code = 404


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__("Agent not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class RestaurantNotFoundError(NotFoundError):
    def __init__(self, restaurant_id: str):
        self.restaurant_id = restaurant_id
        super().__init__("Restaurant not found")


class ReservationNotFoundError(NotFoundError):
    """Raised when no agent holds the given reservation key."""

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"No agent holds reservation {reservation_id}")


# =============================================================================
# CONFLICTS & STATE
# =============================================================================

class ConflictError(FoodDeliveryError):
    """Raised when a conditional write loses a race."""

    status_code = 409


class NoAgentAvailableError(ConflictError):
    """
    Raised when no agent could be reserved.

    Covers both "nobody is available" and "the selected agent was claimed by
    a concurrent caller". Callers may retry.
    """

    status_code = 404

    def __init__(self, message: str = "No available agents"):
        super().__init__(message)


class InvalidStateError(FoodDeliveryError):
    """Raised when a record is not in a state that allows the operation."""

    status_code = 409


class InvalidOrderStateError(InvalidStateError):
    """Raised when an order cannot be accepted in its current status."""

    status_code = 400

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__("Order not in pending/placed state")


class InvalidTransitionError(InvalidStateError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current} -> {target}")


# =============================================================================
# CROSS-SERVICE FAILURES
# =============================================================================

class UpstreamUnavailableError(FoodDeliveryError):
    """Raised when a downstream service call fails, times out or returns 5xx."""

    status_code = 503

    def __init__(
        self,
        service: str,
        reason: str,
        upstream_status: Optional[int] = None,
    ):
        self.service = service
        self.reason = reason
        self.upstream_status = upstream_status
        super().__init__(f"{service} unavailable: {reason}")


class PartialAcceptanceFailure(FoodDeliveryError):
    """
    Raised when an agent was reserved but the order update failed.

    The reservation has been compensated (released) by the time this is
    raised.
    """

    status_code = 500

    def __init__(self, agent_id: str, order_id: str, message: Optional[str] = None):
        self.agent_id = agent_id
        self.order_id = order_id
        super().__init__(
            message or f"Order {order_id} was not updated; agent {agent_id} released"
        )


class CompensationFailedError(PartialAcceptanceFailure):
    """
    Raised when releasing a reserved agent failed after a partial acceptance.

    The agent may still be marked unavailable and needs remediation.
    """

    def __init__(
        self,
        agent_id: Optional[str],
        order_id: str,
        reservation_id: Optional[str] = None,
    ):
        self.reservation_id = reservation_id
        super().__init__(
            agent_id,
            order_id,
            f"Order {order_id} was not updated and agent "
            f"{agent_id or 'reservation ' + str(reservation_id)} could not be released",
        )


# =============================================================================
# VALIDATION
# =============================================================================

class InputValidationError(FoodDeliveryError):
    """Raised when required input is missing or malformed."""

    status_code = 400
