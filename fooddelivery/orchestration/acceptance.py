"""
Order Acceptance Orchestrator

Drives "restaurant accepts order O" across the order and delivery agent
services. There is no distributed transaction, so the workflow is a saga:

    1. fetch O                         (order service)
    2. require O.status == PLACED      (no side effects yet)
    3. reserve an agent under a fresh reservation key
                                       (agent service)
    4. set O.status = ACCEPTED, O.deliveryAgentId = agent.id
                                       (order service)

Compensation:
    - step 4 fails  -> release the agent once, keyed by the reservation,
                       then raise PartialAcceptanceFailure. A step 4 timeout
                       is first checked with one re-read of O, since the
                       update may have been applied.
    - step 3 is unreachable / times out -> the reservation may or may not
                       have committed; release by reservation key once and
                       re-raise the upstream error
    - a compensation that itself fails raises CompensationFailedError so the
      agent can be remediated

Because releases are keyed by the reservation, repeating a compensation can
never free an agent that has since been reserved for a different order.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fooddelivery.core.errors import (
    CompensationFailedError,
    InputValidationError,
    InvalidOrderStateError,
    PartialAcceptanceFailure,
    ReservationNotFoundError,
    UpstreamUnavailableError,
)
from fooddelivery.models import OrderStatus
from fooddelivery.schemas import DeliveryAgentResponse, OrderResponse
from fooddelivery.services.agents import BaseAgentClient
from fooddelivery.services.orders import BaseOrderClient

logger = logging.getLogger(__name__)


@dataclass
class AcceptanceResult:
    """Outcome of a successful acceptance."""
    order: OrderResponse
    agent: DeliveryAgentResponse
    reservation_id: str


class OrderAcceptanceOrchestrator:
    """
    Accepts orders on behalf of restaurants.

    The clients are injected; the orchestrator holds no other state and is
    safe to share between concurrent requests.

    Example:
        >>> orchestrator = OrderAcceptanceOrchestrator(orders=order_client, agents=agent_client)
        >>> result = await orchestrator.accept_order(order_id)
        >>> print(result.order.status, result.agent.id)
        ACCEPTED 7c9e...
    """

    ACCEPTABLE_STATUSES = frozenset({OrderStatus.PLACED})

    def __init__(self, orders: BaseOrderClient, agents: BaseAgentClient):
        self._orders = orders
        self._agents = agents

    async def accept_order(self, order_id: str) -> AcceptanceResult:
        """
        Accept an order and assign it a delivery agent.

        Raises:
            OrderNotFoundError: The order does not exist
            InvalidOrderStateError: The order is not PLACED
            NoAgentAvailableError: Nobody could be reserved; the order is untouched
            UpstreamUnavailableError: A service could not be reached before
                any agent was held
            PartialAcceptanceFailure: The order update failed; the agent was released
            CompensationFailedError: The order update failed and the agent
                could not be released
        """
        order = await self._orders.get_order(order_id)
        self._ensure_acceptable(order)

        reservation_id = uuid.uuid4().hex
        agent = await self._reserve(order_id, reservation_id)

        try:
            updated = await self._orders.update_order(
                order_id,
                {"status": OrderStatus.ACCEPTED.value, "deliveryAgentId": agent.id},
            )
        except UpstreamUnavailableError as exc:
            updated = await self._find_committed_update(order_id, agent.id)
            if updated is None:
                logger.error(f"Order {order_id}: update after reserving agent {agent.id} failed - {exc}")
                await self._compensate(order_id, agent.id, reservation_id)
                raise PartialAcceptanceFailure(agent.id, order_id) from exc
        except Exception as exc:
            # includes non-domain errors such as an unparseable response
            logger.error(f"Order {order_id}: update after reserving agent {agent.id} failed - {exc!r}")
            await self._compensate(order_id, agent.id, reservation_id)
            raise PartialAcceptanceFailure(agent.id, order_id) from exc

        logger.info(f"Order {order_id} accepted, agent {agent.id} assigned")
        return AcceptanceResult(order=updated, agent=agent, reservation_id=reservation_id)

    async def _find_committed_update(self, order_id: str, agent_id: str) -> Optional[OrderResponse]:
        """
        After an update timed out or came back unreadable, check once whether
        it landed anyway.

        Returns the order if it already references ``agent_id``; None if it
        does not or the order service is still unreachable.
        """
        try:
            order = await self._orders.get_order(order_id)
        except Exception as exc:
            logger.warning(f"Order {order_id}: re-read after timeout failed - {exc!r}")
            return None
        if order.delivery_agent_id == agent_id and order.status == OrderStatus.ACCEPTED.value:
            logger.info(f"Order {order_id}: update timed out but was applied")
            return order
        return None

    def _ensure_acceptable(self, order: OrderResponse) -> None:
        try:
            status = OrderStatus.parse(order.status)
        except InputValidationError:
            status = None
        if status not in self.ACCEPTABLE_STATUSES:
            logger.info(f"Order {order.id} not acceptable in status {order.status}")
            raise InvalidOrderStateError(order.id, order.status)

    async def _reserve(self, order_id: str, reservation_id: str) -> DeliveryAgentResponse:
        try:
            return await self._agents.reserve_agent(reservation_id)
        except UpstreamUnavailableError:
            # The claim may have committed even though we never saw the answer
            logger.warning(f"Order {order_id}: reservation {reservation_id} outcome unknown, releasing")
            await self._release_unknown_reservation(order_id, reservation_id)
            raise

    async def _release_unknown_reservation(self, order_id: str, reservation_id: str) -> None:
        try:
            await self._agents.release_reservation(reservation_id)
        except ReservationNotFoundError:
            logger.info(f"Order {order_id}: reservation {reservation_id} never committed")
        except Exception as exc:
            logger.error(f"Order {order_id}: could not release reservation {reservation_id} - {exc}")
            raise CompensationFailedError(None, order_id, reservation_id) from exc

    async def _compensate(self, order_id: str, agent_id: str, reservation_id: str) -> None:
        try:
            await self._agents.release_agent(agent_id, reservation_id=reservation_id)
        except Exception as exc:
            logger.error(
                f"Order {order_id}: COMPENSATION FAILED, agent {agent_id} still reserved "
                f"(reservation {reservation_id}) - {exc}"
            )
            raise CompensationFailedError(agent_id, order_id, reservation_id) from exc
        logger.info(f"Order {order_id}: agent {agent_id} released after failed update")
