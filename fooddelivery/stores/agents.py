"""
Delivery Agent Store

Record operations on ``delivery_agents`` plus the reservation primitive used
by ``POST /agents/assign``.

Reservation is select-then-conditional-update inside one unit of work:

    1. pick the available agent with the oldest ``created_at``
    2. UPDATE ... SET is_available = false
       WHERE id = <picked> AND is_available = true

If step 2 touches zero rows another caller claimed the agent between the two
statements and the reservation fails with ``NoAgentAvailableError``. No
in-process lock is involved; the database row is the only arbiter.
"""

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.core.errors import (
    AgentNotFoundError,
    NoAgentAvailableError,
    ReservationNotFoundError,
)
from fooddelivery.database import unit_of_work
from fooddelivery.models import DeliveryAgent

logger = logging.getLogger(__name__)


class AgentStore:
    """Delivery agent persistence bound to one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    # =========================================================================
    # RECORD OPERATIONS
    # =========================================================================

    async def create_agent(self, name: str, phone_number: str) -> DeliveryAgent:
        agent = DeliveryAgent(name=name, phone_number=phone_number, is_available=True)
        async with unit_of_work(self._session):
            self._session.add(agent)
        logger.info(f"Agent {agent.id} registered ({agent.name})")
        return agent

    async def get_agent(self, agent_id: str) -> DeliveryAgent:
        async with unit_of_work(self._session):
            agent = await self._session.get(DeliveryAgent, agent_id, populate_existing=True)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def list_agents(self, available_only: bool = False) -> Sequence[DeliveryAgent]:
        query = select(DeliveryAgent).order_by(DeliveryAgent.created_at, DeliveryAgent.id)
        if available_only:
            query = query.where(DeliveryAgent.is_available.is_(True))
        async with unit_of_work(self._session):
            result = await self._session.execute(query)
            return result.scalars().all()

    # =========================================================================
    # RESERVATION
    # =========================================================================

    async def reserve_agent(self, reservation_id: Optional[str] = None) -> DeliveryAgent:
        """
        Atomically claim the longest-idle available agent.

        Args:
            reservation_id: Idempotency key recorded on the agent; generated
                when omitted. A later keyed release only frees the agent while
                it still holds this key.

        Returns:
            The reserved agent, refreshed after the claim.

        Raises:
            NoAgentAvailableError: Nobody is available, or the selected agent
                was claimed concurrently. Callers may retry.
        """
        reservation_id = reservation_id or uuid.uuid4().hex

        async with unit_of_work(self._session):
            agent = await self._find_oldest_available()
            if agent is None:
                raise NoAgentAvailableError()

            if not await self._claim(agent.id, reservation_id):
                logger.warning(f"Agent {agent.id} was claimed concurrently")
                raise NoAgentAvailableError("Agent just got assigned")

            await self._session.refresh(agent)

        logger.info(f"Agent {agent.id} reserved (reservation {reservation_id})")
        return agent

    async def release_agent(
        self,
        agent_id: str,
        reservation_id: Optional[str] = None,
    ) -> DeliveryAgent:
        """
        Mark an agent available again.

        Without ``reservation_id`` the release is unconditional. With it, the
        agent is only released while it still holds that reservation, so a
        repeated or late compensation never frees an agent that has since been
        reserved by somebody else. Either way the current agent is returned.
        """
        query = update(DeliveryAgent).where(DeliveryAgent.id == agent_id)
        if reservation_id is not None:
            query = query.where(DeliveryAgent.reservation_id == reservation_id)
        query = query.values(is_available=True, reservation_id=None).execution_options(
            synchronize_session=False
        )

        async with unit_of_work(self._session):
            result = await self._session.execute(query)
            agent = await self._session.get(DeliveryAgent, agent_id, populate_existing=True)
            if agent is None:
                raise AgentNotFoundError(agent_id)

        if result.rowcount:
            logger.info(f"Agent {agent_id} released")
        else:
            logger.info(f"Agent {agent_id} no longer holds reservation {reservation_id}; nothing to release")
        return agent

    async def release_reservation(self, reservation_id: str) -> DeliveryAgent:
        """Release whichever agent holds ``reservation_id``."""
        async with unit_of_work(self._session):
            result = await self._session.execute(
                select(DeliveryAgent).where(DeliveryAgent.reservation_id == reservation_id)
            )
            agent = result.scalar_one_or_none()
            if agent is None:
                raise ReservationNotFoundError(reservation_id)

            await self._session.execute(
                update(DeliveryAgent)
                .where(
                    DeliveryAgent.id == agent.id,
                    DeliveryAgent.reservation_id == reservation_id,
                )
                .values(is_available=True, reservation_id=None)
                .execution_options(synchronize_session=False)
            )
            await self._session.refresh(agent)

        logger.info(f"Reservation {reservation_id} released (agent {agent.id})")
        return agent

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _find_oldest_available(self) -> Optional[DeliveryAgent]:
        result = await self._session.execute(
            select(DeliveryAgent)
            .where(DeliveryAgent.is_available.is_(True))
            .order_by(DeliveryAgent.created_at, DeliveryAgent.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _claim(self, agent_id: str, reservation_id: str) -> bool:
        """Conditional update; True only if this call flipped the flag."""
        result = await self._session.execute(
            update(DeliveryAgent)
            .where(
                DeliveryAgent.id == agent_id,
                DeliveryAgent.is_available.is_(True),
            )
            .values(is_available=False, reservation_id=reservation_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
