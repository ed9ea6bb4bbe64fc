"""
Order Store

Record operations on ``orders`` and the status coordinator behind
``PATCH /api/orders/{id}``.

Status changes go through the transition table in ``fooddelivery.models``
and are written with a compare-and-swap on the previous status, so each
transition happens exactly once even when two requests race for it.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.core.errors import ConflictError, InvalidStateError, OrderNotFoundError
from fooddelivery.database import unit_of_work
from fooddelivery.models import Order, OrderStatus, ensure_transition

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "status",
    "delivery_agent_id",
    "user_rating",
    "agent_rating",
    "items",
})

RATING_FIELDS = ("user_rating", "agent_rating")


class OrderStore:
    """Order persistence bound to one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create_order(self, user_id: str, restaurant_id: str, items: list[str]) -> Order:
        order = Order(
            user_id=user_id,
            restaurant_id=restaurant_id,
            items=list(items),
            status=OrderStatus.PLACED,
        )
        async with unit_of_work(self._session):
            self._session.add(order)
        logger.info(f"Order {order.id} placed by user {user_id} at restaurant {restaurant_id}")
        return order

    async def get_order(self, order_id: str) -> Order:
        async with unit_of_work(self._session):
            order = await self._session.get(Order, order_id, populate_existing=True)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self, user_id: Optional[str] = None) -> Sequence[Order]:
        """Newest first, optionally for one user."""
        query = select(Order).order_by(Order.created_at.desc())
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        async with unit_of_work(self._session):
            result = await self._session.execute(query)
            return result.scalars().all()

    async def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        """
        Apply a partial update atomically.

        Args:
            order_id: Order to update
            fields: Column name -> new value. ``status`` may be an OrderStatus
                or any spelling accepted by ``OrderStatus.parse``.

        Raises:
            OrderNotFoundError: No such order
            InputValidationError: Unknown status string
            InvalidTransitionError: Status change not in the transition table
            InvalidStateError: Ratings were already recorded
            ConflictError: The status changed between read and write
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")

        values = dict(fields)
        if "status" in values:
            values["status"] = OrderStatus.parse(values["status"])

        async with unit_of_work(self._session):
            order = await self._session.get(Order, order_id, populate_existing=True)
            if order is None:
                raise OrderNotFoundError(order_id)

            query = update(Order).where(Order.id == order_id)

            if "status" in values:
                ensure_transition(order.status, values["status"])
                query = query.where(Order.status == order.status)

            for field in RATING_FIELDS:
                if values.get(field) is not None and getattr(order, field) is not None:
                    label = field.replace("_", " ")
                    raise InvalidStateError(f"Order {order_id} already has a {label}")

            if values:
                result = await self._session.execute(
                    query.values(**values).execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    logger.warning(f"Order {order_id} status changed concurrently")
                    raise ConflictError(f"Order {order_id} was modified concurrently")

            await self._session.refresh(order)

        if "status" in values:
            logger.info(f"Order {order_id} -> {order.status.value}")
        return order

    async def rate_order(self, order_id: str, user_rating: float, agent_rating: float) -> Order:
        """Record both ratings on a delivered order and move it to RATED."""
        return await self.update_order(
            order_id,
            {
                "status": OrderStatus.RATED,
                "user_rating": user_rating,
                "agent_rating": agent_rating,
            },
        )
