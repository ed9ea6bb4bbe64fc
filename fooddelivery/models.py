"""
SQLAlchemy Database Models

Each table lives in the database of the service that owns it:
    - delivery_agents: delivery agent service
    - orders: order service
    - restaurants: restaurant service

Cross-service references (order -> agent, order -> restaurant) are plain id
columns, never foreign keys.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, Integer, String

from fooddelivery.core.errors import InputValidationError, InvalidTransitionError
from fooddelivery.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # Python-side so that ordering by created_at has sub-second resolution
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    DELIVERED = "DELIVERED"
    RATED = "RATED"

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        """
        Normalize an incoming status string.

        Matching is case-insensitive and the legacy ``pending`` spelling is
        read as PLACED.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().upper()
        normalized = STATUS_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            valid = [s.value for s in cls]
            raise InputValidationError(f"Invalid status '{value}'. Options: {valid}")

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in ORDER_TRANSITIONS[self]


STATUS_ALIASES = {
    "PENDING": "PLACED",
}

# No back-edges and no self-loops
ORDER_TRANSITIONS = {
    OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RATED}),
    OrderStatus.RATED: frozenset(),
}


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not current.can_transition_to(target):
        raise InvalidTransitionError(current.value, target.value)


class DeliveryAgent(Base):
    """
    Delivery agent owned by the delivery agent service.

    ``reservation_id`` is the idempotency key of the reservation currently
    holding the agent; it is cleared on release.
    """
    __tablename__ = "delivery_agents"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    phone_number = Column(String(20), nullable=False)
    is_available = Column(Boolean, default=True, nullable=False, index=True)
    reservation_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    def __repr__(self):
        state = "available" if self.is_available else "busy"
        return f"<DeliveryAgent {self.id} - {self.name} - {state}>"


class Order(Base):
    """Customer order owned by the order service."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)
    restaurant_id = Column(String(36), nullable=False, index=True)
    items = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True
    )
    delivery_agent_id = Column(String(36), nullable=True)

    # Set once, after delivery
    user_rating = Column(Float, nullable=True)
    agent_rating = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=_utcnow)

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value}>"


class Restaurant(Base):
    """Restaurant reference data owned by the restaurant service."""
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    is_online = Column(Boolean, default=False, nullable=False)
    opening_hour = Column(Integer, nullable=False)
    closing_hour = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.name}>"


__all__ = [
    "DeliveryAgent",
    "Order",
    "OrderStatus",
    "ORDER_TRANSITIONS",
    "Restaurant",
    "ensure_transition",
]
