"""
Pydantic Schemas for Request/Response Validation

Wire format is JSON with camelCase keys (``phoneNumber``, ``isAvailable``,
``deliveryAgentId``); Python code uses the snake_case field names. The same
response schemas are used by the HTTP clients to parse what the other
services return.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# DELIVERY AGENTS
# =============================================================================

class DeliveryAgentCreate(CamelModel):
    """Request schema for registering a delivery agent."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Ravi Kumar"])
    phone_number: str = Field(..., min_length=1, max_length=20, examples=["+91-98450-12345"])


class ReservationRequest(CamelModel):
    """Optional body of assign/release calls carrying the idempotency key."""
    reservation_id: Optional[str] = Field(None, min_length=1, max_length=64)


class DeliveryAgentResponse(CamelModel):
    id: str
    name: str
    phone_number: str
    is_available: bool
    created_at: datetime


class AssignAgentResponse(CamelModel):
    assigned_agent: DeliveryAgentResponse


# =============================================================================
# ORDERS
# =============================================================================

class OrderCreate(CamelModel):
    """Request schema for placing an order."""
    user_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)
    items: List[str] = Field(..., min_length=1, examples=[["menu-item-1", "menu-item-2"]])


class OrderUpdate(CamelModel):
    """Partial update; only the fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    status: Optional[str] = None
    delivery_agent_id: Optional[str] = None
    user_rating: Optional[float] = Field(None, ge=0, le=5)
    agent_rating: Optional[float] = Field(None, ge=0, le=5)
    items: Optional[List[str]] = Field(None, min_length=1)


class OrderStatusUpdate(CamelModel):
    status: str = Field(..., min_length=1)


class AssignDeliveryAgent(CamelModel):
    delivery_agent_id: str = Field(..., min_length=1)


class RateOrderRequest(CamelModel):
    user_rating: float = Field(..., ge=0, le=5)
    agent_rating: float = Field(..., ge=0, le=5)


class OrderResponse(CamelModel):
    id: str
    user_id: str
    restaurant_id: str
    items: List[str]
    status: str
    delivery_agent_id: Optional[str] = None
    user_rating: Optional[float] = None
    agent_rating: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v):
        if isinstance(v, Enum):
            return v.value
        return v


class AcceptOrderResponse(CamelModel):
    message: str
    order: OrderResponse
    assigned_agent: DeliveryAgentResponse


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Spice Route"])
    is_online: bool = False
    opening_hour: int = Field(..., ge=0, le=23, examples=[9])
    closing_hour: int = Field(..., ge=0, le=23, examples=[22])


class RestaurantUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    is_online: Optional[bool] = None
    opening_hour: Optional[int] = Field(None, ge=0, le=23)
    closing_hour: Optional[int] = Field(None, ge=0, le=23)


class RestaurantResponse(CamelModel):
    id: str
    name: str
    is_online: bool
    opening_hour: int
    closing_hour: int
    created_at: datetime


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    database: str
    timestamp: datetime
