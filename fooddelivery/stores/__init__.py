"""
Stores

Per-service persistence. Each store wraps one ``AsyncSession`` and every
public method runs as its own unit of work.
"""

from fooddelivery.stores.agents import AgentStore
from fooddelivery.stores.orders import OrderStore
from fooddelivery.stores.restaurants import RestaurantStore

__all__ = ["AgentStore", "OrderStore", "RestaurantStore"]
