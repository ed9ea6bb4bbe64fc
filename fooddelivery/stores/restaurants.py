"""
Restaurant Store

Read-mostly reference data consulted by the user gateway before an order is
placed.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fooddelivery.core.errors import RestaurantNotFoundError
from fooddelivery.database import unit_of_work
from fooddelivery.models import Restaurant

logger = logging.getLogger(__name__)


class RestaurantStore:
    """Restaurant persistence bound to one session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create_restaurant(
        self,
        name: str,
        opening_hour: int,
        closing_hour: int,
        is_online: bool = False,
    ) -> Restaurant:
        restaurant = Restaurant(
            name=name,
            is_online=is_online,
            opening_hour=opening_hour,
            closing_hour=closing_hour,
        )
        async with unit_of_work(self._session):
            self._session.add(restaurant)
        logger.info(f"Restaurant {restaurant.id} created ({name})")
        return restaurant

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        async with unit_of_work(self._session):
            restaurant = await self._session.get(Restaurant, restaurant_id, populate_existing=True)
        if restaurant is None:
            raise RestaurantNotFoundError(restaurant_id)
        return restaurant

    async def list_restaurants(self, current_hour: Optional[int] = None) -> Sequence[Restaurant]:
        """All restaurants, or only those online and open at ``current_hour``."""
        query = select(Restaurant).order_by(Restaurant.created_at)
        if current_hour is not None:
            query = query.where(
                Restaurant.is_online.is_(True),
                Restaurant.opening_hour <= current_hour,
                Restaurant.closing_hour >= current_hour,
            )
        async with unit_of_work(self._session):
            result = await self._session.execute(query)
            return result.scalars().all()

    async def update_restaurant(self, restaurant_id: str, fields: dict[str, Any]) -> Restaurant:
        async with unit_of_work(self._session):
            restaurant = await self._session.get(Restaurant, restaurant_id)
            if restaurant is None:
                raise RestaurantNotFoundError(restaurant_id)
            for key, value in fields.items():
                setattr(restaurant, key, value)
        return restaurant
