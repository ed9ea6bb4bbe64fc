"""
Order Client Factory

Usage:
    from fooddelivery.services.orders import create_order_client

    orders = create_order_client(settings)
    order = await orders.get_order(order_id)
"""

import logging

from fooddelivery.core.config import Settings
from fooddelivery.services.orders.base import BaseOrderClient
from fooddelivery.services.orders.http import HttpOrderClient

logger = logging.getLogger(__name__)


def create_order_client(settings: Settings) -> BaseOrderClient:
    """
    Build the order client for the configured order service.

    The caller owns the returned client and must ``aclose()`` it.
    """
    logger.info(f"Order Client: Using HttpOrderClient ({settings.order_service_url})")
    return HttpOrderClient(settings.order_service_url, timeout=settings.http_timeout_seconds)


__all__ = [
    "create_order_client",
    "BaseOrderClient",
    "HttpOrderClient",
]
