"""
Agent Client Factory

Usage:
    from fooddelivery.services.agents import create_agent_client

    agents = create_agent_client(settings)
    agent = await agents.reserve_agent()
"""

import logging

from fooddelivery.core.config import Settings
from fooddelivery.services.agents.base import BaseAgentClient
from fooddelivery.services.agents.http import HttpAgentClient

logger = logging.getLogger(__name__)


def create_agent_client(settings: Settings) -> BaseAgentClient:
    """
    Build the agent client for the configured agent service.

    The caller owns the returned client and must ``aclose()`` it.
    """
    logger.info(f"Agent Client: Using HttpAgentClient ({settings.agent_service_url})")
    return HttpAgentClient(settings.agent_service_url, timeout=settings.http_timeout_seconds)


__all__ = [
    "create_agent_client",
    "BaseAgentClient",
    "HttpAgentClient",
]
