"""
Celery Tasks
Background remediation for agents left reserved by a failed compensation.

When the restaurant service cannot release an agent after a partial order
acceptance, it queues ``release_agent_reservation``. The task retries the
keyed release against the delivery agent service until it succeeds or the
retry budget runs out. Because the release is keyed by the reservation, a
late retry never frees an agent that has since been reserved for another
order.
"""

import logging
import time
from typing import Optional

import httpx

from fooddelivery.celery_worker import celery_app
from fooddelivery.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@celery_app.task(
    bind=True,
    max_retries=settings.compensation_max_retries,
    default_retry_delay=5,
    autoretry_for=(httpx.HTTPError,),
    retry_backoff=True
)
def release_agent_reservation(
    self,
    agent_id: Optional[str],
    reservation_id: str,
    order_id: Optional[str] = None,
) -> dict:
    """
    Release a delivery agent still held by ``reservation_id``.

    Args:
        agent_id: Agent to release, or None when only the reservation key is
            known (the reserve call itself timed out)
        reservation_id: Key the agent was reserved under
        order_id: Order whose acceptance failed, for logging

    Returns:
        dict: Result of the release
    """
    task_id = self.request.id
    start_time = time.time()
    logger.info(f"📋 Task {task_id}: releasing reservation {reservation_id} (order {order_id})")

    if agent_id:
        path = f"/agents/{agent_id}/available"
        body = {"reservationId": reservation_id}
    else:
        path = f"/agents/reservations/{reservation_id}/release"
        body = None

    response = httpx.post(
        f"{settings.agent_service_url}{path}",
        json=body,
        timeout=settings.http_timeout_seconds,
    )
    elapsed = round(time.time() - start_time, 3)

    if response.status_code == 404:
        # Agent deleted, or the reservation never committed / was already released
        logger.warning(f"⚠️ Task {task_id}: nothing to release for reservation {reservation_id}")
        return {
            'success': False,
            'reservation_id': reservation_id,
            'message': 'Nothing holds this reservation',
            'task_id': task_id,
            'processing_time_seconds': elapsed,
        }

    # 5xx and other failures are retried by autoretry_for
    response.raise_for_status()

    agent = response.json()
    logger.info(f"✅ Task {task_id}: agent {agent.get('id')} released in {elapsed}s")
    return {
        'success': True,
        'reservation_id': reservation_id,
        'agent_id': agent.get('id'),
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }
