"""Tests for the order acceptance workflow and its compensation."""

import asyncio

import httpx
import pytest

from fooddelivery.core.errors import (
    CompensationFailedError,
    ConflictError,
    InvalidOrderStateError,
    NoAgentAvailableError,
    OrderNotFoundError,
    PartialAcceptanceFailure,
    UpstreamUnavailableError,
)
from fooddelivery.orchestration import OrderAcceptanceOrchestrator
from fooddelivery.services.orders import HttpOrderClient


@pytest.fixture
def orchestrator(agent_client, order_client):
    return OrderAcceptanceOrchestrator(orders=order_client, agents=agent_client)


def accept(orchestrator, order_id):
    return asyncio.run(orchestrator.accept_order(order_id))


class TestAcceptOrder:
    def test_happy_path(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()

        result = accept(orchestrator, order.id)

        assert result.order.status == "ACCEPTED"
        assert result.order.delivery_agent_id == agent.id
        assert result.agent.id == agent.id
        assert result.agent.is_available is False
        assert agent.reservation_id == result.reservation_id
        assert agent_client.release_calls == []

    def test_assigns_longest_idle_agent(self, orchestrator, agent_client, order_client):
        first = agent_client.add_agent("first")
        agent_client.add_agent("second")
        order = order_client.add_order()

        assert accept(orchestrator, order.id).agent.id == first.id

    def test_pending_order_is_acceptable(self, orchestrator, agent_client, order_client):
        agent_client.add_agent("Asha")
        order = order_client.add_order(status="pending")

        assert accept(orchestrator, order.id).order.status == "ACCEPTED"

    def test_unknown_order(self, orchestrator, agent_client):
        agent = agent_client.add_agent("Asha")

        with pytest.raises(OrderNotFoundError):
            accept(orchestrator, "missing")
        assert agent.is_available is True

    @pytest.mark.parametrize("status", ["ACCEPTED", "DELIVERED", "RATED", "garbage"])
    def test_order_not_placed(self, orchestrator, agent_client, order_client, status):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order(status=status)

        with pytest.raises(InvalidOrderStateError):
            accept(orchestrator, order.id)
        assert agent.is_available is True
        assert order.status == status

    def test_no_agent_available(self, orchestrator, agent_client, order_client):
        agent_client.add_agent("busy", is_available=False)
        order = order_client.add_order()

        with pytest.raises(NoAgentAvailableError):
            accept(orchestrator, order.id)
        assert order.status == "PLACED"
        assert order.delivery_agent_id is None

    def test_second_acceptance_is_rejected(self, orchestrator, agent_client, order_client):
        agent_client.add_agent("a")
        second = agent_client.add_agent("b")
        order = order_client.add_order()

        accept(orchestrator, order.id)
        with pytest.raises(InvalidOrderStateError):
            accept(orchestrator, order.id)
        assert second.is_available is True


class TestCompensation:
    def test_failed_update_releases_agent(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        order_client.update_error = ConflictError("Order was modified concurrently")

        with pytest.raises(PartialAcceptanceFailure) as exc_info:
            accept(orchestrator, order.id)

        assert not isinstance(exc_info.value, CompensationFailedError)
        assert exc_info.value.agent_id == agent.id
        assert exc_info.value.order_id == order.id
        assert agent.is_available is True
        assert agent_client.release_calls == [("agent", agent.id)]

    def test_failed_release_is_reported(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        order_client.update_error = ConflictError("Order was modified concurrently")
        agent_client.fail_releases = True

        with pytest.raises(CompensationFailedError) as exc_info:
            accept(orchestrator, order.id)

        assert exc_info.value.agent_id == agent.id
        assert exc_info.value.reservation_id == agent.reservation_id
        assert agent.is_available is False
        assert len(agent_client.release_calls) == 1

    def test_update_timeout_that_was_not_applied(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        order_client.update_error = UpstreamUnavailableError("order-service", "timed out")

        with pytest.raises(PartialAcceptanceFailure):
            accept(orchestrator, order.id)
        assert agent.is_available is True

    def test_update_timeout_that_was_applied(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        order_client.update_applies_then_times_out = True

        result = accept(orchestrator, order.id)

        assert result.order.status == "ACCEPTED"
        assert result.order.delivery_agent_id == agent.id
        assert agent.is_available is False
        assert agent_client.release_calls == []

    def test_reserve_timeout_before_commit(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        agent_client.reserve_timeout = True

        with pytest.raises(UpstreamUnavailableError):
            accept(orchestrator, order.id)
        assert agent.is_available is True
        assert order.status == "PLACED"
        assert len(agent_client.release_calls) == 1

    def test_reserve_timeout_after_commit(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        agent_client.reserve_commits_then_times_out = True

        with pytest.raises(UpstreamUnavailableError):
            accept(orchestrator, order.id)
        assert agent.is_available is True
        assert agent.reservation_id is None
        assert order.status == "PLACED"

    def test_reserve_timeout_and_release_unreachable(self, orchestrator, agent_client, order_client):
        agent_client.add_agent("Asha")
        order = order_client.add_order()
        agent_client.reserve_commits_then_times_out = True
        agent_client.fail_releases = True

        with pytest.raises(CompensationFailedError) as exc_info:
            accept(orchestrator, order.id)
        assert exc_info.value.agent_id is None
        assert exc_info.value.reservation_id

    def test_unreadable_update_response_releases_agent(self, agent_client):
        placed = {
            "id": "order-1",
            "userId": "user-1",
            "restaurantId": "rest-1",
            "items": ["Dosa"],
            "status": "PLACED",
            "createdAt": "2024-01-01T00:00:00Z",
        }

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=placed)
            return httpx.Response(
                200, text="<html>proxy error</html>", headers={"content-type": "text/html"}
            )

        http = httpx.AsyncClient(base_url="http://orders", transport=httpx.MockTransport(handler))
        orders = HttpOrderClient("http://orders", timeout=1.0, client=http)
        orchestrator = OrderAcceptanceOrchestrator(orders=orders, agents=agent_client)
        agent = agent_client.add_agent("Asha")

        with pytest.raises(PartialAcceptanceFailure) as exc_info:
            accept(orchestrator, "order-1")

        assert not isinstance(exc_info.value, CompensationFailedError)
        assert exc_info.value.agent_id == agent.id
        assert agent.is_available is True
        assert agent.reservation_id is None
        assert agent_client.release_calls == [("agent", agent.id)]

    def test_unexpected_update_error_releases_agent(self, orchestrator, agent_client, order_client):
        agent = agent_client.add_agent("Asha")
        order = order_client.add_order()
        order_client.update_error = RuntimeError("connection pool closed")

        with pytest.raises(PartialAcceptanceFailure) as exc_info:
            accept(orchestrator, order.id)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert agent.is_available is True
        assert agent_client.release_calls == [("agent", agent.id)]
