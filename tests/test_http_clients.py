"""Tests for the HTTP clients of the agent and order services."""

import asyncio
import json

import httpx
import pytest

from fooddelivery.core.errors import (
    AgentNotFoundError,
    ConflictError,
    InputValidationError,
    NoAgentAvailableError,
    OrderNotFoundError,
    ReservationNotFoundError,
    UpstreamUnavailableError,
)
from fooddelivery.services.agents import HttpAgentClient
from fooddelivery.services.orders import HttpOrderClient

AGENT = {
    "id": "agent-1",
    "name": "Asha",
    "phoneNumber": "555-0100",
    "isAvailable": False,
    "createdAt": "2024-01-01T00:00:00Z",
}

ORDER = {
    "id": "order-1",
    "userId": "user-1",
    "restaurantId": "rest-1",
    "items": ["Dosa"],
    "status": "ACCEPTED",
    "deliveryAgentId": "agent-1",
    "createdAt": "2024-01-01T00:00:00Z",
}


def agent_client(handler):
    http = httpx.AsyncClient(base_url="http://agents", transport=httpx.MockTransport(handler))
    return HttpAgentClient("http://agents", timeout=1.0, client=http)


def order_client(handler):
    http = httpx.AsyncClient(base_url="http://orders", transport=httpx.MockTransport(handler))
    return HttpOrderClient("http://orders", timeout=1.0, client=http)


def run(coro):
    return asyncio.run(coro)


class TestAgentClientReserve:
    def test_reserve_sends_key_and_parses_agent(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"assignedAgent": AGENT})

        agent = run(agent_client(handler).reserve_agent("key-1"))

        assert seen == {"path": "/agents/assign", "body": {"reservationId": "key-1"}}
        assert agent.id == "agent-1"
        assert agent.phone_number == "555-0100"
        assert agent.is_available is False

    def test_no_agent(self):
        def handler(request):
            return httpx.Response(404, json={"error": "No available agents"})

        with pytest.raises(NoAgentAvailableError) as exc_info:
            run(agent_client(handler).reserve_agent("key-1"))
        assert exc_info.value.message == "No available agents"

    def test_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Internal server error"})

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            run(agent_client(handler).reserve_agent())
        assert exc_info.value.upstream_status == 500

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            run(agent_client(handler).reserve_agent())
        assert exc_info.value.reason == "timed out"

    def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamUnavailableError):
            run(agent_client(handler).reserve_agent())

    def test_unreadable_success_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy error</html>")

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            run(agent_client(handler).reserve_agent("key-1"))
        assert exc_info.value.reason == "malformed response body"
        assert exc_info.value.upstream_status == 200

    def test_success_body_missing_agent(self):
        def handler(request):
            return httpx.Response(200, json={"assignedAgent": {"id": "agent-1"}})

        with pytest.raises(UpstreamUnavailableError):
            run(agent_client(handler).reserve_agent("key-1"))

    def test_redirect_loop(self):
        def handler(request):
            raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

        with pytest.raises(UpstreamUnavailableError):
            run(agent_client(handler).reserve_agent("key-1"))


class TestAgentClientRelease:
    def test_keyed_release(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=dict(AGENT, isAvailable=True))

        agent = run(agent_client(handler).release_agent("agent-1", reservation_id="key-1"))

        assert seen == {"path": "/agents/agent-1/available", "body": {"reservationId": "key-1"}}
        assert agent.is_available is True

    def test_unknown_agent(self):
        def handler(request):
            return httpx.Response(404, json={"error": "Agent not found"})

        with pytest.raises(AgentNotFoundError):
            run(agent_client(handler).release_agent("missing"))

    def test_release_reservation(self):
        def handler(request):
            assert request.url.path == "/agents/reservations/key-1/release"
            return httpx.Response(200, json=dict(AGENT, isAvailable=True))

        assert run(agent_client(handler).release_reservation("key-1")).is_available is True

    def test_unknown_reservation(self):
        def handler(request):
            return httpx.Response(404, json={"error": "No agent holds reservation key-1"})

        with pytest.raises(ReservationNotFoundError):
            run(agent_client(handler).release_reservation("key-1"))


class TestOrderClient:
    def test_get_order(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/api/orders/order-1"
            return httpx.Response(200, json=ORDER)

        order = run(order_client(handler).get_order("order-1"))
        assert order.status == "ACCEPTED"
        assert order.delivery_agent_id == "agent-1"

    def test_get_unknown_order(self):
        def handler(request):
            return httpx.Response(404, json={"error": "Order not found"})

        with pytest.raises(OrderNotFoundError):
            run(order_client(handler).get_order("missing"))

    def test_update_sends_camel_case_patch(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=ORDER)

        run(order_client(handler).update_order(
            "order-1", {"status": "ACCEPTED", "deliveryAgentId": "agent-1"}
        ))
        assert seen == {
            "method": "PATCH",
            "body": {"status": "ACCEPTED", "deliveryAgentId": "agent-1"},
        }

    def test_update_conflict(self):
        def handler(request):
            return httpx.Response(409, json={"error": "Invalid status transition: ACCEPTED -> ACCEPTED"})

        with pytest.raises(ConflictError) as exc_info:
            run(order_client(handler).update_order("order-1", {"status": "ACCEPTED"}))
        assert "ACCEPTED -> ACCEPTED" in exc_info.value.message

    def test_update_rejected(self):
        def handler(request):
            return httpx.Response(400, json={"error": "Invalid status"})

        with pytest.raises(InputValidationError):
            run(order_client(handler).update_order("order-1", {"status": "nope"}))

    def test_update_timeout(self):
        def handler(request):
            raise httpx.WriteTimeout("timed out", request=request)

        with pytest.raises(UpstreamUnavailableError):
            run(order_client(handler).update_order("order-1", {"status": "ACCEPTED"}))

    def test_update_with_html_success_body(self):
        def handler(request):
            return httpx.Response(
                200, text="<html>proxy error</html>", headers={"content-type": "text/html"}
            )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            run(order_client(handler).update_order("order-1", {"status": "ACCEPTED"}))
        assert exc_info.value.upstream_status == 200

    def test_get_order_with_wrong_shape(self):
        def handler(request):
            return httpx.Response(200, json={"orders": [ORDER]})

        with pytest.raises(UpstreamUnavailableError):
            run(order_client(handler).get_order("order-1"))

    def test_undecodable_body(self):
        def handler(request):
            raise httpx.DecodingError("Error -3 while decompressing data", request=request)

        with pytest.raises(UpstreamUnavailableError):
            run(order_client(handler).update_order("order-1", {"status": "ACCEPTED"}))

    def test_health_check(self):
        def handler(request):
            return httpx.Response(200 if request.url.path == "/health" else 404)

        assert run(order_client(handler).health_check()) is True

    def test_health_check_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert run(order_client(handler).health_check()) is False
