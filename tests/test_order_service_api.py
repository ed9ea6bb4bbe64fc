"""Tests for the order service API."""

import pytest
from fastapi.testclient import TestClient

from fooddelivery.apps.order_service import create_app


@pytest.fixture
def api_client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


def place(api_client, user_id="user-1"):
    response = api_client.post(
        "/api/orders",
        json={"userId": user_id, "restaurantId": "rest-1", "items": ["Dosa", "Chai"]},
    )
    assert response.status_code == 201
    return response.json()


def set_status(api_client, order_id, status):
    return api_client.patch(f"/api/orders/{order_id}/status", json={"status": status})


class TestCreateOrder:
    def test_create(self, api_client):
        order = place(api_client)
        assert order["status"] == "PLACED"
        assert order["userId"] == "user-1"
        assert order["items"] == ["Dosa", "Chai"]
        assert order["deliveryAgentId"] is None

    def test_missing_items(self, api_client):
        response = api_client.post("/api/orders", json={"userId": "u", "restaurantId": "r"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_empty_items(self, api_client):
        response = api_client.post(
            "/api/orders", json={"userId": "u", "restaurantId": "r", "items": []}
        )
        assert response.status_code == 400


class TestReadOrders:
    def test_get_order(self, api_client):
        order = place(api_client)
        response = api_client.get(f"/api/orders/{order['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == order["id"]

    def test_get_unknown_order(self, api_client):
        response = api_client.get("/api/orders/missing")
        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    def test_list_by_user(self, api_client):
        place(api_client, "alice")
        place(api_client, "bob")

        response = api_client.get("/api/orders", params={"userId": "alice"})

        assert response.status_code == 200
        assert [o["userId"] for o in response.json()] == ["alice"]
        assert len(api_client.get("/api/orders").json()) == 2


class TestUpdateOrder:
    def test_accept_with_agent(self, api_client):
        order = place(api_client)
        response = api_client.patch(
            f"/api/orders/{order['id']}",
            json={"status": "ACCEPTED", "deliveryAgentId": "agent-1"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ACCEPTED"
        assert response.json()["deliveryAgentId"] == "agent-1"

    def test_invalid_transition(self, api_client):
        order = place(api_client)
        response = api_client.patch(f"/api/orders/{order['id']}", json={"status": "DELIVERED"})
        assert response.status_code == 409
        assert response.json() == {"error": "Invalid status transition: PLACED -> DELIVERED"}

    def test_accepting_twice_conflicts(self, api_client):
        order = place(api_client)
        assert set_status(api_client, order["id"], "ACCEPTED").status_code == 200
        assert set_status(api_client, order["id"], "ACCEPTED").status_code == 409

    def test_unknown_status(self, api_client):
        order = place(api_client)
        response = api_client.patch(f"/api/orders/{order['id']}", json={"status": "COOKING"})
        assert response.status_code == 400

    def test_null_status(self, api_client):
        order = place(api_client)
        response = api_client.patch(f"/api/orders/{order['id']}", json={"status": None})
        assert response.status_code == 400
        assert response.json() == {"error": "status cannot be null"}

    def test_unknown_field(self, api_client):
        order = place(api_client)
        response = api_client.patch(f"/api/orders/{order['id']}", json={"userId": "someone"})
        assert response.status_code == 400

    def test_unknown_order(self, api_client):
        response = api_client.patch("/api/orders/missing", json={"status": "ACCEPTED"})
        assert response.status_code == 404

    def test_assign_agent(self, api_client):
        order = place(api_client)
        response = api_client.patch(
            f"/api/orders/{order['id']}/assign-agent", json={"deliveryAgentId": "agent-9"}
        )
        assert response.status_code == 200
        assert response.json()["deliveryAgentId"] == "agent-9"
        assert response.json()["status"] == "PLACED"

    def test_status_endpoint_requires_status(self, api_client):
        order = place(api_client)
        response = api_client.patch(f"/api/orders/{order['id']}/status", json={})
        assert response.status_code == 400


class TestRateOrder:
    def deliver(self, api_client):
        order = place(api_client)
        set_status(api_client, order["id"], "ACCEPTED")
        set_status(api_client, order["id"], "DELIVERED")
        return order

    def test_rate(self, api_client):
        order = self.deliver(api_client)
        response = api_client.post(
            f"/api/orders/{order['id']}/rate", json={"userRating": 4, "agentRating": 5}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "RATED"
        assert data["userRating"] == 4
        assert data["agentRating"] == 5

    def test_rate_before_delivery(self, api_client):
        order = place(api_client)
        response = api_client.post(
            f"/api/orders/{order['id']}/rate", json={"userRating": 4, "agentRating": 5}
        )
        assert response.status_code == 409

    def test_rating_out_of_range(self, api_client):
        order = self.deliver(api_client)
        response = api_client.post(
            f"/api/orders/{order['id']}/rate", json={"userRating": 6, "agentRating": 5}
        )
        assert response.status_code == 400
