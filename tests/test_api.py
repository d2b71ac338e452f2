"""Tests for the FastAPI routes."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

ADDRESS = "221B Baker Street, London"


def as_user(user_id, role="customer"):
    return {"X-User-Id": str(user_id), "X-User-Role": role}


ADMIN = as_user(100, "admin")


@pytest.fixture
def products(make_product):
    return {
        "a": make_product(name="A", price="10.00", stock=10),
        "b": make_product(name="B", price="25.00", stock=5),
    }


@pytest.fixture
def filled_cart(client, products):
    client.post("/cart/items", json={"product_id": products["a"], "quantity": 2}, headers=as_user(1))
    client.post("/cart/items", json={"product_id": products["b"], "quantity": 1}, headers=as_user(1))
    return products


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestCartRoutes:
    def test_identity_required(self, client):
        response = client.get("/cart/")
        assert response.status_code == 422

    def test_empty_cart(self, client):
        response = client.get("/cart/", headers=as_user(1))
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["item_count"] == 0

    def test_add_and_cap(self, client, products):
        for expected in (2, 4):
            response = client.post(
                "/cart/items", json={"product_id": products["a"], "quantity": 2}, headers=as_user(1)
            )
            assert response.status_code == 200
            assert response.json()["items"][0]["quantity"] == expected

        response = client.post(
            "/cart/items", json={"product_id": products["a"], "quantity": 2}, headers=as_user(1)
        )
        assert response.status_code == 409
        assert "Maximum 5" in response.json()["detail"]

    def test_quantity_bounds_validated(self, client, products):
        response = client.post(
            "/cart/items", json={"product_id": products["a"], "quantity": 6}, headers=as_user(1)
        )
        assert response.status_code == 422

    def test_unknown_product(self, client):
        response = client.post("/cart/items", json={"product_id": 999, "quantity": 1}, headers=as_user(1))
        assert response.status_code == 404

    def test_insufficient_stock(self, client, make_product):
        pid = make_product(stock=0)
        response = client.post("/cart/items", json={"product_id": pid, "quantity": 1}, headers=as_user(1))
        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["detail"]

    def test_redis_down_returns_503(self, client, products, redis_client, monkeypatch):
        def down(*args, **kwargs):
            raise RedisConnectionError("redis down")

        monkeypatch.setattr(redis_client, "set", down)

        response = client.post(
            "/cart/items", json={"product_id": products["a"], "quantity": 1}, headers=as_user(1)
        )
        assert response.status_code == 503
        assert "Temporary storage failure" in response.json()["detail"]

    def test_update_remove_clear(self, client, filled_cart):
        cart = client.get("/cart/", headers=as_user(1)).json()
        assert cart["total"] == "45.00"
        line_a = next(i for i in cart["items"] if i["product_id"] == filled_cart["a"])

        response = client.put(f"/cart/items/{line_a['id']}", json={"quantity": 3}, headers=as_user(1))
        assert response.status_code == 200
        assert response.json()["total"] == "55.00"

        response = client.delete(f"/cart/items/{line_a['id']}", headers=as_user(1))
        assert response.status_code == 200
        assert response.json()["total"] == "25.00"

        response = client.delete("/cart/", headers=as_user(1))
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.json()["total"] == "0.00"

    def test_validate(self, client, filled_cart):
        response = client.get("/cart/validate", headers=as_user(1))
        assert response.status_code == 200
        assert response.json()["valid"] is True

        response = client.get("/cart/validate", headers=as_user(2))
        assert response.json() == {"valid": False, "reason": "Cart is empty", "cart": None}


class TestOrderRoutes:
    def test_checkout(self, client, filled_cart):
        response = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1))
        assert response.status_code == 201
        data = response.json()
        assert data["total_amount"] == "45.00"
        assert data["status"] == "PENDING"
        assert data["payment_status"] == "PENDING"
        assert len(data["items"]) == 2

        assert client.get("/cart/", headers=as_user(1)).json()["items"] == []

    def test_checkout_empty_cart(self, client):
        response = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1))
        assert response.status_code == 400
        assert "Cart is empty" in response.json()["detail"]

    def test_checkout_short_address(self, client, filled_cart):
        response = client.post("/orders/", json={"shipping_address": "abc"}, headers=as_user(1))
        assert response.status_code == 422

    def test_checkout_padded_short_address(self, client, filled_cart):
        response = client.post("/orders/", json={"shipping_address": "   abc   "}, headers=as_user(1))
        assert response.status_code == 422

    def test_lifecycle(self, client, filled_cart):
        order_id = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1)).json()["id"]

        response = client.patch(f"/orders/{order_id}/payment", json={"payment_status": "COMPLETED"}, headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

        response = client.patch(f"/orders/{order_id}/status", json={"status": "SHIPPED"}, headers=ADMIN)
        assert response.json()["status"] == "SHIPPED"

        response = client.post(f"/orders/{order_id}/cancel", headers=as_user(1))
        assert response.status_code == 400
        assert "cannot be cancelled" in response.json()["detail"]

        response = client.patch(f"/orders/{order_id}/status", json={"status": "PENDING"}, headers=ADMIN)
        assert response.status_code == 400

    def test_status_change_requires_admin(self, client, filled_cart):
        order_id = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1)).json()["id"]

        response = client.patch(f"/orders/{order_id}/status", json={"status": "CONFIRMED"}, headers=as_user(1))
        assert response.status_code == 403

    def test_cancel(self, client, filled_cart):
        order_id = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1)).json()["id"]

        assert client.post(f"/orders/{order_id}/cancel", headers=as_user(2)).status_code == 403

        response = client.post(f"/orders/{order_id}/cancel", headers=as_user(1))
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["payment_status"] == "REFUNDED"

        assert client.post("/orders/999/cancel", headers=as_user(1)).status_code == 404

    def test_get_and_list(self, client, filled_cart):
        order_id = client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1)).json()["id"]

        assert client.get(f"/orders/{order_id}", headers=as_user(1)).status_code == 200
        assert client.get(f"/orders/{order_id}", headers=as_user(2)).status_code == 403
        assert client.get(f"/orders/{order_id}", headers=ADMIN).status_code == 200

        page = client.get("/orders/", params={"page": 1, "limit": 5}, headers=as_user(1)).json()
        assert page["total_count"] == 1
        assert page["current_page"] == 1
        assert page["total_pages"] == 1
        assert page["has_next"] is False
        assert page["has_prev"] is False

        assert client.get("/orders/all", headers=as_user(1)).status_code == 403
        assert client.get("/orders/all", headers=ADMIN).json()["total_count"] == 1

    def test_stats(self, client, filled_cart):
        client.post("/orders/", json={"shipping_address": ADDRESS}, headers=as_user(1))

        response = client.get("/orders/stats", headers=ADMIN)
        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 1
        assert data["total_revenue"] == "45.00"
        assert data["orders_by_status"]["PENDING"] == 1
