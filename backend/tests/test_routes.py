"""
Tests for API route endpoints.

Tests: order form submission, admin lifecycle endpoints, health, exports,
and the error envelope.
"""
import re

import pytest

from tests.conftest import BUSINESS_NUMBER


async def create(client, payload) -> dict:
    response = await client.post("/api/create-order", json=payload)
    assert response.status_code == 200
    return response.json()["order"]


class TestCreateOrderEndpoint:
    """Tests for POST /api/create-order."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_returns_payment_instructions(self, client, order_payload):
        response = await client.post("/api/create-order", json=order_payload)
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Order created successfully"
        order = data["order"]
        assert re.fullmatch(r"ECOSPIN-\d{4}", order["id"])
        assert order["status"] == "pending_payment"
        assert order["price"] == 249
        assert "createdAt" in order
        assert order["mpesaInstructions"] == {
            "amount": 249,
            "phoneNumber": BUSINESS_NUMBER,
            "reference": order["id"],
        }

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_price_as_string(self, client, order_payload):
        order = await create(client, {**order_payload, "price": "249"})
        assert order["price"] == 249

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        response = await client.post("/api/create-order", json={"service": "Ironing"})
        assert response.status_code == 400

        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "missing_fields"
        assert data["message"].startswith("Missing required fields")
        assert data["error"]["details"]["fields"] == ["price", "name", "phone", "address"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_bad_price(self, client, order_payload):
        response = await client.post("/api/create-order", json={**order_payload, "price": "cheap"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_numeric_text_fields_accepted(self, client, order_payload):
        order = await create(client, {**order_payload, "phone": 712345678, "name": 42})

        full = (await client.get(f"/api/order/{order['id']}")).json()["order"]
        assert full["customerPhone"] == "712345678"
        assert full["customerName"] == "42"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_malformed_body_uses_envelope(self, client, order_payload):
        response = await client.post("/api/create-order", json={**order_payload, "pickupScheduled": "maybe"})
        assert response.status_code == 400

        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "validation_error"
        assert "pickupScheduled" in data["message"]
        assert data["error"]["details"]["errors"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_non_json_body(self, client):
        response = await client.post(
            "/api/create-order",
            content="service=Ironing",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


class TestConfirmPaymentEndpoint:
    """Tests for POST /api/confirm-payment/{order_id}."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_confirm_then_reject_second(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.post(f"/api/confirm-payment/{order['id']}", json={"mpesaCode": "QAB12CD34"})
        assert response.status_code == 200
        paid = response.json()["order"]
        assert paid["status"] == "paid"
        assert paid["mpesaCode"] == "QAB12CD34"
        assert paid["paidAt"] is not None

        again = await client.post(f"/api/confirm-payment/{order['id']}", json={"mpesaCode": "QAB12CD34"})
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "already_paid"
        assert again.json()["message"] == "Order is already marked as paid"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_long_mpesa_code_stored_verbatim(self, client, order_payload):
        order = await create(client, order_payload)
        code = "QAB12CD34 Confirmed. Ksh249.00 sent to ECOSPIN LAUNDRY 0712345678"

        response = await client.post(f"/api/confirm-payment/{order['id']}", json={"mpesaCode": code})
        assert response.status_code == 200
        assert response.json()["order"]["mpesaCode"] == code

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_body_optional(self, client, order_payload):
        order = await create(client, order_payload)
        response = await client.post(f"/api/confirm-payment/{order['id']}")
        assert response.status_code == 200
        assert response.json()["order"]["mpesaCode"] is None

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_order(self, client):
        response = await client.post("/api/confirm-payment/ECOSPIN-0404", json={})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"


class TestOrderQueries:
    """Tests for GET /api/order/{id} and GET /api/orders."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_order(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.get(f"/api/order/{order['id']}")
        assert response.status_code == 200
        full = response.json()["order"]
        assert full["customerName"] == "Brian Otieno"
        assert full["customerPhone"] == "0733555666"
        assert full["adminNotes"] == ""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_unknown(self, client):
        response = await client.get("/api/order/ECOSPIN-0404")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_list_orders_with_summary(self, client, order_payload):
        first = await create(client, order_payload)
        second = await create(client, {**order_payload, "price": 600})
        await client.post(f"/api/confirm-payment/{first['id']}")

        response = await client.get("/api/orders")
        assert response.status_code == 200
        data = response.json()
        assert [o["id"] for o in data["orders"]] == [second["id"], first["id"]]
        assert data["summary"]["total"] == 2
        assert data["summary"]["paid"] == 1
        assert data["summary"]["totalRevenue"] == 249
        assert data["summary"]["pendingRevenue"] == 600


class TestStatusEndpoint:
    """Tests for PUT /api/order/{id}/status."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_with_notes(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.put(
            f"/api/order/{order['id']}/status",
            json={"status": "picked_up", "adminNotes": "Two bags", "notifyCustomer": True},
        )
        assert response.status_code == 200
        updated = response.json()["order"]
        assert updated["status"] == "picked_up"
        assert updated["adminNotes"] == "Two bags"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_invalid_status(self, client, order_payload):
        order = await create(client, order_payload)
        response = await client.put(f"/api/order/{order['id']}/status", json={"status": "shrunk"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_status"

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [5, None, ["paid"], {"value": "paid"}])
    async def test_non_string_status(self, client, order_payload, status):
        order = await create(client, order_payload)

        response = await client.put(f"/api/order/{order['id']}/status", json={"status": status})
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "invalid_status"

        unchanged = (await client.get(f"/api/order/{order['id']}")).json()["order"]
        assert unchanged["status"] == "pending_payment"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_missing_body(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.put(f"/api/order/{order['id']}/status")
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "validation_error"
        assert isinstance(data["message"], str)

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_order(self, client):
        response = await client.put("/api/order/ECOSPIN-0404/status", json={"status": "paid"})
        assert response.status_code == 404


class TestDeleteEndpoint:
    """Tests for DELETE /api/order/{id}."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_delete(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.delete(f"/api/order/{order['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Order deleted successfully"}

        assert (await client.get(f"/api/order/{order['id']}")).status_code == 404
        assert (await client.delete(f"/api/order/{order['id']}")).status_code == 404


class TestHealthEndpoint:
    """Tests for GET /api/health."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health(self, client, order_payload):
        await create(client, order_payload)

        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["mode"] == "manual_payments"
        assert data["business_number"] == BUSINESS_NUMBER
        assert data["email_configured"] is True
        assert data["orders_summary"]["total"] == 1
        assert data["persistence"] in ("JSON file storage", "database")
        assert "totalRevenue" not in data["orders_summary"]


class TestExportEndpoints:
    """Tests for GET /api/export/csv and GET /api/backup."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_csv(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.get("/api/export/csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert re.search(r'filename="ecospin_orders_\d{4}-\d{2}-\d{2}\.csv"', response.headers["content-disposition"])
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("Order ID,Customer Name")
        assert lines[1].startswith(f"{order['id']},Brian Otieno")

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_backup(self, client, order_payload):
        order = await create(client, order_payload)

        response = await client.get("/api/backup")
        assert response.status_code == 200
        assert "ecospin_backup_" in response.headers["content-disposition"]
        data = response.json()
        assert data["counter"] == 2
        assert data["version"] == "1.0"
        assert order["id"] in data["orders"]


class TestErrorEnvelope:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_endpoint(self, client):
        response = await client.get("/api/does-not-exist")
        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Endpoint not found"
