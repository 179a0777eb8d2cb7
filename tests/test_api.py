"""
HTTP tests for the purchase, gate and admin routes.
"""
import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from conftest import client_signature, count_rows, fetch, webhook_body, webhook_signature
from shared.database.models import Order, PendingRegistration, Ticket
from services.ticket_validation.services.ticket_service import TicketValidationService


async def _create_order(client) -> str:
    response = await client.post("/api/v1/purchases/orders", json={
        "amount": 500,
        "name": "A. Singh",
        "email": "a@x.com",
        "eventTitle": "Conf2024",
    })
    assert response.status_code == 200
    return response.json()["order_id"]


async def _verify(client, order_id: str, payment_id: str, **overrides):
    body = {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": client_signature(order_id, payment_id),
        "eventTitle": "Conf2024",
        "name": "A. Singh",
        "email": "a@x.com",
        "formData": {"tshirt": "L"},
    }
    body.update(overrides)
    return await client.post("/api/v1/purchases/verify-payment", json=body)


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_ready_pings_database(self, client) -> None:
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "connected"}


class TestPurchaseRoutes:

    @pytest.mark.asyncio
    async def test_create_order(self, client, database, razorpay) -> None:
        response = await client.post("/api/v1/purchases/orders", json={
            "amount": 500,
            "name": "A. Singh",
            "email": "A@X.com",
            "eventTitle": "Conf2024",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["order_id"] == razorpay.orders[0]["id"]
        assert data["amount"] == 500
        assert data["currency"] == "INR"
        assert data["key_id"] == "rzp_test_key_id"
        assert razorpay.orders[0]["notes"] == {
            "name": "A. Singh", "email": "a@x.com", "event_title": "Conf2024",
        }
        assert await count_rows(database, Order) == 1

    @pytest.mark.asyncio
    async def test_create_order_rejects_non_positive_amount(self, client) -> None:
        response = await client.post("/api/v1/purchases/orders", json={
            "amount": 0, "name": "A", "email": "a@x.com", "eventTitle": "Conf2024",
        })
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_verify_payment_is_idempotent(self, client, database, dispatcher) -> None:
        order_id = await _create_order(client)

        first = await _verify(client, order_id, "P1")
        second = await _verify(client, order_id, "P1")

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["ticket_id"].startswith("TICKET-")
        assert second.json()["ticket_id"] == first.json()["ticket_id"]
        assert await count_rows(database, Ticket) == 1
        assert len(dispatcher.sent) == 1

    @pytest.mark.asyncio
    async def test_verify_payment_bad_signature(self, client, database) -> None:
        response = await _verify(client, "order_O1", "P1", razorpay_signature="0" * 64)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_SIGNATURE"
        assert await count_rows(database, Ticket) == 0

    @pytest.mark.asyncio
    async def test_verify_payment_missing_event(self, client, database) -> None:
        response = await _verify(client, "order_unknown", "P1", eventTitle=None)

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "code": "MISSING_REQUIRED_FIELD",
            "message": "Missing required field: event_title",
        }
        assert await count_rows(database, Ticket) == 0

    @pytest.mark.asyncio
    async def test_webhook_after_client_confirmation(self, client, database, dispatcher) -> None:
        order_id = await _create_order(client)
        ticket_id = (await _verify(client, order_id, "P1")).json()["ticket_id"]

        body = webhook_body("P1", order_id=order_id, email="a@x.com")
        response = await client.post(
            "/api/v1/purchases/webhook",
            content=body,
            headers={"X-Razorpay-Signature": webhook_signature(body), "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "ticket_id": ticket_id, "created": False}
        assert await count_rows(database, Ticket) == 1
        assert len(dispatcher.sent) == 1

    @pytest.mark.asyncio
    async def test_webhook_tampered_signature(self, client, database) -> None:
        body = webhook_body("P1", notes={"email": "a@x.com", "event_title": "Conf2024"})
        signature = webhook_signature(body)

        response = await client.post(
            "/api/v1/purchases/webhook",
            content=body + b" ",
            headers={"X-Razorpay-Signature": signature},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_SIGNATURE"
        assert await count_rows(database, Ticket) == 0

    @pytest.mark.asyncio
    async def test_webhook_without_signature_header(self, client) -> None:
        body = webhook_body("P1")
        response = await client.post("/api/v1/purchases/webhook", content=body)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_webhook_ignores_other_events(self, client) -> None:
        body = webhook_body("P1", event="refund.created")
        response = await client.post(
            "/api/v1/purchases/webhook",
            content=body,
            headers={"X-Razorpay-Signature": webhook_signature(body)},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    @pytest.mark.asyncio
    async def test_pre_registration_then_webhook(self, client, database) -> None:
        response = await client.post("/api/v1/purchases/pre-registrations", json={
            "eventTitle": "Conf2024",
            "name": "A. Singh",
            "email": "a@x.com",
            "formData": {"tshirt": "L"},
        })
        assert response.status_code == 201
        assert response.json()["status"] == "pending_payment"

        body = webhook_body("P2", notes={"email": "a@x.com", "event_title": "Conf2024"})
        response = await client.post(
            "/api/v1/purchases/webhook",
            content=body,
            headers={"X-Razorpay-Signature": webhook_signature(body)},
        )

        assert response.json()["created"] is True
        assert await count_rows(database, PendingRegistration) == 1

    @pytest.mark.race
    @pytest.mark.asyncio
    async def test_simultaneous_confirmation_and_webhook_with_pre_registration(
        self, client, database, dispatcher
    ) -> None:
        response = await client.post("/api/v1/purchases/pre-registrations", json={
            "eventTitle": "Conf2024",
            "name": "A. Singh",
            "email": "a@x.com",
            "formData": {"tshirt": "L"},
        })
        registration_id = response.json()["registration_id"]
        order_id = await _create_order(client)
        body = webhook_body("P1", order_id=order_id, email="a@x.com")

        verify_response, webhook_response = await asyncio.gather(
            _verify(client, order_id, "P1"),
            client.post(
                "/api/v1/purchases/webhook",
                content=body,
                headers={"X-Razorpay-Signature": webhook_signature(body)},
            ),
        )

        assert verify_response.status_code == 200
        assert webhook_response.status_code == 200
        assert webhook_response.json()["ticket_id"] == verify_response.json()["ticket_id"]
        assert await count_rows(database, Ticket) == 1
        assert len(dispatcher.sent) == 1
        stored = await fetch(database, PendingRegistration, registration_id)
        assert stored.status == "completed"
        assert stored.ticket_id == verify_response.json()["ticket_id"]


class TestGateRoutes:

    async def _ticket_id(self, client) -> str:
        order_id = await _create_order(client)
        return (await _verify(client, order_id, "P1")).json()["ticket_id"]

    @pytest.mark.asyncio
    async def test_check_in_requires_token(self, client) -> None:
        response = await client.post("/api/v1/tickets/validate/TICKET-1-ABC?day=1")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_check_in_rejects_non_staff(self, client) -> None:
        from shared.auth.jwt_handler import create_access_token

        token = create_access_token({"sub": "user-1", "role": "user"})
        response = await client.post(
            "/api/v1/tickets/validate/TICKET-1-ABC?day=1",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_check_in_twice(self, client, scanner_headers) -> None:
        ticket_id = await self._ticket_id(client)
        url = f"/api/v1/tickets/validate/{ticket_id}?day=1"

        first = await client.post(url, headers=scanner_headers)
        second = await client.post(url, headers=scanner_headers)

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["message"] == "Check-in successful"
        assert first.json()["name"] == "A. Singh"
        assert second.status_code == 200
        assert second.json()["success"] is False
        assert second.json()["outcome"] == "already_checked_in"
        assert second.json()["message"] == "Already checked-in"

    @pytest.mark.asyncio
    async def test_check_in_unknown_ticket(self, client, scanner_headers) -> None:
        response = await client.post("/api/v1/tickets/validate/nonexistent?day=1", headers=scanner_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == {"code": "TICKET_NOT_FOUND", "message": "Invalid Ticket"}

    @pytest.mark.asyncio
    async def test_check_in_bad_day(self, client, scanner_headers) -> None:
        response = await client.post("/api/v1/tickets/validate/nonexistent?day=3", headers=scanner_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DAY_SELECTOR"

    @pytest.mark.asyncio
    async def test_get_ticket(self, client, scanner_headers) -> None:
        ticket_id = await self._ticket_id(client)

        response = await client.get(f"/api/v1/tickets/{ticket_id}", headers=scanner_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["ticket_id"] == ticket_id
        assert data["form_data"] == {"tshirt": "L"}
        assert data["status_day_1"] == "pending"

    @pytest.mark.asyncio
    async def test_database_errors_are_generic(self, client, scanner_headers, monkeypatch) -> None:
        async def broken(db, ticket_id):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TicketValidationService, "get_ticket", staticmethod(broken))

        response = await client.get("/api/v1/tickets/TICKET-1-ABC", headers=scanner_headers)

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "STORE_UNAVAILABLE"
        assert "disk" not in response.text


class TestAdminRoutes:

    @pytest.mark.asyncio
    async def test_registrations_most_recent_first(self, client, admin_headers) -> None:
        order_id = await _create_order(client)
        first = (await _verify(client, order_id, "P1")).json()["ticket_id"]
        second = (await _verify(client, order_id, "P2", name="B. Rao")).json()["ticket_id"]

        response = await client.get("/api/v1/admin/registrations", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert [r["ticket_id"] for r in data["registrations"]] == [second, first]
        assert data["summary"]["total"] == 2

    @pytest.mark.asyncio
    async def test_registrations_require_admin(self, client, scanner_headers) -> None:
        response = await client.get("/api/v1/admin/registrations", headers=scanner_headers)
        assert response.status_code == 403
