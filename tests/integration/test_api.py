"""Integration tests for API endpoints"""

import re
import uuid
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from pressing_gateway.domain.exceptions import NotificationError


def _create(client: TestClient, payload: dict, **overrides) -> dict:
    response = client.post("/v1/deposits", json={**payload, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def _installment_payload(payload: dict) -> dict:
    """100 XAF over 3 weekly installments"""
    return {
        **payload,
        "items": [{"name": "Couette", "category": "WASHING", "quantity": 1, "unit_price_cents": 100}],
        "is_installment_payment": True,
        "installment_count": 3,
        "installment_interval_days": 7,
    }


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "pressing-gateway"}


def test_metrics_endpoint(client: TestClient, deposit_payload: dict):
    """Test Prometheus metrics endpoint"""
    _create(client, deposit_payload)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "pressing_deposit_created_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_pricing_quote(client: TestClient):
    """Live totals with an installment preview"""
    response = client.post(
        "/v1/pricing/quote",
        json={
            "items": [
                {"name": "Chemise", "quantity": 2, "unit_price_cents": 1500},
                {"name": "Costume", "quantity": 1, "unit_price_cents": 800},
            ],
            "discount_cents": 300,
            "installment_count": 3,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["subtotal_cents"] == 3800
    assert data["total_cents"] == 3500
    assert data["remaining_cents"] == 3500
    assert data["installment_amount_cents"] == 1167
    assert data["last_installment_amount_cents"] == 1166
    assert data["formatted"]["total"] == "3\u202f500\u00a0FCFA"


def test_pricing_quote_invalid_plan(client: TestClient):
    response = client.post(
        "/v1/pricing/quote",
        json={"items": [{"name": "Chemise", "quantity": 1, "unit_price_cents": 1500}], "installment_count": 1},
    )
    assert response.status_code == 422


@pytest.mark.parametrize(
    "item",
    [
        {"name": "Chemise", "quantity": 0, "unit_price_cents": 1500},
        {"name": "Chemise", "quantity": 2, "unit_price_cents": 0},
        {"name": "Chemise", "quantity": -3, "unit_price_cents": 1500},
        {"name": "Chemise", "quantity": 1, "unit_price_cents": -100},
        {"name": " ", "quantity": 1, "unit_price_cents": 1500},
    ],
)
def test_pricing_quote_rejects_invalid_items(client: TestClient, item: dict):
    """Lines that deposit creation would refuse are refused before pricing"""
    response = client.post("/v1/pricing/quote", json={"items": [item]})
    assert response.status_code == 422


def test_pricing_quote_rejects_unknown_currency(client: TestClient):
    response = client.post(
        "/v1/pricing/quote",
        json={"items": [{"name": "Chemise", "quantity": 1, "unit_price_cents": 1500}], "currency_code": "CHF"},
    )
    assert response.status_code == 422


def test_create_deposit(client: TestClient, deposit_payload: dict):
    """POST /v1/deposits prices the items and starts NEW/PENDING"""
    data = _create(client, deposit_payload)

    assert re.fullmatch(r"DEP-\d{8}-[0-9A-F]{6}", data["deposit_number"])
    assert data["version"] == 1
    assert data["subtotal_cents"] == 3800
    assert data["total_cents"] == 3800
    assert data["remaining_cents"] == 3800
    assert data["status"] == "NEW"
    assert data["payment_status"] == "PENDING"
    assert data["currency_code"] == "XAF"
    assert [item["category_label"] for item in data["items"]] == ["Lavage", "Nettoyage à sec"]


def test_create_deposit_with_installments(client: TestClient, deposit_payload: dict):
    """Deposit and its installment batch are created together"""
    data = _create(client, _installment_payload(deposit_payload))

    assert [inst["amount_cents"] for inst in data["installments"]] == [34, 34, 32]
    assert all(inst["status"] == "PENDING" for inst in data["installments"])
    assert data["financed_cents"] == 100

    fetched = client.get(f"/v1/deposits/{data['deposit_id']}").json()
    assert [inst["installment_id"] for inst in fetched["installments"]] == [
        inst["installment_id"] for inst in data["installments"]
    ]


def test_create_deposit_default_interval(client: TestClient, deposit_payload: dict):
    payload = _installment_payload(deposit_payload)
    del payload["installment_interval_days"]

    data = _create(client, payload)
    assert data["installment_interval_days"] == 7


def test_create_deposit_validation_errors(client: TestClient, deposit_payload: dict):
    """Invalid forms are rejected with 422 and nothing is stored"""
    assert client.post("/v1/deposits", json={**deposit_payload, "items": []}).status_code == 422
    assert client.post("/v1/deposits", json={**deposit_payload, "discount_cents": 5000}).status_code == 422
    assert client.post("/v1/deposits", json={**deposit_payload, "paid_cents": 5000}).status_code == 422
    assert client.post("/v1/deposits", json={**deposit_payload, "customer_phone": ""}).status_code == 422

    assert client.get("/v1/deposits").json()["total"] == 0


def test_get_deposit_not_found(client: TestClient):
    response = client.get(f"/v1/deposits/{uuid.uuid4()}")
    assert response.status_code == 404


def test_list_deposits(client: TestClient, deposit_payload: dict):
    _create(client, deposit_payload)
    _create(client, deposit_payload, agency_name="Agence Bonamoussadi", paid_cents=3800)

    response = client.get("/v1/deposits")
    assert response.status_code == 200
    assert response.json()["total"] == 2

    paid = client.get("/v1/deposits", params={"payment_status": "PAID"}).json()
    assert paid["total"] == 1
    assert paid["deposits"][0]["agency_name"] == "Agence Bonamoussadi"

    akwa = client.get("/v1/deposits", params={"agency_name": "Agence Akwa"}).json()
    assert akwa["total"] == 1


def test_status_transitions(client: TestClient, deposit_payload: dict):
    """One step at a time, version bumps on every change"""
    deposit = _create(client, deposit_payload)
    url = f"/v1/deposits/{deposit['deposit_id']}/status"

    response = client.post(url, json={"status": "CONFIRMED"})
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"
    assert response.json()["version"] == 2

    response = client.post(url, json={"status": "DELIVERED"})
    assert response.status_code == 422

    for status in ["IN_PROGRESS", "READY", "DELIVERED"]:
        assert client.post(url, json={"status": status}).status_code == 200

    response = client.post(url, json={"status": "IN_PROGRESS"})
    assert response.status_code == 422
    assert client.get(f"/v1/deposits/{deposit['deposit_id']}").json()["status"] == "DELIVERED"


def test_stale_version_conflict(client: TestClient, deposit_payload: dict):
    """A write based on an old snapshot gets 409 and changes nothing"""
    deposit = _create(client, deposit_payload)
    deposit_id = deposit["deposit_id"]

    first = client.post(f"/v1/deposits/{deposit_id}/payments", json={"amount_cents": 1000, "expected_version": 1})
    assert first.status_code == 200

    second = client.post(f"/v1/deposits/{deposit_id}/payments", json={"amount_cents": 1000, "expected_version": 1})
    assert second.status_code == 409

    current = client.get(f"/v1/deposits/{deposit_id}").json()
    assert current["paid_cents"] == 1000
    assert current["version"] == 2
    assert "pressing_concurrency_conflict_total" in client.get("/metrics").text


def test_payments(client: TestClient, deposit_payload: dict):
    """PENDING → PARTIAL → PAID; overpayment and negative amounts rejected"""
    deposit = _create(client, deposit_payload)
    url = f"/v1/deposits/{deposit['deposit_id']}/payments"

    data = client.post(url, json={"amount_cents": 1800, "method": "MOBILE_MONEY"}).json()
    assert data["paid_cents"] == 1800
    assert data["payment_status"] == "PARTIAL"

    assert client.post(url, json={"amount_cents": -5}).status_code == 422
    assert client.post(url, json={"amount_cents": 2001}).status_code == 422

    data = client.post(url, json={"amount_cents": 2000}).json()
    assert data["payment_status"] == "PAID"
    assert data["remaining_cents"] == 0


def test_payment_on_cancelled_deposit(client: TestClient, deposit_payload: dict):
    deposit = _create(client, deposit_payload)
    deposit_id = deposit["deposit_id"]

    assert client.post(f"/v1/deposits/{deposit_id}/cancel", json={"reason": ""}).status_code == 422

    response = client.post(f"/v1/deposits/{deposit_id}/cancel", json={"reason": "Client absent"})
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["cancellation_reason"] == "Client absent"

    assert client.post(f"/v1/deposits/{deposit_id}/payments", json={"amount_cents": 100}).status_code == 422


def test_installment_payment(client: TestClient, deposit_payload: dict):
    """Paying an installment settles it and feeds the deposit total"""
    deposit = _create(client, _installment_payload(deposit_payload))
    first, second, _ = deposit["installments"]

    response = client.post(f"/v1/installments/{first['installment_id']}/pay", json={"method": "CASH"})
    assert response.status_code == 200
    data = response.json()
    assert data["paid_cents"] == 34
    assert data["payment_status"] == "PARTIAL"
    assert data["installments"][0]["status"] == "PAID"

    again = client.post(f"/v1/installments/{first['installment_id']}/pay", json={})
    assert again.status_code == 422

    too_much = client.post(f"/v1/installments/{second['installment_id']}/pay", json={"amount_cents": 35})
    assert too_much.status_code == 422

    schedule = client.get(f"/v1/deposits/{deposit['deposit_id']}/installments").json()
    assert schedule["total_paid_cents"] == 34
    assert schedule["total_pending_cents"] == 66
    assert schedule["next_due_date"] == second["due_date"]


def test_installment_payment_through_deposit_route(client: TestClient, deposit_payload: dict):
    deposit = _create(client, _installment_payload(deposit_payload))
    last = deposit["installments"][2]

    response = client.post(
        f"/v1/deposits/{deposit['deposit_id']}/payments",
        json={"amount_cents": 32, "installment_id": last["installment_id"]},
    )
    assert response.status_code == 200
    assert response.json()["installments"][2]["status"] == "PAID"


def test_untargeted_payment_settles_installments_in_order(client: TestClient, deposit_payload: dict):
    """A plain payment fills installment 1, then installment 2"""
    deposit = _create(client, _installment_payload(deposit_payload))

    response = client.post(f"/v1/deposits/{deposit['deposit_id']}/payments", json={"amount_cents": 50})
    assert response.status_code == 200
    installments = response.json()["installments"]
    assert [inst["paid_cents"] for inst in installments] == [34, 16, 0]
    assert [inst["status"] for inst in installments] == ["PAID", "PENDING", "PENDING"]

    response = client.post(f"/v1/deposits/{deposit['deposit_id']}/payments", json={"amount_cents": 50})
    assert response.status_code == 200
    assert response.json()["payment_status"] == "PAID"

    schedule = client.get(f"/v1/deposits/{deposit['deposit_id']}/installments").json()
    assert all(inst["status"] == "PAID" for inst in schedule["installments"])
    assert schedule["total_paid_cents"] == 100
    assert schedule["total_pending_cents"] == 0
    assert schedule["overdue_count"] == 0


def test_unknown_installment(client: TestClient):
    response = client.post(f"/v1/installments/{uuid.uuid4()}/pay", json={})
    assert response.status_code == 404


def test_refund(client: TestClient, deposit_payload: dict):
    """Only a paid deposit can be refunded; afterwards no payment is accepted"""
    partial = _create(client, deposit_payload, paid_cents=1000)
    assert client.post(f"/v1/deposits/{partial['deposit_id']}/refund", json={"reason": "Erreur"}).status_code == 422

    paid = _create(client, deposit_payload, paid_cents=3800)
    response = client.post(f"/v1/deposits/{paid['deposit_id']}/refund", json={"reason": "Vêtement abîmé"})
    assert response.status_code == 200
    data = response.json()
    assert data["payment_status"] == "REFUNDED"
    assert data["refunded_cents"] == 3800
    assert data["paid_cents"] == 3800

    response = client.post(f"/v1/deposits/{paid['deposit_id']}/payments", json={"amount_cents": 1})
    assert response.status_code == 422


def test_render_receipt(client: TestClient, deposit_payload: dict):
    """Same figures whatever the layout"""
    deposit = _create(client, _installment_payload(deposit_payload))
    url = f"/v1/deposits/{deposit['deposit_id']}/receipt"

    figures = []
    for fmt in ["A4", "A5", "CASH_REGISTER", "ELECTRONIC"]:
        response = client.get(url, params={"type": "PAYMENT", "format": fmt})
        assert response.status_code == 200
        data = response.json()
        assert data["receipt_format"] == fmt
        assert data["figures"]["total"] in data["content"]
        figures.append(data["figures"])

    assert all(f == figures[0] for f in figures)


def test_render_receipt_not_found(client: TestClient):
    assert client.get(f"/v1/deposits/{uuid.uuid4()}/receipt").status_code == 404


def test_save_and_list_receipts(client: TestClient, deposit_payload: dict):
    deposit = _create(client, deposit_payload)
    url = f"/v1/deposits/{deposit['deposit_id']}/receipts"

    response = client.post(url, json={"receipt_type": "DEPOSIT", "receipt_format": "CASH_REGISTER", "generated_by": "Jean"})
    assert response.status_code == 201
    saved = response.json()
    assert saved["status"] == "GENERATED"
    assert saved["content_type"] == "text/plain"
    assert saved["generated_by"] == "Jean"

    receipts = client.get(url).json()
    assert [r["receipt_id"] for r in receipts] == [saved["receipt_id"]]


@patch("pressing_gateway.infrastructure.clients.notification.NotificationClient.send_receipt")
def test_send_receipt(mock_send: AsyncMock, client: TestClient, deposit_payload: dict):
    """Successful dispatch marks the receipt SENT"""
    mock_send.return_value = {"message_id": "msg-42", "status": "queued"}

    deposit = _create(client, deposit_payload)
    receipt = client.post(f"/v1/deposits/{deposit['deposit_id']}/receipts", json={}).json()

    response = client.post(f"/v1/receipts/{receipt['receipt_id']}/send", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "success"
    assert data["channel"] == "WHATSAPP"
    assert data["recipient"] == "+237 6 99 12 34 56"
    assert data["message_id"] == "msg-42"
    assert data["whatsapp_url"].startswith("https://wa.me/237699123456?text=")
    assert data["message"].startswith("Bonjour Awa Ndiaye,")
    mock_send.assert_awaited_once()

    stored = client.get(f"/v1/deposits/{deposit['deposit_id']}/receipts").json()[0]
    assert stored["status"] == "SENT"
    assert stored["sent_to"] == "+237 6 99 12 34 56"
    assert stored["sent_at"] is not None


@patch("pressing_gateway.infrastructure.clients.notification.NotificationClient.send_receipt")
def test_send_receipt_transport_failure(mock_send: AsyncMock, client: TestClient, deposit_payload: dict):
    """Transport failure is reported as outcome error and recorded as FAILED"""
    mock_send.side_effect = NotificationError("Notification gateway error: 502")

    deposit = _create(client, deposit_payload)
    receipt = client.post(f"/v1/deposits/{deposit['deposit_id']}/receipts", json={}).json()

    response = client.post(f"/v1/receipts/{receipt['receipt_id']}/send", json={"recipient": "awa@example.com"})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "error"
    assert data["channel"] == "EMAIL"
    assert data["error"] == "Notification gateway error: 502"
    assert mock_send.await_count == 1

    stored = client.get(f"/v1/deposits/{deposit['deposit_id']}/receipts").json()[0]
    assert stored["status"] == "FAILED"


def test_send_unknown_receipt(client: TestClient):
    assert client.post(f"/v1/receipts/{uuid.uuid4()}/send", json={}).status_code == 404
