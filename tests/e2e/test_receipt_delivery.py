"""
E2E tests for receipt delivery through the notification gateway.

These tests require the mock notification server to be running:
    uvicorn mock.notification_server.main:app --port 8003

Scenarios:
- walk-in customer paying in full, receipt sent by WhatsApp
- installment customer, payment receipt sent by email
- gateway outage, operator sees the error and the receipt stays FAILED
"""

import pytest
from fastapi.testclient import TestClient


def _deposit_and_receipt(client: TestClient, payload: dict, receipt_type: str) -> tuple[dict, dict]:
    deposit = client.post("/v1/deposits", json=payload).json()
    receipt = client.post(
        f"/v1/deposits/{deposit['deposit_id']}/receipts",
        json={"receipt_type": receipt_type, "receipt_format": "ELECTRONIC"},
    ).json()
    return deposit, receipt


@pytest.mark.integration
def test_paid_deposit_whatsapp(client: TestClient, deposit_payload: dict):
    """
    Paid in full at the counter
    Expected: receipt accepted by the gateway, WhatsApp link returned
    """
    _, receipt = _deposit_and_receipt(client, {**deposit_payload, "paid_cents": 3800}, "DEPOSIT")

    response = client.post(f"/v1/receipts/{receipt['receipt_id']}/send", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "success", data["error"]
    assert data["status"] == "queued"
    assert data["whatsapp_url"].startswith("https://wa.me/")


@pytest.mark.integration
def test_installment_payment_receipt_email(client: TestClient, deposit_payload: dict):
    """
    Installment customer pays the first installment
    Expected: payment receipt delivered by email
    """
    payload = {**deposit_payload, "is_installment_payment": True, "installment_count": 2}
    deposit = client.post("/v1/deposits", json=payload).json()
    first = deposit["installments"][0]
    paid = client.post(f"/v1/installments/{first['installment_id']}/pay", json={"method": "MOBILE_MONEY"})
    assert paid.json()["payment_status"] == "PARTIAL"

    receipt = client.post(
        f"/v1/deposits/{deposit['deposit_id']}/receipts",
        json={"receipt_type": "PAYMENT", "receipt_format": "A4"},
    ).json()
    response = client.post(f"/v1/receipts/{receipt['receipt_id']}/send", json={"recipient": "awa@example.com"})

    data = response.json()
    assert data["outcome"] == "success", data["error"]
    assert data["channel"] == "EMAIL"
    assert data["whatsapp_url"] is None


@pytest.mark.integration
def test_gateway_outage(client: TestClient, deposit_payload: dict):
    """
    Gateway rejects the recipient
    Expected: outcome error, receipt marked FAILED, no retry
    """
    deposit, receipt = _deposit_and_receipt(client, deposit_payload, "DELIVERY")

    response = client.post(f"/v1/receipts/{receipt['receipt_id']}/send", json={"recipient": "fail@example.com"})

    data = response.json()
    assert data["outcome"] == "error"
    assert "502" in data["error"]

    stored = client.get(f"/v1/deposits/{deposit['deposit_id']}/receipts").json()[0]
    assert stored["status"] == "FAILED"
