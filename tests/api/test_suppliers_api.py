"""
Tests for supplier and purchase API endpoints.
"""

from decimal import Decimal

from sqlalchemy import select

from shop_ledger.models.audit_log import AuditLog

BASE = "/shops/shop-1"


def create_supplier(client, headers, name="Gold Traders"):
    return client.post(
        f"{BASE}/suppliers", json={"company_name": name}, headers=headers
    ).json()["data"]


def create_purchase(client, headers, supplier_id, total, paid="0"):
    return client.post(f"{BASE}/purchases", json={
        "supplier_id": supplier_id,
        "purchase_date": "2024-05-01",
        "total_amount": total,
        "paid_amount": paid,
    }, headers=headers)


class TestSuppliers:

    def test_create_returns_envelope(self, client, auth_headers):
        response = client.post(
            f"{BASE}/suppliers", json={"company_name": "Gold Traders"}, headers=auth_headers
        )

        body = response.json()
        assert response.status_code == 201
        assert body["success"] is True
        assert body["message"] == "Supplier created successfully"
        assert body["data"]["company_name"] == "Gold Traders"
        assert Decimal(body["data"]["current_balance"]) == 0

    def test_duplicate_name_is_conflict(self, client, auth_headers):
        create_supplier(client, auth_headers)
        response = client.post(
            f"{BASE}/suppliers", json={"company_name": "gold traders"}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_company_name"

    def test_stale_version_is_conflict(self, client, auth_headers):
        supplier = create_supplier(client, auth_headers)
        client.patch(
            f"{BASE}/suppliers/{supplier['id']}", json={"phone": "1"}, headers=auth_headers
        )

        response = client.patch(f"{BASE}/suppliers/{supplier['id']}", json={
            "phone": "2", "expected_version": supplier["version"],
        }, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "concurrent_modification"

    def test_delete_with_balance_is_conflict(self, client, auth_headers):
        supplier = create_supplier(client, auth_headers)
        create_purchase(client, auth_headers, supplier["id"], "100")

        response = client.delete(f"{BASE}/suppliers/{supplier['id']}", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "has_balance"


class TestPurchases:

    def test_purchase_and_payment_flow(self, client, auth_headers):
        supplier = create_supplier(client, auth_headers)
        purchase = create_purchase(client, auth_headers, supplier["id"], "500").json()["data"]

        response = client.post(f"{BASE}/purchases/payments", json={
            "purchase_id": purchase["id"], "amount": "200",
        }, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["data"]["payment_status"] == "partial"

        balance = client.get(
            f"{BASE}/suppliers/{supplier['id']}/balance", headers=auth_headers
        ).json()["data"]
        assert Decimal(balance["current_balance"]) == Decimal("300")
        assert balance["transaction_count"] == 2

    def test_paid_above_total_is_validation_error(self, client, auth_headers):
        supplier = create_supplier(client, auth_headers)

        response = create_purchase(client, auth_headers, supplier["id"], "100", paid="150")

        assert response.status_code == 422
        assert response.json()["error"] == "Paid amount cannot exceed total amount"

    def test_cancel(self, client, auth_headers):
        supplier = create_supplier(client, auth_headers)
        purchase = create_purchase(client, auth_headers, supplier["id"], "500").json()["data"]

        response = client.post(
            f"{BASE}/purchases/{purchase['id']}/cancel",
            json={"reason": "Wrong stones"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["deleted_at"] is not None
        balance = client.get(
            f"{BASE}/suppliers/{supplier['id']}/balance", headers=auth_headers
        ).json()["data"]
        assert Decimal(balance["current_balance"]) == 0

    def test_edit_purchase_then_stale_edit_is_audited(self, client, auth_headers, db_session):
        supplier = create_supplier(client, auth_headers)
        purchase = create_purchase(client, auth_headers, supplier["id"], "500").json()["data"]
        url = f"{BASE}/purchases/{purchase['id']}"

        first = client.patch(url, json={
            "invoice_number": "INV-1", "expected_version": purchase["version"],
        }, headers=auth_headers)
        second = client.patch(url, json={
            "invoice_number": "INV-2", "expected_version": purchase["version"],
        }, headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["message"] == "Purchase updated successfully"
        assert first.json()["data"]["invoice_number"] == "INV-1"
        assert second.status_code == 409
        assert second.json()["code"] == "concurrent_modification"
        events = db_session.execute(select(AuditLog.event_type)).scalars().all()
        assert events == ["purchase.concurrent_modification"]
