"""
Tests for budget API endpoints.
"""

from decimal import Decimal

BASE = "/shops/shop-1/budgets"


def allocate(client, headers, name, amount):
    category = client.post(
        f"{BASE}/categories", json={"category_name": name}, headers=headers
    ).json()["data"]
    response = client.post(f"{BASE}/allocations", json={
        "budget_category_id": category["id"],
        "period_start": "2024-01-01",
        "period_end": "2024-01-31",
        "allocated_amount": amount,
    }, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


class TestAdjust:

    def test_increase(self, client, auth_headers):
        allocation = allocate(client, auth_headers, "Marketing", "1000")

        response = client.post(f"{BASE}/allocations/adjust", json={
            "allocation_id": allocation["id"], "delta": "250", "reason": "Campaign",
        }, headers=auth_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Budget increased successfully"
        assert Decimal(body["data"]["allocated_amount"]) == Decimal("1250")

    def test_negative_result_is_validation_error(self, client, auth_headers):
        allocation = allocate(client, auth_headers, "Marketing", "1000")

        response = client.post(f"{BASE}/allocations/adjust", json={
            "allocation_id": allocation["id"], "delta": "-1200", "reason": "Cut",
        }, headers=auth_headers)

        assert response.status_code == 422
        assert response.json() == {
            "success": False,
            "error": "Adjustment would result in negative budget allocation",
            "code": "validation_error",
        }

    def test_zero_delta_message(self, client, auth_headers):
        response = client.post(f"{BASE}/allocations/adjust", json={
            "allocation_id": 1, "delta": "0", "reason": "Nothing",
        }, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"] == "Adjustment amount cannot be zero"


class TestTransfer:

    def test_transfer(self, client, auth_headers):
        source = allocate(client, auth_headers, "Marketing", "500")
        destination = allocate(client, auth_headers, "Salaries", "100")

        response = client.post(f"{BASE}/transfers", json={
            "from_allocation_id": source["id"],
            "to_allocation_id": destination["id"],
            "amount": "300",
            "reason": "Rebalance",
        }, headers=auth_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Successfully transferred 300.00 between budget allocations"
        assert Decimal(body["data"]["from_allocation"]["remaining_amount"]) == Decimal("200")
        assert Decimal(body["data"]["to_allocation"]["remaining_amount"]) == Decimal("400")

    def test_insufficient_budget_is_conflict(self, client, auth_headers):
        source = allocate(client, auth_headers, "Marketing", "500")
        destination = allocate(client, auth_headers, "Salaries", "100")

        response = client.post(f"{BASE}/transfers", json={
            "from_allocation_id": source["id"],
            "to_allocation_id": destination["id"],
            "amount": "501",
            "reason": "Rebalance",
        }, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "insufficient_budget"

    def test_same_allocation_rejected(self, client, auth_headers):
        response = client.post(f"{BASE}/transfers", json={
            "from_allocation_id": 1,
            "to_allocation_id": 1,
            "amount": "5",
            "reason": "Loop",
        }, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"] == "Cannot transfer to the same allocation"


class TestCategoriesAndSummary:

    def test_duplicate_category_is_conflict(self, client, auth_headers):
        client.post(f"{BASE}/categories", json={"category_name": "Rent"}, headers=auth_headers)
        response = client.post(
            f"{BASE}/categories", json={"category_name": "rent"}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_name"

    def test_summary(self, client, auth_headers):
        allocation = allocate(client, auth_headers, "Marketing", "1000")
        client.post(f"{BASE}/expenses", json={
            "allocation_id": allocation["id"], "amount": "250",
        }, headers=auth_headers)

        response = client.get(
            f"{BASE}/summary",
            params={"period_start": "2024-01-01", "period_end": "2024-01-31"},
            headers=auth_headers,
        )

        summary = response.json()["data"]
        assert Decimal(summary["total_allocated"]) == Decimal("1000")
        assert Decimal(summary["total_used"]) == Decimal("250")
        assert Decimal(summary["utilization_percentage"]) == Decimal("25.00")
