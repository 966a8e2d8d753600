"""End-to-end tests for the inventory HTTP API."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from partsledger.models.inventory import PartItemStatus


@pytest.fixture()
def actor_headers():
    return {"X-Actor-Id": str(uuid4())}


def _receive(client, warehouse, part, serials, unit_cost="30.00"):
    body = {
        "warehouse_id": str(warehouse.id),
        "supplier_name": "Acme Parts Ltd",
        "invoice_no": "INV-77",
        "items": [
            {
                "part_id": str(part.id),
                "internal_serial": f"INT-{serial}",
                "manufacturer_serial": f"MFR-{serial}",
                "unit_cost": unit_cost,
            }
            for serial in serials
        ],
    }
    created = client.post("/inventory/receipts", json=body)
    assert created.status_code == 201
    posted = client.post(f"/inventory/receipts/{created.json()['id']}/post")
    assert posted.status_code == 200
    return posted.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]


class TestCatalogApi:
    def test_create_and_list_parts(self, client):
        sku = f"API-{uuid4().hex[:6]}"
        created = client.post("/inventory/parts", json={"name": "Wiper blade", "sku": sku})
        assert created.status_code == 201
        listed = client.get("/inventory/parts", params={"search": sku})
        assert listed.status_code == 200
        assert [part["sku"] for part in listed.json()["items"]] == [sku]

    def test_create_warehouse(self, client):
        response = client.post("/inventory/warehouses", json={"name": "East Yard", "code": f"E-{uuid4().hex[:4]}"})
        assert response.status_code == 201
        assert response.json()["is_active"] is True


class TestReceiptApi:
    def test_post_returns_receipt_and_expense(self, client, warehouse, part, actor_headers):
        result = _receive(client, warehouse, part, ["R1", "R2"])
        assert result["message"] == "Receipt posted"
        assert result["receipt"]["status"] == "posted"
        assert Decimal(result["receipt"]["total_amount"]) == Decimal("60.00")
        assert Decimal(result["cash_expense"]["amount"]) == Decimal("60.00")
        assert all(item["part_item_id"] for item in result["receipt"]["items"])

    def test_duplicate_serial_payload(self, client, warehouse, part):
        _receive(client, warehouse, part, ["D1"])
        body = {
            "warehouse_id": str(warehouse.id),
            "supplier_name": "Acme Parts Ltd",
            "items": [{"part_id": str(part.id), "internal_serial": "INT-D1", "manufacturer_serial": "NEW-D1"}],
        }
        created = client.post("/inventory/receipts", json=body)
        response = client.post(f"/inventory/receipts/{created.json()['id']}/post")
        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "duplicate_serial"
        assert data["serials"] == ["INT-D1"]

    def test_records_actor(self, client, warehouse, part, actor_headers):
        body = {
            "warehouse_id": str(warehouse.id),
            "supplier_name": "Acme Parts Ltd",
            "items": [{"part_id": str(part.id), "internal_serial": "INT-A9", "manufacturer_serial": "MFR-A9"}],
        }
        response = client.post("/inventory/receipts", json=body, headers=actor_headers)
        assert response.status_code == 201
        assert response.json()["created_by"] == actor_headers["X-Actor-Id"]


class TestRequestApi:
    def _create_request(self, client, warehouse, part, qty, headers=None):
        body = {
            "warehouse_id": str(warehouse.id),
            "work_order_id": str(uuid4()),
            "lines": [{"part_id": str(part.id), "needed_qty": qty}],
        }
        response = client.post("/inventory/requests", json=body, headers=headers or {})
        assert response.status_code == 201
        return response.json()

    def test_partial_approval_message(self, client, warehouse, part, actor_headers):
        _receive(client, warehouse, part, ["P1", "P2", "P3"])
        request = self._create_request(client, warehouse, part, 5, actor_headers)
        assert request["status"] == "pending"
        assert request["requested_by"] == actor_headers["X-Actor-Id"]

        response = client.post(f"/inventory/requests/{request['id']}/approve")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Request approved with partial reservation"
        assert data["reserved_total"] == 3
        assert data["requested_total"] == 5
        assert data["reserved"][0]["reserved_qty"] == 3
        assert data["request"]["status"] == "approved"
        assert len(data["request"]["reservations"]) == 3

    def test_full_approval_then_unreserve(self, client, warehouse, part):
        _receive(client, warehouse, part, ["F1"])
        request = self._create_request(client, warehouse, part, 1)
        approved = client.post(f"/inventory/requests/{request['id']}/approve").json()
        assert approved["message"] == "Request approved"
        item_id = approved["reserved"][0]["reserved_items"][0]["id"]

        response = client.post(f"/inventory/requests/{request['id']}/unreserve")

        assert response.status_code == 200
        assert response.json()["unreserved_count"] == 1
        item = client.get(f"/inventory/part-items/{item_id}").json()
        assert item["status"] == PartItemStatus.in_stock.value

    def test_reject_with_and_without_body(self, client, warehouse, part):
        first = self._create_request(client, warehouse, part, 1)
        second = self._create_request(client, warehouse, part, 1)
        with_reason = client.post(f"/inventory/requests/{first['id']}/reject", json={"reason": "Duplicate"})
        without = client.post(f"/inventory/requests/{second['id']}/reject")
        assert with_reason.json()["rejection_reason"] == "Duplicate"
        assert without.json()["status"] == "rejected"

    def test_invalid_quantity(self, client, warehouse, part):
        body = {"warehouse_id": str(warehouse.id), "lines": [{"part_id": str(part.id), "needed_qty": 0}]}
        response = client.post("/inventory/requests", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_quantity"

    def test_approve_twice_conflicts(self, client, warehouse, part):
        request = self._create_request(client, warehouse, part, 1)
        client.post(f"/inventory/requests/{request['id']}/approve")
        response = client.post(f"/inventory/requests/{request['id']}/approve")
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_status"

    def test_unknown_and_malformed_ids(self, client):
        missing = client.get(f"/inventory/requests/{uuid4()}")
        assert missing.status_code == 404
        assert missing.json()["code"] == "not_found"
        malformed = client.get("/inventory/requests/not-a-uuid")
        assert malformed.status_code == 400
        assert malformed.json()["code"] == "invalid_uuid"

    def test_list_envelope(self, client, warehouse, part):
        self._create_request(client, warehouse, part, 1)
        response = client.get("/inventory/requests", params={"status": "pending", "limit": 10})
        data = response.json()
        assert set(data) == {"items", "count", "limit", "offset"}
        assert data["limit"] == 10
        assert data["count"] == len(data["items"]) >= 1


class TestIssueApi:
    def test_request_to_installed_lifecycle(self, client, warehouse, part, actor_headers):
        _receive(client, warehouse, part, ["L1", "L2"])
        body = {
            "warehouse_id": str(warehouse.id),
            "work_order_id": str(uuid4()),
            "lines": [{"part_id": str(part.id), "needed_qty": 2}],
        }
        request = client.post("/inventory/requests", json=body).json()
        approved = client.post(f"/inventory/requests/{request['id']}/approve").json()
        items = approved["reserved"][0]["reserved_items"]

        issue = client.post(
            "/inventory/issues",
            json={
                "warehouse_id": str(warehouse.id),
                "work_order_id": request["work_order_id"],
                "request_id": request["id"],
                "lines": [{"part_id": str(part.id), "part_item_id": item["id"]} for item in items],
            },
            headers=actor_headers,
        )
        assert issue.status_code == 201
        assert issue.json()["status"] == "draft"

        posted = client.post(f"/inventory/issues/{issue.json()['id']}/post")
        assert posted.status_code == 200
        assert posted.json()["message"] == "Issue posted"
        assert posted.json()["issue"]["status"] == "posted"
        assert client.get(f"/inventory/requests/{request['id']}").json()["status"] == "issued"

        installed = client.post(
            f"/inventory/part-items/{items[0]['id']}/transition",
            json={"from_status": "issued", "to_status": "installed", "installed_vehicle_id": str(uuid4())},
        )
        assert installed.status_code == 200
        assert installed.json()["status"] == "installed"

    def test_issue_unavailable_item(self, client, warehouse, part):
        _receive(client, warehouse, part, ["U1"])
        item = client.get("/inventory/part-items", params={"q": "INT-U1"}).json()["items"][0]
        payload = {
            "warehouse_id": str(warehouse.id),
            "work_order_id": str(uuid4()),
            "lines": [{"part_id": str(part.id), "part_item_id": item["id"]}],
        }
        first = client.post("/inventory/issues", json=payload).json()
        second = client.post("/inventory/issues", json=payload).json()
        assert client.post(f"/inventory/issues/{first['id']}/post").status_code == 200

        response = client.post(f"/inventory/issues/{second['id']}/post")

        assert response.status_code == 409
        assert response.json()["code"] == "item_unavailable"
        assert client.get(f"/inventory/issues/{second['id']}").json()["status"] == "draft"

    def test_cancel_issue(self, client, warehouse, part):
        _receive(client, warehouse, part, ["C1"])
        item = client.get("/inventory/part-items", params={"q": "INT-C1"}).json()["items"][0]
        payload = {
            "warehouse_id": str(warehouse.id),
            "work_order_id": str(uuid4()),
            "lines": [{"part_id": str(part.id), "part_item_id": item["id"]}],
        }
        issue = client.post("/inventory/issues", json=payload).json()
        response = client.post(f"/inventory/issues/{issue['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
