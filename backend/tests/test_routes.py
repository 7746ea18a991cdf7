# Overview: Pytest coverage for the HTTP surface: identity headers, roles and JSON contracts.

"""
Route Tests

Verifies:
- Requests without identity headers return 401
- Attendants are denied owner-only operations (403)
- ignore_stock requires the override permission
- Error responses carry {error, details} with the mapped status code
"""

import pytest

from rxledger.models import StaffActivity, StockReconciliation
from rxledger.permissions import Actor, Role

from conftest import ATTENDANT_ID, TENANT_A, TENANT_B, actor_headers


@pytest.fixture
def owner_headers(owner):
    return actor_headers(owner)


@pytest.fixture
def attendant_headers(attendant):
    return actor_headers(attendant)


@pytest.fixture
def trusted_attendant_headers():
    return actor_headers(Actor(id=ATTENDANT_ID, role=Role.ATTENDANT, tenant_id=TENANT_A, override_stock=True))


def checkout(client, headers, items, amount_paid_cents=10_000, **extra):
    body = {"items": items, "amount_paid_cents": amount_paid_cents, **extra}
    return client.post("/api/pos/sales", json=body, headers=headers)


# =============================================================================
# IDENTITY AND ROLES
# =============================================================================


class TestAccessControl:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/pos/sales"),
            ("GET", "/api/pos/sales"),
            ("POST", "/api/inventory/stock-adjustment"),
            ("GET", "/api/inventory/stock-history"),
            ("GET", "/api/inventory/low-stock"),
            ("GET", "/api/reconciliations"),
            ("GET", "/api/reconciliations/stats"),
        ],
    )
    def test_missing_identity_is_401(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    def test_malformed_actor_id_is_401(self, client, db_session, owner_headers):
        headers = {**owner_headers, "X-Actor-Id": "abc"}
        assert client.get("/api/pos/sales", headers=headers).status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/inventory/stock-adjustment"),
            ("GET", "/api/inventory/stock-history"),
            ("GET", "/api/inventory/low-stock"),
            ("GET", "/api/reconciliations"),
            ("PATCH", "/api/reconciliations/1"),
            ("POST", "/api/reconciliations/1/adjust"),
        ],
    )
    def test_attendant_denied_owner_routes(self, client, db_session, attendant_headers, method, path):
        response = client.open(path, method=method, json={}, headers=attendant_headers)

        assert response.status_code == 403
        assert response.get_json()["required_roles"] == [Role.PHARMACY_OWNER]

    def test_unknown_role_denied(self, client, db_session, owner_headers):
        headers = {**owner_headers, "X-Actor-Role": "auditor"}
        assert client.get("/api/pos/sales", headers=headers).status_code == 403


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_checkout(self, client, db_session, attendant_headers, tablets):
        response = checkout(client, attendant_headers, [{"product_id": tablets.id, "quantity": 5}], 1000)

        assert response.status_code == 201
        data = response.get_json()
        assert data["change_due_cents"] == 500
        assert data["sale"]["total_amount_cents"] == 500
        assert data["sale"]["items"][0]["quantity"] == 5
        assert data["sale"]["metadata"] == {"ignore_stock": False, "stock_warnings": []}
        assert "warnings" not in data

    def test_checkout_records_device_info(self, client, db_session, attendant_headers, tablets):
        headers = {**attendant_headers, "User-Agent": "till-01"}
        response = checkout(client, headers, [{"product_id": tablets.id, "quantity": 5}], 1000)

        assert response.status_code == 201
        entry = db_session.query(StaffActivity).one()
        assert entry.action == "sale_completed"
        assert entry.details["sale_id"] == response.get_json()["sale"]["id"]
        assert entry.device_info["user_agent"] == "till-01"
        assert entry.device_info["location"] == "Unknown"

    def test_insufficient_stock_is_400_with_details(self, client, db_session, attendant_headers, tablets):
        response = checkout(client, attendant_headers, [{"product_id": tablets.id, "quantity": 24}])

        assert response.status_code == 400
        data = response.get_json()
        assert data["details"]["available"] == 23
        assert data["details"]["requested"] == 24

    def test_attendant_cannot_override(self, client, db_session, attendant_headers, tablets):
        response = checkout(
            client, attendant_headers, [{"product_id": tablets.id, "quantity": 30}], ignore_stock=True,
        )

        assert response.status_code == 403
        assert db_session.query(StockReconciliation).count() == 0

    def test_authorized_attendant_can_override(self, client, db_session, trusted_attendant_headers, tablets):
        response = checkout(
            client, trusted_attendant_headers, [{"product_id": tablets.id, "quantity": 30}], ignore_stock=True,
        )

        assert response.status_code == 201
        warnings = response.get_json()["warnings"]
        assert warnings["message"].startswith("Stock levels exceeded")
        assert warnings["items"][0]["deficit"] == 7

    def test_owner_can_override(self, client, db_session, owner_headers, syrup):
        response = checkout(
            client, owner_headers, [{"product_id": syrup.id, "quantity": 6}], ignore_stock=True,
        )
        assert response.status_code == 201

    @pytest.mark.parametrize(
        "body",
        [
            {"items": [], "amount_paid_cents": 100},
            {"items": [{"product_id": 1, "quantity": "1.5"}], "amount_paid_cents": 100},
            {"items": [{"product_id": 1, "quantity": 1}]},
            {"items": [{"product_id": 1, "quantity": 1}], "amount_paid_cents": 100, "payment_method": "cheque"},
            {"items": [{"product_id": 1, "quantity": 1}], "amount_paid_cents": 100, "ignore_stock": "yes"},
        ],
    )
    def test_malformed_body_is_400(self, client, db_session, owner_headers, body):
        response = client.post("/api/pos/sales", json=body, headers=owner_headers)
        assert response.status_code == 400

    def test_underpayment_is_400(self, client, db_session, attendant_headers, tablets):
        response = checkout(client, attendant_headers, [{"product_id": tablets.id, "quantity": 5}], 499)

        assert response.status_code == 400
        assert response.get_json()["details"]["total_amount_cents"] == 500

    def test_unknown_product_is_404(self, client, db_session, attendant_headers):
        response = checkout(client, attendant_headers, [{"product_id": 99999, "quantity": 1}])
        assert response.status_code == 404

    def test_list_and_get(self, client, db_session, attendant_headers, tablets):
        sale_id = checkout(
            client, attendant_headers, [{"product_id": tablets.id, "quantity": 1}],
        ).get_json()["sale"]["id"]

        listing = client.get("/api/pos/sales?page=1&limit=10", headers=attendant_headers).get_json()
        assert [s["id"] for s in listing["items"]] == [sale_id]
        assert listing["pagination"]["total"] == 1

        detail = client.get(f"/api/pos/sales/{sale_id}", headers=attendant_headers)
        assert detail.status_code == 200
        assert detail.get_json()["sale"]["items"][0]["product_id"] == tablets.id

    def test_sale_hidden_from_other_tenant(self, client, db_session, attendant_headers, tablets):
        sale_id = checkout(
            client, attendant_headers, [{"product_id": tablets.id, "quantity": 1}],
        ).get_json()["sale"]["id"]

        foreign = {**attendant_headers, "X-Tenant-Id": str(TENANT_B)}
        assert client.get(f"/api/pos/sales/{sale_id}", headers=foreign).status_code == 404

    def test_bad_date_filter(self, client, db_session, attendant_headers):
        response = client.get("/api/pos/sales?start_date=yesterday", headers=attendant_headers)
        assert response.status_code == 400


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventoryRoutes:

    def test_stock_adjustment(self, client, db_session, owner_headers, tablets):
        response = client.post(
            "/api/inventory/stock-adjustment",
            json={"product_id": tablets.id, "adjustment_type": "add_packs", "quantity": 3, "reason": "Delivery"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["product"]["stock"]["full_packs"] == 5
        assert data["product"]["stock"]["total_units"] == 53
        assert data["adjustment"] == {"type": "add_packs", "quantity": 3, "reason": "Delivery"}

    def test_stock_adjustment_rejects_unknown_type(self, client, db_session, owner_headers, tablets):
        response = client.post(
            "/api/inventory/stock-adjustment",
            json={"product_id": tablets.id, "adjustment_type": "steal", "quantity": 1},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_remove_too_many_packs(self, client, db_session, owner_headers, tablets):
        response = client.post(
            "/api/inventory/stock-adjustment",
            json={"product_id": tablets.id, "adjustment_type": "remove_packs", "quantity": 3},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_stock_history(self, client, db_session, owner_headers, attendant_headers, tablets):
        checkout(client, attendant_headers, [{"product_id": tablets.id, "quantity": 2}])

        response = client.get(
            f"/api/inventory/stock-history?product_id={tablets.id}&action=sale", headers=owner_headers,
        )

        assert response.status_code == 200
        items = response.get_json()["items"]
        assert len(items) == 1
        assert items[0]["details"]["kind"] == "sale_line"

    def test_low_stock(self, client, db_session, owner_headers, make_product):
        make_product(name="Empty", full_packs=0, loose_units=0)

        data = client.get("/api/inventory/low-stock", headers=owner_headers).get_json()

        assert data["summary"]["critical"] == 1
        assert data["items"][0]["name"] == "Empty"


# =============================================================================
# RECONCILIATIONS
# =============================================================================


class TestReconciliationRoutes:

    @pytest.fixture
    def case_id(self, client, db_session, owner_headers, tablets):
        checkout(client, owner_headers, [{"product_id": tablets.id, "quantity": 30}], ignore_stock=True)
        return db_session.query(StockReconciliation).one().id

    def test_list_and_stats(self, client, db_session, owner_headers, case_id):
        listing = client.get("/api/reconciliations?status=pending", headers=owner_headers).get_json()
        assert listing["count"] == 1
        assert listing["items"][0]["deficit"] == 7

        stats = client.get("/api/reconciliations/stats", headers=owner_headers).get_json()
        assert stats["pending"] == 1

    def test_resolve(self, client, db_session, owner_headers, case_id):
        response = client.patch(
            f"/api/reconciliations/{case_id}",
            json={"status": "resolved", "action": "written_off", "notes": "Broken bottles"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.get_json()["reconciliation"]["status"] == "resolved"

        again = client.patch(f"/api/reconciliations/{case_id}", json={"status": "investigating"}, headers=owner_headers)
        assert again.status_code == 409

    def test_adjust(self, client, db_session, owner_headers, case_id):
        response = client.post(
            f"/api/reconciliations/{case_id}/adjust",
            json={"adjustment_quantity": 7},
            headers=owner_headers,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["reconciliation"]["status"] == "adjusted"
        assert data["updated_stock"]["total_units"] == 30

        again = client.post(
            f"/api/reconciliations/{case_id}/adjust",
            json={"adjustment_quantity": 7},
            headers=owner_headers,
        )
        assert again.status_code == 404

    def test_adjust_requires_positive_quantity(self, client, db_session, owner_headers, case_id):
        response = client.post(
            f"/api/reconciliations/{case_id}/adjust", json={"adjustment_quantity": 0}, headers=owner_headers,
        )
        assert response.status_code == 400


class TestSystemRoutes:

    def test_health(self, client, db_session, tablets):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["products"] == 1
