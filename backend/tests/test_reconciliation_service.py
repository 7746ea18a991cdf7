# Overview: Pytest coverage for the reconciliation ledger state machine and stock corrections.

import pytest

from rxledger.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from rxledger.models import InventoryLog, StockReconciliation
from rxledger.services import reconciliation_service, sales_service

from conftest import ATTENDANT_ID, OWNER_ID, TENANT_A, TENANT_B


@pytest.fixture
def oversold_case(db_session, tablets):
    """Override sale of 30 against 23 on hand -> one pending case, deficit 7."""
    result = sales_service.process_sale(
        tenant_id=TENANT_A,
        actor_id=ATTENDANT_ID,
        items=[{"product_id": tablets.id, "quantity": 30}],
        amount_paid_cents=5000,
        ignore_stock=True,
    )
    return db_session.get(StockReconciliation, result.reconciliation_ids[0])


def resolve(case, status, **kwargs):
    return reconciliation_service.resolve_case(
        tenant_id=TENANT_A,
        actor_id=OWNER_ID,
        case_id=case.id,
        status=status,
        **kwargs,
    )


def adjust(case, quantity, tenant_id=TENANT_A, notes=None):
    return reconciliation_service.adjust_from_case(
        tenant_id=tenant_id,
        actor_id=OWNER_ID,
        case_id=case.id,
        adjustment_quantity=quantity,
        notes=notes,
    )


class TestResolveCase:

    def test_investigating_does_not_stamp_resolver(self, db_session, oversold_case):
        case = resolve(oversold_case, "investigating", notes="Counting shelf")

        assert case.status == "investigating"
        assert case.resolution_notes == "Counting shelf"
        assert case.resolved_by_id is None
        assert case.resolved_at is None

    def test_resolved_stamps_resolver(self, db_session, oversold_case):
        resolve(oversold_case, "investigating")
        case = resolve(oversold_case, "resolved", action="written_off")

        assert case.status == "resolved"
        assert case.action == "written_off"
        assert case.resolved_by_id == OWNER_ID
        assert case.resolved_at is not None

    def test_resolve_does_not_touch_stock(self, db_session, oversold_case, tablets):
        resolve(oversold_case, "resolved")
        assert tablets.total_units == 23

    @pytest.mark.parametrize("terminal", ["resolved", "adjusted"])
    def test_terminal_states_are_final(self, db_session, oversold_case, terminal):
        resolve(oversold_case, terminal)

        with pytest.raises(InvalidTransitionError) as exc_info:
            resolve(oversold_case, "investigating")
        assert exc_info.value.status_code == 409

    def test_no_moving_back_to_pending(self, db_session, oversold_case):
        resolve(oversold_case, "investigating")

        with pytest.raises(InvalidTransitionError):
            resolve(oversold_case, "pending")

    def test_unknown_status(self, db_session, oversold_case):
        with pytest.raises(ValidationError):
            resolve(oversold_case, "closed")

    def test_unknown_action(self, db_session, oversold_case):
        with pytest.raises(ValidationError):
            resolve(oversold_case, "resolved", action="shrug")

    def test_other_tenant_cannot_see_case(self, db_session, oversold_case):
        with pytest.raises(NotFoundError):
            reconciliation_service.resolve_case(
                tenant_id=TENANT_B, actor_id=OWNER_ID, case_id=oversold_case.id, status="resolved",
            )


class TestAdjustFromCase:

    def test_restores_the_deficit(self, db_session, oversold_case, tablets):
        before = tablets.total_units

        case, product = adjust(oversold_case, oversold_case.deficit, notes="Found a box")

        assert product.total_units == before + 7
        assert (product.full_packs, product.loose_units) == (3, 0)
        assert case.status == "adjusted"
        assert case.action == "stock_adjusted"
        assert case.resolved_by_id == OWNER_ID
        assert case.resolution_notes == "Found a box"

    def test_audited_with_case_reference(self, db_session, oversold_case):
        adjust(oversold_case, 7)

        entry = db_session.query(InventoryLog).filter_by(action="stock_adjust").one()
        assert entry.details["reconciliation_id"] == oversold_case.id
        assert entry.details["quantity"] == 7
        assert entry.previous_state["total_units"] == 23
        assert entry.new_state["total_units"] == 30

    def test_second_adjust_is_not_found(self, db_session, oversold_case, tablets):
        adjust(oversold_case, 7)

        with pytest.raises(NotFoundError) as exc_info:
            adjust(oversold_case, 7)

        assert "already processed" in exc_info.value.message
        assert tablets.total_units == 30

    def test_only_pending_cases(self, db_session, oversold_case):
        resolve(oversold_case, "investigating")

        with pytest.raises(NotFoundError):
            adjust(oversold_case, 7)

    def test_other_tenant(self, db_session, oversold_case):
        with pytest.raises(NotFoundError):
            adjust(oversold_case, 7, tenant_id=TENANT_B)

    @pytest.mark.parametrize("quantity", [0, -3, True])
    def test_positive_quantity_required(self, db_session, oversold_case, quantity):
        with pytest.raises(ValidationError):
            adjust(oversold_case, quantity)


class TestCaseQueries:

    def test_list_and_filter(self, db_session, oversold_case):
        assert [c.id for c in reconciliation_service.list_cases(TENANT_A)] == [oversold_case.id]
        assert reconciliation_service.list_cases(TENANT_A, "resolved") == []
        assert reconciliation_service.list_cases(TENANT_B) == []

    def test_list_unknown_status(self, db_session):
        with pytest.raises(ValidationError):
            reconciliation_service.list_cases(TENANT_A, "lost")

    def test_stats(self, db_session, oversold_case, syrup):
        sales_service.process_sale(
            tenant_id=TENANT_A,
            actor_id=ATTENDANT_ID,
            items=[{"product_id": syrup.id, "quantity": 8}],
            amount_paid_cents=5000,
            ignore_stock=True,
        )
        resolve(oversold_case, "resolved")

        stats = reconciliation_service.get_stats(TENANT_A)

        assert stats["pending"] == 1
        assert stats["by_status"]["pending"] == {"count": 1, "total_deficit": 3}
        assert stats["by_status"]["resolved"] == {"count": 1, "total_deficit": 7}
        assert stats["by_status"]["adjusted"] == {"count": 0, "total_deficit": 0}
        assert stats["total_cases"] == 2
        assert stats["total_deficit"] == 10

    def test_stats_empty_tenant(self, db_session):
        stats = reconciliation_service.get_stats(TENANT_B)
        assert stats["total_cases"] == 0
        assert stats["pending"] == 0
