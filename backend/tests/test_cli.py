# Overview: Pytest coverage for the Flask CLI command groups.

from rxledger.models import InventoryLog, Product
from rxledger.services import sales_service

from conftest import ATTENDANT_ID, TENANT_A


class TestCatalogCommands:

    def test_add_product_normalizes_opening_stock(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "catalog", "add-product",
            "--tenant-id", str(TENANT_A),
            "--actor-id", "1",
            "--name", "Amoxicillin 500mg",
            "--unit-type", "Capsules",
            "--units-per-pack", "10",
            "--price-per-pack", "1500",
            "--packs", "5",
            "--units", "12",
        ])

        assert result.exit_code == 0, result.output
        assert "6 packs + 2 loose = 62 units" in result.output

        product = db_session.query(Product).filter_by(name="Amoxicillin 500mg").one()
        assert product.selling_price_per_pack_cents == 1500
        entry = db_session.query(InventoryLog).filter_by(product_id=product.id).one()
        assert entry.action == "create"
        assert entry.new_state["total_units"] == 62

    def test_price_below_cost_is_rejected(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "catalog", "add-product",
            "--tenant-id", str(TENANT_A), "--actor-id", "1", "--name", "Saline",
            "--unit-type", "Bottles", "--price-per-pack", "100", "--cost-per-pack", "250",
        ])

        assert result.exit_code != 0
        assert "Selling price must be greater than or equal to cost price" in result.output
        assert db_session.query(Product).count() == 0

    def test_price_equal_to_cost_is_accepted(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "catalog", "add-product",
            "--tenant-id", str(TENANT_A), "--actor-id", "1", "--name", "Saline",
            "--unit-type", "Bottles", "--price-per-pack", "250", "--cost-per-pack", "250",
        ])

        assert result.exit_code == 0, result.output
        product = db_session.query(Product).filter_by(name="Saline").one()
        assert product.selling_price_per_pack_cents == 250

    def test_add_product_rejects_zero_pack_size(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "catalog", "add-product",
            "--tenant-id", str(TENANT_A), "--actor-id", "1", "--name", "Broken",
            "--units-per-pack", "0",
        ])

        assert result.exit_code != 0
        assert "units_per_pack" in result.output
        assert db_session.query(Product).count() == 0


class TestReconciliationCommands:

    def test_list_and_stats(self, app, db_session, tablets):
        sales_service.process_sale(
            tenant_id=TENANT_A,
            actor_id=ATTENDANT_ID,
            items=[{"product_id": tablets.id, "quantity": 30}],
            amount_paid_cents=5000,
            ignore_stock=True,
        )
        runner = app.test_cli_runner()

        listing = runner.invoke(args=["reconciliations", "list", "--tenant-id", str(TENANT_A)])
        assert listing.exit_code == 0, listing.output
        assert "Paracetamol 500mg" in listing.output

        stats = runner.invoke(args=["reconciliations", "stats", "--tenant-id", str(TENANT_A)])
        assert stats.exit_code == 0, stats.output
        total_line = [line for line in stats.output.splitlines() if line.startswith("TOTAL")][0]
        assert "cases=1" in total_line
        assert "deficit=7" in total_line

    def test_list_empty(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["reconciliations", "list", "--tenant-id", str(TENANT_A)])

        assert result.exit_code == 0
        assert "No reconciliation cases found" in result.output

    def test_list_unknown_status(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["reconciliations", "list", "--tenant-id", "1", "--status", "lost"])
        assert result.exit_code != 0


class TestSystemCommands:

    def test_init_db_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init-db"])

        assert result.exit_code == 0
        assert "Database tables created" in result.output
