# Overview: Pytest coverage for the ledger audit command.

from sqlalchemy import update

from storeledger.cli import audit_ledger
from storeledger.models import Product
from storeledger.services import sales_service
from storeledger.services.sales_service import DebtCustomerInput, SaleLineInput


def _corrupt_stock(db_session, product, quantity):
    """Write stock behind the ledger's back, leaving the stock log stale."""
    db_session.execute(
        update(Product).where(Product.id == product.id).values(stock_quantity=quantity)
    )
    db_session.commit()


class TestLedgerAudit:
    def test_clean_ledger_passes(self, app, db_session, store_a, product_a):
        sales_service.post_sale(
            store_id=store_a.id,
            lines=[SaleLineInput(product_a.id, 2, 10000, 20000)],
            payment_type="debt",
            debt_customer=DebtCustomerInput("Ali", "901234567"),
        )

        result = app.test_cli_runner().invoke(args=["ledger", "audit"])

        assert result.exit_code == 0
        assert "PASS" in result.output
        assert audit_ledger() == []

    def test_stale_stock_log_fails(self, app, db_session, store_a, product_a):
        _corrupt_stock(db_session, product_a, 7)

        result = app.test_cli_runner().invoke(args=["ledger", "audit"])

        assert result.exit_code == 1
        assert f"FAIL product {product_a.id}" in result.output
        assert "last log entry says 10" in result.output

    def test_audit_is_scoped_by_store(self, app, db_session, store_a, store_b, product_a, product_b):
        _corrupt_stock(db_session, product_b, 3)

        assert audit_ledger(store_a.id) == []
        assert len(audit_ledger(store_b.id)) == 1

        result = app.test_cli_runner().invoke(args=["ledger", "audit", "--store-id", str(store_a.id)])
        assert result.exit_code == 0
