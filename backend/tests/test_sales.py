# Overview: Pytest coverage for sale posting, including debt sales and atomic aborts.

import pytest

from storeledger.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from storeledger.models import Debt, DebtSale, Product, Sale, SaleItem, StockMutation
from storeledger.services.sales_service import DebtCustomerInput, SaleLineInput, post_sale


def _line(product, quantity, unit_price=None):
    unit_price = product.selling_price if unit_price is None else unit_price
    return SaleLineInput(
        product_id=product.id,
        quantity=quantity,
        unit_price=unit_price,
        line_total=unit_price * quantity,
    )


class TestPostSale:
    def test_sale_takes_stock_to_zero(self, db_session, store_a, make_product):
        product = make_product(store_a, stock=5)
        sale = post_sale(store_id=store_a.id, lines=[_line(product, 5)], payment_type="cash")

        assert db_session.get(Product, product.id).stock_quantity == 0
        sale_rows = (
            db_session.query(StockMutation)
            .filter_by(product_id=product.id, reason="sale")
            .all()
        )
        assert len(sale_rows) == 1
        assert (sale_rows[0].delta, sale_rows[0].stock_after) == (-5, 0)
        assert sale.total_amount == 50000
        assert len(sale.items) == 1

    def test_sale_after_sellout_fails_without_effects(self, db_session, store_a, make_product):
        product = make_product(store_a, stock=5)
        post_sale(store_id=store_a.id, lines=[_line(product, 5)], payment_type="cash")

        with pytest.raises(InsufficientStockError):
            post_sale(store_id=store_a.id, lines=[_line(product, 1)], payment_type="cash")

        assert db_session.get(Product, product.id).stock_quantity == 0
        assert db_session.query(Sale).count() == 1

    def test_failing_line_rolls_back_earlier_lines(self, db_session, store_a, make_product):
        plenty = make_product(store_a, name="Plenty", stock=10)
        scarce = make_product(store_a, name="Scarce", stock=1)

        with pytest.raises(InsufficientStockError):
            post_sale(
                store_id=store_a.id,
                lines=[_line(plenty, 3), _line(scarce, 2)],
                payment_type="card",
            )

        assert db_session.get(Product, plenty.id).stock_quantity == 10
        assert db_session.get(Product, scarce.id).stock_quantity == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert db_session.query(StockMutation).filter_by(reason="sale").count() == 0

    def test_other_store_product_rejected(self, db_session, store_a, product_b):
        with pytest.raises(NotFoundError):
            post_sale(store_id=store_a.id, lines=[_line(product_b, 1)], payment_type="cash")
        assert db_session.get(Product, product_b.id).stock_quantity == 10

    def test_sale_numbers_are_sequential_per_store(self, db_session, store_a, store_b, product_a, product_b):
        first = post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="cash")
        second = post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="cash")
        other = post_sale(store_id=store_b.id, lines=[_line(product_b, 1)], payment_type="cash")

        assert first.sale_number == "S-000001"
        assert second.sale_number == "S-000002"
        assert other.sale_number == "S-000001"

    def test_duplicate_client_sale_number_conflicts(self, db_session, store_a, product_a):
        post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="cash", sale_number="T-1")
        with pytest.raises(ConflictError):
            post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="cash", sale_number="T-1")
        assert db_session.get(Product, product_a.id).stock_quantity == 9

    def test_validation_happens_before_any_write(self, db_session, store_a, product_a):
        with pytest.raises(ValidationError):
            post_sale(store_id=store_a.id, lines=[], payment_type="cash")
        with pytest.raises(ValidationError):
            post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="barter")
        with pytest.raises(ValidationError):
            post_sale(store_id=store_a.id, lines=[_line(product_a, 1)], payment_type="debt")
        assert db_session.query(Sale).count() == 0


class TestDebtSales:
    def test_debt_sales_accrue_onto_one_debt(self, db_session, store_a, make_product):
        product = make_product(store_a, selling_price=5000, stock=10)
        customer = DebtCustomerInput(customer_name="Ali", customer_phone="901234567")

        first = post_sale(
            store_id=store_a.id, lines=[_line(product, 2)], payment_type="debt", debt_customer=customer,
        )
        debt = db_session.query(Debt).one()
        assert (debt.total_amount, debt.paid_amount, debt.remaining_amount, debt.status) == (
            10000, 0, 10000, "active",
        )

        second = post_sale(
            store_id=store_a.id, lines=[_line(product, 1)], payment_type="debt", debt_customer=customer,
        )
        debts = db_session.query(Debt).all()
        assert len(debts) == 1
        assert (debts[0].total_amount, debts[0].remaining_amount) == (15000, 15000)

        linked = {link.sale_id for link in db_session.query(DebtSale).filter_by(debt_id=debts[0].id)}
        assert linked == {first.id, second.id}

    def test_debt_sale_rollback_leaves_no_debt(self, db_session, store_a, make_product):
        product = make_product(store_a, stock=1)
        with pytest.raises(InsufficientStockError):
            post_sale(
                store_id=store_a.id,
                lines=[_line(product, 2)],
                payment_type="debt",
                debt_customer=DebtCustomerInput("Ali", "901234567"),
            )
        assert db_session.query(Debt).count() == 0
