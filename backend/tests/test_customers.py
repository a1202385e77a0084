# Overview: Pytest coverage for customer records and the customer merge.

import pytest

from storeledger.errors import ConflictError, NotFoundError, ValidationError
from storeledger.models import Customer, Debt, DebtPayment, DebtSale, Order
from storeledger.services import customer_service, debt_service, order_service
from storeledger.services.order_service import OrderLineInput
from storeledger.services.sales_service import DebtCustomerInput, SaleLineInput, post_sale


def _debt_sale(store, product, name, phone, quantity=1):
    return post_sale(
        store_id=store.id,
        lines=[SaleLineInput(product.id, quantity, product.selling_price, product.selling_price * quantity)],
        payment_type="debt",
        debt_customer=DebtCustomerInput(name, phone),
    )


class TestCustomerRecords:
    def test_duplicate_phone_conflicts(self, db_session, store_a, make_customer):
        make_customer(store_a, phone="901111111")
        with pytest.raises(ConflictError):
            make_customer(store_a, name="Other", phone="901111111")

    def test_same_phone_allowed_in_other_store(self, db_session, store_a, store_b, make_customer):
        make_customer(store_a, phone="901111111")
        make_customer(store_b, phone="901111111")
        assert db_session.query(Customer).count() == 2

    def test_resolve_customer_refreshes_name(self, db_session, store_a, make_customer):
        existing = make_customer(store_a, name="Old", phone="901111111")
        resolved = customer_service.resolve_customer(store_a.id, "New", "901111111")
        db_session.commit()
        assert resolved.id == existing.id
        assert resolved.name == "New"

    def test_search(self, db_session, store_a, make_customer):
        make_customer(store_a, name="Alisher", phone="901111111")
        make_customer(store_a, name="Bobur", phone="902222222")
        assert [c.name for c in customer_service.list_customers(store_a.id, "alish")] == ["Alisher"]
        assert [c.name for c in customer_service.list_customers(store_a.id, "90222")] == ["Bobur"]


class TestMerge:
    def test_merge_moves_debts_and_orders(self, db_session, store_a, product_a, make_customer):
        source = make_customer(store_a, name="Dup", phone="901111111")
        target = make_customer(store_a, name="Real", phone="902222222")
        _debt_sale(store_a, product_a, "Dup", "901111111")
        debt = db_session.query(Debt).one()
        debt_service.apply_payment(store_a.id, debt.id, debt.remaining_amount)
        order = order_service.create_order(
            store_id=store_a.id,
            customer_name="Dup",
            customer_phone="901111111",
            lines=[OrderLineInput(product_a.id, 1, 100, 100)],
        )

        merged = customer_service.merge_customers(store_a.id, source.id, target.id)

        assert merged.id == target.id
        assert db_session.get(Customer, source.id) is None
        moved_debt = db_session.get(Debt, debt.id)
        assert (moved_debt.customer_id, moved_debt.customer_name, moved_debt.customer_phone) == (
            target.id, "Real", "902222222",
        )
        moved_order = db_session.get(Order, order.id)
        assert (moved_order.customer_id, moved_order.customer_name) == (target.id, "Real")

    def test_merge_folds_active_debts(self, db_session, store_a, make_product, make_customer):
        product = make_product(store_a, selling_price=1000, stock=10)
        source = make_customer(store_a, name="Dup", phone="901111111")
        target = make_customer(store_a, name="Real", phone="902222222")
        _debt_sale(store_a, product, "Dup", "901111111", quantity=3)
        _debt_sale(store_a, product, "Real", "902222222", quantity=2)
        source_debt = debt_service.find_active_debt(store_a.id, source.id)
        target_debt = debt_service.find_active_debt(store_a.id, target.id)
        debt_service.apply_payment(store_a.id, source_debt.id, 500)
        source_debt_id, target_debt_id = source_debt.id, target_debt.id

        customer_service.merge_customers(store_a.id, source.id, target.id)

        debts = db_session.query(Debt).filter_by(customer_id=target.id).all()
        assert [d.id for d in debts] == [target_debt_id]
        survivor = debts[0]
        assert (survivor.total_amount, survivor.paid_amount, survivor.remaining_amount) == (5000, 500, 4500)
        assert survivor.status == "active"
        assert db_session.get(Debt, source_debt_id) is None
        assert db_session.query(DebtPayment).filter_by(debt_id=target_debt_id).count() == 1
        assert db_session.query(DebtSale).filter_by(debt_id=target_debt_id).count() == 2

    def test_merge_into_self_rejected(self, db_session, store_a, make_customer):
        customer = make_customer(store_a)
        with pytest.raises(ValidationError):
            customer_service.merge_customers(store_a.id, customer.id, customer.id)

    def test_merge_across_stores_rejected(self, db_session, store_a, store_b, make_customer):
        source = make_customer(store_a, phone="901111111")
        target = make_customer(store_b, phone="902222222")
        with pytest.raises(NotFoundError):
            customer_service.merge_customers(store_a.id, source.id, target.id)
        assert db_session.get(Customer, source.id) is not None
