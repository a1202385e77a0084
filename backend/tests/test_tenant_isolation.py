# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

Every request is scoped to the store forwarded in the tenant header. These
tests prove that one store can neither read nor change another store's
ledger, and that inactive, expired and non-premium stores are turned away.
"""

from datetime import timedelta

from storeledger.models import Product
from storeledger.models.tenancy import PLAN_STANDARD
from storeledger.time_utils import utcnow


class TestTenantContext:
    def test_missing_header_is_unauthorized(self, client, db_session):
        assert client.get('/api/products').status_code == 401

    def test_unknown_store_is_unauthorized(self, client, db_session):
        assert client.get('/api/products', headers={'X-Store-Id': '9999'}).status_code == 401

    def test_inactive_store_forbidden(self, client, db_session, store_a, headers):
        store_a.is_active = False
        db_session.commit()
        assert client.get('/api/products', headers=headers(store_a)).status_code == 403

    def test_expired_subscription_forbidden(self, client, db_session, store_a, headers):
        store_a.subscription_ends_at = utcnow() - timedelta(days=1)
        db_session.commit()
        assert client.get('/api/products', headers=headers(store_a)).status_code == 403

    def test_standard_plan_cannot_use_orders(self, client, db_session, store_a, headers):
        store_a.plan = PLAN_STANDARD
        db_session.commit()
        assert client.get('/api/orders', headers=headers(store_a)).status_code == 403
        assert client.get('/api/products', headers=headers(store_a)).status_code == 200


class TestCrossTenantAccess:
    def test_product_listing_is_scoped(self, client, db_session, store_a, product_a, product_b, headers):
        response = client.get('/api/products', headers=headers(store_a))
        assert [p['id'] for p in response.json['products']] == [product_a.id]

    def test_cannot_read_foreign_product(self, client, db_session, store_a, product_b, headers):
        response = client.get(f'/api/products/{product_b.id}', headers=headers(store_a))
        assert response.status_code == 404

    def test_cannot_sell_foreign_product(self, client, db_session, store_a, product_b, headers):
        response = client.post('/api/sales', headers=headers(store_a), json={
            'payment_type': 'cash',
            'items': [{'product_id': product_b.id, 'quantity': 1, 'unit_price': 20000, 'line_total': 20000}],
        })
        assert response.status_code == 404
        assert db_session.get(Product, product_b.id).stock_quantity == 10

    def test_cannot_receive_into_foreign_product(self, client, db_session, store_a, product_b, headers):
        response = client.post(
            f'/api/products/{product_b.id}/receive', headers=headers(store_a), json={'quantity': 5},
        )
        assert response.status_code == 404
        assert db_session.get(Product, product_b.id).stock_quantity == 10

    def test_stock_log_is_scoped(self, client, db_session, store_a, product_a, product_b, headers):
        response = client.get('/api/logs/stock', headers=headers(store_a))
        assert {m['product_id'] for m in response.json['mutations']} == {product_a.id}

    def test_cannot_attach_foreign_product_to_promotion(self, client, db_session, store_a, product_b, headers):
        created = client.post('/api/promotions', headers=headers(store_a), json={
            'name': 'Sale', 'discount_type': 'percent', 'discount_value': 10,
        })
        promo_id = created.json['promotion']['id']
        response = client.post(
            f'/api/promotions/{promo_id}/products', headers=headers(store_a), json={'product_id': product_b.id},
        )
        assert response.status_code == 404
