# Overview: HTTP round trips through the JSON API.

from storeledger.models import Product


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json['checks']['database']['status'] == 'healthy'


class TestProductsApi:
    def test_create_and_price(self, client, db_session, store_a, headers):
        response = client.post('/api/products', headers=headers(store_a, actor='owner'), json={
            'name': 'Juice', 'barcode': '4780001', 'selling_price': 1000, 'stock_quantity': 4,
        })
        assert response.status_code == 201
        product = response.json['product']
        assert product['stock_quantity'] == 4

        price = client.get(f"/api/products/{product['id']}/price", headers=headers(store_a))
        assert price.json == {
            'product_id': product['id'], 'price': 1000, 'base_price': 1000, 'applied_promotion_id': None,
        }

        log = client.get('/api/logs/stock', headers=headers(store_a)).json['mutations']
        assert [(m['reason'], m['delta'], m['actor']) for m in log] == [('import', 4, 'owner')]

    def test_duplicate_barcode_conflict(self, client, db_session, store_a, product_a, headers):
        response = client.post('/api/products', headers=headers(store_a), json={
            'name': 'Clone', 'barcode': 'A-001', 'selling_price': 1,
        })
        assert response.status_code == 409
        assert response.json['error'] == 'conflict'

    def test_validation_errors_list_fields(self, client, db_session, store_a, headers):
        response = client.post('/api/products', headers=headers(store_a), json={
            'name': '', 'selling_price': '12.5', 'discount_percent': 150,
        })
        assert response.status_code == 400
        body = response.json
        assert body['error'] == 'validation_error'
        fields = {f['field'] for f in body['details']['fields']}
        assert {'name', 'selling_price', 'discount_percent'} <= fields

    def test_soft_delete_hides_product(self, client, db_session, store_a, product_a, headers):
        assert client.delete(f'/api/products/{product_a.id}', headers=headers(store_a)).status_code == 200
        listed = client.get('/api/products', headers=headers(store_a)).json['products']
        assert listed == []
        assert db_session.get(Product, product_a.id) is not None


class TestSalesApi:
    def test_cash_sale(self, client, db_session, store_a, product_a, headers):
        response = client.post('/api/sales', headers=headers(store_a), json={
            'payment_type': 'cash',
            'cashier_name': 'Kassir',
            'items': [{'product_id': product_a.id, 'quantity': 2, 'unit_price': 10000, 'line_total': 20000}],
        })
        assert response.status_code == 201
        sale = response.json['sale']
        assert sale['sale_number'] == 'S-000001'
        assert sale['total_amount'] == 20000

        fetched = client.get(f"/api/sales/{sale['id']}", headers=headers(store_a))
        assert fetched.json['sale']['items'][0]['quantity'] == 2

    def test_insufficient_stock_is_409(self, client, db_session, store_a, product_a, headers):
        response = client.post('/api/sales', headers=headers(store_a), json={
            'payment_type': 'cash',
            'items': [{'product_id': product_a.id, 'quantity': 11, 'unit_price': 10000, 'line_total': 110000}],
        })
        assert response.status_code == 409
        assert response.json['error'] == 'insufficient_stock'

    def test_debt_sale_requires_customer(self, client, db_session, store_a, product_a, headers):
        response = client.post('/api/sales', headers=headers(store_a), json={
            'payment_type': 'debt',
            'items': [{'product_id': product_a.id, 'quantity': 1, 'unit_price': 10000, 'line_total': 10000}],
        })
        assert response.status_code == 400

    def test_debt_sale_and_payment(self, client, db_session, store_a, product_a, headers):
        client.post('/api/sales', headers=headers(store_a), json={
            'payment_type': 'debt',
            'debt': {'customer_name': 'Ali', 'customer_phone': '901234567'},
            'items': [{'product_id': product_a.id, 'quantity': 1, 'unit_price': 10000, 'line_total': 10000}],
        })
        debts = client.get('/api/debts?status=active', headers=headers(store_a)).json['debts']
        assert len(debts) == 1
        debt_id = debts[0]['id']

        too_much = client.post(f'/api/debts/{debt_id}/payments', headers=headers(store_a), json={'amount': 10001})
        assert too_much.status_code == 400
        assert too_much.json['error'] == 'invalid_amount'

        paid = client.post(f'/api/debts/{debt_id}/payments', headers=headers(store_a), json={'amount': 10000})
        assert paid.status_code == 201
        assert paid.json['debt']['status'] == 'paid'

        details = client.get(f'/api/debts/{debt_id}', headers=headers(store_a)).json['debt']
        assert len(details['payments']) == 1
        assert len(details['sales']) == 1


class TestOrdersApi:
    def _create(self, client, store, product, headers):
        return client.post('/api/orders', headers=headers(store), json={
            'customer_name': 'Ali',
            'customer_phone': '901234567',
            'total_amount': 20000,
            'items': [{'product_id': product.id, 'quantity': 2, 'price': 10000, 'total': 20000}],
        })

    def test_total_must_match_items(self, client, db_session, store_a, product_a, headers):
        response = client.post('/api/orders', headers=headers(store_a), json={
            'customer_name': 'Ali',
            'customer_phone': '901234567',
            'total_amount': 1,
            'items': [{'product_id': product_a.id, 'quantity': 2, 'price': 10000, 'total': 20000}],
        })
        assert response.status_code == 400

    def test_deliver_twice(self, client, db_session, store_a, product_a, headers):
        order_id = self._create(client, store_a, product_a, headers).json['order']['id']

        first = client.patch(f'/api/orders/{order_id}/status', headers=headers(store_a), json={'status': 'delivered'})
        second = client.patch(f'/api/orders/{order_id}/status', headers=headers(store_a), json={'status': 'delivered'})

        assert first.status_code == 200
        assert second.status_code == 200
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock_quantity == 8

        cancel = client.patch(f'/api/orders/{order_id}/status', headers=headers(store_a), json={'status': 'cancelled'})
        assert cancel.status_code == 409

    def test_list_by_status(self, client, db_session, store_a, product_a, headers):
        self._create(client, store_a, product_a, headers)
        pending = client.get('/api/orders?status=pending', headers=headers(store_a)).json['orders']
        delivered = client.get('/api/orders?status=delivered', headers=headers(store_a)).json['orders']
        assert len(pending) == 1
        assert delivered == []


class TestCustomersApi:
    def test_merge(self, client, db_session, store_a, make_customer, headers):
        source = make_customer(store_a, name="Dup", phone="901111111")
        target = make_customer(store_a, name="Real", phone="902222222")
        response = client.post('/api/customers/merge', headers=headers(store_a), json={
            'source_id': source.id, 'target_id': target.id,
        })
        assert response.status_code == 200
        assert response.json['customer']['id'] == target.id
        assert client.get(f'/api/customers/{source.id}', headers=headers(store_a)).status_code == 404


class TestPromotionsApi:
    def test_percent_out_of_range_rejected(self, client, db_session, store_a, headers):
        response = client.post('/api/promotions', headers=headers(store_a), json={
            'name': 'Too much', 'discount_type': 'percent', 'discount_value': 120,
        })
        assert response.status_code == 400

    def test_update_rechecks_percent_range(self, client, db_session, store_a, headers):
        created = client.post('/api/promotions', headers=headers(store_a), json={
            'name': 'Flat', 'discount_type': 'fixed', 'discount_value': 5000,
        }).json['promotion']
        response = client.patch(
            f"/api/promotions/{created['id']}", headers=headers(store_a), json={'discount_type': 'percent'},
        )
        assert response.status_code == 400

    def test_promotion_changes_effective_price(self, client, db_session, store_a, product_a, headers):
        promo = client.post('/api/promotions', headers=headers(store_a), json={
            'name': 'Twenty', 'discount_type': 'percent', 'discount_value': 20,
        }).json['promotion']
        attached = client.post(
            f"/api/promotions/{promo['id']}/products", headers=headers(store_a), json={'product_id': product_a.id},
        )
        assert attached.status_code == 201

        price = client.get(f'/api/products/{product_a.id}/price', headers=headers(store_a)).json
        assert price['price'] == 8000
        assert price['applied_promotion_id'] == promo['id']

        client.post(f"/api/promotions/{promo['id']}/active", headers=headers(store_a), json={'active': False})
        price = client.get(f'/api/products/{product_a.id}/price', headers=headers(store_a)).json
        assert price['price'] == 10000


class TestShopApi:
    def test_storefront_flow(self, client, db_session, store_a, product_a, make_product):
        make_product(store_a, name="Sold out", stock=0)

        info = client.get('/api/shop/store-a')
        assert info.json['store']['slug'] == 'store-a'

        products = client.get('/api/shop/store-a/products').json['products']
        assert [p['id'] for p in products] == [product_a.id]

        response = client.post('/api/shop/store-a/orders', json={
            'customer': {'name': 'Zarina', 'phone': '935550000', 'address': 'Chilonzor'},
            'items': [{'product_id': product_a.id, 'quantity': 2}],
        })
        assert response.status_code == 201
        order = response.json['order']
        assert order['total_amount'] == 20000
        assert order['status'] == 'pending'

    def test_unknown_store(self, client, db_session):
        assert client.get('/api/shop/nope/products').status_code == 404

    def test_client_prices_are_not_accepted(self, client, db_session, store_a, product_a):
        response = client.post('/api/shop/store-a/orders', json={
            'customer': {'name': 'Zarina', 'phone': '935550000'},
            'items': [{'product_id': product_a.id, 'quantity': 1, 'price': 1}],
        })
        assert response.status_code == 400
