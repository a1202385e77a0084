# Overview: Pytest coverage for promotion and bundle maintenance.

import logging

import pytest

from storeledger.errors import NotFoundError, ValidationError
from storeledger.models import Bundle, BundleItem, Promotion, PromotionProduct
from storeledger.services import bundle_service, promotions_service
from storeledger.services.pricing_service import resolve_effective_price


class TestPromotionUpdates:
    def test_type_switch_rechecks_inherited_override_values(self, db_session, store_a, make_product):
        product = make_product(store_a, selling_price=10000)
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Flat", "discount_type": "fixed", "discount_value": 100,
        })
        promotions_service.attach_product(store_a.id, promo.id, product.id, None, 5000)

        with pytest.raises(ValidationError) as exc:
            promotions_service.update_promotion(store_a.id, promo.id, {
                "discount_type": "percent", "discount_value": 10,
            })
        assert "override_discount_value" in exc.value.message

        db_session.expire_all()
        assert db_session.get(Promotion, promo.id).discount_type == "fixed"
        assert resolve_effective_price(store_a.id, product.id).price == 5000

    def test_type_switch_allowed_when_overrides_fit(self, db_session, store_a, make_product):
        product = make_product(store_a, selling_price=10000)
        other = make_product(store_a, name="Other", selling_price=10000)
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Flat", "discount_type": "fixed", "discount_value": 100,
        })
        promotions_service.attach_product(store_a.id, promo.id, product.id, None, 25)
        promotions_service.attach_product(store_a.id, promo.id, other.id, "fixed", 5000)

        updated = promotions_service.update_promotion(store_a.id, promo.id, {
            "discount_type": "percent", "discount_value": 10,
        })

        assert updated.discount_type == "percent"
        assert resolve_effective_price(store_a.id, product.id).price == 7500
        assert resolve_effective_price(store_a.id, other.id).price == 5000

    def test_out_of_range_stored_percent_is_logged(self, db_session, store_a, make_product, caplog):
        product = make_product(store_a, selling_price=10000)
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Ten", "discount_type": "percent", "discount_value": 10,
        })
        db_session.add(PromotionProduct(
            promotion_id=promo.id, product_id=product.id, override_discount_value=150,
        ))
        db_session.commit()

        with caplog.at_level(logging.WARNING):
            result = resolve_effective_price(store_a.id, product.id)

        assert result.price == 0
        assert "Out-of-range percent discount" in caplog.text


class TestPromotionLifecycle:
    def test_detach_product(self, db_session, store_a, product_a):
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Twenty", "discount_type": "percent", "discount_value": 20,
        })
        promotions_service.attach_product(store_a.id, promo.id, product_a.id)
        assert resolve_effective_price(store_a.id, product_a.id).price == 8000

        promotions_service.detach_product(store_a.id, promo.id, product_a.id)

        assert db_session.query(PromotionProduct).count() == 0
        assert resolve_effective_price(store_a.id, product_a.id).price == 10000

    def test_detach_unattached_product(self, db_session, store_a, product_a):
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Twenty", "discount_type": "percent", "discount_value": 20,
        })
        with pytest.raises(NotFoundError):
            promotions_service.detach_product(store_a.id, promo.id, product_a.id)

    def test_delete_promotion_removes_links(self, db_session, store_a, product_a):
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Twenty", "discount_type": "percent", "discount_value": 20,
        })
        promotions_service.attach_product(store_a.id, promo.id, product_a.id)

        promotions_service.delete_promotion(store_a.id, promo.id)

        assert db_session.query(Promotion).count() == 0
        assert db_session.query(PromotionProduct).count() == 0
        assert resolve_effective_price(store_a.id, product_a.id).price == 10000

    def test_delete_other_store_promotion(self, db_session, store_a, store_b):
        promo = promotions_service.create_promotion(store_a.id, {
            "name": "Twenty", "discount_type": "percent", "discount_value": 20,
        })
        with pytest.raises(NotFoundError):
            promotions_service.delete_promotion(store_b.id, promo.id)
        assert db_session.query(Promotion).count() == 1


class TestBundleMaintenance:
    @pytest.fixture
    def bundle(self, db_session, store_a, product_a):
        bundle = bundle_service.create_bundle(store_a.id, {"name": "Set", "price": 9000})
        bundle_service.add_item(store_a.id, bundle.id, product_a.id, 1)
        return bundle

    def test_update_bundle(self, db_session, store_a, bundle):
        updated = bundle_service.update_bundle(store_a.id, bundle.id, {"price": 8500, "active": False})
        assert (updated.name, updated.price, updated.active) == ("Set", 8500, False)

    def test_update_item_quantity(self, db_session, store_a, bundle):
        item = bundle.items[0]
        bundle_service.update_item(store_a.id, bundle.id, item.id, 3)

        db_session.expire_all()
        assert db_session.get(BundleItem, item.id).quantity == 3

    def test_update_item_rejects_non_positive_quantity(self, db_session, store_a, bundle):
        with pytest.raises(ValidationError):
            bundle_service.update_item(store_a.id, bundle.id, bundle.items[0].id, 0)

    def test_remove_item(self, db_session, store_a, bundle):
        item_id = bundle.items[0].id
        bundle_service.remove_item(store_a.id, bundle.id, item_id)

        assert db_session.get(BundleItem, item_id) is None
        with pytest.raises(NotFoundError):
            bundle_service.remove_item(store_a.id, bundle.id, item_id)

    def test_item_of_another_bundle_not_found(self, db_session, store_a, bundle):
        other = bundle_service.create_bundle(store_a.id, {"name": "Other", "price": 100})
        with pytest.raises(NotFoundError):
            bundle_service.update_item(store_a.id, other.id, bundle.items[0].id, 2)

    def test_delete_bundle_removes_items(self, db_session, store_a, bundle):
        bundle_service.delete_bundle(store_a.id, bundle.id)

        assert db_session.query(Bundle).count() == 0
        assert db_session.query(BundleItem).count() == 0

    def test_delete_other_store_bundle(self, db_session, store_b, bundle):
        with pytest.raises(NotFoundError):
            bundle_service.delete_bundle(store_b.id, bundle.id)
        assert db_session.query(Bundle).count() == 1
