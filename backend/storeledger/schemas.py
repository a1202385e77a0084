# Overview: Request schemas; every route parses its body through one of these.

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StringConstraints, model_validator

from .validation import MAX_AMOUNT


Amount = Annotated[int, Field(strict=True, ge=0, le=MAX_AMOUNT)]
Quantity = Annotated[int, Field(strict=True, gt=0)]
Percent = Annotated[int, Field(strict=True, ge=0, le=100)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=32)]
OptionalText = Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]]

DiscountType = Literal["percent", "fixed"]
PaymentType = Literal["cash", "card", "debt"]
OrderStatus = Literal["pending", "confirmed", "delivered", "cancelled"]


class Schema(BaseModel):
    model_config = ConfigDict(extra="forbid")


def _check_percent(discount_type, value, field):
    if discount_type == "percent" and value is not None and not 0 <= value <= 100:
        raise ValueError(f"{field} must be between 0 and 100 for percent discounts")


# --- Sales -----------------------------------------------------------------

class SaleLineIn(Schema):
    product_id: StrictInt
    quantity: Quantity
    unit_price: Amount
    line_total: Amount


class DebtCustomerIn(Schema):
    customer_name: Name
    customer_phone: Phone


class SaleIn(Schema):
    items: list[SaleLineIn] = Field(min_length=1)
    payment_type: PaymentType
    cashier_name: OptionalText = None
    sale_number: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]] = None
    debt: Optional[DebtCustomerIn] = None

    @model_validator(mode="after")
    def _debt_requires_customer(self):
        if self.payment_type == "debt" and self.debt is None:
            raise ValueError("debt customer is required when payment_type is debt")
        return self


# --- Debts -----------------------------------------------------------------

class DebtPaymentIn(Schema):
    # Range is a business rule (InvalidAmount), checked by debt_service
    amount: StrictInt


# --- Customers -------------------------------------------------------------

class CustomerIn(Schema):
    name: Name
    phone: Phone


class CustomerUpdateIn(Schema):
    name: Optional[Name] = None
    phone: Optional[Phone] = None


class CustomerMergeIn(Schema):
    source_id: StrictInt
    target_id: StrictInt


# --- Orders ----------------------------------------------------------------

class OrderItemIn(Schema):
    product_id: StrictInt
    quantity: Quantity
    price: Amount
    total: Amount


class OrderIn(Schema):
    customer_name: Name
    customer_phone: Phone
    customer_address: OptionalText = None
    total_amount: Amount
    notes: Optional[str] = None
    items: list[OrderItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _total_matches_items(self):
        if self.total_amount != sum(item.total for item in self.items):
            raise ValueError("total_amount must equal the sum of item totals")
        return self


class OrderStatusIn(Schema):
    status: OrderStatus


class ShopCustomerIn(Schema):
    name: Name
    phone: Phone
    address: OptionalText = None


class ShopProductLineIn(Schema):
    product_id: StrictInt
    quantity: Quantity


class ShopBundleLineIn(Schema):
    bundle_id: StrictInt
    quantity: Quantity


class ShopOrderIn(Schema):
    customer: ShopCustomerIn
    items: list[ShopProductLineIn] = Field(default_factory=list)
    bundles: list[ShopBundleLineIn] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.items and not self.bundles:
            raise ValueError("order must contain at least one product or bundle")
        return self


# --- Catalog ---------------------------------------------------------------

class ProductIn(Schema):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    barcode: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]] = None
    unit: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=16)] = "dona"
    selling_price: Amount
    discount_percent: Percent = 0
    stock_quantity: Annotated[int, Field(strict=True, ge=0)] = 0
    min_stock_alert: Annotated[int, Field(strict=True, ge=0)] = 0
    is_active: StrictBool = True


class ProductUpdateIn(Schema):
    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]] = None
    barcode: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]] = None
    unit: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=16)]] = None
    selling_price: Optional[Amount] = None
    discount_percent: Optional[Percent] = None
    stock_quantity: Optional[Annotated[int, Field(strict=True, ge=0)]] = None
    min_stock_alert: Optional[Annotated[int, Field(strict=True, ge=0)]] = None
    is_active: Optional[StrictBool] = None


class StockReceiveIn(Schema):
    quantity: Quantity
    note: OptionalText = None


class PromotionIn(Schema):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Amount
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    active: StrictBool = True

    @model_validator(mode="after")
    def _check(self):
        _check_percent(self.discount_type, self.discount_value, "discount_value")
        return self


class PromotionUpdateIn(Schema):
    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]] = None
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Amount] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    active: Optional[StrictBool] = None


class PromotionProductIn(Schema):
    product_id: StrictInt
    override_discount_type: Optional[DiscountType] = None
    override_discount_value: Optional[Amount] = None

    @model_validator(mode="after")
    def _check(self):
        _check_percent(self.override_discount_type, self.override_discount_value, "override_discount_value")
        return self


class ActiveFlagIn(Schema):
    active: StrictBool


class BundleIn(Schema):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    price: Amount
    active: StrictBool = True


class BundleUpdateIn(Schema):
    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]] = None
    price: Optional[Amount] = None
    active: Optional[StrictBool] = None


class BundleItemIn(Schema):
    product_id: StrictInt
    quantity: Quantity


class BundleItemQuantityIn(Schema):
    quantity: Quantity
