from .tenancy import Store, DocumentSequence
from .inventory import Product, StockMutation
from .promotions import Promotion, PromotionProduct, Bundle, BundleItem
from .customers import Customer, Debt, DebtPayment, DebtSale
from .sales import Sale, SaleItem
from .orders import Order, OrderItem

__all__ = [
    'Store', 'DocumentSequence',
    'Product', 'StockMutation',
    'Promotion', 'PromotionProduct', 'Bundle', 'BundleItem',
    'Customer', 'Debt', 'DebtPayment', 'DebtSale',
    'Sale', 'SaleItem',
    'Order', 'OrderItem',
]
