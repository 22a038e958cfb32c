"""Models package - exports all SQLAlchemy models."""
from posledger.models.product import Product
from posledger.models.client import Client
from posledger.models.sale import Sale, SaleType
from posledger.models.sale_item import SaleItem
from posledger.models.suspended_sale import SuspendedSale
from posledger.models.app_settings import AppSettings

__all__ = [
    'Product', 'Client',
    'Sale', 'SaleType', 'SaleItem',
    'SuspendedSale',
    'AppSettings',
]
