from .catalog import Category, Supplier, Product
from .inventory import StockMovement
from .customers import Client
from .sales import Sale, SaleItem
from .audit import AuditLog

__all__ = [
    'Category', 'Supplier', 'Product',
    'StockMovement',
    'Client',
    'Sale', 'SaleItem',
    'AuditLog',
]
