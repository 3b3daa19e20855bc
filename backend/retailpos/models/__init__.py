from .catalog import Brand, Category, Supplier
from .inventory import Product, StockMovement
from .sales import Sale, SaleItem
from .auth import User, SessionToken
from .activity import ActivityLog

__all__ = [
    'Brand', 'Category', 'Supplier',
    'Product', 'StockMovement',
    'Sale', 'SaleItem',
    'User', 'SessionToken',
    'ActivityLog',
]
