from .catalog import Category, Product
from .sales import Sale
from .inventory import StockMovement
from .auth import User, SessionToken
from .documents import DocumentSequence

__all__ = [
    'Category', 'Product',
    'Sale',
    'StockMovement',
    'User', 'SessionToken',
    'DocumentSequence',
]
