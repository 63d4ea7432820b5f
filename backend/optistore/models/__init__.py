from .tenancy import Store
from .catalog import Product, ContactLens, StockMovement
from .sales import Sale, SaleItem, PaymentRecord
from .documents import DocumentSequence
from .auth import User, SessionToken

__all__ = [
    'Store',
    'Product', 'ContactLens', 'StockMovement',
    'Sale', 'SaleItem', 'PaymentRecord',
    'DocumentSequence',
    'User', 'SessionToken',
]
