from .transactions import Transaction
from .loans import Loan
from .inventory import Product
from .settings import AppSettings

__all__ = [
    'Transaction',
    'Loan',
    'Product',
    'AppSettings',
]
