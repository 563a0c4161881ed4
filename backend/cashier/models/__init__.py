from .auth import User
from .customers import Customer
from .inventory import Product
from .cart import CartItem
from .transactions import Transaction, TransactionDetail, Profit
from .settings import PaymentSetting, PaymentGatewayConfig

__all__ = [
    'User',
    'Customer',
    'Product',
    'CartItem',
    'Transaction', 'TransactionDetail', 'Profit',
    'PaymentSetting', 'PaymentGatewayConfig',
]
