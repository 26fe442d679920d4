from .catalog import Product
from .orders import Order, OrderItem, OrderStatus, Counter
from .ledger import Sale, Balance, BalanceTransaction, BALANCE_ID

__all__ = [
    'Product',
    'Order', 'OrderItem', 'OrderStatus', 'Counter',
    'Sale', 'Balance', 'BalanceTransaction', 'BALANCE_ID',
]
