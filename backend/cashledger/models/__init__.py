from .reference import Branch, Sector, Order
from .registers import CashRegister, CashRegisterSession, CashMovement

__all__ = [
    'Branch', 'Sector', 'Order',
    'CashRegister', 'CashRegisterSession', 'CashMovement',
]
