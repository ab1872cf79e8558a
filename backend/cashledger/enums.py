# Overview: Closed enumerations stored as strings on the ledger tables.

from __future__ import annotations

from enum import Enum


class MovementType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    SALE = "SALE"
    REFUND = "REFUND"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD_DEBIT = "CARD_DEBIT"
    CARD_CREDIT = "CARD_CREDIT"
    ACCOUNT = "ACCOUNT"
    TRANSFER = "TRANSFER"


class SessionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


# Movement types that put money into the drawer / take it out
INFLOW_TYPES = frozenset({MovementType.INCOME.value, MovementType.SALE.value})
OUTFLOW_TYPES = frozenset({MovementType.EXPENSE.value, MovementType.REFUND.value})

# Types entered by hand at the till (SALE/REFUND come from order checkout)
MANUAL_TYPES = (MovementType.INCOME.value, MovementType.EXPENSE.value)

MOVEMENT_TYPES = tuple(t.value for t in MovementType)
PAYMENT_METHODS = tuple(m.value for m in PaymentMethod)
