# watercan/models/enums.py
import enum


class TransactionType(enum.Enum):
    credit = "credit"
    debit = "debit"


class OrderStatus(enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    delivered = "delivered"
    cancelled = "cancelled"


class TransactionSource(enum.Enum):
    manual = "manual"
    order = "order"
    opening = "opening"


class CustomerStatus(enum.Enum):
    active = "active"
    inactive = "inactive"


class InventoryOperation(enum.Enum):
    add = "add"
    remove = "remove"


class AppRole(enum.Enum):
    owner = "owner"
    customer = "customer"


TERMINAL_ORDER_STATUSES = {OrderStatus.delivered, OrderStatus.cancelled}

# Forward-only order lifecycle
ORDER_TRANSITIONS = {
    OrderStatus.pending: {OrderStatus.confirmed, OrderStatus.cancelled},
    OrderStatus.confirmed: {OrderStatus.delivered, OrderStatus.cancelled},
    OrderStatus.delivered: set(),
    OrderStatus.cancelled: set(),
}
