# watercan/services/order_service.py
"""
Order placement, status updates and can returns.

Placing an order touches three records in one unit of work: the new
order, the customer's balance (with its debit transaction) and the
customer's count of cans in possession.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from watercan.core import config
from watercan.core.exceptions import (
    CustomerNotFound,
    ExcessiveReturn,
    InsufficientBalance,
    InvalidQuantity,
    InvalidStatus,
    InvalidTransition,
    OrderNotFound,
    ValidationFailed,
)
from watercan.db.unit_of_work import lock_one, unit_of_work
from watercan.models.customer import Customer
from watercan.models.enums import ORDER_TRANSITIONS, OrderStatus, TransactionSource, TransactionType
from watercan.models.order import Order
from watercan.services.balance_service import record_transaction
from watercan.services.customer_service import ProfileDefaults, lock_customer, new_customer, open_account
from watercan.utils.validation_functions import parse_datetime, parse_positive_int

logger = logging.getLogger(__name__)


@dataclass
class OrderPlacement:
    order: Order
    customer: Customer

    @property
    def order_id(self):
        return self.order.id

    @property
    def total_amount(self) -> int:
        return self.order.total_amount

    @property
    def status(self) -> OrderStatus:
        return self.order.status


def parse_status(status) -> OrderStatus:
    if isinstance(status, OrderStatus):
        return status
    if status not in OrderStatus.__members__:
        raise InvalidStatus(f"Invalid status. Allowed: {list(OrderStatus.__members__.keys())}")
    return OrderStatus[status]


def parse_order_id(order_id) -> uuid.UUID:
    if isinstance(order_id, uuid.UUID):
        return order_id
    try:
        return uuid.UUID(str(order_id))
    except ValueError:
        # A malformed id cannot match any order
        raise OrderNotFound()


def place_order(
    db: Session,
    customer_key: str,
    quantity,
    requested_at=None,
    profile: Optional[ProfileDefaults] = None,
    unit_price: int = None,
) -> OrderPlacement:
    quantity = parse_positive_int(quantity, InvalidQuantity())
    order_date = parse_datetime(requested_at, ValidationFailed("Invalid order date")) or datetime.utcnow()
    price = config.UNIT_PRICE if unit_price is None else unit_price
    total = price * quantity

    with unit_of_work(db, "place_order"):
        customer = lock_customer(db, customer_key)
        if not customer:
            customer = new_customer(customer_key, config.STARTING_BALANCE, profile)
            open_account(db, customer, actor_id=customer_key)
            logger.info("Created customer %s on first order", customer_key)

        if customer.balance < total:
            logger.info(
                "Order of %s cans refused for customer %s: total %s, balance %s",
                quantity, customer_key, total, customer.balance
            )
            raise InsufficientBalance(
                "Insufficient balance. Please add funds to your account.",
                details={"balance": customer.balance, "required": total}
            )

        order = Order(
            user_id=customer_key,
            quantity=quantity,
            price=price,
            total_amount=total,
            status=OrderStatus.pending,
            order_date=order_date
        )
        db.add(order)

        customer.balance -= total
        customer.cans_in_possession += quantity
        record_transaction(
            db,
            customer,
            amount=total,
            kind=TransactionType.debit,
            description=f"Order of {quantity} can{'s' if quantity != 1 else ''}",
            actor_id=customer_key,
            source=TransactionSource.order,
        )

    logger.info(
        "Order %s placed by customer %s: %s cans, total %s",
        order.id, customer_key, quantity, total
    )
    return OrderPlacement(order=order, customer=customer)


def update_order_status(db: Session, order_id, status=None, delivery_date=None) -> Order:
    new_status = parse_status(status) if status else None
    delivered_on = parse_datetime(delivery_date, ValidationFailed("Invalid delivery date"))

    with unit_of_work(db, "update_order_status"):
        order = lock_one(db.query(Order).filter(Order.id == parse_order_id(order_id)))
        if not order:
            raise OrderNotFound()

        if new_status and new_status != order.status:
            if new_status not in ORDER_TRANSITIONS[order.status]:
                raise InvalidTransition(
                    f"Cannot move order from {order.status.value} to {new_status.value}",
                    details={"from": order.status.value, "to": new_status.value}
                )
            order.status = new_status
        if delivered_on:
            order.delivery_date = delivered_on

    logger.info("Order %s updated: status %s", order_id, order.status.value)
    return order


def process_can_return(db: Session, customer_key: str, quantity) -> int:
    """Reduce the cans a customer holds; returns how many they still have."""
    quantity = parse_positive_int(quantity, InvalidQuantity())

    with unit_of_work(db, "process_can_return"):
        customer = lock_customer(db, customer_key)
        if not customer:
            raise CustomerNotFound()

        if quantity > customer.cans_in_possession:
            raise ExcessiveReturn(
                f"Cannot return {quantity} cans. Customer holds {customer.cans_in_possession}.",
                details={"cans_in_possession": customer.cans_in_possession, "requested": quantity}
            )
        customer.cans_in_possession -= quantity

    logger.info(
        "Customer %s returned %s cans; %s remaining",
        customer_key, quantity, customer.cans_in_possession
    )
    return customer.cans_in_possession


def get_order_by_id(db: Session, order_id) -> Order:
    order = db.query(Order).filter(Order.id == parse_order_id(order_id)).first()
    if not order:
        raise OrderNotFound()
    return order


def _filtered_orders(query, status=None, start_date=None, end_date=None):
    if status:
        query = query.filter(Order.status == parse_status(status))
    start = parse_datetime(start_date, ValidationFailed("Invalid start date"))
    end = parse_datetime(end_date, ValidationFailed("Invalid end date"))
    if start:
        query = query.filter(Order.order_date >= start)
    if end:
        query = query.filter(Order.order_date <= end)
    return query.order_by(Order.order_date.desc()).all()


def get_user_orders(db: Session, user_id: str, status=None, start_date=None, end_date=None):
    return _filtered_orders(db.query(Order).filter(Order.user_id == user_id), status, start_date, end_date)


def get_all_orders(db: Session, status=None, start_date=None, end_date=None):
    return _filtered_orders(db.query(Order), status, start_date, end_date)
