# watercan/services/customer_service.py
"""Customer profile lookups and writes shared by routes and ledger services."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from watercan.core.exceptions import CustomerExists, CustomerNotFound, InvalidProfile
from watercan.db.unit_of_work import lock_one, unit_of_work
from watercan.models.customer import Customer
from watercan.models.enums import CustomerStatus, TransactionSource, TransactionType
from watercan.models.order import Order
from watercan.services.balance_service import record_transaction
from watercan.utils.validation_functions import parse_non_negative_int, validate_email

logger = logging.getLogger(__name__)

OPENING_BALANCE_DESCRIPTION = "Opening balance"


@dataclass
class ProfileDefaults:
    """Identity details used when a customer row has to be created implicitly."""
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class CustomerProfile:
    customer: Customer
    total_orders: int
    last_order_date: Optional[datetime]


def get_customer(db: Session, customer_key: str) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_key).first()
    if not customer:
        raise CustomerNotFound()
    return customer


def lock_customer(db: Session, customer_key: str) -> Optional[Customer]:
    return lock_one(db.query(Customer).filter(Customer.id == customer_key))


def list_customers(db: Session, status: str = None, search: str = None):
    query = db.query(Customer)

    if status:
        if status not in CustomerStatus.__members__:
            raise InvalidProfile(f"Invalid status. Allowed: {list(CustomerStatus.__members__.keys())}")
        query = query.filter(Customer.status == CustomerStatus[status])

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern)
        ))

    return query.order_by(Customer.name.asc()).all()


def new_customer(customer_key: str, balance: int, defaults: ProfileDefaults = None, **fields) -> Customer:
    """Build an unsaved customer, filling placeholders for missing profile fields."""
    defaults = defaults or ProfileDefaults()
    return Customer(
        id=customer_key,
        name=fields.get("name") or defaults.name or "Customer",
        email=fields.get("email") or defaults.email or "",
        address=fields.get("address") or "Address pending update",
        phone=fields.get("phone") or "Phone pending update",
        balance=balance,
        cans_in_possession=0,
        status=CustomerStatus.active,
        join_date=datetime.utcnow(),
    )


def open_account(db: Session, customer: Customer, actor_id: str):
    """Add a new customer and, for a non-zero opening balance, its opening credit."""
    db.add(customer)
    if customer.balance > 0:
        record_transaction(
            db,
            customer,
            amount=customer.balance,
            kind=TransactionType.credit,
            description=OPENING_BALANCE_DESCRIPTION,
            actor_id=actor_id,
            source=TransactionSource.opening,
        )
    return customer


def create_customer(
    db: Session,
    customer_key: str,
    name: str,
    address: str,
    phone: str,
    email: str = None,
    balance=0,
    actor_id: str = None,
) -> Customer:
    if not customer_key:
        raise InvalidProfile("Customer id is required")
    if not all([name, address, phone]):
        raise InvalidProfile("Missing required fields: name, address, phone")
    if email and not validate_email(email):
        raise InvalidProfile("Invalid email format")
    opening_balance = parse_non_negative_int(balance, InvalidProfile("Invalid opening balance"))

    with unit_of_work(db, "create_customer"):
        if db.query(Customer).filter(Customer.id == customer_key).first():
            raise CustomerExists()

        customer = new_customer(customer_key, opening_balance, name=name, address=address, phone=phone, email=email)
        open_account(db, customer, actor_id or customer_key)

    logger.info("Customer %s created with opening balance %s", customer_key, opening_balance)
    return customer


def update_customer_profile(
    db: Session,
    customer_key: str,
    name: str = None,
    address: str = None,
    phone: str = None,
    email: str = None,
    fallback_profile: ProfileDefaults = None,
):
    """Update the provided profile fields.

    When the customer does not exist yet and ``fallback_profile`` is given
    (a caller writing their own profile), a zero-balance customer is created.
    Returns ``(customer, created)``.
    """
    if email and not validate_email(email):
        raise InvalidProfile("Invalid email format")

    created = False
    with unit_of_work(db, "update_customer_profile"):
        customer = lock_customer(db, customer_key)
        if not customer:
            if fallback_profile is None:
                raise CustomerNotFound()
            customer = new_customer(
                customer_key, 0, fallback_profile,
                name=name, address=address, phone=phone, email=email
            )
            db.add(customer)
            created = True
        else:
            if name:
                customer.name = name
            if address:
                customer.address = address
            if phone:
                customer.phone = phone
            if email:
                customer.email = email

    logger.info("Customer %s profile %s", customer_key, "created" if created else "updated")
    return customer, created


def get_customer_profile(db: Session, customer_key: str) -> CustomerProfile:
    customer = get_customer(db, customer_key)

    total_orders, last_order_date = (
        db.query(func.count(Order.id), func.max(Order.order_date))
        .filter(Order.user_id == customer.id)
        .first()
    )

    return CustomerProfile(
        customer=customer,
        total_orders=total_orders or 0,
        last_order_date=last_order_date
    )
