# watercan/services/balance_service.py
"""
Customer balance adjustments and the transaction log behind them.

Every change to ``Customer.balance`` goes through ``record_transaction`` in
the same unit of work, so the balance always equals the signed sum of the
customer's transactions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.core.exceptions import (
    CustomerNotFound,
    InsufficientBalance,
    InvalidAmount,
    InvalidKind,
    ValidationFailed,
)
from watercan.db.unit_of_work import lock_one, unit_of_work
from watercan.models.customer import Customer
from watercan.models.enums import TransactionSource, TransactionType
from watercan.models.transaction import Transaction
from watercan.utils.validation_functions import parse_datetime, parse_positive_int

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS = {
    TransactionType.credit: "Account recharge",
    TransactionType.debit: "Balance adjustment",
}


@dataclass
class BalanceAdjustment:
    transaction: Transaction
    new_balance: int


@dataclass
class TransactionPage:
    transactions: List[Transaction]
    total: int
    page: int
    pages: int

    @property
    def pagination(self):
        return {"total": self.total, "page": self.page, "pages": self.pages}


@dataclass
class LedgerCheck:
    customer_id: str
    balance: int
    ledger_total: int
    transaction_count: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_total


def parse_kind(kind) -> TransactionType:
    if isinstance(kind, TransactionType):
        return kind
    if kind not in TransactionType.__members__:
        raise InvalidKind()
    return TransactionType[kind]


def record_transaction(
    db: Session,
    customer: Customer,
    amount: int,
    kind: TransactionType,
    description: str,
    actor_id: str,
    source: TransactionSource = TransactionSource.manual,
) -> Transaction:
    """Append the audit record for a balance change already applied to ``customer``."""
    transaction = Transaction(
        customer_id=customer.id,
        amount=amount,
        type=kind,
        description=description,
        source=source,
        created_by=actor_id,
        balance_after=customer.balance,
        created_at=datetime.utcnow()
    )
    db.add(transaction)
    return transaction


def adjust_balance(
    db: Session,
    customer_key: str,
    amount,
    kind,
    description: Optional[str],
    actor_id: str,
) -> BalanceAdjustment:
    amount = parse_positive_int(amount, InvalidAmount())
    kind = parse_kind(kind)

    with unit_of_work(db, "adjust_balance"):
        customer = lock_one(db.query(Customer).filter(Customer.id == customer_key))
        if not customer:
            raise CustomerNotFound()

        if kind == TransactionType.debit:
            if customer.balance < amount:
                logger.info(
                    "Debit of %s refused for customer %s: balance %s",
                    amount, customer_key, customer.balance
                )
                raise InsufficientBalance(
                    details={"balance": customer.balance, "requested": amount}
                )
            customer.balance -= amount
        else:
            customer.balance += amount

        transaction = record_transaction(
            db,
            customer,
            amount=amount,
            kind=kind,
            description=description or DEFAULT_DESCRIPTIONS[kind],
            actor_id=actor_id,
        )

    logger.info(
        "Balance %s of %s for customer %s by %s; new balance %s",
        kind.value, amount, customer_key, actor_id, customer.balance
    )
    return BalanceAdjustment(transaction=transaction, new_balance=customer.balance)


def get_transaction_history(
    db: Session,
    customer_key: str,
    start_date=None,
    end_date=None,
    type: str = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_LIMIT,
) -> TransactionPage:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or config.DEFAULT_PAGE_LIMIT), 1), config.MAX_PAGE_LIMIT)
    start = parse_datetime(start_date, ValidationFailed("Invalid start date"))
    end = parse_datetime(end_date, ValidationFailed("Invalid end date"))

    query = db.query(Transaction).filter(Transaction.customer_id == customer_key)

    # Unknown type filters are ignored rather than rejected
    if type in TransactionType.__members__:
        query = query.filter(Transaction.type == TransactionType[type])
    if start:
        query = query.filter(Transaction.created_at >= start)
    if end:
        query = query.filter(Transaction.created_at <= end)

    total = query.count()
    pages = (total + limit - 1) // limit
    transactions = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return TransactionPage(transactions=transactions, total=total, page=page, pages=pages)


def verify_customer_ledger(db: Session, customer_key: str) -> LedgerCheck:
    """Compare a customer's stored balance with the signed sum of its transactions."""
    customer = db.query(Customer).filter(Customer.id == customer_key).first()
    if not customer:
        raise CustomerNotFound()

    signed = case(
        (Transaction.type == TransactionType.credit, Transaction.amount),
        else_=-Transaction.amount
    )
    ledger_total, count = (
        db.query(func.coalesce(func.sum(signed), 0), func.count(Transaction.id))
        .filter(Transaction.customer_id == customer_key)
        .first()
    )

    check = LedgerCheck(
        customer_id=customer_key,
        balance=customer.balance,
        ledger_total=int(ledger_total),
        transaction_count=count
    )
    if not check.consistent:
        logger.warning(
            "Ledger mismatch for customer %s: balance %s, transactions sum to %s",
            customer_key, check.balance, check.ledger_total
        )
    return check
