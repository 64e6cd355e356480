# watercan/models/transaction.py
import uuid
from datetime import datetime
from sqlalchemy import Column, Text, DateTime, Integer, Enum, Uuid, CheckConstraint, Index, event
from sqlalchemy.orm import object_session
from watercan.db.base import Base
from watercan.models.enums import TransactionSource, TransactionType


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_customer_created", "customer_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Not a foreign key: transactions outlive any customer row changes
    customer_id = Column(Text, nullable=False)
    amount = Column(Integer, nullable=False)
    type = Column(Enum(TransactionType, name="transaction_type"), nullable=False)
    description = Column(Text, nullable=False)
    # What produced the entry; opening credits are not revenue
    source = Column(Enum(TransactionSource, name="transaction_source"), default=TransactionSource.manual, nullable=False)
    created_by = Column(Text, nullable=False)
    balance_after = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    @property
    def signed_amount(self):
        return self.amount if self.type == TransactionType.credit else -self.amount


@event.listens_for(Transaction, "before_update")
def _refuse_transaction_update(mapper, connection, target):
    if object_session(target).is_modified(target, include_collections=False):
        raise ValueError("Transactions are append-only and cannot be modified")


@event.listens_for(Transaction, "before_delete")
def _refuse_transaction_delete(mapper, connection, target):
    raise ValueError("Transactions are append-only and cannot be deleted")
