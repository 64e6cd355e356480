# watercan/models/order.py
import uuid
from datetime import datetime
from sqlalchemy import Column, Text, DateTime, Integer, Enum, Uuid, CheckConstraint, Index, event
from watercan.db.base import Base
from watercan.models.enums import OrderStatus


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        CheckConstraint("total_amount = price * quantity", name="ck_orders_total_matches"),
        Index("ix_orders_user_order_date", "user_id", "order_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    total_amount = Column(Integer, nullable=False)
    status = Column(Enum(OrderStatus, name="order_status"), default=OrderStatus.pending, nullable=False)
    order_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    delivery_date = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


@event.listens_for(Order, "before_insert")
@event.listens_for(Order, "before_update")
def _compute_total(mapper, connection, target):
    target.total_amount = target.price * target.quantity
