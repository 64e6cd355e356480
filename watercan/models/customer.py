# watercan/models/customer.py
from datetime import datetime
from sqlalchemy import Column, Text, DateTime, Integer, Enum, CheckConstraint
from watercan.db.base import Base
from watercan.models.enums import AppRole, CustomerStatus


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        CheckConstraint("cans_in_possession >= 0", name="ck_customers_cans_non_negative"),
    )

    # External identity key (the identity provider's subject id)
    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    email = Column(Text)
    balance = Column(Integer, default=0, nullable=False)
    cans_in_possession = Column(Integer, default=0, nullable=False)
    status = Column(Enum(CustomerStatus, name="customer_status"), default=CustomerStatus.active, nullable=False)
    role = Column(Enum(AppRole, name="app_role"), default=AppRole.customer, nullable=False)
    join_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
