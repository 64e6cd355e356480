# watercan/models/inventory.py
import uuid
from datetime import datetime
from sqlalchemy import Column, Text, DateTime, Integer, Enum, Uuid, ForeignKey, CheckConstraint, event
from sqlalchemy.orm import object_session, relationship
from watercan.db.base import Base
from watercan.models.enums import InventoryOperation


class InventorySnapshot(Base):
    """Point-in-time can counts. Rows are never changed once written."""

    __tablename__ = "inventory_snapshots"
    __table_args__ = (
        CheckConstraint("total_cans >= 0", name="ck_inventory_total_non_negative"),
        CheckConstraint("available_cans >= 0", name="ck_inventory_available_non_negative"),
        CheckConstraint("cans_with_customers >= 0", name="ck_inventory_with_customers_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # previous.sequence + 1; unique so two writers cannot branch from one snapshot
    sequence = Column(Integer, unique=True, nullable=False)
    total_cans = Column(Integer, default=0, nullable=False)
    available_cans = Column(Integer, default=0, nullable=False)
    cans_with_customers = Column(Integer, default=0, nullable=False)
    updated_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)


class InventoryAdjustment(Base):
    __tablename__ = "inventory_adjustments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    snapshot_id = Column(Uuid(as_uuid=True), ForeignKey("inventory_snapshots.id"), nullable=False)
    operation = Column(Enum(InventoryOperation, name="inventory_operation"), nullable=False)
    quantity = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    previous_total = Column(Integer, nullable=False)
    new_total = Column(Integer, nullable=False)
    previous_available = Column(Integer, nullable=False)
    new_available = Column(Integer, nullable=False)
    performed_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    snapshot = relationship("InventorySnapshot")


@event.listens_for(InventorySnapshot, "before_update")
def _refuse_snapshot_update(mapper, connection, target):
    if object_session(target).is_modified(target, include_collections=False):
        raise ValueError("Inventory snapshots are append-only; insert a new snapshot instead")


@event.listens_for(InventorySnapshot, "before_delete")
def _refuse_snapshot_delete(mapper, connection, target):
    raise ValueError("Inventory snapshots are append-only and cannot be deleted")
