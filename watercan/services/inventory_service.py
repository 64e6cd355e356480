# watercan/services/inventory_service.py
"""
Can inventory kept as an append-only log of snapshots.

A change never edits the current snapshot: it inserts the next one,
derived from its predecessor, together with an adjustment record
describing the change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.core.exceptions import InsufficientStock, InvalidOperation, InvalidQuantity, NoInventoryRecord
from watercan.db.unit_of_work import lock_one, unit_of_work
from watercan.models.customer import Customer
from watercan.models.enums import InventoryOperation
from watercan.models.inventory import InventoryAdjustment, InventorySnapshot
from watercan.utils.validation_functions import parse_positive_int

logger = logging.getLogger(__name__)


@dataclass
class InventoryChange:
    snapshot: InventorySnapshot
    adjustment: InventoryAdjustment


@dataclass
class SnapshotDelta:
    snapshot: InventorySnapshot
    total_diff: Optional[int]
    available_diff: Optional[int]
    with_customers_diff: Optional[int]


def _latest(db: Session):
    return db.query(InventorySnapshot).order_by(
        InventorySnapshot.created_at.desc(),
        InventorySnapshot.sequence.desc()
    )


def parse_operation(operation) -> InventoryOperation:
    if isinstance(operation, InventoryOperation):
        return operation
    if operation not in InventoryOperation.__members__:
        raise InvalidOperation()
    return InventoryOperation[operation]


def get_current_inventory(db: Session, actor_id: str) -> InventorySnapshot:
    """Latest snapshot; the first call on an empty log records the opening one."""
    snapshot = _latest(db).first()
    if snapshot:
        return snapshot

    with unit_of_work(db, "bootstrap_inventory"):
        snapshot = _latest(db).first()
        if snapshot is None:
            with_customers = db.query(func.coalesce(func.sum(Customer.cans_in_possession), 0)).scalar()
            snapshot = InventorySnapshot(
                sequence=1,
                total_cans=int(with_customers),
                available_cans=0,
                cans_with_customers=int(with_customers),
                updated_by=actor_id,
                created_at=datetime.utcnow()
            )
            db.add(snapshot)
            logger.info("Opening inventory snapshot recorded: %s cans with customers", with_customers)
    return snapshot


def adjust_inventory(db: Session, operation, quantity, reason: Optional[str], actor_id: str) -> InventoryChange:
    operation = parse_operation(operation)
    quantity = parse_positive_int(quantity, InvalidQuantity("Quantity must be a positive number"))

    with unit_of_work(db, "adjust_inventory"):
        current = lock_one(_latest(db))
        if not current:
            raise NoInventoryRecord()

        if operation == InventoryOperation.add:
            new_total = current.total_cans + quantity
            new_available = current.available_cans + quantity
        else:
            if current.available_cans < quantity:
                raise InsufficientStock(
                    f"Cannot remove {quantity} cans. Only {current.available_cans} available.",
                    details={"available": current.available_cans, "requested": quantity}
                )
            new_total = current.total_cans - quantity
            new_available = current.available_cans - quantity

        snapshot = InventorySnapshot(
            sequence=current.sequence + 1,
            total_cans=new_total,
            available_cans=new_available,
            cans_with_customers=current.cans_with_customers,
            updated_by=actor_id,
            created_at=datetime.utcnow()
        )
        adjustment = InventoryAdjustment(
            snapshot=snapshot,
            operation=operation,
            quantity=quantity,
            reason=reason or f"{'Added' if operation == InventoryOperation.add else 'Removed'} {quantity} cans",
            previous_total=current.total_cans,
            new_total=new_total,
            previous_available=current.available_cans,
            new_available=new_available,
            performed_by=actor_id,
            created_at=snapshot.created_at
        )
        db.add(snapshot)
        db.add(adjustment)

    logger.info(
        "Inventory %s of %s cans by %s: total %s, available %s",
        operation.value, quantity, actor_id, new_total, new_available
    )
    return InventoryChange(snapshot=snapshot, adjustment=adjustment)


def get_inventory_history(db: Session, limit: int = config.INVENTORY_HISTORY_LIMIT) -> List[SnapshotDelta]:
    """Newest ``limit`` snapshots, each with its difference from the one before it."""
    limit = min(max(int(limit or config.INVENTORY_HISTORY_LIMIT), 1), config.MAX_PAGE_LIMIT)
    # One extra row so the oldest snapshot in the window still gets a delta
    rows = _latest(db).limit(limit + 1).all()

    history = []
    for index, snapshot in enumerate(rows[:limit]):
        previous = rows[index + 1] if index + 1 < len(rows) else None
        if previous is None:
            history.append(SnapshotDelta(snapshot, None, None, None))
            continue
        history.append(SnapshotDelta(
            snapshot=snapshot,
            total_diff=snapshot.total_cans - previous.total_cans,
            available_diff=snapshot.available_cans - previous.available_cans,
            with_customers_diff=snapshot.cans_with_customers - previous.cans_with_customers
        ))
    return history
