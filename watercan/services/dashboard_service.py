from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.models.customer import Customer
from watercan.models.enums import OrderStatus, TransactionSource, TransactionType
from watercan.models.inventory import InventorySnapshot
from watercan.models.order import Order
from watercan.models.transaction import Transaction


def _month_start(year: int, month: int) -> datetime:
    # month may run outside 1..12 when stepping back from the current month
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1)


def _collected_credits(db: Session, start: datetime, end: datetime) -> int:
    """Credits received in ``[start, end)``; opening balances are not money collected."""
    total = (
        db.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(
            Transaction.type == TransactionType.credit,
            Transaction.source != TransactionSource.opening,
            Transaction.created_at >= start,
            Transaction.created_at < end
        )
        .scalar()
    )
    return int(total)


def get_payment_status(db: Session, now: datetime = None) -> dict:
    now = now or datetime.utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    # Negative balances are money customers owe
    owed = (
        db.query(func.coalesce(func.sum(-Customer.balance), 0))
        .filter(Customer.balance < 0)
        .scalar()
    )
    pending_collections = int(owed)

    return {
        "collected_today": _collected_credits(db, today, today + timedelta(days=1)),
        "pending_collections": pending_collections,
        "overdue_payments": round(pending_collections * config.OVERDUE_SHARE)
    }


def get_customer_growth(db: Session, now: datetime = None, months: int = config.CUSTOMER_GROWTH_MONTHS) -> list:
    """New customers per calendar month, oldest month first, ending with the current one."""
    now = now or datetime.utcnow()
    growth = []
    for offset in range(months - 1, -1, -1):
        start = _month_start(now.year, now.month - offset)
        end = _month_start(start.year, start.month + 1)
        count = (
            db.query(func.count(Customer.id))
            .filter(Customer.created_at >= start, Customer.created_at < end)
            .scalar()
        )
        growth.append({"month": start.strftime("%b"), "year": start.year, "customers": count})
    return growth


def get_dashboard_summary(db: Session, now: datetime = None, recent: int = 5) -> dict:
    now = now or datetime.utcnow()
    start_of_month = _month_start(now.year, now.month)

    total_customers = db.query(func.count(Customer.id)).scalar()

    latest = (
        db.query(InventorySnapshot)
        .order_by(InventorySnapshot.created_at.desc(), InventorySnapshot.sequence.desc())
        .first()
    )

    pending_deliveries = (
        db.query(func.count(Order.id))
        .filter(Order.status == OrderStatus.pending)
        .scalar()
    )

    recent_orders = (
        db.query(Order, Customer.name)
        .outerjoin(Customer, Customer.id == Order.user_id)
        .order_by(Order.order_date.desc())
        .limit(recent)
        .all()
    )

    return {
        "total_customers": total_customers,
        "monthly_revenue": _collected_credits(db, start_of_month, _month_start(now.year, now.month + 1)),
        "cans_in_stock": latest.available_cans if latest else 0,
        "pending_deliveries": pending_deliveries,
        "recent_orders": [
            {
                "id": str(order.id),
                "customer_id": order.user_id,
                "customer_name": name or "Unknown",
                "quantity": order.quantity,
                "total_amount": order.total_amount,
                "status": order.status.value,
                "order_date": order.order_date.isoformat()
            }
            for order, name in recent_orders
        ],
        "payment_status": get_payment_status(db, now)
    }
