# watercan/utils/helpers.py
from watercan.models.customer import Customer
from watercan.models.inventory import InventoryAdjustment, InventorySnapshot
from watercan.models.order import Order
from watercan.models.transaction import Transaction


def success_response(data=None, message="Operation successful", pagination=None, summary=None):
    response = {"success": True, "data": data, "message": message}
    if pagination is not None:
        response["pagination"] = pagination
    if summary is not None:
        response["summary"] = summary
    return response


def error_response(code, message, details=None):
    return {"success": False, "error": {"code": code, "message": message, "details": details}}


def _iso(value):
    return value.isoformat() if value else None


def customer_to_dict(customer: Customer) -> dict:
    return {
        "customer_id": customer.id,
        "name": customer.name,
        "address": customer.address,
        "phone": customer.phone,
        "email": customer.email,
        "balance": customer.balance,
        "cans_in_possession": customer.cans_in_possession,
        "status": customer.status.value,
        "join_date": _iso(customer.join_date),
        "created_at": _iso(customer.created_at),
        "updated_at": _iso(customer.updated_at)
    }


def transaction_to_dict(transaction: Transaction) -> dict:
    return {
        "id": str(transaction.id),
        "amount": transaction.amount,
        "type": transaction.type.value,
        "source": transaction.source.value,
        "description": transaction.description,
        "date": _iso(transaction.created_at),
        "balance_after": transaction.balance_after,
        "created_by": transaction.created_by
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": str(order.id),
        "user_id": order.user_id,
        "quantity": order.quantity,
        "price": order.price,
        "total_amount": order.total_amount,
        "status": order.status.value,
        "order_date": _iso(order.order_date),
        "delivery_date": _iso(order.delivery_date),
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at)
    }


def snapshot_to_dict(snapshot: InventorySnapshot) -> dict:
    return {
        "id": str(snapshot.id),
        "sequence": snapshot.sequence,
        "total_cans": snapshot.total_cans,
        "available_cans": snapshot.available_cans,
        "cans_with_customers": snapshot.cans_with_customers,
        "updated_by": snapshot.updated_by,
        "created_at": _iso(snapshot.created_at)
    }


def adjustment_to_dict(adjustment: InventoryAdjustment) -> dict:
    return {
        "operation": adjustment.operation.value,
        "quantity": adjustment.quantity,
        "reason": adjustment.reason,
        "previous_total": adjustment.previous_total,
        "new_total": adjustment.new_total,
        "previous_available": adjustment.previous_available,
        "new_available": adjustment.new_available,
        "date": _iso(adjustment.created_at)
    }
