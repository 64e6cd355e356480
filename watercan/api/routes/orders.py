from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from watercan.db.get_db import get_db
from watercan.services import order_service
from watercan.services.customer_service import ProfileDefaults
from watercan.utils.auth import Caller, ensure_self_or_owner, get_current_caller, require_owner
from watercan.utils.helpers import order_to_dict, success_response

router = APIRouter()


@router.post("/")
async def create_order(request: Request, db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    body = await request.json()
    # Owners may place orders on a customer's behalf
    customer_id = body.get("user_id") or caller.caller_id
    ensure_self_or_owner(caller, customer_id, "You can only place orders for yourself")

    profile = ProfileDefaults(name=caller.name, email=caller.email) if customer_id == caller.caller_id else None
    placement = order_service.place_order(
        db,
        customer_id,
        quantity=body.get("quantity"),
        requested_at=body.get("order_date"),
        profile=profile
    )

    return JSONResponse(
        status_code=201,
        content=success_response(
            data={
                "order_id": str(placement.order_id),
                "quantity": placement.order.quantity,
                "total_amount": placement.total_amount,
                "status": placement.status.value,
                "new_balance": placement.customer.balance,
                "cans_in_possession": placement.customer.cans_in_possession
            },
            message="Order placed successfully"
        )
    )


@router.get("/user")
def get_user_orders(
    status: str = Query(None),
    start_date: str = Query(None),
    end_date: str = Query(None),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller)
):
    orders = order_service.get_user_orders(db, caller.caller_id, status, start_date, end_date)
    return success_response(data=[order_to_dict(order) for order in orders], message="Orders retrieved successfully")


@router.get("/")
def get_all_orders(
    status: str = Query(None),
    start_date: str = Query(None),
    end_date: str = Query(None),
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    orders = order_service.get_all_orders(db, status, start_date, end_date)
    return success_response(data=[order_to_dict(order) for order in orders], message="Orders retrieved successfully")


@router.post("/return")
async def process_can_return(request: Request, db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    body = await request.json()
    customer_id = body.get("customer_id")
    quantity = body.get("quantity")

    remaining = order_service.process_can_return(db, customer_id, quantity)
    return success_response(
        data={"customer_id": customer_id, "cans_returned": quantity, "cans_remaining": remaining},
        message="Can return processed successfully"
    )


@router.get("/{order_id}")
def get_order_by_id(order_id: str, db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    order = order_service.get_order_by_id(db, order_id)
    ensure_self_or_owner(caller, order.user_id, "You can only view your own orders")
    return success_response(data=order_to_dict(order), message="Order retrieved successfully")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    body = await request.json()
    order = order_service.update_order_status(
        db,
        order_id,
        status=body.get("status"),
        delivery_date=body.get("delivery_date")
    )
    return success_response(data=order_to_dict(order), message="Order updated successfully")
