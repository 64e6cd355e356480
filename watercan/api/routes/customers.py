from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.db.get_db import get_db
from watercan.services import balance_service, customer_service
from watercan.services.customer_service import ProfileDefaults
from watercan.utils.auth import Caller, ensure_self_or_owner, get_current_caller, require_owner
from watercan.utils.helpers import customer_to_dict, success_response, transaction_to_dict

router = APIRouter()


@router.get("/me")
def get_my_profile(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    profile = customer_service.get_customer_profile(db, caller.caller_id)
    data = customer_to_dict(profile.customer)
    data["total_orders"] = profile.total_orders
    data["last_order_date"] = profile.last_order_date.isoformat() if profile.last_order_date else None
    return success_response(data=data, message="Profile retrieved successfully")


@router.get("/")
def list_customers(
    status: str = Query(None),
    search: str = Query(None),
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    customers = customer_service.list_customers(db, status=status, search=search)
    return success_response(
        data=[customer_to_dict(customer) for customer in customers],
        message="Customers retrieved successfully"
    )


@router.get("/{customer_id}")
def get_customer(customer_id: str, db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    customer = customer_service.get_customer(db, customer_id)
    return success_response(data=customer_to_dict(customer), message="Customer retrieved successfully")


@router.post("/")
async def create_customer(request: Request, db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    body = await request.json()
    customer = customer_service.create_customer(
        db,
        customer_key=body.get("customer_id"),
        name=body.get("name"),
        address=body.get("address"),
        phone=body.get("phone"),
        email=body.get("email"),
        balance=body.get("balance", 0),
        actor_id=caller.caller_id
    )
    return JSONResponse(
        status_code=201,
        content=success_response(data=customer_to_dict(customer), message="Customer created successfully")
    )


@router.patch("/{customer_id}")
async def update_customer_profile(
    customer_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller)
):
    ensure_self_or_owner(caller, customer_id, "You can only update your own profile")
    body = await request.json()

    # Callers writing their own profile get a record created on first write
    fallback = ProfileDefaults(name=caller.name, email=caller.email) if caller.caller_id == customer_id else None
    customer, created = customer_service.update_customer_profile(
        db,
        customer_id,
        name=body.get("name"),
        address=body.get("address"),
        phone=body.get("phone"),
        email=body.get("email"),
        fallback_profile=fallback
    )

    if created:
        return JSONResponse(
            status_code=201,
            content=success_response(data=customer_to_dict(customer), message="Customer profile created")
        )
    return success_response(data=customer_to_dict(customer), message="Profile updated successfully")


@router.post("/{customer_id}/balance")
async def update_customer_balance(
    customer_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    body = await request.json()
    result = balance_service.adjust_balance(
        db,
        customer_id,
        amount=body.get("amount"),
        kind=body.get("transaction_type"),
        description=body.get("description"),
        actor_id=caller.caller_id
    )
    kind = result.transaction.type.value
    return success_response(
        data={
            "transaction": transaction_to_dict(result.transaction),
            "new_balance": result.new_balance
        },
        message=f"Balance {'added' if kind == 'credit' else 'removed'} successfully"
    )


@router.get("/{customer_id}/transactions")
def get_transaction_history(
    customer_id: str,
    start_date: str = Query(None),
    end_date: str = Query(None),
    type: str = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller)
):
    ensure_self_or_owner(caller, customer_id, "You can only view your own transactions")
    result = balance_service.get_transaction_history(
        db,
        customer_id,
        start_date=start_date,
        end_date=end_date,
        type=type,
        page=page,
        limit=limit
    )
    return success_response(
        data=[transaction_to_dict(txn) for txn in result.transactions],
        message="Transactions retrieved successfully",
        pagination=result.pagination
    )


@router.get("/{customer_id}/ledger-check")
def check_customer_ledger(customer_id: str, db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    check = balance_service.verify_customer_ledger(db, customer_id)
    return success_response(
        data={
            "customer_id": check.customer_id,
            "balance": check.balance,
            "ledger_total": check.ledger_total,
            "transaction_count": check.transaction_count,
            "consistent": check.consistent
        }
    )
