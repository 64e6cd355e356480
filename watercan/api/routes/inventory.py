from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.db.get_db import get_db
from watercan.services import inventory_service
from watercan.utils.auth import Caller, get_current_caller, require_owner
from watercan.utils.helpers import adjustment_to_dict, snapshot_to_dict, success_response

router = APIRouter()


@router.get("/status")
def get_inventory_status(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    snapshot = inventory_service.get_current_inventory(db, caller.caller_id)
    return success_response(data=snapshot_to_dict(snapshot), message="Inventory retrieved successfully")


@router.post("/update")
async def update_inventory(request: Request, db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    body = await request.json()
    change = inventory_service.adjust_inventory(
        db,
        operation=body.get("operation"),
        quantity=body.get("quantity"),
        reason=body.get("reason"),
        actor_id=caller.caller_id
    )
    operation = change.adjustment.operation.value
    return success_response(
        data={
            "inventory": snapshot_to_dict(change.snapshot),
            "change": adjustment_to_dict(change.adjustment)
        },
        message=f"Successfully {'added' if operation == 'add' else 'removed'} {change.adjustment.quantity} cans"
    )


@router.get("/history")
def get_inventory_history(
    limit: int = Query(config.INVENTORY_HISTORY_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT),
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    history = inventory_service.get_inventory_history(db, limit)
    data = []
    for entry in history:
        item = snapshot_to_dict(entry.snapshot)
        item["total_diff"] = entry.total_diff
        item["available_diff"] = entry.available_diff
        item["with_customers_diff"] = entry.with_customers_diff
        data.append(item)
    return success_response(data=data, message="Inventory history retrieved successfully")
