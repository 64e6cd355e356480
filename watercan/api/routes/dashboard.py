from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from watercan.core import config
from watercan.db.get_db import get_db
from watercan.services.dashboard_service import get_customer_growth, get_dashboard_summary
from watercan.utils.auth import Caller, require_owner
from watercan.utils.helpers import success_response

router = APIRouter()


@router.get("/summary")
def dashboard_summary(db: Session = Depends(get_db), caller: Caller = Depends(require_owner)):
    return success_response(data=get_dashboard_summary(db), message="Dashboard summary retrieved successfully")


@router.get("/customer-growth")
def customer_growth(
    months: int = Query(config.CUSTOMER_GROWTH_MONTHS, ge=1, le=24),
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_owner)
):
    return success_response(data=get_customer_growth(db, months=months), message="Customer growth retrieved successfully")
