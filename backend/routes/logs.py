# backend/routes/logs.py
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.log import Log
from models.users import User
from schemas.common import ORMBase, PaginatedResponse, Pagination
from utils.errors import ValidationError
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/logs", tags=["Logs"])


class LogResponse(ORMBase):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None


def _parse_day(value: str, field: str, end_of_day: bool = False) -> datetime:
    # Date-only values cover the whole day when used as an upper bound
    if end_of_day and len(value) == 10:
        value += " 23:59:59"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError.for_field(field, "Expected a date in YYYY-MM-DD format.")


@router.get("", response_model=PaginatedResponse[LogResponse])
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())
    if date_from:
        query = query.filter(Log.ts >= _parse_day(date_from, "date_from"))
    if date_to:
        query = query.filter(Log.ts <= _parse_day(date_to, "date_to", end_of_day=True))

    total = query.count()
    logs = (
        query.order_by(Log.ts.desc(), Log.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return {
        "message": "Logs listed",
        "data": logs,
        "pagination": Pagination.build(page, page_size, total),
    }
