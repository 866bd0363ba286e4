"""
Alerts API Router

Supervisor-facing performance alerts. Supervisors see alerts addressed to
them; managers and admins see all.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.auth import require_supervisor
from core.exceptions import DomainError, ForbiddenError, NotFoundError, to_api_exception
from models import CoachingAlert, User
from schemas import AlertResponse
from services import alert_service

router = APIRouter(prefix="/v1/alerts", tags=["alerts"])


def _get_visible_alert(db: Session, current_user: User, alert_id: int) -> CoachingAlert:
    alert = alert_service.get_alert(db, alert_id)
    if alert is None:
        raise NotFoundError("Alert", alert_id)
    if current_user.role not in ("admin", "manager") and alert.supervisor_id != current_user.id:
        raise ForbiddenError("This alert is not addressed to you")
    return alert


@router.get("", response_model=List[AlertResponse])
def list_alerts(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
    status: Optional[str] = Query(None, description="pending | acknowledged | resolved"),
    user_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
):
    return alert_service.list_alerts(db, current_user, status=status, user_id=user_id, limit=limit)


@router.get("/pending-count")
def pending_count(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    return {"pending": alert_service.pending_alert_count(db, current_user)}


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
def acknowledge_alert(
    alert_id: int,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    alert = _get_visible_alert(db, current_user, alert_id)
    try:
        return alert_service.acknowledge_alert(db, alert)
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
def resolve_alert(
    alert_id: int,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    alert = _get_visible_alert(db, current_user, alert_id)
    try:
        return alert_service.resolve_alert(db, alert)
    except DomainError as e:
        raise to_api_exception(e)
