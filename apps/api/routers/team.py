"""
Team API Router

Supervisor view of team members and their aggregate performance.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from core.database import get_db
from core.auth import require_supervisor
from models import User
from schemas import TeamOverviewResponse, UserResponse
from services.team_service import get_team_members, get_team_overview

router = APIRouter(prefix="/v1/team", tags=["team"])


@router.get("/members", response_model=List[UserResponse])
def team_members(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    return get_team_members(db, current_user)


@router.get("/overview", response_model=TeamOverviewResponse)
def team_overview(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    return get_team_overview(db, current_user)
