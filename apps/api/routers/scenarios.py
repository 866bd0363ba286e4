"""
Scenarios API Router

Training scenarios agents can simulate. Supervisors and above manage them.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.auth import get_current_user, require_supervisor
from core.exceptions import NotFoundError
from models import Scenario, User
from schemas import ScenarioCreate, ScenarioUpdate, ScenarioResponse

router = APIRouter(prefix="/v1/scenarios", tags=["scenarios"])


@router.get("", response_model=List[ScenarioResponse])
def list_scenarios(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    category: Optional[str] = Query(None, description="Filter by scenario category"),
    complexity: Optional[int] = Query(None, ge=1, le=5),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
):
    query = db.query(Scenario)
    if category:
        query = query.filter(Scenario.category == category)
    if complexity is not None:
        query = query.filter(Scenario.complexity == complexity)
    if is_active is not None:
        query = query.filter(Scenario.is_active.is_(is_active))
    return query.order_by(Scenario.complexity, Scenario.id).all()


@router.get("/{scenario_id}", response_model=ScenarioResponse)
def get_scenario(
    scenario_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    scenario = db.query(Scenario).filter(Scenario.id == scenario_id).first()
    if not scenario:
        raise NotFoundError("Scenario", scenario_id)
    return scenario


@router.post("", response_model=ScenarioResponse, status_code=201)
def create_scenario(
    payload: ScenarioCreate,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    scenario = Scenario(**data, created_by=current_user.id)
    db.add(scenario)
    db.commit()
    db.refresh(scenario)
    return scenario


@router.patch("/{scenario_id}", response_model=ScenarioResponse)
def update_scenario(
    scenario_id: int,
    payload: ScenarioUpdate,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    scenario = db.query(Scenario).filter(Scenario.id == scenario_id).first()
    if not scenario:
        raise NotFoundError("Scenario", scenario_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(scenario, field, value)
    db.commit()
    db.refresh(scenario)
    return scenario
