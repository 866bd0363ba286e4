"""
Response Templates API Router

Read-only library of model answers grouped by scenario category.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.auth import get_current_user
from core.exceptions import NotFoundError
from models import ResponseTemplate, User
from schemas import ResponseTemplateResponse

router = APIRouter(prefix="/v1/response-templates", tags=["response-templates"])


@router.get("", response_model=List[ResponseTemplateResponse])
def list_templates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    category: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="opening | development | objection_handling | closing | empathy | protocol"),
    complexity: Optional[int] = Query(None, ge=1, le=5),
):
    query = db.query(ResponseTemplate)
    if category:
        query = query.filter(ResponseTemplate.category == category)
    if type:
        query = query.filter(ResponseTemplate.type == type)
    if complexity is not None:
        query = query.filter(ResponseTemplate.complexity == complexity)
    return query.order_by(ResponseTemplate.category, ResponseTemplate.id).all()


@router.get("/{template_id}", response_model=ResponseTemplateResponse)
def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = db.query(ResponseTemplate).filter(ResponseTemplate.id == template_id).first()
    if not template:
        raise NotFoundError("Response template", template_id)
    return template
