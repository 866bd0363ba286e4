"""
Feedback API Router

Messages from supervisors to agents, with reply threads.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from core.database import get_db
from core.auth import get_current_user, require_supervisor, ensure_can_access
from core.exceptions import DomainError, to_api_exception
from models import User
from schemas import (
    FeedbackCreate,
    FeedbackReplyCreate,
    FeedbackReplyResponse,
    FeedbackResponse,
    UnreadCountResponse,
)
from services import feedback_service

router = APIRouter(prefix="/v1/feedback", tags=["feedback"])


@router.post("", response_model=FeedbackResponse, status_code=201)
def send_feedback(
    payload: FeedbackCreate,
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    ensure_can_access(db, current_user, payload.to_agent_id)
    try:
        return feedback_service.send_feedback(
            db,
            current_user,
            payload.to_agent_id,
            payload.title,
            payload.message,
            feedback_type=payload.feedback_type,
            priority=payload.priority,
        )
    except DomainError as e:
        raise to_api_exception(e)


@router.get("/inbox", response_model=List[FeedbackResponse])
def inbox(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Received feedback: unread first, then by priority, then newest."""
    return feedback_service.list_received_feedback(db, current_user.id, limit=limit, offset=offset)


@router.get("/sent", response_model=List[FeedbackResponse])
def sent(
    current_user: User = Depends(require_supervisor),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    return feedback_service.list_sent_feedback(db, current_user.id, limit=limit, offset=offset)


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"unread": feedback_service.unread_count(db, current_user.id)}


@router.get("/{feedback_id}", response_model=FeedbackResponse)
def get_feedback(
    feedback_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return feedback_service.get_feedback(db, current_user, feedback_id)
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/{feedback_id}/read", response_model=FeedbackResponse)
def mark_read(
    feedback_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return feedback_service.mark_read(db, current_user, feedback_id)
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/{feedback_id}/archive", response_model=FeedbackResponse)
def archive(
    feedback_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return feedback_service.archive_feedback(db, current_user, feedback_id)
    except DomainError as e:
        raise to_api_exception(e)


@router.get("/{feedback_id}/replies", response_model=List[FeedbackReplyResponse])
def list_replies(
    feedback_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return feedback_service.list_replies(db, current_user, feedback_id)
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/{feedback_id}/replies", response_model=FeedbackReplyResponse, status_code=201)
def add_reply(
    feedback_id: int,
    payload: FeedbackReplyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return feedback_service.add_reply(db, current_user, feedback_id, payload.message)
    except DomainError as e:
        raise to_api_exception(e)
