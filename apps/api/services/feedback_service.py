"""
Supervisor -> agent feedback messages and their reply threads.
"""
import logging
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session, joinedload

from core.exceptions import AccessDeniedError, ResourceNotFoundError
from models import AdminFeedback, FeedbackReply, User, utcnow

logger = logging.getLogger(__name__)

FEEDBACK_TYPES = ("note", "praise", "improvement", "urgent", "follow_up")
FEEDBACK_PRIORITIES = ("low", "medium", "high")

_priority_rank = case(
    (AdminFeedback.priority == "high", 0),
    (AdminFeedback.priority == "medium", 1),
    else_=2,
)


def send_feedback(
    db: Session,
    sender: User,
    to_agent_id: int,
    title: str,
    message: str,
    feedback_type: str = "note",
    priority: str = "medium",
) -> AdminFeedback:
    if db.query(User).filter(User.id == to_agent_id).first() is None:
        raise ResourceNotFoundError(f"User not found: {to_agent_id}")

    feedback = AdminFeedback(
        from_admin_id=sender.id,
        to_agent_id=to_agent_id,
        title=title,
        message=message,
        feedback_type=feedback_type,
        priority=priority,
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)

    logger.info(
        f"User {sender.id} sent feedback {feedback.id} to user {to_agent_id}",
        extra={"extra_fields": {"feedback_type": feedback_type, "priority": priority}},
    )
    return feedback


def list_received_feedback(db: Session, agent_id: int, limit: int = 50, offset: int = 0) -> List[AdminFeedback]:
    """Unread first, then by priority (high first), then newest."""
    return (
        db.query(AdminFeedback)
        .options(joinedload(AdminFeedback.from_admin))
        .filter(AdminFeedback.to_agent_id == agent_id, AdminFeedback.is_archived.is_(False))
        .order_by(
            AdminFeedback.is_read.asc(),
            _priority_rank,
            AdminFeedback.created_at.desc(),
            AdminFeedback.id.desc(),
        )
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_sent_feedback(db: Session, sender_id: int, limit: int = 50, offset: int = 0) -> List[AdminFeedback]:
    return (
        db.query(AdminFeedback)
        .options(joinedload(AdminFeedback.to_agent))
        .filter(AdminFeedback.from_admin_id == sender_id, AdminFeedback.is_archived.is_(False))
        .order_by(AdminFeedback.created_at.desc(), AdminFeedback.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_feedback(db: Session, viewer: User, feedback_id: int) -> AdminFeedback:
    """Feedback visible to its sender, its recipient, and admins."""
    feedback = db.query(AdminFeedback).filter(AdminFeedback.id == feedback_id).first()
    if feedback is None:
        raise ResourceNotFoundError(f"Feedback not found: {feedback_id}")
    if viewer.id not in (feedback.from_admin_id, feedback.to_agent_id) and viewer.role != "admin":
        raise AccessDeniedError("You do not have access to this feedback")
    return feedback


def mark_read(db: Session, viewer: User, feedback_id: int) -> AdminFeedback:
    feedback = get_feedback(db, viewer, feedback_id)
    if feedback.to_agent_id != viewer.id:
        raise AccessDeniedError("Only the recipient can mark feedback as read")
    if not feedback.is_read:
        feedback.is_read = True
        feedback.read_at = utcnow()
        db.commit()
        db.refresh(feedback)
    return feedback


def unread_count(db: Session, agent_id: int) -> int:
    return (
        db.query(AdminFeedback)
        .filter(
            AdminFeedback.to_agent_id == agent_id,
            AdminFeedback.is_read.is_(False),
            AdminFeedback.is_archived.is_(False),
        )
        .count()
    )


def add_reply(db: Session, viewer: User, feedback_id: int, message: str) -> FeedbackReply:
    feedback = get_feedback(db, viewer, feedback_id)
    reply = FeedbackReply(feedback_id=feedback.id, from_user_id=viewer.id, message=message)
    db.add(reply)
    db.commit()
    db.refresh(reply)
    return reply


def list_replies(db: Session, viewer: User, feedback_id: int) -> List[FeedbackReply]:
    feedback = get_feedback(db, viewer, feedback_id)
    return (
        db.query(FeedbackReply)
        .options(joinedload(FeedbackReply.from_user))
        .filter(FeedbackReply.feedback_id == feedback.id)
        .order_by(FeedbackReply.created_at, FeedbackReply.id)
        .all()
    )


def archive_feedback(db: Session, viewer: User, feedback_id: int) -> AdminFeedback:
    feedback = get_feedback(db, viewer, feedback_id)
    feedback.is_archived = True
    db.commit()
    db.refresh(feedback)
    return feedback
