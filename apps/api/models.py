from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Text, String, JSON, Index
from sqlalchemy.orm import relationship
from core.database import Base
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Role hierarchy, highest authority first
USER_ROLES = ("admin", "manager", "supervisor", "coordinator", "analyst", "agent")
USER_LEVELS = ("junior", "intermediate", "senior", "expert")

SCENARIO_CATEGORIES = (
    "informative",
    "transactional",
    "fraud",
    "money_laundering",
    "theft",
    "complaint",
    "credit",
    "digital_channels",
)

SCORE_CATEGORIES = ("empathy", "clarity", "protocol", "resolution", "confidence")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(64), unique=True, nullable=False)  # identity-provider subject
    name = Column(Text, nullable=True)
    email = Column(String(320), nullable=True)
    role = Column(String(20), default="agent", nullable=False)
    department = Column(String(100), nullable=True)
    supervisor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    level = Column(String(20), default="junior", nullable=False)
    points = Column(Integer, default=0, nullable=False)
    badges = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_signed_in = Column(DateTime, default=utcnow, nullable=False)

    simulations = relationship("Simulation", back_populates="user")
    team_assignment = relationship("TeamAssignment", back_populates="user", uselist=False,
                                   foreign_keys="TeamAssignment.user_id")


class TeamAssignment(Base):
    __tablename__ = "team_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    team_name = Column(String(100), nullable=False)
    department = Column(String(100), nullable=False)
    area = Column(String(100), nullable=True)
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    supervisor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="team_assignment", foreign_keys=[user_id])


class Scenario(Base):
    __tablename__ = "scenarios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(40), nullable=False, index=True)
    complexity = Column(Integer, nullable=False)  # 1-5
    estimated_duration = Column(Integer, nullable=False)  # minutes
    system_prompt = Column(Text, nullable=False)
    client_profile = Column(JSON, nullable=False, default=dict)  # {"emotion", "initial_context"}
    evaluation_criteria = Column(JSON, nullable=False, default=dict)  # category -> weight percent
    ideal_response = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Simulation(Base):
    __tablename__ = "simulations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    scenario_id = Column(Integer, ForeignKey("scenarios.id"), nullable=False)
    is_practice_mode = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="in_progress", nullable=False)  # in_progress | completed | abandoned
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds

    overall_score = Column(Integer, nullable=True)  # 0-100
    category_scores = Column(JSON, nullable=True)  # {"empathy": 80, ...}
    feedback = Column(Text, nullable=True)
    strengths = Column(JSON, nullable=True)
    weaknesses = Column(JSON, nullable=True)
    recommendations = Column(JSON, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)
    badges_earned = Column(JSON, nullable=True)
    transcript_keywords = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="simulations")
    scenario = relationship("Scenario")
    messages = relationship("Message", back_populates="simulation", order_by="Message.id")

    __table_args__ = (
        Index("ix_simulations_user_status_completed", "user_id", "status", "completed_at"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    simulation_id = Column(Integer, ForeignKey("simulations.id"), nullable=False, index=True)
    role = Column(String(10), nullable=False)  # agent | client | system
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    evaluation_note = Column(Text, nullable=True)

    simulation = relationship("Simulation", back_populates="messages")


class CoachingPlan(Base):
    __tablename__ = "coaching_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), default="active", nullable=False)  # active | completed | cancelled
    generated_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    weakness_analysis = Column(JSON, nullable=False, default=list)
    strengths_analysis = Column(JSON, nullable=False, default=list)
    priority_areas = Column(JSON, nullable=False, default=list)
    recommended_scenarios = Column(JSON, nullable=False, default=list)
    completed_scenarios = Column(JSON, nullable=False, default=list)
    weekly_goal = Column(Text, nullable=True)
    estimated_weeks = Column(Integer, nullable=True)
    improvement_strategy = Column(Text, nullable=True)
    key_focus_points = Column(JSON, nullable=True)
    progress = Column(Integer, default=0, nullable=False)  # 0-100


class CoachingAlert(Base):
    __tablename__ = "coaching_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    supervisor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False)  # low_performance | stagnation | improvement | milestone
    severity = Column(String(10), default="medium", nullable=False)  # low | medium | high | critical
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    alert_metadata = Column("metadata", JSON, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending | acknowledged | resolved
    created_at = Column(DateTime, default=utcnow, nullable=False)
    acknowledged_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)


class BuddyPair(Base):
    __tablename__ = "buddy_pairs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id_1 = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    agent_id_2 = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), default="suggested", nullable=False)  # suggested | accepted | active | completed | declined
    match_score = Column(Integer, nullable=True)
    match_reason = Column(Text, nullable=True)
    shared_goal = Column(Text, nullable=True)
    target_weeks = Column(Integer, default=4, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)


class AdminFeedback(Base):
    """Message sent by a supervisor or admin to an agent."""
    __tablename__ = "admin_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    from_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_agent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    feedback_type = Column(String(20), default="note", nullable=False)  # note | praise | improvement | urgent | follow_up
    priority = Column(String(10), default="medium", nullable=False)  # low | medium | high
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    from_admin = relationship("User", foreign_keys=[from_admin_id])
    to_agent = relationship("User", foreign_keys=[to_agent_id])
    replies = relationship("FeedbackReply", back_populates="feedback", order_by="FeedbackReply.created_at")


class FeedbackReply(Base):
    __tablename__ = "feedback_replies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    feedback_id = Column(Integer, ForeignKey("admin_feedback.id"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    feedback = relationship("AdminFeedback", back_populates="replies")
    from_user = relationship("User")


class ResponseTemplate(Base):
    """Model answers agents can study, grouped by scenario category."""
    __tablename__ = "response_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(40), nullable=False, index=True)
    type = Column(String(30), nullable=False)  # opening | development | objection_handling | closing | empathy | protocol
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    context = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    complexity = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
