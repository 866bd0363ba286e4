from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal


ScenarioCategory = Literal[
    "informative", "transactional", "fraud", "money_laundering",
    "theft", "complaint", "credit", "digital_channels",
]
FeedbackType = Literal["note", "praise", "improvement", "urgent", "follow_up"]
Priority = Literal["low", "medium", "high"]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    role: str
    department: Optional[str] = None
    supervisor_id: Optional[int] = None
    level: str
    points: int = 0
    badges: List[str] = []
    created_at: datetime
    last_signed_in: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatsResponse(BaseModel):
    user_id: int
    total_simulations: int
    practice_simulations: int
    average_score: int
    completion_rate: int
    total_points: int


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class ClientProfile(BaseModel):
    emotion: str
    initial_context: str


class ScenarioCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str
    category: ScenarioCategory
    complexity: int = Field(ge=1, le=5)
    estimated_duration: int = Field(gt=0)  # minutes
    system_prompt: str
    client_profile: ClientProfile
    evaluation_criteria: Dict[str, int]  # category -> weight percent
    ideal_response: Optional[str] = None
    tags: Optional[List[str]] = None


class ScenarioUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ScenarioCategory] = None
    complexity: Optional[int] = Field(default=None, ge=1, le=5)
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    system_prompt: Optional[str] = None
    client_profile: Optional[ClientProfile] = None
    evaluation_criteria: Optional[Dict[str, int]] = None
    ideal_response: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class ScenarioResponse(BaseModel):
    id: int
    title: str
    description: str
    category: str
    complexity: int
    estimated_duration: int
    client_profile: Dict[str, Any]
    evaluation_criteria: Dict[str, Any]
    ideal_response: Optional[str] = None
    tags: Optional[List[str]] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Simulations
# ---------------------------------------------------------------------------

class SimulationStart(BaseModel):
    scenario_id: int
    is_practice_mode: bool = False


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: int
    simulation_id: int
    role: str
    content: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageExchangeResponse(BaseModel):
    agent_message: MessageResponse
    client_message: MessageResponse


class SimulationResponse(BaseModel):
    id: int
    user_id: int
    scenario_id: int
    is_practice_mode: bool
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None
    overall_score: Optional[int] = None
    category_scores: Optional[Dict[str, int]] = None
    feedback: Optional[str] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    points_earned: int = 0
    badges_earned: Optional[List[str]] = None
    transcript_keywords: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class SimulationCompleteResponse(BaseModel):
    simulation_id: int
    overall_score: Optional[int] = None
    points_earned: int
    badges_earned: List[str]
    is_practice_mode: bool


# ---------------------------------------------------------------------------
# Coaching
# ---------------------------------------------------------------------------

class WeaknessResponse(BaseModel):
    category: str
    current_score: int
    gap: int
    priority: str
    trend: str


class StrengthResponse(BaseModel):
    category: str
    current_score: int
    consistency: int


class PerformanceAnalysisResponse(BaseModel):
    user_id: int
    simulations_analyzed: int
    weaknesses: List[WeaknessResponse]
    strengths: List[StrengthResponse]


class CoachingPlanResponse(BaseModel):
    id: int
    user_id: int
    status: str
    generated_at: datetime
    expires_at: Optional[datetime] = None
    weakness_analysis: List[WeaknessResponse]
    strengths_analysis: List[StrengthResponse]
    priority_areas: List[str]
    recommended_scenarios: List[int]
    completed_scenarios: List[int]
    weekly_goal: Optional[str] = None
    estimated_weeks: Optional[int] = None
    improvement_strategy: Optional[str] = None
    key_focus_points: Optional[List[str]] = None
    progress: int

    model_config = ConfigDict(from_attributes=True)


class BuddyCandidateResponse(BaseModel):
    user_id: int
    name: Optional[str] = None
    role: str
    department: Optional[str] = None
    strengths: List[StrengthResponse]
    weaknesses: List[WeaknessResponse]
    compatibility_score: int
    match_reasons: List[str]


class BuddyPairCreate(BaseModel):
    buddy_id: int
    match_score: Optional[int] = None
    match_reason: Optional[str] = None


class BuddyGoalUpdate(BaseModel):
    shared_goal: Optional[str] = Field(default=None, max_length=1000)


class BuddyPairResponse(BaseModel):
    id: int
    agent_id_1: int
    agent_id_2: int
    status: str
    match_score: Optional[int] = None
    match_reason: Optional[str] = None
    shared_goal: Optional[str] = None
    target_weeks: int
    created_at: datetime
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    buddy_user_id: Optional[int] = None
    buddy_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

class AlertResponse(BaseModel):
    id: int
    user_id: int
    supervisor_id: Optional[int] = None
    type: str
    severity: str
    title: str
    message: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="alert_metadata")
    status: str
    created_at: datetime
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

class FeedbackCreate(BaseModel):
    to_agent_id: int
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    feedback_type: FeedbackType = "note"
    priority: Priority = "medium"


class FeedbackReplyCreate(BaseModel):
    message: str = Field(min_length=1)


class FeedbackReplyResponse(BaseModel):
    id: int
    feedback_id: int
    from_user_id: int
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeedbackResponse(BaseModel):
    id: int
    from_admin_id: int
    to_agent_id: int
    title: str
    message: str
    feedback_type: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    is_archived: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCountResponse(BaseModel):
    unread: int


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------

class TeamMemberSummary(BaseModel):
    user_id: int
    name: Optional[str] = None
    role: str
    level: str
    points: int
    simulations_completed: int
    average_score: Optional[int] = None
    weaknesses: List[str]
    strengths: List[str]


class CommonWeakness(BaseModel):
    category: str
    members: int


class TeamOverviewResponse(BaseModel):
    members: List[TeamMemberSummary]
    total_members: int
    total_simulations: int
    total_points: int
    average_score: Optional[int] = None
    common_weaknesses: List[CommonWeakness]


# ---------------------------------------------------------------------------
# Response templates
# ---------------------------------------------------------------------------

class ResponseTemplateResponse(BaseModel):
    id: int
    category: str
    type: str
    title: str
    content: str
    context: Optional[str] = None
    tags: Optional[List[str]] = None
    complexity: int

    model_config = ConfigDict(from_attributes=True)
