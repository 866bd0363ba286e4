"""
Who is calling, and what they may see.

Roles form a strict ladder (agent lowest, admin highest). Reading another
user's data additionally depends on team structure; see can_access_user_data.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import user_id_from_token
from models import TeamAssignment, User

# auto_error=False so a missing header is a 401, not a 403
bearer = HTTPBearer(auto_error=False)

ROLE_HIERARCHY = {
    "admin": 6,
    "manager": 5,
    "supervisor": 4,
    "coordinator": 3,
    "analyst": 2,
    "agent": 1,
}


def role_level(role: Optional[str]) -> int:
    return ROLE_HIERARCHY.get(role or "", 0)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a User row, or fail with 401."""
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Invalid authentication credentials")

    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


def require_min_role(min_role: str):
    """Dependency factory: user's role must be `min_role` or higher in the hierarchy."""
    def level_checker(current_user: User = Depends(get_current_user)) -> User:
        if role_level(current_user.role) < ROLE_HIERARCHY[min_role]:
            raise ForbiddenError(f"Access denied. Requires {min_role} role or higher")
        return current_user

    return level_checker


require_supervisor = require_min_role("supervisor")


def _assignment(db: Session, user_id: int) -> Optional[TeamAssignment]:
    return db.query(TeamAssignment).filter(TeamAssignment.user_id == user_id).first()


def can_access_user_data(db: Session, viewer: User, target_user_id: int) -> bool:
    """
    Whether `viewer` may read data belonging to `target_user_id`.

    - admin / manager: everyone
    - agent / analyst: only themselves
    - supervisor: members of the same team, plus direct reports
    - coordinator: members of the same area
    """
    if viewer.id == target_user_id:
        return True

    if viewer.role in ("admin", "manager"):
        return True

    if viewer.role in ("agent", "analyst"):
        return False

    if viewer.role == "supervisor":
        target = db.query(User).filter(User.id == target_user_id).first()
        if target is not None and target.supervisor_id == viewer.id:
            return True

    viewer_assignment = _assignment(db, viewer.id)
    target_assignment = _assignment(db, target_user_id)
    if not viewer_assignment or not target_assignment:
        return False

    if viewer.role == "supervisor":
        return viewer_assignment.team_name == target_assignment.team_name

    if viewer.role == "coordinator":
        return (
            viewer_assignment.area is not None
            and viewer_assignment.area == target_assignment.area
        )

    return False


def ensure_can_access(db: Session, viewer: User, target_user_id: int) -> None:
    if not can_access_user_data(db, viewer, target_user_id):
        raise ForbiddenError("You do not have access to this user's data")
