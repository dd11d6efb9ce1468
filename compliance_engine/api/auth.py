"""Resolve the acting user for a request."""
from typing import Optional
import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from compliance_engine.database import get_db
from compliance_engine.models.domain import UserProfile
from compliance_engine.models.enums import OVERRIDE_ROLES

logger = structlog.get_logger()


def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db)
) -> Optional[UserProfile]:
    """
    Look up the caller's profile from the X-User-Id header.

    The role always comes from the stored profile, never from the request.
    Returns None for anonymous or unknown callers; services refuse them.
    """
    if not x_user_id:
        return None
    actor = db.query(UserProfile).filter(UserProfile.id == x_user_id).first()
    if actor is None:
        logger.warning("unknown_actor", user_id=x_user_id)
    return actor


def require_override_role(actor: Optional[UserProfile] = Depends(get_current_actor)) -> UserProfile:
    """Dependency for admin/director-only read endpoints."""
    if actor is None or actor.role not in OVERRIDE_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return actor
