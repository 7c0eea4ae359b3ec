"""Shared FastAPI dependencies."""
from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.profile import Profile
from app.services.authz import Actor


def get_actor(
    actor_user_id: str = Query(..., description="Profile ID of the user performing the action"),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the acting user; every mutating route receives it explicitly."""
    profile = db.query(Profile).filter(Profile.id == actor_user_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown acting user")
    return Actor.from_profile(profile)
