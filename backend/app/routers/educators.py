"""Educator API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.educator import Educator
from app.schemas.reference import EducatorCreate, EducatorOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EducatorOut, status_code=status.HTTP_201_CREATED)
def create_educator(payload: EducatorCreate, db: Session = Depends(get_db)):
    educator = Educator(**payload.model_dump())
    db.add(educator)
    db.commit()
    db.refresh(educator)
    logger.info("Created educator %s (%s)", educator.id, educator.full_name)
    return educator


@router.get("/", response_model=list[EducatorOut])
def list_educators(db: Session = Depends(get_db)):
    """Educators ordered by name, as offered in the assignment picker."""
    return db.query(Educator).order_by(Educator.first, Educator.last).all()


@router.get("/{educator_id}", response_model=EducatorOut)
def get_educator(educator_id: str, db: Session = Depends(get_db)):
    educator = db.query(Educator).filter(Educator.id == educator_id).first()
    if not educator:
        raise HTTPException(status_code=404, detail="Educator not found")
    return educator
