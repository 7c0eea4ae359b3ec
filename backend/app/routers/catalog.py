"""Class-type catalog route."""
from fastapi import APIRouter

from app.schemas.reference import ClassTypeOut
from app.services.catalog import CLASS_TYPE_HOURS

router = APIRouter()


@router.get("/class-types", response_model=list[ClassTypeOut])
def list_class_types():
    return [{"name": name, "hours": hours} for name, hours in CLASS_TYPE_HOURS.items()]
