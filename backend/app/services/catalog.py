"""Class-type catalog and cost estimation.

Single shared reference for class names and their duration in hours.
Requests store the selected types comma-joined; everything else works on
the ordered list.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.errors import ValidationError

logger = logging.getLogger(__name__)

CLASS_TYPE_HOURS: dict[str, Decimal] = {
    "AED": Decimal("2"),
    "CPR": Decimal("3"),
    "BBP": Decimal("1"),
    "SFA": Decimal("2"),
    "EFA": Decimal("3"),
    "40 Hour First Responder": Decimal("40"),
    "Advanced SFA": Decimal("4"),
    "AHA CPR Pro": Decimal("3"),
    "ASHI BLS": Decimal("3"),
    "ASHI CABS": Decimal("2"),
    "ASHI CPR Pro": Decimal("3"),
    "Babysitter Safety 101": Decimal("2"),
    "Babysitter Safety 102": Decimal("2"),
    "Earthquake Preparedness": Decimal("1"),
    "ECSI CPR Pro": Decimal("3"),
    "Infant CPR": Decimal("2"),
    "Pediatric CPR": Decimal("3"),
}

# Entries seen in the legacy class selector that disagree with the table above.
# Kept for visibility only; CLASS_TYPE_HOURS is authoritative.
CATALOG_CONFLICTS: dict[str, Decimal] = {
    "CPR": Decimal("4"),
    "First Aid": Decimal("3"),
    "OSHA": Decimal("6"),
}

CENTS = Decimal("0.01")


def _report_conflicts() -> None:
    for name, hours in CATALOG_CONFLICTS.items():
        known = CLASS_TYPE_HOURS.get(name)
        if known is None:
            logger.warning("Legacy class type '%s' (%sh) is not in the catalog", name, hours)
        elif known != hours:
            logger.warning("Legacy class type '%s' lists %sh, catalog uses %sh", name, hours, known)


_report_conflicts()


def parse_class_types(text: Optional[str]) -> list[str]:
    """Split the stored comma-joined form into an ordered list of names."""
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def join_class_types(types: Iterable[str]) -> str:
    return ", ".join(t.strip() for t in types if t and t.strip())


def validate_class_types(types: Iterable[str]) -> list[str]:
    """Return the cleaned list, rejecting empty selections and unknown names."""
    cleaned = [t.strip() for t in types if t and t.strip()]
    if not cleaned:
        raise ValidationError("At least one class type is required", field="class_types")
    unknown = [t for t in cleaned if t not in CLASS_TYPE_HOURS]
    if unknown:
        raise ValidationError(f"Unknown class type(s): {', '.join(unknown)}", field="class_types")
    return cleaned


def hours_for(types: Iterable[str]) -> Decimal:
    """Total hours for the selected class types."""
    return sum((CLASS_TYPE_HOURS[t] for t in validate_class_types(types)), Decimal("0"))


def estimate_cost(types: Iterable[str], rate: Optional[Decimal]) -> Decimal:
    """sum(hours per selected type) * hourly rate, rounded to cents."""
    if rate is None:
        raise ValidationError("Educator has no hourly rate on file", field="rate1")
    total = hours_for(types) * Decimal(str(rate))
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)
