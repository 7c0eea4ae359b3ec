"""Tests for the class-type catalog and cost estimates."""
from decimal import Decimal

import pytest

from app.errors import ValidationError
from app.services import catalog


def test_parse_and_join_keep_selection_order():
    types = catalog.parse_class_types("CPR, AED,  BBP")
    assert types == ["CPR", "AED", "BBP"]
    assert catalog.join_class_types(types) == "CPR, AED, BBP"


def test_parse_empty_text():
    assert catalog.parse_class_types(None) == []
    assert catalog.parse_class_types(" , ") == []


def test_hours_sum_over_selection():
    assert catalog.hours_for(["CPR", "AED"]) == Decimal("5")
    assert catalog.hours_for(["40 Hour First Responder"]) == Decimal("40")


def test_estimate_cpr_and_aed_at_25():
    """CPR (3h) + AED (2h) at $25/h is $125.00."""
    assert catalog.estimate_cost(["CPR", "AED"], Decimal("25")) == Decimal("125.00")


def test_estimate_rounds_to_cents():
    assert catalog.estimate_cost(["BBP"], Decimal("33.335")) == Decimal("33.34")


def test_estimate_requires_rate():
    with pytest.raises(ValidationError) as exc:
        catalog.estimate_cost(["CPR"], None)
    assert exc.value.field == "rate1"


def test_unknown_type_rejected():
    with pytest.raises(ValidationError) as exc:
        catalog.validate_class_types(["CPR", "Underwater Welding"])
    assert exc.value.field == "class_types"
    assert "Underwater Welding" in exc.value.detail["message"]


def test_empty_selection_rejected():
    with pytest.raises(ValidationError):
        catalog.validate_class_types(["", "  "])


def test_legacy_conflicts_do_not_override_catalog():
    assert catalog.CATALOG_CONFLICTS["CPR"] == Decimal("4")
    assert catalog.CLASS_TYPE_HOURS["CPR"] == Decimal("3")
    assert "OSHA" not in catalog.CLASS_TYPE_HOURS


def test_catalog_route_lists_every_type(client):
    resp = client.get("/api/catalog/class-types")
    assert resp.status_code == 200
    names = {item["name"] for item in resp.json()}
    assert names == set(catalog.CLASS_TYPE_HOURS)
