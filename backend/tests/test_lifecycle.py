"""Service-level tests for request transitions, promotion atomicity and queue hand-off."""
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import AuthorizationError, NotFoundError, StoreError, ValidationError
from app.models.class_request import ClassRequest, ClassRequestStatus
from app.models.confirmed_class import ConfirmedClass
from app.models.lifecycle_event import LifecycleEvent
from app.models.profile import Role
from app.services import lifecycle
from tests.conftest import make_profile, make_site

START = date.today() + timedelta(days=10)
END = START + timedelta(days=5)


def _new(db, actor, site=None, types=("CPR", "AED")):
    return lifecycle.create_request(db, actor, list(types), START, END, site_id=site.id if site else None).request


def _to_final_confirmation(db, staff, site, educator):
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    lifecycle.contact_educator(db, cr.id, staff, send_notice=False)
    return lifecycle.record_date(db, cr.id, staff, START + timedelta(days=1))


def test_transition_table_covers_every_lifecycle_action():
    S = ClassRequestStatus
    t = lifecycle.TRANSITIONS
    assert t[lifecycle.Action.assign_educator].target == S.confirm_educator_dates
    assert t[lifecycle.Action.contact_educator].target == S.awaiting_date
    assert t[lifecycle.Action.record_date].target == S.final_confirmation
    assert t[lifecycle.Action.promote].target is None
    assert S.final_confirmation in t[lifecycle.Action.promote].sources
    assert set(t[lifecycle.Action.remove].sources) == set(S)


def test_promotion_inserts_class_and_deletes_request(db, staff, site, educator):
    cr = _to_final_confirmation(db, staff, site, educator)
    request_id = cr.id

    confirmed = lifecycle.promote(db, request_id, staff)

    assert confirmed.source_request_id == request_id
    assert confirmed.dateofclass == START + timedelta(days=1)
    assert db.query(ClassRequest).filter(ClassRequest.id == request_id).first() is None
    assert db.query(ConfirmedClass).count() == 1


def test_promotion_failure_applies_nothing(db, staff, site, educator, monkeypatch):
    cr = _to_final_confirmation(db, staff, site, educator)
    request_id = cr.id

    def _fail(*args, **kwargs):
        raise OperationalError("DELETE FROM pending_class", {}, Exception("database is locked"))

    monkeypatch.setattr(lifecycle, "guarded_delete", _fail)

    with pytest.raises(StoreError):
        lifecycle.promote(db, request_id, staff)

    assert db.query(ConfirmedClass).count() == 0
    remaining = db.query(ClassRequest).filter(ClassRequest.id == request_id).first()
    assert remaining is not None
    assert remaining.status == ClassRequestStatus.final_confirmation
    assert db.query(LifecycleEvent).filter(LifecycleEvent.action == "promote").count() == 0


def test_promotion_twice_is_not_found(db, staff, site, educator):
    cr = _to_final_confirmation(db, staff, site, educator)
    request_id = cr.id
    lifecycle.promote(db, request_id, staff)
    with pytest.raises(NotFoundError):
        lifecycle.promote(db, request_id, staff)
    assert db.query(ConfirmedClass).count() == 1


def test_promotion_requires_site(db, staff, educator):
    cr = _new(db, staff, site=None)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    lifecycle.contact_educator(db, cr.id, staff, send_notice=False)
    lifecycle.record_date(db, cr.id, staff, START)

    with pytest.raises(ValidationError) as exc:
        lifecycle.promote(db, cr.id, staff)
    assert exc.value.field == "site_id"
    assert db.query(ConfirmedClass).count() == 0
    assert lifecycle.get_request(db, cr.id).status == ClassRequestStatus.final_confirmation


def test_promotion_requires_class_date(db, staff, site, educator):
    cr = _to_final_confirmation(db, staff, site, educator)
    cr.class_date = None
    db.commit()

    with pytest.raises(ValidationError) as exc:
        lifecycle.promote(db, cr.id, staff)
    assert exc.value.field == "class_date"
    assert db.query(ConfirmedClass).count() == 0


def test_contact_requires_educator(db, staff, site, educator):
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    cr.educator_id = None
    db.commit()

    with pytest.raises(ValidationError) as exc:
        lifecycle.contact_educator(db, cr.id, staff)
    assert exc.value.field == "educator_id"
    assert lifecycle.get_request(db, cr.id).status == ClassRequestStatus.confirm_educator_dates


def test_record_date_returns_request_to_coordinator(db, staff, site, educator):
    """Whoever handled the request in between, it goes back to its coordinator."""
    other = make_profile(db, "Omar", Role.admin)
    cr = _new(db, staff, site)

    assigned = lifecycle.assign_educator(db, cr.id, other, educator.id)
    assert assigned.queue_user_id == other.id
    lifecycle.contact_educator(db, cr.id, other, send_notice=False)

    recorded = lifecycle.record_date(db, cr.id, other, START)
    assert recorded.queue_user_id == staff.id
    assert recorded.educator_response_at is not None


def test_assigned_educator_records_date(db, staff, site, educator):
    erin = make_profile(db, "Erin", Role.educator, email=educator.email1)
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    lifecycle.contact_educator(db, cr.id, staff, send_notice=False)
    lifecycle.respond_to_offer(db, cr.id, erin, accept=True)

    recorded = lifecycle.record_date(db, cr.id, erin, START + timedelta(days=2))
    assert recorded.status == ClassRequestStatus.final_confirmation
    assert recorded.class_date == START + timedelta(days=2)


def test_educator_without_matching_row_is_rejected(db, staff, site, educator):
    stranger = make_profile(db, "Stan", Role.educator, email="stan@elsewhere.example.com")
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    lifecycle.contact_educator(db, cr.id, staff, send_notice=False)

    with pytest.raises(AuthorizationError):
        lifecycle.record_date(db, cr.id, stranger, START)
    assert lifecycle.get_request(db, cr.id).status == ClassRequestStatus.awaiting_date


def test_client_cannot_promote(db, staff, site, educator):
    client_admin = make_profile(db, "Clara", Role.client_admin)
    cr = _to_final_confirmation(db, staff, site, educator)
    with pytest.raises(AuthorizationError):
        lifecycle.promote(db, cr.id, client_admin)
    assert db.query(ConfirmedClass).count() == 0


def test_record_date_requires_date(db, staff, site, educator):
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    lifecycle.contact_educator(db, cr.id, staff, send_notice=False)
    with pytest.raises(ValidationError) as exc:
        lifecycle.record_date(db, cr.id, staff, None)
    assert exc.value.field == "class_date"


def test_decline_clears_educator(db, staff, site, educator):
    erin = make_profile(db, "Erin", Role.educator, email=educator.email1)
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)

    declined = lifecycle.respond_to_offer(db, cr.id, erin, accept=False)
    assert declined.status == ClassRequestStatus.pending
    assert declined.educator_id is None

    # Back in the initial state, so it can be reassigned
    again = lifecycle.assign_educator(db, cr.id, staff, educator.id)
    assert again.status == ClassRequestStatus.confirm_educator_dates


def test_edit_cannot_clear_educator_after_assignment(db, staff, site, educator):
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    with pytest.raises(ValidationError) as exc:
        lifecycle.edit_request(db, cr.id, staff, {"educator_id": None})
    assert exc.value.field == "educator_id"


def test_remove_deletes_request_and_logs(db, staff, site):
    cr = _new(db, staff, site)
    request_id = cr.id
    lifecycle.remove(db, request_id, staff)

    assert db.query(ClassRequest).filter(ClassRequest.id == request_id).first() is None
    actions = [e.action for e in lifecycle.history(db, request_id)]
    assert actions == ["create_request", "remove"]


def test_ledger_records_status_change(db, staff, site, educator):
    cr = _new(db, staff, site)
    lifecycle.assign_educator(db, cr.id, staff, educator.id)

    entries = lifecycle.history(db, cr.id)
    assert entries[-1].from_status == "pending"
    assert entries[-1].to_status == "Confirm Educator Dates"
    assert entries[-1].actor_id == staff.id
    assert entries[-1].before_snapshot["educator_id"] is None
    assert entries[-1].after_snapshot["educator_id"] == educator.id


def test_estimate_uses_assigned_educator(db, staff, site, educator):
    cr = _new(db, staff, site, types=("CPR", "AED"))
    lifecycle.assign_educator(db, cr.id, staff, educator.id)
    result = lifecycle.estimate(db, cr.id)
    assert str(result["estimate"]) == "125.00"


def test_client_cannot_request_for_another_organization(db, site):
    other_site = make_site(db, "Annex", site_email="annex@example.com")
    outsider = make_profile(db, "Otto", Role.client_admin, company_id=other_site.company_id)

    with pytest.raises(AuthorizationError):
        lifecycle.create_request(db, outsider, ["CPR"], START, END, site_id=site.id)
    with pytest.raises(AuthorizationError):
        lifecycle.create_request(db, outsider, ["CPR"], START, END, company_id=site.company_id)
    assert db.query(ClassRequest).count() == 0


def test_client_request_defaults_to_own_organization(db, site):
    clara = make_profile(db, "Clara", Role.client_site, company_id=site.company_id)
    assert clara.company_id == site.company_id

    cr = lifecycle.create_request(db, clara, ["AED"], START, END).request
    assert cr.company_id == site.company_id
    assert cr.status == ClassRequestStatus.pending_review


def test_unlinked_client_cannot_request(db, site):
    unlinked = make_profile(db, "Una", Role.user)
    with pytest.raises(AuthorizationError):
        lifecycle.create_request(db, unlinked, ["CPR"], START, END, site_id=site.id)


def test_staff_may_request_for_any_organization(db, staff, site):
    cr = _new(db, staff, site)
    assert cr.company_id == site.company_id
