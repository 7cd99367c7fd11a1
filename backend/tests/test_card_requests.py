import threading
from decimal import Decimal

import pytest

from app.models.card import CardRequest
from app.models.user import User
from app.services import card_requests
from app.services.access import Identity
from app.services.card_requests import (
    advance_status,
    create_card_request,
    delete_card_request,
    get_card_request,
    list_card_requests,
    update_card_request,
)
from app.services.errors import BadRequest, Conflict, InvalidTransition, NotFound, StorageFailure
from conftest import build_session_factory


def _lagos_request(db, caller, batch="B-001"):
    return create_card_request(
        db,
        caller,
        branch_name="Lagos",
        card_type="Visa",
        quantity=100,
        card_charges=2500.00,
        batch=batch,
    )


def test_create_starts_pending_with_caller_as_initiator(db, make_user):
    caller = make_user("User")

    card_request = _lagos_request(db, caller)

    assert card_request.status == "Pending"
    assert card_request.initiator == caller.user_id
    assert card_request.card_charges == Decimal("2500.00")
    assert card_request.date_requested


@pytest.mark.parametrize("missing", ["branch_name", "card_type", "quantity", "card_charges", "batch"])
def test_create_requires_every_field(db, make_user, missing):
    caller = make_user()
    fields = {
        "branch_name": "Lagos",
        "card_type": "Visa",
        "quantity": 10,
        "card_charges": "100.00",
        "batch": "B-MISSING",
    }
    fields[missing] = None

    with pytest.raises(BadRequest, match=missing):
        create_card_request(db, caller, **fields)


@pytest.mark.parametrize("quantity", [0, -5, 2.5, "ten", True])
def test_create_rejects_non_positive_quantity(db, make_user, quantity):
    caller = make_user()

    with pytest.raises(BadRequest, match="quantity"):
        create_card_request(
            db, caller, branch_name="Abuja", card_type="Verve", quantity=quantity, card_charges=1, batch="B-Q"
        )


def test_create_rounds_charges_to_cents(db, make_user):
    caller = make_user()

    card_request = create_card_request(
        db, caller, branch_name="Abuja", card_type="Verve", quantity=1, card_charges="10.005", batch="B-R"
    )

    assert card_request.card_charges == Decimal("10.01")


def test_duplicate_batch_is_a_conflict(db, make_user):
    caller = make_user()
    _lagos_request(db, caller, batch="B1")

    with pytest.raises(Conflict, match="B1"):
        _lagos_request(db, caller, batch="B1")

    assert db.query(CardRequest).count() == 1


def test_lagos_scenario_rejects_skipping_ready(db, make_user):
    caller = make_user("User")
    card_request = _lagos_request(db, caller)

    advanced = advance_status(db, card_request.id, "In Progress", caller)
    assert advanced.status == "In Progress"

    with pytest.raises(InvalidTransition) as exc_info:
        advance_status(db, card_request.id, "Dispatched", caller)

    assert exc_info.value.allowed_next == "Ready"
    assert "Allowed next status: 'Ready'" in exc_info.value.detail
    assert get_card_request(db, card_request.id).status == "In Progress"


def test_walk_through_the_whole_workflow(db, make_user):
    caller = make_user()
    card_request = _lagos_request(db, caller)
    first_update = card_request.updated_at

    for status in ("In Progress", "Ready", "Dispatched", "Acknowledged"):
        card_request = advance_status(db, card_request.id, status, caller)
        assert card_request.status == status

    assert card_request.updated_at > first_update

    for status in ("Pending", "Dispatched", "Acknowledged"):
        with pytest.raises(InvalidTransition, match="is final"):
            advance_status(db, card_request.id, status, caller)


@pytest.mark.parametrize("requested", ["Pending", "Ready", None, "Lost"])
def test_advance_from_pending_only_accepts_in_progress(db, make_user, requested):
    caller = make_user()
    card_request = _lagos_request(db, caller)

    with pytest.raises(InvalidTransition, match="Allowed next status: 'In Progress'"):
        advance_status(db, card_request.id, requested, caller)


def test_advance_missing_request(db, make_user):
    with pytest.raises(NotFound):
        advance_status(db, 999, "In Progress", make_user())


def test_stale_read_loses_to_a_concurrent_transition(tmp_path, monkeypatch):
    engine, factory = build_session_factory(f"sqlite:///{tmp_path / 'stale.db'}")
    setup = factory()
    user = User(name="Racer", email="racer@example.com", password_hash="hashed", role="User")
    setup.add(user)
    setup.commit()
    caller = Identity(user_id=user.id, email=user.email, role=user.role)
    request_id = _lagos_request(setup, caller).id
    setup.close()

    original_get = card_requests._get_or_404

    def get_then_race(db, wanted_id):
        row = original_get(db, wanted_id)
        other = factory()
        try:
            other.query(CardRequest).filter(CardRequest.id == wanted_id).update({"status": "In Progress"})
            other.commit()
        finally:
            other.close()
        return row

    monkeypatch.setattr(card_requests, "_get_or_404", get_then_race)

    session = factory()
    try:
        with pytest.raises(InvalidTransition) as exc_info:
            advance_status(session, request_id, "In Progress", caller)
        assert exc_info.value.current_status == "In Progress"
        assert exc_info.value.allowed_next == "Ready"
    finally:
        session.close()
        engine.dispose()


def test_concurrent_advances_have_exactly_one_winner(tmp_path):
    engine, factory = build_session_factory(f"sqlite:///{tmp_path / 'race.db'}")
    setup = factory()
    user = User(name="Racer", email="racer@example.com", password_hash="hashed", role="User")
    setup.add(user)
    setup.commit()
    caller = Identity(user_id=user.id, email=user.email, role=user.role)
    request_id = _lagos_request(setup, caller).id
    setup.close()

    barrier = threading.Barrier(2)
    outcomes = []

    def worker():
        session = factory()
        try:
            barrier.wait()
            advance_status(session, request_id, "In Progress", caller)
            outcomes.append("ok")
        except (InvalidTransition, StorageFailure) as exc:
            outcomes.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    check = factory()
    try:
        assert outcomes.count("ok") == 1
        assert len(outcomes) == 2
        assert check.query(CardRequest).filter(CardRequest.id == request_id).one().status == "In Progress"
    finally:
        check.close()
        engine.dispose()


def test_update_rejects_status_regardless_of_other_fields(db, make_user):
    caller = make_user()
    card_request = _lagos_request(db, caller)

    for fields in ({"status": "In Progress"}, {"status": "Ready", "quantity": 5}, {"status": None}):
        with pytest.raises(BadRequest, match="Status cannot be updated"):
            update_card_request(db, card_request.id, fields, caller)

    with pytest.raises(BadRequest, match="Status cannot be updated"):
        update_card_request(db, 999, {"status": "Ready"}, caller)


@pytest.mark.parametrize("field", ["initiator", "id", "created_at", "updated_at", "secret_column"])
def test_update_rejects_fields_outside_allow_list(db, make_user, field):
    caller = make_user()
    card_request = _lagos_request(db, caller)

    with pytest.raises(BadRequest, match=field):
        update_card_request(db, card_request.id, {field: "x"}, caller)


def test_update_merges_fields_and_keeps_status(db, make_user):
    caller = make_user()
    card_request = _lagos_request(db, caller)
    before = card_request.updated_at

    updated = update_card_request(
        db, card_request.id, {"quantity": 250, "card_charges": "3000", "branch_name": "Ikeja"}, caller
    )

    assert updated.quantity == 250
    assert updated.card_charges == Decimal("3000.00")
    assert updated.branch_name == "Ikeja"
    assert updated.card_type == "Visa"
    assert updated.status == "Pending"
    assert updated.initiator == caller.user_id
    assert updated.updated_at > before


def test_update_to_existing_batch_is_a_conflict(db, make_user):
    caller = make_user()
    _lagos_request(db, caller, batch="B-001")
    second = _lagos_request(db, caller, batch="B-002")

    with pytest.raises(Conflict):
        update_card_request(db, second.id, {"batch": "B-001"}, caller)

    # Re-saving its own batch is not a conflict
    assert update_card_request(db, second.id, {"batch": "B-002"}, caller).batch == "B-002"


def test_update_missing_request(db, make_user):
    with pytest.raises(NotFound):
        update_card_request(db, 404, {"quantity": 1}, make_user())


def test_list_orders_newest_first(db, make_user):
    caller = make_user()
    first = _lagos_request(db, caller, batch="B-1")
    second = _lagos_request(db, caller, batch="B-2")
    third = _lagos_request(db, caller, batch="B-3")

    assert [r.id for r in list_card_requests(db)] == [third.id, second.id, first.id]


def test_delete(db, make_user):
    caller = make_user()
    card_request = _lagos_request(db, caller)

    delete_card_request(db, card_request.id, caller)

    assert list_card_requests(db) == []
    with pytest.raises(NotFound):
        delete_card_request(db, card_request.id, caller)


def test_requests_are_removed_with_their_initiator(db, make_user):
    caller = make_user()
    _lagos_request(db, caller)

    db.query(User).filter(User.id == caller.user_id).delete(synchronize_session=False)
    db.commit()

    assert db.query(CardRequest).count() == 0
