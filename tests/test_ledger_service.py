"""
Tests for the CaseLedger boundary operations.
"""

from dataclasses import replace

import pytest
from conftest import USER_A, USER_B, make_case, make_client

from case_ledger.models.errors import OwnershipViolation, RecordNotFound


def test_save_then_load_round_trip(ledger, clock):
    case = make_case(serial_number="4", section="Sec. 420", priority="High")
    stored = ledger.save_case(USER_A, None, case)

    loaded = {c.case_id: c for c in ledger.load_cases(USER_A)}["c1"]

    assert loaded == stored
    assert replace(loaded, created_at=0, updated_at=0) == case
    assert loaded.updated_at >= clock.now


def test_get_case_missing_is_fatal(ledger):
    with pytest.raises(RecordNotFound):
        ledger.get_case(USER_A, "missing")


def test_save_case_rejects_previous_of_another_user(ledger):
    theirs = ledger.save_case(USER_B, None, make_case(user_id=USER_B))

    with pytest.raises(OwnershipViolation):
        ledger.save_case(USER_A, theirs, replace(theirs, user_id=USER_A))


def test_save_case_rejects_mismatched_previous(ledger):
    previous = ledger.save_case(USER_A, None, make_case("a"))
    with pytest.raises(ValueError):
        ledger.save_case(USER_A, previous, make_case("b"))


def test_editing_a_deleted_case_does_not_recreate_it(ledger):
    stored = ledger.save_case(USER_A, None, make_case())
    assert ledger.delete_case(USER_A, "c1") is True

    with pytest.raises(RecordNotFound):
        ledger.save_case(USER_A, stored, replace(stored, next_date="2024-06-01"))

    assert ledger.load_cases(USER_A) == []


def test_save_case_requires_existing_client(ledger):
    with pytest.raises(RecordNotFound):
        ledger.save_case(USER_A, None, make_case(client_id="ghost"))

    ledger.save_client(USER_B, make_client("kb", user_id=USER_B))
    with pytest.raises(OwnershipViolation):
        ledger.save_case(USER_A, None, make_case(client_id="kb"))

    assert ledger.load_cases(USER_A) == []


def test_save_case_with_own_client(ledger):
    ledger.save_client(USER_A, make_client())
    stored = ledger.save_case(USER_A, None, make_case(client_id="k1"))
    assert stored.client_id == "k1"


def test_users_see_only_their_records(ledger):
    ledger.save_case(USER_A, None, make_case("a"))
    ledger.save_client(USER_A, make_client("ka"))

    assert ledger.load_cases(USER_B) == []
    assert ledger.load_clients(USER_B) == []
    with pytest.raises(OwnershipViolation):
        ledger.get_case(USER_B, "a")
    with pytest.raises(OwnershipViolation):
        ledger.delete_client(USER_B, "ka")


def test_save_client_only_links_own_cases(ledger):
    ledger.save_case(USER_B, None, make_case("theirs", user_id=USER_B))

    result = ledger.save_client(USER_A, make_client(case_number="CR/1/2024"))

    assert result.linked_cases == []
    assert ledger.get_case(USER_B, "theirs").client_id is None


def test_login_creates_user_once(ledger):
    first = ledger.login("advocate@example.com")
    second = ledger.login("advocate@example.com", "Someone Else")

    assert first.user_id == second.user_id
    assert first.name == "advocate"


def test_update_profile(ledger):
    user = ledger.login("advocate@example.com")

    updated = ledger.update_profile(user.user_id, name="A. Advocate", photo="data:image/png;base64,AAAA")
    assert updated.name == "A. Advocate"
    assert updated.photo == "data:image/png;base64,AAAA"

    cleared = ledger.update_profile(user.user_id, photo="")
    assert cleared.photo is None
    assert ledger.get_user(user.user_id).name == "A. Advocate"
