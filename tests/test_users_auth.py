import pytest

from vapetrack.core.errors import ConflictError, DomainError, PermissionDenied
from vapetrack.core.security import decode_token, issue_token_pair
from vapetrack.crud.logs import list_log_entries
from vapetrack.crud.users import (
    authenticate,
    change_password,
    create_user,
    delete_user,
    initialize_app,
    list_users,
    setup_status,
    update_user,
)

from conftest import ADMIN_PASSWORD, STAFF_PASSWORD


def test_initialize_creates_owner_company_and_capital(db_session):
    assert setup_status(db_session) == {"initialized": False, "company_name": None}
    owner = initialize_app(
        db_session,
        {
            "company_name": "Cloud Nine Vapes",
            "admin_name": "Owner",
            "admin_email": "Owner@Example.com",
            "admin_password": "secret-1",
            "initial_cash": 1000,
        },
    )
    assert owner.is_owner and owner.is_admin
    assert owner.email == "owner@example.com"
    assert owner.password_hash != "secret-1"
    assert setup_status(db_session) == {"initialized": True, "company_name": "Cloud Nine Vapes"}

    with pytest.raises(ConflictError):
        initialize_app(db_session, {"company_name": "Again", "admin_name": "X", "admin_password": "secret-2"})


def test_authenticate_by_name_or_email(db_session, owner, staff):
    assert authenticate(db_session, "owner@example.com", ADMIN_PASSWORD).id == owner.id
    assert authenticate(db_session, "  SITA ", STAFF_PASSWORD).id == staff.id
    assert authenticate(db_session, "Sita", "wrong") is None
    assert authenticate(db_session, "nobody", STAFF_PASSWORD) is None


def test_change_password(db_session, staff):
    with pytest.raises(DomainError):
        change_password(db_session, staff, "wrong", "new-pass-1")
    with pytest.raises(DomainError):
        change_password(db_session, staff, STAFF_PASSWORD, STAFF_PASSWORD)
    change_password(db_session, staff, STAFF_PASSWORD, "new-pass-1")
    assert authenticate(db_session, "Sita", "new-pass-1") is not None
    assert authenticate(db_session, "Sita", STAFF_PASSWORD) is None


def test_user_management(db_session, owner, staff):
    with pytest.raises(ConflictError):
        create_user(db_session, {"name": "Dup", "email": "SITA@example.com", "password": "pass-123"}, actor="Owner")

    assert [u.name for u in list_users(db_session, role="staff")] == ["Sita"]
    assert len(list_users(db_session)) == 2

    update_user(db_session, staff, {"contact_number": "9800000000"}, actor="Owner")
    assert staff.contact_number == "9800000000"

    with pytest.raises(PermissionDenied):
        delete_user(db_session, owner, acting_user=staff)
    assert list_log_entries(db_session, action="User Deletion Refused")

    second_admin = create_user(db_session, {"name": "Hari", "role": "admin", "password": "pass-123"}, actor="Owner")
    with pytest.raises(DomainError):
        delete_user(db_session, second_admin, acting_user=second_admin)

    delete_user(db_session, staff, acting_user=owner)
    assert [u.name for u in list_users(db_session, role="staff")] == []


def test_token_pair_round_trip():
    pair = issue_token_pair(subject="7", role="staff")
    payload = decode_token(pair.access_token, verify_type="access")
    assert payload.sub == "7"
    assert payload.role == "staff"
    with pytest.raises(ValueError):
        decode_token(pair.access_token, verify_type="refresh")
    with pytest.raises(ValueError):
        decode_token("not-a-token")
