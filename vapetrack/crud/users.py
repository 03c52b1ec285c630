"""Shop initialization, login and managed users."""

from __future__ import annotations

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, DomainError, PermissionDenied
from ..core.security import hash_password, verify_password
from ..models.capital import CapitalAccount, CompanyProfile
from ..models.user import ROLE_ADMIN, ROLE_STAFF, ROLES, ManagedUser
from ..services.dates import utcnow_iso
from ..services.payments import fmt_money, round_money
from .logs import SYSTEM_ACTOR, add_log_entry

MIN_PASSWORD_LENGTH = 6


def _check_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise DomainError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return password


def _normalize_email(email: str | None) -> str | None:
    value = (email or "").strip().lower()
    return value or None


def get_company(db: Session) -> CompanyProfile | None:
    return db.execute(select(CompanyProfile).order_by(CompanyProfile.id)).scalars().first()


def setup_status(db: Session) -> dict[str, object]:
    company = get_company(db)
    return {"initialized": company is not None, "company_name": company.company_name if company else None}


def initialize_app(db: Session, payload: dict) -> ManagedUser:
    """First-run setup: company profile, opening capital and the owner admin."""

    if get_company(db) is not None:
        raise ConflictError("Application is already initialized.")
    company_name = (payload.get("company_name") or "").strip()
    if not company_name:
        raise DomainError("Company name is required.")
    admin_name = (payload.get("admin_name") or "").strip()
    if not admin_name:
        raise DomainError("Admin name is required.")
    cash = float(payload.get("initial_cash") or 0)
    digital = float(payload.get("initial_digital") or 0)
    if cash < 0 or digital < 0:
        raise DomainError("Opening balances cannot be negative.")

    now = utcnow_iso()
    db.add(CompanyProfile(company_name=company_name, initialized_at=now))
    db.add(CapitalAccount(cash_in_hand=round_money(cash), digital_balance=round_money(digital), last_updated=now))
    owner = ManagedUser(
        name=admin_name,
        email=_normalize_email(payload.get("admin_email")),
        contact_number=(payload.get("admin_contact") or "").strip() or None,
        role=ROLE_ADMIN,
        password_hash=hash_password(_check_password(payload.get("admin_password"))),
        is_owner=True,
        created_at=now,
        added_by=SYSTEM_ACTOR,
    )
    db.add(owner)
    add_log_entry(
        db,
        SYSTEM_ACTOR,
        "Application Initialized",
        f"Company '{company_name}' initialized with admin '{admin_name}'. "
        f"Opening cash: {fmt_money(cash)}, digital: {fmt_money(digital)}.",
    )
    db.commit()
    db.refresh(owner)
    return owner


def find_by_identifier(db: Session, identifier: str) -> ManagedUser | None:
    value = (identifier or "").strip().lower()
    if not value:
        return None
    stmt = select(ManagedUser).where(
        or_(func.lower(ManagedUser.name) == value, func.lower(ManagedUser.email) == value)
    )
    return db.execute(stmt.order_by(ManagedUser.id)).scalars().first()


def authenticate(db: Session, identifier: str, password: str) -> ManagedUser | None:
    user = find_by_identifier(db, identifier)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def record_login(db: Session, user: ManagedUser) -> None:
    add_log_entry(db, user.name, "User Login", f"{user.role.capitalize()} '{user.name}' logged in.")
    db.commit()


def change_password(db: Session, user: ManagedUser, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise DomainError("Current password is incorrect.")
    if current_password == new_password:
        raise DomainError("New password must be different from the current password.")
    user.password_hash = hash_password(_check_password(new_password))
    add_log_entry(db, user.name, "Password Changed", f"User '{user.name}' changed their password.")
    db.commit()


def list_users(db: Session, role: str | None = None) -> list[ManagedUser]:
    stmt = select(ManagedUser)
    if role:
        stmt = stmt.where(ManagedUser.role == role)
    return list(db.execute(stmt.order_by(desc(ManagedUser.created_at), desc(ManagedUser.id))).scalars().all())


def get_user(db: Session, user_id: int) -> ManagedUser | None:
    return db.get(ManagedUser, user_id)


def _ensure_unique_email(db: Session, email: str | None, exclude_id: int | None = None) -> None:
    if not email:
        return
    stmt = select(ManagedUser.id).where(func.lower(ManagedUser.email) == email)
    if exclude_id is not None:
        stmt = stmt.where(ManagedUser.id != exclude_id)
    if db.execute(stmt).first():
        raise ConflictError(f"A user with email '{email}' already exists.")


def create_user(db: Session, payload: dict, actor: str) -> ManagedUser:
    name = (payload.get("name") or "").strip()
    if not name:
        raise DomainError("User name cannot be empty.")
    role = payload.get("role") or ROLE_STAFF
    if role not in ROLES:
        raise DomainError(f"Role must be one of: {', '.join(ROLES)}.")
    email = _normalize_email(payload.get("email"))
    _ensure_unique_email(db, email)

    user = ManagedUser(
        name=name,
        email=email,
        contact_number=(payload.get("contact_number") or "").strip() or None,
        role=role,
        password_hash=hash_password(_check_password(payload.get("password"))),
        is_owner=False,
        created_at=utcnow_iso(),
        added_by=actor,
    )
    db.add(user)
    add_log_entry(db, actor, "User Added", f"{role.capitalize()} user '{name}' added by {actor}.")
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user: ManagedUser, payload: dict, actor: str) -> ManagedUser:
    changes: list[str] = []
    if payload.get("name") is not None:
        name = payload["name"].strip()
        if not name:
            raise DomainError("User name cannot be empty.")
        if name != user.name:
            changes.append(f"Name: {user.name} -> {name}")
            user.name = name
    if "contact_number" in payload:
        contact = (payload.get("contact_number") or "").strip() or None
        if contact != user.contact_number:
            changes.append(f"Contact: {user.contact_number or 'N/A'} -> {contact or 'N/A'}")
            user.contact_number = contact
    if "email" in payload:
        email = _normalize_email(payload.get("email"))
        if email != user.email:
            _ensure_unique_email(db, email, exclude_id=user.id)
            changes.append(f"Email: {user.email or 'N/A'} -> {email or 'N/A'}")
            user.email = email
    if not changes:
        return user
    add_log_entry(db, actor, "User Updated", f"User ID {user.id} updated by {actor}. " + "; ".join(changes))
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: ManagedUser, acting_user: ManagedUser) -> None:
    if user.is_owner:
        add_log_entry(
            db,
            acting_user.name,
            "User Deletion Refused",
            f"Attempt to delete owner admin '{user.name}' refused.",
        )
        db.commit()
        raise PermissionDenied("The owner admin account cannot be deleted.")
    if user.id == acting_user.id:
        raise DomainError("You cannot delete your own account.")
    add_log_entry(
        db,
        acting_user.name,
        "User Deleted",
        f"{user.role.capitalize()} user '{user.name}' deleted by {acting_user.name}.",
    )
    db.delete(user)
    db.commit()
