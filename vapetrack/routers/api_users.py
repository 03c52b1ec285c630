from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.users import create_user, delete_user, get_user, list_users, update_user
from ..db.session import get_db
from ..deps.auth import require_admin
from ..models.user import ManagedUser
from ..schemas.auth import UserCreate, UserOut, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(require_admin)])


def _user_or_404(db: Session, user_id: int) -> ManagedUser:
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[UserOut])
def api_list_users(role: Literal["admin", "staff"] | None = None, db: Session = Depends(get_db)):
    return list_users(db, role=role)


@router.post("", response_model=UserOut, status_code=201)
def api_create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: ManagedUser = Depends(require_admin),
):
    return create_user(db, payload.model_dump(), actor=admin.name)


@router.get("/{user_id}", response_model=UserOut)
def api_get_user(user_id: int, db: Session = Depends(get_db)):
    return _user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
def api_update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: ManagedUser = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    return update_user(db, user, payload.model_dump(exclude_unset=True), actor=admin.name)


@router.delete("/{user_id}")
def api_delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: ManagedUser = Depends(require_admin),
):
    user = _user_or_404(db, user_id)
    delete_user(db, user, acting_user=admin)
    return {"message": f"User {user_id} deleted successfully."}
