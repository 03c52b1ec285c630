from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..core.security import decode_token, issue_token_pair
from ..crud.users import (
    authenticate,
    change_password,
    get_user,
    initialize_app,
    record_login,
    setup_status,
)
from ..db.session import get_db
from ..deps.auth import get_current_user, login_session, logout_session
from ..models.user import ManagedUser
from ..schemas.auth import (
    InitializeRequest,
    LoginRequest,
    LoginResponse,
    PasswordChange,
    RefreshRequest,
    SetupStatus,
    TokenResponse,
    UserOut,
)

logger = logging.getLogger("vapetrack.auth")

setup_router = APIRouter(prefix="/api/setup", tags=["setup"])
router = APIRouter(prefix="/api/auth", tags=["auth"])


@setup_router.get("/status", response_model=SetupStatus)
def api_setup_status(db: Session = Depends(get_db)):
    return setup_status(db)


@setup_router.post("/initialize", response_model=UserOut, status_code=201)
def api_initialize(payload: InitializeRequest, db: Session = Depends(get_db)):
    owner = initialize_app(db, payload.model_dump())
    logger.info("setup.initialized", extra={"extra_data": {"company": payload.company_name}})
    return owner


@router.post("/login", response_model=LoginResponse, summary="Log in with name or email")
def api_login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate(db, payload.identifier, payload.password)
    if user is None:
        logger.warning("auth.login_failed", extra={"extra_data": {"identifier": payload.identifier}})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if payload.role and user.role != payload.role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This account does not have {payload.role} access.",
        )
    login_session(request, user)
    record_login(db, user)
    pair = issue_token_pair(subject=str(user.id), role=user.role)
    return LoginResponse(**pair.model_dump(), user=UserOut.model_validate(user))


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def api_refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        token = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    user = get_user(db, int(token.sub)) if token.sub.isdigit() else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    pair = issue_token_pair(subject=str(user.id), role=user.role)
    return TokenResponse(**pair.model_dump())


@router.post("/logout")
def api_logout(request: Request):
    logout_session(request)
    return {"message": "Logged out."}


@router.get("/me", response_model=UserOut)
def api_me(user: ManagedUser = Depends(get_current_user)):
    return user


@router.put("/password")
def api_change_password(
    payload: PasswordChange,
    user: ManagedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password updated successfully."}
