from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.security import decode_token
from ..db.session import get_db
from ..middlewares import principal_ctx_var
from ..models.user import ManagedUser

SESSION_USER_KEY = "user_id"


def _unauthorized(detail: str = "Authentication required") -> None:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def _session_user_id(request: Request) -> int | None:
    if "session" not in request.scope:
        return None
    value = request.session.get(SESSION_USER_KEY)
    return int(value) if value is not None else None


def login_session(request: Request, user: ManagedUser) -> None:
    request.session[SESSION_USER_KEY] = user.id
    request.session["role"] = user.role


def logout_session(request: Request) -> None:
    if "session" in request.scope:
        request.session.clear()


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> ManagedUser:
    """Resolve the caller from the session cookie or a bearer access token."""

    user_id = _session_user_id(request)
    scheme = "session"
    if user_id is None and authorization:
        token_scheme, credentials = get_authorization_scheme_param(authorization)
        if token_scheme.lower() == "bearer" and credentials:
            try:
                payload = decode_token(credentials, verify_type="access")
            except ValueError as exc:
                _unauthorized(str(exc))
            if not payload.sub.isdigit():
                _unauthorized("Invalid token subject")
            user_id = int(payload.sub)
            scheme = "jwt"
    if user_id is None:
        _unauthorized()

    user = db.get(ManagedUser, user_id)
    if user is None:
        logout_session(request)
        _unauthorized("User no longer exists")
    _set_principal(request, f"{scheme}:{user.name}")
    return user


def require_admin(user: ManagedUser = Depends(get_current_user)) -> ManagedUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
