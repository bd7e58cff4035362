"""Shared route dependencies: engine, storage and the current account."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.engine import Engine

from services.api.src.helpline.core.auth import AuthError, resolve_session
from services.api.src.helpline.core.pipeline import ProcessFn, get_process_fn
from services.api.src.helpline.core.storage import AudioStorage, get_storage
from services.api.src.helpline.db.engine import get_engine
from services.api.src.helpline.schemas.enums import UserRole

_bearer = HTTPBearer(auto_error=False)


def _engine() -> Engine:
    return get_engine()


def _storage() -> AudioStorage:
    return get_storage()


def _process_fn() -> ProcessFn:
    return get_process_fn()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    engine: Engine = Depends(_engine),
) -> dict:
    if credentials is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    try:
        return resolve_session(engine, credentials.credentials)
    except AuthError as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, str(exc),
                            headers={"WWW-Authenticate": "Bearer"})


def require_role(role: UserRole):
    """Dependency factory that admits only accounts with `role`."""

    def checker(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] != role.value:
            raise HTTPException(
                status.HTTP_403_FORBIDDEN,
                f"You are logged in as a {user['role']}, but this page requires a {role.value}.",
            )
        return user

    return checker
