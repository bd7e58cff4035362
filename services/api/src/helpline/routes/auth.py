"""Signup, login and session endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from services.api.src.helpline.core import auth
from services.api.src.helpline.routes.deps import _engine, get_current_user
from services.api.src.helpline.schemas.responses import (
    AuthResponse,
    LoginRequest,
    SignupRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_response(user: dict) -> AuthResponse:
    return AuthResponse(
        token=auth.issue_token(user["id"], user["role"]),
        user=UserResponse(**user),
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(body: SignupRequest, engine: Engine = Depends(_engine)) -> AuthResponse:
    """Create an account with a role and start a session."""
    try:
        user = auth.signup(engine, body.email, body.password, body.name, body.role)
    except auth.AccountExistsError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, str(exc))
    except auth.AuthError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, engine: Engine = Depends(_engine)) -> AuthResponse:
    try:
        user = auth.login(engine, body.email, body.password)
    except auth.AuthError as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, str(exc))
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
def me(user: dict = Depends(get_current_user)) -> UserResponse:
    return UserResponse(**user)
