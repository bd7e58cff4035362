"""Accounts, password hashing and signed session tokens."""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from passlib.hash import pbkdf2_sha256
from sqlalchemy.engine import Engine

from services.api.src.helpline.config import settings
from services.api.src.helpline.core.redaction import redact_dict
from services.api.src.helpline.db.repository import UserRepository
from services.api.src.helpline.schemas.enums import UserRole

logger = logging.getLogger(__name__)

PBKDF2_ROUNDS = 260000
MIN_PASSWORD_LENGTH = 6


class AuthError(Exception):
    """Credentials were rejected or a session token is invalid."""


class AccountExistsError(AuthError):
    pass


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str, *, rounds: int = PBKDF2_ROUNDS) -> str:
    """Salted PBKDF2-SHA256 in passlib's `$pbkdf2-sha256$rounds$salt$hash` form."""
    return pbkdf2_sha256.using(rounds=rounds).hash(password)


def verify_password(password: str, encoded: str) -> bool:
    try:
        return pbkdf2_sha256.verify(password, encoded)
    except ValueError:
        # Not a pbkdf2_sha256 hash, or a malformed one.
        return False


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

def issue_token(user_id: str, role: str, ttl_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = settings.token_ttl_minutes if ttl_minutes is None else ttl_minutes
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid session token") from exc


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def signup(engine: Engine, email: str, password: str, name: str, role: UserRole | str) -> dict:
    """Create an account and return the stored user row (without the hash)."""
    role = UserRole(role)
    email = email.strip().lower()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    repo = UserRepository(engine)
    if repo.get_by_email(email):
        raise AccountExistsError("An account with this email already exists")

    row = repo.create(email=email, name=name, role=role.value, password_hash=hash_password(password))
    logger.info("account_created", extra=redact_dict({
        "user_id": row["id"], "email": email, "role": role.value,
    }))
    return _public(row)


def login(engine: Engine, email: str, password: str) -> dict:
    """Check credentials and return the user row (without the hash)."""
    row = UserRepository(engine).get_by_email(email)
    if not row or not verify_password(password, row["password_hash"]):
        logger.warning("login_rejected", extra=redact_dict({"email": email}))
        raise AuthError("Invalid email or password")

    logger.info("login_succeeded", extra={"user_id": row["id"]})
    return _public(row)


def resolve_session(engine: Engine, token: str) -> dict:
    """Map a session token to the current account row."""
    claims = decode_token(token)
    row = UserRepository(engine).get(claims.get("sub", ""))
    if not row:
        raise AuthError("Account no longer exists")
    return _public(row)


def _public(row: dict) -> dict:
    return {k: v for k, v in row.items() if k != "password_hash"}
