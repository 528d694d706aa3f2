# Overview: Service-layer operations for accounts; signup, password hashing and credential checks.

"""
Accounts.

One account is one issuing company: every client and document hangs off a
user id. The email is the login and is unique across accounts.

Passwords are hashed with bcrypt (cost 12) after a strength check.
Sessions are handled by session_service once the credentials pass.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..validation import ConflictError, FieldErrors, require_email, require_str
from facturflow.time_utils import utcnow


BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8

# (pattern, message) pairs checked in order; the first miss is reported
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>?_\-+=;/\\\[\]~`]"), "Password must contain at least one special character"),
)


class PasswordValidationError(Exception):
    """Password too weak; the message names the first rule it breaks."""


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(message)


def hash_password(password: str) -> str:
    """Strength check, then bcrypt. Returns the hash as text for the users table."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw((password or "").encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Unreadable hash stored for this account
        return False


def create_user(name: str, email: str, password: str) -> User:
    """
    Create new account with bcrypt password hashing.

    Raises:
        ConflictError: email already registered
        PasswordValidationError: password doesn't meet requirements
    """
    email = email.strip().lower()
    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("An account with this email already exists")

    password_hash = hash_password(password)

    user = User(
        name=name.strip(),
        email=email,
        password_hash=password_hash,
    )

    db.session.add(user)
    db.session.commit()
    return user


def register(payload: dict) -> User:
    """Validate a signup form, then create the account."""
    errors = FieldErrors()
    name = require_str(payload, "name", errors, min_len=2, max_len=128, label="Name")
    email = require_email(payload, "email", errors)
    password = payload.get("password") or ""
    confirm = payload.get("confirm_password")

    if not password:
        errors.add("password", "Password is required")
    else:
        try:
            validate_password_strength(password)
        except PasswordValidationError as e:
            errors.add("password", str(e))
    if confirm is not None and confirm != password:
        errors.add("confirm_password", "Passwords do not match")
    errors.raise_if_any()

    return create_user(name, email, password)


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user

