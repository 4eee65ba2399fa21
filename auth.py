"""Credential store and stateless session tokens.

Passwords are stored as salted werkzeug hashes. Sessions are signed JWTs
carrying ``id``, ``username`` and ``email``; verification needs no store
round-trip, which also means a token stays valid until it expires.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from errors import (
    AuthError,
    ConflictError,
    InvalidTokenError,
    MissingTokenError,
    NotFoundError,
    ValidationError,
)
from models import User

logger = logging.getLogger(__name__)

# floors roughly matching bcrypt cost 10
MIN_PBKDF2_ITERATIONS = 600_000
MIN_SCRYPT_N = 2 ** 14


def is_strong_hash_method(method):
    """Return True if a werkzeug hash method string meets the work-factor floor."""
    name, *params = method.split(":")
    try:
        if name == "scrypt":
            n = int(params[0]) if params else 2 ** 15
            return n >= MIN_SCRYPT_N
        if name == "pbkdf2":
            iterations = int(params[1]) if len(params) > 1 else MIN_PBKDF2_ITERATIONS
            return iterations >= MIN_PBKDF2_ITERATIONS
    except ValueError:
        return False
    return False


@dataclass
class LoginResult:
    token: str
    user: dict


class AuthManager:
    def __init__(
        self,
        store,
        secret_key,
        algorithm="HS256",
        token_ttl=timedelta(hours=24),
        hash_method="scrypt",
        allow_weak_hash=False,
    ):
        if not allow_weak_hash and not is_strong_hash_method(hash_method):
            raise ValueError(f"Password hash method too weak: {hash_method}")
        self.store = store
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self.hash_method = hash_method

    def register(self, username, email, password):
        if not username or not email or not password:
            raise ValidationError("All fields required")

        with self.store.session_scope() as session:
            existing = session.scalars(
                select(User).where(or_(User.username == username, User.email == email))
            ).first()
            if existing is not None:
                logger.warning("Registration rejected, duplicate username or email: %s", username)
                raise ConflictError("Username or email already exists")

            user = User(
                username=username,
                email=email,
                password_hash=generate_password_hash(password, method=self.hash_method),
            )
            session.add(user)
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("Username or email already exists") from exc
            user_id = user.id

        logger.info("Registered user %s (id=%s)", username, user_id)
        return user_id

    def login(self, username, password):
        if not username or not password:
            raise ValidationError("Username and password required")

        with self.store.session_scope() as session:
            user = session.scalars(select(User).where(User.username == username)).first()
            if user is None:
                raise NotFoundError("User not found")
            if not check_password_hash(user.password_hash, password):
                logger.warning("Failed login for %s", username)
                raise AuthError("Invalid password")
            public = user.public_fields()

        return LoginResult(token=self.issue_token(public), user=public)

    def issue_token(self, claims):
        now = datetime.now(timezone.utc)
        payload = {
            "id": claims["id"],
            "username": claims["username"],
            "email": claims["email"],
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token):
        if not token or not token.strip():
            raise MissingTokenError()
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Token is invalid") from exc
