"""User registration and login."""

import hashlib
import hmac
import logging
import secrets
from dataclasses import replace
from typing import TYPE_CHECKING

from .errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    UserNotFoundError,
)
from .models import Role, User
from .utils import normalize_email, require_text

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)

_HASH_ITERATIONS = 100_000


def hash_password(password: str, salt: str | None = None) -> str:
    """Return 'salt$digest' for a password (PBKDF2-SHA256)."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _HASH_ITERATIONS
    )
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, _, expected = password_hash.partition("$")
    if not salt or not expected:
        return False
    try:
        actual = hash_password(password, salt).partition("$")[2]
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)


class AuthService:
    """Registers and authenticates users. Emails are unique, case-insensitively."""

    def __init__(self, store: "Store"):
        self.store = store

    def register(
        self, name: str, email: str, password: str, role: Role = Role.CUSTOMER
    ) -> User:
        """
        Create and persist a new user.

        Raises:
            InvalidInputError: If name, email or password is blank.
            DuplicateEmailError: If any user already has this email (any case).
        """
        name = require_text("name", name)
        email = normalize_email(email)
        if not password:
            raise InvalidInputError("password", "is required")

        with self.store.transaction() as data:
            if any(u.email.lower() == email for u in data.users):
                raise DuplicateEmailError(email)
            user = User.create(name, email, hash_password(password), Role(role))
            data.users.append(user)
            self.store.save()

        logger.info("Registered %s user %s", user.role.value, user.email)
        return replace(user)

    def login(self, email: str, password: str) -> User:
        """
        Return the user with this email and password.

        Raises:
            InvalidCredentialsError: If no user matches. Unknown email and
                wrong password are not told apart.
        """
        email = (email or "").strip().lower()
        with self.store.transaction() as data:
            for user in data.users:
                if user.email.lower() == email and verify_password(password or "", user.password_hash):
                    return replace(user)
        raise InvalidCredentialsError()

    def get_user(self, user_id: str) -> User | None:
        with self.store.transaction() as data:
            for user in data.users:
                if user.id == user_id:
                    return replace(user)
        return None

    def list_users(self) -> list[User]:
        with self.store.transaction() as data:
            return [replace(u) for u in data.users]

    def update_user(
        self,
        user_id: str,
        name: str | None = None,
        role: Role | None = None,
        password: str | None = None,
    ) -> User:
        """
        Change a user's name, role or password. Email and ID never change.

        Raises:
            UserNotFoundError: If the user doesn't exist.
            InvalidInputError: If a new name or password is blank.
        """
        if name is not None:
            name = require_text("name", name)
        if password is not None and not password:
            raise InvalidInputError("password", "is required")

        with self.store.transaction() as data:
            for user in data.users:
                if user.id == user_id:
                    if name is not None:
                        user.name = name
                    if role is not None:
                        user.role = Role(role)
                    if password is not None:
                        user.password_hash = hash_password(password)
                    self.store.save()
                    return replace(user)

        raise UserNotFoundError(user_id)
