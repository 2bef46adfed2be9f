"""
Authentication and Profile Service

DESIGN DECISION: Like storage, auth has one backend per mode:
- LocalAuthBackend: demo mode. A single fixed demo account; user and
  profile live in the local key-value store ("currentUser",
  "currentProfile"). Registration is not available.
- HostedAuthBackend: credentials and profiles live in the hosted
  "profiles" worksheet. Passwords are stored as salted PBKDF2 hashes and
  the signed-in session is remembered in the local store ("session").

AuthService wraps whichever backend is active and holds the current
session for the rest of the app (the budget alert monitor asks it for the
current user).
"""

import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError

from financeapp.log import get_logger
from financeapp.models.user import Profile, User
from financeapp.services.storage.interface import (
    DuplicateError,
    ProfileStorageInterface,
    StorageError,
)
from financeapp.services.storage.local import (
    CURRENT_PROFILE_KEY,
    CURRENT_USER_KEY,
    SESSION_KEY,
    LocalKeyValueStore,
)


logger = get_logger(__name__)

DEMO_EMAIL = "demo@financeapp.com"
DEMO_PASSWORD = "demo123"
DEMO_USER_ID = "1"
DEMO_USER_NAME = "Usuario Demo"
DEMO_AVATAR_URL = (
    "https://images.pexels.com/photos/771742/pexels-photo-771742.jpeg"
    "?auto=compress&cs=tinysrgb&w=150&h=150&dpr=1"
)

MIN_PASSWORD_LENGTH = 6
_HASH_ALGORITHM = "pbkdf2_sha256"
_HASH_ITERATIONS = 260_000

# Profile fields a user may change
_EDITABLE_PROFILE_FIELDS = {"name", "avatar_url", "currency"}


class AuthError(Exception):
    """Login, registration or profile update failed."""
    pass


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Encode as '<algorithm>$<iterations>$<salt>$<hex digest>'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _HASH_ITERATIONS
    )
    return f"{_HASH_ALGORITHM}${_HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        iterations = int(iterations)
    except ValueError:
        return False
    if algorithm != _HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
    )
    return hmac.compare_digest(digest.hex(), expected)


@dataclass
class AuthSession:
    user: User
    profile: Profile


def _apply_profile_changes(profile: Profile, changes: dict[str, Any]) -> Profile:
    unknown = set(changes) - _EDITABLE_PROFILE_FIELDS
    if unknown:
        raise AuthError(f"Cannot update profile fields: {', '.join(sorted(unknown))}")
    try:
        return Profile.model_validate(
            {**profile.model_dump(), **changes, "updated_at": datetime.utcnow()}
        )
    except ValidationError as e:
        raise AuthError(f"Invalid profile data: {e}")


def _user_from_profile(profile: Profile, email: str) -> User:
    return User(id=profile.id, name=profile.name, email=email, avatar=profile.avatar_url)


class AuthBackend(ABC):
    """One authentication mode."""

    @abstractmethod
    async def restore(self) -> Optional[AuthSession]:
        """Session remembered from a previous run, if any."""
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def register(self, name: str, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass

    @abstractmethod
    async def update_profile(self, session: AuthSession, changes: dict[str, Any]) -> AuthSession:
        pass


class LocalAuthBackend(AuthBackend):
    """Demo-mode auth against the local key-value store."""

    def __init__(self, store: LocalKeyValueStore):
        self._store = store

    @staticmethod
    def demo_profile() -> Profile:
        return Profile(
            id=DEMO_USER_ID,
            name=DEMO_USER_NAME,
            avatar_url=DEMO_AVATAR_URL,
            currency="MXN",
        )

    def _save(self, session: AuthSession) -> None:
        self._store.set_json(CURRENT_USER_KEY, session.user.model_dump(mode="json"))
        self._store.set_json(CURRENT_PROFILE_KEY, session.profile.model_dump(mode="json"))

    async def restore(self) -> Optional[AuthSession]:
        raw_user = self._store.get_json(CURRENT_USER_KEY)
        if not isinstance(raw_user, dict):
            return None
        try:
            user = User.model_validate(raw_user)
        except ValidationError:
            logger.warning("stored_user_malformed")
            return None

        raw_profile = self._store.get_json(CURRENT_PROFILE_KEY)
        try:
            profile = Profile.model_validate(raw_profile) if isinstance(raw_profile, dict) else None
        except ValidationError:
            profile = None
        if profile is None:
            profile = self.demo_profile()
            self._store.set_json(CURRENT_PROFILE_KEY, profile.model_dump(mode="json"))

        return AuthSession(user=user, profile=profile)

    async def login(self, email: str, password: str) -> AuthSession:
        if email.strip().lower() != DEMO_EMAIL or password != DEMO_PASSWORD:
            raise AuthError("Invalid credentials for demo mode")

        profile = self.demo_profile()
        session = AuthSession(user=_user_from_profile(profile, DEMO_EMAIL), profile=profile)
        self._save(session)
        return session

    async def register(self, name: str, email: str, password: str) -> AuthSession:
        raise AuthError(
            "Registration not available in demo mode. "
            "Configure the hosted backend for full functionality."
        )

    async def logout(self) -> None:
        self._store.remove_item(CURRENT_USER_KEY)
        self._store.remove_item(CURRENT_PROFILE_KEY)

    async def update_profile(self, session: AuthSession, changes: dict[str, Any]) -> AuthSession:
        profile = _apply_profile_changes(session.profile, changes)
        updated = AuthSession(
            user=_user_from_profile(profile, session.user.email),
            profile=profile,
        )
        self._save(updated)
        return updated


class HostedAuthBackend(AuthBackend):
    """
    Auth against the hosted profiles table.

    Args:
        profiles: Profile/credential storage
        store: Local key-value store remembering the session
        default_currency: Currency for newly registered profiles
    """

    def __init__(
        self,
        profiles: ProfileStorageInterface,
        store: LocalKeyValueStore,
        default_currency: str = "MXN",
    ):
        self._profiles = profiles
        self._store = store
        self._default_currency = default_currency

    def _remember(self, user: User) -> None:
        self._store.set_json(
            SESSION_KEY,
            {"user_id": user.id, "email": user.email, "token": secrets.token_urlsafe(32)},
        )

    async def restore(self) -> Optional[AuthSession]:
        session = self._store.get_json(SESSION_KEY)
        if not isinstance(session, dict) or "user_id" not in session:
            return None
        profile = await self._profiles.get_profile(str(session["user_id"]))
        if profile is None:
            self._store.remove_item(SESSION_KEY)
            return None
        return AuthSession(
            user=_user_from_profile(profile, str(session.get("email", ""))),
            profile=profile,
        )

    async def login(self, email: str, password: str) -> AuthSession:
        credentials = await self._profiles.get_credentials(email)
        if credentials is None or not verify_password(password, credentials[2]):
            raise AuthError("Invalid login credentials")

        user_id, stored_email, _ = credentials
        profile = await self._profiles.get_profile(user_id)
        if profile is None:
            raise AuthError("Profile not found for this account")

        user = _user_from_profile(profile, stored_email)
        self._remember(user)
        logger.info("user_logged_in", user_id=user_id)
        return AuthSession(user=user, profile=profile)

    async def register(self, name: str, email: str, password: str) -> AuthSession:
        email = email.strip().lower()
        if "@" not in email:
            raise AuthError("Invalid e-mail address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )

        try:
            profile = Profile(id=str(uuid4()), name=name, currency=self._default_currency)
        except ValidationError as e:
            raise AuthError(f"Invalid profile data: {e}")

        try:
            await self._profiles.create_profile(profile, email, hash_password(password))
        except DuplicateError:
            raise AuthError("User already registered")

        user = _user_from_profile(profile, email)
        self._remember(user)
        logger.info("user_registered", user_id=profile.id)
        return AuthSession(user=user, profile=profile)

    async def logout(self) -> None:
        self._store.remove_item(SESSION_KEY)

    async def update_profile(self, session: AuthSession, changes: dict[str, Any]) -> AuthSession:
        profile = _apply_profile_changes(session.profile, changes)
        await self._profiles.update_profile(profile)
        return AuthSession(
            user=_user_from_profile(profile, session.user.email),
            profile=profile,
        )


class AuthService:
    """
    Holds the current session on top of an auth backend.

    Storage errors from the backend propagate unchanged; auth failures
    raise AuthError.
    """

    def __init__(self, backend: AuthBackend):
        self._backend = backend
        self._session: Optional[AuthSession] = None

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def profile(self) -> Optional[Profile]:
        return self._session.profile if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def current_user(self) -> Optional[User]:
        return self.user

    async def initialize(self) -> Optional[User]:
        """Restore a remembered session."""
        self._session = await self._backend.restore()
        return self.user

    async def login(self, email: str, password: str) -> User:
        self._session = await self._backend.login(email, password)
        return self._session.user

    async def register(self, name: str, email: str, password: str) -> User:
        self._session = await self._backend.register(name, email, password)
        return self._session.user

    async def logout(self) -> None:
        await self._backend.logout()
        self._session = None

    async def update_profile(self, **changes: Any) -> Profile:
        """
        Update name, avatar_url and/or currency of the current profile.

        Raises:
            AuthError: If nobody is signed in or the data is invalid
            StorageError: If the hosted profile row cannot be written
        """
        if self._session is None:
            raise AuthError("Not signed in")
        try:
            self._session = await self._backend.update_profile(self._session, changes)
        except StorageError as e:
            logger.error("profile_update_failed", error=str(e))
            raise
        return self._session.profile
