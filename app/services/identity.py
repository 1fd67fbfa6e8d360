"""
Identity store: accounts, login sessions, token resolution.

Token kinds by AUTH_MODE:
- session: opaque token issued by login(), stored with an expiry
- mock: "mock-{email}" resolves to the active user with that email
- firebase: Firebase ID token, user matched on firebase_uid. Accounts created
  here get a Firebase user; older accounts are linked by verified email on
  first sign-in.
"""

import logging
import secrets
from datetime import timedelta
from typing import Callable, Optional

from app.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError,
)
from app.models.entities import Role, Session, User, utcnow
from app.services.policy import Action, authorize
from app.services.store import Store

logger = logging.getLogger(__name__)

# Roles that carry the shared external student id
LINKED_ROLES = (Role.STUDENT, Role.PARENT)


class IdentityStore:
    def __init__(
        self,
        store: Store,
        hash_password: Callable[[str], str],
        check_password: Callable[[str, str], bool],
        mode: str = "session",
        session_ttl_seconds: int = 7 * 24 * 60 * 60,
        verify_firebase_token: Optional[Callable[[str], dict]] = None,
        create_firebase_user: Optional[Callable[[str, str, str], str]] = None,
    ):
        self.store = store
        self.hash_password = hash_password
        self.check_password = check_password
        self.mode = mode
        self.session_ttl = timedelta(seconds=session_ttl_seconds)
        self.verify_firebase_token = verify_firebase_token
        self.create_firebase_user = create_firebase_user

    # ------------------------------------------------------------------
    # Token resolution
    # ------------------------------------------------------------------
    def resolve_actor(self, token: Optional[str]) -> User:
        if not token:
            raise UnauthorizedError("Authentication required")

        if self.mode == "firebase":
            user = self._resolve_firebase(token)
        elif self.mode == "mock":
            user = self._resolve_mock(token)
        else:
            user = self._resolve_session(token)

        if user is None:
            raise UnauthorizedError("Invalid or expired session")
        if not user.is_active:
            raise ForbiddenError("Your account has been deactivated. Contact your administrator.")
        return user

    def _resolve_session(self, token: str) -> Optional[User]:
        session = self.store.get_session(token)
        if session is None:
            return None
        if session.expires_at <= utcnow():
            self.store.delete_session(token)
            return None
        return self.store.get_user(session.user_id)

    def _resolve_mock(self, token: str) -> Optional[User]:
        if not token.startswith("mock-"):
            return None
        return self.store.find_user_by_email(token[5:])

    def _resolve_firebase(self, token: str) -> Optional[User]:
        if self.verify_firebase_token is None:
            raise UnauthorizedError("Firebase authentication is not configured")
        try:
            decoded = self.verify_firebase_token(token)
        except Exception:
            raise UnauthorizedError("Invalid or expired Firebase token")
        user = self.store.find_user_by_firebase_uid(decoded["uid"])
        if user is None:
            user = self._link_firebase_uid(decoded)
        if user is None:
            raise ForbiddenError("You are not registered. Contact your administrator.")
        return user

    def _link_firebase_uid(self, decoded: dict) -> Optional[User]:
        """Attach a verified Firebase uid to the unlinked account with the same email."""
        email = decoded.get("email")
        if not email or not decoded.get("email_verified", False):
            return None
        user = self.store.find_user_by_email(email.lower())
        if user is None or user.firebase_uid:
            return None
        logger.info("Linked Firebase uid to user %s", user.username)
        return self.store.update_user(user.id, {"firebase_uid": decoded["uid"]})

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def create_account(
        self,
        username: str,
        email: str,
        password: str,
        role: Role,
        student_id: Optional[str] = None,
    ) -> User:
        if not all([username, email, password, role]):
            raise ValidationError("All fields are required")

        if self.store.find_user_by_login(username) is not None:
            raise ConflictError("Username already exists")
        if self.store.find_user_by_email(email) is not None:
            raise ConflictError("Email already registered")

        firebase_uid = None
        if self.mode == "firebase" and self.create_firebase_user is not None:
            try:
                firebase_uid = self.create_firebase_user(email, password, username)
            except Exception as e:
                raise ValidationError(f"Firebase user creation failed: {e}")

        user = User(
            username=username,
            email=email,
            password_hash=self.hash_password(password),
            role=role,
            student_id=student_id if role in LINKED_ROLES and student_id else None,
            firebase_uid=firebase_uid,
        )
        self.store.insert_user(user)
        logger.info("Created user %s (%s)", username, role.value)
        return user

    def register(self, username, email, password, role, student_id=None) -> User:
        return self.create_account(username, email, password, role, student_id)

    def create_user(self, actor: User, username, email, password, role, student_id=None) -> User:
        authorize(actor, Action.MANAGE_USERS)
        return self.create_account(username, email, password, role, student_id)

    def delete_user(self, actor: User, user_id: str) -> None:
        authorize(actor, Action.MANAGE_USERS, message="Access denied. Admin only.")
        if user_id == actor.id:
            raise ValidationError("Cannot delete your own account")
        if not self.store.delete_user(user_id):
            raise NotFoundError("User not found")
        logger.info("User %s deleted by %s", user_id, actor.id)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def login(self, identifier: str, password: str, role: Optional[Role] = None) -> tuple[str, User]:
        if self.mode == "firebase":
            raise ValidationError("Use Firebase SDK for login, then call /api/auth/session with the ID token.")
        if not identifier or not password:
            raise ValidationError("Username and password are required")

        user = self.store.find_user_by_login(identifier)
        if user is None or not self.check_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if role is not None and user.role is not role:
            raise UnauthorizedError(f"Invalid role. Your account is registered as {user.role.value}")
        if not user.is_active:
            raise UnauthorizedError("Account is inactive. Please contact administrator.")

        now = utcnow()
        user = self.store.update_user(user.id, {"last_login": now})

        if self.mode == "mock":
            token = f"mock-{user.email}"
        else:
            token = secrets.token_urlsafe(32)
            self.store.insert_session(
                Session(token=token, user_id=user.id, expires_at=now + self.session_ttl)
            )

        logger.info("Login successful for %s", user.username)
        return token, user

    def logout(self, token: str) -> None:
        self.store.delete_session(token)
