"""
Security module: bcrypt password hashing, Firebase token verification,
actor resolution and role guard.

Auth Flow:
1. Client logs in (session/mock mode) or signs in with Firebase
2. Client sends the token as a Bearer credential
3. get_current_user hands it to the IdentityStore, which resolves the User
4. Inactive users are rejected
5. The resolved User is passed explicitly into every service call
"""

import os
import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.database import get_store
from app.core.errors import ForbiddenError, UnauthorizedError
from app.models.entities import Role, User
from app.services.identity import IdentityStore
from app.services.store import Store

security_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def _init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


def verify_firebase_token(token: str) -> dict:
    _init_firebase()
    from firebase_admin import auth as fb_auth
    return fb_auth.verify_id_token(token)


def create_firebase_user(email: str, password: str, display_name: str) -> str:
    _init_firebase()
    from firebase_admin import auth as fb_auth
    fb_user = fb_auth.create_user(email=email, password=password, display_name=display_name)
    return fb_user.uid


# ---------------------------------------------------------------------------
# Identity store dependency
# ---------------------------------------------------------------------------
def get_identity(store: Store = Depends(get_store)) -> IdentityStore:
    return IdentityStore(
        store,
        hash_password=get_password_hash,
        check_password=verify_password,
        mode=settings.AUTH_MODE,
        session_ttl_seconds=settings.SESSION_TTL_SECONDS,
        verify_firebase_token=verify_firebase_token,
        create_firebase_user=create_firebase_user,
    )


def get_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_token),
    identity: IdentityStore = Depends(get_identity),
) -> User:
    """Resolve the Bearer token to the acting User (401 when missing/invalid)."""
    return identity.resolve_actor(token)


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[Role]):
    """
    Usage:
        @router.get("/admin-only")
        async def endpoint(user=Depends(require_role([Role.ADMIN]))):
    """

    async def role_checker(
        user: User = Depends(get_current_user),
    ) -> User:
        if user.role not in allowed_roles:
            raise ForbiddenError(
                f"Role '{user.role.value}' not authorized. "
                f"Required: {[r.value for r in allowed_roles]}"
            )
        return user

    return role_checker
