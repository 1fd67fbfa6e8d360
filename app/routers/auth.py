"""
Auth router: Register, Login, Logout, Session.

Rules:
- Login accepts username or email; an optional role must match the account
- Inactive accounts cannot log in
- Session mode: opaque token, revoked on logout
- Mock mode: mock-{email} tokens for testing
- Firebase mode: client authenticates via Firebase SDK, then calls /session
"""

from fastapi import APIRouter, Depends, status
from app.core.security import get_current_user, get_identity, get_token
from app.models.entities import User
from app.schemas.auth import UserRegister, UserLogin
from app.services.identity import IdentityStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: UserRegister,
    identity: IdentityStore = Depends(get_identity),
):
    user = identity.register(
        body.username.strip(), body.email.lower(), body.password, body.role, body.student_id,
    )
    return success_response(
        data=user.public(),
        message="Account created successfully! You can now login.",
    )


@router.post("/login")
async def login(
    body: UserLogin,
    identity: IdentityStore = Depends(get_identity),
):
    token, user = identity.login(body.username.strip(), body.password, body.role)
    return success_response(
        data={"token": token, "user": user.public()},
        message="Login successful",
    )


@router.post("/logout")
async def logout(
    token: str = Depends(get_token),
    identity: IdentityStore = Depends(get_identity),
):
    identity.logout(token)
    return success_response(message="Logged out successfully")


@router.get("/session")
async def session(user: User = Depends(get_current_user)):
    return success_response(data={"authenticated": True, "user": user.public()})
