"""
Authentication router: identity-provider sign-in exchange and session profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from routers.auth_scope import AuthContext, get_auth_context
from services.identity import verify_identity_assertion
from services.session_token import issue_session

router = APIRouter()


class CreateSessionRequest(BaseModel):
    identity_token: str


class SessionResponse(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    session_token: str
    session_expires_at: int


class CurrentUserResponse(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


@router.post("/session", response_model=SessionResponse)
async def create_session(
    request: CreateSessionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange an identity-provider assertion for a backend session token."""
    try:
        claims = verify_identity_assertion(request.identity_token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user_result = await db.execute(select(User).where(User.id == claims.subject))
    user = user_result.scalar_one_or_none()
    if not user or user.email != claims.email:
        email_result = await db.execute(select(User).where(User.email == claims.email))
        if email_result.scalar_one_or_none() is not None:
            raise HTTPException(status_code=409, detail="Email already linked to another account.")

    if not user:
        user = User(
            id=claims.subject,
            email=claims.email,
            name=claims.name,
            picture=claims.picture,
        )
        db.add(user)
    else:
        user.email = claims.email
        if claims.name:
            user.name = claims.name
        if claims.picture:
            user.picture = claims.picture

    await db.commit()
    await db.refresh(user)
    session = issue_session(user.id, user.email)

    return SessionResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        picture=user.picture,
        session_token=session.token,
        session_expires_at=session.expires_at,
    )


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Return the signed-in owner."""
    result = await db.execute(select(User).where(User.id == auth.owner_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return CurrentUserResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        picture=user.picture,
    )


@router.post("/logout")
async def logout(_auth: AuthContext = Depends(get_auth_context)):
    """Frontend-managed logout acknowledgment endpoint."""
    return {"message": "Logged out successfully"}
