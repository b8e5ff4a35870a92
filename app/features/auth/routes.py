"""
Authentication routes: registration and login.
"""
from datetime import datetime, timezone
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.limiter import limiter
from app.features.audit_logs.dependencies import create_audit_log
from app.features.audit_logs.models import AuditAction
from app.features.permissions.registry import Role
from app.features.users.auth import create_access_token, hash_password, verify_password
from app.features.users.models import User
from app.features.users.schemas import LoginRequest, TokenResponse, UserCreate, UserResponse
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Register a new user.

    New users start as VIEWER without an organization; they either create an
    organization (becoming its OWNER) or are added to one by a member.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )

    user = User(
        email=user_data.email,
        name=user_data.name,
        password_hash=hash_password(user_data.password),
        role=Role.VIEWER,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    log.info("Registered user %s", user.id)

    return TokenResponse(access_token=create_access_token(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
@limiter.limit(config.LOGIN_RATE_LIMIT, key_func=get_remote_address)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Exchange email and password for an access token."""
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        await create_audit_log(
            db, user=user, action=AuditAction.LOGIN_FAILED, resource="auth",
            details={"email": credentials.email}, request=request,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    await create_audit_log(db, user=user, action=AuditAction.LOGIN, resource="auth", request=request)

    return TokenResponse(access_token=create_access_token(user), user=UserResponse.model_validate(user))
