"""
Authentication service: sign-up, sign-in and sign-out.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from campus_events.models.user import User, UserRole
from campus_events.schemas.user import UserCreate, UserLogin
from campus_events.core.exceptions import DuplicateError, UnauthorizedError
from campus_events.core.security import (
    create_access_token,
    hash_password,
    new_token_id,
    verify_password,
)
from campus_events.core.logging import get_logger

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new student account with a hashed password.
    Raises 409 if the email or registration number already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("signup_failed", reason="email_exists", email=user_data.email)
        raise DuplicateError("Email already registered")

    if user_data.reg_no:
        result = await db.execute(select(User).where(User.reg_no == user_data.reg_no))
        if result.scalar_one_or_none():
            logger.warning("signup_failed", reason="reg_no_exists", reg_no=user_data.reg_no)
            raise DuplicateError("Registration number already registered")

    user = User(
        email=user_data.email,
        name=user_data.name,
        reg_no=user_data.reg_no,
        hashed_password=hash_password(user_data.password),
        role=UserRole.STUDENT.value,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_signed_up", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate a user and return a JWT access token.
    Each sign-in starts a new session id, replacing the previous one.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("signin_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")

    user.token_jti = new_token_id()
    await db.flush()

    token = create_access_token(data={"sub": str(user.id), "jti": user.token_jti})
    logger.info("user_signed_in", user_id=user.id)
    return token


async def sign_out(db: AsyncSession, user: User) -> None:
    """Revoke the user's current session token."""
    user.token_jti = None
    await db.flush()
    logger.info("user_signed_out", user_id=user.id)


async def ensure_admin(db: AsyncSession, email: str, name: str, password: str) -> User:
    """
    Bootstrap an administrator. An existing account with this email is
    promoted and reactivated; its password is left unchanged.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            email=email,
            name=name,
            hashed_password=hash_password(password),
            role=UserRole.ADMIN.value,
        )
        db.add(user)
        logger.info("admin_created", email=email)
    else:
        user.role = UserRole.ADMIN.value
        user.is_active = True
        logger.info("admin_promoted", user_id=user.id, email=email)

    await db.flush()
    await db.refresh(user)
    return user
