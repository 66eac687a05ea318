"""
User administration: listing accounts and changing roles.
Sign-up and sessions live in auth_service.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.models.user import User, UserRole

logger = get_logger(__name__)


async def list_users(db: AsyncSession, role: Optional[UserRole] = None) -> list[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role.value)
    result = await db.execute(query.order_by(User.id.asc()))
    return list(result.scalars().all())


async def update_user_role(db: AsyncSession, actor: User, user_id: int, role: UserRole) -> User:
    """
    Give `user_id` a new role. Administrators cannot change their own role,
    so the last administrator cannot demote themselves by accident.
    """
    if user_id == actor.id:
        raise ValidationError("Cannot change your own role")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    previous = user.role
    user.role = UserRole(role).value
    await db.flush()
    await db.refresh(user)

    logger.info(
        "user_role_changed",
        user_id=user.id,
        actor_id=actor.id,
        from_role=previous,
        to_role=user.role,
    )
    return user
