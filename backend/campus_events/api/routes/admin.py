"""
Administrator endpoints: the approval queue, the completion sweep and
user roles.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.db.session import get_db
from campus_events.models.user import User, UserRole
from campus_events.schemas.event import EventResponse, SweepResponse
from campus_events.schemas.user import RoleUpdate, UserResponse
from campus_events.services import lifecycle_service
from campus_events.services.event_service import list_pending_events
from campus_events.services.cache_service import invalidate_event_cache
from campus_events.services.user_service import list_users, update_user_role
from campus_events.core.permissions import can_approve, require
from campus_events.core.security import get_current_user

router = APIRouter(prefix="/admin", tags=["Admin"])


async def require_admin(user: User = Depends(get_current_user)) -> User:
    require(can_approve(user), "Administrator access required")
    return user


@router.get("/events/pending", response_model=list[EventResponse])
async def pending_events(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Events waiting for review, oldest submission first."""
    return await list_pending_events(db)


@router.post("/events/complete-past", response_model=SweepResponse)
async def complete_past_events(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Run the completion sweep now instead of waiting for the background task."""
    completed = await lifecycle_service.complete_past_events(db)
    if completed:
        await invalidate_event_cache()
    return SweepResponse(completed=completed)


@router.get("/users", response_model=list[UserResponse])
async def users(
    role: Optional[UserRole] = Query(None),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_users(db, role)


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    update: RoleUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Promote or demote an account, e.g. make a faculty member an administrator."""
    return await update_user_role(db, admin, user_id, update.role)
