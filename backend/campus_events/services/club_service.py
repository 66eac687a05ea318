"""
Club service. Clubs are read by the event and admission code only to
resolve officers; this module owns creating, changing and retiring them.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import DuplicateError, NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.core.permissions import can_manage_club, require
from campus_events.models.club import CLUB_ACTIVE, CLUB_INACTIVE, Club
from campus_events.models.user import User
from campus_events.schemas.club import ClubCreate, ClubUpdate

logger = get_logger(__name__)

_REQUIRED_FIELDS = ("name", "type", "status", "president_id")


async def _require_user(db: AsyncSession, user_id: Optional[int], role: str) -> None:
    if user_id is not None and await db.get(User, user_id) is None:
        raise NotFoundError(f"{role} user {user_id} not found")


async def create_club(db: AsyncSession, club_data: ClubCreate, president: User) -> Club:
    """Create an active club; the creator becomes its president."""
    existing = await db.execute(select(Club).where(Club.name == club_data.name))
    if existing.scalar_one_or_none():
        raise DuplicateError("A club with this name already exists")

    await _require_user(db, club_data.vice_president_id, "Vice-president")
    await _require_user(db, club_data.faculty_coordinator_id, "Faculty coordinator")

    club = Club(
        name=club_data.name,
        type=club_data.type,
        description=club_data.description,
        status=CLUB_ACTIVE,
        president_id=president.id,
        vice_president_id=club_data.vice_president_id,
        faculty_coordinator_id=club_data.faculty_coordinator_id,
    )
    db.add(club)
    await db.flush()
    await db.refresh(club)

    logger.info("club_created", club_id=club.id, name=club.name, president_id=president.id)
    return club


async def get_club(db: AsyncSession, club_id: int) -> Club:
    club = await db.get(Club, club_id)
    if not club:
        raise NotFoundError(f"Club {club_id} not found")
    return club


async def list_clubs(db: AsyncSession, officer_id: Optional[int] = None) -> list[Club]:
    query = select(Club)
    if officer_id is not None:
        query = query.where(
            (Club.president_id == officer_id)
            | (Club.vice_president_id == officer_id)
            | (Club.faculty_coordinator_id == officer_id)
        )
    result = await db.execute(query.order_by(Club.name.asc()))
    return list(result.scalars().all())


async def update_club(db: AsyncSession, club_id: int, changes: ClubUpdate, actor: User) -> Club:
    """
    Apply a partial update. Only fields present in the request change, so
    an officer can be removed by sending null for that field.
    """
    club = await get_club(db, club_id)
    require(can_manage_club(actor, club), "Only the club president or an administrator can change this club")

    data = changes.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in data and data[field] is None:
            raise ValidationError(f"{field} cannot be empty")

    if "name" in data and data["name"] != club.name:
        existing = await db.execute(select(Club).where(Club.name == data["name"]))
        if existing.scalar_one_or_none():
            raise DuplicateError("A club with this name already exists")

    await _require_user(db, data.get("president_id"), "President")
    await _require_user(db, data.get("vice_president_id"), "Vice-president")
    await _require_user(db, data.get("faculty_coordinator_id"), "Faculty coordinator")

    for field, value in data.items():
        setattr(club, field, value)
    await db.flush()
    await db.refresh(club)

    logger.info("club_updated", club_id=club.id, actor_id=actor.id, fields=sorted(data))
    return club


async def deactivate_club(db: AsyncSession, club_id: int, actor: User) -> Club:
    """
    Retire a club. Its events and history are kept, but its officers can no
    longer create or submit events for it.
    """
    club = await get_club(db, club_id)
    require(can_manage_club(actor, club), "Only the club president or an administrator can close this club")

    club.status = CLUB_INACTIVE
    await db.flush()
    await db.refresh(club)

    logger.info("club_deactivated", club_id=club.id, actor_id=actor.id)
    return club
