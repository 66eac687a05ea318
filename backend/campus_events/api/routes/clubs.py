"""
Club endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.db.session import get_db
from campus_events.models.user import User
from campus_events.schemas.club import ClubCreate, ClubResponse, ClubUpdate
from campus_events.services.club_service import (
    create_club,
    deactivate_club,
    get_club,
    list_clubs,
    update_club,
)
from campus_events.core.security import get_current_user

router = APIRouter(prefix="/clubs", tags=["Clubs"])


@router.post("/", response_model=ClubResponse, status_code=status.HTTP_201_CREATED)
async def create_club_endpoint(
    club_data: ClubCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a club. The caller becomes its president."""
    return await create_club(db, club_data, user)


@router.get("/", response_model=list[ClubResponse])
async def list_clubs_endpoint(
    officer_id: Optional[int] = Query(None, description="Only clubs this user is an officer of"),
    db: AsyncSession = Depends(get_db),
):
    return await list_clubs(db, officer_id)


@router.get("/{club_id}", response_model=ClubResponse)
async def get_club_endpoint(club_id: int, db: AsyncSession = Depends(get_db)):
    return await get_club(db, club_id)


@router.patch("/{club_id}", response_model=ClubResponse)
async def update_club_endpoint(
    club_id: int,
    changes: ClubUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename, describe, (re)activate, or change officers. President or administrator."""
    return await update_club(db, club_id, changes, user)


@router.delete("/{club_id}", response_model=ClubResponse)
async def deactivate_club_endpoint(
    club_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark the club inactive. Nothing is deleted."""
    return await deactivate_club(db, club_id, user)
