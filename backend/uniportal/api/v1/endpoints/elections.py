"""
Election API Endpoints
- Create / list / fetch elections
- Cast a vote
- Close an election and declare the result
- Delete an election
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from uniportal.core.database import get_db
from uniportal.models.election import ElectionStatus
from uniportal.models.student import Student
from uniportal.modules.auth.dependencies import get_current_user
from uniportal.schemas.common import SuccessResponse
from uniportal.schemas.election import (
    ElectionCreate,
    ElectionFilters,
    ElectionListResponse,
    ElectionResponse,
    VoteRequest,
)
from uniportal.services.election_service import election_service

router = APIRouter()


@router.post("", response_model=ElectionResponse, status_code=status.HTTP_201_CREATED)
async def create_election(
    data: ElectionCreate,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create an election (FACULTY, ADMIN or CR)"""
    election = await election_service.create_election(db, data, current_user)
    return ElectionResponse.model_validate(election)


@router.get("", response_model=ElectionListResponse)
async def list_elections(
    status_filter: Optional[ElectionStatus] = Query(None, alias="status"),
    class_name: Optional[str] = Query(None, alias="className"),
    branch: Optional[str] = Query(None),
    include_closed: bool = Query(False, alias="includeClosed"),
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List elections, newest first. Only OPEN ones unless asked otherwise."""
    filters = ElectionFilters(
        status=status_filter,
        class_name=class_name,
        branch=branch,
        include_closed=include_closed,
    )
    elections = await election_service.list_elections(db, filters)
    return ElectionListResponse(
        elections=[ElectionResponse.model_validate(e) for e in elections],
        total=len(elections),
    )


@router.get("/{election_id}", response_model=ElectionResponse)
async def get_election(
    election_id: str,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    election = await election_service.get_election(db, election_id)
    return ElectionResponse.model_validate(election)


@router.post("/{election_id}/vote", response_model=SuccessResponse)
async def vote(
    election_id: str,
    data: VoteRequest,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cast one ballot in an election of the voter's own class"""
    await election_service.cast_vote(db, election_id, current_user, data)
    return SuccessResponse(message="Vote cast successfully")


@router.post("/{election_id}/close", response_model=ElectionResponse)
async def close_election(
    election_id: str,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Close an election (FACULTY or ADMIN).

    A clear CR winner is promoted and the class' previous CR demoted in the
    same transaction. Closing an already closed election returns it as is.
    """
    election = await election_service.close_election(db, election_id, current_user)
    return ElectionResponse.model_validate(election)


@router.delete("/{election_id}", response_model=SuccessResponse)
async def delete_election(
    election_id: str,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await election_service.delete_election(db, election_id, current_user)
    return SuccessResponse(message="Election deleted")
