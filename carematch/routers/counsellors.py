from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.config import MatchingPolicy
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_policy
from carematch.models.api.assignments import AssignmentResponse
from carematch.models.api.counsellors import (
    AvailabilityUpdateRequest,
    CapacityUpdateRequest,
    CounsellorCreateRequest,
    CounsellorResponse,
)
from carematch.models.enums import AssignmentStatus, CounsellorStatus, Gender
from carematch.services.assignment_service import AssignmentService
from carematch.services.counsellor_pool_service import CounsellorPoolService

router = APIRouter()


@router.post("", response_model=CounsellorResponse, status_code=201)
async def register_counsellor(
    request: CounsellorCreateRequest, db: AsyncSession = Depends(get_db)
) -> CounsellorResponse:
    """Register a counsellor for an existing profile; starts pending approval."""
    service = CounsellorPoolService(db)
    return await service.register_counsellor(request)


@router.get("", response_model=List[CounsellorResponse])
async def list_counsellors(
    status: Optional[CounsellorStatus] = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[CounsellorResponse]:
    service = CounsellorPoolService(db)
    return await service.list_counsellors(status=status, limit=limit, offset=offset)


@router.get("/candidates", response_model=List[CounsellorResponse])
async def find_candidates(
    gender: Gender = Query(..., description="Gender of the patient"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> List[CounsellorResponse]:
    """
    Counsellors a patient of ``gender`` could be matched with, best first.

    Ordered by rating (highest first), then current load (lowest first).
    """
    service = CounsellorPoolService(db)
    return await service.find_candidates(gender, limit=limit)


@router.get("/{counsellor_id}", response_model=CounsellorResponse)
async def get_counsellor(
    counsellor_id: UUID, db: AsyncSession = Depends(get_db)
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.get_counsellor(counsellor_id)


@router.post("/{counsellor_id}/approve", response_model=CounsellorResponse)
async def approve_counsellor(
    counsellor_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.approve(counsellor_id, actor_id)


@router.post("/{counsellor_id}/suspend", response_model=CounsellorResponse)
async def suspend_counsellor(
    counsellor_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.suspend(counsellor_id, actor_id)


@router.post("/{counsellor_id}/reject", response_model=CounsellorResponse)
async def reject_counsellor(
    counsellor_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.reject(counsellor_id, actor_id)


@router.patch("/{counsellor_id}/availability", response_model=CounsellorResponse)
async def set_availability(
    counsellor_id: UUID,
    request: AvailabilityUpdateRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.set_availability(
        counsellor_id, request.is_available, actor_id
    )


@router.patch("/{counsellor_id}/capacity", response_model=CounsellorResponse)
async def set_capacity(
    counsellor_id: UUID,
    request: CapacityUpdateRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> CounsellorResponse:
    service = CounsellorPoolService(db)
    return await service.set_capacity(counsellor_id, request.max_patients, actor_id)


@router.get("/{counsellor_id}/assignments", response_model=List[AssignmentResponse])
async def list_counsellor_assignments(
    counsellor_id: UUID,
    status: Optional[AssignmentStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> List[AssignmentResponse]:
    service = AssignmentService(db, policy=policy)
    return await service.list_for_counsellor(counsellor_id, status=status)
