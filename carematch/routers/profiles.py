from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.config import MatchingPolicy
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_policy
from carematch.models.api.profiles import (
    EligibilityResponse,
    ProfileCompletionRequest,
    ProfileCreateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
)
from carematch.models.enums import Role
from carematch.repositories.profile_repository import ProfileRepository
from carematch.services.profile_service import ProfileService

router = APIRouter()


@router.post("", response_model=ProfileResponse, status_code=201)
async def create_profile(
    request: ProfileCreateRequest,
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> ProfileResponse:
    """Register a profile. Authentication happens upstream."""
    service = ProfileService(db, policy)
    return await service.create_profile(request)


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    role: Optional[Role] = Query(None, description="Filter by role"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[ProfileResponse]:
    repo = ProfileRepository(db)
    return await repo.list_profiles(
        role=role.value if role else None, limit=limit, offset=offset
    )


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> ProfileResponse:
    service = ProfileService(db, policy)
    return await service.get_profile(profile_id)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: UUID,
    request: ProfileUpdateRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> ProfileResponse:
    service = ProfileService(db, policy)
    return await service.update_profile(profile_id, request, actor_id)


@router.delete("/{profile_id}", response_model=ProfileResponse)
async def deactivate_profile(
    profile_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> ProfileResponse:
    """Soft-delete a profile (admin only)."""
    service = ProfileService(db, policy)
    return await service.deactivate_profile(profile_id, actor_id)


@router.get("/{profile_id}/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> EligibilityResponse:
    """Whether the profile may request a counsellor, and which fields block it."""
    service = ProfileService(db, policy)
    return await service.get_eligibility(profile_id)


@router.post("/{profile_id}/complete", response_model=ProfileResponse)
async def complete_profile(
    profile_id: UUID,
    request: ProfileCompletionRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> ProfileResponse:
    service = ProfileService(db, policy)
    return await service.complete_profile(profile_id, request, actor_id)
