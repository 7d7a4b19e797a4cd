"""
Pipeline API routes, gated server-side by the caller's entitlements.

- GET  /api/jobs                        list live jobs
- POST /api/jobs                        create a job (plan job cap applies)
- POST /api/jobs/{job_id}/candidates    attach a candidate
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from recruiterops.api.deps import Services, get_services, require_feature
from recruiterops.core.errors import LimitExceededError, ValidationError
from recruiterops.features.entitlements.gate import job_limit
from recruiterops.features.pipeline.store import CANDIDATE_STAGES
from recruiterops.models.entitlement import EntitlementRecord

router = APIRouter(prefix="/jobs", tags=["jobs"])


class CreateJobRequest(BaseModel):
    title: str = Field(min_length=1)
    client: Optional[str] = None


class JobResponse(BaseModel):
    id: str
    title: str
    client: Optional[str] = None
    status: str
    created_at: datetime


class CreateCandidateRequest(BaseModel):
    name: str = Field(min_length=1)
    stage: str = "Sourced"


class CandidateResponse(BaseModel):
    id: str
    job_id: str
    name: str
    stage: str


@router.get("", response_model=List[JobResponse])
async def list_jobs(
    profile: EntitlementRecord = Depends(require_feature("jobs")),
    services: Services = Depends(get_services),
):
    return services.pipeline.list_jobs(profile.id)


@router.post("", response_model=JobResponse)
async def create_job(
    request: CreateJobRequest,
    profile: EntitlementRecord = Depends(require_feature("jobs")),
    services: Services = Depends(get_services),
):
    limit = job_limit(profile.plan)
    if limit is not None and services.pipeline.count_active_jobs(profile.id) >= limit:
        raise LimitExceededError(f"Your {profile.plan} plan allows {limit} active job(s)")
    return services.pipeline.create_job(profile.id, request.title, request.client)


@router.post("/{job_id}/candidates", response_model=CandidateResponse)
async def add_candidate(
    job_id: str,
    request: CreateCandidateRequest,
    profile: EntitlementRecord = Depends(require_feature("candidates")),
    services: Services = Depends(get_services),
):
    if request.stage not in CANDIDATE_STAGES:
        raise ValidationError(f"Unknown stage: {request.stage}")
    return services.pipeline.add_candidate(profile.id, job_id, request.name, request.stage)
