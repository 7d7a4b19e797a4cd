"""
Profile API

POST  /api/profile   create (or fetch) the caller's profile after signup
GET   /api/profile   profile plus derived access: {active, features, job_limit}
PATCH /api/profile   edit owner fields (name, automation webhooks) only

The derived access here is advisory for the client; mutating paid endpoints
check entitlements again server-side.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from recruiterops.api.deps import Services, get_current_profile, get_services
from recruiterops.core.auth import get_current_user_id
from recruiterops.core.errors import NotFoundError
from recruiterops.features.entitlements.gate import features_for, is_active, job_limit
from recruiterops.models.entitlement import EntitlementRecord

router = APIRouter(prefix="/profile", tags=["profile"])


class CreateProfileRequest(BaseModel):
    email: str
    full_name: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    """Only owner-editable fields; subscription fields are rejected."""
    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = None
    webhook_outreach: Optional[str] = None
    webhook_calendar: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    webhook_outreach: Optional[str] = None
    webhook_calendar: Optional[str] = None
    plan: str
    subscription_status: str
    trial_ends_at: Optional[datetime] = None
    gumroad_sale_id: Optional[str] = None
    active: bool
    features: List[str]
    job_limit: Optional[int] = None


def _to_response(record: EntitlementRecord) -> ProfileResponse:
    return ProfileResponse(
        id=record.id,
        email=record.email,
        full_name=record.full_name,
        webhook_outreach=record.webhook_outreach,
        webhook_calendar=record.webhook_calendar,
        plan=record.plan,
        subscription_status=record.subscription_status,
        trial_ends_at=record.trial_ends_at,
        gumroad_sale_id=record.gumroad_sale_id,
        active=is_active(record),
        features=sorted(features_for(record)),
        job_limit=job_limit(record.plan),
    )


@router.post("", response_model=ProfileResponse)
async def create_profile(
    request: CreateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    record = services.store.get_or_create(user_id, request.email, full_name=request.full_name)
    return _to_response(record)


@router.get("", response_model=ProfileResponse)
async def get_profile(profile: EntitlementRecord = Depends(get_current_profile)):
    return _to_response(profile)


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    request: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    record = services.store.patch_profile(user_id, request.model_dump(exclude_unset=True))
    if record is None:
        raise NotFoundError("Profile not found")
    return _to_response(record)
