"""
Request-scoped access to the services built by the app factory, plus the
server-side entitlement guard.
"""
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Request

from recruiterops.core.auth import get_current_user_id
from recruiterops.core.config import Settings
from recruiterops.core.database import Database
from recruiterops.core.errors import FeatureLockedError, NotFoundError
from recruiterops.features.audit.service import AuditLog
from recruiterops.features.billing.claim import SignupClaimService
from recruiterops.features.billing.ledger import PendingPurchaseLedger
from recruiterops.features.billing.reconciler import WebhookReconciler
from recruiterops.features.entitlements.gate import ALL_FEATURES, has_feature
from recruiterops.features.entitlements.store import EntitlementStore
from recruiterops.features.pipeline.store import PipelineStore
from recruiterops.models.entitlement import EntitlementRecord


@dataclass
class Services:
    db: Database
    store: EntitlementStore
    ledger: PendingPurchaseLedger
    audit: AuditLog
    pipeline: PipelineStore
    reconciler: WebhookReconciler
    claims: SignupClaimService


def build_services(db: Database, cfg: Settings) -> Services:
    """Wire every service to one Database."""
    store = EntitlementStore(db, trial_days=cfg.TRIAL_DAYS)
    ledger = PendingPurchaseLedger(db)
    audit = AuditLog(db)
    return Services(
        db=db,
        store=store,
        ledger=ledger,
        audit=audit,
        pipeline=PipelineStore(db),
        reconciler=WebhookReconciler(
            db,
            store,
            ledger,
            audit,
            expected_seller_id=cfg.GUMROAD_SELLER_ID,
        ),
        claims=SignupClaimService(store, ledger, audit),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> EntitlementRecord:
    profile = services.store.get(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


def require_feature(feature: str) -> Callable:
    """Dependency factory: 403 unless the caller's subscription grants `feature`."""
    if feature not in ALL_FEATURES:
        raise ValueError(f"Unknown feature: {feature}")

    async def _guard(profile: EntitlementRecord = Depends(get_current_profile)) -> EntitlementRecord:
        if not has_feature(profile, feature):
            raise FeatureLockedError(f"Your plan does not include {feature}")
        return profile

    return _guard
