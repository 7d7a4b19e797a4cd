"""
Signup claim: hand a staged purchase to the account that just registered
with the buyer's email.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from recruiterops.core.errors import ValidationError
from recruiterops.core.logging import email_domain
from recruiterops.features.audit.service import AuditLog
from recruiterops.features.billing.ledger import PendingPurchaseLedger
from recruiterops.features.entitlements.store import EntitlementStore
from recruiterops.models.entitlement import SubscriptionStatus, normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    activated: bool
    plan: Optional[str] = None


class SignupClaimService:
    def __init__(
        self,
        store: EntitlementStore,
        ledger: PendingPurchaseLedger,
        audit: AuditLog,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.ledger = ledger
        self.audit = audit
        self.clock = clock

    def claim(self, user_id: str, email: str) -> ClaimResult:
        """
        Activate `user_id` from a pending purchase for `email`, if one exists.

        The profile write and the ledger delete are separate steps. If the
        delete never happens, a retry re-applies identical values.

        Raises:
            ValidationError: missing user id or email
            ConflictError: the account's profile has a different email
        """
        key = normalize_email(email)
        if not user_id or not key:
            raise ValidationError("Missing email or userId")

        pending = self.ledger.get(key)
        if pending is None:
            return ClaimResult(activated=False)

        profile = self.store.get_or_create(user_id, key)
        self.store.patch_subscription(
            profile.id,
            {
                "plan": pending.plan,
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "gumroad_sale_id": pending.gumroad_sale_id,
                "gumroad_subscriber_id": pending.gumroad_subscriber_id,
                "updated_at": self.clock(),
            },
        )
        self.ledger.delete(key)

        self.audit.record_usage(
            customer_id=user_id,
            action="subscription_claimed",
            metadata={"email": key, "sale_id": pending.gumroad_sale_id, "plan": pending.plan},
        )
        logger.info(
            f"Activated pending subscription -> plan: {pending.plan}",
            extra={"user_id": user_id, "email_domain": email_domain(key)},
        )
        return ClaimResult(activated=True, plan=pending.plan)
