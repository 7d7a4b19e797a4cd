"""
Webhook reconciler.

Merges Gumroad deliveries into entitlement state:
1. Log the raw delivery (best-effort, before anything can fail)
2. Verify the seller id (when one is configured)
3. Treat deliveries without email/sale id as pings
4. Derive status and plan from the event
5. Update the matching profile (cascading archival on loss of access),
   or stage a pending purchase for buyers who have not signed up yet

Safe under at-least-once delivery: replaying an event converges to the same
profile state and archives nothing twice. Exceptions after step 1 propagate
so the HTTP layer can answer 500 and Gumroad retries.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional
import logging

from recruiterops.core.database import Database
from recruiterops.core.logging import email_domain, log_event
from recruiterops.features.audit.service import AuditLog
from recruiterops.features.billing.gumroad import derive_status, parse_event, plan_for_product
from recruiterops.features.billing.ledger import PendingPurchaseLedger
from recruiterops.features.billing.provider import BillingWebhookError, GumroadEvent
from recruiterops.features.entitlements.store import EntitlementStore
from recruiterops.features.pipeline.store import archive_user_pipeline
from recruiterops.models.entitlement import EntitlementRecord, SubscriptionStatus

logger = logging.getLogger(__name__)

LOST_ACCESS = (SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED)


class SellerMismatchError(BillingWebhookError):
    """Delivery is not tagged with the configured Gumroad seller id."""
    pass


@dataclass(frozen=True)
class ReconcileResult:
    """What a delivery did.

    action is one of: ping, updated, stale, pending_stored, noop.
    """
    action: str
    status: Optional[str] = None
    user_id: Optional[str] = None
    plan: Optional[str] = None
    jobs_archived: int = 0


def _peek(form: Mapping[str, str], key: str) -> Optional[str]:
    try:
        return form.get(key)
    except Exception:
        return None


class WebhookReconciler:
    def __init__(
        self,
        db: Database,
        store: EntitlementStore,
        ledger: PendingPurchaseLedger,
        audit: AuditLog,
        *,
        expected_seller_id: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.store = store
        self.ledger = ledger
        self.audit = audit
        self.expected_seller_id = expected_seller_id
        self.clock = clock

    def handle(self, form: Mapping[str, str], raw_body: Optional[str] = None) -> ReconcileResult:
        """
        Reconcile one delivery.

        Raises:
            SellerMismatchError: seller id check failed (nothing was mutated)
            BillingWebhookError: body could not be parsed
            Exception: store failures, to be retried by the provider
        """
        self.audit.record_webhook(
            alert_type=_peek(form, "alert_type") or _peek(form, "type"),
            email=_peek(form, "email"),
            sale_id=_peek(form, "sale_id"),
            raw_payload=raw_body,
        )

        event = parse_event(form)

        if self.expected_seller_id and event.seller_id != self.expected_seller_id:
            log_event(
                "warning",
                "Unauthorized webhook: seller_id mismatch",
                event_type=event.alert_type,
                error_code="seller_mismatch",
            )
            raise SellerMismatchError("seller_id mismatch")

        if event.is_ping:
            logger.info("Webhook ping logged", extra={"event_type": event.alert_type})
            return ReconcileResult(action="ping")

        status = derive_status(event)
        plan = plan_for_product(event.product_permalink).value

        profile = self.store.get_by_email(event.email)
        if profile is None:
            return self._stage_for_unregistered(event, status, plan)
        return self._apply_to_profile(profile, event, status, plan)

    def _stage_for_unregistered(self, event: GumroadEvent, status: SubscriptionStatus, plan: str) -> ReconcileResult:
        if status != SubscriptionStatus.ACTIVE:
            # Refund or cancellation for someone who never signed up
            logger.info(
                "No profile for non-active event; nothing to reconcile",
                extra={"email_domain": email_domain(event.email), "status": status.value},
            )
            return ReconcileResult(action="noop", status=status.value)

        self.ledger.upsert(
            event.email,
            plan,
            sale_id=event.sale_id,
            subscriber_id=event.subscriber_id,
        )
        return ReconcileResult(action="pending_stored", status=status.value, plan=plan)

    def _apply_to_profile(
        self,
        profile: EntitlementRecord,
        event: GumroadEvent,
        status: SubscriptionStatus,
        plan: str,
    ) -> ReconcileResult:
        now = self.clock()
        values = {
            "subscription_status": status.value,
            "gumroad_sale_id": event.sale_id,
            "gumroad_subscriber_id": event.subscriber_id,
            "updated_at": now,
        }
        if status == SubscriptionStatus.ACTIVE:
            # Plan is sticky on cancellation so a reactivation restores the tier
            values["plan"] = plan
        if event.sale_timestamp is not None:
            values["last_event_at"] = event.sale_timestamp

        jobs_archived = 0
        still_there = True
        with self.db.session() as session:
            applied = self.store.patch_subscription(
                profile.id,
                values,
                not_newer_than=event.sale_timestamp,
                session=session,
            )
            if not applied:
                still_there = self.store.get(profile.id, session=session) is not None
            elif status in LOST_ACCESS:
                jobs_archived = archive_user_pipeline(session, profile.id, now)

        if not applied:
            if not still_there:
                # Account removed between lookup and update
                logger.info("Profile vanished before update", extra={"user_id": profile.id})
                return self._stage_for_unregistered(event, status, plan)
            logger.info(
                "Ignoring webhook older than stored state",
                extra={"user_id": profile.id, "status": status.value},
            )
            return ReconcileResult(action="stale", status=status.value, user_id=profile.id)

        if jobs_archived:
            logger.info(
                f"Archived {jobs_archived} jobs for cancelled user",
                extra={"user_id": profile.id},
            )
        # Replays leave the status unchanged and add no business audit entry
        transitioned = profile.subscription_status != status.value
        if transitioned and status in LOST_ACCESS:
            self.audit.record_usage(
                customer_id=profile.id,
                action="subscription_cancelled",
                metadata={
                    "email": event.email,
                    "sale_id": event.sale_id,
                    "status": status.value,
                    "jobs_archived": jobs_archived,
                },
            )
        elif transitioned:
            self.audit.record_usage(
                customer_id=profile.id,
                action="subscription_activated",
                metadata={"email": event.email, "sale_id": event.sale_id, "alert_type": event.alert_type, "plan": plan},
            )

        logger.info(
            f"Updated profile -> {status.value}",
            extra={"user_id": profile.id, "status": status.value},
        )
        return ReconcileResult(
            action="updated",
            status=status.value,
            user_id=profile.id,
            plan=values.get("plan", profile.plan),
            jobs_archived=jobs_archived,
        )
