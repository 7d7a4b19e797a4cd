"""
Gumroad webhook vocabulary.

Parses the form-encoded "ping" body Gumroad posts for sales, refunds,
cancellations and subscription ends, and maps it onto internal plans and
subscription statuses.
"""
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from recruiterops.features.billing.provider import GumroadEvent, BillingWebhookError
from recruiterops.models.entitlement import Plan, SubscriptionStatus, normalize_email

logger = logging.getLogger(__name__)

# Gumroad product permalink -> plan tier
PRODUCT_PLAN_MAP = {
    "recruiteros-starter": Plan.STARTER,
    "recruiteros": Plan.PRO,
    "recruiteros-pro": Plan.PRO,
    "recruiteros-agency": Plan.AGENCY,
}

# Unrecognized products are sold as the main paid tier
DEFAULT_PAID_PLAN = Plan.PRO


def plan_for_product(product_permalink: Optional[str]) -> Plan:
    plan = PRODUCT_PLAN_MAP.get((product_permalink or "").strip().lower())
    if plan is None:
        logger.info(f"Unmapped Gumroad product {product_permalink!r}, defaulting to {DEFAULT_PAID_PLAN.value}")
        return DEFAULT_PAID_PLAN
    return plan


def derive_status(event: GumroadEvent) -> SubscriptionStatus:
    """Map event flags to a subscription status.

    Refund/cancel flags win over the alert type; `subscription_ended`
    expires; every other delivery is treated as an active sale.
    """
    if event.refunded or event.cancelled or event.alert_type == "refund":
        return SubscriptionStatus.CANCELLED
    if event.alert_type == "subscription_ended":
        return SubscriptionStatus.EXPIRED
    return SubscriptionStatus.ACTIVE


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse Gumroad's ISO-8601 sale_timestamp; unparseable values are dropped."""
    value = _blank_to_none(value)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable sale_timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_event(form: Mapping[str, str]) -> GumroadEvent:
    """
    Build a GumroadEvent from decoded form fields.

    Raises:
        BillingWebhookError: If the body is not a field mapping
    """
    if not hasattr(form, "get"):
        raise BillingWebhookError("Webhook body is not form-encoded")

    alert_type = _blank_to_none(form.get("alert_type")) or _blank_to_none(form.get("type")) or "sale"

    return GumroadEvent(
        alert_type=alert_type,
        seller_id=_blank_to_none(form.get("seller_id")),
        email=normalize_email(form.get("email")),
        sale_id=_blank_to_none(form.get("sale_id")),
        subscriber_id=_blank_to_none(form.get("subscriber_id")),
        product_permalink=_blank_to_none(form.get("product_permalink")),
        refunded=_flag(form.get("refunded")),
        cancelled=_flag(form.get("cancelled")),
        sale_timestamp=_parse_timestamp(form.get("sale_timestamp")),
    )
