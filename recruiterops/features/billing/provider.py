"""
Payment provider event contract.

The reconciler only ever sees a GumroadEvent; everything provider-specific
(field names, flag encoding, product ids) is handled in gumroad.py.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class GumroadEvent:
    """One parsed webhook delivery (sale, refund, cancellation, subscription end)."""
    alert_type: str
    seller_id: Optional[str]
    email: Optional[str]  # already normalized
    sale_id: Optional[str]
    subscriber_id: Optional[str]
    product_permalink: Optional[str]
    refunded: bool = False
    cancelled: bool = False
    sale_timestamp: Optional[datetime] = None

    @property
    def is_ping(self) -> bool:
        """Deliveries without email or sale id carry nothing to reconcile."""
        return not self.email or not self.sale_id


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Webhook body could not be read or parsed."""
    pass
