"""
Pending-purchase ledger.

Purchases for emails with no account yet wait here until the buyer signs up.
At most one record per normalized email; a later sale overwrites the earlier
one (last sale wins). Records never expire on their own.
"""
from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy import select, insert, delete

from recruiterops.core.database import Database, pending_subscriptions
from recruiterops.core.logging import email_domain
from recruiterops.models.entitlement import normalize_email
from recruiterops.models.pending_purchase import PendingPurchase

logger = logging.getLogger(__name__)


def _to_pending(row) -> PendingPurchase:
    return PendingPurchase(**dict(row._mapping))


class PendingPurchaseLedger:
    def __init__(self, db: Database):
        self.db = db

    def upsert(
        self,
        email: str,
        plan: str,
        *,
        sale_id: Optional[str] = None,
        subscriber_id: Optional[str] = None,
    ) -> PendingPurchase:
        """Stage a purchase, replacing any earlier one for the same email."""
        key = normalize_email(email)
        if not key:
            raise ValueError("email is required")
        record = {
            "email": key,
            "plan": plan,
            "gumroad_sale_id": sale_id,
            "gumroad_subscriber_id": subscriber_id,
            "created_at": datetime.now(timezone.utc),
        }
        with self.db.session() as session:
            session.execute(delete(pending_subscriptions).where(pending_subscriptions.c.email == key))
            session.execute(insert(pending_subscriptions).values(**record))
        logger.info(
            "Stored pending subscription for unregistered buyer",
            extra={"email_domain": email_domain(key)},
        )
        return PendingPurchase(**record)

    def get(self, email: Optional[str]) -> Optional[PendingPurchase]:
        key = normalize_email(email)
        if not key:
            return None
        with self.db.session() as session:
            row = session.execute(
                select(pending_subscriptions).where(pending_subscriptions.c.email == key)
            ).first()
            return _to_pending(row) if row else None

    def delete(self, email: Optional[str]) -> bool:
        key = normalize_email(email)
        if not key:
            return False
        with self.db.session() as session:
            result = session.execute(
                delete(pending_subscriptions).where(pending_subscriptions.c.email == key)
            )
            return result.rowcount > 0

    def list_older_than(self, cutoff: datetime) -> List[PendingPurchase]:
        """Unclaimed purchases staged before `cutoff`, oldest first (for support review)."""
        with self.db.session() as session:
            rows = session.execute(
                select(pending_subscriptions)
                .where(pending_subscriptions.c.created_at < cutoff)
                .order_by(pending_subscriptions.c.created_at)
            ).fetchall()
            return [_to_pending(r) for r in rows]
