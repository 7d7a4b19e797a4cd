import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from sqlalchemy import insert

from recruiterops.core.database import Database, usage_logs, webhook_logs
from recruiterops.core.logging import truncate

logger = logging.getLogger(__name__)

RAW_PAYLOAD_LIMIT = 10_000


class AuditLog:
    """Best-effort audit writer.

    Writes never raise: a failed insert is logged and the record is kept in an
    in-memory buffer instead, so auditing can't block reconciliation.
    """

    def __init__(self, db: Database):
        self.db = db
        self._buffer: List[Dict[str, Any]] = []

    def record_webhook(
        self,
        *,
        alert_type: Optional[str],
        email: Optional[str],
        sale_id: Optional[str],
        raw_payload: Optional[str],
    ) -> bool:
        """Persist a raw provider delivery. Returns False if it only reached the buffer."""
        record = {
            "alert_type": truncate(alert_type, 100) if alert_type else None,
            "email": truncate(email, 320) if email else None,
            "sale_id": truncate(sale_id, 100) if sale_id else None,
            "raw_payload": truncate(raw_payload, RAW_PAYLOAD_LIMIT) if raw_payload is not None else None,
            "received_at": datetime.now(timezone.utc),
        }
        return self._write(webhook_logs, record, kind="webhook_log")

    def record_usage(
        self,
        *,
        customer_id: Optional[str],
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record a business audit entry (activation, cancellation, claim)."""
        safe_metadata = None
        if metadata:
            safe_metadata = {
                k: v if isinstance(v, (int, float, bool)) or v is None else truncate(v)
                for k, v in metadata.items()
            }
        record = {
            "customer_id": customer_id,
            "action": action,
            "metadata": safe_metadata,
            "created_at": datetime.now(timezone.utc),
        }
        return self._write(usage_logs, record, kind="usage_log")

    def _write(self, table, record: Dict[str, Any], *, kind: str) -> bool:
        try:
            with self.db.session() as session:
                session.execute(insert(table).values(**record))
            return True
        except Exception as exc:
            logger.warning(f"Audit {kind} write failed: {exc}")
            self._buffer.append({"table": table.name, **record})
            return False

    def buffered(self) -> List[Dict[str, Any]]:
        return list(self._buffer)
