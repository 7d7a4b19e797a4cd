"""
recruiterops/features/entitlements/store.py

Entitlement Store: the `profiles` table.

Handles:
- Profile creation with trial defaults
- Lookup by id or case-normalized email
- Field-scoped writes: subscription fields for reconciliation, profile
  fields for the account owner. A writer can never touch the other's columns.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Iterator, Optional
import logging

from sqlalchemy import select, insert, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recruiterops.core.database import Database, profiles
from recruiterops.core.errors import ConflictError, ValidationError
from recruiterops.models.entitlement import (
    EntitlementRecord,
    Plan,
    SubscriptionStatus,
    SUBSCRIPTION_FIELDS,
    PROFILE_FIELDS,
    normalize_email,
)

logger = logging.getLogger(__name__)

DEFAULT_TRIAL_DAYS = 14


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_fields(values: Dict[str, Any], allowed: Iterable[str], writer: str) -> None:
    illegal = sorted(set(values) - set(allowed))
    if illegal:
        raise ValueError(f"{writer} may not write columns: {', '.join(illegal)}")


def _to_record(row) -> EntitlementRecord:
    return EntitlementRecord(**dict(row._mapping))


class EntitlementStore:
    def __init__(self, db: Database, *, trial_days: int = DEFAULT_TRIAL_DAYS):
        self.db = db
        self.trial_days = trial_days

    @contextmanager
    def _scope(self, session: Optional[Session]) -> Iterator[Session]:
        # Join the caller's transaction when given one
        if session is not None:
            yield session
        else:
            with self.db.session() as s:
                yield s

    def get(self, user_id: str, *, session: Optional[Session] = None) -> Optional[EntitlementRecord]:
        with self._scope(session) as s:
            row = s.execute(select(profiles).where(profiles.c.id == user_id)).first()
            return _to_record(row) if row else None

    def get_by_email(self, email: Optional[str], *, session: Optional[Session] = None) -> Optional[EntitlementRecord]:
        key = normalize_email(email)
        if not key:
            return None
        with self._scope(session) as s:
            row = s.execute(select(profiles).where(profiles.c.email == key)).first()
            return _to_record(row) if row else None

    def create(
        self,
        user_id: str,
        email: str,
        *,
        full_name: Optional[str] = None,
        now: Optional[datetime] = None,
        session: Optional[Session] = None,
    ) -> EntitlementRecord:
        """Insert a new profile on the starter trial.

        Raises:
            ValidationError: empty email
            ConflictError: email already belongs to another account
        """
        key = normalize_email(email)
        if not key:
            raise ValidationError("email is required")
        now = as_utc(now) or datetime.now(timezone.utc)
        values = {
            "id": user_id,
            "email": key,
            "full_name": full_name,
            "plan": Plan.STARTER.value,
            "subscription_status": SubscriptionStatus.TRIALING.value,
            "trial_ends_at": now + timedelta(days=self.trial_days),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._scope(session) as s:
                s.execute(insert(profiles).values(**values))
        except IntegrityError:
            raise ConflictError(f"A profile already exists for {user_id} or this email")
        logger.info("Created profile", extra={"user_id": user_id})
        return EntitlementRecord(**values)

    def get_or_create(
        self,
        user_id: str,
        email: str,
        *,
        full_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EntitlementRecord:
        """Return the account's profile, creating it on first sight.

        Raises:
            ConflictError: the existing profile carries a different email
        """
        existing = self.get(user_id)
        if existing:
            if normalize_email(email) and existing.email != normalize_email(email):
                raise ConflictError("Email does not match the account's profile")
            return existing
        return self.create(user_id, email, full_name=full_name, now=now)

    def patch_subscription(
        self,
        user_id: str,
        values: Dict[str, Any],
        *,
        not_newer_than: Optional[datetime] = None,
        session: Optional[Session] = None,
    ) -> bool:
        """
        Write subscription columns only.

        Args:
            values: subset of SUBSCRIPTION_FIELDS
            not_newer_than: event timestamp; the write only applies when the
                stored last_event_at is unset or not after it

        Returns:
            True if a row was updated, False if the account is missing or
            the stored state is newer than the event.
        """
        _check_fields(values, SUBSCRIPTION_FIELDS, "subscription writer")
        values = dict(values)
        values.setdefault("updated_at", datetime.now(timezone.utc))
        stmt = update(profiles).where(profiles.c.id == user_id)
        if not_newer_than is not None:
            stmt = stmt.where(
                or_(profiles.c.last_event_at.is_(None), profiles.c.last_event_at <= not_newer_than)
            )
        with self._scope(session) as s:
            result = s.execute(stmt.values(**values))
            return result.rowcount > 0

    def patch_profile(self, user_id: str, values: Dict[str, Any]) -> Optional[EntitlementRecord]:
        """Write owner-editable columns only; returns the updated record."""
        _check_fields(values, PROFILE_FIELDS, "profile writer")
        if not values:
            return self.get(user_id)
        with self.db.session() as s:
            result = s.execute(update(profiles).where(profiles.c.id == user_id).values(**values))
            if result.rowcount == 0:
                return None
            row = s.execute(select(profiles).where(profiles.c.id == user_id)).first()
            return _to_record(row)
