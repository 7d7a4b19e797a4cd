"""
Job orders and candidates owned by an account.

Only what entitlement handling needs: gated creation, listing, and the
cascade archival that follows a lost subscription.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, insert, update, func
from sqlalchemy.orm import Session

from recruiterops.core.database import Database, jobs, candidates
from recruiterops.core.errors import NotFoundError

CANDIDATE_STAGES = (
    "Sourced",
    "Contacted",
    "Responded",
    "Screened",
    "Client Interview",
    "Presented",
    "Placed",
    "Rejected",
)


def archive_user_pipeline(session: Session, user_id: str, now: datetime) -> int:
    """
    Archive every live job of `user_id` and every live candidate on any of
    the user's jobs. Runs inside the caller's transaction.

    Re-running is harmless: rows already archived keep their timestamp, and
    candidates left behind by an interrupted earlier run are picked up.

    Returns:
        Number of jobs archived by this call
    """
    job_ids = [
        row.id
        for row in session.execute(
            select(jobs.c.id).where(jobs.c.user_id == user_id).where(jobs.c.archived_at.is_(None))
        ).fetchall()
    ]
    if job_ids:
        session.execute(update(jobs).where(jobs.c.id.in_(job_ids)).values(archived_at=now))

    owned_jobs = select(jobs.c.id).where(jobs.c.user_id == user_id)
    session.execute(
        update(candidates)
        .where(candidates.c.job_id.in_(owned_jobs))
        .where(candidates.c.archived_at.is_(None))
        .values(archived_at=now)
    )
    return len(job_ids)


class PipelineStore:
    def __init__(self, db: Database):
        self.db = db

    def count_active_jobs(self, user_id: str) -> int:
        with self.db.session() as session:
            return session.execute(
                select(func.count())
                .select_from(jobs)
                .where(jobs.c.user_id == user_id)
                .where(jobs.c.archived_at.is_(None))
            ).scalar_one()

    def create_job(self, user_id: str, title: str, client: Optional[str] = None) -> Dict[str, Any]:
        record = {
            "id": str(uuid4()),
            "user_id": user_id,
            "title": title,
            "client": client,
            "status": "active",
            "created_at": datetime.now(timezone.utc),
            "archived_at": None,
        }
        with self.db.session() as session:
            session.execute(insert(jobs).values(**record))
        return record

    def list_jobs(self, user_id: str, *, include_archived: bool = False) -> List[Dict[str, Any]]:
        stmt = select(jobs).where(jobs.c.user_id == user_id)
        if not include_archived:
            stmt = stmt.where(jobs.c.archived_at.is_(None))
        with self.db.session() as session:
            rows = session.execute(stmt.order_by(jobs.c.created_at)).fetchall()
            return [dict(r._mapping) for r in rows]

    def add_candidate(self, user_id: str, job_id: str, name: str, stage: str = "Sourced") -> Dict[str, Any]:
        """Attach a candidate to one of the user's live jobs.

        Raises:
            NotFoundError: job missing, archived, or owned by someone else
        """
        with self.db.session() as session:
            job = session.execute(
                select(jobs.c.id)
                .where(jobs.c.id == job_id)
                .where(jobs.c.user_id == user_id)
                .where(jobs.c.archived_at.is_(None))
            ).first()
            if not job:
                raise NotFoundError("Job not found")
            record = {
                "id": str(uuid4()),
                "job_id": job_id,
                "name": name,
                "stage": stage,
                "created_at": datetime.now(timezone.utc),
                "archived_at": None,
            }
            session.execute(insert(candidates).values(**record))
        return record
