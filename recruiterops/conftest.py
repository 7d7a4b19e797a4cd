# recruiterops/conftest.py
import pytest
from datetime import datetime, timezone, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import insert

from recruiterops.api.deps import build_services
from recruiterops.core.config import Settings
from recruiterops.core.database import Database, jobs, candidates
from recruiterops.main import create_app

SELLER_ID = "seller-123"


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_URL="sqlite://",
        GUMROAD_SELLER_ID=SELLER_ID,
        TRIAL_DAYS=14,
        AUTH_JWT_SECRET=None,
    )


@pytest.fixture
def db():
    """Fresh in-memory SQLite database per test."""
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def services(db, test_settings):
    return build_services(db, test_settings)


@pytest.fixture
def app(db, test_settings):
    return create_app(test_settings, db)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seed_pipeline(db):
    """Insert jobs (and two candidates per job) directly; returns created ids."""

    def _seed(user_id: str, job_count: int, *, archived: bool = False):
        now = datetime.now(timezone.utc) - timedelta(days=1)
        job_ids, candidate_ids = [], []
        with db.session() as session:
            for i in range(job_count):
                job_id = f"{user_id}-job-{i}-{'a' if archived else 'l'}"
                session.execute(
                    insert(jobs).values(
                        id=job_id,
                        user_id=user_id,
                        title=f"Role {i}",
                        client="Boutique Partners",
                        created_at=now,
                        archived_at=now if archived else None,
                    )
                )
                job_ids.append(job_id)
                for j in range(2):
                    cand_id = f"{job_id}-cand-{j}"
                    session.execute(
                        insert(candidates).values(
                            id=cand_id,
                            job_id=job_id,
                            name=f"Candidate {j}",
                            created_at=now,
                        )
                    )
                    candidate_ids.append(cand_id)
        return job_ids, candidate_ids

    return _seed
