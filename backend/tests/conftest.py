"""
Shared fixtures: in-memory SQLite, a Redis double and temporary file storage
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import time
from typing import Dict
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core import redis_client as redis_store
from app.core.database import Base
from app.models.candidate import Candidate
from app.models.job import Job
from app.models.resume import Resume
from app.resumes.storage import FileStorage


class FakeRedis:
    """Covers the subset of redis-py the application uses"""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.expiry: Dict[str, float] = {}

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    def get(self, key):
        return self.store[key] if self._alive(key) else None

    def set(self, key, value, nx=False, ex=None):
        if nx and self._alive(key):
            return None
        self.store[key] = str(value)
        if ex:
            self.expiry[key] = time.time() + ex
        else:
            self.expiry.pop(key, None)
        return True

    def setex(self, key, ttl, value):
        return self.set(key, value, ex=ttl)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if self._alive(key))

    def incr(self, key):
        value = int(self.get(key) or 0) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key, seconds):
        if not self._alive(key):
            return False
        self.expiry[key] = time.time() + seconds
        return True

    def ttl(self, key):
        if not self._alive(key):
            return -2
        deadline = self.expiry.get(key)
        return -1 if deadline is None else int(deadline - time.time())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_store, "redis_client", fake)
    return fake


@pytest.fixture
def storage(tmp_path):
    return FileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def publisher():
    return Mock(name="publisher")


@pytest.fixture
def make_resume(db, storage):
    counter = {"n": 0}

    def _make(content: bytes = b"%PDF-1.4 resume", status: str = "QUEUED", owner_id: int = 1) -> Resume:
        counter["n"] += 1
        file_hash = f"{counter['n']:032x}"
        object_name = storage.save(storage.build_object_name(file_hash, "cv.pdf"), content)
        resume = Resume(
            owner_id=owner_id,
            file_name="cv.pdf",
            file_path=object_name,
            file_hash=file_hash,
            file_size=len(content),
            declared_type="application/pdf",
            sniffed_type="application/pdf",
            status=status,
        )
        db.add(resume)
        db.commit()
        db.refresh(resume)
        return resume

    return _make


@pytest.fixture
def make_candidate(db, make_resume):
    def _make(**fields) -> Candidate:
        resume = make_resume()
        candidate = Candidate(resume_id=resume.id, **fields)
        db.add(candidate)
        db.commit()
        db.refresh(candidate)
        return candidate

    return _make


@pytest.fixture
def make_job(db):
    def _make(**fields) -> Job:
        fields.setdefault("title", "Backend Engineer")
        job = Job(**fields)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make
