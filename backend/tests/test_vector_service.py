import pytest

from app.candidates.service import CandidateService
from app.candidates.vector_service import CandidateVectorService, build_candidate_text
from app.core.config import settings
from app.core.exceptions import AIEngineError
from app.models.candidate import Candidate
from tests.stubs import StubAIEngine, StubVectorStore


class TestCandidateText:
    def test_sections_in_fixed_order(self):
        candidate = Candidate(
            id=1,
            name="Jane Doe",
            gender="FEMALE",
            education="Master",
            school="MIT",
            major="CS",
            work_years=5,
            current_company="Acme",
            current_position="Engineer",
            skills=["Python", "Kafka"],
            work_experience=[{"company": "Acme", "position": "Engineer", "startDate": "2020-01", "endDate": "present"}],
            project_experience=[{"name": "Search", "technologies": ["Milvus", "FastAPI"]}],
            self_evaluation="Curious",
        )

        text = build_candidate_text(candidate)

        assert text.splitlines() == [
            "Name: Jane Doe",
            "Gender: FEMALE",
            "Education: Master",
            "School: MIT",
            "Major: CS",
            "Work experience: 5 years",
            "Current company: Acme",
            "Current position: Engineer",
            "Skills: Python, Kafka",
            "Work history:",
            "- Acme | Engineer | 2020-01 | present",
            "Projects:",
            "- Search | Milvus, FastAPI",
            "Self evaluation: Curious",
        ]

    def test_absent_fields_and_unknown_gender_are_skipped(self):
        text = build_candidate_text(Candidate(id=2, name="Bo", gender="UNKNOWN", skills=[]))
        assert text == "Name: Bo"

    def test_long_text_is_truncated(self, monkeypatch):
        monkeypatch.setattr(settings, "EMBEDDING_MAX_TEXT_LENGTH", 50)
        text = build_candidate_text(Candidate(id=3, name="Bo", self_evaluation="x" * 500))
        assert len(text) == 50


class TestVectorize:
    def test_sets_vector_id_and_summary_together(self, db, make_candidate):
        candidate = make_candidate(name="Jane", skills=["Go"])
        store = StubVectorStore()
        engine = StubAIEngine(vector=[0.5] * 8)

        assert CandidateVectorService(engine, store).vectorize_candidate(db, candidate) is True

        db.refresh(candidate)
        assert candidate.vector_id == str(candidate.id)
        assert candidate.ai_summary == "Name: Jane\nSkills: Go"
        assert store.vectors[candidate.id] == ([0.5] * 8, "Jane")
        assert engine.embedded == ["Name: Jane\nSkills: Go"]

    @pytest.mark.parametrize(
        "ai_engine, index",
        [
            (StubAIEngine(fail=AIEngineError("quota")), StubVectorStore()),
            (StubAIEngine(), StubVectorStore(fail=ConnectionError("index down"))),
        ],
    )
    def test_failure_leaves_candidate_untouched(self, db, make_candidate, ai_engine, index):
        candidate = make_candidate(name="Jane")

        assert CandidateVectorService(ai_engine, index).vectorize_candidate(db, candidate) is False

        db.refresh(candidate)
        assert candidate.vector_id is None
        assert candidate.ai_summary is None

    def test_empty_profile_is_not_indexed(self, db, make_candidate):
        candidate = make_candidate()
        engine = StubAIEngine()
        assert CandidateVectorService(engine, StubVectorStore()).vectorize_candidate(db, candidate) is False
        assert engine.embedded == []

    def test_delete_vector_reports_failure(self):
        assert CandidateVectorService(StubAIEngine(), StubVectorStore(fail=ConnectionError())).delete_vector(1) is False


def test_reconcile_removes_orphans(db, make_candidate):
    kept = make_candidate(name="Kept")
    store = StubVectorStore()
    store.vectors = {kept.id: ([0.1], "Kept"), 9001: ([0.1], "Gone"), 9002: ([0.1], "Gone too")}

    removed = CandidateVectorService(StubAIEngine(), store).reconcile_index(db)

    assert sorted(removed) == [9001, 9002]
    assert list(store.vectors) == [kept.id]


def test_vectorize_refreshes_cached_detail(db, make_candidate, publisher):
    candidate = make_candidate(name="Jane", skills=["Go"])
    vectors = CandidateVectorService(StubAIEngine(), StubVectorStore())
    candidates = CandidateService(vector_service=vectors, publisher=publisher)
    assert candidates.get_detail(db, candidate.id)["vectorId"] is None

    assert vectors.vectorize_candidate(db, candidate) is True

    detail = candidates.get_detail(db, candidate.id)
    assert detail["vectorId"] == str(candidate.id)
    assert detail["aiSummary"] == "Name: Jane\nSkills: Go"
