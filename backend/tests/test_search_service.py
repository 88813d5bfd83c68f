import pytest
from pydantic import ValidationError as PydanticValidationError

from app.candidates.schemas import SmartSearchRequest
from app.candidates.search_service import SmartSearchService
from app.candidates.service import CandidateService
from app.core.exceptions import AIEngineError, VectorStoreError
from app.vector_store.service import VectorHit
from tests.stubs import StubAIEngine, StubVectorStore


def search_service(hits=None, engine=None, store=None, publisher=None):
    return SmartSearchService(
        engine=engine or StubAIEngine(),
        store=store or StubVectorStore(hits=hits),
        candidates=CandidateService(vector_service=object(), publisher=publisher),
    )


class TestSmartSearch:
    def test_filters_by_threshold_and_keeps_index_order(self, db, make_candidate):
        best = make_candidate(name="Best", skills=["Python"], ai_summary="Name: Best")
        good = make_candidate(name="Good")
        weak = make_candidate(name="Weak")
        hits = [
            VectorHit(candidate_id=best.id, candidate_name="Best", score=0.912345),
            VectorHit(candidate_id=good.id, candidate_name="Good", score=0.5),
            VectorHit(candidate_id=weak.id, candidate_name="Weak", score=0.29),
        ]

        response = search_service(hits=hits).search(db, SmartSearchRequest(query="python backend"))

        assert response.total_matches == 2
        assert [c.candidate_id for c in response.candidates] == [best.id, good.id]
        assert response.candidates[0].match_score == 0.9123
        assert response.candidates[0].skills == ["Python"]
        assert response.candidates[0].summary == "Name: Best"
        assert response.candidates[1].skills == []

    def test_stale_vectors_are_dropped(self, db, make_candidate):
        live = make_candidate(name="Live")
        hits = [
            VectorHit(candidate_id=424242, candidate_name="Deleted", score=0.99),
            VectorHit(candidate_id=live.id, candidate_name="Live", score=0.8),
        ]

        response = search_service(hits=hits).search(db, SmartSearchRequest(query="anything"))

        assert [c.candidate_id for c in response.candidates] == [live.id]
        assert response.total_matches == 1

    def test_no_match_is_an_empty_result(self, db):
        response = search_service(hits=[]).search(db, SmartSearchRequest(query="rust", minScore=0.9))
        assert response.total_matches == 0
        assert response.candidates == []

    def test_top_k_is_passed_to_the_index(self, db):
        store = StubVectorStore()
        search_service(store=store).search(db, SmartSearchRequest(query="go", topK=25))
        assert store.searches == [25]

    @pytest.mark.parametrize(
        "ai_engine, index",
        [
            (StubAIEngine(fail=AIEngineError("quota")), StubVectorStore()),
            (StubAIEngine(), StubVectorStore(fail=VectorStoreError())),
        ],
    )
    def test_dependency_errors_propagate(self, db, ai_engine, index):
        with pytest.raises((AIEngineError, VectorStoreError)):
            search_service(engine=ai_engine, store=index).search(db, SmartSearchRequest(query="java"))


@pytest.mark.parametrize(
    "payload",
    [
        {"query": ""},
        {"query": "x" * 1001},
        {"query": "ok", "topK": 0},
        {"query": "ok", "topK": 51},
        {"query": "ok", "minScore": 1.5},
    ],
)
def test_request_bounds(payload):
    with pytest.raises(PydanticValidationError):
        SmartSearchRequest.model_validate(payload)


def test_request_defaults():
    request = SmartSearchRequest(query="data engineer")
    assert (request.top_k, request.min_score) == (10, 0.3)
