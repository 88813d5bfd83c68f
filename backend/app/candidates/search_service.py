"""
Semantic candidate search over the vector index
"""
from sqlalchemy.orm import Session
import structlog

from app.ai_engine.service import ai_engine
from app.candidates.schemas import SmartSearchCandidate, SmartSearchRequest, SmartSearchResponse
from app.candidates.service import candidate_service
from app.vector_store.service import vector_store

logger = structlog.get_logger()


class SmartSearchService:
    """Embed the query, search, threshold, then join back to candidate rows"""

    def __init__(self, engine=None, store=None, candidates=None):
        self.ai_engine = engine or ai_engine
        self.vector_store = store or vector_store
        self.candidate_service = candidates or candidate_service

    def search(self, db: Session, request: SmartSearchRequest) -> SmartSearchResponse:
        # AIEngineError / VectorStoreError propagate to the caller
        embedding = self.ai_engine.generate_embedding(request.query)
        hits = self.vector_store.search(embedding, request.top_k)

        hits = [hit for hit in hits if hit.score >= request.min_score]
        if not hits:
            logger.info("smart_search_no_matches", query=request.query[:100], min_score=request.min_score)
            return SmartSearchResponse(query=request.query, total_matches=0, candidates=[])

        candidates = self.candidate_service.get_by_ids(db, [hit.candidate_id for hit in hits])

        results = []
        for hit in hits:
            candidate = candidates.get(hit.candidate_id)
            if candidate is None:
                logger.warning("smart_search_stale_vector", candidate_id=hit.candidate_id)
                continue
            results.append(SmartSearchCandidate(
                candidate_id=candidate.id,
                name=candidate.name,
                match_score=round(hit.score, 4),
                current_position=candidate.current_position,
                current_company=candidate.current_company,
                education=candidate.education,
                work_years=candidate.work_years,
                skills=candidate.skills or [],
                summary=candidate.ai_summary,
            ))

        logger.info("smart_search_completed", query=request.query[:100], hits=len(hits), returned=len(results))
        return SmartSearchResponse(query=request.query, total_matches=len(results), candidates=results)


# Global instance
smart_search_service = SmartSearchService()
