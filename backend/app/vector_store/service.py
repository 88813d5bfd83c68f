"""
Milvus vector index for candidate embeddings

One entity per candidate: (candidate_id INT64 pk, embedding, candidate_name).
The index is a derived copy of the candidates table and is never authoritative.
"""
from typing import List, NamedTuple, Optional
from pymilvus import (
    connections, Collection, CollectionSchema, FieldSchema, DataType, utility
)
from pymilvus.exceptions import MilvusException
import structlog

from app.core.config import settings
from app.core.exceptions import VectorStoreError

logger = structlog.get_logger()

VECTOR_FIELD = "embedding"
NAME_FIELD = "candidate_name"
ID_FIELD = "candidate_id"
NAME_MAX_LENGTH = 200


class VectorHit(NamedTuple):
    candidate_id: int
    candidate_name: Optional[str]
    score: float  # cosine similarity, higher is closer


class VectorStoreService:
    """Lazy Milvus connection; the collection is created on first use"""

    def __init__(self, alias: str = "default", collection_name: Optional[str] = None):
        self.alias = alias
        self.collection_name = collection_name or settings.MILVUS_COLLECTION
        self._collection: Optional[Collection] = None

    def _connect(self) -> None:
        if connections.has_connection(self.alias):
            return
        kwargs = {"alias": self.alias, "uri": settings.MILVUS_URI}
        if settings.MILVUS_TOKEN:
            kwargs["token"] = settings.MILVUS_TOKEN
        logger.info("milvus_connecting", uri=settings.MILVUS_URI)
        connections.connect(**kwargs)

    def _build_schema(self) -> CollectionSchema:
        fields = [
            FieldSchema(name=ID_FIELD, dtype=DataType.INT64, is_primary=True, auto_id=False),
            FieldSchema(name=VECTOR_FIELD, dtype=DataType.FLOAT_VECTOR, dim=settings.EMBEDDING_DIMENSION),
            FieldSchema(name=NAME_FIELD, dtype=DataType.VARCHAR, max_length=NAME_MAX_LENGTH),
        ]
        return CollectionSchema(fields, description="Candidate resume embeddings")

    def ensure_collection(self) -> Collection:
        """Connect, create the collection and its IVF_FLAT/COSINE index if missing, then load"""
        if self._collection is not None:
            return self._collection
        try:
            self._connect()
            if utility.has_collection(self.collection_name, using=self.alias):
                collection = Collection(self.collection_name, using=self.alias)
            else:
                collection = Collection(self.collection_name, schema=self._build_schema(), using=self.alias)
                collection.create_index(
                    field_name=VECTOR_FIELD,
                    index_params={
                        "index_type": "IVF_FLAT",
                        "metric_type": "COSINE",
                        "params": {"nlist": settings.MILVUS_NLIST},
                    },
                )
                logger.info("milvus_collection_created", collection=self.collection_name)
            collection.load()
        except MilvusException as e:
            logger.error("milvus_collection_init_failed", collection=self.collection_name, error=str(e))
            raise VectorStoreError("Vector index unavailable", details={"error": str(e)})
        self._collection = collection
        return collection

    def upsert_vector(self, candidate_id: int, embedding: List[float], candidate_name: Optional[str]) -> str:
        """Insert or replace the candidate's vector, returns the entity id as string"""
        collection = self.ensure_collection()
        row = {
            ID_FIELD: int(candidate_id),
            VECTOR_FIELD: embedding,
            NAME_FIELD: (candidate_name or "")[:NAME_MAX_LENGTH],
        }
        try:
            collection.upsert([row])
        except MilvusException as e:
            logger.error("milvus_upsert_failed", candidate_id=candidate_id, error=str(e))
            raise VectorStoreError("Vector upsert failed", details={"error": str(e)})
        return str(candidate_id)

    def search(self, embedding: List[float], top_k: int) -> List[VectorHit]:
        """Nearest candidates, best first"""
        collection = self.ensure_collection()
        try:
            results = collection.search(
                data=[embedding],
                anns_field=VECTOR_FIELD,
                param={"metric_type": "COSINE", "params": {"nprobe": settings.MILVUS_NPROBE}},
                limit=top_k,
                output_fields=[NAME_FIELD],
            )
        except MilvusException as e:
            logger.error("milvus_search_failed", top_k=top_k, error=str(e))
            raise VectorStoreError("Vector search failed", details={"error": str(e)})

        hits = []
        for result in results:
            for hit in result:
                hits.append(VectorHit(
                    candidate_id=int(hit.id),
                    candidate_name=hit.entity.get(NAME_FIELD),
                    score=float(hit.distance),
                ))
        return hits

    def delete_vector(self, candidate_id: int) -> None:
        collection = self.ensure_collection()
        try:
            collection.delete(expr=f"{ID_FIELD} in [{int(candidate_id)}]")
        except MilvusException as e:
            logger.error("milvus_delete_failed", candidate_id=candidate_id, error=str(e))
            raise VectorStoreError("Vector delete failed", details={"error": str(e)})

    def list_candidate_ids(self, batch_size: int = 1000) -> List[int]:
        """All candidate ids present in the index"""
        collection = self.ensure_collection()
        ids: List[int] = []
        try:
            iterator = collection.query_iterator(
                batch_size=batch_size,
                expr=f"{ID_FIELD} >= 0",
                output_fields=[ID_FIELD],
            )
            while True:
                batch = iterator.next()
                if not batch:
                    iterator.close()
                    break
                ids.extend(int(row[ID_FIELD]) for row in batch)
        except MilvusException as e:
            logger.error("milvus_list_failed", error=str(e))
            raise VectorStoreError("Vector listing failed", details={"error": str(e)})
        return ids


# Global instance
vector_store = VectorStoreService()
