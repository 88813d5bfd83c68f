from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import pytest
from pymilvus.exceptions import MilvusException

from app.core.exceptions import VectorStoreError
from app.vector_store import service as vector_module
from app.vector_store.service import VectorHit, VectorStoreService


@pytest.fixture
def milvus(monkeypatch):
    """Patches the pymilvus entry points used by the service"""
    collection = MagicMock(name="collection")
    connections = Mock(name="connections")
    connections.has_connection.return_value = False
    utility = Mock(name="utility")
    utility.has_collection.return_value = False
    collection_cls = Mock(name="Collection", return_value=collection)

    monkeypatch.setattr(vector_module, "connections", connections)
    monkeypatch.setattr(vector_module, "utility", utility)
    monkeypatch.setattr(vector_module, "Collection", collection_cls)
    return SimpleNamespace(collection=collection, connections=connections, utility=utility, cls=collection_cls)


def test_creates_indexed_collection_once(milvus):
    store = VectorStoreService(collection_name="candidates_test")

    store.ensure_collection()
    store.ensure_collection()

    milvus.connections.connect.assert_called_once()
    assert milvus.cls.call_count == 1
    index_params = milvus.collection.create_index.call_args.kwargs["index_params"]
    assert index_params["index_type"] == "IVF_FLAT"
    assert index_params["metric_type"] == "COSINE"
    milvus.collection.load.assert_called_once()


def test_existing_collection_is_reused(milvus):
    milvus.utility.has_collection.return_value = True
    VectorStoreService().ensure_collection()
    milvus.collection.create_index.assert_not_called()


def test_upsert_returns_candidate_id(milvus):
    vector_id = VectorStoreService().upsert_vector(7, [0.1, 0.2], "x" * 300)

    assert vector_id == "7"
    row = milvus.collection.upsert.call_args.args[0][0]
    assert row["candidate_id"] == 7
    assert len(row["candidate_name"]) == 200


def test_search_maps_hits(milvus):
    hit = SimpleNamespace(id=3, distance=0.87, entity={"candidate_name": "Jane"})
    milvus.collection.search.return_value = [[hit]]

    hits = VectorStoreService().search([0.1], top_k=5)

    assert hits == [VectorHit(candidate_id=3, candidate_name="Jane", score=0.87)]
    assert milvus.collection.search.call_args.kwargs["limit"] == 5


def test_list_candidate_ids_drains_iterator(milvus):
    iterator = Mock()
    iterator.next.side_effect = [[{"candidate_id": 1}, {"candidate_id": 2}], [{"candidate_id": 5}], []]
    milvus.collection.query_iterator.return_value = iterator

    assert VectorStoreService().list_candidate_ids() == [1, 2, 5]
    iterator.close.assert_called_once()


def test_milvus_errors_are_wrapped(milvus):
    milvus.collection.delete.side_effect = MilvusException(message="collection not loaded")
    with pytest.raises(VectorStoreError):
        VectorStoreService().delete_vector(1)
