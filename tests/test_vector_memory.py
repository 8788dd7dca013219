"""Tests for the Chroma-backed knowledge store, with an in-memory collection."""

from typing import (
    Any,
    Dict,
    List,
)

import pytest

pytest.importorskip("chromadb")

from conduit.memory.vector_memory import VectorMemory  # noqa: E402


class FakeCollection:
    def __init__(self) -> None:
        self.docs: Dict[str, str] = {}
        self.metadatas: Dict[str, Dict[str, Any]] = {}

    def upsert(self, ids: List[str], documents: List[str], metadatas: List[dict]) -> None:
        for doc_id, doc, meta in zip(ids, documents, metadatas):
            self.docs[doc_id] = doc
            self.metadatas[doc_id] = meta

    def query(self, query_texts: List[str], n_results: int, include: List[str]) -> dict:
        (text,) = query_texts
        ranked = sorted(self.docs.values(), key=lambda d: text.lower() not in d.lower())
        return {"documents": [ranked[:n_results]]}

    def count(self) -> int:
        return len(self.docs)


class FakeClient:
    def __init__(self) -> None:
        self.collection = FakeCollection()
        self.requested: List[str] = []

    def get_or_create_collection(self, name: str, embedding_function: Any) -> FakeCollection:
        self.requested.append(name)
        return self.collection


@pytest.fixture
def memory_and_client():
    client = FakeClient()
    memory = VectorMemory(
        collection_name="test", client=client, embedding_function=lambda texts: []
    )
    return memory, client


def test_add_and_count(memory_and_client) -> None:
    memory, client = memory_and_client

    memory.add("1", "User: hi\nAssistant: hello", metadata={"role": "exchange"})
    memory.add("1", "User: hi\nAssistant: hey")

    assert client.requested == ["test"]
    assert memory.count() == 1
    assert client.collection.docs["1"] == "User: hi\nAssistant: hey"
    assert client.collection.metadatas["1"] == {}


def test_query_returns_document_texts(memory_and_client) -> None:
    memory, _ = memory_and_client
    memory.add("1", "The sky is blue.")
    memory.add("2", "Paris is in France.")

    assert memory.query("paris", k=1) == ["Paris is in France."]


def test_query_on_empty_collection(memory_and_client) -> None:
    memory, _ = memory_and_client
    assert memory.query("anything") == []


def test_remember_exchange_stores_the_turn(memory_and_client) -> None:
    memory, client = memory_and_client

    doc_id = memory.remember_exchange("hi", "hello", "Tester")

    assert client.collection.docs[doc_id] == "User: hi\nAssistant: hello"
    assert client.collection.metadatas[doc_id] == {"role": "exchange", "agent": "Tester"}
