"""
Thin wrapper around Chroma that supplies ``knowledge_context`` before a chat starts.

Each remembered exchange is stored as one document:
  text     = "User: ...\nAssistant: ..."
  metadata = { "role": "exchange", "agent": <agent name> }
"""

import logging
import os
import uuid
from typing import (
    Any,
    List,
    Mapping,
    cast,
)

import chromadb
from chromadb.api.types import EmbeddingFunction
from chromadb.utils import embedding_functions

logger = logging.getLogger(__name__)

_DEFAULT_EMBED_MODEL = os.getenv("CONDUIT_EMBED_MODEL", "all-MiniLM-L6-v2")  # small; runs CPU-only


class VectorMemory:
    """
    Chroma wrapper for storing & querying text chunks.
    """

    def __init__(
        self,
        collection_name: str = "conduit",
        host: str = "chroma",  # service name in docker-compose
        port: int = 8000,
        client: Any = None,
        embedding_function: EmbeddingFunction | None = None,
    ):
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        if embedding_function is None:
            embedding_function = embedding_functions.SentenceTransformerEmbeddingFunction(
                model_name=_DEFAULT_EMBED_MODEL
            )
        self._col = self._client.get_or_create_collection(
            name=collection_name, embedding_function=cast(EmbeddingFunction, embedding_function)
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def add(self, doc_id: str, text: str, metadata: Mapping[str, Any] | None = None) -> None:
        """Add or upsert a single document."""
        self._col.upsert(
            ids=[doc_id],
            documents=[text],
            metadatas=[dict(metadata or {})],
        )

    def query(self, text: str, k: int = 5) -> List[str]:
        """Return top-k docs (raw text) similar to `text`."""
        res = self._col.query(
            query_texts=[text],
            n_results=k,
            include=["documents"],
        )
        logger.debug("Knowledge query results: '%s'", res)
        if res and res.get("documents"):
            return list(res["documents"][0])
        return []

    def remember_exchange(self, user_message: str, reply: str, agent_name: str) -> str:
        """Store one finished chat turn under a fresh id and return that id."""
        doc_id = str(uuid.uuid4())
        self.add(
            doc_id,
            f"User: {user_message}\nAssistant: {reply}",
            metadata={"role": "exchange", "agent": agent_name},
        )
        return doc_id

    def count(self) -> int:
        """Return number of documents in the collection."""
        return self._col.count()
