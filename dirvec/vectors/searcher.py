"""Similarity search over stored embeddings via Atlas $vectorSearch."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..core.events import EventSink, LoggingEventSink
from ..core.exceptions import ConfigurationError, IndexQueryError, ValidationError
from ..core.types import EMBEDDING_FIELD, Embedding
from ..utils.logger import get_logger
from .embedding_client import EmbeddingClient

logger = get_logger("dirvec.vectors.search")


class SimilaritySearcher:
    """Embed a text query and return the nearest stored documents."""

    def __init__(
        self,
        collection: Collection,
        embedding_client: EmbeddingClient,
        index_name: str,
        sink: EventSink | None = None,
        embedding_field: str = EMBEDDING_FIELD,
    ):
        """
        Args:
            collection: Collection holding the embedded documents
            embedding_client: Client used to embed query text
            index_name: Name of the vector search index to query
            sink: Event sink for search reporting
            embedding_field: Field path of the stored embeddings
        """
        self.collection = collection
        self.embeddings = embedding_client
        self.index_name = index_name
        self.sink = sink or LoggingEventSink(logger)
        self.embedding_field = embedding_field

    def build_pipeline(
        self,
        query_vector: Embedding,
        projected_field: str | Sequence[str] | None = None,
        top_k: int = 3,
        num_candidates: int = 100,
    ) -> list[dict[str, Any]]:
        """Build the aggregation stages for a vector query."""
        if projected_field is None:
            projection: dict[str, Any] = {self.embedding_field: 0}
        else:
            fields = [projected_field] if isinstance(projected_field, str) else list(projected_field)
            projection = {name: 1 for name in fields if name != self.embedding_field}
        projection["score"] = {"$meta": "vectorSearchScore"}

        return [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": self.embedding_field,
                    "queryVector": query_vector,
                    "numCandidates": num_candidates,
                    "limit": top_k,
                }
            },
            {"$project": projection},
        ]

    def search(
        self,
        query_text: str,
        projected_field: str | Sequence[str] | None = None,
        top_k: int = 3,
        num_candidates: int = 100,
    ) -> list[dict[str, Any]]:
        """
        Retrieve the top_k documents closest to query_text.

        Args:
            query_text: Free text to search for
            projected_field: Field name(s) to return; None returns every
                field except the embedding
            top_k: Number of documents to return
            num_candidates: Candidates the index considers before ranking

        Returns:
            Documents with a ``score`` field, highest score first

        Raises:
            ValidationError: If query_text is blank
            ConfigurationError: If top_k < 1 or num_candidates < top_k
            EmbeddingProviderError: If the query cannot be embedded
            IndexQueryError: If the store rejects the vector query
        """
        if not query_text or not query_text.strip():
            raise ValidationError("Search query must not be empty")
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
            raise ConfigurationError(f"Invalid top_k: {top_k!r} (must be >= 1)")
        if not isinstance(num_candidates, int) or num_candidates < top_k:
            raise ConfigurationError(
                f"Invalid num_candidates: {num_candidates!r} (must be >= top_k)",
                {"top_k": top_k},
            )

        query_vector = self.embeddings.embed_one(query_text)
        pipeline = self.build_pipeline(query_vector, projected_field, top_k, num_candidates)

        try:
            documents = list(self.collection.aggregate(pipeline))
        except PyMongoError as e:
            error = IndexQueryError(
                f"Vector search failed: {e}",
                {"index": self.index_name, "query": query_text},
            )
            self.sink.emit("search.failed", logging.ERROR, index=self.index_name, error=str(e))
            raise error from e

        for document in documents:
            document.pop(self.embedding_field, None)

        # sorted() is stable, so equal scores keep the store's order
        results = sorted(documents, key=lambda doc: doc.get("score", 0.0), reverse=True)

        self.sink.emit(
            "search.completed",
            logging.INFO,
            index=self.index_name,
            query=query_text,
            results=len(results),
        )
        return results
