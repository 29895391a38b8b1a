"""
Lazy provisioning of the Atlas vector search index.

Checks for the named index and creates it only when missing. The check and
the create are two separate store calls, so two processes can both see the
index as absent and both try to create it. The loser gets an "already
exists" failure, which is treated as success; there is no locking.
"""

from __future__ import annotations

import logging
from enum import Enum

from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError
from pymongo.operations import SearchIndexModel

from ..core.events import EventSink, LoggingEventSink
from ..core.exceptions import ConfigurationError, IndexProvisionError
from ..core.types import DEFAULT_DIMENSIONS, EMBEDDING_FIELD, SimilarityMetric
from ..utils.logger import get_logger

logger = get_logger("dirvec.vectors.index")

SUPPORTED_METRICS = ("cosine", "euclidean", "dotProduct")

# Server error codes
NAMESPACE_NOT_FOUND = 26
INDEX_ALREADY_EXISTS = 68


class IndexStatus(Enum):
    """Outcome of an ensure_index call."""
    EXISTS = "exists"
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


def is_already_exists(error: PyMongoError) -> bool:
    """Check whether a creation failure means the index is already there."""
    if isinstance(error, OperationFailure):
        if error.code == INDEX_ALREADY_EXISTS:
            return True
        if (error.details or {}).get("codeName") == "IndexAlreadyExists":
            return True
    message = str(error).lower()
    return "already exists" in message or "duplicate index" in message


def vector_index_definition(
    field_path: str, dimensions: int, metric: SimilarityMetric
) -> dict:
    """Build the vectorSearch index definition for one embedding field."""
    return {
        "fields": [
            {
                "type": "vector",
                "path": field_path,
                "numDimensions": dimensions,
                "similarity": metric,
            }
        ]
    }


class IndexProvisioner:
    """Ensure a named vector search index exists on a collection."""

    def __init__(self, collection: Collection, sink: EventSink | None = None):
        self.collection = collection
        self.sink = sink or LoggingEventSink(logger)

    def index_exists(self, name: str) -> bool:
        """
        Check whether a search index with this name is listed.

        Listing failures count as "absent". The emitted event tells a missing
        collection apart from any other listing error.
        """
        try:
            indexes = list(self.collection.list_search_indexes(name))
        except OperationFailure as e:
            if e.code == NAMESPACE_NOT_FOUND:
                self.sink.emit(
                    "index.collection_missing",
                    logging.INFO,
                    index=name,
                    collection=self.collection.name,
                )
            else:
                self.sink.emit(
                    "index.list_failed",
                    logging.WARNING,
                    index=name,
                    code=e.code,
                    error=str(e),
                )
            return False
        except PyMongoError as e:
            self.sink.emit(
                "index.list_failed",
                logging.WARNING,
                index=name,
                error=str(e),
                transient=True,
            )
            return False

        return any(index.get("name") == name for index in indexes)

    def ensure_index(
        self,
        name: str,
        field_path: str = EMBEDDING_FIELD,
        dimensions: int = DEFAULT_DIMENSIONS,
        metric: SimilarityMetric = "cosine",
    ) -> IndexStatus:
        """
        Create the vector index unless it is already present.

        Never raises for store failures: a failed creation is reported
        through the sink and returned as IndexStatus.FAILED, and callers
        carry on without a guarantee that vector search will work.

        Raises:
            ConfigurationError: For an empty name, non-positive dimensions
                or an unsupported metric.
        """
        if not name:
            raise ConfigurationError("Vector index name must not be empty")
        if not isinstance(dimensions, int) or dimensions < 1:
            raise ConfigurationError(
                f"Invalid index dimensions: {dimensions}", {"index": name}
            )
        if metric not in SUPPORTED_METRICS:
            raise ConfigurationError(
                f"Unsupported similarity metric: {metric}", {"index": name}
            )

        if self.index_exists(name):
            self.sink.emit("index.exists", logging.INFO, index=name)
            return IndexStatus.EXISTS

        model = SearchIndexModel(
            definition=vector_index_definition(field_path, dimensions, metric),
            name=name,
            type="vectorSearch",
        )

        try:
            self.collection.create_search_index(model)
        except PyMongoError as e:
            if is_already_exists(e):
                self.sink.emit("index.already_exists", logging.INFO, index=name)
                return IndexStatus.ALREADY_EXISTS

            error = IndexProvisionError(
                f"Failed to create vector index: {e}",
                {"index": name, "collection": self.collection.name},
            )
            self.sink.emit("index.create_failed", logging.ERROR, index=name, error=str(error))
            return IndexStatus.FAILED

        self.sink.emit(
            "index.created",
            logging.INFO,
            index=name,
            path=field_path,
            dimensions=dimensions,
            metric=metric,
        )
        return IndexStatus.CREATED
