"""
Shared type aliases for dirvec.

Centralizes commonly used types for consistency across modules.
"""

from collections.abc import Mapping
from typing import Any, Literal, TypeAlias

# A directory user or any other document headed for the store
Record: TypeAlias = Mapping[str, Any]

# Fixed-length vector returned by the embedding provider
Embedding: TypeAlias = list[float]

# Similarity metrics accepted by Atlas vector search indexes
SimilarityMetric: TypeAlias = Literal["cosine", "euclidean", "dotProduct"]

# Default embedding width for text-embedding-ada-002
DEFAULT_DIMENSIONS = 1536

# Field holding the embedding on stored documents
EMBEDDING_FIELD = "embedding"
