"""Embedding, upsert and vector search operations."""

from .embedding_client import EmbeddingClient
from .index_provisioner import IndexProvisioner, IndexStatus
from .pipeline import BatchUpsertPipeline, UpsertSummary
from .projector import TextProjector
from .searcher import SimilaritySearcher

__all__ = [
    "BatchUpsertPipeline",
    "EmbeddingClient",
    "IndexProvisioner",
    "IndexStatus",
    "SimilaritySearcher",
    "TextProjector",
    "UpsertSummary",
]
