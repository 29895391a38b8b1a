"""
Core domain layer for dirvec.

This module provides:
- Exception hierarchy for consistent error handling
- Event sink protocol for structured reporting
- Shared type definitions

Usage:
    from dirvec.core import DirVecError, StoreWriteError, EventSink
    from dirvec.core.types import Record, Embedding
"""

from .events import EventSink, LoggingEventSink
from .exceptions import (
    ConfigurationError,
    DirectoryError,
    DirVecError,
    EmbeddingProviderError,
    IndexProvisionError,
    IndexQueryError,
    MissingConfigError,
    StorageError,
    StoreWriteError,
    ValidationError,
)
from .types import (
    DEFAULT_DIMENSIONS,
    EMBEDDING_FIELD,
    Embedding,
    Record,
    SimilarityMetric,
)

__all__ = [
    # Exceptions
    "DirVecError",
    "ValidationError",
    "EmbeddingProviderError",
    "StorageError",
    "StoreWriteError",
    "IndexProvisionError",
    "IndexQueryError",
    "DirectoryError",
    "ConfigurationError",
    "MissingConfigError",
    # Events
    "EventSink",
    "LoggingEventSink",
    # Types
    "Record",
    "Embedding",
    "SimilarityMetric",
    "DEFAULT_DIMENSIONS",
    "EMBEDDING_FIELD",
]
