"""
Core exception hierarchy for dirvec.

All custom exceptions inherit from DirVecError for consistent error handling.
"""

from typing import Optional


class DirVecError(Exception):
    """Base exception for all dirvec errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | Context: {self.context}"
        return self.message


# Validation Errors
class ValidationError(DirVecError):
    """Record or query rejected before reaching a provider."""
    pass


# Provider Errors
class EmbeddingProviderError(DirVecError):
    """Embedding provider failed; the whole request is lost."""
    pass


# Storage Errors
class StorageError(DirVecError):
    """Error during document store operations."""
    pass


class StoreWriteError(StorageError):
    """Bulk write for a batch failed."""

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        upserted: int = 0,
        matched: int = 0,
    ):
        # Writes the store reports as committed before the failure
        self.upserted = upserted
        self.matched = matched
        super().__init__(message, context)


class IndexProvisionError(StorageError):
    """Vector index could not be created."""
    pass


class IndexQueryError(StorageError):
    """Vector search query was rejected by the store."""
    pass


# Ingestion Errors
class DirectoryError(DirVecError):
    """Error listing users from the directory source."""
    pass


# Configuration Errors
class ConfigurationError(DirVecError):
    """Configuration error."""
    pass


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""
    pass
