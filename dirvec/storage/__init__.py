"""Document store access."""

from .mongo import MongoStore

__all__ = ["MongoStore"]
