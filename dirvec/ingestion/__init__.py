"""Directory ingestion."""

from .directory import (
    DirectoryPage,
    DirectorySource,
    GoogleDirectoryClient,
    dig,
    map_user,
)

__all__ = [
    "DirectoryPage",
    "DirectorySource",
    "GoogleDirectoryClient",
    "dig",
    "map_user",
]
