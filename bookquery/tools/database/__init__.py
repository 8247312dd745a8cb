"""
Database connection package for bookquery.

This package provides the connection configuration, the query and index
specifications and the async MongoDB connection.
"""

from .base import (
    IDENTITY_FIELD,
    ConnectionConfig,
    ConnectionState,
    DatabaseConnection,
    IndexSpec,
    QuerySpec,
    SortDirection,
)
from .mongodb import MongoDBConnection

__all__ = [
    # Base classes
    "ConnectionConfig",
    "ConnectionState",
    "DatabaseConnection",
    "IDENTITY_FIELD",
    "IndexSpec",
    "QuerySpec",
    "SortDirection",
    # Specific implementations
    "MongoDBConnection",
]
