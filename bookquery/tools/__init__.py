"""
Database access layer for bookquery.

This package holds the error hierarchy, the result model and the MongoDB
connection used by the query runner.
"""

from .base import (
    ErrorCategory,
    QueryCommandError,
    QueryConnectionError,
    QueryError,
    QueryResult,
    QueryValidationError,
    ReportNotFoundError,
    ResultStatus,
)

__all__ = [
    "ErrorCategory",
    "QueryCommandError",
    "QueryConnectionError",
    "QueryError",
    "QueryResult",
    "QueryValidationError",
    "ReportNotFoundError",
    "ResultStatus",
]
