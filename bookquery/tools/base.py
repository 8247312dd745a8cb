"""
Error types and operation results shared by every query operation.

Driver failures are translated into this hierarchy once, at the connection
layer, so callers only ever see a tagged ``QueryError`` or a ``QueryResult``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class ErrorCategory(Enum):
    """Category of a failed operation."""

    CONNECTION = "connection"
    COMMAND = "command"
    VALIDATION = "validation"


class ResultStatus(Enum):
    """Outcome of a completed operation."""

    OK = "ok"
    NO_MATCH = "no_match"
    UNCHANGED = "unchanged"


class QueryResult(BaseModel):
    """Result of a single query, command or aggregation."""

    operation: str
    status: ResultStatus = ResultStatus.OK
    rows_returned: int = 0
    rows_matched: int = 0
    rows_affected: int = 0
    data: List[Dict[str, Any]] = Field(default_factory=list)
    execution_time: float = 0.0
    query_id: str = Field(default_factory=lambda: str(uuid4()))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_zero_match(self) -> bool:
        """True when the filter matched no document."""
        return self.status == ResultStatus.NO_MATCH


class QueryError(Exception):
    """Base exception for query-related errors."""

    category = ErrorCategory.COMMAND

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class QueryConnectionError(QueryError):
    """Raised when the server cannot be reached or the connection is closed."""

    category = ErrorCategory.CONNECTION


class QueryCommandError(QueryError):
    """Raised when the server rejects a command."""

    category = ErrorCategory.COMMAND


class QueryValidationError(QueryError):
    """Raised when operation arguments are invalid."""

    category = ErrorCategory.VALIDATION


class ReportNotFoundError(QueryValidationError):
    """Raised when a report template name is unknown."""
