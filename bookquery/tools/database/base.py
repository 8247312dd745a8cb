"""
Base abstractions for the database connection layer.

This module provides the connection configuration, the query and index
specifications handed to the engine, and the abstract connection that owns
the lifetime of the underlying client.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union
from urllib.parse import urlsplit, urlunsplit
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..base import QueryValidationError

IDENTITY_FIELD = "_id"


class ConnectionState(Enum):
    """Database connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSING = "closing"


class SortDirection(int, Enum):
    """Sort and index key direction."""

    ASCENDING = 1
    DESCENDING = -1

    @classmethod
    def parse(cls, value: Union[str, int, "SortDirection"]) -> "SortDirection":
        """Parse ``asc``/``desc``, ``1``/``-1`` or an existing direction."""
        if isinstance(value, SortDirection):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("asc", "ascending", "1"):
                return cls.ASCENDING
            if lowered in ("desc", "descending", "-1"):
                return cls.DESCENDING
        elif isinstance(value, int) and value in (1, -1):
            return cls(value)
        raise QueryValidationError(f"Invalid sort direction: {value!r}")


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection target for a single collection."""

    uri: str
    database: str
    collection: str
    connect_timeout: float = 5.0
    app_name: str = "bookquery"

    @property
    def masked_uri(self) -> str:
        """URI with any embedded password replaced."""
        parts = urlsplit(self.uri)
        if parts.password is None:
            return self.uri
        userinfo, _, hostinfo = parts.netloc.rpartition("@")
        username = userinfo.split(":", 1)[0]
        netloc = f"{username}:***@{hostinfo}"
        return urlunsplit(
            (parts.scheme, netloc, parts.path, parts.query, parts.fragment)
        )


def _parse_key_list(value: Any) -> Any:
    """Accept a mapping or a list of pairs and normalize directions."""
    if value is None:
        return value
    if isinstance(value, dict):
        value = list(value.items())
    return [(field, SortDirection.parse(direction)) for field, direction in value]


class QuerySpec(BaseModel):
    """A find query: filter, projection, sort and page window."""

    filter: dict[str, Any] = Field(default_factory=dict)
    projection: Optional[list[str]] = None
    sort: Optional[list[tuple[str, SortDirection]]] = None
    skip: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, gt=0)

    @field_validator("sort", mode="before")
    @classmethod
    def parse_sort(cls, v):
        """Parse sort keys from a mapping or a list of pairs."""
        return _parse_key_list(v)

    def mongo_projection(self) -> Optional[dict[str, int]]:
        """Projection document with the identity field excluded unless asked for."""
        if self.projection is None:
            return None
        projection = {field: 1 for field in self.projection}
        if IDENTITY_FIELD not in projection:
            projection[IDENTITY_FIELD] = 0
        return projection

    def mongo_sort(self) -> Optional[list[tuple[str, int]]]:
        """Sort keys as plain ``(field, 1|-1)`` pairs."""
        if not self.sort:
            return None
        return [(field, direction.value) for field, direction in self.sort]


class IndexSpec(BaseModel):
    """Ordered index key specification."""

    fields: list[tuple[str, SortDirection]]

    @field_validator("fields", mode="before")
    @classmethod
    def parse_fields(cls, v):
        """Parse index keys and require at least one."""
        parsed = _parse_key_list(v)
        if not parsed:
            raise ValueError("Index specification needs at least one field")
        return parsed

    def key_signature(self) -> list[tuple[str, int]]:
        """Ordered key list identifying equivalent indexes."""
        return [(field, direction.value) for field, direction in self.fields]


class DatabaseConnection(ABC):
    """Abstract base class for database connections."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.connection_id = str(uuid4())
        self.state = ConnectionState.DISCONNECTED
        self.logger = logging.getLogger(
            f"{self.__class__.__name__}:{self.connection_id[:8]}"
        )

    @abstractmethod
    async def connect(self) -> None:
        """Establish database connection."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close database connection."""

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self.state == ConnectionState.CONNECTED
