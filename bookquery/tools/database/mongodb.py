"""
MongoDB connection implementation.

Async connection to a single collection with Motor (async PyMongo). Every
command is timed, logged and wrapped in a ``QueryResult``; driver exceptions
are translated into the ``QueryError`` hierarchy here and nowhere else.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from bson import Decimal128, ObjectId
from bson.errors import BSONError
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from ..base import (
    QueryCommandError,
    QueryConnectionError,
    QueryError,
    QueryResult,
    QueryValidationError,
    ResultStatus,
)
from .base import (
    ConnectionConfig,
    ConnectionState,
    DatabaseConnection,
    IndexSpec,
    QuerySpec,
)


class MongoDBConnection(DatabaseConnection):
    """MongoDB connection bound to one database and collection."""

    def __init__(self, config: ConnectionConfig):
        super().__init__(config)
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish MongoDB connection and verify it with ``ping``."""
        try:
            self.state = ConnectionState.CONNECTING
            self.logger.debug(f"Connecting to MongoDB at {self.config.masked_uri}")

            timeout_ms = int(self.config.connect_timeout * 1000)
            self._client = AsyncIOMotorClient(
                self.config.uri,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
                appname=self.config.app_name,
            )
            self._database = self._client[self.config.database]

            await self._client.admin.command("ping")

            self.state = ConnectionState.CONNECTED
            self.logger.info(
                "Connected to MongoDB",
                extra={
                    "connection_id": self.connection_id,
                    "database": self.config.database,
                    "collection": self.config.collection,
                },
            )

        except Exception as e:
            self.state = ConnectionState.ERROR
            self.logger.error(f"Failed to connect to MongoDB: {e}")
            if self._client is not None:
                self._client.close()
            self._client = None
            self._database = None
            raise QueryConnectionError(f"MongoDB connection failed: {e}") from e

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self._client is None:
            return

        self.state = ConnectionState.CLOSING
        try:
            self._client.close()
            self.logger.info(
                "Disconnected from MongoDB",
                extra={"connection_id": self.connection_id},
            )
        finally:
            self._client = None
            self._database = None
            self.state = ConnectionState.DISCONNECTED

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """The configured collection."""
        if self._database is None or not self.is_connected:
            raise QueryConnectionError("Not connected to database")
        return self._database[self.config.collection]

    @asynccontextmanager
    async def _command(self, operation: str) -> AsyncIterator[dict[str, Any]]:
        """Time a command and translate driver errors."""
        collection = self.collection
        timing: dict[str, Any] = {"collection": collection, "start": time.time()}

        try:
            yield timing
        except QueryError:
            raise
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            self._log_failure(operation, e, timing["start"])
            raise QueryConnectionError(
                f"{operation} failed: connection lost: {e}", operation
            ) from e
        except OperationFailure as e:
            self._log_failure(operation, e, timing["start"])
            raise QueryCommandError(
                f"{operation} rejected by server: {e.details or e}", operation
            ) from e
        except PyMongoError as e:
            self._log_failure(operation, e, timing["start"])
            raise QueryCommandError(f"{operation} failed: {e}", operation) from e
        except (BSONError, OverflowError) as e:
            # Raised while encoding arguments, before anything reaches the server
            self._log_failure(operation, e, timing["start"])
            raise QueryValidationError(
                f"{operation} failed: value cannot be encoded as BSON: {e}",
                operation,
            ) from e

    def _log_failure(self, operation: str, error: Exception, start: float) -> None:
        self.logger.error(
            "MongoDB command failed",
            extra={
                "connection_id": self.connection_id,
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "duration_seconds": time.time() - start,
            },
        )

    def _metadata(self, **extra: Any) -> dict[str, Any]:
        return {
            "collection": self.config.collection,
            "connection_id": self.connection_id,
            **extra,
        }

    async def find_documents(
        self, spec: QuerySpec, operation: str = "find"
    ) -> QueryResult:
        """Find documents in the collection."""
        async with self._command(operation) as ctx:
            cursor = ctx["collection"].find(spec.filter, spec.mongo_projection())
            sort = spec.mongo_sort()
            if sort:
                cursor = cursor.sort(sort)
            if spec.skip:
                cursor = cursor.skip(spec.skip)
            if spec.limit:
                cursor = cursor.limit(spec.limit)

            documents = await cursor.to_list(length=spec.limit)
            serialized_docs = [self._serialize_document(doc) for doc in documents]

            return QueryResult(
                operation=operation,
                status=ResultStatus.OK if serialized_docs else ResultStatus.NO_MATCH,
                rows_returned=len(serialized_docs),
                data=serialized_docs,
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(
                    filter=spec.filter, skip=spec.skip, limit=spec.limit
                ),
            )

    async def update_documents(
        self,
        filter_query: dict[str, Any],
        update_query: dict[str, Any],
        many: bool = False,
        operation: str = "update",
    ) -> QueryResult:
        """Update one document, or every match when ``many`` is set."""
        async with self._command(operation) as ctx:
            collection = ctx["collection"]
            if many:
                result = await collection.update_many(filter_query, update_query)
            else:
                result = await collection.update_one(filter_query, update_query)

            if result.matched_count == 0:
                status = ResultStatus.NO_MATCH
            elif result.modified_count == 0:
                status = ResultStatus.UNCHANGED
            else:
                status = ResultStatus.OK

            return QueryResult(
                operation=operation,
                status=status,
                rows_matched=result.matched_count,
                rows_affected=result.modified_count,
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(filter=filter_query, many=many),
            )

    async def delete_documents(
        self,
        filter_query: dict[str, Any],
        many: bool = False,
        operation: str = "delete",
    ) -> QueryResult:
        """Delete one document, or every match when ``many`` is set."""
        async with self._command(operation) as ctx:
            collection = ctx["collection"]
            if many:
                result = await collection.delete_many(filter_query)
            else:
                result = await collection.delete_one(filter_query)

            return QueryResult(
                operation=operation,
                status=(
                    ResultStatus.OK if result.deleted_count else ResultStatus.NO_MATCH
                ),
                rows_matched=result.deleted_count,
                rows_affected=result.deleted_count,
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(filter=filter_query, many=many),
            )

    async def aggregate_documents(
        self, pipeline: list[dict[str, Any]], operation: str = "aggregate"
    ) -> QueryResult:
        """Execute an aggregation pipeline."""
        async with self._command(operation) as ctx:
            cursor = ctx["collection"].aggregate(pipeline)
            documents = await cursor.to_list(length=None)
            serialized_docs = [self._serialize_document(doc) for doc in documents]

            return QueryResult(
                operation=operation,
                status=ResultStatus.OK if serialized_docs else ResultStatus.NO_MATCH,
                rows_returned=len(serialized_docs),
                data=serialized_docs,
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(pipeline_stages=len(pipeline)),
            )

    async def create_index(
        self, spec: IndexSpec, operation: str = "create_index"
    ) -> QueryResult:
        """Create an index unless one with the same key signature exists."""
        async with self._command(operation) as ctx:
            collection = ctx["collection"]
            signature = spec.key_signature()

            existing = await collection.index_information()
            for name, info in existing.items():
                keys = [(field, direction) for field, direction in info["key"]]
                if keys == signature:
                    return QueryResult(
                        operation=operation,
                        status=ResultStatus.UNCHANGED,
                        execution_time=time.time() - ctx["start"],
                        metadata=self._metadata(index_name=name, created=False),
                    )

            index_name = await collection.create_index(signature)
            return QueryResult(
                operation=operation,
                rows_affected=1,
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(index_name=index_name, created=True),
            )

    async def explain_find(
        self, filter_query: dict[str, Any], operation: str = "explain"
    ) -> QueryResult:
        """Run ``explain`` on a find at ``executionStats`` verbosity."""
        async with self._command(operation) as ctx:
            database = ctx["collection"].database
            explanation = await database.command(
                {
                    "explain": {
                        "find": self.config.collection,
                        "filter": filter_query,
                    },
                    "verbosity": "executionStats",
                }
            )
            stats = self._serialize_document(explanation.get("executionStats", {}))

            return QueryResult(
                operation=operation,
                rows_returned=1,
                data=[stats],
                execution_time=time.time() - ctx["start"],
                metadata=self._metadata(filter=filter_query),
            )

    def _serialize_document(self, doc: Any) -> Any:
        """Serialize MongoDB values for display and JSON output."""
        if isinstance(doc, dict):
            return {key: self._serialize_document(value) for key, value in doc.items()}
        if isinstance(doc, list):
            return [self._serialize_document(item) for item in doc]
        if isinstance(doc, ObjectId):
            return str(doc)
        if isinstance(doc, Decimal128):
            return doc.to_decimal()
        return doc
