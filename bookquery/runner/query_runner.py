"""
Query runner: the catalog's operations against one open collection.

All filtering, grouping, sorting and index selection is delegated to the
engine. The runner builds the query documents, validates arguments that can
be checked locally, and tags every outcome with a ``ResultStatus``.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from ..tools.base import QueryResult, QueryValidationError, ResultStatus
from ..tools.database.base import IndexSpec, QuerySpec, SortDirection
from ..tools.database.mongodb import MongoDBConnection
from .pipelines import Pipeline, build_pipeline

COMPARISON_OPERATORS = {
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "eq": "$eq",
    "ne": "$ne",
    "in": "$in",
    "nin": "$nin",
}


def page_query(page_size: int, page_number: int) -> QuerySpec:
    """
    Build the query for one page of the collection.

    Pages are numbered from 1. There is no check against the total count:
    a page past the end is simply empty.
    """
    if page_size < 1:
        raise QueryValidationError(f"Page size must be at least 1, got {page_size}")
    if page_number < 1:
        raise QueryValidationError(
            f"Page number must be at least 1, got {page_number}"
        )
    return QuerySpec(skip=page_size * (page_number - 1), limit=page_size)


def comparison_filter(field: str, op: str, value: Any) -> Dict[str, Any]:
    """Build ``{field: {$op: value}}`` for a named comparison operator."""
    operator = COMPARISON_OPERATORS.get(op.lower())
    if operator is None:
        raise QueryValidationError(
            f"Unsupported comparison operator '{op}'. "
            f"Expected one of: {', '.join(COMPARISON_OPERATORS)}"
        )
    if operator in ("$in", "$nin") and not isinstance(value, (list, tuple, set)):
        raise QueryValidationError(f"Operator '{op}' needs a list of values")
    if isinstance(value, (tuple, set)):
        value = list(value)
    return {field: {operator: value}}


class QueryRunner:
    """Runs queries, reports and index commands against one collection."""

    def __init__(self, connection: MongoDBConnection):
        self.connection = connection
        self.logger = logging.getLogger(
            f"{self.__class__.__name__}:{connection.connection_id[:8]}"
        )

    async def find_by_field(self, field: str, value: Any) -> QueryResult:
        """Documents whose ``field`` equals ``value``."""
        return await self._find(QuerySpec(filter={field: value}), "find_by_field")

    async def find_by_comparison(self, field: str, op: str, value: Any) -> QueryResult:
        """Documents where ``field`` compares to ``value`` with ``op``."""
        spec = QuerySpec(filter=comparison_filter(field, op, value))
        return await self._find(spec, "find_by_comparison")

    async def find_compound(self, filters: Dict[str, Any]) -> QueryResult:
        """
        Documents matching every predicate in ``filters``.

        An empty mapping is the conjunction of no predicates and matches
        every document.
        """
        return await self._find(QuerySpec(filter=dict(filters)), "find_compound")

    async def project(
        self, fields: Iterable[str], filter_query: Optional[Dict[str, Any]] = None
    ) -> QueryResult:
        """Documents reduced to ``fields``; ``_id`` only when listed."""
        field_list = list(dict.fromkeys(fields))
        if not field_list:
            raise QueryValidationError("Projection needs at least one field")
        spec = QuerySpec(filter=filter_query or {}, projection=field_list)
        return await self._find(spec, "project")

    async def sorted_scan(
        self, field: str, direction: Union[str, int, SortDirection]
    ) -> QueryResult:
        """Every document, sorted on ``field``."""
        spec = self._build_spec(sort=[(field, SortDirection.parse(direction))])
        return await self._find(spec, "sorted_scan")

    async def paginate(self, page_size: int, page_number: int) -> QueryResult:
        """One page of the collection in natural order."""
        result = await self._find(page_query(page_size, page_number), "paginate")
        result.metadata.update({"page_size": page_size, "page_number": page_number})
        return result

    async def update_field(
        self,
        match_filter: Dict[str, Any],
        field: str,
        new_value: Any,
        many: bool = False,
    ) -> QueryResult:
        """
        Set ``field`` to ``new_value`` on the first matching document.

        With ``many`` every match is updated. A filter that matches nothing
        yields ``rows_affected == 0`` and ``NO_MATCH``, a match whose value was
        already current yields ``UNCHANGED``.
        """
        result = await self.connection.update_documents(
            match_filter,
            {"$set": {field: new_value}},
            many=many,
            operation="update_field",
        )
        self._log_mutation(result, match_filter)
        return result

    async def delete_by_field(
        self, field: str, value: Any, many: bool = False
    ) -> QueryResult:
        """Delete the first document whose ``field`` equals ``value``."""
        match_filter = {field: value}
        result = await self.connection.delete_documents(
            match_filter, many=many, operation="delete_by_field"
        )
        self._log_mutation(result, match_filter)
        return result

    async def aggregate(self, pipeline: Pipeline) -> QueryResult:
        """Run an aggregation pipeline unchanged."""
        if not isinstance(pipeline, list):
            raise QueryValidationError("Aggregation pipeline must be a list of stages")
        result = await self.connection.aggregate_documents(pipeline)
        self._log_read(result)
        return result

    async def run_report(
        self, name: str, version: Optional[int] = None, **params: Any
    ) -> QueryResult:
        """Build a named report template and run it."""
        pipeline = build_pipeline(name, version, **params)
        result = await self.connection.aggregate_documents(
            pipeline, operation=f"report:{name}"
        )
        result.metadata["report"] = name
        self._log_read(result)
        return result

    async def ensure_index(self, spec: Union[IndexSpec, Dict[str, Any]]) -> QueryResult:
        """
        Create an index unless an equivalent one exists.

        The index name is in ``metadata["index_name"]`` either way, so calling
        this twice with the same fields returns the same name.
        """
        if not isinstance(spec, IndexSpec):
            try:
                spec = IndexSpec(fields=spec)
            except ValidationError as e:
                raise QueryValidationError(f"Invalid index specification: {e}") from e
        result = await self.connection.create_index(spec, operation="ensure_index")
        self.logger.info(
            "Index ensured",
            extra={
                "operation": "ensure_index",
                "index_name": result.metadata.get("index_name"),
                "index_created": result.metadata.get("created"),
            },
        )
        return result

    async def explain(self, filter_query: Dict[str, Any]) -> QueryResult:
        """Execution statistics of a find with ``filter_query``."""
        return await self.connection.explain_find(filter_query, operation="explain")

    def _build_spec(self, **kwargs: Any) -> QuerySpec:
        try:
            return QuerySpec(**kwargs)
        except ValidationError as e:
            raise QueryValidationError(f"Invalid query: {e}") from e

    async def _find(self, spec: QuerySpec, operation: str) -> QueryResult:
        result = await self.connection.find_documents(spec, operation=operation)
        self._log_read(result)
        return result

    def _log_read(self, result: QueryResult) -> None:
        self.logger.debug(
            "Query completed",
            extra={
                "operation": result.operation,
                "status": result.status.value,
                "rows_returned": result.rows_returned,
                "execution_time": result.execution_time,
            },
        )

    def _log_mutation(self, result: QueryResult, match_filter: Dict[str, Any]) -> None:
        extra = {
            "operation": result.operation,
            "status": result.status.value,
            "rows_matched": result.rows_matched,
            "rows_affected": result.rows_affected,
            "filter": match_filter,
        }
        # A write that matches nothing is a valid outcome but usually a typo
        if result.status == ResultStatus.NO_MATCH:
            self.logger.warning("Write matched no documents", extra=extra)
        else:
            self.logger.info("Write completed", extra=extra)
