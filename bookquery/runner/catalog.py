"""
The fixed query catalog.

Steps run in a fixed order, grouped into sections: basic CRUD, advanced
queries, aggregation reports and indexing. Every step completes before the
next one starts; the first error stops the run.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional
from uuid import uuid4

from ..config.settings import CatalogSettings
from ..logging_utils.events import StepCompleted, StepStarted
from ..logging_utils.log_manager import LogManager
from ..logging_utils.result_printer import ResultPrinter
from ..tools.base import QueryError, QueryResult
from ..tools.database.base import IndexSpec, SortDirection
from .query_runner import QueryRunner

StepCall = Callable[[QueryRunner], Awaitable[QueryResult]]


class BookField(str, Enum):
    """Field names of a book document."""

    TITLE = "title"
    AUTHOR = "author"
    GENRE = "genre"
    PUBLISHED_YEAR = "published_year"
    PRICE = "price"
    IN_STOCK = "in_stock"


@dataclass(frozen=True)
class CatalogStep:
    """One operation of the catalog."""

    step_id: str
    section: str
    title: str
    call: StepCall
    summary: Optional[Callable[[QueryResult], str]] = None


def build_catalog(settings: CatalogSettings) -> List[CatalogStep]:
    """Build the ordered catalog from its parameters."""
    s = settings
    crud = "Basic CRUD operations"
    advanced = "Advanced queries"
    aggregation = "Aggregation pipelines"
    indexing = "Indexing"

    steps = [
        CatalogStep(
            "find_genre",
            crud,
            f"{s.genre} books",
            lambda r: r.find_by_field(BookField.GENRE.value, s.genre),
        ),
        CatalogStep(
            "find_recent",
            crud,
            f"Books published after {s.published_after}",
            lambda r: r.find_by_comparison(
                BookField.PUBLISHED_YEAR.value, "gt", s.published_after
            ),
        ),
        CatalogStep(
            "find_author",
            crud,
            f"Books by {s.author}",
            lambda r: r.find_by_field(BookField.AUTHOR.value, s.author),
        ),
        CatalogStep(
            "update_price",
            crud,
            f"Update price of '{s.update_title}' to {s.update_price}",
            lambda r: r.update_field(
                {BookField.TITLE.value: s.update_title},
                BookField.PRICE.value,
                s.update_price,
            ),
            lambda res: f"{res.rows_affected} document(s) modified",
        ),
        CatalogStep(
            "delete_title",
            crud,
            f"Delete '{s.delete_title}'",
            lambda r: r.delete_by_field(BookField.TITLE.value, s.delete_title),
            lambda res: f"{res.rows_affected} document(s) deleted",
        ),
        CatalogStep(
            "in_stock_recent",
            advanced,
            f"In-stock books published after {s.in_stock_published_after}",
            lambda r: r.find_compound(
                {
                    BookField.IN_STOCK.value: True,
                    BookField.PUBLISHED_YEAR.value: {
                        "$gt": s.in_stock_published_after
                    },
                }
            ),
        ),
        CatalogStep(
            "projection",
            advanced,
            f"Books with only {', '.join(s.projection_fields)}",
            lambda r: r.project(s.projection_fields),
        ),
        CatalogStep(
            "sort_ascending",
            advanced,
            f"Books sorted by {s.sort_field} ascending",
            lambda r: r.sorted_scan(s.sort_field, SortDirection.ASCENDING),
        ),
        CatalogStep(
            "sort_descending",
            advanced,
            f"Books sorted by {s.sort_field} descending",
            lambda r: r.sorted_scan(s.sort_field, SortDirection.DESCENDING),
        ),
    ]

    for page in s.pages:
        steps.append(
            CatalogStep(
                f"page_{page}",
                advanced,
                f"Page {page} ({s.page_size} books per page)",
                # Bind the loop variable now
                lambda r, page=page: r.paginate(s.page_size, page),
            )
        )

    steps.extend(
        [
            CatalogStep(
                "average_price_by_genre",
                aggregation,
                "Average price by genre",
                lambda r: r.run_report("average_price_by_genre"),
            ),
            CatalogStep(
                "top_authors",
                aggregation,
                "Author with the most books",
                lambda r: r.run_report("top_authors", limit=s.top_authors_limit),
            ),
            CatalogStep(
                "books_by_decade",
                aggregation,
                "Books grouped by publication decade",
                lambda r: r.run_report("books_by_decade"),
            ),
            CatalogStep(
                "index_title",
                indexing,
                "Index on title",
                lambda r: r.ensure_index(
                    IndexSpec(fields=[(BookField.TITLE.value, 1)])
                ),
                _index_summary,
            ),
            CatalogStep(
                "index_author_year",
                indexing,
                "Compound index on author and published_year",
                lambda r: r.ensure_index(
                    IndexSpec(
                        fields=[
                            (BookField.AUTHOR.value, 1),
                            (BookField.PUBLISHED_YEAR.value, -1),
                        ]
                    )
                ),
                _index_summary,
            ),
            CatalogStep(
                "explain_title",
                indexing,
                f"Execution stats for title == '{s.explain_title}'",
                lambda r: r.explain({BookField.TITLE.value: s.explain_title}),
            ),
        ]
    )
    return steps


def _index_summary(result: QueryResult) -> str:
    name = result.metadata.get("index_name")
    if result.metadata.get("created"):
        return f"Created index: {name}"
    return f"Index already exists: {name}"


async def run_catalog(
    runner: QueryRunner,
    steps: List[CatalogStep],
    printer: ResultPrinter,
    log_manager: LogManager,
    correlation_id: str,
    run_id: Optional[str] = None,
    results: Optional[List[QueryResult]] = None,
) -> List[QueryResult]:
    """
    Run every step in order and print one block per step.

    Results are appended to ``results`` as steps complete, so a caller
    passing its own list still sees the completed steps after a failure. A
    ``QueryError`` from any step is re-raised after its step-completed event
    has been recorded; no later step runs.
    """
    run_id = run_id or str(uuid4())
    if results is None:
        results = []
    section: Optional[str] = None

    for step in steps:
        if step.section != section:
            section = step.section
            printer.print_section(section)

        await log_manager.emit_event(
            StepStarted(
                correlation_id=correlation_id,
                run_id=run_id,
                step_id=step.step_id,
                step_name=step.title,
            )
        )
        start_time = time.time()

        try:
            result = await step.call(runner)
        except QueryError as e:
            await log_manager.emit_event(
                StepCompleted(
                    correlation_id=correlation_id,
                    run_id=run_id,
                    step_id=step.step_id,
                    step_name=step.title,
                    success=False,
                    duration_seconds=time.time() - start_time,
                    error_message=str(e),
                )
            )
            raise

        await log_manager.emit_event(
            StepCompleted(
                correlation_id=correlation_id,
                run_id=run_id,
                step_id=step.step_id,
                step_name=step.title,
                success=True,
                status=result.status.value,
                duration_seconds=time.time() - start_time,
            )
        )

        summary = step.summary(result) if step.summary else None
        printer.print_result(step.title, result, summary)
        results.append(result)

    return results
