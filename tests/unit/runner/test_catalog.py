"""
Unit tests for the query catalog.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bookquery.config.settings import CatalogSettings
from bookquery.logging_utils.events import StepCompleted, StepStarted
from bookquery.runner.catalog import build_catalog, run_catalog
from bookquery.tools.base import QueryCommandError, QueryResult, ResultStatus


@pytest.fixture
def catalog_settings():
    """Create catalog settings with the default parameters."""
    return CatalogSettings()


@pytest.fixture
def mock_runner():
    """Create a runner whose every operation succeeds."""
    runner = MagicMock()
    for name in (
        "find_by_field",
        "find_by_comparison",
        "find_compound",
        "project",
        "sorted_scan",
        "paginate",
        "update_field",
        "delete_by_field",
        "run_report",
        "ensure_index",
        "explain",
    ):
        setattr(
            runner,
            name,
            AsyncMock(return_value=QueryResult(operation=name)),
        )
    return runner


@pytest.fixture
def mock_printer():
    """Create a mock result printer."""
    return MagicMock()


@pytest.fixture
def mock_log_manager():
    """Create a mock log manager."""
    manager = MagicMock()
    manager.emit_event = AsyncMock()
    return manager


class TestBuildCatalog:
    """Test catalog construction."""

    def test_step_order(self, catalog_settings):
        """Test that steps run in a fixed order."""
        steps = build_catalog(catalog_settings)

        assert [step.step_id for step in steps] == [
            "find_genre",
            "find_recent",
            "find_author",
            "update_price",
            "delete_title",
            "in_stock_recent",
            "projection",
            "sort_ascending",
            "sort_descending",
            "page_1",
            "page_2",
            "average_price_by_genre",
            "top_authors",
            "books_by_decade",
            "index_title",
            "index_author_year",
            "explain_title",
        ]

    def test_sections(self, catalog_settings):
        """Test that sections appear in order without interleaving."""
        sections = []
        for step in build_catalog(catalog_settings):
            if not sections or sections[-1] != step.section:
                sections.append(step.section)

        assert sections == [
            "Basic CRUD operations",
            "Advanced queries",
            "Aggregation pipelines",
            "Indexing",
        ]

    def test_pages_follow_settings(self):
        """Test that one step is built per configured page."""
        steps = build_catalog(CatalogSettings(pages=[1, 2, 3], page_size=10))

        page_ids = [s.step_id for s in steps if s.step_id.startswith("page_")]
        assert page_ids == ["page_1", "page_2", "page_3"]

    @pytest.mark.asyncio
    async def test_page_steps_bind_page_number(self, catalog_settings, mock_runner):
        """Test that each page step requests its own page."""
        steps = {s.step_id: s for s in build_catalog(catalog_settings)}

        await steps["page_1"].call(mock_runner)
        await steps["page_2"].call(mock_runner)

        calls = [c.args for c in mock_runner.paginate.call_args_list]
        assert calls == [(5, 1), (5, 2)]

    @pytest.mark.asyncio
    async def test_update_step_uses_settings(self, catalog_settings, mock_runner):
        """Test the update step targets the configured title and price."""
        steps = {s.step_id: s for s in build_catalog(catalog_settings)}

        await steps["update_price"].call(mock_runner)

        mock_runner.update_field.assert_called_once_with(
            {"title": catalog_settings.update_title},
            "price",
            catalog_settings.update_price,
        )

    @pytest.mark.asyncio
    async def test_compound_step_filter(self, catalog_settings, mock_runner):
        """Test the in-stock step combines both predicates."""
        steps = {s.step_id: s for s in build_catalog(catalog_settings)}

        await steps["in_stock_recent"].call(mock_runner)

        mock_runner.find_compound.assert_called_once_with(
            {"in_stock": True, "published_year": {"$gt": 2010}}
        )

    def test_index_summary(self, catalog_settings):
        """Test index step summaries."""
        steps = {s.step_id: s for s in build_catalog(catalog_settings)}
        summary = steps["index_title"].summary

        created = QueryResult(
            operation="ensure_index",
            metadata={"index_name": "title_1", "created": True},
        )
        existing = QueryResult(
            operation="ensure_index",
            status=ResultStatus.UNCHANGED,
            metadata={"index_name": "title_1", "created": False},
        )
        assert summary(created) == "Created index: title_1"
        assert summary(existing) == "Index already exists: title_1"


class TestRunCatalog:
    """Test running the catalog."""

    @pytest.mark.asyncio
    async def test_runs_every_step(
        self, catalog_settings, mock_runner, mock_printer, mock_log_manager
    ):
        """Test one result and one printed block per step."""
        steps = build_catalog(catalog_settings)

        results = await run_catalog(
            mock_runner, steps, mock_printer, mock_log_manager, correlation_id="c-1"
        )

        assert len(results) == len(steps)
        assert mock_printer.print_result.call_count == len(steps)
        assert mock_printer.print_section.call_count == 4
        events = [c.args[0] for c in mock_log_manager.emit_event.call_args_list]
        assert len(events) == 2 * len(steps)
        assert isinstance(events[0], StepStarted)
        assert isinstance(events[1], StepCompleted)
        assert events[1].success is True
        assert events[1].status == "ok"

    @pytest.mark.asyncio
    async def test_stops_at_first_error(
        self, catalog_settings, mock_runner, mock_printer, mock_log_manager
    ):
        """Test that a failing step stops the run and is recorded."""
        mock_runner.delete_by_field.side_effect = QueryCommandError(
            "delete rejected", "delete_by_field"
        )
        steps = build_catalog(catalog_settings)
        results = []

        with pytest.raises(QueryCommandError):
            await run_catalog(
                mock_runner,
                steps,
                mock_printer,
                mock_log_manager,
                correlation_id="c-1",
                results=results,
            )

        assert len(results) == 4
        mock_runner.find_compound.assert_not_called()
        last_event = mock_log_manager.emit_event.call_args_list[-1].args[0]
        assert isinstance(last_event, StepCompleted)
        assert last_event.step_id == "delete_title"
        assert last_event.success is False
        assert last_event.error_message == "delete rejected"
