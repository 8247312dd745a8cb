"""
Run lifecycle: one connection per run, released on every exit path.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from ..config.settings import AppSettings
from ..logging_utils.events import RunCompleted, RunStarted
from ..logging_utils.log_manager import LogManager
from ..logging_utils.result_printer import ResultPrinter
from ..tools.base import QueryError, QueryResult
from ..tools.database.base import ConnectionConfig
from ..tools.database.mongodb import MongoDBConnection
from .catalog import build_catalog, run_catalog
from .query_runner import QueryRunner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def query_session(config: ConnectionConfig) -> AsyncIterator[QueryRunner]:
    """
    Open a connection, yield a runner bound to it, and always close it.

    The connection is closed exactly once, whether the body returns or
    raises. A failed connect raises ``QueryConnectionError`` before the body
    runs; nothing is left open in that case.
    """
    connection = MongoDBConnection(config)
    await connection.connect()
    try:
        yield QueryRunner(connection)
    finally:
        await connection.disconnect()


@dataclass
class RunReport:
    """Outcome of a catalog run."""

    run_id: str
    results: List[QueryResult] = field(default_factory=list)
    duration_seconds: float = 0.0


async def run(
    settings: AppSettings,
    printer: Optional[ResultPrinter] = None,
    log_manager: Optional[LogManager] = None,
) -> RunReport:
    """
    Run the whole catalog in one session.

    Errors are not handled here: a ``QueryError`` propagates to the caller
    after the connection is released and the run-completed event is written.
    """
    printer = printer or ResultPrinter()
    log_manager = log_manager or LogManager(settings.monitoring.event_log_dir)
    config = settings.connection_config()
    steps = build_catalog(settings.catalog)

    correlation_id = str(uuid.uuid4())
    report = RunReport(run_id=str(uuid.uuid4()))
    start_time = time.time()

    await log_manager.emit_event(
        RunStarted(
            correlation_id=correlation_id,
            run_id=report.run_id,
            database=config.database,
            collection=config.collection,
            total_steps=len(steps),
        )
    )
    logger.info(
        "Catalog run started",
        extra={
            "correlation_id": correlation_id,
            "run_id": report.run_id,
            "target": config.masked_uri,
            "total_steps": len(steps),
        },
    )

    error: Optional[QueryError] = None
    try:
        async with query_session(config) as runner:
            printer.print_connected(f"{config.database}.{config.collection}")
            try:
                await run_catalog(
                    runner,
                    steps,
                    printer,
                    log_manager,
                    correlation_id=correlation_id,
                    run_id=report.run_id,
                    results=report.results,
                )
            finally:
                printer.print_disconnected()
    except QueryError as e:
        error = e
        raise
    finally:
        report.duration_seconds = time.time() - start_time
        await log_manager.emit_event(
            RunCompleted(
                correlation_id=correlation_id,
                run_id=report.run_id,
                success=error is None,
                duration_seconds=report.duration_seconds,
                steps_completed=len(report.results),
                error_message=str(error) if error else None,
            )
        )

    logger.info(
        "Catalog run completed",
        extra={
            "correlation_id": correlation_id,
            "run_id": report.run_id,
            "steps_completed": len(report.results),
            "duration_seconds": report.duration_seconds,
        },
    )
    return report
