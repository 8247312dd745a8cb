"""
Command-line interface for bookquery.

``bookquery run`` executes the whole query catalog against the configured
collection; the other commands run a single operation in its own session.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, Dict, Tuple

import click
from pydantic import ValidationError

from .. import __version__
from ..config.settings import AppSettings, get_settings
from ..logging_utils.formatters import configure_logging
from ..logging_utils.result_printer import ResultPrinter
from ..runner import QueryRunner, list_templates, query_session
from ..runner import run as run_catalog_session
from ..tools.base import QueryError, QueryResult
from ..tools.database.base import SortDirection

logger = logging.getLogger("bookquery.cli")


def parse_value(raw: str) -> Any:
    """Interpret a command-line value as JSON when possible, else as a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _execute(ctx: click.Context, operation: Callable[[], Awaitable[None]]) -> None:
    """Run a coroutine, turning any ``QueryError`` into exit status 1."""
    printer: ResultPrinter = ctx.obj["printer"]
    try:
        asyncio.run(operation())
    except QueryError as e:
        logger.error(
            "Operation failed",
            extra={
                "error_category": e.category.value,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "failed_operation": e.operation,
            },
        )
        printer.print_error(e)
        sys.exit(1)


def _single(
    ctx: click.Context,
    title: str,
    call: Callable[[QueryRunner], Awaitable[QueryResult]],
) -> None:
    """Run one runner operation in its own session and print its block."""
    settings: AppSettings = ctx.obj["settings"]
    printer: ResultPrinter = ctx.obj["printer"]

    async def _run():
        async with query_session(settings.connection_config()) as runner:
            result = await call(runner)
        printer.print_result(title, result)

    _execute(ctx, _run)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, verbose):
    """bookquery - query and report on a MongoDB book collection"""
    try:
        settings = get_settings()
    except ValidationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)

    configure_logging(settings.monitoring, verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["printer"] = ResultPrinter()


@cli.command()
@click.pass_context
def run(ctx):
    """Run the full query catalog.

    Examples:
      bookquery run
      MONGODB_URL=mongodb://db:27017 CATALOG_GENRE=Fantasy bookquery run
    """
    settings: AppSettings = ctx.obj["settings"]

    async def _run():
        report = await run_catalog_session(settings, ctx.obj["printer"])
        click.echo(
            f"\n✅ {len(report.results)} operations completed "
            f"in {report.duration_seconds:.2f} seconds"
        )

    _execute(ctx, _run)


@cli.command()
@click.argument("field")
@click.argument("value")
@click.option(
    "--op",
    default="eq",
    show_default=True,
    help="Comparison operator (eq, ne, gt, gte, lt, lte, in, nin)",
)
@click.pass_context
def find(ctx, field, value, op):
    """Find documents where FIELD compares to VALUE.

    VALUE is parsed as JSON when it can be, so 2000 is a number and
    true is a boolean.

    Examples:
      bookquery find genre Fiction
      bookquery find published_year 2000 --op gt
    """
    parsed = parse_value(value)
    if op == "eq":
        _single(ctx, f"{field} == {value}", lambda r: r.find_by_field(field, parsed))
    else:
        _single(
            ctx,
            f"{field} {op} {value}",
            lambda r: r.find_by_comparison(field, op, parsed),
        )


@cli.command()
@click.argument("field")
@click.option(
    "--direction",
    "-d",
    type=click.Choice(["asc", "desc"]),
    default="asc",
    show_default=True,
)
@click.pass_context
def sort(ctx, field, direction):
    """List every document sorted on FIELD."""
    _single(
        ctx,
        f"Sorted by {field} {direction}",
        lambda r: r.sorted_scan(field, SortDirection.parse(direction)),
    )


@cli.command()
@click.argument("page_size", type=int)
@click.argument("page_number", type=int)
@click.pass_context
def page(ctx, page_size, page_number):
    """Show page PAGE_NUMBER (from 1) with PAGE_SIZE documents per page."""
    _single(
        ctx,
        f"Page {page_number} ({page_size} per page)",
        lambda r: r.paginate(page_size, page_number),
    )


def _parse_params(params: Tuple[str, ...]) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    for item in params:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{item}'")
        parsed[key] = parse_value(raw)
    return parsed


@cli.command()
@click.argument("name")
@click.option("--version", "template_version", type=int, help="Template version")
@click.option(
    "--param", "-p", multiple=True, help="Template parameter as KEY=VALUE"
)
@click.pass_context
def report(ctx, name, template_version, param):
    """Run the aggregation report NAME.

    Examples:
      bookquery report average_price_by_genre
      bookquery report top_authors -p limit=3
    """
    params = _parse_params(param)
    _single(
        ctx,
        name,
        lambda r: r.run_report(name, template_version, **params),
    )


@cli.command()
def reports():
    """List available aggregation reports."""
    click.echo("📊 Available Reports:")
    click.echo()
    for template in list_templates():
        click.echo(f"  {template.name} (v{template.version})")
        click.echo(f"    {template.description}")
        defaults = ", ".join(f"{k}={v}" for k, v in template.defaults.items())
        click.echo(f"    Parameters: {defaults}")
        click.echo()


@cli.command()
@click.argument("field")
@click.argument("value")
@click.pass_context
def explain(ctx, field, value):
    """Show execution statistics for a FIELD == VALUE query."""
    parsed = parse_value(value)
    _single(
        ctx,
        f"Execution stats for {field} == {value}",
        lambda r: r.explain({field: parsed}),
    )


@cli.command()
@click.pass_context
def config(ctx):
    """Show the active configuration with secrets masked."""
    settings: AppSettings = ctx.obj["settings"]
    click.echo(json.dumps(settings.get_safe_dict(), indent=2, default=str))


@cli.command()
def version():
    """Show version information."""
    click.echo("bookquery - MongoDB book collection query tool")
    click.echo(f"Version: {__version__}")


if __name__ == "__main__":
    cli()
