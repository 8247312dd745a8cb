"""
Query runner, report templates and the fixed query catalog.
"""

from .catalog import BookField, CatalogStep, build_catalog, run_catalog
from .pipelines import (
    PipelineTemplate,
    build_pipeline,
    get_template,
    list_templates,
)
from .query_runner import QueryRunner, comparison_filter, page_query
from .session import RunReport, query_session, run

__all__ = [
    "BookField",
    "CatalogStep",
    "PipelineTemplate",
    "QueryRunner",
    "RunReport",
    "build_catalog",
    "build_pipeline",
    "comparison_filter",
    "get_template",
    "list_templates",
    "page_query",
    "query_session",
    "run",
    "run_catalog",
]
