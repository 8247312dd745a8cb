"""
Named, versioned aggregation report templates.

Each template builds a pipeline from field names, so the same report can run
against a collection whose fields are named differently. The pipelines are
handed to the engine unchanged; grouping and sorting happen server side.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..tools.base import QueryValidationError, ReportNotFoundError

Pipeline = List[Dict[str, Any]]


@dataclass(frozen=True)
class PipelineTemplate:
    """A reusable aggregation pipeline with default parameters."""

    name: str
    version: int
    description: str
    builder: Callable[..., Pipeline]
    defaults: Dict[str, Any] = field(default_factory=dict)

    def build(self, **params: Any) -> Pipeline:
        """Build the pipeline, overriding defaults with ``params``."""
        unknown = sorted(set(params) - set(self.defaults))
        if unknown:
            raise QueryValidationError(
                f"Unknown parameters for report '{self.name}': {', '.join(unknown)}"
            )
        return self.builder(**{**self.defaults, **params})


def _average_price_by_genre(group_field: str, value_field: str) -> Pipeline:
    return [
        {
            "$group": {
                "_id": f"${group_field}",
                "averagePrice": {"$avg": f"${value_field}"},
                "count": {"$sum": 1},
            }
        },
        {"$sort": {"averagePrice": -1}},
    ]


def _top_authors(group_field: str, limit: int) -> Pipeline:
    if limit < 1:
        raise QueryValidationError("Report limit must be at least 1")
    return [
        {"$group": {"_id": f"${group_field}", "bookCount": {"$sum": 1}}},
        {"$sort": {"bookCount": -1}},
        {"$limit": limit},
    ]


def _books_by_decade(year_field: str, bucket_size: int) -> Pipeline:
    if bucket_size < 1:
        raise QueryValidationError("Bucket size must be at least 1")
    return [
        {
            "$project": {
                "decade": {
                    "$toInt": {
                        "$multiply": [
                            {"$floor": {"$divide": [f"${year_field}", bucket_size]}},
                            bucket_size,
                        ]
                    }
                }
            }
        },
        {"$group": {"_id": "$decade", "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ]


_TEMPLATES: Dict[str, Dict[int, PipelineTemplate]] = {}


def register_template(template: PipelineTemplate) -> None:
    """Add a template to the lookup table."""
    _TEMPLATES.setdefault(template.name, {})[template.version] = template


register_template(
    PipelineTemplate(
        name="average_price_by_genre",
        version=1,
        description="Average price and book count per genre, highest first",
        builder=_average_price_by_genre,
        defaults={"group_field": "genre", "value_field": "price"},
    )
)
register_template(
    PipelineTemplate(
        name="top_authors",
        version=1,
        description="Authors ranked by number of books",
        builder=_top_authors,
        defaults={"group_field": "author", "limit": 1},
    )
)
register_template(
    PipelineTemplate(
        name="books_by_decade",
        version=1,
        description="Book count per publication decade, oldest first",
        builder=_books_by_decade,
        defaults={"year_field": "published_year", "bucket_size": 10},
    )
)


def get_template(name: str, version: Optional[int] = None) -> PipelineTemplate:
    """Look up a template, defaulting to its latest version."""
    versions = _TEMPLATES.get(name)
    if not versions:
        raise ReportNotFoundError(f"Unknown report: {name}")
    if version is None:
        return versions[max(versions)]
    if version not in versions:
        raise ReportNotFoundError(f"Unknown version {version} of report: {name}")
    return versions[version]


def list_templates() -> List[PipelineTemplate]:
    """Latest version of every template, sorted by name."""
    return [versions[max(versions)] for _, versions in sorted(_TEMPLATES.items())]


def build_pipeline(name: str, version: Optional[int] = None, **params: Any) -> Pipeline:
    """Build the pipeline of a named report."""
    return get_template(name, version).build(**params)
