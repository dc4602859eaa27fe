"""Pydantic models for derived bug metrics.

Field names are snake_case in Python and camelCase on the wire, matching
what the dashboard front end consumes.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BugMetrics(CamelModel):
    """Counts and rates for one repository, or for all of them."""

    repository: str = Field(..., description="Repository name or 'All Repositories'")
    total_bugs: int = Field(..., description="Number of issues considered")
    open_bugs: int = Field(..., description="Issues currently open")
    closed_bugs: int = Field(..., description="Issues currently closed")
    burn_rate: float = Field(
        ..., description="Percentage of issues closed, one decimal place"
    )
    avg_resolution_time: int = Field(
        ..., description="Mean days from creation to close over closed issues"
    )
    recent_activity: int = Field(
        ..., description="Issues created in the last 30 days"
    )


class CombinedBugMetrics(CamelModel):
    """Overall metrics plus a per-repository breakdown."""

    overall: BugMetrics
    by_repository: dict[str, BugMetrics] = Field(default_factory=dict)


class BugTrend(CamelModel):
    """Activity for one repository during one week."""

    date: str = Field(..., description="Week start (Monday) as YYYY-MM-DD")
    open_bugs: int = Field(..., description="Issues created during the week")
    closed_bugs: int = Field(..., description="Issues closed during the week")
    total_open: int = Field(..., description="Issues open at the end of the week")
    repository: str


class RepositoryStats(CamelModel):
    """Fetch summary for one repository."""

    name: str
    enabled: bool
    last_fetched: str | None = None
    issue_count: int
    bug_count: int
