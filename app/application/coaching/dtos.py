"""
Data Transfer Objects for the coaching application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GetWorkflowStatusQuery:
    """Input DTO for polling a workflow run.

    Attributes:
        workflow_id: Identifier returned when the run was started.
    """

    workflow_id: str


@dataclass(frozen=True)
class StartWorkflowResult:
    """Output DTO for a freshly started workflow run.

    Attributes:
        workflow_id: Opaque, URL-safe identifier of the run.
    """

    workflow_id: str


@dataclass(frozen=True)
class ListTradesQuery:
    """Input DTO for listing trades.

    Attributes:
        limit: Optional cap on the number of trades, newest first.
    """

    limit: int | None = None
