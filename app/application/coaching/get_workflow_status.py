"""
Use case: Poll the status of a coaching workflow run.

Input: GetWorkflowStatusQuery (workflow id)
Output: WorkflowRun
Side effects: None (read-only query).
Failure cases: WorkflowNotFoundError.
"""

from app.application.coaching.dtos import GetWorkflowStatusQuery
from app.application.coaching.workflow_service import CoachingWorkflowService
from app.domain.coaching.entities import WorkflowRun
from app.domain.coaching.errors import WorkflowNotFoundError


class GetWorkflowStatusUseCase:
    """Looks up a run snapshot and raises if the id is unknown."""

    def __init__(self, workflow_service: CoachingWorkflowService) -> None:
        self._workflow_service = workflow_service

    def execute(self, query: GetWorkflowStatusQuery) -> WorkflowRun:
        run = self._workflow_service.status(query.workflow_id)
        if run is None:
            raise WorkflowNotFoundError(query.workflow_id)
        return run
