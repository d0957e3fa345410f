"""
Use case: Start a coaching workflow run.

Input: none
Output: StartWorkflowResult
Side effects: Registers a pending run and schedules its pipeline task.
Failure cases: None at start time; pipeline failures surface through the
    run's status.
"""

from app.application.coaching.dtos import StartWorkflowResult
from app.application.coaching.workflow_service import CoachingWorkflowService


class StartWorkflowUseCase:
    """Thin wrapper that starts a run on the shared workflow service."""

    def __init__(self, workflow_service: CoachingWorkflowService) -> None:
        self._workflow_service = workflow_service

    def execute(self) -> StartWorkflowResult:
        return StartWorkflowResult(workflow_id=self._workflow_service.start())
