"""
In-memory registry of coaching workflow runs.

Maps workflow id to the latest WorkflowRun snapshot. Each registry is
owned by one workflow service; there is no module-level instance.
Snapshots are immutable and replaced whole on every transition.
Records live for the lifetime of the process.
"""

import threading
from datetime import datetime, timezone
from typing import Optional

from app.domain.coaching.entities import (
    CoachingResult,
    WorkflowRun,
    WorkflowStatus,
    WorkflowStep,
)
from app.domain.coaching.errors import (
    InvalidWorkflowTransitionError,
    WorkflowNotFoundError,
)


class WorkflowRegistry:
    """Thread-safe store of workflow run snapshots.

    Only ``pending -> completed`` and ``pending -> failed`` are allowed.
    Reads never block on anything but the short internal lock.
    """

    def __init__(self) -> None:
        self._runs: dict[str, WorkflowRun] = {}
        self._lock = threading.Lock()

    def create(self, workflow_id: str) -> WorkflowRun:
        """Store a new run in ``pending``.

        Raises:
            ValueError: If the id is already registered.
        """
        run = WorkflowRun(
            workflow_id=workflow_id,
            status=WorkflowStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if workflow_id in self._runs:
                raise ValueError(f"Workflow id already registered: {workflow_id}")
            self._runs[workflow_id] = run
        return run

    def get(self, workflow_id: str) -> Optional[WorkflowRun]:
        with self._lock:
            return self._runs.get(workflow_id)

    def all(self) -> list[WorkflowRun]:
        with self._lock:
            return list(self._runs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def complete(self, workflow_id: str, result: CoachingResult) -> WorkflowRun:
        """Move a pending run to ``completed`` with its result attached."""
        return self._finish(
            workflow_id, WorkflowStatus.COMPLETED, result=result
        )

    def fail(
        self, workflow_id: str, step: WorkflowStep, error: str
    ) -> WorkflowRun:
        """Move a pending run to ``failed`` with the failing step and message."""
        return self._finish(
            workflow_id, WorkflowStatus.FAILED, error=error, failed_step=step
        )

    def _finish(
        self,
        workflow_id: str,
        status: WorkflowStatus,
        result: Optional[CoachingResult] = None,
        error: Optional[str] = None,
        failed_step: Optional[WorkflowStep] = None,
    ) -> WorkflowRun:
        with self._lock:
            current = self._runs.get(workflow_id)
            if current is None:
                raise WorkflowNotFoundError(workflow_id)
            if current.is_terminal:
                raise InvalidWorkflowTransitionError(
                    workflow_id, current.status, status
                )
            finished = WorkflowRun(
                workflow_id=workflow_id,
                status=status,
                created_at=current.created_at,
                finished_at=datetime.now(timezone.utc),
                result=result,
                error=error,
                failed_step=failed_step,
            )
            self._runs[workflow_id] = finished
            return finished
