"""
Domain-specific errors for the coaching bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional

from app.domain.coaching.entities import WorkflowStatus, WorkflowStep


class CoachingDomainError(Exception):
    """Base error for all coaching domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class TradeValidationError(CoachingDomainError):
    """Raised when a raw trade record does not satisfy the trade invariants."""

    def __init__(
        self,
        message: str,
        trade_id: Optional[str] = None,
        missing_fields: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.trade_id = trade_id
        self.missing_fields = missing_fields or []


class GatewayError(CoachingDomainError):
    """Base error for failures of an external collaborator."""


class EmbeddingError(GatewayError):
    """Raised when a text embedding cannot be produced."""


class SimilarityStoreError(GatewayError):
    """Raised when the similarity store rejects or fails a request."""


class AdviceError(GatewayError):
    """Raised when coaching advice cannot be generated."""


class NoTradesAvailableError(CoachingDomainError):
    """Raised when the trade source yields no trades to coach on."""

    def __init__(self) -> None:
        super().__init__("No trades available")


class EmbeddingCountMismatchError(CoachingDomainError):
    """Raised when the number of embeddings differs from the number of trades."""

    def __init__(self, trade_count: int, embedding_count: int) -> None:
        super().__init__(
            "Mismatch between trades and embeddings count: "
            f"{trade_count} trades, {embedding_count} embeddings"
        )
        self.trade_count = trade_count
        self.embedding_count = embedding_count


class WorkflowStepError(CoachingDomainError):
    """Raised when a pipeline step fails. Carries the originating step."""

    def __init__(self, step: WorkflowStep, cause: BaseException) -> None:
        reason = str(cause) or type(cause).__name__
        super().__init__(f"{step.value} failed: {reason}")
        self.step = step
        self.cause = cause


class WorkflowNotFoundError(CoachingDomainError):
    """Raised when a workflow id is unknown."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class InvalidWorkflowTransitionError(CoachingDomainError):
    """Raised when a run is moved out of a terminal state."""

    def __init__(
        self, workflow_id: str, current: WorkflowStatus, target: WorkflowStatus
    ) -> None:
        super().__init__(
            f"Invalid transition for workflow {workflow_id}: "
            f"{current.value} -> {target.value}"
        )
        self.workflow_id = workflow_id
        self.current = current
        self.target = target
