"""Custom exceptions for the workflow engine and task registry."""

from __future__ import annotations

from pathlib import Path


class AgentChainError(Exception):
    """Base exception for all agentchain errors."""


class UnknownWorkflowError(AgentChainError):
    """Raised when a workflow name is not present in the catalog."""

    def __init__(self, workflow_name: str) -> None:
        self.workflow_name = workflow_name
        super().__init__(f'Workflow "{workflow_name}" not found')


class TaskError(AgentChainError):
    """Error related to a task in the registry."""

    def __init__(self, task_id: str, message: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} {message}")


class TaskNotFoundError(TaskError):
    """Raised when a task id is unknown."""

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id, "not found")


class TaskNotCompletedError(TaskError):
    """Raised when artifacts are requested before the task completed."""

    def __init__(self, task_id: str, status: str) -> None:
        self.status = status
        super().__init__(task_id, f"is not completed (status: {status})")


class TaskTimeoutError(TaskError):
    """Raised when waiting for a task exceeds its time limit."""

    def __init__(self, task_id: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(task_id, f"timed out after {timeout_seconds}s")


class InvalidStateError(AgentChainError):
    """Raised on an invalid task or step state transition."""

    def __init__(self, subject: str, current: str, target: str) -> None:
        self.subject = subject
        self.current_status = current
        self.target_status = target
        super().__init__(f"{subject}: cannot transition from '{current}' to '{target}'")


class UnknownActionError(AgentChainError):
    """Raised when no handler is registered for an agent/action pair."""

    def __init__(self, agent: str, action: str) -> None:
        self.agent = agent
        self.action = action
        super().__init__(f"Unknown agent action: {agent}:{action}")


class StepFailureError(AgentChainError):
    """Error during execution of a single workflow step."""

    def __init__(self, step_name: str, message: str) -> None:
        self.step_name = step_name
        self.message = message
        super().__init__(f"Step {step_name}: {message}")


class ValidationError(AgentChainError):
    """Raised when workflow or step definitions fail validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class RetryExhaustedError(AgentChainError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Retry exhausted after {attempts} attempt(s){detail}")


class LedgerError(AgentChainError):
    """Raised when the persisted task ledger cannot be read or written."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = path
        super().__init__(f"Ledger {path}: {message}")
