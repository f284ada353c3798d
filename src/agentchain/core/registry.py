"""Task registry: starts workflow runs and answers queries about them."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import structlog

from agentchain.core.definitions import WorkflowCatalog, WorkflowDefinition
from agentchain.core.engine import WorkflowEngine
from agentchain.core.exceptions import (
    InvalidStateError,
    TaskNotCompletedError,
    TaskTimeoutError,
)
from agentchain.core.ledger import TaskLedger
from agentchain.core.state import Status, Task

logger = structlog.get_logger(__name__)


class TaskRegistry:
    """Owns the lifecycle of tasks and exposes them to callers.

    :meth:`start` returns as soon as the task is recorded; the run itself
    proceeds in a background :class:`asyncio.Task`. Every other method is a
    synchronous query over the ledger and raises a typed error for unknown
    ids or invalid transitions.

    Cancelling only changes the recorded status. A run that is already
    executing keeps going until it finishes on its own; the ledger ignores
    what it reports after the cancellation.
    """

    def __init__(
        self,
        catalog: WorkflowCatalog,
        engine: WorkflowEngine,
        ledger: TaskLedger | None = None,
    ) -> None:
        self._catalog = catalog
        self._engine = engine
        self._ledger = ledger or engine.ledger
        self._runs: dict[str, asyncio.Task[Task]] = {}

    @property
    def catalog(self) -> WorkflowCatalog:
        return self._catalog

    # ---- Lifecycle ----

    async def start(self, workflow_name: str, params: dict[str, Any] | None = None) -> str:
        """Create a task for ``workflow_name`` and launch its run.

        Args:
            workflow_name: Name of a workflow in the catalog.
            params: Caller parameters made available to every step.

        Returns:
            The new task id.

        Raises:
            UnknownWorkflowError: If the workflow is not in the catalog.
            LedgerError: If the new task cannot be persisted.
        """
        definition = self._catalog.get(workflow_name)
        task = Task.create(workflow_name, definition.step_names, params or {})
        self._ledger.publish(task)

        run = asyncio.create_task(self._run(task.id, definition), name=f"task-{task.id}")
        self._runs[task.id] = run
        run.add_done_callback(lambda _: self._runs.pop(task.id, None))

        logger.info("Task started", task_id=task.id, workflow=workflow_name)
        return task.id

    async def _run(self, task_id: str, definition: WorkflowDefinition) -> Task:
        task = self._ledger.get(task_id)
        if task.status != Status.PENDING:
            # Cancelled before the run got scheduled.
            return task.snapshot()
        return await self._engine.execute(task, definition)

    async def wait(self, task_id: str, timeout: float | None = None) -> dict[str, Any]:
        """Wait for a task's background run to finish and return its status.

        Args:
            task_id: Id returned by :meth:`start`.
            timeout: Seconds to wait, ``None`` to wait indefinitely. The run
                keeps going when the wait times out.

        Returns:
            The task status, as from :meth:`get_status`.

        Raises:
            TaskNotFoundError: If the id is unknown.
            TaskTimeoutError: If the run is still going after ``timeout`` seconds.
        """
        self._ledger.get(task_id)
        run = self._runs.get(task_id)
        if run is not None:
            try:
                await asyncio.wait_for(asyncio.shield(run), timeout=timeout)
            except asyncio.TimeoutError:
                raise TaskTimeoutError(task_id, timeout or 0) from None
        return self.get_status(task_id)

    async def close(self) -> None:
        """Cancel outstanding background runs and wait for them to unwind."""
        runs = list(self._runs.values())
        for run in runs:
            run.cancel()
        if runs:
            await asyncio.gather(*runs, return_exceptions=True)
            await logger.ainfo("Registry closed", interrupted_runs=len(runs))
        self._runs.clear()

    # ---- Queries ----

    def get_task(self, task_id: str) -> Task:
        """Return a private copy of the task record.

        Raises:
            TaskNotFoundError: If the id is unknown.
        """
        return self._ledger.get(task_id).snapshot()

    def get_status(self, task_id: str) -> dict[str, Any]:
        """Return status, progress, message and partial results of a task.

        Raises:
            TaskNotFoundError: If the id is unknown.
        """
        task = self._ledger.get(task_id)
        started_at = task.started_at.isoformat()
        completed_at = task.completed_at.isoformat() if task.completed_at else None
        return {
            "id": task.id,
            "workflow_name": task.workflow_name,
            "status": task.status.value,
            "progress": task.progress,
            "message": task.message,
            "error": task.error,
            "started_at": started_at,
            "completed_at": completed_at,
            "steps": [
                {
                    "name": s.name,
                    "status": s.status.value,
                    "result": copy.deepcopy(s.result),
                    "error": s.error,
                }
                for s in task.steps
            ],
            "results": copy.deepcopy(task.results),
        }

    def get_artifacts(self, task_id: str) -> dict[str, Any]:
        """Return the merged results of a completed task.

        Raises:
            TaskNotFoundError: If the id is unknown.
            TaskNotCompletedError: If the task is not COMPLETED.
        """
        task = self._ledger.get(task_id)
        if task.status != Status.COMPLETED:
            raise TaskNotCompletedError(task_id, task.status.value)
        return copy.deepcopy(task.results)

    def list(self) -> list[dict[str, Any]]:
        """Summaries of every PENDING or RUNNING task, oldest first."""
        return [task.summary() for task in self._ledger.all() if task.status.is_active]

    def cancel(self, task_id: str) -> bool:
        """Record a PENDING or RUNNING task as CANCELLED.

        Raises:
            TaskNotFoundError: If the id is unknown.
            InvalidStateError: If the task is already terminal.
        """
        task = self._ledger.get(task_id)
        if not task.status.is_active:
            raise InvalidStateError(f"Task {task_id}", task.status.value, Status.CANCELLED.value)

        cancelled = task.snapshot()
        cancelled.mark_cancelled()
        self._ledger.publish(cancelled)
        logger.info(
            "Task cancelled",
            task_id=task_id,
            run_in_flight=task_id in self._runs and task.status == Status.RUNNING,
        )
        return True
