"""Workflow execution engine: runs one task's steps in order and records them."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from agentchain.core.definitions import StepDefinition, WorkflowDefinition
from agentchain.core.exceptions import StepFailureError
from agentchain.core.invoker import Invoker
from agentchain.core.ledger import TaskLedger
from agentchain.core.state import Status, Task, can_transition

logger = structlog.get_logger(__name__)


class WorkflowEngine:
    """Drives a :class:`WorkflowDefinition` against a :class:`Task`.

    Steps run strictly one after another. Before each step its optional
    condition is checked against the outputs of the steps that already ran in
    this run; a false condition skips the step without calling the agent.
    The first failing step fails the task and ends the run; outputs of the
    steps before it stay in the task's results.

    The engine works on its own copy of the task and publishes it to the
    ledger after every transition. Nothing raised while executing a run
    escapes :meth:`execute`; failures end up in the ledger instead.
    """

    def __init__(self, invoker: Invoker, ledger: TaskLedger) -> None:
        self._invoker = invoker
        self._ledger = ledger

    @property
    def ledger(self) -> TaskLedger:
        return self._ledger

    async def execute(self, task: Task, definition: WorkflowDefinition) -> Task:
        """Run every step of ``definition`` for ``task``.

        Args:
            task: The PENDING task to run. It is copied, never mutated.
            definition: The workflow the task was created from.

        Returns:
            The task as last published once it reached a terminal status.
        """
        run = task.snapshot()
        log = logger.bind(task_id=run.id, workflow=definition.name)

        try:
            run.mark_running()
            self._publish(run)
            await log.ainfo("Task execution started", total_steps=run.total_steps)

            accumulated: dict[str, Any] = {}
            for step in definition.steps:
                advanced = await self._run_step(run, step, accumulated)
                if advanced is None:
                    await log.aerror("Task failed", failed_step=step.name, error=run.error)
                    return self._latest(run)
                run = advanced

            run.mark_completed()
            self._publish(run)
            await log.ainfo("Task completed", results=list(run.results))

        except Exception as exc:
            await log.aexception("Task execution error")
            self._record_crash(run, exc)

        return self._latest(run)

    async def _run_step(
        self,
        run: Task,
        step: StepDefinition,
        accumulated: dict[str, Any],
    ) -> Task | None:
        """Execute one step.

        Skipping or completing a step is applied to a copy of ``run`` that only
        replaces it once published, so a result the ledger cannot record fails
        the step instead of leaving it half done.

        Returns:
            The task after the step, or ``None`` when the step failed the task.
        """
        record = run.step(step.name)
        log = logger.bind(task_id=run.id, step=step.name, agent=step.agent, action=step.action)

        try:
            if step.condition is not None and not step.condition(dict(accumulated)):
                skipped = run.snapshot()
                skipped.step(step.name).mark_skipped()
                self._publish(skipped)
                await log.ainfo("Step skipped")
                return skipped

            record.mark_running()
            self._publish(run)
            await log.ainfo("Step started")

            inputs = step.inputs(run.params, dict(accumulated))
            raw = await self._invoker.invoke(step.agent, step.action, inputs)
            mapped = step.output_mapping(raw)
            if not isinstance(mapped, Mapping):
                raise StepFailureError(
                    step.name,
                    f"output mapping returned {type(mapped).__name__}, expected a mapping",
                )

            completed = run.snapshot()
            completed.merge_results(dict(mapped))
            completed.step(step.name).mark_completed(dict(mapped))
            self._publish(completed)

        except Exception as exc:
            if isinstance(exc, StepFailureError):
                message = exc.message
            else:
                message = str(exc) or exc.__class__.__name__
            await log.awarning("Step failed", error=message, error_type=type(exc).__name__)

            if record.status == Status.PENDING:
                # The condition itself raised; the step never got to run.
                record.mark_running()
            record.mark_failed(message)
            run.mark_failed(f"Failed to execute step {step.name}: {message}")
            self._publish(run)
            return None

        accumulated[step.name] = dict(mapped)
        await log.ainfo(
            "Step completed",
            duration_ms=completed.step(step.name).duration_ms,
            outputs=list(mapped),
        )
        return completed

    def _publish(self, run: Task) -> None:
        self._ledger.publish(run)

    def _latest(self, run: Task) -> Task:
        if run.id in self._ledger:
            return self._ledger.get(run.id).snapshot()
        return run.snapshot()

    def _record_crash(self, run: Task, exc: Exception) -> None:
        """Best-effort FAILED record for an error outside step handling."""
        if not can_transition(run.status, Status.FAILED):
            return
        run.mark_failed(f"Workflow execution error: {exc}")
        try:
            self._publish(run)
        except Exception:
            logger.exception("Unable to record task failure", task_id=run.id)
