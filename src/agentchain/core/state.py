"""Task and step state management."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from agentchain.core.exceptions import InvalidStateError


class Status(str, enum.Enum):
    """Unified status enum for tasks and steps."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self in (Status.COMPLETED, Status.FAILED, Status.CANCELLED, Status.SKIPPED)

    @property
    def is_active(self) -> bool:
        return self in (Status.PENDING, Status.RUNNING)


# Valid state transitions for tasks
_TASK_TRANSITIONS: dict[Status, set[Status]] = {
    Status.PENDING: {Status.RUNNING, Status.FAILED, Status.CANCELLED},
    Status.RUNNING: {Status.COMPLETED, Status.FAILED, Status.CANCELLED},
}

# Valid state transitions for steps
_STEP_TRANSITIONS: dict[Status, set[Status]] = {
    Status.PENDING: {Status.RUNNING, Status.SKIPPED},
    Status.RUNNING: {Status.COMPLETED, Status.FAILED},
}


def can_transition(current: Status, target: Status, *, is_step: bool = False) -> bool:
    """Check whether a state transition is valid."""
    table = _STEP_TRANSITIONS if is_step else _TASK_TRANSITIONS
    return target in table.get(current, set())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass
class StepRecord:
    """Runtime state of a single workflow step within a task."""

    name: str
    status: Status = Status.PENDING
    result: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None

    def _transition(self, target: Status) -> None:
        if not can_transition(self.status, target, is_step=True):
            raise InvalidStateError(f"Step {self.name}", self.status.value, target.value)
        self.status = target

    def _finish(self) -> None:
        self.completed_at = _now()
        if self.started_at:
            self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)

    def mark_running(self) -> None:
        self._transition(Status.RUNNING)
        self.started_at = _now()

    def mark_skipped(self) -> None:
        self._transition(Status.SKIPPED)
        self.completed_at = _now()

    def mark_completed(self, result: dict[str, Any]) -> None:
        self._transition(Status.COMPLETED)
        self.result = result
        self._finish()

    def mark_failed(self, error: str) -> None:
        self._transition(Status.FAILED)
        self.error = error
        self._finish()

    @property
    def is_done(self) -> bool:
        """True once the step counts toward progress."""
        return self.status in (Status.COMPLETED, Status.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepRecord:
        return cls(
            name=data["name"],
            status=Status(data["status"]),
            result=data.get("result"),
            error=data.get("error"),
            started_at=_parse(data.get("started_at")),
            completed_at=_parse(data.get("completed_at")),
            duration_ms=data.get("duration_ms"),
        )


@dataclass
class Task:
    """Ledger record of one pipeline invocation.

    ``steps`` always has one record per step of the workflow definition the
    task was created from. ``results`` only ever grows: each completed step's
    mapped output is merged into it.
    """

    workflow_name: str
    params: dict[str, Any] = field(default_factory=dict)
    steps: list[StepRecord] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid4()))
    status: Status = Status.PENDING
    results: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None
    error: str | None = None

    @classmethod
    def create(cls, workflow_name: str, step_names: list[str], params: dict[str, Any]) -> Task:
        """Create a PENDING task with a PENDING record per step."""
        return cls(
            workflow_name=workflow_name,
            params=copy.deepcopy(params),
            steps=[StepRecord(name=name) for name in step_names],
        )

    # ---- status helpers ----

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def done_steps(self) -> int:
        return sum(1 for s in self.steps if s.is_done)

    @property
    def progress(self) -> int:
        """Percentage of steps that are COMPLETED or SKIPPED, rounded down."""
        if not self.steps:
            return 0
        return self.done_steps * 100 // self.total_steps

    @property
    def current_step(self) -> StepRecord | None:
        return next((s for s in self.steps if s.status == Status.RUNNING), None)

    @property
    def message(self) -> str:
        """Human-readable status line."""
        if self.status == Status.PENDING:
            return "Task is queued and waiting to start"
        if self.status == Status.RUNNING:
            step = self.current_step
            return f"Executing step: {step.name}" if step else "Task is running"
        if self.status == Status.COMPLETED:
            return "Task completed successfully"
        if self.status == Status.FAILED:
            return self.error or "Task failed"
        return "Task was cancelled"

    def step(self, name: str) -> StepRecord:
        for record in self.steps:
            if record.name == name:
                return record
        raise KeyError(name)

    # ---- state transitions ----

    def _transition(self, target: Status) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateError(f"Task {self.id}", self.status.value, target.value)
        self.status = target

    def mark_running(self) -> None:
        self._transition(Status.RUNNING)

    def mark_completed(self) -> None:
        self._transition(Status.COMPLETED)
        self.completed_at = _now()

    def mark_failed(self, error: str) -> None:
        self._transition(Status.FAILED)
        self.error = error
        self.completed_at = _now()

    def mark_cancelled(self) -> None:
        self._transition(Status.CANCELLED)
        self.completed_at = _now()

    def merge_results(self, mapped: dict[str, Any]) -> None:
        self.results = {**self.results, **mapped}

    def snapshot(self) -> Task:
        """Return an independent deep copy of this task."""
        return copy.deepcopy(self)

    # ---- serialisation ----

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialise the task for persistence."""
        return {
            "id": self.id,
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "params": self.params,
            "steps": [s.to_dict() for s in self.steps],
            "results": self.results,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Restore a task from a persisted dict."""
        return cls(
            id=data["id"],
            workflow_name=data["workflow_name"],
            status=Status(data["status"]),
            params=data.get("params", {}),
            steps=[StepRecord.from_dict(s) for s in data.get("steps", [])],
            results=data.get("results", {}),
            started_at=_parse(data.get("started_at")) or _now(),
            completed_at=_parse(data.get("completed_at")),
            error=data.get("error"),
        )
