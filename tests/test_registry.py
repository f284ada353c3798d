"""Tests for the task registry."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from agentchain.core.definitions import StepDefinition, WorkflowCatalog
from agentchain.core.engine import WorkflowEngine
from agentchain.core.exceptions import (
    InvalidStateError,
    LedgerError,
    TaskNotCompletedError,
    TaskNotFoundError,
    TaskTimeoutError,
    UnknownWorkflowError,
)
from agentchain.core.ledger import TaskLedger
from agentchain.core.registry import TaskRegistry

from conftest import RecordingInvoker, raises, returns


class Gate:
    """Handler that blocks until released, so a task can be caught mid-run."""

    def __init__(self, result: dict[str, Any] | None = None) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.result = result or {"gated": True}

    async def __call__(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.entered.set()
        await self.release.wait()
        return self.result


@pytest.fixture
def simple_catalog(catalog, invoker, make_workflow) -> WorkflowCatalog:
    invoker.register("a", "ok", returns({"x": 1}))
    invoker.register("a", "ok2", returns({"y": 2}))
    invoker.register("a", "bad", raises("boom"))
    catalog.register(make_workflow(("one", "a", "ok"), ("two", "a", "ok2"), name="happy"))
    catalog.register(make_workflow(("one", "a", "ok"), ("two", "a", "bad"), ("three", "a", "ok"), name="broken"))
    return catalog


# ---------------------------------------------------------------------------
# start
# ---------------------------------------------------------------------------

async def test_start_unknown_workflow_creates_nothing(registry, ledger):
    with pytest.raises(UnknownWorkflowError):
        await registry.start("nope", {})
    assert len(ledger) == 0


async def test_start_that_cannot_persist_leaves_no_task(simple_catalog, invoker):
    class UnwritableLedger(TaskLedger):
        def save(self) -> None:
            raise LedgerError("tasks.json", "disk full")

    ledger = UnwritableLedger()
    registry = TaskRegistry(simple_catalog, WorkflowEngine(invoker, ledger), ledger)

    with pytest.raises(LedgerError):
        await registry.start("happy", {"user_prompt": "hi"})
    await asyncio.sleep(0.01)

    assert len(ledger) == 0
    assert registry.list() == []
    assert invoker.calls == []
    assert not [t for t in asyncio.all_tasks() if t.get_name().startswith("task-")]
    await registry.close()


async def test_start_returns_immediately_with_pending_task(registry, simple_catalog, ledger_path):
    task_id = await registry.start("happy", {"user_prompt": "hi"})

    status = registry.get_status(task_id)
    assert status["status"] == "PENDING"
    assert status["progress"] == 0
    assert status["message"] == "Task is queued and waiting to start"
    assert [s["status"] for s in status["steps"]] == ["PENDING", "PENDING"]

    persisted = json.loads(ledger_path.read_text())
    assert [t["id"] for t in persisted] == [task_id]


async def test_started_task_runs_to_completion(registry, simple_catalog):
    task_id = await registry.start("happy", {"user_prompt": "hi"})
    status = await registry.wait(task_id, timeout=5)

    assert status["status"] == "COMPLETED"
    assert status["progress"] == 100
    assert status["message"] == "Task completed successfully"
    assert status["completed_at"] is not None
    assert status["error"] is None
    assert registry.get_artifacts(task_id) == {"x": 1, "y": 2}


async def test_params_are_not_shared_with_caller(registry, simple_catalog):
    params = {"user_prompt": "hi"}
    task_id = await registry.start("happy", params)
    params["user_prompt"] = "changed"
    assert registry.get_task(task_id).params == {"user_prompt": "hi"}


# ---------------------------------------------------------------------------
# get_status / get_artifacts
# ---------------------------------------------------------------------------

async def test_unknown_ids_raise_task_not_found(registry):
    with pytest.raises(TaskNotFoundError):
        registry.get_status("missing")
    with pytest.raises(TaskNotFoundError):
        registry.get_artifacts("missing")
    with pytest.raises(TaskNotFoundError):
        registry.cancel("missing")
    with pytest.raises(TaskNotFoundError):
        await registry.wait("missing")


async def test_failed_task_exposes_partial_results_only_through_status(registry, simple_catalog):
    task_id = await registry.start("broken", {})
    status = await registry.wait(task_id, timeout=5)

    assert status["status"] == "FAILED"
    assert status["error"] == "Failed to execute step two: boom"
    assert status["message"] == "Failed to execute step two: boom"
    assert status["progress"] == 33
    assert status["results"] == {"x": 1}
    assert status["steps"][0] == {"name": "one", "status": "COMPLETED", "result": {"x": 1}, "error": None}
    assert status["steps"][1]["error"] == "boom"
    assert status["steps"][2]["status"] == "PENDING"

    with pytest.raises(TaskNotCompletedError) as excinfo:
        registry.get_artifacts(task_id)
    assert excinfo.value.status == "FAILED"


async def test_artifacts_unavailable_while_pending(registry, simple_catalog):
    task_id = await registry.start("happy", {})
    with pytest.raises(TaskNotCompletedError):
        registry.get_artifacts(task_id)


async def test_repeated_queries_are_identical(registry, simple_catalog):
    task_id = await registry.start("happy", {})
    await registry.wait(task_id, timeout=5)

    assert registry.get_status(task_id) == registry.get_status(task_id)
    assert registry.get_artifacts(task_id) == registry.get_artifacts(task_id)


async def test_artifacts_are_copies(registry, simple_catalog):
    task_id = await registry.start("happy", {})
    await registry.wait(task_id, timeout=5)

    registry.get_artifacts(task_id)["x"] = "tampered"
    registry.get_status(task_id)["results"]["y"] = "tampered"
    assert registry.get_artifacts(task_id) == {"x": 1, "y": 2}


async def test_status_names_running_step(registry, catalog, invoker, make_workflow):
    gate = Gate()
    invoker.register("a", "gate", gate)
    catalog.register(make_workflow(("waiting", "a", "gate"), ("after", "a", "gate"), name="gated"))

    task_id = await registry.start("gated", {})
    await gate.entered.wait()

    status = registry.get_status(task_id)
    assert status["status"] == "RUNNING"
    assert status["message"] == "Executing step: waiting"
    assert status["progress"] == 0

    gate.release.set()
    assert (await registry.wait(task_id, timeout=5))["status"] == "COMPLETED"


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------

async def test_list_shows_only_active_tasks_in_order(registry, catalog, invoker, make_workflow, simple_catalog):
    gate = Gate()
    invoker.register("a", "gate", gate)
    catalog.register(make_workflow(("waiting", "a", "gate"), name="gated"))

    done_id = await registry.start("happy", {})
    await registry.wait(done_id, timeout=5)
    running_id = await registry.start("gated", {})
    await gate.entered.wait()
    pending_id = await registry.start("happy", {})

    listed = registry.list()
    assert [t["id"] for t in listed] == [running_id, pending_id]
    assert [t["status"] for t in listed] == ["RUNNING", "PENDING"]
    assert listed[0]["workflow_name"] == "gated"
    assert set(listed[0]) == {"id", "workflow_name", "status", "started_at"}

    gate.release.set()
    await registry.wait(running_id, timeout=5)
    await registry.wait(pending_id, timeout=5)
    assert registry.list() == []


# ---------------------------------------------------------------------------
# cancel
# ---------------------------------------------------------------------------

async def test_cancel_pending_task_prevents_run(registry, simple_catalog, invoker):
    task_id = await registry.start("happy", {})

    assert registry.cancel(task_id) is True
    status = await registry.wait(task_id, timeout=5)

    assert status["status"] == "CANCELLED"
    assert status["completed_at"] is not None
    assert status["message"] == "Task was cancelled"
    assert invoker.calls == []
    assert registry.list() == []


async def test_cancel_running_task_records_status_only(registry, catalog, invoker, make_workflow):
    gate = Gate()
    invoker.register("a", "gate", gate)
    invoker.register("a", "after", returns({"after": True}))
    catalog.register(make_workflow(("waiting", "a", "gate"), ("after", "a", "after"), name="gated"))

    task_id = await registry.start("gated", {})
    await gate.entered.wait()

    assert registry.cancel(task_id) is True
    cancelled = registry.get_status(task_id)
    assert cancelled["status"] == "CANCELLED"
    assert cancelled["completed_at"] is not None

    # The in-flight run is not interrupted, but nothing it reports is recorded.
    gate.release.set()
    final = await registry.wait(task_id, timeout=5)
    assert "a:after" in invoker.called_actions
    assert final == cancelled
    with pytest.raises(TaskNotCompletedError):
        registry.get_artifacts(task_id)


@pytest.mark.parametrize("workflow", ["happy", "broken"])
async def test_cancel_terminal_task_is_invalid(registry, simple_catalog, workflow):
    task_id = await registry.start(workflow, {})
    await registry.wait(task_id, timeout=5)

    with pytest.raises(InvalidStateError):
        registry.cancel(task_id)


async def test_cancel_twice_is_invalid(registry, simple_catalog):
    task_id = await registry.start("happy", {})
    registry.cancel(task_id)
    with pytest.raises(InvalidStateError):
        registry.cancel(task_id)


# ---------------------------------------------------------------------------
# wait / close / isolation
# ---------------------------------------------------------------------------

async def test_wait_times_out(registry, catalog, invoker, make_workflow):
    gate = Gate()
    invoker.register("a", "gate", gate)
    catalog.register(make_workflow(("waiting", "a", "gate"), name="gated"))

    task_id = await registry.start("gated", {})
    with pytest.raises(TaskTimeoutError) as exc_info:
        await registry.wait(task_id, timeout=0.01)
    assert exc_info.value.__cause__ is None
    assert exc_info.value.__suppress_context__

    # The run survives the caller giving up.
    gate.release.set()
    assert (await registry.wait(task_id, timeout=5))["status"] == "COMPLETED"


async def test_close_interrupts_outstanding_runs(catalog, invoker, make_workflow):
    gate = Gate()
    invoker.register("a", "gate", gate)
    catalog.register(make_workflow(("waiting", "a", "gate"), name="gated"))
    ledger = TaskLedger()
    registry = TaskRegistry(catalog, WorkflowEngine(invoker, ledger), ledger)

    task_id = await registry.start("gated", {})
    await gate.entered.wait()
    await registry.close()

    # Teardown leaves the last recorded state behind.
    assert registry.get_status(task_id)["status"] == "RUNNING"


async def test_registries_are_independent(make_workflow):
    def build() -> TaskRegistry:
        invoker = RecordingInvoker()
        invoker.register("a", "ok", returns({"x": 1}))
        catalog = WorkflowCatalog([make_workflow(("one", "a", "ok"), name="happy")])
        ledger = TaskLedger()
        return TaskRegistry(catalog, WorkflowEngine(invoker, ledger))

    first, second = build(), build()
    task_id = await first.start("happy", {})
    await first.wait(task_id, timeout=5)

    with pytest.raises(TaskNotFoundError):
        second.get_status(task_id)
    await first.close()
    await second.close()


async def test_concurrent_tasks_do_not_share_results(registry, catalog, invoker, make_workflow):
    async def echo(inputs: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        return {"echo": inputs["user_prompt"]}

    invoker.register("a", "echo", echo)
    catalog.register(
        make_workflow(
            ("first", "a", "echo"),
            StepDefinition(name="second", agent="a", action="echo"),
            name="echo",
        )
    )

    ids = [await registry.start("echo", {"user_prompt": f"p{i}"}) for i in range(5)]
    for i, task_id in enumerate(ids):
        await registry.wait(task_id, timeout=5)
        assert registry.get_artifacts(task_id) == {"echo": f"p{i}"}
