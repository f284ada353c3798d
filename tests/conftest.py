"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from agentchain.core.definitions import StepDefinition, WorkflowCatalog, WorkflowDefinition
from agentchain.core.engine import WorkflowEngine
from agentchain.core.invoker import ActionHandler, AgentInvoker
from agentchain.core.ledger import TaskLedger
from agentchain.core.registry import TaskRegistry


# ---------------------------------------------------------------------------
# Recording invoker
# ---------------------------------------------------------------------------


class RecordingInvoker(AgentInvoker):
    """AgentInvoker that remembers every call made through it."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    async def invoke(self, agent: str, action: str, inputs: dict[str, Any]) -> Any:
        self.calls.append((agent, action, inputs))
        return await super().invoke(agent, action, inputs)

    @property
    def called_actions(self) -> list[str]:
        return [f"{agent}:{action}" for agent, action, _ in self.calls]


def returns(value: Any) -> ActionHandler:
    """Handler that always answers with *value*."""

    async def handler(inputs: dict[str, Any]) -> Any:
        return value

    return handler


def raises(message: str = "agent exploded") -> ActionHandler:
    """Handler that always raises RuntimeError(*message*)."""

    async def handler(inputs: dict[str, Any]) -> Any:
        raise RuntimeError(message)

    return handler


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def invoker() -> RecordingInvoker:
    return RecordingInvoker()


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "ledger" / "tasks.json"


@pytest.fixture
def ledger(ledger_path) -> TaskLedger:
    return TaskLedger(ledger_path)


@pytest.fixture
def engine(invoker, ledger) -> WorkflowEngine:
    return WorkflowEngine(invoker, ledger)


@pytest.fixture
def catalog() -> WorkflowCatalog:
    return WorkflowCatalog()


@pytest.fixture
async def registry(catalog, engine, ledger):
    reg = TaskRegistry(catalog, engine, ledger)
    yield reg
    await reg.close()


@pytest.fixture
def make_workflow() -> Callable[..., WorkflowDefinition]:
    """Factory fixture: build a workflow of simple steps.

    Each positional argument is ``(name, agent, action)`` or a ready-made
    StepDefinition.
    """

    def _factory(*steps: tuple[str, str, str] | StepDefinition, name: str = "wf") -> WorkflowDefinition:
        built = [
            s if isinstance(s, StepDefinition) else StepDefinition(name=s[0], agent=s[1], action=s[2])
            for s in steps
        ]
        return WorkflowDefinition(name=name, steps=built)

    return _factory
