"""Core workflow engine, task ledger and registry."""

from agentchain.core.definitions import StepDefinition, WorkflowCatalog, WorkflowDefinition
from agentchain.core.engine import WorkflowEngine
from agentchain.core.exceptions import (
    AgentChainError,
    InvalidStateError,
    LedgerError,
    RetryExhaustedError,
    StepFailureError,
    TaskError,
    TaskNotCompletedError,
    TaskNotFoundError,
    TaskTimeoutError,
    UnknownActionError,
    UnknownWorkflowError,
    ValidationError,
)
from agentchain.core.invoker import AgentInvoker, Invoker, ResilientInvoker
from agentchain.core.ledger import TaskLedger
from agentchain.core.registry import TaskRegistry
from agentchain.core.retry import RetryExecutor, RetryPolicy
from agentchain.core.state import Status, StepRecord, Task

__all__ = [
    # Definitions
    "StepDefinition",
    "WorkflowCatalog",
    "WorkflowDefinition",
    # Engine & registry
    "WorkflowEngine",
    "TaskRegistry",
    # Invocation
    "AgentInvoker",
    "Invoker",
    "ResilientInvoker",
    "RetryExecutor",
    "RetryPolicy",
    # State
    "Status",
    "StepRecord",
    "Task",
    "TaskLedger",
    # Exceptions
    "AgentChainError",
    "InvalidStateError",
    "LedgerError",
    "RetryExhaustedError",
    "StepFailureError",
    "TaskError",
    "TaskNotCompletedError",
    "TaskNotFoundError",
    "TaskTimeoutError",
    "UnknownActionError",
    "UnknownWorkflowError",
    "ValidationError",
]
