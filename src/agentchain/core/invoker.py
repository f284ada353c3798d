"""Agent invocation: the only seam between the engine and the outside world."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import structlog

from agentchain.core.exceptions import UnknownActionError
from agentchain.core.retry import RetryExecutor, RetryPolicy

logger = structlog.get_logger(__name__)

ActionHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class Invoker(Protocol):
    """Anything that can send an action with inputs to a named agent."""

    async def invoke(self, agent: str, action: str, inputs: dict[str, Any]) -> Any: ...


class AgentInvoker:
    """Dispatches ``(agent, action)`` pairs to registered async handlers.

    New actions are added by registration::

        invoker = AgentInvoker()
        invoker.register("linter", "lint_code", lint_handler)
        result = await invoker.invoke("linter", "lint_code", {"code_path": "src/"})

    The invoker neither retries nor times out; wrap it in
    :class:`ResilientInvoker` for that.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], ActionHandler] = {}

    def register(self, agent: str, action: str, handler: ActionHandler) -> None:
        """Register ``handler`` for ``(agent, action)``.

        A later registration for the same pair replaces the earlier one.

        Args:
            agent: Agent name, as referenced by step definitions.
            action: Action name on that agent.
            handler: Async callable taking the step's input map.
        """
        self._handlers[(agent, action)] = handler
        logger.debug("action_registered", agent=agent, action=action)

    def has(self, agent: str, action: str) -> bool:
        """Return whether a handler is registered for ``(agent, action)``."""
        return (agent, action) in self._handlers

    @property
    def actions(self) -> list[str]:
        return sorted(f"{agent}:{action}" for agent, action in self._handlers)

    async def invoke(self, agent: str, action: str, inputs: dict[str, Any]) -> Any:
        """Run the handler registered for ``(agent, action)``.

        Raises:
            UnknownActionError: If no handler is registered for the pair.
        """
        handler = self._handlers.get((agent, action))
        if handler is None:
            raise UnknownActionError(agent, action)
        return await handler(inputs)


class ResilientInvoker:
    """Adds a per-call timeout and retries around another invoker.

    Each attempt is bounded by ``timeout`` seconds (``None`` for no bound);
    failed or timed-out attempts are retried according to ``policy``.
    :class:`~agentchain.core.exceptions.UnknownActionError` is never retried.
    """

    def __init__(
        self,
        inner: Invoker,
        policy: RetryPolicy | None = None,
        timeout: float | None = None,
    ) -> None:
        """Wrap ``inner``.

        Args:
            inner: Invoker that performs the actual calls.
            policy: Retry policy; defaults to a single attempt.
            timeout: Per-attempt bound in seconds, ``None`` for none.
        """
        self._inner = inner
        self._policy = policy or RetryPolicy(max_retries=0)
        self._timeout = timeout

    async def _attempt(self, agent: str, action: str, inputs: dict[str, Any]) -> Any:
        if self._timeout is None:
            return await self._inner.invoke(agent, action, inputs)
        try:
            return await asyncio.wait_for(self._inner.invoke(agent, action, inputs), self._timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"{agent}:{action} timed out after {self._timeout}s") from exc

    async def invoke(self, agent: str, action: str, inputs: dict[str, Any]) -> Any:
        executor = RetryExecutor(self._policy)
        return await executor.execute(self._attempt, agent, action, inputs)
