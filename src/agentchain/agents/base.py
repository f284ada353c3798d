"""Base agent interface."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from agentchain.core.invoker import ActionHandler

if TYPE_CHECKING:
    from agentchain.core.invoker import AgentInvoker

logger = structlog.get_logger(__name__)


class BaseAgent(ABC):
    """A named worker that exposes one or more actions.

    Subclasses set :attr:`name` and return their action handlers from
    :meth:`actions`. Each handler receives the step's input map and returns a
    result map. :meth:`register` publishes every action on an invoker under
    ``(name, action)``.
    """

    name: ClassVar[str] = ""

    def __init__(self, latency: float = 0.0) -> None:
        self._latency = latency
        self._log = logger.bind(agent=self.name)

    @abstractmethod
    def actions(self) -> dict[str, ActionHandler]:
        """Return the mapping of action name to handler."""
        ...

    def register(self, invoker: AgentInvoker) -> None:
        """Register every action of this agent on ``invoker``.

        Args:
            invoker: Invoker the handlers are added to, keyed by
                ``(name, action)``.
        """
        for action, handler in self.actions().items():
            invoker.register(self.name, action, handler)

    async def _work(self, action: str, inputs: dict[str, Any]) -> None:
        """Stand in for the round trip to the real service."""
        self._log.debug("action_invoked", action=action, inputs=sorted(inputs))
        if self._latency:
            await asyncio.sleep(self._latency)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
