"""Factory for creating and registering the built-in agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from agentchain.agents.base import BaseAgent
from agentchain.agents.simulated import SIMULATED_AGENTS

if TYPE_CHECKING:
    from agentchain.core.invoker import AgentInvoker

logger = structlog.get_logger(__name__)

# Mapping from agent names to agent classes.
_AGENT_CLASSES: dict[str, type[BaseAgent]] = {cls.name: cls for cls in SIMULATED_AGENTS}


class AgentFactory:
    """Instantiates the built-in agents and registers their actions.

    Usage::

        invoker = AgentInvoker()
        AgentFactory(latency=0.5).register_agents(invoker)

        # Or a single agent on demand:
        agent = AgentFactory.create_agent("linter")
    """

    def __init__(self, latency: float = 0.0) -> None:
        """Initialise the factory.

        Args:
            latency: Seconds each simulated action sleeps before answering.
        """
        self._latency = latency
        self._log = logger.bind(factory="AgentFactory")

    @staticmethod
    def create_agent(agent_name: str, latency: float = 0.0) -> BaseAgent:
        """Instantiate a single agent by name.

        Args:
            agent_name: One of the built-in agent names, e.g. ``"linter"``.
            latency: Seconds each action sleeps before answering.

        Returns:
            The new agent, not yet registered on any invoker.

        Raises:
            ValueError: If ``agent_name`` is not a built-in agent.
        """
        agent_cls = _AGENT_CLASSES.get(agent_name)
        if agent_cls is None:
            available = ", ".join(sorted(_AGENT_CLASSES))
            raise ValueError(
                f"Unknown agent {agent_name!r}. "
                f"Available agents: {available}"
            )
        return agent_cls(latency=latency)

    def register_agents(self, invoker: AgentInvoker) -> None:
        """Create every built-in agent and register its actions on ``invoker``."""
        for agent_name in _AGENT_CLASSES:
            agent = self.create_agent(agent_name, self._latency)
            agent.register(invoker)
            self._log.debug("agent_registered", agent=repr(agent))

        self._log.info("agents_registered", agents=list(_AGENT_CLASSES), actions=len(invoker.actions))
