"""Agents reachable through the invoker."""

from agentchain.agents.base import BaseAgent
from agentchain.agents.factory import AgentFactory
from agentchain.agents.simulated import (
    CodeGeneratorAgent,
    ConsultantAgent,
    ErrorAnalyzerAgent,
    LinterAgent,
    ProjectManagerAgent,
    TestRunnerAgent,
)

__all__ = [
    # Base class
    "BaseAgent",
    # Simulated agents
    "ConsultantAgent",
    "ProjectManagerAgent",
    "CodeGeneratorAgent",
    "TestRunnerAgent",
    "LinterAgent",
    "ErrorAnalyzerAgent",
    # Factory
    "AgentFactory",
]
