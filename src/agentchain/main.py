"""agentchain bootstrap: logging setup and registry wiring."""

from __future__ import annotations

import logging

import structlog

from agentchain.agents.factory import AgentFactory
from agentchain.config import Settings, get_settings
from agentchain.core.definitions import WorkflowCatalog
from agentchain.core.engine import WorkflowEngine
from agentchain.core.invoker import AgentInvoker, Invoker, ResilientInvoker
from agentchain.core.ledger import TaskLedger
from agentchain.core.registry import TaskRegistry
from agentchain.core.retry import RetryPolicy
from agentchain.workflows import builtin_catalog

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog for console or JSON output at ``level``."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper()),
        ),
        cache_logger_on_first_use=False,
    )


def build_invoker(settings: Settings) -> Invoker:
    """Invoker with every simulated agent, wrapped when limits are configured."""
    invoker = AgentInvoker()
    AgentFactory(latency=settings.simulated_latency_seconds).register_agents(invoker)

    if settings.invoke_timeout_seconds is None and settings.invoke_max_retries == 0:
        return invoker
    policy = RetryPolicy(
        max_retries=settings.invoke_max_retries,
        base_delay=settings.invoke_retry_base_delay,
        max_delay=settings.invoke_retry_max_delay,
    )
    return ResilientInvoker(invoker, policy=policy, timeout=settings.invoke_timeout_seconds)


def create_registry(
    settings: Settings | None = None,
    *,
    invoker: Invoker | None = None,
    catalog: WorkflowCatalog | None = None,
) -> TaskRegistry:
    """Create a task registry backed by the configured ledger file.

    Tasks persisted by a previous process are loaded as they were last
    recorded.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)
    ledger = TaskLedger(settings.ledger_path)
    loaded = ledger.load()

    engine = WorkflowEngine(invoker or build_invoker(settings), ledger)
    registry = TaskRegistry(catalog or builtin_catalog(), engine, ledger)

    logger.info(
        "Registry ready",
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        ledger=str(settings.ledger_path) if settings.ledger_path else None,
        tasks_loaded=loaded,
        workflows=registry.catalog.names,
    )
    return registry
