"""Built-in workflow definitions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agentchain.core.definitions import (
    OutputMappingFn,
    StepDefinition,
    WorkflowCatalog,
    WorkflowDefinition,
)


def _pick(key: str) -> OutputMappingFn:
    def output_mapping(raw: Mapping[str, Any]) -> dict[str, Any]:
        return {key: raw.get(key)}

    return output_mapping


def _has_issues(prior: Mapping[str, Any]) -> bool:
    test_results = (prior.get("run_tests") or {}).get("test_results") or {}
    lint_results = (prior.get("lint_code") or {}).get("lint_results") or {}
    return test_results.get("failures", 0) > 0 or len(lint_results.get("issues", [])) > 0


def _has_error_analysis(prior: Mapping[str, Any]) -> bool:
    # analyze_errors is absent from prior results when it was skipped
    return bool((prior.get("analyze_errors") or {}).get("error_analysis"))


def full_cycle() -> WorkflowDefinition:
    """Prompt to refined module: analyze, plan, generate, test, lint, fix."""
    return WorkflowDefinition(
        name="full_cycle",
        description="Generate a module from a prompt, verify it, and refine it when issues are found",
        steps=[
            StepDefinition(
                name="analyze_requirements",
                agent="consultant",
                action="analyze_prompt",
                inputs=lambda params, prior: {"user_prompt": params["user_prompt"]},
                output_mapping=_pick("scope_definition"),
            ),
            StepDefinition(
                name="decompose_tasks",
                agent="pm",
                action="create_task_plan",
                inputs=lambda params, prior: {
                    "scope_definition": prior["analyze_requirements"]["scope_definition"],
                },
                output_mapping=_pick("task_plan"),
            ),
            StepDefinition(
                name="generate_code",
                agent="code_generator",
                action="generate_module",
                inputs=lambda params, prior: {"task_plan": prior["decompose_tasks"]["task_plan"]},
                output_mapping=_pick("generated_code"),
            ),
            StepDefinition(
                name="run_tests",
                agent="test_runner",
                action="test_module",
                inputs=lambda params, prior: {"code_path": prior["generate_code"]["generated_code"]},
                output_mapping=_pick("test_results"),
            ),
            StepDefinition(
                name="lint_code",
                agent="linter",
                action="lint_code",
                inputs=lambda params, prior: {"code_path": prior["generate_code"]["generated_code"]},
                output_mapping=_pick("lint_results"),
            ),
            StepDefinition(
                name="analyze_errors",
                agent="error_analyzer",
                action="analyze_issues",
                inputs=lambda params, prior: {
                    "test_results": prior["run_tests"]["test_results"],
                    "lint_results": prior["lint_code"]["lint_results"],
                },
                output_mapping=_pick("error_analysis"),
                condition=_has_issues,
            ),
            StepDefinition(
                name="refine_code",
                agent="code_generator",
                action="refine_code",
                inputs=lambda params, prior: {
                    "code_path": prior["generate_code"]["generated_code"],
                    "error_analysis": prior["analyze_errors"]["error_analysis"],
                },
                output_mapping=_pick("refined_code"),
                condition=_has_error_analysis,
            ),
        ],
    )


BUILTIN_WORKFLOWS = (full_cycle,)


def builtin_catalog() -> WorkflowCatalog:
    """A catalog holding every built-in workflow."""
    return WorkflowCatalog([factory() for factory in BUILTIN_WORKFLOWS])
