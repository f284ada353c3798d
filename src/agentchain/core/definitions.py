"""Declarative workflow definitions and the catalog that names them."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from agentchain.core.exceptions import UnknownWorkflowError, ValidationError

logger = structlog.get_logger(__name__)

InputsFn = Callable[[Mapping[str, Any], Mapping[str, Any]], dict[str, Any]]
OutputMappingFn = Callable[[Any], dict[str, Any]]
ConditionFn = Callable[[Mapping[str, Any]], bool]


def pass_params(params: Mapping[str, Any], prior: Mapping[str, Any]) -> dict[str, Any]:
    """Default ``inputs``: hand the caller's params to the agent unchanged."""
    return dict(params)


def identity_mapping(raw: Any) -> dict[str, Any]:
    """Default ``output_mapping``: keep dict results, wrap anything else."""
    if isinstance(raw, Mapping):
        return dict(raw)
    return {"result": raw}


# ---------------------------------------------------------------------------
# Workflow definition (input)
# ---------------------------------------------------------------------------

@dataclass
class StepDefinition:
    """Definition of a single step within a workflow.

    ``inputs`` receives the task's params and the results accumulated by prior
    steps of the same run, keyed by step name. ``condition`` receives the same
    accumulated results; a skipped step has no entry there, so conditions that
    look at optional steps must handle the missing key themselves.
    """

    name: str
    agent: str
    action: str
    inputs: InputsFn = pass_params
    output_mapping: OutputMappingFn = identity_mapping
    condition: ConditionFn | None = None
    description: str = ""


@dataclass
class WorkflowDefinition:
    """Declarative definition of a workflow and its steps."""

    name: str = ""
    description: str = ""
    steps: list[StepDefinition] = field(default_factory=list)

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def validate(self) -> list[str]:
        """Return a list of validation error messages. Empty if valid."""
        errors: list[str] = []
        if not self.name:
            errors.append("Workflow name is required")
        if not self.steps:
            errors.append("Workflow must have at least one step")
        seen: set[str] = set()
        for i, step in enumerate(self.steps):
            if not step.name:
                errors.append(f"Step {i} is missing name")
            elif step.name in seen:
                errors.append(f"Step name '{step.name}' is not unique")
            seen.add(step.name)
            if not step.agent:
                errors.append(f"Step {i} is missing agent")
            if not step.action:
                errors.append(f"Step {i} is missing action")
        return errors

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> WorkflowDefinition:
        """Build a definition from plain data.

        Each step may declare ``inputs`` (input key -> dotted path looked up in
        ``params`` or in a prior step's output), ``outputs`` (keys to keep from
        the raw agent result) and ``when`` (dotted path into prior results that
        must be truthy for the step to run)::

            {
                "name": "review",
                "steps": [
                    {"name": "lint", "agent": "linter", "action": "lint_code",
                     "inputs": {"code_path": "params.path"},
                     "outputs": ["lint_issues"]},
                    {"name": "fix", "agent": "fixer", "action": "fix",
                     "inputs": {"issues": "lint.lint_issues"},
                     "when": "lint.lint_issues"},
                ],
            }

        Raises:
            ValidationError: If the structure is malformed.
        """
        steps_raw = raw.get("steps", [])
        if not isinstance(steps_raw, list):
            raise ValidationError(["'steps' must be a list"])

        steps = []
        for i, s in enumerate(steps_raw):
            if not isinstance(s, Mapping):
                raise ValidationError([f"Step {i} must be a mapping"])
            inputs = s.get("inputs")
            outputs = s.get("outputs")
            when = s.get("when")
            if inputs is not None and not isinstance(inputs, Mapping):
                raise ValidationError([f"Step {i}: 'inputs' must be a mapping"])
            if outputs is not None and not isinstance(outputs, list):
                raise ValidationError([f"Step {i}: 'outputs' must be a list"])
            steps.append(
                StepDefinition(
                    name=s.get("name", ""),
                    agent=s.get("agent", ""),
                    action=s.get("action", ""),
                    inputs=_path_inputs(dict(inputs)) if inputs is not None else pass_params,
                    output_mapping=_pick_outputs(list(outputs)) if outputs is not None else identity_mapping,
                    condition=_path_condition(when) if when else None,
                    description=s.get("description", ""),
                )
            )

        return cls(
            name=raw.get("name", ""),
            description=raw.get("description", ""),
            steps=steps,
        )


# ---------------------------------------------------------------------------
# Dotted-path helpers for declarative steps
# ---------------------------------------------------------------------------

def resolve_path(data: Mapping[str, Any], path: str) -> Any:
    """Look up ``a.b.c`` in nested mappings; missing segments yield None."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def _path_inputs(paths: dict[str, str]) -> InputsFn:
    def inputs(params: Mapping[str, Any], prior: Mapping[str, Any]) -> dict[str, Any]:
        scope = {**prior, "params": params}
        return {key: resolve_path(scope, path) for key, path in paths.items()}

    return inputs


def _pick_outputs(keys: list[str]) -> OutputMappingFn:
    def output_mapping(raw: Any) -> dict[str, Any]:
        source = identity_mapping(raw)
        return {key: source[key] for key in keys if key in source}

    return output_mapping


def _path_condition(path: str) -> ConditionFn:
    def condition(prior: Mapping[str, Any]) -> bool:
        return bool(resolve_path(prior, path))

    return condition


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class WorkflowCatalog:
    """Registry mapping workflow names to their definitions."""

    def __init__(self, definitions: list[WorkflowDefinition] | None = None) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: WorkflowDefinition) -> None:
        """Add a definition, replacing any previous one of the same name.

        Raises:
            ValidationError: If the definition is invalid.
        """
        errors = definition.validate()
        if errors:
            raise ValidationError(errors)
        self._definitions[definition.name] = definition
        logger.debug("workflow_registered", workflow=definition.name, steps=len(definition.steps))

    def get(self, name: str) -> WorkflowDefinition:
        """Return the named definition.

        Raises:
            UnknownWorkflowError: If no workflow has that name.
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownWorkflowError(name)
        return definition

    def has(self, name: str) -> bool:
        return name in self._definitions

    @property
    def names(self) -> list[str]:
        return list(self._definitions.keys())
