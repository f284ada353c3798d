"""Deterministic stand-ins for the agents of the code-generation pipeline.

They answer every action used by the ``full_cycle`` workflow with fixed,
input-shaped payloads so the pipeline can run end to end without any real
service behind it.
"""

from __future__ import annotations

import re
from typing import Any

from agentchain.agents.base import BaseAgent
from agentchain.core.invoker import ActionHandler

_WORD_RE = re.compile(r"[A-Za-z0-9]+")


def _module_name(prompt: str) -> str:
    words = _WORD_RE.findall(prompt or "")[:3]
    return " ".join(w.capitalize() for w in words) or "Sample Module"


def _slug(name: str) -> str:
    return "_".join(_WORD_RE.findall(name.lower())) or "sample_module"


class ConsultantAgent(BaseAgent):
    """Turns a user prompt into a scope definition."""

    name = "consultant"

    def actions(self) -> dict[str, ActionHandler]:
        return {"analyze_prompt": self.analyze_prompt}

    async def analyze_prompt(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("analyze_prompt", inputs)
        return {
            "scope_definition": {
                "name": _module_name(inputs.get("user_prompt", "")),
                "features": ["Feature 1", "Feature 2"],
                "requirements": ["Req 1", "Req 2"],
            }
        }


class ProjectManagerAgent(BaseAgent):
    """Breaks a scope definition down into a task plan."""

    name = "pm"

    def actions(self) -> dict[str, ActionHandler]:
        return {"create_task_plan": self.create_task_plan}

    async def create_task_plan(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("create_task_plan", inputs)
        scope = inputs.get("scope_definition") or {}
        features = scope.get("features") or ["Feature 1"]
        tasks = [
            {"id": i, "name": f"Task {i}", "description": f"Implement {feature.lower()}"}
            for i, feature in enumerate(features, start=1)
        ]
        return {
            "task_plan": {
                "module": scope.get("name", "Sample Module"),
                "tasks": tasks,
                "dependencies": [[t["id"], t["id"] + 1] for t in tasks[:-1]],
            }
        }


class CodeGeneratorAgent(BaseAgent):
    """Generates a module from a plan and refines it from an error analysis."""

    name = "code_generator"

    def actions(self) -> dict[str, ActionHandler]:
        return {
            "generate_module": self.generate_module,
            "refine_code": self.refine_code,
        }

    async def generate_module(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("generate_module", inputs)
        plan = inputs.get("task_plan") or {}
        return {"generated_code": f"generated/{_slug(plan.get('module', ''))}"}

    async def refine_code(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("refine_code", inputs)
        code_path = inputs.get("code_path") or "generated/sample_module"
        return {"refined_code": code_path.replace("generated/", "refined/", 1)}


class TestRunnerAgent(BaseAgent):
    """Reports a fixed test run with one failure."""

    __test__ = False
    name = "test_runner"

    def actions(self) -> dict[str, ActionHandler]:
        return {"test_module": self.test_module}

    async def test_module(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("test_module", inputs)
        tests = [
            {"name": "Test 1", "status": "PASSED"},
            {"name": "Test 2", "status": "PASSED"},
            {"name": "Test 3", "status": "FAILED", "error": "Expected 3, got 4"},
            {"name": "Test 4", "status": "PASSED"},
            {"name": "Test 5", "status": "PASSED"},
        ]
        failures = sum(1 for t in tests if t["status"] == "FAILED")
        return {
            "test_results": {
                "total": len(tests),
                "passed": len(tests) - failures,
                "failures": failures,
                "tests": tests,
            }
        }


class LinterAgent(BaseAgent):
    """Reports a fixed pair of lint findings."""

    name = "linter"

    def actions(self) -> dict[str, ActionHandler]:
        return {"lint_code": self.lint_code}

    async def lint_code(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("lint_code", inputs)
        return {
            "lint_results": {
                "issues": [
                    {"type": "warning", "location": "module.py:10", "message": "Unused variable"},
                    {"type": "error", "location": "module.py:15", "message": "Missing return type"},
                ]
            }
        }


class ErrorAnalyzerAgent(BaseAgent):
    """Folds test failures and lint findings into one list of suggested fixes."""

    name = "error_analyzer"

    def actions(self) -> dict[str, ActionHandler]:
        return {"analyze_issues": self.analyze_issues}

    async def analyze_issues(self, inputs: dict[str, Any]) -> dict[str, Any]:
        await self._work("analyze_issues", inputs)
        test_results = inputs.get("test_results") or {}
        lint_results = inputs.get("lint_results") or {}

        issues = [
            {
                "type": "test_failure",
                "location": test["name"],
                "description": test.get("error", ""),
                "suggested_fix": "Review the expected value",
            }
            for test in test_results.get("tests", [])
            if test.get("status") == "FAILED"
        ]
        issues.extend(
            {
                "type": f"lint_{issue.get('type', 'issue')}",
                "location": issue.get("location", ""),
                "description": issue.get("message", ""),
                "suggested_fix": f"Fix: {issue.get('message', '').lower()}",
            }
            for issue in lint_results.get("issues", [])
        )
        summary = f"{len(issues)} issue(s) found" if issues else "No issues found"
        return {"error_analysis": {"issues": issues, "summary": summary}}


SIMULATED_AGENTS: tuple[type[BaseAgent], ...] = (
    ConsultantAgent,
    ProjectManagerAgent,
    CodeGeneratorAgent,
    TestRunnerAgent,
    LinterAgent,
    ErrorAnalyzerAgent,
)
