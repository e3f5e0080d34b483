"""Execution context: when and under which gates each job and step can run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flowaudit.utils.constants import (
    EXPRESSION_MARKER,
    HOSTED_RUNNER_PREFIXES,
    PRIVILEGED_TRIGGERS,
    RUNS_ON_MARKER,
    SECRET_MARKERS,
    SELF_HOSTED_MARKER,
)
from flowaudit.utils.logging import logger
from flowaudit.workflow.models import ActionStep, Job, Workflow


class RiskLevel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFORMATIONAL = "informational"


@dataclass(frozen=True)
class EnvironmentalFactors:
    """Workflow-wide properties that raise or lower the impact of a finding."""

    has_secrets: bool = False
    has_privileged_trigger: bool = False
    has_external_actions: bool = False
    has_self_hosted: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "hasSecrets": self.has_secrets,
            "hasPrivilegedTrigger": self.has_privileged_trigger,
            "hasExternalActions": self.has_external_actions,
            "hasSelfHosted": self.has_self_hosted,
        }


@dataclass(frozen=True)
class ExecutionContext:
    """Triggers, per-location gating conditions and environmental factors.

    conditions is keyed by job id for job-level gates and by
    "<job>.<stepIndex>" for step-level gates. Step entries already include
    the enclosing job's gates.
    """

    triggers: tuple[str, ...] = ()
    conditions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    factors: EnvironmentalFactors = field(default_factory=EnvironmentalFactors)

    def conditions_for(self, job: str | None, step: int | None = None) -> tuple[str, ...]:
        if job is None:
            return ()
        if step is not None:
            key = f"{job}.{step}"
            if key in self.conditions:
                return self.conditions[key]
        return self.conditions.get(job, ())

    @property
    def conditional_jobs(self) -> int:
        """Jobs carrying any gate (own `if`, env expression or matrix)."""
        return sum(1 for key, gates in self.conditions.items() if "." not in key and gates)

    def has_trigger(self, names) -> bool:
        return any(trigger in names for trigger in self.triggers)


def normalize_triggers(triggers_spec: Any) -> tuple[str, ...]:
    """Trigger names from an `on:` value given as a string, list or mapping."""
    if not triggers_spec:
        return ()
    if isinstance(triggers_spec, str):
        return (triggers_spec,)
    if isinstance(triggers_spec, list):
        return tuple(str(t) for t in triggers_spec)
    if isinstance(triggers_spec, dict):
        return tuple(str(t) for t in triggers_spec)
    return ()


def job_conditions(job: Job) -> list[str]:
    """Own `if`, then env entries driven by expressions, then the matrix."""
    gates: list[str] = []
    if job.condition:
        gates.append(job.condition)

    for key, value in job.env.items():
        if EXPRESSION_MARKER in str(value):
            gates.append(f"env.{key} dependency")

    if job.has_matrix:
        gates.append("matrix strategy")
    return gates


def detect_self_hosted(content: str) -> bool:
    if SELF_HOSTED_MARKER in content:
        return True
    # runs-on present but naming none of the hosted images
    return RUNS_ON_MARKER in content and not any(prefix in content for prefix in HOSTED_RUNNER_PREFIXES)


def build_execution_context(workflow: Workflow, content: str) -> ExecutionContext:
    """Derive the execution context of one workflow."""
    triggers = normalize_triggers(workflow.triggers_spec)

    conditions: dict[str, tuple[str, ...]] = {}
    for job_id, job in workflow.jobs.items():
        gates = job_conditions(job)
        conditions[job_id] = tuple(gates)
        for step in job.steps:
            step_gates = list(gates)
            if step.condition:
                step_gates.append(step.condition)
            conditions[f"{job_id}.{step.index}"] = tuple(step_gates)

    has_external_actions = any(
        isinstance(step, ActionStep) and not step.is_first_party and not step.is_local
        for _, step in workflow.iter_steps()
    )

    factors = EnvironmentalFactors(
        has_secrets=any(marker in content for marker in SECRET_MARKERS),
        has_privileged_trigger=any(t in PRIVILEGED_TRIGGERS for t in triggers),
        has_external_actions=has_external_actions,
        has_self_hosted=detect_self_hosted(content),
    )
    logger.debug(f"Execution context: triggers={list(triggers)} {factors.to_dict()}")

    return ExecutionContext(triggers=triggers, conditions=conditions, factors=factors)
