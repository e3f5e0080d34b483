"""Reachability evaluation for security findings.

Decides, for one finding in one execution context, whether the flagged
code can run and how exposed it is when it does. Title-specific rules are
table driven: each entry pairs a case-insensitive pattern with the function
that refines the verdict for findings of that kind.
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Callable

from flowaudit.rules.base import Category
from flowaudit.utils.constants import PRIVILEGED_TRIGGERS, PUBLIC_TRIGGERS
from flowaudit.workflow.models import Workflow

from .context import ExecutionContext, RiskLevel
from .heuristics import looks_always_false


@dataclass(frozen=True)
class ReachabilityInfo:
    """Verdict for one finding. Never mutated; derive new values with the with_* helpers."""

    is_reachable: bool = True
    risk_level: RiskLevel = RiskLevel.MEDIUM
    required_conditions: tuple[str, ...] = ()
    trigger_contexts: tuple[str, ...] = ()
    mitigating_factors: tuple[str, ...] = ()

    def with_required_condition(self, condition: str) -> "ReachabilityInfo":
        return replace(self, required_conditions=self.required_conditions + (condition,))

    def to_dict(self) -> dict[str, Any]:
        return {
            "isReachable": self.is_reachable,
            "riskLevel": self.risk_level.value,
            "requiredConditions": list(self.required_conditions),
            "triggerContexts": list(self.trigger_contexts),
            "mitigatingFactors": list(self.mitigating_factors),
        }


@dataclass
class _Verdict:
    """Mutable scratch state while the rules run; frozen into ReachabilityInfo at the end."""

    is_reachable: bool
    risk_level: RiskLevel
    conditions: list[str]
    mitigations: list[str]


def _hardcoded(verdict: _Verdict, context: ExecutionContext) -> None:
    verdict.is_reachable = True
    verdict.risk_level = RiskLevel.HIGH if context.factors.has_privileged_trigger else RiskLevel.MEDIUM


def _expression_injection(verdict: _Verdict, context: ExecutionContext) -> None:
    if any("github.event" in c for c in verdict.conditions):
        verdict.risk_level = RiskLevel.HIGH
    elif verdict.conditions:
        verdict.risk_level = RiskLevel.MEDIUM
        verdict.mitigations.append("Conditional execution reduces risk")


def _privileged_checkout(verdict: _Verdict, context: ExecutionContext) -> None:
    verdict.is_reachable = context.has_trigger(PRIVILEGED_TRIGGERS)
    verdict.risk_level = RiskLevel.HIGH if verdict.is_reachable else RiskLevel.INFORMATIONAL


def _third_party_action(verdict: _Verdict, context: ExecutionContext) -> None:
    if context.factors.has_privileged_trigger:
        verdict.risk_level = RiskLevel.MEDIUM
    else:
        verdict.risk_level = RiskLevel.LOW
        verdict.mitigations.append("Limited trigger context")


def _self_hosted_runner(verdict: _Verdict, context: ExecutionContext) -> None:
    verdict.is_reachable = True
    verdict.risk_level = RiskLevel.HIGH if context.factors.has_privileged_trigger else RiskLevel.MEDIUM


def _permissive_permissions(verdict: _Verdict, context: ExecutionContext) -> None:
    if context.factors.has_external_actions:
        verdict.risk_level = RiskLevel.MEDIUM
    else:
        verdict.risk_level = RiskLevel.LOW
        verdict.mitigations.append("No external actions detected")


TITLE_RULES: tuple[tuple[re.Pattern, Callable[[_Verdict, ExecutionContext], None]], ...] = (
    (re.compile(r"hardcoded\b.*\bdetected", re.IGNORECASE), _hardcoded),
    (re.compile(r"potential expression injection", re.IGNORECASE), _expression_injection),
    (re.compile(r"dangerous checkout with privileged trigger", re.IGNORECASE), _privileged_checkout),
    (re.compile(r"third-party action usage", re.IGNORECASE), _third_party_action),
    (re.compile(r"self-hosted runner detected", re.IGNORECASE), _self_hosted_runner),
    (re.compile(r"overly permissive workflow permissions", re.IGNORECASE), _permissive_permissions),
)


def _trigger_risk(context: ExecutionContext) -> RiskLevel:
    if context.has_trigger(PRIVILEGED_TRIGGERS):
        return RiskLevel.HIGH
    if context.has_trigger(PUBLIC_TRIGGERS):
        return RiskLevel.MEDIUM if context.factors.has_secrets else RiskLevel.LOW
    return RiskLevel.LOW


def evaluate_reachability(finding, context: ExecutionContext, workflow: Workflow | None = None) -> ReachabilityInfo:
    """
    Determine reachability and risk level for one finding.

    Args:
        finding: Raw finding; only its category, title and location are read
        context: Execution context of the finding's workflow
        workflow: The parsed workflow (reserved for rules needing job data)

    Returns:
        A fresh ReachabilityInfo
    """
    location = finding.location
    conditions = list(context.conditions_for(location.job, location.step)) if location else []

    verdict = _Verdict(is_reachable=True, risk_level=RiskLevel.MEDIUM, conditions=conditions, mitigations=[])

    if finding.category is Category.SECURITY:
        verdict.risk_level = _trigger_risk(context)

    title = str(finding.title or "")
    for pattern, rule in TITLE_RULES:
        if pattern.search(title):
            rule(verdict, context)
            break

    if verdict.conditions:
        verdict.mitigations.append(f"Requires conditions: {', '.join(verdict.conditions)}")
    if not context.factors.has_secrets:
        verdict.mitigations.append("No secrets in workflow")
    if not context.factors.has_privileged_trigger:
        verdict.mitigations.append("No privileged triggers")

    # A gate that can never open overrides everything above
    if any(looks_always_false(c) for c in verdict.conditions):
        verdict.is_reachable = False
        verdict.risk_level = RiskLevel.INFORMATIONAL

    return ReachabilityInfo(
        is_reachable=verdict.is_reachable,
        risk_level=verdict.risk_level,
        required_conditions=tuple(verdict.conditions),
        trigger_contexts=context.triggers,
        mitigating_factors=tuple(verdict.mitigations),
    )
