"""Tests for expression heuristics and the reachability evaluator."""

import pytest

from flowaudit.reachability.context import EnvironmentalFactors, ExecutionContext, RiskLevel
from flowaudit.reachability.evaluator import ReachabilityInfo, evaluate_reachability
from flowaudit.reachability.heuristics import (
    analyze_path_sensitivity,
    extract_expression_spans,
    looks_always_false,
    split_top_level,
)
from flowaudit.rules.base import Category


def make_context(triggers=("push",), conditions=None, **factors):
    return ExecutionContext(
        triggers=tuple(triggers),
        conditions=conditions or {},
        factors=EnvironmentalFactors(**factors),
    )


PRIVILEGED = {"has_privileged_trigger": True}


# ============================================================================
# Heuristics
# ============================================================================


class TestLooksAlwaysFalse:
    """Gates that can never open under normal execution."""

    @pytest.mark.parametrize("condition", [
        "false",
        "${{ false }}",
        "0",
        "''",
        "!true",
        "(false)",
        "github.ref == 'refs/heads/main' && false",
        "${{ github.actor == 'bot' && (false) }}",
        "cancelled()",
        "${{ cancelled() }}",
        False,
    ])
    def test_always_false(self, condition):
        assert looks_always_false(condition)

    @pytest.mark.parametrize("condition", [
        None,
        "",
        "true",
        True,
        "success()",
        "cancelled() || failure()",
        "!cancelled()",
        "contains(github.ref, 'false')",
        "github.event_name == 'push' || false",
        "matrix strategy",
    ])
    def test_not_always_false(self, condition):
        assert not looks_always_false(condition)

    def test_split_top_level_respects_parens_and_quotes(self):
        assert split_top_level("a && (b && c) && 'x && y'", "&&") == ["a", "(b && c)", "'x && y'"]


class TestPathSensitivity:
    """Input origins and data-flow paths."""

    def test_expression_spans(self):
        text = "echo ${{ github.event.issue.title }} and ${{ env.X }}"
        assert extract_expression_spans(text) == ["${{ github.event.issue.title }}", "${{ env.X }}"]
        assert extract_expression_spans(None) == []

    def test_event_and_ref_sources(self, make_finding):
        content = "run: echo ${{ github.event.pull_request.title }} ${{ github.head_ref }}"
        result = analyze_path_sensitivity(content, make_finding())

        assert result.sensitive_to_input
        assert result.input_sources == ("github.event", "git references")
        assert result.data_flow_paths == ()

    def test_output_flows_do_not_mark_sensitive(self, make_finding):
        content = "${{ steps.v.outputs.version }} ${{ needs.build.outputs.sha }}"
        result = analyze_path_sensitivity(content, make_finding())

        assert not result.sensitive_to_input
        assert result.input_sources == ("step outputs", "job outputs")
        assert result.data_flow_paths == (
            "step outputs -> current context",
            "job outputs -> current context",
        )

    def test_injection_flow_from_description(self, make_finding):
        finding = make_finding(
            title="Potential Expression Injection",
            description="Untrusted ${{ github.event.issue.title }} used in run; ${{ env.SAFE }} is fine",
        )
        result = analyze_path_sensitivity("on: issues", finding)
        assert result.data_flow_paths == ("${{ github.event.issue.title }} -> direct injection point",)

    def test_to_dict(self, make_finding):
        result = analyze_path_sensitivity("github.event.x", make_finding())
        assert result.to_dict() == {
            "sensitiveToInput": True,
            "inputSources": ["github.event"],
            "dataFlowPaths": [],
        }


# ============================================================================
# Evaluator
# ============================================================================


class TestTriggerRisk:
    """Baseline risk for security findings."""

    def test_push_without_secrets_is_low(self, make_finding):
        context = make_context(conditions={"build": ("github.event_name == 'push'",)})
        info = evaluate_reachability(make_finding(job="build"), context)

        assert info.is_reachable
        assert info.risk_level is RiskLevel.LOW
        assert info.required_conditions == ("github.event_name == 'push'",)
        assert info.trigger_contexts == ("push",)
        assert info.mitigating_factors == (
            "Requires conditions: github.event_name == 'push'",
            "No secrets in workflow",
            "No privileged triggers",
        )

    def test_public_trigger_with_secrets_is_medium(self, make_finding):
        info = evaluate_reachability(make_finding(), make_context(has_secrets=True))
        assert info.risk_level is RiskLevel.MEDIUM
        assert info.mitigating_factors == ("No privileged triggers",)

    def test_privileged_trigger_is_high(self, make_finding):
        context = make_context(triggers=("pull_request_target",), has_secrets=True, **PRIVILEGED)
        info = evaluate_reachability(make_finding(), context)

        assert info.risk_level is RiskLevel.HIGH
        assert info.mitigating_factors == ()

    def test_unclassified_trigger_is_low(self, make_finding):
        info = evaluate_reachability(make_finding(), make_context(triggers=("release",), has_secrets=True))
        assert info.risk_level is RiskLevel.LOW

    def test_non_security_finding_keeps_default_risk(self, make_finding):
        finding = make_finding(category=Category.PERFORMANCE)
        info = evaluate_reachability(finding, make_context(triggers=("pull_request_target",), **PRIVILEGED))
        assert info.risk_level is RiskLevel.MEDIUM

    def test_finding_without_location_has_no_conditions(self, make_finding):
        context = make_context(conditions={"build": ("success()",)})
        info = evaluate_reachability(make_finding(), context)
        assert info.required_conditions == ()


class TestTitleRules:
    """Finding-kind refinements."""

    def test_hardcoded_secret(self, make_finding):
        finding = make_finding(title="Hardcoded Secret Detected")
        assert evaluate_reachability(finding, make_context()).risk_level is RiskLevel.MEDIUM
        privileged = make_context(triggers=("workflow_run",), **PRIVILEGED)
        assert evaluate_reachability(finding, privileged).risk_level is RiskLevel.HIGH

    def test_title_match_is_case_insensitive(self, make_finding):
        finding = make_finding(title="HARDCODED API key DETECTED")
        assert evaluate_reachability(finding, make_context()).risk_level is RiskLevel.MEDIUM

    def test_expression_injection_with_event_condition(self, make_finding):
        finding = make_finding(title="Potential Expression Injection", job="build")
        context = make_context(conditions={"build": ("github.event.action == 'opened'",)})
        assert evaluate_reachability(finding, context).risk_level is RiskLevel.HIGH

    def test_expression_injection_with_other_condition(self, make_finding):
        finding = make_finding(title="Potential Expression Injection", job="build")
        context = make_context(conditions={"build": ("github.ref == 'refs/heads/main'",)})
        info = evaluate_reachability(finding, context)

        assert info.risk_level is RiskLevel.MEDIUM
        assert info.mitigating_factors[0] == "Conditional execution reduces risk"

    def test_expression_injection_without_conditions_keeps_trigger_risk(self, make_finding):
        finding = make_finding(title="Potential Expression Injection")
        assert evaluate_reachability(finding, make_context()).risk_level is RiskLevel.LOW

    def test_dangerous_checkout(self, make_finding):
        finding = make_finding(title="Dangerous Checkout with Privileged Trigger")

        unreachable = evaluate_reachability(finding, make_context())
        assert not unreachable.is_reachable
        assert unreachable.risk_level is RiskLevel.INFORMATIONAL

        reachable = evaluate_reachability(finding, make_context(triggers=("pull_request_target",), **PRIVILEGED))
        assert reachable.is_reachable
        assert reachable.risk_level is RiskLevel.HIGH

    def test_third_party_action(self, make_finding):
        finding = make_finding(title="Third-party Action Usage")

        low = evaluate_reachability(finding, make_context())
        assert low.risk_level is RiskLevel.LOW
        assert low.mitigating_factors[0] == "Limited trigger context"

        medium = evaluate_reachability(finding, make_context(triggers=("workflow_run",), **PRIVILEGED))
        assert medium.risk_level is RiskLevel.MEDIUM

    def test_self_hosted_runner(self, make_finding):
        finding = make_finding(title="Self-hosted Runner Detected")
        info = evaluate_reachability(finding, make_context(triggers=("release",)))

        assert info.is_reachable
        assert info.risk_level is RiskLevel.MEDIUM

    def test_overly_permissive_permissions(self, make_finding):
        finding = make_finding(title="Overly Permissive Workflow Permissions")

        low = evaluate_reachability(finding, make_context())
        assert low.risk_level is RiskLevel.LOW
        assert low.mitigating_factors[0] == "No external actions detected"

        medium = evaluate_reachability(finding, make_context(has_external_actions=True))
        assert medium.risk_level is RiskLevel.MEDIUM


class TestAlwaysFalseGates:
    """Gates that never open override every other rule."""

    @pytest.mark.parametrize("gate", ["false", "${{ false }}", "cancelled()"])
    def test_unreachable_even_under_privileged_trigger(self, make_finding, gate):
        finding = make_finding(title="Hardcoded Secret Detected", job="build")
        context = make_context(triggers=("pull_request_target",), conditions={"build": (gate,)}, **PRIVILEGED)
        info = evaluate_reachability(finding, context)

        assert not info.is_reachable
        assert info.risk_level is RiskLevel.INFORMATIONAL

    def test_step_gate_makes_only_that_step_unreachable(self, make_finding):
        context = make_context(conditions={
            "build": (),
            "build.0": (),
            "build.1": ("false",),
        })
        assert evaluate_reachability(make_finding(job="build", step=0), context).is_reachable
        assert not evaluate_reachability(make_finding(job="build", step=1), context).is_reachable


class TestReachabilityInfo:
    """Verdict value semantics."""

    def test_step_conditions_are_not_duplicated(self, make_finding):
        context = make_context(conditions={
            "build": ("github.ref == 'refs/heads/main'",),
            "build.0": ("github.ref == 'refs/heads/main'", "success()"),
        })
        info = evaluate_reachability(make_finding(job="build", step=0), context)
        assert info.required_conditions == ("github.ref == 'refs/heads/main'", "success()")

    def test_with_required_condition_returns_new_value(self):
        info = ReachabilityInfo(required_conditions=("a",))
        extended = info.with_required_condition("b")

        assert extended.required_conditions == ("a", "b")
        assert info.required_conditions == ("a",)

    def test_evaluation_is_deterministic(self, make_finding):
        context = make_context(conditions={"build": ("success()",)}, has_secrets=True)
        finding = make_finding(job="build")
        assert evaluate_reachability(finding, context) == evaluate_reachability(finding, context)

    def test_to_dict(self):
        info = ReachabilityInfo(
            is_reachable=False,
            risk_level=RiskLevel.INFORMATIONAL,
            required_conditions=("false",),
            trigger_contexts=("push",),
            mitigating_factors=("No secrets in workflow",),
        )
        assert info.to_dict() == {
            "isReachable": False,
            "riskLevel": "informational",
            "requiredConditions": ["false"],
            "triggerContexts": ["push"],
            "mitigatingFactors": ["No secrets in workflow"],
        }
