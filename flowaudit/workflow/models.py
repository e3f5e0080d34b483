"""Structured workflow representation consumed by the analysis core.

Steps are tagged variants (ActionStep, CommandStep, UnspecifiedStep) so
analysis code dispatches on the step kind instead of null-checking fields.
"""

from dataclasses import dataclass, field
from typing import Any

from flowaudit.utils.constants import FIRST_PARTY_ACTION_PREFIX, LOCAL_ACTION_PREFIX


@dataclass(frozen=True)
class StepBase:
    """Fields shared by every step kind. index is the 0-based position inside the job."""

    index: int
    name: str | None = None
    step_id: str | None = None
    condition: str | None = None
    env: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionStep(StepBase):
    """A step invoking an external or local action via `uses:`."""

    uses: str = ""
    with_args: dict[str, Any] = field(default_factory=dict)

    @property
    def action_name(self) -> str:
        return self.uses.split("@", 1)[0]

    @property
    def action_ref(self) -> str | None:
        if "@" not in self.uses:
            return None
        return self.uses.split("@", 1)[1]

    @property
    def is_first_party(self) -> bool:
        return self.uses.startswith(FIRST_PARTY_ACTION_PREFIX)

    @property
    def is_local(self) -> bool:
        return self.uses.startswith(LOCAL_ACTION_PREFIX)


@dataclass(frozen=True)
class CommandStep(StepBase):
    """A step running an inline shell command via `run:`."""

    run: str = ""
    shell: str | None = None


@dataclass(frozen=True)
class UnspecifiedStep(StepBase):
    """A step with neither `uses:` nor `run:`."""


Step = ActionStep | CommandStep | UnspecifiedStep


@dataclass(frozen=True)
class Job:
    """One job of a workflow. needs is always a tuple, even when declared as a bare string."""

    job_id: str
    name: str | None = None
    needs: tuple[str, ...] = ()
    condition: str | None = None
    env: dict[str, Any] = field(default_factory=dict)
    strategy: dict[str, Any] | None = None
    runs_on: tuple[str, ...] = ()
    steps: tuple[Step, ...] = ()

    @property
    def has_matrix(self) -> bool:
        return bool(self.strategy) and "matrix" in self.strategy


@dataclass(frozen=True)
class Workflow:
    """Top-level workflow: triggers, permissions, global env and jobs in declared order."""

    name: str
    triggers_spec: Any = None
    permissions: Any = None
    env: dict[str, Any] = field(default_factory=dict)
    jobs: dict[str, Job] = field(default_factory=dict)

    @property
    def job_ids(self) -> list[str]:
        return list(self.jobs)

    def iter_steps(self):
        """Yield (job, step) pairs in declared order."""
        for job in self.jobs.values():
            for step in job.steps:
                yield job, step


@dataclass(frozen=True)
class WorkflowDocument:
    """A parsed workflow plus the raw text it came from and its stable name."""

    name: str
    content: str
    workflow: Workflow
