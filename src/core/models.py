# src/core/models.py — v1
"""Core domain models: Entity, Run, StepResult, Citation, Section, SynthesisBundle.

Run status is a one-way state machine: pending → running → completed|failed.
Once terminal, only the cost-reconciliation fields may change.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

RunStatus = Literal["pending", "running", "completed", "failed"]
StepStatus = Literal["completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"running", "failed"}),
    "running": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}

# Fields a terminal run may still update (cost reconciliation).
RECONCILIATION_FIELDS: frozenset[str] = frozenset(
    {"actual_tokens", "actual_cost", "estimated_tokens", "estimated_cost"}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunStateError(Exception):
    """Raised on an illegal run status transition or terminal-run mutation."""


class Entity(BaseModel):
    """A business entity analysed by the protocol."""

    id: str
    name: str
    website: str = ""
    sector: str = ""


class Run(BaseModel):
    """One protocol execution against a primary (and optional secondary) entity."""

    id: str
    primary_entity_id: str
    secondary_entity_id: str | None = None
    status: RunStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    estimated_tokens: int = 0
    estimated_cost: float = 0.0
    actual_tokens: int = 0
    actual_cost: float = 0.0
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_comparative(self) -> bool:
        return bool(self.secondary_entity_id)

    def check_replacement(self, updated: Run) -> None:
        """Reject a replacement of a terminal run that changes more than costs.

        Raises:
            RunStateError: If a non-reconciliation field would change.
        """
        if not self.is_terminal:
            return
        changed = sorted(
            name for name in type(self).model_fields
            if getattr(self, name) != getattr(updated, name)
        )
        illegal = [name for name in changed if name not in RECONCILIATION_FIELDS]
        if illegal:
            raise RunStateError(
                f"Run {self.id} is {self.status}; cannot change {', '.join(illegal)}"
            )

    def transition(self, status: RunStatus, error: str | None = None) -> None:
        """Move the run to a new status, enforcing the one-way state machine.

        Raises:
            RunStateError: If the transition is not allowed.
        """
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise RunStateError(
                f"Run {self.id}: illegal transition {self.status} -> {status}"
            )
        self.status = status
        if status == "running":
            self.started_at = _utcnow()
        else:
            self.completed_at = _utcnow()
            if self.started_at is None:
                self.started_at = self.completed_at
        if error is not None:
            self.error = error


class Citation(BaseModel):
    """Canonical citation. domain is always derived from url."""

    url: str
    domain: str
    title: str = ""
    snippet: str = ""
    published_at: str | None = None
    type: str | None = None


class ResolvedCitation(Citation):
    """Citation enriched during synthesis (stable id, score, provenance)."""

    id: str
    fingerprint: str
    confidence: float = 0.0
    step_codes: list[str] = Field(default_factory=list)


class StepResult(BaseModel):
    """Outcome of one step in one run. Unique per (run_id, step_code)."""

    run_id: str
    step_code: str
    status: StepStatus
    payload: dict[str, Any] = Field(default_factory=dict)
    citations: list[Any] = Field(default_factory=list)
    duration_ms: int = 0
    tokens_used: int = 0
    attempts: int = 0
    repaired: bool = False
    placeholder: bool = False
    updated_at: datetime = Field(default_factory=_utcnow)


class Section(BaseModel):
    """Named narrative unit of the synthesis bundle."""

    name: str
    content: str | list[Any] | dict[str, Any]
    fallback: bool = False
    fallback_reason: str | None = None


class SynthesisBundle(BaseModel):
    """Single output artifact of the synthesis engine for one run."""

    run_id: str
    sections: dict[str, Section] = Field(default_factory=dict)
    voice_report: dict[str, Any] = Field(default_factory=dict)
    selfcheck_report: dict[str, Any] = Field(default_factory=dict)
    citations: list[ResolvedCitation] = Field(default_factory=list)
    diversity: dict[str, Any] = Field(default_factory=dict)
    rendered_text: str = ""
    rendered_json: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
