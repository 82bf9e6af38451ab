# src/logging/context.py — v1
"""Contextual logging support — attach run_id, step and phase to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per run execution.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    step: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        step=_step.get(),
        phase=_phase.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per protocol or synthesis run)."""
    _run_id.set(run_id)


def set_step_context(step: str | None) -> None:
    """Set the step currently executing within a run."""
    _step.set(step)


def set_phase_context(phase: str | None) -> None:
    """Set the synthesis phase currently executing."""
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _step.set(None)
    _phase.set(None)
