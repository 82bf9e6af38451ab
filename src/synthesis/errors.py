# src/synthesis/errors.py — v1
"""Synthesis error types."""

from __future__ import annotations

INNER_MESSAGE_LIMIT = 200


class SectionEmptyError(Exception):
    """Raised when a drafted section has no meaningful content."""

    def __init__(self, section: str):
        self.section = section
        super().__init__(f"Section '{section}' is empty or invalid")


class SynthesisPhaseError(Exception):
    """A synthesis phase failed. Carries the phase context for diagnosis."""

    def __init__(
        self,
        run_id: str,
        phase: str,
        method: str,
        step_codes_seen: list[str],
        inner: str,
    ):
        self.run_id = run_id
        self.phase = phase
        self.method = method
        self.step_codes_seen = list(step_codes_seen)
        self.inner = inner[:INNER_MESSAGE_LIMIT]
        super().__init__(
            f"Synthesis failed for run {run_id} in phase '{phase}' ({method}): {self.inner}"
        )
