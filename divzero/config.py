"""Analysis settings."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Knobs for the abstract interpreter.

    max_loop_iterations: passes over a loop body before the loop head is
        widened to ⊤. The sign lattice is finite, so loops normally
        stabilise after a handful of passes.
    known_types_only: only check a division when both operand types are
        known to be integral. By default a division is checked unless an
        operand is known to be floating (or otherwise non-integral).
    """

    max_loop_iterations: int = 64
    known_types_only: bool = False

    def __post_init__(self):
        if self.max_loop_iterations < 1:
            raise ValueError(
                f"max_loop_iterations must be positive, got {self.max_loop_iterations}"
            )
