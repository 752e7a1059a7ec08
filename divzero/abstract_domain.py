# divzero/abstract_domain.py
"""
Sign lattice for divide-by-zero analysis.

This module provides:
- Sign: the six-point abstract domain for the sign / zero-ness of a number
- top, bottom, join, meet, leq: the lattice operations as plain functions

Lattice order ("is at least as precise as")::

              ⊤
            /   \\
          ≠0     \\
         /  \\     \\
        +    -     0
         \\   |    /
             ⊥
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable


class Sign(Enum):
    """Abstract sign of an integer (or floating) expression."""

    TOP = "⊤"  # Unknown/any value
    BOTTOM = "⊥"  # Impossible/no value
    ZERO = "0"  # Exactly zero
    NON_ZERO = "≠0"  # Non-zero
    POSITIVE = "+"  # Strictly positive
    NEGATIVE = "-"  # Strictly negative

    # Constructors ------------------------------------------------------------

    @classmethod
    def const(cls, n: int | float) -> "Sign":
        """Abstract a single concrete number."""
        if n == 0:
            return cls.ZERO
        if n > 0:
            return cls.POSITIVE
        return cls.NEGATIVE

    @classmethod
    def abstract(cls, values: Iterable[int | float]) -> "Sign":
        """Best abstraction of a finite collection of numbers."""
        out = cls.BOTTOM
        for v in values:
            out = join(out, cls.const(v))
        return out

    # Lattice structure -------------------------------------------------------

    def is_bottom(self) -> bool:
        return self is Sign.BOTTOM

    def is_top(self) -> bool:
        return self is Sign.TOP

    def __bool__(self) -> bool:
        # bool(⊥) is False, everything else is True.
        return self is not Sign.BOTTOM

    def __le__(self, other: "Sign") -> bool:
        return leq(self, other)

    def __ge__(self, other: "Sign") -> bool:
        return leq(other, self)

    def __or__(self, other: "Sign") -> "Sign":
        return join(self, other)

    def __and__(self, other: "Sign") -> "Sign":
        return meet(self, other)

    # Convenience -------------------------------------------------------------

    def __contains__(self, n: int | float) -> bool:
        """n ∈ γ(self)"""
        if self is Sign.BOTTOM:
            return False
        return leq(Sign.const(n), self)

    def __repr__(self) -> str:  # cosmetic
        return self.value


# Every element mapped to the set of elements above it (itself included).
_UPPER: Dict[Sign, FrozenSet[Sign]] = {
    Sign.BOTTOM: frozenset(Sign),
    Sign.ZERO: frozenset({Sign.ZERO, Sign.TOP}),
    Sign.POSITIVE: frozenset({Sign.POSITIVE, Sign.NON_ZERO, Sign.TOP}),
    Sign.NEGATIVE: frozenset({Sign.NEGATIVE, Sign.NON_ZERO, Sign.TOP}),
    Sign.NON_ZERO: frozenset({Sign.NON_ZERO, Sign.TOP}),
    Sign.TOP: frozenset({Sign.TOP}),
}

_LOWER: Dict[Sign, FrozenSet[Sign]] = {
    s: frozenset(t for t in Sign if s in _UPPER[t]) for s in Sign
}


def top() -> Sign:
    """The completely unknown value."""
    return Sign.TOP


def bottom() -> Sign:
    """The impossible value (unreachable code)."""
    return Sign.BOTTOM


def leq(a: Sign, b: Sign) -> bool:
    """Partial order: a is at least as precise as b."""
    return b in _UPPER[a]


def join(a: Sign, b: Sign) -> Sign:
    """Least upper bound."""
    common = _UPPER[a] & _UPPER[b]
    for c in common:
        if common <= _UPPER[c]:
            return c
    raise AssertionError(f"no join for {a!r}, {b!r}")  # pragma: no cover


def meet(a: Sign, b: Sign) -> Sign:
    """Greatest lower bound."""
    common = _LOWER[a] & _LOWER[b]
    for c in common:
        if common <= _LOWER[c]:
            return c
    raise AssertionError(f"no meet for {a!r}, {b!r}")  # pragma: no cover
