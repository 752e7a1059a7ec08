# divzero/transfer.py
"""
Transfer functions for the sign lattice.

- arithmetic_transfer: abstract result of ``lhs op rhs`` for + - * / %
- refine: narrow ``lhs`` assuming ``lhs op rhs`` holds for == != < <= > >=
- refine_comparison: the then/else refinements of both operands of a
  branch condition
- is_unsafe_divisor: decides whether a divisor may be zero

All functions are pure; operands are Sign values and are never modified.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from divzero.abstract_domain import Sign, meet


class BinaryOperator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"

    @classmethod
    def from_symbol(cls, symbol: str) -> "BinaryOperator":
        return cls(symbol)


class Comparison(Enum):
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    @classmethod
    def from_symbol(cls, symbol: str) -> "Comparison":
        return cls(symbol)


_FLIP = {
    Comparison.EQ: Comparison.EQ,
    Comparison.NE: Comparison.NE,
    Comparison.LT: Comparison.GT,
    Comparison.LE: Comparison.GE,
    Comparison.GT: Comparison.LT,
    Comparison.GE: Comparison.LE,
}

_NEGATE = {
    Comparison.EQ: Comparison.NE,
    Comparison.NE: Comparison.EQ,
    Comparison.LT: Comparison.GE,
    Comparison.LE: Comparison.GT,
    Comparison.GT: Comparison.LE,
    Comparison.GE: Comparison.LT,
}


def flip(op: Comparison) -> Comparison:
    """`x op y` == `y flip(op) x`"""
    if not isinstance(op, Comparison):
        raise ValueError(f"not a comparison: {op!r}")
    return _FLIP[op]


def negate(op: Comparison) -> Comparison:
    """`x op y` == `!(x negate(op) y)`"""
    if not isinstance(op, Comparison):
        raise ValueError(f"not a comparison: {op!r}")
    return _NEGATE[op]


# --- Arithmetic --------------------------------------------------------------


def _add(lhs: Sign, rhs: Sign) -> Sign:
    if Sign.TOP in (lhs, rhs):
        return Sign.TOP
    if Sign.NON_ZERO in (lhs, rhs):
        return Sign.NON_ZERO
    if rhs is Sign.ZERO:
        return lhs
    if lhs is Sign.ZERO:
        return rhs
    return Sign.TOP


def _sub(lhs: Sign, rhs: Sign) -> Sign:
    if Sign.TOP in (lhs, rhs):
        return Sign.TOP
    if Sign.NON_ZERO in (lhs, rhs):
        return Sign.NON_ZERO
    if lhs is Sign.ZERO:
        match rhs:
            case Sign.POSITIVE:
                return Sign.NEGATIVE
            case Sign.NEGATIVE:
                return Sign.POSITIVE
            case Sign.ZERO:
                return Sign.ZERO
    if rhs is Sign.ZERO:
        return lhs
    return Sign.TOP


def _mul(lhs: Sign, rhs: Sign) -> Sign:
    if Sign.ZERO in (lhs, rhs):
        return Sign.ZERO
    if Sign.TOP in (lhs, rhs):
        return Sign.TOP
    if Sign.NON_ZERO in (lhs, rhs):
        return Sign.NON_ZERO
    match (lhs, rhs):
        case (Sign.POSITIVE, Sign.POSITIVE) | (Sign.NEGATIVE, Sign.NEGATIVE):
            return Sign.POSITIVE
        case (Sign.POSITIVE, Sign.NEGATIVE) | (Sign.NEGATIVE, Sign.POSITIVE):
            return Sign.NEGATIVE
    return Sign.TOP


def _div(lhs: Sign, rhs: Sign) -> Sign:
    # Dividing by a provable zero never continues normally.
    if rhs is Sign.ZERO:
        return Sign.BOTTOM
    if lhs is Sign.ZERO and rhs is not Sign.TOP:
        return Sign.ZERO
    return Sign.TOP


_ARITHMETIC = {
    BinaryOperator.ADD: _add,
    BinaryOperator.SUB: _sub,
    BinaryOperator.MUL: _mul,
    BinaryOperator.DIV: _div,
    BinaryOperator.MOD: _div,
}


def arithmetic_transfer(op: BinaryOperator, lhs: Sign, rhs: Sign) -> Sign:
    """
    Abstract result of evaluating ``lhs op rhs``.

    ⊥ on either side is absorbing. Combinations without a more precise
    rule give ⊤.
    """
    if not isinstance(op, BinaryOperator):
        raise ValueError(f"unknown arithmetic operator: {op!r}")
    rule = _ARITHMETIC[op]
    if lhs is Sign.BOTTOM or rhs is Sign.BOTTOM:
        return Sign.BOTTOM
    return rule(lhs, rhs)


# --- Comparisons -------------------------------------------------------------


def _bound(op: Comparison, rhs: Sign) -> Sign:
    """What ``lhs op rhs`` tells us about lhs, before meeting with lhs."""
    match op:
        case Comparison.EQ:
            return rhs
        case Comparison.NE if rhs is Sign.ZERO:
            return Sign.NON_ZERO
        case Comparison.LT if rhs in (Sign.ZERO, Sign.NEGATIVE):
            return Sign.NEGATIVE
        case Comparison.LE if rhs is Sign.NEGATIVE:
            return Sign.NEGATIVE
        case Comparison.GT if rhs in (Sign.ZERO, Sign.POSITIVE):
            return Sign.POSITIVE
        case Comparison.GE if rhs is Sign.POSITIVE:
            return Sign.POSITIVE
    return Sign.TOP


def refine(op: Comparison, lhs: Sign, rhs: Sign) -> Sign:
    """
    Refine lhs assuming the comparison ``lhs op rhs`` holds.

    For example ``y != 0`` with y = ⊤ gives ≠0. The result is always
    below lhs in the lattice.
    """
    if not isinstance(op, Comparison):
        raise ValueError(f"not a comparison: {op!r}")
    if lhs is Sign.BOTTOM or rhs is Sign.BOTTOM:
        return Sign.BOTTOM
    return meet(lhs, _bound(op, rhs))


@dataclass(frozen=True)
class ComparisonRefinement:
    """Refined operand values on both outcomes of ``lhs op rhs``."""

    then_lhs: Sign
    then_rhs: Sign
    else_lhs: Sign
    else_rhs: Sign


def refine_comparison(op: Comparison, lhs: Sign, rhs: Sign) -> ComparisonRefinement:
    neg = negate(op)
    return ComparisonRefinement(
        then_lhs=refine(op, lhs, rhs),
        then_rhs=refine(flip(op), rhs, lhs),
        else_lhs=refine(neg, lhs, rhs),
        else_rhs=refine(flip(neg), rhs, lhs),
    )


# --- Division safety ---------------------------------------------------------


def is_unsafe_divisor(state: Sign) -> bool:
    """True when a divisor in this state is not provably non-zero."""
    return state is Sign.ZERO or state is Sign.TOP
