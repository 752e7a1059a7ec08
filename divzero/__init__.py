"""
divzero: sign analysis that proves integer divisors non-zero.

- abstract_domain: the Sign lattice
- transfer: arithmetic and comparison transfer functions, divisor check
- abstract_state / abstract_interpreter: dataflow driver over Java source
- checker: file-level checker and command line entry point
"""

from loguru import logger

from divzero.abstract_domain import Sign, bottom, join, leq, meet, top
from divzero.transfer import (
    BinaryOperator,
    Comparison,
    ComparisonRefinement,
    arithmetic_transfer,
    flip,
    is_unsafe_divisor,
    negate,
    refine,
    refine_comparison,
)

# Library use stays quiet; the CLI turns tracing back on.
logger.disable("divzero")

__version__ = "0.3.0"

__all__ = [
    "Sign",
    "top",
    "bottom",
    "join",
    "meet",
    "leq",
    "BinaryOperator",
    "Comparison",
    "ComparisonRefinement",
    "arithmetic_transfer",
    "refine",
    "refine_comparison",
    "flip",
    "negate",
    "is_unsafe_divisor",
]
