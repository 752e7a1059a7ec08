"""
Java front end for divzero.

Source parsing with tree-sitter, analysis units and the issue model.
"""

from divzero.syntaxer.context import (
    AnalysisContext,
    AnalysisUnit,
    is_floating_type,
    is_integral_type,
    type_name,
)
from divzero.syntaxer.issues import DIVIDE_BY_ZERO, Issue, make_issue
from divzero.syntaxer.utils import create_java_parser, iter_nodes, node_text

__all__ = [
    "AnalysisContext",
    "AnalysisUnit",
    "is_floating_type",
    "is_integral_type",
    "type_name",
    "DIVIDE_BY_ZERO",
    "Issue",
    "make_issue",
    "create_java_parser",
    "iter_nodes",
    "node_text",
]
