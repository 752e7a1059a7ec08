"""Issue data model for divide-by-zero findings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import tree_sitter

DIVIDE_BY_ZERO = "divide.by.zero"


@dataclass(frozen=True)
class Issue:
    """Structured representation of a flagged division site."""

    kind: str
    line: int
    col: int
    message: str
    path: Optional[str] = None

    def format(self) -> str:
        where = f"{self.path}:" if self.path else ""
        return f"{where}{self.line}:{self.col}: error: {self.message} [{self.kind}]"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "path": self.path,
            "line": self.line,
            "col": self.col,
            "message": self.message,
        }


def make_issue(
    kind: str,
    node: tree_sitter.Node,
    message: str,
    path: Optional[str] = None,
) -> Issue:
    """Create an Issue using the node's start point (converted to 1-based)."""
    line, col = node.start_point
    return Issue(kind=kind, line=line + 1, col=col + 1, message=message, path=path)
