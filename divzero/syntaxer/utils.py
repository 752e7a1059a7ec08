"""Shared utilities for Tree-sitter parsing and node helpers."""

from __future__ import annotations

from typing import Iterator, Optional

import tree_sitter
import tree_sitter_java

INT_LITERALS = frozenset({
    "decimal_integer_literal",
    "hex_integer_literal",
    "octal_integer_literal",
    "binary_integer_literal",
})

FLOAT_LITERALS = frozenset({
    "decimal_floating_point_literal",
    "hex_floating_point_literal",
})

_CHAR_ESCAPES = {
    "\\0": 0,
    "\\b": 8,
    "\\t": 9,
    "\\n": 10,
    "\\f": 12,
    "\\r": 13,
    "\\s": 32,
    "\\'": 39,
    '\\"': 34,
    "\\\\": 92,
}


def create_java_parser() -> tree_sitter.Parser:
    """
    Create a Tree-sitter parser configured for Java.

    Supports both the modern bindings (Parser(language)) and older
    releases that expect set_language().
    """

    language = tree_sitter.Language(tree_sitter_java.language())
    try:
        parser = tree_sitter.Parser(language)
    except TypeError:
        parser = tree_sitter.Parser()
        parser.set_language(language)
    return parser


def node_text(node: tree_sitter.Node, source_bytes: bytes) -> str:
    """Decode the bytes that correspond to a node."""
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def iter_nodes(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Iterative preorder traversal of the syntax tree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def unwrap_parens(node: tree_sitter.Node) -> tree_sitter.Node:
    while node.type == "parenthesized_expression" and node.named_child_count == 1:
        node = node.named_children[0]
    return node


def parse_int_literal(text: str) -> Optional[int]:
    """Value of a Java integer literal, or None if it is malformed."""
    digits = text.replace("_", "").rstrip("lL")
    lowered = digits.lower()
    try:
        if lowered.startswith("0x"):
            return int(lowered[2:], 16)
        if lowered.startswith("0b"):
            return int(lowered[2:], 2)
        if len(lowered) > 1 and lowered.startswith("0"):
            return int(lowered[1:], 8)
        return int(lowered, 10)
    except ValueError:
        return None


def parse_float_literal(text: str) -> Optional[float]:
    digits = text.replace("_", "").rstrip("fFdD")
    if digits.lower().startswith("0x"):
        try:
            return float.fromhex(digits)
        except ValueError:
            return None
    try:
        return float(digits)
    except ValueError:
        return None


def parse_char_literal(text: str) -> Optional[int]:
    """Code point of a Java char literal such as 'a' or '\\n'."""
    if len(text) < 3 or text[0] != "'" or text[-1] != "'":
        return None
    body = text[1:-1]
    if len(body) == 1:
        return ord(body)
    if body in _CHAR_ESCAPES:
        return _CHAR_ESCAPES[body]
    if body.startswith("\\u"):
        try:
            return int(body.lstrip("\\u"), 16)
        except ValueError:
            return None
    if body.startswith("\\") and body[1:].isdigit():
        try:
            return int(body[1:], 8)
        except ValueError:
            return None
    return None
