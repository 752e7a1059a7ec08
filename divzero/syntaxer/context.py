"""Analysis context shared across the analysis units of one source file."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import tree_sitter

from .utils import iter_nodes, node_text

INTEGRAL_TYPES = frozenset({
    "byte", "short", "char", "int", "long",
    "Byte", "Short", "Character", "Integer", "Long",
})

FLOATING_TYPES = frozenset({"float", "double", "Float", "Double"})

# Value ranges ordered by width, used to decide whether a cast keeps the sign.
TYPE_WIDTH = {
    "byte": 1, "Byte": 1,
    "short": 2, "Short": 2,
    "char": 2, "Character": 2,
    "int": 4, "Integer": 4,
    "long": 8, "Long": 8,
    "float": 16, "Float": 16,
    "double": 32, "Double": 32,
}

_CLASS_LIKE = frozenset({
    "class_declaration",
    "enum_declaration",
    "record_declaration",
    "interface_declaration",
})

Parameter = Tuple[str, Optional[str]]


def is_integral_type(type_name: Optional[str]) -> bool:
    return type_name in INTEGRAL_TYPES


def is_floating_type(type_name: Optional[str]) -> bool:
    return type_name in FLOATING_TYPES


def is_numeric_type(type_name: Optional[str]) -> bool:
    return type_name in TYPE_WIDTH


def type_name(
    type_node: tree_sitter.Node | None,
    source_bytes: bytes,
    dimensions: tree_sitter.Node | None = None,
) -> Optional[str]:
    """
    Render a declared type. Qualified names keep their last segment,
    arrays get a ``[]`` suffix and ``var`` is unknown (None).
    """
    if type_node is None:
        return None
    text = node_text(type_node, source_bytes)
    if type_node.type == "array_type" or dimensions is not None:
        return text.split("[", 1)[0].strip() + "[]"
    if type_node.type == "scoped_type_identifier":
        text = text.rsplit(".", 1)[-1]
    if text == "var":
        return None
    return text


@dataclass
class AnalysisUnit:
    """One independently analysed body: a method, constructor, lambda, ..."""

    name: str
    kind: str
    node: tree_sitter.Node
    body: tree_sitter.Node
    parameters: List[Parameter] = field(default_factory=list)


@dataclass
class AnalysisContext:
    tree: tree_sitter.Tree
    source_bytes: bytes
    path: Optional[str] = None
    field_types: Dict[str, Optional[str]] = field(init=False, default_factory=dict)
    method_types: Dict[str, Optional[str]] = field(init=False, default_factory=dict)
    units: List[AnalysisUnit] = field(init=False, default_factory=list)

    def __post_init__(self):
        self._collect_declarations()
        self._collect_units()

    def text(self, node: tree_sitter.Node | None) -> str:
        return node_text(node, self.source_bytes) if node is not None else ""

    def iter_nodes(self) -> Iterator[tree_sitter.Node]:
        return iter_nodes(self.tree.root_node)

    def type_of(self, type_node, dimensions=None) -> Optional[str]:
        return type_name(type_node, self.source_bytes, dimensions)

    def parameters(self, params: tree_sitter.Node | None) -> List[Parameter]:
        """(name, type) pairs of a formal/inferred parameter list."""
        out: List[Parameter] = []
        if params is None:
            return out
        if params.type == "identifier":
            return [(self.text(params), None)]
        for p in params.named_children:
            if p.type == "identifier":
                out.append((self.text(p), None))
            elif p.type == "formal_parameter":
                name = p.child_by_field_name("name")
                if name is None:
                    continue
                ty = self.type_of(
                    p.child_by_field_name("type"),
                    p.child_by_field_name("dimensions"),
                )
                out.append((self.text(name), ty))
            elif p.type == "spread_parameter":
                for c in p.named_children:
                    if c.type == "variable_declarator":
                        name = c.child_by_field_name("name")
                        if name is not None:
                            out.append((self.text(name), "[]"))
        return out

    def enclosing_class(self, node: tree_sitter.Node) -> str:
        cur = node.parent
        while cur is not None:
            if cur.type in _CLASS_LIKE:
                return self.text(cur.child_by_field_name("name"))
            cur = cur.parent
        return "<anonymous>"

    # Collection --------------------------------------------------------------

    @staticmethod
    def _record(table: Dict[str, Optional[str]], name: str, ty: Optional[str]):
        # Conflicting declarations (shadowing, overloads) resolve to unknown.
        if name in table and table[name] != ty:
            table[name] = None
        else:
            table[name] = ty

    def _collect_declarations(self):
        for node in self.iter_nodes():
            if node.type == "field_declaration":
                type_node = node.child_by_field_name("type")
                for declarator in node.children_by_field_name("declarator"):
                    name_node = declarator.child_by_field_name("name")
                    if name_node is None:
                        continue
                    ty = self.type_of(type_node, declarator.child_by_field_name("dimensions"))
                    self._record(self.field_types, self.text(name_node), ty)
            elif node.type == "method_declaration":
                name_node = node.child_by_field_name("name")
                if name_node is None:
                    continue
                ty = self.type_of(
                    node.child_by_field_name("type"),
                    node.child_by_field_name("dimensions"),
                )
                self._record(self.method_types, self.text(name_node), ty)

    def _collect_units(self):
        for node in self.iter_nodes():
            kind = node.type
            if kind in ("method_declaration", "constructor_declaration",
                        "compact_constructor_declaration"):
                body = node.child_by_field_name("body")
                if body is None:
                    continue
                owner = self.enclosing_class(node)
                name_node = node.child_by_field_name("name")
                label = self.text(name_node) if name_node is not None else owner
                self.units.append(AnalysisUnit(
                    name=f"{owner}.{label}",
                    kind="constructor" if kind != "method_declaration" else "method",
                    node=node,
                    body=body,
                    parameters=self.parameters(node.child_by_field_name("parameters")),
                ))
            elif kind == "static_initializer":
                for child in node.named_children:
                    if child.type == "block":
                        self.units.append(AnalysisUnit(
                            name=f"{self.enclosing_class(node)}.<clinit>",
                            kind="initializer",
                            node=node,
                            body=child,
                        ))
            elif kind == "block" and node.parent is not None and node.parent.type == "class_body":
                self.units.append(AnalysisUnit(
                    name=f"{self.enclosing_class(node)}.<init>",
                    kind="initializer",
                    node=node,
                    body=node,
                ))
            elif kind == "field_declaration":
                for declarator in node.children_by_field_name("declarator"):
                    value = declarator.child_by_field_name("value")
                    name_node = declarator.child_by_field_name("name")
                    if value is None or name_node is None:
                        continue
                    self.units.append(AnalysisUnit(
                        name=f"{self.enclosing_class(node)}.{self.text(name_node)}",
                        kind="field",
                        node=declarator,
                        body=value,
                    ))
            elif kind == "lambda_expression":
                body = node.child_by_field_name("body")
                if body is None:
                    continue
                line = node.start_point[0] + 1
                self.units.append(AnalysisUnit(
                    name=f"{self.enclosing_class(node)}.lambda${line}",
                    kind="lambda",
                    node=node,
                    body=body,
                    parameters=self.parameters(node.child_by_field_name("parameters")),
                ))

    def unit(self, name: str) -> AnalysisUnit:
        """Look up a unit by its full name or by its simple (member) name."""
        for u in self.units:
            if u.name == name or u.name.rsplit(".", 1)[-1] == name:
                return u
        raise KeyError(name)
