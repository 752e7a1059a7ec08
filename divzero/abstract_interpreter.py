# divzero/abstract_interpreter.py
"""
Abstract interpreter over Java source.

Walks the tree-sitter AST of one analysis unit (method, constructor,
initializer, field initializer or lambda body) with a SignStore per
program point:

- arithmetic nodes go through arithmetic_transfer
- branch conditions are split into then/else stores with refine_comparison
- loops are iterated until the loop head is stable
- integral / and % sites are checked with is_unsafe_divisor

Only local variables and parameters are tracked; everything else is ⊤.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import tree_sitter
from loguru import logger

from divzero.abstract_domain import Sign
from divzero.abstract_state import SignStore
from divzero.config import AnalysisConfig
from divzero.syntaxer.context import (
    TYPE_WIDTH,
    AnalysisContext,
    AnalysisUnit,
    is_floating_type,
    is_integral_type,
    is_numeric_type,
)
from divzero.syntaxer.issues import DIVIDE_BY_ZERO, Issue, make_issue
from divzero.syntaxer.utils import (
    FLOAT_LITERALS,
    INT_LITERALS,
    iter_nodes,
    parse_char_literal,
    parse_float_literal,
    parse_int_literal,
    unwrap_parens,
)
from divzero.transfer import (
    BinaryOperator,
    Comparison,
    arithmetic_transfer,
    is_unsafe_divisor,
    refine_comparison,
)

# (abstract sign, static type or None when unknown)
Value = Tuple[Sign, Optional[str]]

ARITHMETIC_OPS = frozenset(op.value for op in BinaryOperator)
COMPARISON_OPS = frozenset(op.value for op in Comparison)
DIVISION_OPS = frozenset({"/", "%"})

LOOP_STATEMENTS = frozenset({
    "while_statement",
    "do_statement",
    "for_statement",
    "enhanced_for_statement",
    "switch_expression",
    "switch_statement",
})

_UNBOX = {
    "Byte": "byte",
    "Short": "short",
    "Character": "char",
    "Integer": "int",
    "Long": "long",
    "Float": "float",
    "Double": "double",
}

_SKIPPED = frozenset({
    "line_comment",
    "block_comment",
    "comment",
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "local_class_declaration",
    "lambda_expression",
    "class_body",
})


def _unbox(ty: Optional[str]) -> Optional[str]:
    return _UNBOX.get(ty, ty) if ty is not None else None


def _promote(lt: Optional[str], rt: Optional[str]) -> Optional[str]:
    """Binary numeric promotion (string concatenation wins for +)."""
    if lt == "String" or rt == "String":
        return "String"
    lt, rt = _unbox(lt), _unbox(rt)
    if "double" in (lt, rt):
        return "double"
    if "float" in (lt, rt):
        return "float"
    if not (is_numeric_type(lt) and is_numeric_type(rt)):
        return None
    if "long" in (lt, rt):
        return "long"
    return "int"


def _cast(value: Sign, source: Optional[str], target: Optional[str]) -> Sign:
    """Sign after a (possibly implicit) numeric conversion."""
    source, target = _unbox(source), _unbox(target)
    if not is_numeric_type(target) or source == target:
        return value
    narrowing = (
        source is None
        or not is_numeric_type(source)
        or (is_floating_type(source) and is_integral_type(target))
        or target == "char"
        or (source == "char" and target in ("byte", "short"))
        or TYPE_WIDTH[target] < TYPE_WIDTH[source]
    )
    if narrowing and value not in (Sign.ZERO, Sign.BOTTOM):
        return Sign.TOP
    return value


@dataclass
class _Frame:
    """Jump target for break / continue / yield."""

    kind: str  # "loop", "switch" or "block"
    label: Optional[str] = None
    breaks: List[SignStore] = field(default_factory=list)
    continues: List[SignStore] = field(default_factory=list)
    values: List[Sign] = field(default_factory=list)


@dataclass
class UnitResult:
    """Outcome of analysing one unit."""

    name: str
    kind: str
    issues: List[Issue]
    exit_store: SignStore
    return_state: Sign


class DivByZeroInterpreter:
    """
    Sign analysis driver for the units of one source file.

    Example:
        ctx = AnalysisContext(tree, source_bytes, "Foo.java")
        results = DivByZeroInterpreter(ctx).run()
    """

    def __init__(self, context: AnalysisContext, config: AnalysisConfig | None = None):
        self.ctx = context
        self.config = config or AnalysisConfig()
        self._issues: Dict[Tuple[int, int], Issue] = {}
        self._reporting = True
        self._frames: List[_Frame] = []
        self._returns: List[Sign] = []
        self._types: Dict[str, Optional[str]] = {}
        self._pending_label: Optional[str] = None

    @property
    def issues(self) -> List[Issue]:
        return sorted(self._issues.values(), key=lambda i: (i.line, i.col))

    def run(self) -> List[UnitResult]:
        return [self.analyze_unit(unit) for unit in self.ctx.units]

    def analyze_unit(self, unit: AnalysisUnit) -> UnitResult:
        before = set(self._issues)
        self._frames = []
        self._returns = []
        self._types = {}
        self._reporting = True
        self._pending_label = None

        store = SignStore()
        for name, ty in unit.parameters:
            self._types[name] = ty
        logger.debug(f"UNIT {unit.name} params={unit.parameters}")

        if unit.body.type in ("block", "constructor_body"):
            self._exec(unit.body, store)
        else:
            # expression-bodied lambda or field initializer
            value, _ = self._eval(unit.body, store)
            self._returns.append(value)

        return_state = Sign.BOTTOM
        for v in self._returns:
            return_state = return_state | v

        new_keys = sorted(set(self._issues) - before)
        return UnitResult(
            name=unit.name,
            kind=unit.kind,
            issues=[self._issues[k] for k in new_keys],
            exit_store=store,
            return_state=return_state,
        )

    # --- Reporting -------------------------------------------------------------

    def _is_integral_division(self, lt: Optional[str], rt: Optional[str]) -> bool:
        if self.config.known_types_only:
            return is_integral_type(lt) and is_integral_type(rt)
        return all(t is None or is_integral_type(t) for t in (lt, rt))

    def _check_division(
        self,
        node: tree_sitter.Node,
        divisor_node: tree_sitter.Node,
        lt: Optional[str],
        rt: Optional[str],
        divisor: Sign,
        store: SignStore,
    ) -> None:
        if not self._reporting or not store.reachable:
            return
        if not self._is_integral_division(lt, rt):
            return
        if not is_unsafe_divisor(divisor):
            return
        operator = node.child_by_field_name("operator") or node
        key = operator.start_point
        if key in self._issues:
            return
        what = "is always zero" if divisor is Sign.ZERO else "may be zero"
        issue = make_issue(
            DIVIDE_BY_ZERO,
            operator,
            f"divisor '{self.ctx.text(divisor_node)}' {what}",
            self.ctx.path,
        )
        logger.debug(f"ISSUE {issue}")
        self._issues[key] = issue

    # --- Statements ------------------------------------------------------------

    def _exec(self, node: tree_sitter.Node, store: SignStore) -> None:
        if not store.reachable or node.type in _SKIPPED:
            return
        handler = getattr(self, f"_exec_{node.type}", None)
        if handler is not None:
            logger.debug(f"STEP {node.type}@{node.start_point[0] + 1}\n{store}")
            handler(node, store)
        elif hasattr(self, f"_eval_{node.type}") or node.type in INT_LITERALS:
            self._eval(node, store)
        else:
            for child in node.named_children:
                self._exec(child, store)

    def _exec_block(self, node, store):
        for child in node.named_children:
            self._exec(child, store)

    _exec_constructor_body = _exec_block

    def _exec_expression_statement(self, node, store):
        for child in node.named_children:
            self._eval(child, store)

    def _declare(self, name: str, ty: Optional[str], value: Sign, store: SignStore) -> None:
        self._types[name] = ty
        store.set_state(name, value)

    def _exec_local_variable_declaration(self, node, store):
        type_node = node.child_by_field_name("type")
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            ty = self.ctx.type_of(type_node, declarator.child_by_field_name("dimensions"))
            value_node = declarator.child_by_field_name("value")
            value = Sign.TOP
            if value_node is not None:
                value, vt = self._eval(value_node, store)
                if ty is None:
                    ty = vt
            self._declare(self.ctx.text(name_node), ty, value, store)

    def _exec_if_statement(self, node, store):
        then_store, else_store = self._condition(node.child_by_field_name("condition"), store)
        self._exec(node.child_by_field_name("consequence"), then_store)
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            self._exec(alternative, else_store)
        store.assign(then_store | else_store)

    def _exec_return_statement(self, node, store):
        for child in node.named_children:
            value, _ = self._eval(child, store)
            if self._reporting:
                self._returns.append(value)
        store.kill()

    def _exec_throw_statement(self, node, store):
        for child in node.named_children:
            self._eval(child, store)
        store.kill()

    def _target(self, label: Optional[str], kinds: Tuple[str, ...]) -> Optional[_Frame]:
        for frame in reversed(self._frames):
            if label is not None:
                if frame.label == label:
                    return frame
            elif frame.kind in kinds:
                return frame
        return None

    def _label_of(self, node) -> Optional[str]:
        for child in node.named_children:
            if child.type == "identifier":
                return self.ctx.text(child)
        return None

    def _exec_break_statement(self, node, store):
        frame = self._target(self._label_of(node), ("loop", "switch"))
        if frame is not None:
            frame.breaks.append(store.copy())
        store.kill()

    def _exec_continue_statement(self, node, store):
        frame = self._target(self._label_of(node), ("loop",))
        if frame is not None:
            frame.continues.append(store.copy())
        store.kill()

    def _exec_yield_statement(self, node, store):
        frame = self._target(None, ("switch",))
        for child in node.named_children:
            value, _ = self._eval(child, store)
            if frame is not None:
                frame.values.append(value)
        if frame is not None:
            frame.breaks.append(store.copy())
        store.kill()

    def _exec_labeled_statement(self, node, store):
        label = self._label_of(node)
        statement = next(
            (c for c in node.named_children if c.type != "identifier"), None
        )
        if statement is None:
            return
        frame = _Frame("block", label)
        self._frames.append(frame)
        self._pending_label = label if statement.type in LOOP_STATEMENTS else None
        try:
            self._exec(statement, store)
        finally:
            self._frames.pop()
            self._pending_label = None
        for b in frame.breaks:
            store.assign(store | b)

    def _exec_synchronized_statement(self, node, store):
        for child in node.named_children:
            if child.type == "block":
                self._exec(child, store)
            else:
                self._eval(child, store)

    def _exec_assert_statement(self, node, store):
        # Assertions may be disabled at run time, so they refine nothing.
        for child in node.named_children:
            self._eval(child, store)

    def _exec_switch_expression(self, node, store):
        self._switch(node, store)

    _exec_switch_statement = _exec_switch_expression

    # Loops -------------------------------------------------------------------

    def _take_label(self) -> Optional[str]:
        label, self._pending_label = self._pending_label, None
        return label

    def _fixpoint(self, store: SignStore, once) -> None:
        """
        Iterate ``once(head) -> (back_edge, exit)`` until the loop head is
        stable, then run one more reporting pass from the stable head.
        """
        head = store.copy()
        saved = self._reporting
        self._reporting = False
        try:
            for i in range(self.config.max_loop_iterations):
                back, _ = once(head)
                new_head = head | back
                if new_head == head:
                    logger.debug(f"LOOP stable after {i + 1} passes: {head}")
                    break
                head = new_head
            else:
                logger.warning(
                    f"loop head did not stabilise after "
                    f"{self.config.max_loop_iterations} passes, widening to ⊤"
                )
                head = SignStore()
        finally:
            self._reporting = saved
        _, exit_store = once(head)
        store.assign(exit_store)

    def _loop(self, store, *, cond, body, updates=(), exit_anytime=False, declare=None):
        label = self._take_label()

        def once(head: SignStore) -> Tuple[SignStore, SignStore]:
            frame = _Frame("loop", label)
            self._frames.append(frame)
            try:
                if cond is not None:
                    body_in, exit_store = self._condition(cond, head.copy())
                elif exit_anytime:
                    body_in, exit_store = head.copy(), head.copy()
                else:
                    body_in, exit_store = head.copy(), SignStore.unreachable()
                if declare is not None:
                    declare(body_in)
                if body is not None:
                    self._exec(body, body_in)
                back = body_in
                for c in frame.continues:
                    back = back | c
                for update in updates:
                    self._eval(update, back)
            finally:
                self._frames.pop()
            for b in frame.breaks:
                exit_store = exit_store | b
            return back, exit_store

        self._fixpoint(store, once)

    def _exec_while_statement(self, node, store):
        self._loop(
            store,
            cond=node.child_by_field_name("condition"),
            body=node.child_by_field_name("body"),
        )

    def _exec_for_statement(self, node, store):
        label = self._take_label()
        for init in node.children_by_field_name("init"):
            if init.type == "local_variable_declaration":
                self._exec(init, store)
            else:
                self._eval(init, store)
        self._pending_label = label
        self._loop(
            store,
            cond=node.child_by_field_name("condition"),
            body=node.child_by_field_name("body"),
            updates=node.children_by_field_name("update"),
        )

    def _exec_enhanced_for_statement(self, node, store):
        self._eval(node.child_by_field_name("value"), store)
        name_node = node.child_by_field_name("name")
        ty = self.ctx.type_of(
            node.child_by_field_name("type"),
            node.child_by_field_name("dimensions"),
        )

        def declare(body_in: SignStore) -> None:
            if name_node is not None:
                self._declare(self.ctx.text(name_node), ty, Sign.TOP, body_in)

        self._loop(
            store,
            cond=None,
            body=node.child_by_field_name("body"),
            exit_anytime=True,
            declare=declare,
        )

    def _exec_do_statement(self, node, store):
        label = self._take_label()
        body = node.child_by_field_name("body")
        cond = node.child_by_field_name("condition")

        def once(head: SignStore) -> Tuple[SignStore, SignStore]:
            frame = _Frame("loop", label)
            self._frames.append(frame)
            try:
                body_in = head.copy()
                self._exec(body, body_in)
                after = body_in
                for c in frame.continues:
                    after = after | c
                back, exit_store = self._condition(cond, after)
            finally:
                self._frames.pop()
            for b in frame.breaks:
                exit_store = exit_store | b
            return back, exit_store

        self._fixpoint(store, once)

    # Switch ------------------------------------------------------------------

    def _switch(self, node, store) -> Sign:
        label = self._take_label()
        selector = node.child_by_field_name("condition")
        if selector is not None:
            self._eval(selector, store)
        body = node.child_by_field_name("body")
        frame = _Frame("switch", label)
        self._frames.append(frame)
        entry = store.copy()
        fall = SignStore.unreachable()
        outs: List[SignStore] = []
        has_default = False
        try:
            for group in body.named_children if body is not None else ():
                if group.type == "switch_block_statement_group":
                    cur = entry | fall
                    for child in group.named_children:
                        if child.type == "switch_label":
                            has_default |= self.ctx.text(child).startswith("default")
                            continue
                        self._exec(child, cur)
                    fall = cur
                elif group.type == "switch_rule":
                    cur = entry.copy()
                    for child in group.named_children:
                        if child.type == "switch_label":
                            has_default |= self.ctx.text(child).startswith("default")
                        elif child.type == "expression_statement" and child.named_child_count:
                            value, _ = self._eval(child.named_children[0], cur)
                            if cur.reachable:
                                frame.values.append(value)
                        else:
                            self._exec(child, cur)
                    outs.append(cur)
        finally:
            self._frames.pop()

        result = fall
        for out in outs + frame.breaks:
            result = result | out
        if not has_default:
            result = result | entry
        store.assign(result)

        value = Sign.BOTTOM
        for v in frame.values:
            value = value | v
        return value

    # Exceptions --------------------------------------------------------------

    def _assigned_in(self, node) -> List[str]:
        names = []
        for n in iter_nodes(node):
            if n.type == "assignment_expression":
                left = unwrap_parens(n.child_by_field_name("left"))
                if left.type == "identifier":
                    names.append(self.ctx.text(left))
            elif n.type == "update_expression":
                for c in n.named_children:
                    c = unwrap_parens(c)
                    if c.type == "identifier":
                        names.append(self.ctx.text(c))
        return names

    def _exec_try_statement(self, node, store):
        entry = store.copy()
        resources = node.child_by_field_name("resources")
        if resources is not None:
            for resource in resources.named_children:
                name_node = resource.child_by_field_name("name")
                value_node = resource.child_by_field_name("value")
                if value_node is not None:
                    value, vt = self._eval(value_node, store)
                    if name_node is not None:
                        self._declare(self.ctx.text(name_node), vt, value, store)
                else:
                    self._eval(resource, store)
        body = node.child_by_field_name("body")
        if body is not None:
            self._exec(body, store)

        # An exception may leave the try body at any point.
        catch_entry = entry | store
        if body is not None:
            for name in self._assigned_in(body):
                catch_entry.forget(name)

        merged = store.copy()
        finally_block = None
        catch_assigned: List[str] = []
        for child in node.named_children:
            if child.type == "catch_clause":
                cur = catch_entry.copy()
                for part in child.named_children:
                    if part.type == "catch_formal_parameter":
                        name_node = part.child_by_field_name("name")
                        if name_node is not None:
                            self._declare(self.ctx.text(name_node), None, Sign.TOP, cur)
                    elif part.type == "block":
                        self._exec(part, cur)
                        catch_assigned.extend(self._assigned_in(part))
                merged = merged | cur
            elif child.type == "finally_clause":
                finally_block = next(
                    (c for c in child.named_children if c.type == "block"), None
                )

        if finally_block is not None:
            # finally also runs when the try body or a catch body throws
            abrupt = merged | catch_entry
            for name in catch_assigned:
                abrupt.forget(name)
            self._exec(finally_block, abrupt)
            if merged.reachable:
                self._exec(finally_block, merged)
        store.assign(merged)

    _exec_try_with_resources_statement = _exec_try_statement

    # --- Conditions ------------------------------------------------------------

    def _install(self, node, value: Sign, store: SignStore) -> None:
        node = unwrap_parens(node)
        if node.type != "identifier":
            return
        name = self.ctx.text(node)
        if name not in self._types:
            return
        if value is Sign.BOTTOM:
            # contradictory comparison: this outcome cannot happen
            store.kill()
        else:
            store.set_state(name, value)

    def _condition(self, node, store: SignStore) -> Tuple[SignStore, SignStore]:
        """
        Evaluate a boolean condition and split the store into the stores
        where it holds and where it does not.
        """
        node = unwrap_parens(node)
        if node.type == "true":
            return store.copy(), SignStore.unreachable()
        if node.type == "false":
            return SignStore.unreachable(), store.copy()

        if node.type == "unary_expression":
            op = node.child_by_field_name("operator")
            if op is not None and op.type == "!":
                t, f = self._condition(node.child_by_field_name("operand"), store)
                return f, t

        if node.type == "binary_expression":
            op = node.child_by_field_name("operator").type
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if op == "&&":
                lt, lf = self._condition(left, store)
                rt, rf = self._condition(right, lt)
                return rt, lf | rf
            if op == "||":
                lt, lf = self._condition(left, store)
                rt, rf = self._condition(right, lf)
                return lt | rt, rf
            if op in COMPARISON_OPS:
                lv, _ = self._eval(left, store)
                rv, _ = self._eval(right, store)
                refined = refine_comparison(Comparison.from_symbol(op), lv, rv)
                logger.debug(f"REFINE {self.ctx.text(node)}: {refined}")
                then_store, else_store = store.copy(), store.copy()
                self._install(left, refined.then_lhs, then_store)
                self._install(right, refined.then_rhs, then_store)
                self._install(left, refined.else_lhs, else_store)
                self._install(right, refined.else_rhs, else_store)
                return then_store, else_store

        self._eval(node, store)
        return store.copy(), store.copy()

    # --- Expressions -----------------------------------------------------------

    def _eval(self, node: tree_sitter.Node | None, store: SignStore) -> Value:
        if node is None:
            return Sign.TOP, None
        kind = node.type
        if kind in INT_LITERALS:
            text = self.ctx.text(node)
            n = parse_int_literal(text)
            ty = "long" if text[-1] in "lL" else "int"
            if n is not None and kind != "decimal_integer_literal":
                # hex/octal/binary literals are two's complement bit patterns
                bits = 64 if ty == "long" else 32
                if n >= 1 << (bits - 1):
                    n -= 1 << bits
            return (Sign.TOP if n is None else Sign.const(n)), ty
        if kind in FLOAT_LITERALS:
            text = self.ctx.text(node)
            x = parse_float_literal(text)
            ty = "float" if text[-1] in "fF" else "double"
            return (Sign.TOP if x is None else Sign.const(x)), ty
        if kind in _SKIPPED:
            return Sign.TOP, None
        handler = getattr(self, f"_eval_{kind}", None)
        if handler is not None:
            return handler(node, store)
        for child in node.named_children:
            if child.type in ("block", "constructor_body"):
                self._exec(child, store)
            else:
                self._eval(child, store)
        return Sign.TOP, None

    def _eval_character_literal(self, node, store):
        code = parse_char_literal(self.ctx.text(node))
        return (Sign.TOP if code is None else Sign.const(code)), "char"

    def _eval_string_literal(self, node, store):
        return Sign.TOP, "String"

    _eval_text_block = _eval_string_literal

    def _eval_true(self, node, store):
        return Sign.TOP, "boolean"

    _eval_false = _eval_true

    def _eval_null_literal(self, node, store):
        return Sign.TOP, None

    def _eval_identifier(self, node, store):
        name = self.ctx.text(node)
        if name in self._types:
            return store.current_state(name), self._types[name]
        return Sign.TOP, self.ctx.field_types.get(name)

    def _eval_parenthesized_expression(self, node, store):
        inner = unwrap_parens(node)
        if inner is node:
            return Sign.TOP, None
        return self._eval(inner, store)

    def _eval_binary_expression(self, node, store):
        op = node.child_by_field_name("operator").type
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")

        if op in ("&&", "||"):
            then_store, else_store = self._condition(node, store)
            store.assign(then_store | else_store)
            return Sign.TOP, "boolean"

        lv, lt = self._eval(left, store)
        rv, rt = self._eval(right, store)
        if op in COMPARISON_OPS:
            return Sign.TOP, "boolean"

        ty = _promote(lt, rt)
        if op not in ARITHMETIC_OPS or ty == "String":
            return Sign.TOP, ty
        if op in DIVISION_OPS:
            self._check_division(node, right, lt, rt, rv, store)
        return arithmetic_transfer(BinaryOperator.from_symbol(op), lv, rv), ty

    def _eval_unary_expression(self, node, store):
        op = node.child_by_field_name("operator").type
        value, ty = self._eval(node.child_by_field_name("operand"), store)
        if op == "-":
            return arithmetic_transfer(BinaryOperator.SUB, Sign.ZERO, value), ty
        if op == "+":
            return value, ty
        if op == "!":
            return Sign.TOP, "boolean"
        return Sign.TOP, ty

    def _eval_update_expression(self, node, store):
        operand = next(iter(node.named_children), None)
        if operand is None:
            return Sign.TOP, None
        prefix = node.children[0].type in ("++", "--")
        op_text = node.children[0].type if prefix else node.children[-1].type
        op = BinaryOperator.ADD if op_text == "++" else BinaryOperator.SUB
        old, ty = self._eval(operand, store)
        new = _cast(arithmetic_transfer(op, old, Sign.POSITIVE), _promote(ty, "int"), ty)
        self._store_to(operand, new, store)
        return (new if prefix else old), ty

    def _store_to(self, target, value: Sign, store: SignStore) -> None:
        target = unwrap_parens(target)
        if target.type == "identifier":
            name = self.ctx.text(target)
            if name in self._types:
                store.set_state(name, value)

    def _eval_assignment_expression(self, node, store):
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        op = node.child_by_field_name("operator").type
        target = unwrap_parens(left)

        if op == "=":
            if target.type != "identifier":
                self._eval(target, store)
            lt = self._eval_target_type(target)
            value, vt = self._eval(right, store)
            self._store_to(target, value, store)
            return value, lt or vt

        lv, lt = self._eval(target, store)
        rv, rt = self._eval(right, store)
        base = op[:-1]
        if base in ARITHMETIC_OPS and lt != "String":
            if base in DIVISION_OPS:
                self._check_division(node, right, lt, rt, rv, store)
            result = arithmetic_transfer(BinaryOperator.from_symbol(base), lv, rv)
            value = _cast(result, _promote(lt, rt), lt)
        else:
            value = Sign.TOP
        self._store_to(target, value, store)
        return value, lt

    def _eval_target_type(self, target) -> Optional[str]:
        if target.type == "identifier":
            name = self.ctx.text(target)
            if name in self._types:
                return self._types[name]
            return self.ctx.field_types.get(name)
        if target.type == "field_access":
            return self.ctx.field_types.get(self.ctx.text(target.child_by_field_name("field")))
        return None

    def _eval_ternary_expression(self, node, store):
        then_store, else_store = self._condition(node.child_by_field_name("condition"), store)
        tv, tt = self._eval(node.child_by_field_name("consequence"), then_store)
        fv, ft = self._eval(node.child_by_field_name("alternative"), else_store)
        store.assign(then_store | else_store)
        if not then_store.reachable:
            value = fv
        elif not else_store.reachable:
            value = tv
        else:
            value = tv | fv
        ty = tt if tt == ft else _promote(tt, ft)
        return value, ty

    def _eval_cast_expression(self, node, store):
        target = self.ctx.type_of(node.child_by_field_name("type"))
        value, source = self._eval(node.child_by_field_name("value"), store)
        return _cast(value, source, target), target

    def _eval_method_invocation(self, node, store):
        obj = node.child_by_field_name("object")
        if obj is not None:
            self._eval(obj, store)
        args = node.child_by_field_name("arguments")
        if args is not None:
            for arg in args.named_children:
                self._eval(arg, store)
        ty = None
        if obj is None or obj.type == "this":
            ty = self.ctx.method_types.get(self.ctx.text(node.child_by_field_name("name")))
        return Sign.TOP, ty

    def _eval_object_creation_expression(self, node, store):
        args = node.child_by_field_name("arguments")
        if args is not None:
            for arg in args.named_children:
                self._eval(arg, store)
        return Sign.TOP, self.ctx.type_of(node.child_by_field_name("type"))

    def _eval_field_access(self, node, store):
        obj = node.child_by_field_name("object")
        self._eval(obj, store)
        name = self.ctx.text(node.child_by_field_name("field"))
        if obj is not None and obj.type == "this":
            return Sign.TOP, self.ctx.field_types.get(name)
        if name == "length":
            return Sign.TOP, "int"
        return Sign.TOP, None

    def _eval_array_access(self, node, store):
        _, ty = self._eval(node.child_by_field_name("array"), store)
        self._eval(node.child_by_field_name("index"), store)
        if ty is not None and ty.endswith("[]"):
            return Sign.TOP, ty[:-2]
        return Sign.TOP, None

    def _eval_instanceof_expression(self, node, store):
        self._eval(node.child_by_field_name("left"), store)
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            ty = self.ctx.type_of(node.child_by_field_name("right"))
            self._declare(self.ctx.text(name_node), ty, Sign.TOP, store)
        return Sign.TOP, "boolean"

    def _eval_switch_expression(self, node, store):
        return self._switch(node, store), None

    def _eval_this(self, node, store):
        return Sign.TOP, None

    def _eval_method_reference(self, node, store):
        return Sign.TOP, None

    def _eval_class_literal(self, node, store):
        return Sign.TOP, "Class"
