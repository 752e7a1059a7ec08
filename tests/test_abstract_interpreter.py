"""
Test suite for the abstract interpreter over Java source.

Each test parses a small Java class with tree-sitter, runs the sign
analysis over every unit and looks at the reported divide.by.zero issues
or at the abstract return value of a unit.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from divzero.abstract_domain import Sign
from divzero.abstract_interpreter import DivByZeroInterpreter
from divzero.checker import DivByZeroChecker
from divzero.config import AnalysisConfig
from divzero.syntaxer import DIVIDE_BY_ZERO, AnalysisContext, create_java_parser


@pytest.fixture(scope="module")
def checker():
    return DivByZeroChecker()


def java(body: str) -> str:
    """Wrap member declarations in a class."""
    return "class T {\n" + textwrap.dedent(body) + "\n}\n"


def issues_of(checker, body):
    return checker.check_source(java(body)).issues


def units_of(checker, body):
    return {u.name: u for u in checker.check_source(java(body)).units}


class TestDivisionSites:
    """Which division / remainder sites are reported."""

    def test_unknown_divisor(self, checker):
        issues = issues_of(checker, """
            int f(int x, int y) {
                return x / y;
            }
        """)
        assert len(issues) == 1
        assert issues[0].kind == DIVIDE_BY_ZERO
        assert issues[0].message == "divisor 'y' may be zero"
        assert issues[0].line == 4

    def test_literal_zero_divisor(self, checker):
        issues = issues_of(checker, """
            int f(int x) {
                return x / 0;
            }
        """)
        assert [i.message for i in issues] == ["divisor '0' is always zero"]

    def test_remainder(self, checker):
        issues = issues_of(checker, """
            long f(long a, long b) {
                return a % b;
            }
        """)
        assert len(issues) == 1

    def test_constant_nonzero_divisor(self, checker):
        assert issues_of(checker, """
            int f(int x) {
                int y = 5;
                int z = -3;
                return x / y + x % z;
            }
        """) == []

    def test_issue_column_points_at_operator(self, checker):
        issues = issues_of(checker, """
            int f(int x, int y) {
                return x / y;
            }
        """)
        line = java("""
            int f(int x, int y) {
                return x / y;
            }
        """).splitlines()[3]
        assert line[issues[0].col - 1] == "/"

    def test_compound_assignment(self, checker):
        issues = issues_of(checker, """
            void f(int x, int y) {
                x /= y;
                x %= 2;
            }
        """)
        assert [i.message for i in issues] == ["divisor 'y' may be zero"]

    def test_field_divisor_is_unknown(self, checker):
        issues = issues_of(checker, """
            int total;
            int f(int x) {
                return x / total;
            }
        """)
        assert len(issues) == 1

    def test_method_result_divisor(self, checker):
        issues = issues_of(checker, """
            int count() { return 3; }
            int f(int x) {
                return x / count();
            }
        """)
        assert len(issues) == 1

    def test_result_of_zero_division_is_not_reported_again(self, checker):
        issues = issues_of(checker, """
            int f(int x) {
                int a = x / 0;
                return 10 / a;
            }
        """)
        assert len(issues) == 1


class TestTypes:
    """Only integral divisions are checked."""

    def test_double_division(self, checker):
        assert issues_of(checker, """
            double f(double x, double y) {
                return x / y;
            }
        """) == []

    def test_double_by_int_literal(self, checker):
        assert issues_of(checker, """
            double f(double x) {
                return x / 0;
            }
        """) == []

    def test_float_compound(self, checker):
        assert issues_of(checker, """
            void f(float x, int y) {
                x /= y;
            }
        """) == []

    def test_boxed_integer(self, checker):
        issues = issues_of(checker, """
            Integer f(Integer a, Integer b) {
                return a / b;
            }
        """)
        assert len(issues) == 1

    def test_unknown_operand_types(self):
        src = java("""
            double ratio(Stats a) {
                return a.total() / a.size();
            }
        """)
        assert len(DivByZeroChecker().check_source(src).issues) == 1
        strict = DivByZeroChecker(AnalysisConfig(known_types_only=True))
        assert strict.check_source(src).issues == []

    def test_narrowing_cast_loses_sign(self, checker):
        issues = issues_of(checker, """
            int f() {
                double x = 0.5;
                int d = (int) x;
                return 10 / d;
            }
        """)
        assert len(issues) == 1

    def test_widening_cast_keeps_sign(self, checker):
        assert issues_of(checker, """
            long f() {
                int a = 3;
                long b = (long) a;
                return 10L / b;
            }
        """) == []

    @pytest.mark.parametrize("literal,sign", [
        ("0xFFFFFFFF", Sign.NEGATIVE),
        ("0x80000000", Sign.NEGATIVE),
        ("0x7FFFFFFF", Sign.POSITIVE),
        ("0b11111111111111111111111111111111", Sign.NEGATIVE),
        ("037777777777", Sign.NEGATIVE),
        ("0xFFFFFFFFFFFFFFFFL", Sign.NEGATIVE),
        ("0xFFFF_FFFFl", Sign.POSITIVE),
        ("0x0", Sign.ZERO),
    ])
    def test_non_decimal_literals_wrap(self, checker, literal, sign):
        units = units_of(checker, f"""
            long f() {{
                return {literal};
            }}
        """)
        assert units["T.f"].return_state is sign

    def test_all_ones_mask_does_not_guard(self, checker):
        issues = issues_of(checker, """
            int f(int y) {
                int m = 0xFFFFFFFF;
                if (y > m) {
                    return 10 / y;
                }
                return 0;
            }
        """)
        assert [i.message for i in issues] == ["divisor 'y' may be zero"]

    def test_char_to_short_is_narrowing(self, checker):
        issues = issues_of(checker, """
            int f(int y) {
                short s = (short) '\\uffff';
                if (y > s) {
                    return 10 / y;
                }
                return 0;
            }
        """)
        assert len(issues) == 1

    def test_char_to_int_keeps_sign(self, checker):
        assert issues_of(checker, """
            int f() {
                int c = (int) 'a';
                return 10 / c;
            }
        """) == []


class TestBranchRefinement:
    """Branch conditions refine the divisor."""

    def test_not_equal_zero_guard(self, checker):
        assert issues_of(checker, """
            int f(int x, int y) {
                if (y != 0) {
                    return x / y;
                }
                return 0;
            }
        """) == []

    def test_positive_guard(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                int z = 0;
                if (y > 0) z = 10 / y;
                return z;
            }
        """) == []

    def test_flipped_comparison(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                if (0 < y) {
                    return 10 / y;
                }
                return 0;
            }
        """) == []

    def test_else_branch(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                if (y <= 0) {
                    return 0;
                } else {
                    return 10 / y;
                }
            }
        """) == []

    def test_early_return(self, checker):
        issues = issues_of(checker, """
            int f(int x, int y) {
                if (y == 0) {
                    return x / y;
                }
                return x / y;
            }
        """)
        assert [i.message for i in issues] == ["divisor 'y' is always zero"]
        assert issues[0].line == 5

    def test_or_condition(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                if (y < 0 || y > 0) {
                    return 10 / y;
                }
                return 0;
            }
        """) == []

    def test_and_condition(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                if (y >= 0 && y != 0) {
                    return 10 / y;
                }
                return 0;
            }
        """) == []

    def test_negated_condition(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                if (!(y == 0)) {
                    return 10 / y;
                }
                return 0;
            }
        """) == []

    def test_ternary(self, checker):
        assert issues_of(checker, """
            int f(int y) {
                int d = y > 0 ? y : 1;
                return 10 / d;
            }
        """) == []

    def test_guard_not_strong_enough(self, checker):
        issues = issues_of(checker, """
            int f(int y) {
                if (y >= 0) {
                    return 10 / y;
                }
                return 0;
            }
        """)
        assert len(issues) == 1

    def test_dead_branch_not_reported(self, checker):
        assert issues_of(checker, """
            int f(int x) {
                if (false) {
                    return x / 0;
                }
                int y = 0;
                if (y > 0) {
                    return 10 / y;
                }
                return 1;
            }
        """) == []


class TestUpdates:
    """Increment, decrement and unary minus."""

    def test_increment_from_zero(self, checker):
        assert issues_of(checker, """
            int f() {
                int d = 0;
                d++;
                return 10 / d;
            }
        """) == []

    def test_decrement_from_zero(self, checker):
        assert issues_of(checker, """
            int f() {
                int d = 0;
                --d;
                return 10 / d;
            }
        """) == []

    def test_product_of_negatives(self, checker):
        units = units_of(checker, """
            int f() {
                int a = -2;
                int b = -3;
                return a * b;
            }
        """)
        assert units["T.f"].return_state is Sign.POSITIVE


class TestLoops:
    """Loops are iterated to a fixed point before reporting."""

    def test_stable_positive_divisor(self, checker):
        assert issues_of(checker, """
            int f(int n) {
                int d = 1;
                int s = 0;
                while (n > 0) {
                    s = s + 100 / d;
                    d = d * 2;
                    n = n - 1;
                }
                return s;
            }
        """) == []

    def test_divisor_changes_on_back_edge(self, checker):
        issues = issues_of(checker, """
            int f(int n) {
                int d = 1;
                int s = 0;
                while (n > 0) {
                    s = s + 100 / d;
                    d = d - 1;
                    n = n - 1;
                }
                return s;
            }
        """)
        assert len(issues) == 1
        assert issues[0].line == 7

    def test_counting_down_for(self, checker):
        assert issues_of(checker, """
            int f() {
                int s = 0;
                for (int i = 10; i > 0; i--) {
                    s += 100 / i;
                }
                return s;
            }
        """) == []

    def test_counting_up_from_zero(self, checker):
        issues = issues_of(checker, """
            int f() {
                int s = 0;
                for (int i = 0; i < 10; i++) {
                    s += 100 / i;
                }
                return s;
            }
        """)
        assert [i.message for i in issues] == ["divisor 'i' may be zero"]

    def test_do_while(self, checker):
        assert issues_of(checker, """
            int f(int n) {
                int d = 1;
                do {
                    d = d * 2;
                    n = n - 1;
                } while (n > 0);
                return 10 / d;
            }
        """) == []

    def test_break_store_reaches_exit(self, checker):
        issues = issues_of(checker, """
            int f(int n) {
                int d = 1;
                while (n > 0) {
                    n = n - 1;
                    if (n == 3) {
                        d = 0;
                        break;
                    }
                }
                return 10 / d;
            }
        """)
        assert len(issues) == 1

    def test_infinite_loop_exits_only_by_break(self, checker):
        assert issues_of(checker, """
            int f(int n) {
                int d;
                while (true) {
                    if (n > 0) {
                        d = n;
                        break;
                    }
                    n = 5;
                }
                return 10 / d;
            }
        """) == []

    def test_labeled_break(self, checker):
        issues = issues_of(checker, """
            int f(int n) {
                int d = 1;
                outer:
                for (int i = 0; i < n; i++) {
                    for (int j = 0; j < n; j++) {
                        if (i == j) {
                            d = 0;
                            break outer;
                        }
                    }
                }
                return 10 / d;
            }
        """)
        assert len(issues) == 1

    def test_iteration_cap_widens(self):
        src = java("""
            int f(int n) {
                int k = 5;
                int d = 1;
                while (n > 0) {
                    d = d - 1;
                    n = n - 1;
                }
                return 10 / k;
            }
        """)
        assert DivByZeroChecker().check_source(src).issues == []
        capped = DivByZeroChecker(AnalysisConfig(max_loop_iterations=1))
        assert len(capped.check_source(src).issues) == 1


class TestSwitchAndTry:
    """Switch statements / expressions and exception handling."""

    def test_switch_statement_all_cases_nonzero(self, checker):
        assert issues_of(checker, """
            int f(int k, int y) {
                int d;
                switch (k) {
                    case 1:
                        d = 2;
                        break;
                    case 2:
                        d = 3;
                        break;
                    default:
                        d = 4;
                }
                return y / d;
            }
        """) == []

    def test_switch_without_default_keeps_entry(self, checker):
        issues = issues_of(checker, """
            int f(int k, int y) {
                int d = 1;
                switch (k) {
                    case 1:
                        d = 0;
                        break;
                }
                return y / d;
            }
        """)
        assert len(issues) == 1

    def test_switch_expression(self, checker):
        assert issues_of(checker, """
            int f(int k, int y) {
                int d = switch (k) {
                    case 1 -> 2;
                    case 2 -> 5;
                    default -> 7;
                };
                return y / d;
            }
        """) == []

    def test_finally_sees_exception_from_try_body(self, checker):
        issues = issues_of(checker, """
            int g() { return 1; }
            int f() {
                int d = 0;
                int q = 0;
                try {
                    g();
                    d = 1;
                } finally {
                    q = 10 / d;
                }
                return q;
            }
        """)
        assert [i.message for i in issues] == ["divisor 'd' may be zero"]

    def test_finally_sees_exception_from_catch_body(self, checker):
        issues = issues_of(checker, """
            int g() { return 1; }
            int f() {
                int d = 1;
                int q = 0;
                try {
                    g();
                } catch (RuntimeException e) {
                    d = 0;
                    g();
                    d = 2;
                } finally {
                    q = 10 / d;
                }
                return q;
            }
        """)
        assert len(issues) == 1

    def test_finally_after_safe_try(self, checker):
        assert issues_of(checker, """
            int f() {
                int d = 1;
                int q = 0;
                try {
                    q = 3;
                } finally {
                    q = 10 / d;
                }
                return q;
            }
        """) == []

    def test_catch_sees_assigned_names_as_unknown(self, checker):
        issues = issues_of(checker, """
            int f(int y) {
                int d = 1;
                try {
                    d = y;
                    d = 5;
                } catch (RuntimeException e) {
                    return 10 / d;
                }
                return 10 / d;
            }
        """)
        assert len(issues) == 1
        assert issues[0].line == 9


class TestUnits:
    """Analysis units other than plain methods."""

    def test_return_state_of_constant_sum(self, checker):
        units = units_of(checker, """
            int f() {
                return 1 + 0;
            }
        """)
        assert units["T.f"].return_state is Sign.POSITIVE

    def test_return_state_joins_paths(self, checker):
        units = units_of(checker, """
            int f(int y) {
                if (y > 0) {
                    return y;
                }
                return -1;
            }
            void g() {
            }
        """)
        assert units["T.f"].return_state is Sign.NON_ZERO
        assert units["T.g"].return_state is Sign.BOTTOM

    def test_expression_lambda(self, checker):
        result = checker.check_source(java("""
            java.util.function.IntUnaryOperator op = v -> 100 / v;
            java.util.function.IntUnaryOperator safe = v -> v != 0 ? 100 / v : 0;
        """))
        assert len(result.issues) == 1
        assert any(u.kind == "lambda" for u in result.units)

    def test_block_lambda(self, checker):
        issues = issues_of(checker, """
            void f() {
                Runnable r = () -> {
                    int z = 0;
                    System.out.println(1 / z);
                };
            }
        """)
        assert [i.message for i in issues] == ["divisor 'z' is always zero"]

    def test_static_initializer(self, checker):
        units = units_of(checker, """
            static int Z;
            static {
                int z = 0;
                Z = 10 / z;
            }
        """)
        assert len(units["T.<clinit>"].issues) == 1

    def test_constructor(self, checker):
        units = units_of(checker, """
            int q;
            T(int y) {
                this.q = 10 / y;
            }
        """)
        assert units["T.T"].kind == "constructor"
        assert len(units["T.T"].issues) == 1


class TestInterpreterDirect:
    """Driving DivByZeroInterpreter without the checker."""

    @pytest.fixture
    def context(self):
        source = java("""
            int f(int y) {
                if (y != 0) {
                    return 10 / y;
                }
                return 10 / y;
            }
        """).encode()
        tree = create_java_parser().parse(source)
        return AnalysisContext(tree, source, "T.java")

    def test_units_collected(self, context):
        assert [u.name for u in context.units] == ["T.f"]
        assert context.unit("f").parameters == [("y", "int")]

    def test_unknown_unit(self, context):
        with pytest.raises(KeyError):
            context.unit("g")

    def test_issue_has_path(self, context):
        interpreter = DivByZeroInterpreter(context)
        results = interpreter.run()
        assert len(results) == 1
        assert [i.line for i in interpreter.issues] == [7]
        assert interpreter.issues[0].path == "T.java"
        assert interpreter.issues[0].format().startswith("T.java:7:")

    def test_exit_store_after_return_is_unreachable(self, context):
        result = DivByZeroInterpreter(context).analyze_unit(context.unit("f"))
        assert not result.exit_store.reachable
