import math
import warnings
from concurrent.futures import ThreadPoolExecutor
from math import inf, isnan

import pytest
from hypothesis import given, strategies as st

import evaluator
import lexer
from errors import CalcError, LexicalError, ParseError, SemanticError
from evaluator import evaluate, evaluate_node
from lexer import canonicalize_num
from parser import Binary, Constant, Function, Number, Root


def test_evaluate_handpicked():
    assert evaluate("42") == 42.0
    assert evaluate("2 + 3 * 4") == 14
    assert evaluate("(2 + 3) * 4") == 20
    assert evaluate("3 + (8 - 7.5) * 10 / 5  - (2 + 5 * 7)") == -33.0
    assert evaluate("COS(0) + 1") == 2
    assert evaluate("2 * pi") == 2 * math.pi
    assert evaluate("e") == math.e
    assert evaluate("1.5E3 / 3") == 500


def test_left_to_right_grouping():
    assert evaluate("8 - 3 - 2") == 3
    assert evaluate("16 / 4 / 2") == 2
    assert evaluate("2 ^ 3 ^ 2") == 64
    assert evaluate("2 ^ 3 ^ 2") == evaluate("(2 ^ 3) ^ 2")
    assert evaluate("2 ^ 3 ^ 2") != evaluate("2 ^ (3 ^ 2)")


def test_signs():
    assert evaluate("-5 + 3") == -2
    assert evaluate("3 + -5") == -2
    assert evaluate("3 + + 4") == 7
    assert evaluate("3 - -4") == 7
    assert evaluate("--5") == 5
    assert evaluate("-(1 + 2) * 2") == -6
    # A sign binds tighter than "^".
    assert evaluate("-2 ^ 2") == 4
    assert evaluate("2 ^ -1") == 0.5
    assert evaluate("-0") == 0.0


def test_case_insensitive():
    assert evaluate("Pi") == evaluate("PI") == evaluate("pi")
    assert evaluate("sQrT(4)") == 2


@pytest.mark.parametrize(
    "s, expected",
    [
        ("sin(pi / 2)", 1.0),
        ("cos(pi)", -1.0),
        ("tan(0)", 0.0),
        ("atan(1)", math.pi / 4),
        ("exp(1)", math.e),
        ("abs(-3.5)", 3.5),
        ("log(1000)", 3.0),
        ("ln(e ^ 2)", 2.0),
        ("sqrt(16)", 4.0),
        ("sqrt(2) ^ 2", 2.0),
    ],
)
def test_functions(s, expected):
    assert evaluate(s) == pytest.approx(expected, rel=1e-12, abs=1e-15)


def test_ieee_edge_cases():
    assert evaluate("1 / 0") == inf
    assert evaluate("-1 / 0") == -inf
    assert isnan(evaluate("0 / 0"))
    assert evaluate("0 ^ 0") == 1 == math.pow(0, 0)
    assert evaluate("0 ^ -1") == inf
    assert isnan(evaluate("(-8) ^ (1 / 3)"))
    assert isnan(evaluate("SQRT(-1)"))
    assert isnan(evaluate("ln(-1)"))
    assert evaluate("ln(0)") == -inf
    assert evaluate("exp(1000)") == inf
    assert evaluate("10 ^ 400") == inf
    assert evaluate("1e999 - 1e999") != evaluate("1e999 - 1e999")
    # NaN propagates.
    assert isnan(evaluate("sqrt(-1) * 0 + 1"))


def test_no_floating_point_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        evaluate("1 / 0 + 0 / 0 + sqrt(-1) + ln(0) + exp(1000)")


def test_results_are_python_floats():
    assert type(evaluate("1 + 1")) is float
    assert type(evaluate("sin(1)")) is float


def test_errors():
    with pytest.raises(ParseError):
        evaluate("")
    with pytest.raises(LexicalError, match='Undefined keyword "FOO"'):
        evaluate("FOO(1)")
    with pytest.raises(LexicalError, match='Undefined character "!"'):
        evaluate("3!")
    with pytest.raises(ParseError, match="Missing operand"):
        evaluate("3 * / 4")
    for s in ["", "FOO(1)", "(1", "2 ^"]:
        with pytest.raises(CalcError):
            evaluate(s)


def test_semantic_errors():
    with pytest.raises(SemanticError, match='Undefined constant "TAU"') as exc:
        evaluate_node(Root(Constant("TAU")))
    assert exc.value.name == "TAU"
    with pytest.raises(SemanticError, match='Undefined function "SINH"'):
        evaluate_node(Root(Function("SINH", Number(1.0))))
    with pytest.raises(SemanticError, match='Undefined operator "%"'):
        evaluate_node(Root(Binary("%", Number(7.0), Number(2.0))))


def test_evaluation_order():
    # The argument is evaluated before the function name is looked up, the
    # left operand before the right one.
    with pytest.raises(SemanticError, match="TAU"):
        evaluate_node(Function("SINH", Constant("TAU")))
    with pytest.raises(SemanticError, match="PHI"):
        evaluate_node(Binary("%", Constant("PHI"), Constant("TAU")))
    with pytest.raises(SemanticError, match="PHI"):
        evaluate_node(Binary("+", Constant("PHI"), Constant("TAU")))


def test_left_nested_chain_is_evaluated_in_order():
    tree = Number(100.0)
    for i in range(5000):
        tree = Binary("-", tree, Number(float(i % 3)))
    assert evaluate_node(tree) == 100 - sum(i % 3 for i in range(5000))
    # Each operator is still checked after both of its operands.
    tree = Binary("%", Binary("+", Number(1.0), Constant("TAU")), Constant("PHI"))
    with pytest.raises(SemanticError, match="TAU"):
        evaluate_node(tree)
    tree = Binary("+", Binary("%", Number(1.0), Number(2.0)), Constant("PHI"))
    with pytest.raises(SemanticError, match='Undefined operator "%"'):
        evaluate_node(tree)


def test_evaluate_does_not_mutate_tree():
    tree = Root(Binary("*", Function("ABS", Number(-2.0)), Constant("PI")))
    copy = Root(Binary("*", Function("ABS", Number(-2.0)), Constant("PI")))
    assert evaluate_node(tree) == evaluate_node(tree) == 2 * math.pi
    assert tree == copy


def test_vocabularies_agree():
    assert frozenset(evaluator.CONSTANTS) == lexer.CONSTANTS
    assert frozenset(evaluator.FUNCTIONS) == lexer.FUNCTIONS
    assert frozenset(evaluator.BINARY_OPS) == lexer.OPERATORS


def test_concurrent_evaluation():
    exprs = [f"{i} * (sin({i}) ^ 2 + cos({i}) ^ 2)" for i in range(200)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(evaluate, exprs))
    assert results == pytest.approx([float(i) for i in range(200)])


def same(x, y):
    return x == y or isnan(x) and isnan(y)


def similar(x, y):
    return same(x, y) or math.isclose(x, y, rel_tol=1e-9, abs_tol=1e-300)


finite = st.floats(min_value=0, allow_nan=False, allow_infinity=False).map(abs)


@given(finite, finite)
def test_arithmetic_is_ieee(a, b):
    x, y = canonicalize_num(a), canonicalize_num(b)
    assert evaluate(f"{x} + {y}") == a + b
    assert evaluate(f"{x} - {y}") == a - b
    assert evaluate(f"{x} * {y}") == a * b
    if b:
        assert evaluate(f"{x} / {y}") == a / b
    assert evaluate(f"-{x}") == -a


@given(finite, finite)
def test_power_matches_pow(a, b):
    try:
        expected = math.pow(a, b)
    except OverflowError:
        expected = inf
    assert similar(evaluate(f"{canonicalize_num(a)} ^ {canonicalize_num(b)}"), expected)
