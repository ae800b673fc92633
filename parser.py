"""Build an expression tree from tokens without a precedence table.

`normalize` surrounds every binary operator with synthetic parentheses, more
of them the looser the operator binds. After that, the only rule the tree
builder needs is "split at the first operator that is outside every
parenthesis"; peeling redundant parentheses off a group never changes its
meaning because of the extra layers `normalize` adds around everything.

>>> to_ast("1 + 2 * 3")
Root(child=Binary(operator='+', left=Number(value=1.0), right=Binary(operator='*', left=Number(value=2.0), right=Number(value=3.0))))
"""
import logging
import math
from types import MappingProxyType
from typing import NamedTuple, Optional, Tuple, Union

from errors import ParseError
from lexer import LPAREN, RPAREN, Kind, Token, canonicalize_num, format_tokens, tokenize

logger = logging.getLogger(__name__)

# Parenthesis layers wrapped around the whole input and substituted for each
# user parenthesis; must exceed the largest binding depth below.
HEADROOM = 4
BINDING_DEPTH = MappingProxyType({"^": 1, "*": 2, "/": 2, "+": 3, "-": 3})
UNARY_OPS = frozenset("+-")

# Bounds the nesting (parentheses, signs, function arguments) the tree
# builder recurses into. Long chains like `1 + 2 + ... + n` do not count.
MAX_DEPTH = 400


class Root(NamedTuple):
    child: "Node"


class Number(NamedTuple):
    value: float


class Constant(NamedTuple):
    name: str


class Function(NamedTuple):
    name: str
    argument: "Node"


class Binary(NamedTuple):
    operator: str
    left: "Node"
    right: "Node"


Node = Union[Number, Constant, Function, Binary]


class PreparsedBinary(NamedTuple):
    left: Tuple[Token, ...]
    operator: str
    right: Tuple[Token, ...]


def is_unary(tokens, i):
    """Is the `+`/`-` at `tokens[i]` a sign rather than a binary operator?

    It is when nothing precedes it, or an opening parenthesis or another
    operator does. A `+`/`-` after `)` is binary.
    """
    if tokens[i].kind is not Kind.OPERATOR or tokens[i].value not in UNARY_OPS:
        return False
    return i == 0 or tokens[i - 1] == LPAREN or tokens[i - 1].kind is Kind.OPERATOR


def normalize(tokens):
    """Encode operator precedence as parenthesis nesting.

    >>> format_tokens(normalize(tokenize("1 + 2 * 3")))
    '( ( ( ( 1 ) ) ) + ( ( ( 2 ) ) * ( ( 3 ) ) ) )'
    """
    out = [LPAREN] * HEADROOM
    for i, tok in enumerate(tokens):
        if tok == LPAREN:
            out += [LPAREN] * HEADROOM
        elif tok == RPAREN:
            out += [RPAREN] * HEADROOM
        elif tok.kind is Kind.OPERATOR and not is_unary(tokens, i):
            n = BINDING_DEPTH[tok.value]
            out += [RPAREN] * n + [tok] + [LPAREN] * n
        else:
            out.append(tok)
    out += [RPAREN] * HEADROOM
    return tuple(out)


def extract_window(tokens):
    """Split `( inner ) rest...` into `inner` and `rest`."""
    if not tokens or tokens[0] != LPAREN:
        raise ParseError('Expected "(".')
    depth = 0
    for i, tok in enumerate(tokens):
        if tok == LPAREN:
            depth += 1
        elif tok == RPAREN:
            depth -= 1
            if depth == 0:
                return tokens[1:i], tokens[i + 1 :]
    raise ParseError('Unmatched "(".')


def split_binary(tokens) -> Optional[PreparsedBinary]:
    """Split at the first binary operator outside all parentheses, if any."""
    depth = 0
    for i, tok in enumerate(tokens):
        if tok == LPAREN:
            depth += 1
        elif tok == RPAREN:
            depth -= 1
            if depth < 0:
                raise ParseError('Unmatched ")".')
        elif depth == 0 and tok.kind is Kind.OPERATOR and not is_unary(tokens, i):
            return PreparsedBinary(tokens[:i], tok.value, tokens[i + 1 :])
    return None


def _parse_chain(split, depth):
    # `a op b op c`: every operator of the chain has the same binding depth,
    # so keep splitting the right-hand rest and fold left to right.
    operands, operators = [split.left], [split.operator]
    while (next_split := split_binary(split.right)) is not None:
        split = next_split
        operands.append(split.left)
        operators.append(split.operator)
    operands.append(split.right)

    node = parse_expression(operands[0], depth + 1)
    for op, operand in zip(operators, operands[1:]):
        node = Binary(op, node, parse_expression(operand, depth + 1))
    return node


def _unexpected(rest):
    return ParseError(f'Unexpected "{format_tokens(rest[:1])}".')


def parse_expression(tokens, depth=0):
    """Parse a slice of a normalized token sequence into a node."""
    if depth > MAX_DEPTH:
        raise ParseError("Expression is too deeply nested.")
    if not tokens:
        raise ParseError("Missing operand.")

    first = tokens[0]
    if first == LPAREN or is_unary(tokens, 0):
        # The slice may be a whole chain whose left operand starts with "(".
        if (split := split_binary(tokens)) is not None:
            return _parse_chain(split, depth)

    if first == LPAREN:
        window, rest = extract_window(tokens)
        if rest:
            raise _unexpected(rest)
        if (split := split_binary(window)) is not None:
            return _parse_chain(split, depth)
        return parse_expression(window, depth + 1)

    if is_unary(tokens, 0):
        # Signs are kept as `0 + x` / `0 - x`.
        return Binary(first.value, Number(0.0), parse_expression(tokens[1:], depth + 1))

    if first.kind is Kind.NUMBER:
        node, rest = Number(first.value), tokens[1:]
    elif first.kind is Kind.CONSTANT:
        node, rest = Constant(first.value), tokens[1:]
    elif first.kind is Kind.FUNCTION:
        if len(tokens) < 2 or tokens[1] != LPAREN:
            raise ParseError(f'Function "{first.value}" expects a parenthesized argument.')
        window, rest = extract_window(tokens[1:])
        node = Function(first.value, parse_expression(window, depth + 1))
    elif first.kind is Kind.OPERATOR:
        raise ParseError(f'Missing operand before "{first.value}".')
    else:
        raise _unexpected(tokens)

    if rest:
        raise _unexpected(rest)
    return node


def parse(tokens):
    normalized = normalize(tokens)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("normalized: %s", format_tokens(normalized))
    return Root(parse_expression(normalized))


def to_ast(s):
    return parse(tokenize(s))


def unparse(node):
    """Print a tree built by `parse` as fully parenthesized text.

    >>> unparse(to_ast("-2^2 + sqrt(pi)"))
    '(((0 - 2) ^ 2) + SQRT(PI))'
    """
    t = type(node)
    if t is Root:
        return unparse(node.child)
    if t is Number:
        return "1E999" if node.value == math.inf else canonicalize_num(node.value)
    if t is Constant:
        return node.name
    if t is Function:
        return f"{node.name}({unparse(node.argument)})"
    if t is Binary:
        return f"({unparse(node.left)} {node.operator} {unparse(node.right)})"
    raise TypeError(f"Not an expression node: {node!r}")
