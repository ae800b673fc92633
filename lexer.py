"""Split arithmetic expression text into tokens.

The grammar is case-insensitive: identifiers are upper-cased and matched
against the tables below. Error positions and texts refer to the stripped
input as written.

>>> tokenize("2*pi")
(number(2.0), operator('*'), constant('PI'))
"""
import logging
import math
import unicodedata
from enum import Enum
from typing import Iterator, NamedTuple, Union

from errors import LexicalError

logger = logging.getLogger(__name__)

DIGITS = "0123456789"
OPERATORS = frozenset("+-*/^")
PUNCTUATION = frozenset("()")
CONSTANTS = frozenset(["PI", "E"])
FUNCTIONS = frozenset(["SIN", "COS", "TAN", "ATAN", "EXP", "ABS", "LOG", "LN", "SQRT"])


class Kind(Enum):
    NUMBER = "number"
    OPERATOR = "operator"
    CONSTANT = "constant"
    FUNCTION = "function"
    PUNCTUATION = "punctuation"


class Token(NamedTuple):
    kind: Kind
    value: Union[float, str]  # float for NUMBER, a 1-char or name str otherwise

    def __repr__(self):
        return f"{self.kind.value}({self.value!r})"


LPAREN = Token(Kind.PUNCTUATION, "(")
RPAREN = Token(Kind.PUNCTUATION, ")")


def _is_latin_letter(ch):
    return ch.isalpha() and unicodedata.name(ch, "").startswith("LATIN ")


def _number_end(s, start):
    """Return the index just past the number literal starting at `s[start]`.

    Accepts digits, one `.` and one exponent `E` (or `e`) that must be directly
    followed by a digit or by `-`. A second `.` or `E` ends the literal.
    """
    seen_dot = seen_exp = False
    i = start
    while i < len(s):
        ch = s[i]
        if ch == ".":
            if seen_dot:
                break
            seen_dot = True
        elif ch in "Ee":
            after = s[i + 1 : i + 2]
            if seen_exp or not after or after not in "-" + DIGITS:
                break
            seen_exp = True
        elif ch == "-":
            if not (seen_exp and s[i - 1] in "Ee"):
                break
        elif ch not in DIGITS:
            break
        i += 1
    return i


def _word_end(s, start):
    i = start
    while i < len(s) and _is_latin_letter(s[i]):
        i += 1
    return i


def lex(s) -> Iterator[Token]:
    """Lazily yield the tokens of `s`.

    Raises `LexicalError` at the first character that cannot start or
    continue a token; tokens yielded before that point are not meaningful on
    their own, use `tokenize` to get all-or-nothing behaviour.
    """
    s = s.strip()
    i = 0
    while True:
        while i < len(s) and s[i].isspace():
            i += 1
        if i == len(s):
            return
        ch = s[i]
        if ch in DIGITS:
            end = _number_end(s, i)
            try:
                value = float(s[i:end])
            except ValueError:
                raise LexicalError(
                    f'Malformed number "{s[i:end]}".', s[i:end], i
                ) from None
            yield Token(Kind.NUMBER, value)
            i = end
        elif ch in OPERATORS:
            yield Token(Kind.OPERATOR, ch)
            i += 1
        elif _is_latin_letter(ch):
            end = _word_end(s, i)
            word = s[i:end]
            # Upper-casing can change the length ("ß" -> "SS"); only the
            # lookup uses it.
            name = word.upper()
            if name in CONSTANTS:
                yield Token(Kind.CONSTANT, name)
            elif name in FUNCTIONS:
                yield Token(Kind.FUNCTION, name)
            else:
                raise LexicalError(f'Undefined keyword "{word}".', word, i)
            i = end
        elif ch in PUNCTUATION:
            yield LPAREN if ch == "(" else RPAREN
            i += 1
        else:
            raise LexicalError(f'Undefined character "{ch}".', ch, i)


def tokenize(s):
    """Return all tokens of `s` as a tuple, or raise on the first error.

    An empty (or all-blank) `s` gives an empty tuple; rejecting that is left
    to the parser.
    """
    tokens = tuple(lex(s))
    logger.debug("tokenized %r into %d tokens", s, len(tokens))
    return tokens


def format_tokens(tokens):
    """Render tokens as compact text, e.g. for logging normalized sequences.

    >>> format_tokens(tokenize("(1 + 2.5) * sin(pi)"))
    '( 1 + 2.5 ) * SIN ( PI )'
    """
    return " ".join(
        canonicalize_num(t.value) if t.kind is Kind.NUMBER else t.value for t in tokens
    )


def canonicalize_num(num):
    """Shortest text that reads back as `num`: 2.0 -> '2', 0.5 -> '0.5'."""
    if math.isfinite(num) and (integer := int(num)) == num:
        return repr(integer)
    return repr(num)
