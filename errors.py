"""Exceptions raised while evaluating an expression.

Every stage raises a subclass of `CalcError` and never catches one coming from
a stage below it, so the first problem found is what the caller sees.
"""


class CalcError(ValueError):
    pass


class LexicalError(CalcError):
    """The text could not be split into tokens.

    `text` is the offending character, word or number as written, `position`
    its column in the stripped input.
    """

    def __init__(self, message, text, position):
        super().__init__(message)
        self.text = text
        self.position = position


class ParseError(CalcError):
    """The tokens do not form an expression (missing operand, bad nesting)."""


class SemanticError(CalcError):
    """A constant, function or operator name has no meaning at evaluation."""

    def __init__(self, message, name):
        super().__init__(message)
        self.name = name
