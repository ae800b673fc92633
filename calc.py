"""Command-line calculator.

    $ calc "2 + 3 * 4"
    14.0
    $ calc -- -5 + 3
    -2.0

Without an expression, reads expressions interactively until EOF.
"""
import argparse
import logging
import os
import sys

from errors import CalcError
from evaluator import evaluate

DEBUG = bool(os.getenv("DEBUG", False))
PROMPT = ">>> "


def stderr(*args):
    # sys.stderr is resolved per call; it may be replaced after import.
    print(*args, file=sys.stderr)


def repl(read=input):
    while True:
        try:
            expr = read(PROMPT).strip()
        except EOFError:
            stderr()
            return 0
        except KeyboardInterrupt:
            stderr("\ninterrupted")
            return 130
        if not expr:
            continue
        try:
            print(evaluate(expr))
        except CalcError as e:
            stderr("error:", e)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("expression", nargs="*", help="expression to evaluate")
    parser.add_argument("--debug", action="store_true", default=DEBUG)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    if not args.expression:
        return repl()
    try:
        print(evaluate(" ".join(args.expression)))
    except CalcError as e:
        stderr("error:", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
