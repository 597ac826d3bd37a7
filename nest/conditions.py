"""
Boolean conditions for `if` / `elif` directives.

Grammar (loosest first)

    expression := conjunction ("||" conjunction)*
    conjunction := negation ("&&" negation)*
    negation    := "!" negation | primary
    primary     := "(" expression ")" | comparison | operand
    comparison  := operand ("==" | "!=" | "<=" | ">=" | "<" | ">") operand

Operands are quoted strings or bare words. Comparisons are numeric when both
sides parse as numbers, string-based otherwise. A lone operand is true when it
reads "true" (or a non-zero number), false for "false", "0" and "".

Callers template-process the condition text before handing it in.
"""
import operator
import re

from .faults import FaultCode, InvalidSyntaxError, getdoc
from .utils import unquote

_TOKEN = re.compile(r"""\s*(?:(?P<operator>\|\||&&|==|!=|<=|>=|<|>|!|\(|\))|(?P<operand>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|[^\s()!<>=&|]+))""")

_COMPARISONS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<=": operator.le,
    ">=": operator.ge,
    "<": operator.lt,
    ">": operator.gt,
}


def _tokenize(text):
    tokens = []
    index = 0
    text = text.strip()
    while index < len(text):
        match = _TOKEN.match(text, index)
        if not match or match.end() == index:
            raise _invalid("unexpected character %r in condition %r" % (text[index:].strip()[:1], text))
        tokens.append(("operator", match["operator"]) if match["operator"] else ("operand", unquote(match["operand"])))
        index = match.end()
        while index < len(text) and text[index].isspace():
            index += 1
    return tokens


def _invalid(message):
    return InvalidSyntaxError(
        message,
        title="invalid condition",
        code=FaultCode.INVALID_SYNTAX,
        hint="conditions combine comparisons with &&, || and !, e.g. {{env}} == \"prod\"",
        docs=getdoc(FaultCode.INVALID_SYNTAX),
    )


def _number(text):
    try:
        return float(text)
    except ValueError:
        return None


def truthy(text, /):
    """truth value of a lone operand."""
    lowered = text.strip().lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no", ""):
        return False
    if (number := _number(lowered)) is not None:
        return number != 0
    return True


def compare(left, symbol, right, /):
    """compare two operands, numerically when both are numbers."""
    if (a := _number(left)) is not None and (b := _number(right)) is not None:
        return _COMPARISONS[symbol](a, b)
    return _COMPARISONS[symbol](left, right)


class _Evaluator:
    def __init__(self, tokens, text):
        self.tokens = tokens
        self.text = text
        self.index = 0

    def peek(self):
        return self.tokens[self.index] if self.index < len(self.tokens) else (None, None)

    def take(self):
        token = self.peek()
        self.index += 1
        return token

    def expression(self):
        value = self.conjunction()
        while self.peek() == ("operator", "||"):
            self.take()
            right = self.conjunction()
            value = value or right
        return value

    def conjunction(self):
        value = self.negation()
        while self.peek() == ("operator", "&&"):
            self.take()
            right = self.negation()
            value = value and right
        return value

    def negation(self):
        if self.peek() == ("operator", "!"):
            self.take()
            return not self.negation()
        return self.primary()

    def primary(self):
        kind, token = self.take()
        if (kind, token) == ("operator", "("):
            value = self.expression()
            if self.take() != ("operator", ")"):
                raise _invalid("missing ')' in condition %r" % self.text)
            return value
        if kind != "operand":
            raise _invalid("expected a value in condition %r" % self.text)
        kind, symbol = self.peek()
        if kind == "operator" and symbol in _COMPARISONS:
            self.take()
            kind, right = self.take()
            if kind != "operand":
                raise _invalid("expected a value after %r in condition %r" % (symbol, self.text))
            return compare(token, symbol, right)
        return truthy(token)


def evaluate(text, /):
    """evaluate a condition; raises InvalidSyntaxError when it is malformed."""
    tokens = _tokenize(text)
    if not tokens:
        raise _invalid("empty condition")
    evaluator = _Evaluator(tokens, text)
    value = evaluator.expression()
    if evaluator.index != len(tokens):
        raise _invalid("unexpected %r in condition %r" % (evaluator.peek()[1], text))
    return value


__all__ = (
    "evaluate",
    "compare",
    "truthy",
)
