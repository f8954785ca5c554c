"""
Formula Evaluator

Evaluates calculated-metric formulas such as

    [Weight] / (([Height]/100) * ([Height]/100))

The language is deliberately tiny: decimal literals, bracketed metric
references, + - * /, unary sign, parentheses and whitespace. Formulas are
tokenized and parsed into an expression tree by a recursive-descent parser,
then evaluated by walking the tree. Nothing is ever executed as code.

Grammar:
    expression := term (("+" | "-") term)*
    term       := factor (("*" | "/") factor)*
    factor     := ("+" | "-") factor | NUMBER | REFERENCE | "(" expression ")"

`evaluate` never raises: every failure (syntax error, unknown or missing
reference, division by zero, non-finite result) comes back as None, which
callers read as "no value for this metric on this date".
"""

from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from functools import lru_cache
from typing import Callable, List, Mapping, Optional, Union
import logging
import math

from core.metrics_config import metrics_config
from .models import CompositeDataPoint, MetricValue
from .registry import MetricRegistry

logger = logging.getLogger(__name__)

NUMBER = "number"
REFERENCE = "reference"
OPERATOR = "operator"
LPAREN = "lparen"
RPAREN = "rparen"

_OPERATORS = "+-*/"
# Bounds parser and evaluator recursion depth
MAX_OPERATORS = 100
_DIGITS = "0123456789"


class FormulaError(ValueError):
    """Base class for formula problems."""


class FormulaSyntaxError(FormulaError):
    """The formula text cannot be parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)
        self.position = position


class UnknownMetricReference(FormulaError):
    """The formula names a metric the registry does not know."""

    def __init__(self, name: str):
        super().__init__(f"Unknown metric reference: [{name}]")
        self.name = name


class _Unresolved(Exception):
    """Raised during evaluation when a reference has no usable value."""


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(formula: str) -> List[Token]:
    """Split formula text into tokens. Raises FormulaSyntaxError."""
    tokens: List[Token] = []
    i = 0
    n = len(formula)
    while i < n:
        ch = formula[i]
        if ch.isspace():
            i += 1
        elif ch == "[":
            end = formula.find("]", i + 1)
            if end == -1:
                raise FormulaSyntaxError("Unterminated metric reference", i)
            tokens.append(Token(REFERENCE, formula[i + 1:end], i))
            i = end + 1
        elif ch in _DIGITS or ch == ".":
            start = i
            seen_dot = False
            while i < n and (formula[i] in _DIGITS or (formula[i] == "." and not seen_dot)):
                if formula[i] == ".":
                    seen_dot = True
                i += 1
            text = formula[start:i]
            if text == ".":
                raise FormulaSyntaxError("Malformed number", start)
            tokens.append(Token(NUMBER, text, start))
        elif ch in _OPERATORS:
            tokens.append(Token(OPERATOR, ch, i))
            i += 1
        elif ch == "(":
            tokens.append(Token(LPAREN, ch, i))
            i += 1
        elif ch == ")":
            tokens.append(Token(RPAREN, ch, i))
            i += 1
        else:
            raise FormulaSyntaxError(f"Unexpected character {ch!r}", i)
    return tokens


# --- Expression tree ---

Resolver = Callable[[str], float]


@dataclass(frozen=True)
class Literal:
    value: float

    def evaluate(self, resolve: Resolver) -> float:
        return self.value


@dataclass(frozen=True)
class MetricRef:
    name: str

    def evaluate(self, resolve: Resolver) -> float:
        return resolve(self.name)


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"

    def evaluate(self, resolve: Resolver) -> float:
        value = self.operand.evaluate(resolve)
        return -value if self.op == "-" else value


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"

    def evaluate(self, resolve: Resolver) -> float:
        left = self.left.evaluate(resolve)
        right = self.right.evaluate(resolve)
        if self.op == "+":
            return left + right
        if self.op == "-":
            return left - right
        if self.op == "*":
            return left * right
        # Division by zero propagates as ZeroDivisionError
        return left / right


Node = Union[Literal, MetricRef, UnaryOp, BinaryOp]


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[Token], source: str):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty formula")
        operators = sum(1 for t in self.tokens if t.kind in (OPERATOR, LPAREN))
        if operators > MAX_OPERATORS:
            raise FormulaSyntaxError(f"Formula too complex: more than {MAX_OPERATORS} operators and parentheses")
        node = self._expression()
        token = self._peek()
        if token is not None:
            raise FormulaSyntaxError(f"Unexpected {token.text!r}", token.position)
        return node

    def _expression(self) -> Node:
        node = self._term()
        while True:
            token = self._peek()
            if token is None or token.kind != OPERATOR or token.text not in "+-":
                return node
            self._advance()
            node = BinaryOp(token.text, node, self._term())

    def _term(self) -> Node:
        node = self._factor()
        while True:
            token = self._peek()
            if token is None or token.kind != OPERATOR or token.text not in "*/":
                return node
            self._advance()
            node = BinaryOp(token.text, node, self._factor())

    def _factor(self) -> Node:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula", len(self.source))
        if token.kind == OPERATOR and token.text in "+-":
            self._advance()
            return UnaryOp(token.text, self._factor())
        if token.kind == NUMBER:
            self._advance()
            return Literal(float(token.text))
        if token.kind == REFERENCE:
            self._advance()
            return MetricRef(token.text)
        if token.kind == LPAREN:
            self._advance()
            node = self._expression()
            closing = self._peek()
            if closing is None or closing.kind != RPAREN:
                raise FormulaSyntaxError("Missing closing parenthesis", token.position)
            self._advance()
            return node
        raise FormulaSyntaxError(f"Unexpected {token.text!r}", token.position)


@lru_cache(maxsize=512)
def parse_formula(formula: str) -> Node:
    """
    Parse formula text into an expression tree.

    Trees are immutable, so parsed formulas are cached and shared.

    Raises:
        FormulaSyntaxError: If the text is not a valid formula
    """
    return _Parser(tokenize(formula), formula).parse()


def formula_references(formula: str) -> List[str]:
    """Metric names referenced by a formula, in order of first appearance."""
    seen: List[str] = []
    for token in tokenize(formula):
        if token.kind == REFERENCE and token.text not in seen:
            seen.append(token.text)
    return seen


def validate_formula(formula: str, registry: Optional[MetricRegistry] = None) -> List[str]:
    """
    Check a formula before it is stored.

    Args:
        formula: Formula text
        registry: When given, every reference must name a known metric

    Returns:
        Referenced metric names

    Raises:
        FormulaSyntaxError: If the formula does not parse
        UnknownMetricReference: If a reference is not in the registry
    """
    parse_formula(formula)
    references = formula_references(formula)
    if registry is not None:
        for name in references:
            if registry.get_by_name(name) is None:
                raise UnknownMetricReference(name)
    return references


def rename_reference(formula: str, old_name: str, new_name: str) -> str:
    """Rewrite every [old_name] reference in a formula to [new_name]."""
    try:
        tokens = tokenize(formula)
    except FormulaSyntaxError:
        return formula.replace(f"[{old_name}]", f"[{new_name}]")

    parts: List[str] = []
    cursor = 0
    for token in tokens:
        if token.kind == REFERENCE and token.text == old_name:
            parts.append(formula[cursor:token.position])
            parts.append(f"[{new_name}]")
            cursor = token.position + len(old_name) + 2
    parts.append(formula[cursor:])
    return "".join(parts)


def round_value(value: float, decimals: Optional[int] = None) -> float:
    """
    Round half away from zero on the exact binary value.

    0.125 -> 0.13 and 1.005 -> 1.0 (1.005 is stored as 1.00499...).
    Infinity and NaN are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    places = metrics_config.value_decimals if decimals is None else decimals
    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-places)
    # Enough digits for the integer part of any float plus the decimals
    context = Context(prec=max(28, exact.adjusted() + places + 2))
    return float(exact.quantize(quantum, rounding=ROUND_HALF_UP, context=context))


def _as_number(raw: Optional[MetricValue]) -> float:
    if raw is None or isinstance(raw, bool):
        raise _Unresolved()
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            raise _Unresolved()
    raise _Unresolved()


def evaluate(
    formula: Optional[str],
    data_point: Union[CompositeDataPoint, Mapping[str, MetricValue]],
    registry: Optional[MetricRegistry] = None,
    decimals: Optional[int] = None,
) -> Optional[float]:
    """
    Evaluate a formula against one data point.

    Args:
        formula: Formula text, e.g. "[Weight] / (([Height]/100) * ([Height]/100))"
        data_point: A composite record (values keyed by metric id) or a plain
            mapping. With a registry, references are resolved name -> id
            first; without one, the reference name is the key.
        registry: Metric registry used to resolve reference names
        decimals: Decimal places to round to (default from MetricsConfig)

    Returns:
        The rounded result, or None if any referenced value is missing,
        the formula is malformed, or the result is not a finite number.

    Examples:
        >>> evaluate("[Weight] / (([Height]/100) * ([Height]/100))", {"Weight": 70, "Height": 175})
        22.86
        >>> evaluate("[Weight] * 2", {"Height": 175})
        None
    """
    if not formula:
        return None

    try:
        tree = parse_formula(formula)
    except FormulaSyntaxError as e:
        logger.debug(f"Formula not evaluated, syntax error: {e}")
        return None

    values = data_point.values if isinstance(data_point, CompositeDataPoint) else data_point

    def resolve(name: str) -> float:
        key: Optional[str] = name
        if registry is not None:
            key = registry.resolve(name)
            if key is None:
                logger.debug(f"Formula references unknown metric [{name}]")
                raise _Unresolved()
        return _as_number(values.get(key))

    try:
        result = tree.evaluate(resolve)
    except _Unresolved:
        return None
    except (ZeroDivisionError, OverflowError):
        return None

    if not math.isfinite(result):
        return None
    try:
        return round_value(result, decimals)
    except InvalidOperation:
        logger.debug(f"Formula result {result!r} could not be rounded")
        return None
