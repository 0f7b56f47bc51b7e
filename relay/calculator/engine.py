"""
Expression engine: tokenizes, evaluates and formats single binary expressions.

Only one operator between two decimal operands is supported, e.g. ``3+4`` or
``10/2.5``. The first operator character found splits the input, so a
leading sign on the left operand is read as the operator (``-5*3`` fails).
"""

import logging
import math
import operator as _op
import re
from typing import Union

from .errors import DivisionByZero, InvalidExpression, InvalidOperand, UnsupportedOperator
from .models import OPERATOR_CHARS, Operator, ParsedExpression

logger = logging.getLogger(__name__)

# Plain decimal: optional sign, digits with optional fraction, optional exponent.
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_OPERATIONS = {
    Operator.ADD: _op.add,
    Operator.SUBTRACT: _op.sub,
    Operator.MULTIPLY: _op.mul,
    Operator.DIVIDE: _op.truediv,
}


def split_expression(expression: str) -> list[str]:
    """Split at the first operator character into [left, operator, right]."""
    for i, char in enumerate(expression):
        if char in OPERATOR_CHARS:
            return [expression[:i], char, expression[i + 1:]]
    return [expression]


def parse_operand(token: str, position: str) -> float:
    """Parse a decimal operand token, raising InvalidOperand on anything else."""
    if not _DECIMAL.fullmatch(token):
        raise InvalidOperand(position, token)
    value = float(token)
    if not math.isfinite(value):
        raise InvalidOperand(position, token)
    return value


def parse_expression(expression: str) -> ParsedExpression:
    """
    Tokenize an expression into (operand1, operator, operand2).

    Args:
        expression: Raw expression such as ``"3+4"``

    Returns:
        ParsedExpression with float operands

    Raises:
        InvalidExpression: empty input or no operator character
        InvalidOperand: either side is not a decimal number
    """
    if not expression:
        raise InvalidExpression("no expression to evaluate")

    tokens = split_expression(expression)
    if len(tokens) != 3:
        raise InvalidExpression(f"invalid expression: {expression!r}")

    left, symbol, right = tokens
    return ParsedExpression(
        operand1=parse_operand(left, "first"),
        operator=Operator(symbol),
        operand2=parse_operand(right, "second"),
    )


def evaluate(a: float, operator: Union[Operator, str], b: float) -> float:
    """
    Apply a binary operator to two operands.

    Raises:
        UnsupportedOperator: operator outside + - * /
        DivisionByZero: division with a zero right operand
    """
    try:
        op = Operator(operator)
    except ValueError:
        raise UnsupportedOperator(str(operator)) from None

    if op is Operator.DIVIDE and b == 0:
        raise DivisionByZero(f"division by zero: {a} / {b}")

    return _OPERATIONS[op](a, b)


def format_number(value: float) -> str:
    """Two decimal places; non-finite values render as +Inf, -Inf or NaN."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.2f}"


def format_result(
    name: str,
    a: float,
    operator: Union[Operator, str],
    b: float,
    result: float,
) -> str:
    """Render the broadcast line, e.g. ``alice: 3.00 + 4.00 = 7.00``."""
    symbol = operator.value if isinstance(operator, Operator) else operator
    return f"{name}: {format_number(a)} {symbol} {format_number(b)} = {format_number(result)}"


def compute(name: str, expression: str) -> str:
    """Parse, evaluate and format one request."""
    parsed = parse_expression(expression)
    result = evaluate(parsed.operand1, parsed.operator, parsed.operand2)
    logger.debug(f"Computed {expression!r} = {result}")
    return format_result(name, parsed.operand1, parsed.operator, parsed.operand2, result)
