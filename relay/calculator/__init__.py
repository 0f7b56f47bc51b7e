"""Single-operator arithmetic: tokenizer, evaluator and result formatting."""

from .engine import compute, evaluate, format_number, format_result, parse_expression, split_expression
from .errors import (
    DivisionByZero,
    ExpressionError,
    InvalidExpression,
    InvalidOperand,
    UnsupportedOperator,
)
from .models import ComputeRequest, Operator, ParsedExpression

__all__ = [
    "compute",
    "evaluate",
    "format_number",
    "format_result",
    "parse_expression",
    "split_expression",
    "ComputeRequest",
    "Operator",
    "ParsedExpression",
    "ExpressionError",
    "InvalidExpression",
    "InvalidOperand",
    "UnsupportedOperator",
    "DivisionByZero",
]
