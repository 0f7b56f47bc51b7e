"""Errors raised while parsing or evaluating a compute request."""


class ExpressionError(ValueError):
    """Base class for request-level expression failures."""


class InvalidExpression(ExpressionError):
    """The input is empty or cannot be split into operand, operator, operand."""


class InvalidOperand(ExpressionError):
    """An operand token is not a decimal number."""

    def __init__(self, position: str, token: str):
        self.position = position
        self.token = token
        super().__init__(f"invalid {position} number: {token!r}")


class UnsupportedOperator(ExpressionError):
    """The operator is not one of + - * /."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"invalid operator: {operator!r}")


class DivisionByZero(ExpressionError):
    """Right-hand operand of a division is zero."""
