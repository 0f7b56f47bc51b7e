"""
Compute Relay Data Models

Inbound request and parsed expression structures.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class Operator(str, Enum):
    """Binary operators understood by the evaluator."""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


OPERATOR_CHARS = frozenset(op.value for op in Operator)


class ComputeRequest(BaseModel):
    """
    One inbound frame: who is asking and what to compute.

    Keys match case-insensitively ("Name", "EXPRESSION"); when several keys
    fold to the same field the last one wins. Unknown keys are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    expression: str = ""

    @model_validator(mode="before")
    @classmethod
    def fold_key_case(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        folded = {}
        for key, value in data.items():
            lowered = key.lower() if isinstance(key, str) else key
            if lowered in cls.model_fields:
                folded[lowered] = value
            else:
                folded[key] = value
        return folded


@dataclass(frozen=True)
class ParsedExpression:
    """Tokenized form of ``<operand1><operator><operand2>``."""
    operand1: float
    operator: Operator
    operand2: float

    def __iter__(self):
        yield self.operand1
        yield self.operator
        yield self.operand2
