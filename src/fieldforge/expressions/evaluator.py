"""Evaluator for validator expressions.

Walks the AST against a set of named variables. Validators bind two:
``field`` (key, type, templateOptions, value) and ``model`` (the shared
model mapping). Nothing outside those variables and the registered
functions is reachable from an expression.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fieldforge.expressions.functions import FunctionRegistry
from fieldforge.expressions.parser import (
    ASTNode,
    ArrayLiteral,
    BinaryOp,
    FunctionCall,
    Identifier,
    IndexAccess,
    Literal,
    MemberAccess,
    UnaryOp,
    parse,
)

_NUMERIC = (int, float, Decimal)


class EvaluationError(Exception):
    """Error during expression evaluation."""


@dataclass
class EvaluationContext:
    """Variables visible to an expression."""

    variables: dict[str, Any] = field(default_factory=dict)


def to_bool(value: Any) -> bool:
    """Truthiness as form authors expect it: empty strings and collections are false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, _NUMERIC):
        return value != 0
    if isinstance(value, (str, list, tuple, Mapping)):
        return len(value) > 0
    return True


class Evaluator:
    """Evaluates an AST against a context.

    Usage:
        ctx = EvaluationContext(variables={"model": {"search": "test"}})
        Evaluator(ctx).evaluate(parse('model.search == "test"'))
    """

    def __init__(self, context: EvaluationContext):
        self.context = context

    def evaluate(self, node: ASTNode) -> Any:
        method = getattr(self, f"_eval_{type(node).__name__.lower()}", None)
        if method is None:
            raise EvaluationError(f"Unknown node type: {type(node).__name__}")
        return method(node)

    def _eval_literal(self, node: Literal) -> Any:
        return node.value

    def _eval_identifier(self, node: Identifier) -> Any:
        # Unknown names behave like JavaScript's undefined.
        return self.context.variables.get(node.name)

    def _eval_memberaccess(self, node: MemberAccess) -> Any:
        obj = self.evaluate(node.object)
        if obj is None:
            return None
        if isinstance(obj, Mapping):
            return obj.get(node.member)
        if node.member == "length" and isinstance(obj, (str, list, tuple)):
            return len(obj)
        return None

    def _eval_indexaccess(self, node: IndexAccess) -> Any:
        obj = self.evaluate(node.object)
        index = self.evaluate(node.index)

        if obj is None:
            return None
        if isinstance(obj, Mapping):
            try:
                return obj.get(index)
            except TypeError as e:
                raise EvaluationError(f"Invalid key {index!r}: {e}") from e
        if isinstance(obj, (list, tuple, str)) and isinstance(index, int):
            if 0 <= index < len(obj):
                return obj[index]
        return None

    def _eval_binaryop(self, node: BinaryOp) -> Any:
        op = node.operator

        if op == "&&":
            if not to_bool(self.evaluate(node.left)):
                return False
            return to_bool(self.evaluate(node.right))

        if op == "||":
            if to_bool(self.evaluate(node.left)):
                return True
            return to_bool(self.evaluate(node.right))

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if op == "==":
            return self._equals(left, right)
        if op == "!=":
            return not self._equals(left, right)
        if op == "<":
            return self._compare(left, right) < 0
        if op == "<=":
            return self._compare(left, right) <= 0
        if op == ">":
            return self._compare(left, right) > 0
        if op == ">=":
            return self._compare(left, right) >= 0
        if op == "in":
            return self._in(left, right)
        if op == "not in":
            return not self._in(left, right)
        return self._arithmetic(op, left, right)

    def _eval_unaryop(self, node: UnaryOp) -> Any:
        operand = self.evaluate(node.operand)

        if node.operator == "!":
            return not to_bool(operand)
        if node.operator == "-":
            if operand is None:
                return None
            if isinstance(operand, _NUMERIC) and not isinstance(operand, bool):
                return -operand
            raise EvaluationError(f"Cannot negate non-numeric value: {operand!r}")
        raise EvaluationError(f"Unknown unary operator: {node.operator}")

    def _eval_functioncall(self, node: FunctionCall) -> Any:
        if not FunctionRegistry.is_registered(node.name):
            raise EvaluationError(f"Unknown function: {node.name}")

        args = [self.evaluate(arg) for arg in node.arguments]
        try:
            return FunctionRegistry.call(node.name, *args)
        except Exception as e:
            raise EvaluationError(f"Error calling {node.name}: {e}") from e

    def _eval_arrayliteral(self, node: ArrayLiteral) -> list[Any]:
        return [self.evaluate(element) for element in node.elements]

    def _equals(self, left: Any, right: Any) -> bool:
        if left is None or right is None:
            return left is None and right is None

        if isinstance(left, _NUMERIC) and isinstance(right, _NUMERIC):
            return float(left) == float(right)

        if isinstance(left, (date, datetime)) and isinstance(right, (date, datetime)):
            if isinstance(left, datetime) and not isinstance(right, datetime):
                left = left.date()
            elif isinstance(right, datetime) and not isinstance(left, datetime):
                right = right.date()

        return left == right

    def _compare(self, left: Any, right: Any) -> int:
        """Three-way compare; None sorts before everything."""
        if left is None or right is None:
            if left is None and right is None:
                return 0
            return -1 if left is None else 1

        comparable = (
            (isinstance(left, _NUMERIC) and isinstance(right, _NUMERIC))
            or (isinstance(left, str) and isinstance(right, str))
            or (isinstance(left, (date, datetime)) and isinstance(right, (date, datetime)))
        )
        if not comparable:
            raise EvaluationError(
                f"Cannot compare {type(left).__name__} and {type(right).__name__}"
            )
        if left < right:
            return -1
        if left > right:
            return 1
        return 0

    def _in(self, item: Any, collection: Any) -> bool:
        if collection is None:
            return False
        if isinstance(collection, str):
            return item is not None and str(item) in collection
        if isinstance(collection, (list, tuple, Mapping)):
            try:
                return item in collection
            except TypeError as e:
                raise EvaluationError(f"Cannot test membership of {item!r}: {e}") from e
        raise EvaluationError(
            f"'in' operator requires collection, got {type(collection).__name__}"
        )

    def _arithmetic(self, op: str, left: Any, right: Any) -> Any:
        if left is None or right is None:
            return None

        if op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return str(left) + str(right)

        if not (isinstance(left, _NUMERIC) and isinstance(right, _NUMERIC)):
            raise EvaluationError(
                f"Unsupported operand types for {op}: "
                f"{type(left).__name__} and {type(right).__name__}"
            )

        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op in ("/", "%") and right == 0:
            raise EvaluationError("Division by zero")
        if op == "/":
            return left / right
        if op == "%":
            return left % right
        raise EvaluationError(f"Unknown operator: {op}")


class CompiledExpression:
    """An expression parsed once and evaluated many times.

    Validators compile their expression when the field is normalized so
    syntax errors surface before the first validation pass.
    """

    def __init__(self, source: str):
        self.source = source
        self.ast = parse(source)

    def evaluate(self, variables: dict[str, Any]) -> Any:
        return Evaluator(EvaluationContext(variables=variables)).evaluate(self.ast)

    def evaluate_bool(self, variables: dict[str, Any]) -> bool:
        return to_bool(self.evaluate(variables))

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def evaluate(expression: str, variables: dict[str, Any] | None = None) -> Any:
    """Evaluate an expression string.

    Example:
        evaluate('model.search == "test"', {"model": {"search": "test"}})
        # True
    """
    return CompiledExpression(expression).evaluate(variables or {})


def evaluate_bool(expression: str, variables: dict[str, Any] | None = None) -> bool:
    """Evaluate an expression and coerce the result to bool."""
    return to_bool(evaluate(expression, variables))
