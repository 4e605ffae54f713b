"""
Expression evaluator for bound values.

Evaluates expression AST nodes against a ScopeContext chain. Pure
evaluation: no I/O, no side effects, no use of Python's eval(). Functions
are whatever callables the scope chain exposes under the called name.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sdui.errors import ExpressionError
from sdui.expr.ast import (
    BinaryExpr,
    BinaryOp,
    Expr,
    FieldRef,
    FuncCall,
    IfExpr,
    IndexExpr,
    InExpr,
    ListExpr,
    Literal,
    MemberExpr,
    ObjectExpr,
    UnaryExpr,
    UnaryOp,
)
from sdui.expr.coerce import to_text
from sdui.expr.scope import ScopeContext


class ExpressionEvalError(ExpressionError):
    """Error during expression evaluation."""


def evaluate(expr: Expr, scope: ScopeContext | None) -> Any:
    """Evaluate an expression against a scope chain.

    Raises:
        ExpressionEvalError: unknown identifier, non-callable function,
            division by zero, an operator applied to unsupported types or
            whose result cannot be represented, or excessive nesting.
    """
    try:
        return _interpret(expr, scope or ScopeContext("empty"))
    except RecursionError as e:
        raise ExpressionEvalError("Expression is nested too deeply") from e


def _interpret(expr: Expr, scope: ScopeContext) -> Any:
    """Dispatch evaluation to the appropriate handler."""
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, FieldRef):
        return _interpret_field_ref(expr, scope)

    if isinstance(expr, MemberExpr):
        return get_member(_interpret(expr.target, scope), expr.name)

    if isinstance(expr, IndexExpr):
        return _index(_interpret(expr.target, scope), _interpret(expr.index, scope))

    if isinstance(expr, BinaryExpr):
        return _interpret_binary(expr, scope)

    if isinstance(expr, UnaryExpr):
        return _interpret_unary(expr, scope)

    if isinstance(expr, FuncCall):
        return _interpret_func_call(expr, scope)

    if isinstance(expr, ListExpr):
        return [_interpret(item, scope) for item in expr.items]

    if isinstance(expr, ObjectExpr):
        return {key: _interpret(value, scope) for key, value in expr.entries}

    if isinstance(expr, InExpr):
        return _interpret_in(expr, scope)

    if isinstance(expr, IfExpr):
        return _interpret_if(expr, scope)

    raise ExpressionEvalError(f"Unknown expression type: {type(expr).__name__}")


def _interpret_field_ref(expr: FieldRef, scope: ScopeContext) -> Any:
    found, current = scope.resolve(expr.root)
    if not found:
        raise ExpressionEvalError(f"Unknown identifier: {expr.root}")
    for segment in expr.path[1:]:
        current = get_member(current, segment)
    return current


def get_member(value: Any, name: str) -> Any:
    """Member access. Missing members and members of null yield ``None``."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get(name)
    if name == "length" and isinstance(value, (str, Sequence)):
        return len(value)
    if name.startswith("_"):
        return None
    return getattr(value, name, None)


def _index(target: Any, index: Any) -> Any:
    if target is None or index is None:
        return None
    if isinstance(target, Mapping):
        return target.get(index if isinstance(index, str) else to_text(index))
    if isinstance(target, (str, Sequence)):
        if isinstance(index, bool) or not isinstance(index, (int, float)):
            return None
        try:
            position = int(index)
        except (OverflowError, ValueError):
            return None
        if position != index or not 0 <= position < len(target):
            return None
        return target[position]
    raise ExpressionEvalError(f"Cannot index {type(target).__name__}")


def _interpret_binary(expr: BinaryExpr, scope: ScopeContext) -> Any:
    # Short-circuit for logical operators
    if expr.op == BinaryOp.AND:
        left = _interpret(expr.left, scope)
        if not left:
            return left
        return _interpret(expr.right, scope)

    if expr.op == BinaryOp.OR:
        left = _interpret(expr.left, scope)
        if left:
            return left
        return _interpret(expr.right, scope)

    left = _interpret(expr.left, scope)
    right = _interpret(expr.right, scope)

    # Null-safe equality
    if expr.op == BinaryOp.EQ:
        return left == right
    if expr.op == BinaryOp.NE:
        return left != right

    # String concatenation before null propagation: "a" + null == "a"
    if expr.op == BinaryOp.ADD and (isinstance(left, str) or isinstance(right, str)):
        return (to_text(left) or "") + (to_text(right) or "")

    # Null propagation for arithmetic/comparison
    if left is None or right is None:
        if expr.op in (BinaryOp.LT, BinaryOp.GT, BinaryOp.LE, BinaryOp.GE):
            return False
        return None

    try:
        return _apply(expr.op, left, right)
    except TypeError as e:
        raise ExpressionEvalError(
            f"Unsupported operands for {expr.op.value}: "
            f"{type(left).__name__} and {type(right).__name__}"
        ) from e
    except (OverflowError, ValueError, MemoryError) as e:
        raise ExpressionEvalError(f"{expr.op.value} failed: {e}") from e


def _apply(op: BinaryOp, left: Any, right: Any) -> Any:
    if op == BinaryOp.ADD:
        return left + right
    if op == BinaryOp.SUB:
        return left - right
    if op == BinaryOp.MUL:
        return left * right
    if op == BinaryOp.DIV:
        if right == 0:
            raise ExpressionEvalError("Division by zero")
        result = left / right
        return int(result) if isinstance(result, float) and result.is_integer() else result
    if op == BinaryOp.MOD:
        if right == 0:
            raise ExpressionEvalError("Modulo by zero")
        return left % right
    if op == BinaryOp.LT:
        return left < right
    if op == BinaryOp.GT:
        return left > right
    if op == BinaryOp.LE:
        return left <= right
    if op == BinaryOp.GE:
        return left >= right
    raise ExpressionEvalError(f"Unknown binary op: {op}")


def _interpret_unary(expr: UnaryExpr, scope: ScopeContext) -> Any:
    val = _interpret(expr.operand, scope)
    if expr.op == UnaryOp.NOT:
        return not val
    if expr.op == UnaryOp.NEG:
        if val is None:
            return None
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise ExpressionEvalError(f"Cannot negate {type(val).__name__}")
        return -val
    raise ExpressionEvalError(f"Unknown unary op: {expr.op}")


def _interpret_func_call(expr: FuncCall, scope: ScopeContext) -> Any:
    found, func = scope.resolve(expr.name)
    if not found:
        raise ExpressionEvalError(f"Unknown function: {expr.name}()")
    if not callable(func):
        raise ExpressionEvalError(f"{expr.name} is not callable")

    args = [_interpret(a, scope) for a in expr.args]
    try:
        return func(*args)
    except ExpressionEvalError:
        raise
    except (TypeError, ValueError, KeyError, IndexError, ArithmeticError) as e:
        raise ExpressionEvalError(f"{expr.name}() failed: {e}") from e


def _interpret_in(expr: InExpr, scope: ScopeContext) -> bool:
    val = _interpret(expr.value, scope)
    items = [_interpret(item, scope) for item in expr.items]
    result = val in items
    return not result if expr.negated else result


def _interpret_if(expr: IfExpr, scope: ScopeContext) -> Any:
    if _interpret(expr.condition, scope):
        return _interpret(expr.then_expr, scope)

    for cond, val in expr.elif_branches:
        if _interpret(cond, scope):
            return _interpret(val, scope)

    return _interpret(expr.else_expr, scope)
