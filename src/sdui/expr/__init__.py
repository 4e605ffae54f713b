"""
Binding expression language.

Tokenizer, parser and evaluator for ``@{...}`` bindings, the scope chain
they resolve against, and the literal-or-bound value wrapper used by every
descriptor field that accepts a binding.

Usage:
    from sdui.expr import ExprOr, ScopeContext

    scope = ScopeContext("page", {"count": 2})
    ExprOr.from_value("@{count + 1}").evaluate(scope)
    # 3
"""

from sdui.expr.coerce import coerce
from sdui.expr.evaluator import ExpressionEvalError, evaluate
from sdui.expr.expr_or import ExprOr, deep_evaluate, evaluate_value, is_binding
from sdui.expr.parser import ExpressionParseError, parse_expr
from sdui.expr.scope import ScopeContext
from sdui.expr.stdlib import STD_FUNCTIONS

__all__ = [
    "STD_FUNCTIONS",
    "ExprOr",
    "ExpressionEvalError",
    "ExpressionParseError",
    "ScopeContext",
    "coerce",
    "deep_evaluate",
    "evaluate",
    "evaluate_value",
    "is_binding",
    "parse_expr",
]
