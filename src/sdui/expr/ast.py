"""
Expression AST for bound values.

Supports:
- Arithmetic: +, -, *, /, %
- Comparison: ==, !=, <, >, <=, >=
- Logic: and/&&, or/||, not/!
- Identifiers and member access: count, user.name, items[0].title
- Function calls resolved through scope: concat(a, b), isEqual(x, 1)
- Conditionals: if/elif/else
- Membership: x in [a, b, c]
- Null checks: x is null, x is not null
- List and object literals: [1, 2], {"k": v}
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from sdui.errors import ExpressionError

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators for expressions."""

    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    # Logical
    AND = "and"
    OR = "or"


class UnaryOp(StrEnum):
    """Unary operators for expressions."""

    NEG = "-"
    NOT = "not"


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: int, float, str, bool, or None (null)."""

    value: int | float | str | bool | None = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.value is None:
            return "null"
        if isinstance(self.value, str):
            return f'"{self.value}"'
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


class FieldRef(BaseModel):
    """
    Reference to a scope identifier, possibly followed by dotted members.

    Examples:
        - FieldRef(path=["count"]) → count
        - FieldRef(path=["appState", "user", "name"]) → appState.user.name
    """

    path: list[str] = Field(description="Identifier followed by member names")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return ".".join(self.path)

    @property
    def root(self) -> str:
        """The identifier resolved through the scope chain."""
        return self.path[0]


class MemberExpr(BaseModel):
    """Member access on an arbitrary expression: (expr).name"""

    target: Expr
    name: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target}.{self.name}"


class IndexExpr(BaseModel):
    """Index access: target[index]"""

    target: Expr
    index: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target}[{self.index}]"


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    op: BinaryOp
    left: Expr
    right: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class UnaryExpr(BaseModel):
    """Unary operation: op operand."""

    op: UnaryOp
    operand: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.op == UnaryOp.NOT:
            return f"not {self.operand}"
        return f"-{self.operand}"


class FuncCall(BaseModel):
    """
    Function call: name(arg1, arg2, ...).

    The name is looked up in the scope chain at evaluation time, so pages
    can expose their own callables next to the standard function table.
    """

    name: str = Field(description="Function name")
    args: list[Expr] = Field(default_factory=list, description="Arguments")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


class ListExpr(BaseModel):
    """List literal: [a, b, c]"""

    items: list[Expr] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "[" + ", ".join(str(i) for i in self.items) + "]"


class ObjectExpr(BaseModel):
    """Object literal: {"key": value, ...}"""

    entries: list[tuple[str, Expr]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        body = ", ".join(f'"{k}": {v}' for k, v in self.entries)
        return "{" + body + "}"


class InExpr(BaseModel):
    """
    Membership test: value in [a, b, c] or value not in [a, b, c].
    """

    value: Expr = Field(description="Value to test")
    items: list[Expr] = Field(description="Items to check against")
    negated: bool = Field(default=False, description="True for 'not in'")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        items_str = ", ".join(str(i) for i in self.items)
        op = "not in" if self.negated else "in"
        return f"({self.value} {op} [{items_str}])"


class IfExpr(BaseModel):
    """
    Conditional expression: if cond: val elif cond: val else: val.
    """

    condition: Expr = Field(description="If condition")
    then_expr: Expr = Field(description="Value when condition is true")
    elif_branches: list[tuple[Expr, Expr]] = Field(
        default_factory=list, description="(condition, value) pairs"
    )
    else_expr: Expr = Field(description="Value when all conditions are false")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        parts = [f"if {self.condition}: {self.then_expr}"]
        for cond, val in self.elif_branches:
            parts.append(f"elif {cond}: {val}")
        parts.append(f"else: {self.else_expr}")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = (
    Literal
    | FieldRef
    | MemberExpr
    | IndexExpr
    | BinaryExpr
    | UnaryExpr
    | FuncCall
    | ListExpr
    | ObjectExpr
    | InExpr
    | IfExpr
)

# Rebuild models for recursive forward references
MemberExpr.model_rebuild()
IndexExpr.model_rebuild()
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
FuncCall.model_rebuild()
ListExpr.model_rebuild()
ObjectExpr.model_rebuild()
InExpr.model_rebuild()
IfExpr.model_rebuild()


def free_variables(expr: Expr) -> frozenset[str]:
    """Return the root identifiers an expression reads from its scope.

    Function names are included: they are resolved through the scope too.
    """
    names: set[str] = set()
    try:
        _collect(expr, names)
    except RecursionError as e:
        raise ExpressionError("Expression is nested too deeply") from e
    return frozenset(names)


def _collect(expr: Expr, names: set[str]) -> None:
    if isinstance(expr, FieldRef):
        names.add(expr.root)
    elif isinstance(expr, MemberExpr):
        _collect(expr.target, names)
    elif isinstance(expr, IndexExpr):
        _collect(expr.target, names)
        _collect(expr.index, names)
    elif isinstance(expr, BinaryExpr):
        _collect(expr.left, names)
        _collect(expr.right, names)
    elif isinstance(expr, UnaryExpr):
        _collect(expr.operand, names)
    elif isinstance(expr, FuncCall):
        names.add(expr.name)
        for arg in expr.args:
            _collect(arg, names)
    elif isinstance(expr, ListExpr):
        for item in expr.items:
            _collect(item, names)
    elif isinstance(expr, ObjectExpr):
        for _, value in expr.entries:
            _collect(value, names)
    elif isinstance(expr, InExpr):
        _collect(expr.value, names)
        for item in expr.items:
            _collect(item, names)
    elif isinstance(expr, IfExpr):
        _collect(expr.condition, names)
        _collect(expr.then_expr, names)
        for cond, val in expr.elif_branches:
            _collect(cond, names)
            _collect(val, names)
        _collect(expr.else_expr, names)
