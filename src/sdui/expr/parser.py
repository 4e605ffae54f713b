"""
Recursive descent parser for the binding expression language.

Grammar (precedence low to high):
    expr        → if_expr | or_expr
    if_expr     → "if" or_expr ":" or_expr ("elif" or_expr ":" or_expr)* "else" ":" or_expr
    or_expr     → and_expr (("or" | "||") and_expr)*
    and_expr    → not_expr (("and" | "&&") not_expr)*
    not_expr    → ("not" | "!") not_expr | comparison
    comparison  → addition (comp_op addition)?
                | addition ("in" | "not" "in") list_literal
                | addition ("is" "not"? "null")
    addition    → multiply (("+"|"-") multiply)*
    multiply    → unary (("*"|"/"|"%") unary)*
    unary       → "-" unary | postfix
    postfix     → primary ("." IDENT | "[" expr "]")*
    primary     → literal | func_call | field_ref | "(" expr ")" | list_literal | object_literal
    literal     → INT | FLOAT | STRING | "true" | "false" | "null"
    func_call   → IDENT "(" (expr ("," expr)*)? ")"
    field_ref   → IDENT ("." IDENT)*
    list_literal   → "[" (expr ("," expr)*)? "]"
    object_literal → "{" ((STRING | IDENT) ":" expr ("," (STRING | IDENT) ":" expr)*)? "}"
"""

from __future__ import annotations

from functools import lru_cache

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
from sdui.expr.tokenizer import (
    ExpressionTokenError,
    Token,
    TokenKind,
    tokenize,
)


class ExpressionParseError(ExpressionError):
    """Error during expression parsing."""


_COMPARISON_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.EQ: BinaryOp.EQ,
    TokenKind.NE: BinaryOp.NE,
    TokenKind.LT: BinaryOp.LT,
    TokenKind.GT: BinaryOp.GT,
    TokenKind.LE: BinaryOp.LE,
    TokenKind.GE: BinaryOp.GE,
}

_MULTIPLY_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.STAR: BinaryOp.MUL,
    TokenKind.SLASH: BinaryOp.DIV,
    TokenKind.PERCENT: BinaryOp.MOD,
}


class _Parser:
    """Recursive descent parser for expressions."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise ExpressionParseError(
                f"Expected {kind}, got {tok.kind} ({tok.value!r})",
                tok.pos,
            )
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    # -- Grammar rules --

    def parse_expr(self) -> Expr:
        """Top-level: if_expr or or_expr."""
        if self.current.kind == TokenKind.IF:
            return self.parse_if_expr()
        return self.parse_or_expr()

    def parse_if_expr(self) -> IfExpr:
        """if cond: val (elif cond: val)* else: val"""
        self.expect(TokenKind.IF)
        condition = self.parse_or_expr()
        self.expect(TokenKind.COLON)
        then_expr = self.parse_or_expr()

        elif_branches: list[tuple[Expr, Expr]] = []
        while self.match(TokenKind.ELIF):
            elif_cond = self.parse_or_expr()
            self.expect(TokenKind.COLON)
            elif_val = self.parse_or_expr()
            elif_branches.append((elif_cond, elif_val))

        self.expect(TokenKind.ELSE)
        self.expect(TokenKind.COLON)
        else_expr = self.parse_or_expr()

        return IfExpr(
            condition=condition,
            then_expr=then_expr,
            elif_branches=elif_branches,
            else_expr=else_expr,
        )

    def parse_or_expr(self) -> Expr:
        left = self.parse_and_expr()
        while self.match(TokenKind.OR):
            right = self.parse_and_expr()
            left = BinaryExpr(op=BinaryOp.OR, left=left, right=right)
        return left

    def parse_and_expr(self) -> Expr:
        left = self.parse_not_expr()
        while self.match(TokenKind.AND):
            right = self.parse_not_expr()
            left = BinaryExpr(op=BinaryOp.AND, left=left, right=right)
        return left

    def parse_not_expr(self) -> Expr:
        if self.current.kind == TokenKind.NOT and self.peek(1).kind != TokenKind.IN:
            self.advance()
            operand = self.parse_not_expr()
            return UnaryExpr(op=UnaryOp.NOT, operand=operand)
        return self.parse_comparison()

    def parse_comparison(self) -> Expr:
        """addition (comp_op addition | 'in'/'not in' list | 'is' ['not'] 'null')?"""
        left = self.parse_addition()

        # "is" null / "is not" null
        if self.current.kind == TokenKind.IS:
            self.advance()
            negated = bool(self.match(TokenKind.NOT))
            self.expect(TokenKind.NULL)
            return BinaryExpr(
                op=BinaryOp.NE if negated else BinaryOp.EQ,
                left=left,
                right=Literal(value=None),
            )

        # "in" / "not in"
        if self.current.kind == TokenKind.IN:
            self.advance()
            return InExpr(value=left, items=self._parse_list_items(), negated=False)
        if self.current.kind == TokenKind.NOT and self.peek(1).kind == TokenKind.IN:
            self.advance()  # not
            self.advance()  # in
            return InExpr(value=left, items=self._parse_list_items(), negated=True)

        if self.current.kind in _COMPARISON_OPS:
            op = _COMPARISON_OPS[self.advance().kind]
            right = self.parse_addition()
            return BinaryExpr(op=op, left=left, right=right)

        return left

    def parse_addition(self) -> Expr:
        left = self.parse_multiply()
        while self.current.kind in (TokenKind.PLUS, TokenKind.MINUS):
            op = BinaryOp.ADD if self.advance().kind == TokenKind.PLUS else BinaryOp.SUB
            right = self.parse_multiply()
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_multiply(self) -> Expr:
        left = self.parse_unary()
        while self.current.kind in _MULTIPLY_OPS:
            op = _MULTIPLY_OPS[self.advance().kind]
            right = self.parse_unary()
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_unary(self) -> Expr:
        if self.match(TokenKind.MINUS):
            operand = self.parse_unary()
            return UnaryExpr(op=UnaryOp.NEG, operand=operand)
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        """primary ('.' IDENT | '[' expr ']')*"""
        expr = self.parse_primary()
        while True:
            if self.match(TokenKind.DOT):
                name = self.expect(TokenKind.IDENT).value
                if isinstance(expr, FieldRef):
                    expr = FieldRef(path=[*expr.path, name])
                else:
                    expr = MemberExpr(target=expr, name=name)
            elif self.match(TokenKind.LBRACKET):
                index = self.parse_expr()
                self.expect(TokenKind.RBRACKET)
                expr = IndexExpr(target=expr, index=index)
            else:
                return expr

    def parse_primary(self) -> Expr:
        tok = self.current

        if tok.kind == TokenKind.LPAREN:
            self.advance()
            expr = self.parse_expr()
            self.expect(TokenKind.RPAREN)
            return expr

        if tok.kind == TokenKind.LBRACKET:
            return ListExpr(items=self._parse_list_items())

        if tok.kind == TokenKind.LBRACE:
            return self._parse_object_literal()

        if tok.kind == TokenKind.INT:
            self.advance()
            return Literal(value=int(tok.value))
        if tok.kind == TokenKind.FLOAT:
            self.advance()
            return Literal(value=float(tok.value))
        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(value=tok.value)
        if tok.kind == TokenKind.TRUE:
            self.advance()
            return Literal(value=True)
        if tok.kind == TokenKind.FALSE:
            self.advance()
            return Literal(value=False)
        if tok.kind == TokenKind.NULL:
            self.advance()
            return Literal(value=None)

        if tok.kind == TokenKind.IDENT:
            if self.peek(1).kind == TokenKind.LPAREN:
                return self._parse_func_call()
            self.advance()
            return FieldRef(path=[tok.value])

        raise ExpressionParseError(
            f"Unexpected token: {tok.kind} ({tok.value!r})",
            tok.pos,
        )

    def _parse_func_call(self) -> FuncCall:
        """IDENT '(' (expr (',' expr)*)? ')'"""
        name_tok = self.expect(TokenKind.IDENT)
        self.expect(TokenKind.LPAREN)

        args: list[Expr] = []
        if self.current.kind != TokenKind.RPAREN:
            args.append(self.parse_expr())
            while self.match(TokenKind.COMMA):
                args.append(self.parse_expr())

        self.expect(TokenKind.RPAREN)
        return FuncCall(name=name_tok.value, args=args)

    def _parse_list_items(self) -> list[Expr]:
        """'[' (expr (',' expr)*)? ']'"""
        self.expect(TokenKind.LBRACKET)
        items: list[Expr] = []
        if self.current.kind != TokenKind.RBRACKET:
            items.append(self.parse_expr())
            while self.match(TokenKind.COMMA):
                items.append(self.parse_expr())
        self.expect(TokenKind.RBRACKET)
        return items

    def _parse_object_literal(self) -> ObjectExpr:
        self.expect(TokenKind.LBRACE)
        entries: list[tuple[str, Expr]] = []
        if self.current.kind != TokenKind.RBRACE:
            entries.append(self._parse_object_entry())
            while self.match(TokenKind.COMMA):
                entries.append(self._parse_object_entry())
        self.expect(TokenKind.RBRACE)
        return ObjectExpr(entries=entries)

    def _parse_object_entry(self) -> tuple[str, Expr]:
        key_tok = self.current
        if key_tok.kind not in (TokenKind.STRING, TokenKind.IDENT):
            raise ExpressionParseError(
                f"Expected object key, got {key_tok.kind} ({key_tok.value!r})",
                key_tok.pos,
            )
        self.advance()
        self.expect(TokenKind.COLON)
        return key_tok.value, self.parse_expr()


@lru_cache(maxsize=1024)
def parse_expr(source: str) -> Expr:
    """Parse an expression string into an AST.

    Results are cached per source string; the AST nodes are frozen so a
    cached tree can be shared by every evaluation.

    Raises:
        ExpressionParseError: If the expression is invalid.
    """
    try:
        tokens = tokenize(source)
    except ExpressionTokenError as e:
        raise ExpressionParseError(str(e), e.pos) from e

    parser = _Parser(tokens)
    try:
        expr = parser.parse_expr()
    except RecursionError as e:
        raise ExpressionParseError("Expression is nested too deeply", parser.current.pos) from e

    if parser.current.kind != TokenKind.EOF:
        raise ExpressionParseError(
            f"Unexpected token after expression: {parser.current.value!r}",
            parser.current.pos,
        )

    return expr
