"""
Recursive-descent parser for rule expressions.

Precedence, lowest first:
    ?:   ||/or   &&/and   == != === !==   < <= > >=   + -   * / %
    unary ! - + not   postfix . [] ()
"""

from functools import lru_cache
from typing import List, Optional, Sequence

from ..core.errors import ParseError
from .lexer import Token, tokenize, unquote
from .nodes import (
    ArrayLiteral,
    Binary,
    Call,
    Conditional,
    Expr,
    Index,
    Literal,
    Logical,
    Member,
    Name,
    Unary,
)

_EQUALITY = {"==", "!=", "===", "!=="}
_COMPARISON = {"<", "<=", ">", ">="}


class Parser:
    def __init__(self, tokens: Sequence[Token]):
        self.tokens = list(tokens)
        self.i = 0

    def cur(self) -> Token:
        return self.tokens[self.i]

    def match(self, kind: str, value: Optional[str] = None) -> Optional[Token]:
        t = self.cur()
        if t.kind != kind:
            return None
        if value is not None and t.value != value:
            return None
        self.i += 1
        return t

    def match_op(self, *values: str) -> Optional[Token]:
        t = self.cur()
        if t.kind == "OP" and t.value in values:
            self.i += 1
            return t
        return None

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        t = self.cur()
        if t.kind != kind or (value is not None and t.value != value):
            want = f"{kind}:{value}" if value else kind
            raise ParseError(f"Expected {want} at offset {t.pos}, got {t.kind}:{t.value!r}")
        self.i += 1
        return t

    def parse(self) -> Expr:
        if self.cur().kind == "EOF":
            raise ParseError("Empty expression")
        expr = self.parse_conditional()
        t = self.cur()
        if t.kind != "EOF":
            raise ParseError(f"Unexpected trailing token at offset {t.pos}: {t.value!r}")
        return expr

    def parse_conditional(self) -> Expr:
        test = self.parse_or()
        if self.match_op("?"):
            then = self.parse_conditional()
            self.expect("OP", ":")
            otherwise = self.parse_conditional()
            return Conditional(test, then, otherwise)
        return test

    def parse_or(self) -> Expr:
        expr = self.parse_and()
        while self.match_op("||") or self.match("KW", "or"):
            expr = Logical(expr, "||", self.parse_and())
        return expr

    def parse_and(self) -> Expr:
        expr = self.parse_eq()
        while self.match_op("&&") or self.match("KW", "and"):
            expr = Logical(expr, "&&", self.parse_eq())
        return expr

    def parse_eq(self) -> Expr:
        expr = self.parse_cmp()
        while True:
            t = self.match_op(*_EQUALITY)
            if not t:
                return expr
            expr = Binary(expr, t.value, self.parse_cmp())

    def parse_cmp(self) -> Expr:
        expr = self.parse_term()
        while True:
            t = self.match_op(*_COMPARISON)
            if not t:
                return expr
            expr = Binary(expr, t.value, self.parse_term())

    def parse_term(self) -> Expr:
        expr = self.parse_factor()
        while True:
            t = self.match_op("+", "-")
            if not t:
                return expr
            expr = Binary(expr, t.value, self.parse_factor())

    def parse_factor(self) -> Expr:
        expr = self.parse_unary()
        while True:
            t = self.match_op("*", "/", "%")
            if not t:
                return expr
            expr = Binary(expr, t.value, self.parse_unary())

    def parse_unary(self) -> Expr:
        t = self.match_op("!", "-", "+")
        if t:
            return Unary(t.value, self.parse_unary())
        if self.match("KW", "not"):
            return Unary("!", self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        expr = self.parse_primary()
        while True:
            if self.match_op("."):
                expr = Member(expr, self.expect("ID").value)
            elif self.match_op("["):
                index = self.parse_conditional()
                self.expect("OP", "]")
                expr = Index(expr, index)
            elif self.match_op("("):
                expr = Call(expr, tuple(self.parse_args(")")))
            else:
                return expr

    def parse_args(self, close: str) -> List[Expr]:
        args: List[Expr] = []
        if self.match_op(close):
            return args
        while True:
            args.append(self.parse_conditional())
            if self.match_op(close):
                return args
            self.expect("OP", ",")

    def parse_primary(self) -> Expr:
        t = self.cur()
        if self.match("NUMBER"):
            text = t.value
            if any(c in text for c in ".eE"):
                return Literal(float(text))
            return Literal(int(text))
        if self.match("STRING"):
            return Literal(unquote(t.value))
        if self.match("KW", "true"):
            return Literal(True)
        if self.match("KW", "false"):
            return Literal(False)
        if self.match("KW", "null") or self.match("KW", "undefined"):
            return Literal(None)
        if self.match("ID"):
            return Name(t.value)
        if self.match_op("("):
            expr = self.parse_conditional()
            self.expect("OP", ")")
            return expr
        if self.match_op("["):
            return ArrayLiteral(tuple(self.parse_args("]")))
        raise ParseError(f"Unexpected token at offset {t.pos}: {t.kind}:{t.value!r}")


@lru_cache(maxsize=512)
def parse_expression(source: str) -> Expr:
    """Parse expression text into a syntax tree (cached per text)."""
    return Parser(tokenize(source)).parse()
