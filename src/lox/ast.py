"""Lox AST — parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================
#
# Expression nodes compare and hash by identity (eq=False): two textually
# identical expressions at different positions are distinct resolution keys.


@dataclass(eq=False)
class Expr:
    """Base for all expression nodes."""


@dataclass(eq=False)
class Binary(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Grouping(Expr):
    expression: Expr


@dataclass(eq=False)
class Unary(Expr):
    operator: Token
    right: Expr


@dataclass(eq=False)
class Literal(Expr):
    """nil, true, false, string or number. value is None for nil."""

    value: bool | float | str | None


@dataclass(eq=False)
class Variable(Expr):
    name: Token


@dataclass(eq=False)
class Assign(Expr):
    name: Token
    value: Expr


@dataclass(eq=False)
class And(Expr):
    left: Expr
    right: Expr
    line: int


@dataclass(eq=False)
class Or(Expr):
    left: Expr
    right: Expr
    line: int


@dataclass(eq=False)
class Call(Expr):
    callee: Expr
    arguments: list[Expr]
    line: int


@dataclass(eq=False)
class Function(Expr):
    """Anonymous function literal: fun (params) { body }."""

    params: list[Token]
    body: Block
    line: int


@dataclass(eq=False)
class Get(Expr):
    object: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Super(Expr):
    keyword: Token
    method: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""

    line: int


@dataclass
class Expression(Stmt):
    expression: Expr


@dataclass
class Print(Stmt):
    expression: Expr


@dataclass
class Var(Stmt):
    name: Token
    initializer: Expr | None


@dataclass
class Block(Stmt):
    statements: list[Stmt]


@dataclass
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass
class While(Stmt):
    condition: Expr
    body: Stmt


@dataclass
class Break(Stmt):
    pass


@dataclass
class FunctionDecl(Stmt):
    """fun name(params) { body }, also used for methods."""

    name: Token
    params: list[Token]
    body: Block


@dataclass
class Return(Stmt):
    keyword: Token
    value: Expr | None


@dataclass
class ClassDecl(Stmt):
    """class Name < Super { methods; class static_methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionDecl]
    class_methods: list[FunctionDecl]
