"""Lox resolver — static scope analysis run once before evaluation.

Computes, for every local variable reference, how many scopes outward its
binding lives and at which slot, and reports static errors: redeclaration,
self-referencing initialisers, unused locals, misplaced return/this/super and
self-inheritance. References that resolve to no local scope are globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .ast import (
    And,
    Assign,
    Binary,
    Block,
    Break,
    Call,
    ClassDecl,
    Expr,
    Expression,
    Function,
    FunctionDecl,
    Get,
    Grouping,
    If,
    Literal,
    Or,
    Print,
    Return,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    Var,
    Variable,
    While,
)
from .tokens import Token


class FunctionType(Enum):
    NONE = "none"
    FUNCTION = "function"
    METHOD = "method"
    INITIALIZER = "initializer"


class ClassType(Enum):
    NONE = "none"
    CLASS = "class"
    SUBCLASS = "subclass"


class BindingKind(Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    THIS = "this"
    SUPER = "super"


class ResolutionSink(Protocol):
    """Receives (depth, slot) for each locally-resolved expression."""

    def resolve(self, expr: Expr, depth: int, index: int) -> None: ...


@dataclass
class VariableState:
    index: int
    line: int
    kind: BindingKind
    initialised: bool = False
    read: bool = False


@dataclass
class _Scope:
    names: dict[str, VariableState] = field(default_factory=dict)
    slots: int = 0


def resolve_error(line: int, name: str, message: str) -> str:
    return "[line " + str(line) + "] Error at " + name + ": " + message


class Resolver:
    def __init__(self, sink: ResolutionSink) -> None:
        self.sink: ResolutionSink = sink
        self.errors: list[str] = []
        self.scopes: list[_Scope] = []
        self.current_function: FunctionType = FunctionType.NONE
        self.current_class: ClassType = ClassType.NONE
        self.in_static_method: bool = False

    def error(self, line: int, name: str, message: str) -> None:
        self.errors.append(resolve_error(line, name, message))

    # ── Scope management ──────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append(_Scope())

    def end_scope(self) -> None:
        scope = self.scopes.pop()
        for name, state in scope.names.items():
            if state.kind == BindingKind.VARIABLE and not state.read:
                self.error(state.line, name, "Variable is never used.")

    def declare(self, name: Token, kind: BindingKind = BindingKind.VARIABLE) -> None:
        # Globals are looked up by name at runtime
        if len(self.scopes) == 0:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope.names:
            self.error(
                name.line, name.lexeme, "Already a variable with this name in this scope."
            )
        scope.names[name.lexeme] = VariableState(scope.slots, name.line, kind)
        scope.slots += 1

    def define(self, name: Token) -> None:
        if len(self.scopes) == 0:
            return
        self.scopes[-1].names[name.lexeme].initialised = True

    def bind_implicit(self, name: str, kind: BindingKind, line: int) -> None:
        """Bind 'this' or 'super' as slot 0 of a fresh scope."""
        scope = self.scopes[-1]
        scope.names[name] = VariableState(scope.slots, line, kind, initialised=True)
        scope.slots += 1

    def resolve_local(self, expr: Expr, name: str, *, read: bool) -> None:
        i = len(self.scopes) - 1
        while i >= 0:
            state = self.scopes[i].names.get(name)
            if state is not None:
                if read:
                    state.read = True
                self.sink.resolve(expr, len(self.scopes) - 1 - i, state.index)
                return
            i -= 1

    # ── Statements ────────────────────────────────────────────

    def resolve_stmts(self, stmts: list[Stmt]) -> None:
        for s in stmts:
            self.resolve_stmt(s)

    def resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            self.begin_scope()
            self.resolve_stmts(stmt.statements)
            self.end_scope()
        elif isinstance(stmt, Var):
            self.declare(stmt.name)
            if stmt.initializer is not None:
                self.resolve_expr(stmt.initializer)
            self.define(stmt.name)
        elif isinstance(stmt, FunctionDecl):
            self.declare(stmt.name)
            self.define(stmt.name)
            self.resolve_function(stmt.params, stmt.body, FunctionType.FUNCTION)
        elif isinstance(stmt, ClassDecl):
            self.resolve_class(stmt)
        elif isinstance(stmt, Expression):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, Print):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, If):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self.resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, While):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.body)
        elif isinstance(stmt, Return):
            self.resolve_return(stmt)
        elif isinstance(stmt, Break):
            pass
        else:
            raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def resolve_return(self, stmt: Return) -> None:
        if self.current_function == FunctionType.NONE:
            self.error(stmt.line, "return", "Can't return from top-level code.")
        if stmt.value is not None:
            if self.current_function == FunctionType.INITIALIZER:
                self.error(
                    stmt.line, "return", "Can't return a value from an initialiser."
                )
            self.resolve_expr(stmt.value)

    def resolve_function(
        self, params: list[Token], body: Block, kind: FunctionType
    ) -> None:
        enclosing = self.current_function
        self.current_function = kind
        self.begin_scope()
        for p in params:
            self.declare(p, BindingKind.PARAMETER)
            self.define(p)
        # The body block opens its own scope, so a local may shadow a parameter
        self.resolve_stmt(body)
        self.end_scope()
        self.current_function = enclosing

    def resolve_class(self, stmt: ClassDecl) -> None:
        enclosing_class = self.current_class
        enclosing_static = self.in_static_method
        self.current_class = ClassType.CLASS
        self.in_static_method = False

        self.declare(stmt.name)
        self.define(stmt.name)

        if stmt.superclass is not None:
            if stmt.superclass.name.lexeme == stmt.name.lexeme:
                self.error(
                    stmt.superclass.name.line,
                    "`" + stmt.name.lexeme + "`",
                    "A class can't inherit from itself.",
                )
            self.current_class = ClassType.SUBCLASS
            self.resolve_expr(stmt.superclass)
            self.begin_scope()
            self.bind_implicit("super", BindingKind.SUPER, stmt.line)

        for method in stmt.methods:
            self.begin_scope()
            self.bind_implicit("this", BindingKind.THIS, method.line)
            kind = FunctionType.METHOD
            if method.name.lexeme == "init":
                kind = FunctionType.INITIALIZER
            self.resolve_function(method.params, method.body, kind)
            self.end_scope()

        self.in_static_method = True
        for method in stmt.class_methods:
            self.resolve_function(method.params, method.body, FunctionType.METHOD)
        self.in_static_method = False

        if stmt.superclass is not None:
            self.end_scope()

        self.current_class = enclosing_class
        self.in_static_method = enclosing_static

    # ── Expressions ───────────────────────────────────────────

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            if len(self.scopes) > 0:
                state = self.scopes[-1].names.get(expr.name.lexeme)
                if state is not None and not state.initialised:
                    self.error(
                        expr.name.line,
                        expr.name.lexeme,
                        "Can't read local variable in its own initialiser.",
                    )
            self.resolve_local(expr, expr.name.lexeme, read=True)
        elif isinstance(expr, Assign):
            self.resolve_expr(expr.value)
            self.resolve_local(expr, expr.name.lexeme, read=False)
        elif isinstance(expr, Binary):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, (And, Or)):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Unary):
            self.resolve_expr(expr.right)
        elif isinstance(expr, Grouping):
            self.resolve_expr(expr.expression)
        elif isinstance(expr, Literal):
            pass
        elif isinstance(expr, Call):
            self.resolve_expr(expr.callee)
            for arg in expr.arguments:
                self.resolve_expr(arg)
        elif isinstance(expr, Function):
            self.resolve_function(expr.params, expr.body, FunctionType.FUNCTION)
        elif isinstance(expr, Get):
            self.resolve_expr(expr.object)
        elif isinstance(expr, Set):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.object)
        elif isinstance(expr, This):
            self.resolve_this(expr)
        elif isinstance(expr, Super):
            self.resolve_super(expr)
        else:
            raise TypeError("unhandled expression type: " + type(expr).__name__)

    def resolve_this(self, expr: This) -> None:
        line = expr.keyword.line
        if self.current_class == ClassType.NONE:
            self.error(line, "this", "Can't use 'this' outside of a class.")
            return
        if self.in_static_method:
            self.error(line, "this", "Can't use 'this' in static class method.")
            return
        self.resolve_local(expr, "this", read=True)

    def resolve_super(self, expr: Super) -> None:
        line = expr.keyword.line
        if self.current_class == ClassType.NONE:
            self.error(line, "`super`", "Can't use `super` outside a class.")
            return
        if self.in_static_method:
            self.error(line, "`super`", "Can't use `super` in a static class method.")
            return
        if self.current_class != ClassType.SUBCLASS:
            self.error(
                line, "`super`", "Can't use `super` in a class with no superclass."
            )
            return
        self.resolve_local(expr, "super", read=True)


# ============================================================
# PUBLIC API
# ============================================================


def resolve(statements: list[Stmt], sink: ResolutionSink) -> list[str]:
    """Resolve a parsed program. Returns a list of errors (empty = ok)."""
    resolver = Resolver(sink)
    for stmt in statements:
        try:
            resolver.resolve_stmt(stmt)
        except RecursionError:
            resolver.errors.append(
                "[line " + str(stmt.line) + "] Error: Expression nesting too deep."
            )
            # Unwound mid-statement; start the next one from top level
            resolver = _restart(resolver, sink)
    return resolver.errors


def _restart(resolver: Resolver, sink: ResolutionSink) -> Resolver:
    fresh = Resolver(sink)
    fresh.errors = resolver.errors
    return fresh
