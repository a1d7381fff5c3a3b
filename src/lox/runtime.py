"""Lox runtime — value model and tree-walking evaluator.

The interpreter walks the same statement tree the resolver walked. Local
variables are read by (depth, slot) pairs the resolver recorded; anything the
resolver left unresolved is a global, looked up by name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import math
from typing import Callable, Union
import weakref

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
from .io import IO
from .tokens import Token, TokenKind


# ============================================================
# Diagnostics
# ============================================================


class LoxError(Exception):
    """Base error for Lox evaluation."""

    def __init__(self, msg: str, line: int):
        super().__init__(f"{msg}\n[line {line}]")
        self.msg = msg
        self.line = line


class LoxRuntimeError(LoxError):
    """Runtime fault: type error, arity mismatch, undefined name, etc."""


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(eq=False)
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass(eq=False)
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(eq=False)
class VNumber(Value):
    value: float

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass(eq=False)
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


NativeCall = Callable[["Interpreter", "Environment | None", list[Value]], Value]


@dataclass(eq=False)
class VFunction(Value):
    name: str
    arity: int
    closure: Environment | None
    call: NativeCall
    is_initializer: bool = False

    def bind(self, instance: VInstance) -> VFunction:
        """Wrap the closure in a scope whose slot 0 is 'this'."""
        env = Environment(self.closure)
        env.define(instance)
        return VFunction(self.name, self.arity, env, self.call, self.is_initializer)

    def invoke(self, interpreter: Interpreter, args: list[Value]) -> Value:
        result = self.call(interpreter, self.closure, args)
        if self.is_initializer and self.closure is not None:
            return self.closure.get_at(0, 0)
        return result

    def to_string(self) -> str:
        return f"fn <{self.name}>"


@dataclass(eq=False)
class VClass(Value):
    name: str
    superclass: VClass | None
    methods: dict[str, VFunction]
    class_methods: dict[str, VFunction]

    def find_method(self, name: str) -> VFunction | None:
        if name in self.methods:
            return self.methods[name]
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    def find_class_method(self, name: str) -> VFunction | None:
        if name in self.class_methods:
            return self.class_methods[name]
        if self.superclass is not None:
            return self.superclass.find_class_method(name)
        return None

    @property
    def arity(self) -> int:
        init = self.find_method("init")
        return init.arity if init is not None else 0

    def to_string(self) -> str:
        return self.name


@dataclass(eq=False)
class VInstance(Value):
    klass: VClass
    fields: dict[str, Value] = field(default_factory=dict)

    def get(self, name: str) -> Value | None:
        # Fields shadow methods by lookup order
        if name in self.fields:
            return self.fields[name]
        method = self.klass.find_method(name)
        if method is not None:
            return method.bind(self)
        return None

    def set(self, name: str, value: Value) -> None:
        self.fields[name] = value

    def to_string(self) -> str:
        return f"{self.klass.name} instance"


NIL = VNil()
TRUE = VBool(True)
FALSE = VBool(False)


def lox_bool(value: bool) -> VBool:
    return TRUE if value else FALSE


def is_truthy(value: Value) -> bool:
    if isinstance(value, VNil):
        return False
    if isinstance(value, VBool):
        return value.value
    return True


def values_equal(a: Value, b: Value) -> bool:
    # Different kinds are never equal; no coercion.
    if type(a) is not type(b):
        return False
    if isinstance(a, VNil):
        return True
    if isinstance(a, VBool) and isinstance(b, VBool):
        return a.value == b.value
    if isinstance(a, VNumber) and isinstance(b, VNumber):
        return a.value == b.value
    if isinstance(a, VString) and isinstance(b, VString):
        return a.value == b.value
    return a is b


def format_number(value: float) -> str:
    """Render a number: integral values drop '.0', large and tiny ones use d.dddE<exp>."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    magnitude = abs(value)
    if 1e-3 <= magnitude < 1e7:
        text = repr(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    assert isinstance(exponent, int)
    sci_exponent = len(digits) - 1 + exponent
    fraction = "".join(str(d) for d in digits[1:]) or "0"
    prefix = "-" if sign else ""
    return f"{prefix}{digits[0]}.{fraction}E{sci_exponent}"


def describe(value: Value) -> str:
    """Session display: like print, but strings keep their quotes."""
    if isinstance(value, VString):
        return '"' + value.value + '"'
    return value.to_string()


# ============================================================
# Environments
# ============================================================


class _Uninitialised:
    def __repr__(self) -> str:
        return "<uninitialised>"


UNINITIALISED = _Uninitialised()

Slot = Union[Value, _Uninitialised]


class Environment:
    """One lexical scope: slots in declaration order plus the enclosing scope.

    Slot order must match the resolver's index assignment exactly.
    """

    def __init__(self, enclosing: Environment | None) -> None:
        self.slots: list[Slot] = []
        self.enclosing: Environment | None = enclosing

    def declare(self) -> int:
        self.slots.append(UNINITIALISED)
        return len(self.slots) - 1

    def define(self, value: Value) -> None:
        self.slots.append(value)

    def ancestor(self, depth: int) -> Environment:
        env = self
        for _ in range(depth):
            if env.enclosing is None:
                raise RuntimeError("resolved depth exceeds environment chain")
            env = env.enclosing
        return env

    def get_at(self, depth: int, index: int) -> Slot:
        return self.ancestor(depth).slots[index]

    def assign_at(self, depth: int, index: int, value: Value) -> None:
        self.ancestor(depth).slots[index] = value


# ============================================================
# Statement completions
# ============================================================
#
# return and break travel as explicit results of statement execution rather
# than as exceptions; each executor checks and forwards them.


@dataclass
class Completed:
    """Normal completion. value is the statement's session value, if any."""

    value: Value | None = None


@dataclass
class Returned:
    value: Value


class _Broke:
    def __repr__(self) -> str:
        return "BROKE"


BROKE = _Broke()
DONE = Completed()

Completion = Union[Completed, Returned, _Broke]


# ============================================================
# Interpreter results
# ============================================================


@dataclass
class InterpretSuccess:
    value: str | None


@dataclass
class InterpretFailure:
    message: str
    line: int


InterpretResult = Union[InterpretSuccess, InterpretFailure]


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    """Evaluates resolved statements. Not safe to share between threads."""

    def __init__(self, io: IO) -> None:
        self.io = io
        self.globals: dict[str, Slot] = {}
        # Weak keys: an entry lives only as long as its node
        self.locals: weakref.WeakKeyDictionary[Expr, tuple[int, int]] = (
            weakref.WeakKeyDictionary()
        )
        # None means the global scope is current
        self.environment: Environment | None = None
        self.globals["clock"] = VFunction(
            "clock", 0, None, lambda interp, closure, args: VNumber(interp.io.current_time())
        )

    def resolve(self, expr: Expr, depth: int, index: int) -> None:
        self.locals[expr] = (depth, index)

    # ---- Running -----------------------------------------------------------

    def interpret(self, statements: list[Stmt]) -> InterpretResult:
        try:
            last: Completion = DONE
            line = 0
            for st in statements:
                line = st.line
                last = self.execute(st)
        except LoxRuntimeError as e:
            return InterpretFailure(e.msg, e.line)
        except RecursionError:
            # Nesting too deep outside any call
            return InterpretFailure("Stack overflow.", line)
        if isinstance(last, Completed) and last.value is not None:
            return InterpretSuccess(describe(last.value))
        return InterpretSuccess(None)

    # ---- Declarations ------------------------------------------------------

    def _declare(self, name: Token) -> int | None:
        """Reserve a slot for name in the current scope; None for globals."""
        if self.environment is None:
            self.globals[name.lexeme] = UNINITIALISED
            return None
        return self.environment.declare()

    def _initialise(self, name: Token, index: int | None, value: Value) -> None:
        if index is None or self.environment is None:
            self.globals[name.lexeme] = value
        else:
            self.environment.slots[index] = value

    def _make_function(
        self,
        name: str,
        params: list[Token],
        body: Block,
        closure: Environment | None,
        *,
        is_initializer: bool = False,
    ) -> VFunction:
        def call(
            interp: Interpreter, env: Environment | None, args: list[Value]
        ) -> Value:
            return interp.call_function(body, env, args)

        return VFunction(name, len(params), closure, call, is_initializer)

    def call_function(
        self, body: Block, closure: Environment | None, args: list[Value]
    ) -> Value:
        params = Environment(closure)
        for arg in args:
            params.define(arg)
        completion = self.execute_block(body.statements, Environment(params))
        if isinstance(completion, Returned):
            return completion.value
        return NIL

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> Completion:
        previous = self.environment
        self.environment = env
        try:
            result: Completion = DONE
            for st in stmts:
                result = self.execute(st)
                if not isinstance(result, Completed):
                    return result
            return result
        finally:
            self.environment = previous

    def execute(self, st: Stmt) -> Completion:
        if isinstance(st, Expression):
            return Completed(self.evaluate(st.expression))

        if isinstance(st, Print):
            value = self.evaluate(st.expression)
            self.io.print(value.to_string())
            return DONE

        if isinstance(st, Var):
            index = self._declare(st.name)
            if st.initializer is not None:
                self._initialise(st.name, index, self.evaluate(st.initializer))
            return DONE

        if isinstance(st, Block):
            return self.execute_block(st.statements, Environment(self.environment))

        if isinstance(st, If):
            if is_truthy(self.evaluate(st.condition)):
                return self.execute(st.then_branch)
            if st.else_branch is not None:
                return self.execute(st.else_branch)
            return DONE

        if isinstance(st, While):
            while is_truthy(self.evaluate(st.condition)):
                result = self.execute(st.body)
                if result is BROKE:
                    break
                if isinstance(result, Returned):
                    return result
            return DONE

        if isinstance(st, Break):
            return BROKE

        if isinstance(st, Return):
            value: Value = NIL
            if st.value is not None:
                value = self.evaluate(st.value)
            return Returned(value)

        if isinstance(st, FunctionDecl):
            index = self._declare(st.name)
            fn = self._make_function(
                st.name.lexeme, st.params, st.body, self.environment
            )
            self._initialise(st.name, index, fn)
            return Completed(fn)

        if isinstance(st, ClassDecl):
            return Completed(self._execute_class(st))

        raise TypeError("unsupported statement: " + type(st).__name__)

    def _execute_class(self, st: ClassDecl) -> VClass:
        index = self._declare(st.name)

        superclass: VClass | None = None
        method_env = self.environment
        if st.superclass is not None:
            value = self.evaluate(st.superclass)
            if not isinstance(value, VClass):
                raise LoxRuntimeError(
                    "Superclass must be a class.", st.superclass.name.line
                )
            superclass = value
            method_env = Environment(self.environment)
            method_env.define(superclass)

        methods: dict[str, VFunction] = {}
        for m in st.methods:
            methods[m.name.lexeme] = self._make_function(
                m.name.lexeme,
                m.params,
                m.body,
                method_env,
                is_initializer=m.name.lexeme == "init",
            )
        class_methods: dict[str, VFunction] = {}
        for m in st.class_methods:
            class_methods[m.name.lexeme] = self._make_function(
                m.name.lexeme, m.params, m.body, method_env
            )

        klass = VClass(st.name.lexeme, superclass, methods, class_methods)
        self._initialise(st.name, index, klass)
        return klass

    # ---- Variables ---------------------------------------------------------

    def lookup_variable(self, expr: Expr, name: Token) -> Value:
        loc = self.locals.get(expr)
        if loc is not None and self.environment is not None:
            value = self.environment.get_at(loc[0], loc[1])
        elif name.lexeme in self.globals:
            value = self.globals[name.lexeme]
        else:
            raise LoxRuntimeError(f"Undefined variable `{name.lexeme}`.", name.line)
        if isinstance(value, _Uninitialised):
            raise LoxRuntimeError(f"Uninitialised variable `{name.lexeme}`", name.line)
        return value

    def assign_variable(self, expr: Assign, value: Value) -> None:
        loc = self.locals.get(expr)
        if loc is not None and self.environment is not None:
            self.environment.assign_at(loc[0], loc[1], value)
            return
        if expr.name.lexeme in self.globals:
            self.globals[expr.name.lexeme] = value
            return
        raise LoxRuntimeError(
            f"Undefined variable `{expr.name.lexeme}`.", expr.name.line
        )

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> Value:
        if isinstance(expr, Literal):
            if expr.value is None:
                return NIL
            if isinstance(expr.value, bool):
                return lox_bool(expr.value)
            if isinstance(expr.value, float):
                return VNumber(expr.value)
            return VString(expr.value)

        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression)

        if isinstance(expr, Unary):
            operand = self.evaluate(expr.right)
            if expr.operator.type == TokenKind.MINUS:
                return VNumber(-self._number(operand, expr.operator))
            return lox_bool(not is_truthy(operand))

        if isinstance(expr, Binary):
            left = self.evaluate(expr.left)
            right = self.evaluate(expr.right)
            return self._eval_binary(expr.operator, left, right)

        if isinstance(expr, Variable):
            return self.lookup_variable(expr, expr.name)

        if isinstance(expr, Assign):
            value = self.evaluate(expr.value)
            self.assign_variable(expr, value)
            return value

        if isinstance(expr, And):
            left = self.evaluate(expr.left)
            if not is_truthy(left):
                return left
            return self.evaluate(expr.right)

        if isinstance(expr, Or):
            left = self.evaluate(expr.left)
            if is_truthy(left):
                return left
            return self.evaluate(expr.right)

        if isinstance(expr, Call):
            callee = self.evaluate(expr.callee)
            args = [self.evaluate(a) for a in expr.arguments]
            try:
                return self._call(callee, args, expr.line)
            except RecursionError:
                raise LoxRuntimeError("Stack overflow.", expr.line) from None

        if isinstance(expr, Function):
            return self._make_function(
                "anonymous", expr.params, expr.body, self.environment
            )

        if isinstance(expr, Get):
            return self._eval_get(expr)

        if isinstance(expr, Set):
            obj = self.evaluate(expr.object)
            if not isinstance(obj, VInstance):
                raise LoxRuntimeError("Only instances have fields.", expr.name.line)
            value = self.evaluate(expr.value)
            obj.set(expr.name.lexeme, value)
            return value

        if isinstance(expr, This):
            return self.lookup_variable(expr, expr.keyword)

        if isinstance(expr, Super):
            return self._eval_super(expr)

        raise TypeError("unsupported expression: " + type(expr).__name__)

    def _number(self, value: Value, operator: Token) -> float:
        if not isinstance(value, VNumber):
            raise LoxRuntimeError("Operand must be a number", operator.line)
        return value.value

    def _eval_binary(self, operator: Token, left: Value, right: Value) -> Value:
        op = operator.type
        if op == TokenKind.PLUS:
            if isinstance(left, VString) or isinstance(right, VString):
                return VString(left.to_string() + right.to_string())
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            raise LoxRuntimeError(
                "Operand must be a string or a number", operator.line
            )
        if op == TokenKind.EQUAL_EQUAL:
            return lox_bool(values_equal(left, right))
        if op == TokenKind.BANG_EQUAL:
            return lox_bool(not values_equal(left, right))

        a = self._number(left, operator)
        b = self._number(right, operator)
        if op == TokenKind.MINUS:
            return VNumber(a - b)
        if op == TokenKind.STAR:
            return VNumber(a * b)
        if op == TokenKind.SLASH:
            if b == 0:
                raise LoxRuntimeError("Division by zero", operator.line)
            return VNumber(a / b)
        if op == TokenKind.GREATER:
            return lox_bool(a > b)
        if op == TokenKind.GREATER_EQUAL:
            return lox_bool(a >= b)
        if op == TokenKind.LESS:
            return lox_bool(a < b)
        if op == TokenKind.LESS_EQUAL:
            return lox_bool(a <= b)
        raise TypeError("unsupported binary operator: " + operator.lexeme)

    def _call(self, callee: Value, args: list[Value], line: int) -> Value:
        if isinstance(callee, VFunction):
            self._check_arity(callee.arity, args, line)
            return callee.invoke(self, args)
        if isinstance(callee, VClass):
            self._check_arity(callee.arity, args, line)
            instance = VInstance(callee)
            init = callee.find_method("init")
            if init is not None:
                init.bind(instance).invoke(self, args)
            return instance
        raise LoxRuntimeError("Can only call functions and classes.", line)

    def _check_arity(self, arity: int, args: list[Value], line: int) -> None:
        if len(args) != arity:
            raise LoxRuntimeError(
                f"Expected {arity} arguments but got {len(args)}.", line
            )

    def _eval_get(self, expr: Get) -> Value:
        obj = self.evaluate(expr.object)
        name = expr.name.lexeme
        found: Value | None
        if isinstance(obj, VInstance):
            found = obj.get(name)
        elif isinstance(obj, VClass):
            found = obj.find_class_method(name)
        else:
            raise LoxRuntimeError("Only instances have properties.", expr.name.line)
        if found is None:
            raise LoxRuntimeError(f"Undefined property `{name}`.", expr.name.line)
        return found

    def _eval_super(self, expr: Super) -> Value:
        depth, index = self.locals[expr]
        assert self.environment is not None
        superclass = self.environment.get_at(depth, index)
        # 'this' is slot 0 of the scope just inside the 'super' scope
        instance = self.environment.get_at(depth - 1, 0)
        assert isinstance(superclass, VClass) and isinstance(instance, VInstance)
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise LoxRuntimeError(
                f"Undefined property `{expr.method.lexeme}`.", expr.method.line
            )
        return method.bind(instance)
