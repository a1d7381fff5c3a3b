"""Lox parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from dataclasses import dataclass, field

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
from .tokens import Token, TokenKind

MAX_ARGUMENTS = 255

# Tokens that start a statement; panic-mode recovery stops in front of them
SYNC_KEYWORDS: set[TokenKind] = {
    TokenKind.CLASS,
    TokenKind.FUN,
    TokenKind.VAR,
    TokenKind.FOR,
    TokenKind.IF,
    TokenKind.WHILE,
    TokenKind.PRINT,
    TokenKind.RETURN,
}

EQUALITY_OPS: tuple[TokenKind, ...] = (TokenKind.BANG_EQUAL, TokenKind.EQUAL_EQUAL)
COMPARE_OPS: tuple[TokenKind, ...] = (
    TokenKind.GREATER,
    TokenKind.GREATER_EQUAL,
    TokenKind.LESS,
    TokenKind.LESS_EQUAL,
)
TERM_OPS: tuple[TokenKind, ...] = (TokenKind.MINUS, TokenKind.PLUS)
FACTOR_OPS: tuple[TokenKind, ...] = (TokenKind.SLASH, TokenKind.STAR)
UNARY_OPS: tuple[TokenKind, ...] = (TokenKind.BANG, TokenKind.MINUS)


class ParseError(Exception):
    """Unwinds the parser to the nearest declaration boundary."""


@dataclass
class ParseResult:
    statements: list[Stmt]
    errors: list[str] = field(default_factory=list)


def format_error(token: Token, message: str) -> str:
    if token.type == TokenKind.EOF:
        where = " at end"
    else:
        where = " at '" + token.lexeme + "'"
    return "[line " + str(token.line) + "] Error" + where + ": " + message


class Parser:
    """Recursive descent parser for Lox with panic-mode recovery."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.errors: list[str] = []

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def at_end(self) -> bool:
        return self.current().type == TokenKind.EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if not self.at_end():
            self.pos += 1
        return tok

    def at(self, *kinds: TokenKind) -> bool:
        return self.current().type in kinds

    def match(self, *kinds: TokenKind) -> bool:
        if self.at(*kinds):
            self.advance()
            return True
        return False

    def expect(self, kind: TokenKind, message: str) -> Token:
        if self.at(kind):
            return self.advance()
        raise self.error(self.current(), message)

    def error(self, token: Token, message: str) -> ParseError:
        self.report(token, message)
        return ParseError(message)

    def report(self, token: Token, message: str) -> None:
        """Record a diagnostic without unwinding."""
        self.errors.append(format_error(token, message))

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().type == TokenKind.SEMICOLON:
                return
            if self.current().type in SYNC_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> list[Stmt]:
        stmts: list[Stmt] = []
        while not self.at_end():
            stmt = self.parse_declaration(breakable=False)
            if stmt is not None:
                stmts.append(stmt)
        return stmts

    def parse_declaration(self, *, breakable: bool) -> Stmt | None:
        try:
            if self.match(TokenKind.CLASS):
                return self.parse_class_decl()
            if self.at(TokenKind.FUN) and self.peek(1).type == TokenKind.IDENTIFIER:
                self.advance()
                return self.parse_function("function")
            if self.match(TokenKind.VAR):
                return self.parse_var_decl()
            return self.parse_stmt(breakable=breakable)
        except ParseError:
            self.synchronize()
            return None
        except RecursionError:
            self.report(self.current(), "Expression nesting too deep.")
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassDecl:
        name = self.expect(TokenKind.IDENTIFIER, "Expect class name.")
        superclass: Variable | None = None
        if self.match(TokenKind.LESS):
            self.expect(TokenKind.IDENTIFIER, "Expect superclass name.")
            superclass = Variable(self.previous())
        self.expect(TokenKind.LEFT_BRACE, "Expect '{' before class body.")
        methods: list[FunctionDecl] = []
        class_methods: list[FunctionDecl] = []
        while not self.at(TokenKind.RIGHT_BRACE) and not self.at_end():
            if self.match(TokenKind.CLASS):
                class_methods.append(self.parse_function("method"))
            else:
                methods.append(self.parse_function("method"))
        self.expect(TokenKind.RIGHT_BRACE, "Expect '}' after class body.")
        return ClassDecl(name.line, name, superclass, methods, class_methods)

    def parse_function(self, kind: str) -> FunctionDecl:
        name = self.expect(TokenKind.IDENTIFIER, "Expect " + kind + " name.")
        self.expect(TokenKind.LEFT_PAREN, "Expect '(' after " + kind + " name.")
        params = self.parse_param_list()
        body = self.parse_body(kind)
        return FunctionDecl(name.line, name, params, body)

    def parse_param_list(self) -> list[Token]:
        """ParamList = ( IDENT ( ',' IDENT )* )? ')'"""
        params: list[Token] = []
        if not self.at(TokenKind.RIGHT_PAREN):
            while True:
                if len(params) >= MAX_ARGUMENTS:
                    self.report(self.current(), "Can't have more than 255 parameters.")
                params.append(
                    self.expect(TokenKind.IDENTIFIER, "Expect parameter name.")
                )
                if not self.match(TokenKind.COMMA):
                    break
        self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after parameters.")
        return params

    def parse_body(self, kind: str) -> Block:
        brace = self.expect(TokenKind.LEFT_BRACE, "Expect '{' before " + kind + " body.")
        # break never crosses a function boundary
        return Block(brace.line, self.parse_block(breakable=False))

    def parse_var_decl(self) -> Var:
        name = self.expect(TokenKind.IDENTIFIER, "Expect variable name.")
        initializer: Expr | None = None
        if self.match(TokenKind.EQUAL):
            initializer = self.parse_expr()
        self.expect(TokenKind.SEMICOLON, "Expect ';' after variable declaration")
        return Var(name.line, name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self, *, breakable: bool) -> Stmt:
        tok = self.current()
        if self.match(TokenKind.FOR):
            return self.parse_for_stmt(tok)
        if self.match(TokenKind.IF):
            return self.parse_if_stmt(tok, breakable=breakable)
        if self.match(TokenKind.PRINT):
            value = self.parse_expr()
            self.expect(TokenKind.SEMICOLON, "Expect ';' after value.")
            return Print(tok.line, value)
        if self.match(TokenKind.RETURN):
            return self.parse_return_stmt(tok)
        if self.match(TokenKind.WHILE):
            return self.parse_while_stmt(tok)
        if self.match(TokenKind.BREAK):
            if not breakable:
                self.report(self.current(), "'break' not inside a loop.")
            self.expect(TokenKind.SEMICOLON, "Expect ';' after 'break'.")
            return Break(tok.line)
        if self.match(TokenKind.LEFT_BRACE):
            return Block(tok.line, self.parse_block(breakable=breakable))
        return self.parse_expr_stmt()

    def parse_block(self, *, breakable: bool) -> list[Stmt]:
        """Block body after '{', up to and including '}'."""
        stmts: list[Stmt] = []
        while not self.at(TokenKind.RIGHT_BRACE) and not self.at_end():
            stmt = self.parse_declaration(breakable=breakable)
            if stmt is not None:
                stmts.append(stmt)
        self.expect(TokenKind.RIGHT_BRACE, "Expect '}' after block.")
        return stmts

    def parse_if_stmt(self, keyword: Token, *, breakable: bool) -> If:
        self.expect(TokenKind.LEFT_PAREN, "Expect '(' after 'if'.")
        cond = self.parse_expr()
        self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after if condition.")
        then_branch = self.parse_stmt(breakable=breakable)
        else_branch: Stmt | None = None
        if self.match(TokenKind.ELSE):
            else_branch = self.parse_stmt(breakable=breakable)
        return If(keyword.line, cond, then_branch, else_branch)

    def parse_while_stmt(self, keyword: Token) -> While:
        self.expect(TokenKind.LEFT_PAREN, "Expect '(' after 'while'.")
        cond = self.parse_expr()
        self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after condition.")
        body = self.parse_stmt(breakable=True)
        return While(keyword.line, cond, body)

    def parse_for_stmt(self, keyword: Token) -> Stmt:
        """Desugar for (init; cond; incr) body into { init; while (cond) { body; incr; } }."""
        line = keyword.line
        self.expect(TokenKind.LEFT_PAREN, "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match(TokenKind.SEMICOLON):
            initializer = None
        elif self.match(TokenKind.VAR):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        cond: Expr | None = None
        if not self.at(TokenKind.SEMICOLON):
            cond = self.parse_expr()
        self.expect(TokenKind.SEMICOLON, "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(TokenKind.RIGHT_PAREN):
            increment = self.parse_expr()
        self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self.parse_stmt(breakable=True)
        if increment is not None:
            body = Block(line, [body, Expression(line, increment)])
        if cond is None:
            cond = Literal(True)
        loop: Stmt = While(line, cond, body)
        if initializer is not None:
            loop = Block(line, [initializer, loop])
        return loop

    def parse_return_stmt(self, keyword: Token) -> Return:
        value: Expr | None = None
        if not self.at(TokenKind.SEMICOLON):
            value = self.parse_expr()
        self.expect(TokenKind.SEMICOLON, "Expect ';' after return value.")
        return Return(keyword.line, keyword, value)

    def parse_expr_stmt(self) -> Expression:
        """ExprStmt = Expr ';'  (the ';' may be dropped right before end of input)"""
        line = self.current().line
        expr = self.parse_expr()
        if not self.at_end():
            self.expect(TokenKind.SEMICOLON, "Expect ';' after expression.")
        return Expression(line, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENT '=' Assignment | Or"""
        expr = self.parse_or()
        if self.match(TokenKind.EQUAL):
            equals = self.previous()
            value = self.parse_assignment()
            if isinstance(expr, Variable):
                return Assign(expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.object, expr.name, value)
            self.report(equals, "Invalid assignment target.")
        return expr

    def parse_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        left = self.parse_and()
        while self.match(TokenKind.OR):
            line = self.previous().line
            right = self.parse_and()
            left = Or(left, right, line)
        return left

    def parse_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        left = self.parse_equality()
        while self.match(TokenKind.AND):
            line = self.previous().line
            right = self.parse_equality()
            left = And(left, right, line)
        return left

    def parse_equality(self) -> Expr:
        """Equality = Comparison ( ( '!=' | '==' ) Comparison )*"""
        left = self.parse_comparison()
        while self.match(*EQUALITY_OPS):
            op = self.previous()
            right = self.parse_comparison()
            left = Binary(left, op, right)
        return left

    def parse_comparison(self) -> Expr:
        """Comparison = Term ( ( '>' | '>=' | '<' | '<=' ) Term )*"""
        left = self.parse_term()
        while self.match(*COMPARE_OPS):
            op = self.previous()
            right = self.parse_term()
            left = Binary(left, op, right)
        return left

    def parse_term(self) -> Expr:
        """Term = Factor ( ( '-' | '+' ) Factor )*"""
        left = self.parse_factor()
        while self.match(*TERM_OPS):
            op = self.previous()
            right = self.parse_factor()
            left = Binary(left, op, right)
        return left

    def parse_factor(self) -> Expr:
        """Factor = Unary ( ( '/' | '*' ) Unary )*"""
        left = self.parse_unary()
        while self.match(*FACTOR_OPS):
            op = self.previous()
            right = self.parse_unary()
            left = Binary(left, op, right)
        return left

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.match(*UNARY_OPS):
            op = self.previous()
            operand = self.parse_unary()
            return Unary(op, operand)
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' ArgList ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match(TokenKind.LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(TokenKind.DOT):
                name = self.expect(
                    TokenKind.IDENTIFIER, "Expect property name after '.'."
                )
                expr = Get(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(TokenKind.RIGHT_PAREN):
            while True:
                if len(args) >= MAX_ARGUMENTS:
                    self.report(self.current(), "Can't have more than 255 arguments.")
                args.append(self.parse_expr())
                if not self.match(TokenKind.COMMA):
                    break
        paren = self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after arguments.")
        return Call(callee, args, paren.line)

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()

        if self.match(TokenKind.FALSE):
            return Literal(False)
        if self.match(TokenKind.TRUE):
            return Literal(True)
        if self.match(TokenKind.NIL):
            return Literal(None)
        if self.match(TokenKind.NUMBER, TokenKind.STRING):
            return Literal(tok.literal)

        if self.match(TokenKind.THIS):
            return This(tok)
        if self.match(TokenKind.SUPER):
            self.expect(TokenKind.DOT, "Expect '.' after 'super'.")
            method = self.expect(
                TokenKind.IDENTIFIER, "Expect superclass method name."
            )
            return Super(tok, method)
        if self.match(TokenKind.IDENTIFIER):
            return Variable(tok)

        if self.match(TokenKind.LEFT_PAREN):
            inner = self.parse_expr()
            self.expect(TokenKind.RIGHT_PAREN, "Expect ')' after expression.")
            return Grouping(inner)

        # Anonymous function literal
        if self.match(TokenKind.FUN):
            self.expect(TokenKind.LEFT_PAREN, "Expect '(' after 'fun'.")
            params = self.parse_param_list()
            body = self.parse_body("function")
            return Function(params, body, tok.line)

        raise self.error(tok, "Expected expression.")


def parse(tokens: list[Token]) -> ParseResult:
    """Parse a token list into statements, collecting every syntax error."""
    parser = Parser(tokens)
    stmts = parser.parse_program()
    return ParseResult(stmts, parser.errors)
