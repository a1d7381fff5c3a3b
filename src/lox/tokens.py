"""Lox scanner — lexes source into a flat token list, collecting errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TokenKind(Enum):
    # Single-character tokens
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    COMMA = ","
    DOT = "."
    MINUS = "-"
    PLUS = "+"
    SEMICOLON = ";"
    SLASH = "/"
    STAR = "*"

    # One or two character tokens
    BANG = "!"
    BANG_EQUAL = "!="
    EQUAL = "="
    EQUAL_EQUAL = "=="
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="

    # Literals
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    NUMBER = "NUMBER"

    # Keywords
    AND = "and"
    BREAK = "break"
    CLASS = "class"
    ELSE = "else"
    FALSE = "false"
    FUN = "fun"
    FOR = "for"
    IF = "if"
    NIL = "nil"
    OR = "or"
    PRINT = "print"
    RETURN = "return"
    SUPER = "super"
    THIS = "this"
    TRUE = "true"
    VAR = "var"
    WHILE = "while"

    EOF = "EOF"


KEYWORDS: dict[str, TokenKind] = {
    "and": TokenKind.AND,
    "break": TokenKind.BREAK,
    "class": TokenKind.CLASS,
    "else": TokenKind.ELSE,
    "false": TokenKind.FALSE,
    "fun": TokenKind.FUN,
    "for": TokenKind.FOR,
    "if": TokenKind.IF,
    "nil": TokenKind.NIL,
    "or": TokenKind.OR,
    "print": TokenKind.PRINT,
    "return": TokenKind.RETURN,
    "super": TokenKind.SUPER,
    "this": TokenKind.THIS,
    "true": TokenKind.TRUE,
    "var": TokenKind.VAR,
    "while": TokenKind.WHILE,
}

SINGLE_CHARS: dict[str, TokenKind] = {
    "(": TokenKind.LEFT_PAREN,
    ")": TokenKind.RIGHT_PAREN,
    "{": TokenKind.LEFT_BRACE,
    "}": TokenKind.RIGHT_BRACE,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    "-": TokenKind.MINUS,
    "+": TokenKind.PLUS,
    ";": TokenKind.SEMICOLON,
    "*": TokenKind.STAR,
}

# Operators that may be followed by '=' to form a two-character operator
EQUAL_PAIRS: dict[str, tuple[TokenKind, TokenKind]] = {
    "!": (TokenKind.BANG, TokenKind.BANG_EQUAL),
    "=": (TokenKind.EQUAL, TokenKind.EQUAL_EQUAL),
    ">": (TokenKind.GREATER, TokenKind.GREATER_EQUAL),
    "<": (TokenKind.LESS, TokenKind.LESS_EQUAL),
}


@dataclass(frozen=True)
class Token:
    """A token with kind, source text, line, and literal value."""

    type: TokenKind
    lexeme: str
    line: int
    literal: str | float | None = None

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type.name
            + ", "
            + repr(self.lexeme)
            + ", "
            + str(self.line)
            + ")"
        )


@dataclass
class ScanResult:
    tokens: list[Token]
    errors: list[str] = field(default_factory=list)


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def scan_error(line: int, message: str) -> str:
    return "[line " + str(line) + "] Error: " + message


def scan(source: str) -> ScanResult:
    """Tokenize Lox source into a flat list ending with EOF.

    Lexical errors never stop the scan: every character is visited and each
    problem is reported in the returned error list.
    """
    tokens: list[Token] = []
    errors: list[str] = []
    pos = 0
    line = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            continue

        start_pos = pos

        # Comments and slash
        if c == "/":
            if pos + 1 < length and source[pos + 1] == "/":
                while pos < length and source[pos] != "\n":
                    pos += 1
                continue
            if pos + 1 < length and source[pos + 1] == "*":
                pos, line = _skip_block_comment(source, pos, line, errors)
                continue
            tokens.append(Token(TokenKind.SLASH, "/", line))
            pos += 1
            continue

        # Number: digits with optional fraction; a trailing '.' stays a DOT
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
            if (
                pos + 1 < length
                and source[pos] == "."
                and _is_digit(source[pos + 1])
            ):
                pos += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
            raw = source[start_pos:pos]
            tokens.append(Token(TokenKind.NUMBER, raw, line, float(raw)))
            continue

        # String literal: "..." (no escapes, may span lines)
        if c == '"':
            start_line = line
            pos += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    line += 1
                pos += 1
            if pos >= length:
                errors.append(scan_error(line, "Unterminated string."))
                continue
            pos += 1  # skip closing "
            raw = source[start_pos:pos]
            tokens.append(Token(TokenKind.STRING, raw, start_line, raw[1:-1]))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
            word = source[start_pos:pos]
            kind = KEYWORDS.get(word, TokenKind.IDENTIFIER)
            tokens.append(Token(kind, word, line))
            continue

        # One or two character operators, greedy
        if c in EQUAL_PAIRS:
            single, double = EQUAL_PAIRS[c]
            if pos + 1 < length and source[pos + 1] == "=":
                tokens.append(Token(double, source[pos : pos + 2], line))
                pos += 2
            else:
                tokens.append(Token(single, c, line))
                pos += 1
            continue

        if c in SINGLE_CHARS:
            tokens.append(Token(SINGLE_CHARS[c], c, line))
            pos += 1
            continue

        errors.append(scan_error(line, "Unexpected character."))
        pos += 1

    tokens.append(Token(TokenKind.EOF, "", line))
    return ScanResult(tokens, errors)


def _skip_block_comment(
    source: str, pos: int, line: int, errors: list[str]
) -> tuple[int, int]:
    """Skip a nestable /* ... */ comment starting at pos. Returns (pos, line)."""
    length = len(source)
    opened: list[int] = [line]
    pos += 2
    while pos < length and opened:
        c = source[pos]
        if c == "\n":
            line += 1
            pos += 1
        elif c == "*" and pos + 1 < length and source[pos + 1] == "/":
            opened.pop()
            pos += 2
        elif c == "/" and pos + 1 < length and source[pos + 1] == "*":
            opened.append(line)
            pos += 2
        else:
            pos += 1
    if opened:
        errors.append(scan_error(opened[-1], "Unterminated block comment."))
    return pos, line
