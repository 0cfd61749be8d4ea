"""
Lexical Analyzer (Lexer) for the rvcc source language

Converts source code into a stream of tokens for the LR parser. The language
only has identifiers, decimal integer constants, the keywords `int` and
`return`, and a handful of single-character operators.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Dict

from rvcc.symtab import SymbolTable


class TokenType(Enum):
    """Token kinds; the value is the terminal name used by the grammar"""
    # Literals and identifiers
    ID = "id"
    INT_CONST = "IntConst"

    # Keywords
    INT = "int"
    RETURN = "return"

    # Operators
    ASSIGN = "="
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"

    # Delimiters
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    SEMICOLON = "Semicolon"

    # Special
    EOF = "$"


@dataclass(frozen=True)
class Token:
    """Represents a lexical token"""
    type: TokenType
    value: str = ""
    line: int = 0
    column: int = 0

    @property
    def kind(self) -> str:
        return self.type.value

    def __str__(self) -> str:
        return f"({self.kind},{self.value})"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {repr(self.value)}, {self.line}:{self.column})"


class LexerError(Exception):
    """Lexer error with line and column information"""
    def __init__(self, message: str, line: int, column: int):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at {line}:{column}")


def _is_digit(char: str) -> bool:
    return '0' <= char <= '9'


def _is_ident_char(char: str) -> bool:
    # ASCII only: str.isalnum() also accepts non-Latin letters and digits
    return char.isascii() and (char.isalnum() or char == '_')


class Lexer:
    """Lexical analyzer for rvcc source code"""

    KEYWORDS: Dict[str, TokenType] = {
        'int': TokenType.INT,
        'return': TokenType.RETURN,
    }

    SINGLE_CHAR: Dict[str, TokenType] = {
        '=': TokenType.ASSIGN,
        '+': TokenType.PLUS,
        '-': TokenType.MINUS,
        '*': TokenType.STAR,
        '/': TokenType.SLASH,
        '(': TokenType.LPAREN,
        ')': TokenType.RPAREN,
        ',': TokenType.COMMA,
        ';': TokenType.SEMICOLON,
    }

    def __init__(self, source: str, symbol_table: Optional[SymbolTable] = None):
        """Initialize lexer with source code

        Identifiers are registered in `symbol_table` (when given) as they are
        scanned; their types are filled in later by semantic analysis.
        """
        self.source = source
        self.symbol_table = symbol_table
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def current_char(self) -> Optional[str]:
        """Get current character without consuming"""
        if self.position >= len(self.source):
            return None
        return self.source[self.position]

    def advance(self) -> Optional[str]:
        """Consume and return current character"""
        if self.position >= len(self.source):
            return None

        char = self.source[self.position]
        self.position += 1

        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def skip_whitespace(self) -> None:
        while self.current_char() is not None and self.current_char() in ' \t\r\n':
            self.advance()

    def read_number(self) -> str:
        num_str = ""
        while self.current_char() is not None and _is_digit(self.current_char()):
            num_str += self.advance()
        return num_str

    def read_identifier(self) -> str:
        """Read identifier or keyword"""
        ident = ""
        while self.current_char() is not None and _is_ident_char(self.current_char()):
            ident += self.advance()
        return ident

    def tokenize(self) -> List[Token]:
        """Tokenize entire source code, ending with an EOF token

        Raises LexerError on the first character that starts no token.
        """
        self.tokens = []

        while True:
            self.skip_whitespace()
            if self.position >= len(self.source):
                break

            token_line = self.line
            token_column = self.column
            char = self.current_char()

            if _is_ident_char(char) and not _is_digit(char):
                ident = self.read_identifier()
                if ident in self.KEYWORDS:
                    self.tokens.append(Token(self.KEYWORDS[ident], "", token_line, token_column))
                else:
                    if self.symbol_table is not None and not self.symbol_table.has(ident):
                        self.symbol_table.add(ident)
                    self.tokens.append(Token(TokenType.ID, ident, token_line, token_column))
                continue

            if _is_digit(char):
                self.tokens.append(Token(TokenType.INT_CONST, self.read_number(), token_line, token_column))
                continue

            if char in self.SINGLE_CHAR:
                self.advance()
                self.tokens.append(Token(self.SINGLE_CHAR[char], "", token_line, token_column))
                continue

            raise LexerError(f"Unexpected character {char!r}", token_line, token_column)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens
