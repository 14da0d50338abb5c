"""Tokenizer for OpenQASM 2 source text.

The terminal definitions live in the packaged ``terminals/tokens.lark`` resource
and are scanned with Lark's basic lexer. Lark tokens are converted into the
immutable :class:`Token` records consumed by :mod:`qasm2parse.grammar`.
"""

from __future__ import annotations

import importlib.resources as importlib_resources
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List

from lark import Lark
from lark import Token as LarkToken
from lark.exceptions import UnexpectedCharacters

from qasm2parse.errors import QasmLexicalError

__all__ = ["KEYWORDS", "FUNCTIONS", "Token", "TokenKind", "create_lexer", "tokenize"]

_GRAMMAR_PACKAGE = "qasm2parse"
_GRAMMAR_DIR = "terminals"
_GRAMMAR_FILE = "tokens.lark"

KEYWORDS: frozenset[str] = frozenset(
    {"OPENQASM", "qreg", "creg", "gate", "opaque", "include", "measure", "reset", "barrier", "if", "pi"}
)
FUNCTIONS: frozenset[str] = frozenset({"sin", "cos", "tan", "exp", "ln", "sqrt"})

_KEYWORD_TYPES: frozenset[str] = frozenset(word.upper() for word in KEYWORDS | FUNCTIONS)


class TokenKind(Enum):
    """Lexical category of a :class:`Token`."""

    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    SYMBOL = "symbol"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """A lexical token with its one-based source position.

    Parameters
    ----------
    kind : TokenKind
        Lexical category.
    lexeme : str
        Exact source text of the token (string literals keep their quotes).
    line : int
        One-based line of the first character.
    col : int
        One-based column of the first character.
    """

    kind: TokenKind
    lexeme: str
    line: int
    col: int

    @property
    def is_integer(self) -> bool:
        """Whether this is a NUMBER token holding a non-negative integer literal."""
        return self.kind is TokenKind.NUMBER and self.lexeme.isdigit()

    def is_keyword(self, word: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.lexeme == word

    def is_symbol(self, symbol: str) -> bool:
        return self.kind is TokenKind.SYMBOL and self.lexeme == symbol

    def describe(self) -> str:
        """Short human-readable description used in diagnostics."""
        if self.kind is TokenKind.EOF:
            return "end of input"
        return f"'{self.lexeme}'"


def _read_grammar() -> str:
    try:
        resource = importlib_resources.files(_GRAMMAR_PACKAGE).joinpath(_GRAMMAR_DIR).joinpath(_GRAMMAR_FILE)
        return resource.read_text(encoding="utf-8")
    except (AttributeError, FileNotFoundError, ModuleNotFoundError):
        grammar_path = Path(__file__).with_name(_GRAMMAR_DIR).joinpath(_GRAMMAR_FILE)
        return grammar_path.read_text(encoding="utf-8")


@lru_cache(maxsize=1)
def create_lexer() -> Lark:
    """Instantiate the Lark frontend holding the OpenQASM terminal set.

    Returns
    -------
    Lark
        Grammar object whose :meth:`~lark.Lark.lex` scans OpenQASM 2 text.
    """
    return Lark(_read_grammar(), start="start", parser="lalr", lexer="basic")


def _classify(token: LarkToken) -> TokenKind:
    if token.type in _KEYWORD_TYPES:
        return TokenKind.KEYWORD
    if token.type == "ID":
        return TokenKind.IDENTIFIER
    if token.type in {"INT", "REAL"}:
        return TokenKind.NUMBER
    if token.type == "STRING":
        return TokenKind.STRING
    return TokenKind.SYMBOL


def _end_position(text: str) -> tuple[int, int]:
    line = text.count("\n") + 1
    col = len(text) - (text.rfind("\n") + 1) + 1
    return line, col


def tokenize(text: str) -> List[Token]:
    """Convert OpenQASM 2 source into a token list terminated by EOF.

    Whitespace and ``//`` comments are discarded.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.

    Returns
    -------
    List[Token]
        Tokens in source order; the last element is always the EOF token.

    Raises
    ------
    QasmLexicalError
        If the text contains a character that starts no valid token.
    """
    tokens: List[Token] = []
    try:
        for raw in create_lexer().lex(text):
            tokens.append(Token(_classify(raw), str(raw.value), int(raw.line), int(raw.column)))
    except UnexpectedCharacters as exc:
        char = exc.char
        raise QasmLexicalError(
            "E101",
            f"Unrecognized character {char!r}.",
            exc.line,
            exc.column,
            char=char,
        ) from exc
    line, col = _end_position(text)
    tokens.append(Token(TokenKind.EOF, "", line, col))
    return tokens
