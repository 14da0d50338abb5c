"""Recursive-descent parser for OpenQASM 2.0.

Consumes the token list produced by :func:`qasm2parse.lexer.tokenize` and
builds the typed AST of :mod:`qasm2parse.ast_nodes`. Parsing stops at the
first token that cannot continue a valid derivation; no error recovery is
attempted. Expressions are parsed by precedence climbing and kept symbolic.

Two modes exist. ``LIBRARY`` accepts only ``gate`` and ``opaque``
declarations and is used for the standard gate library; ``CIRCUIT`` accepts
the full grammar. Name resolution is left to :mod:`qasm2parse.validate`.
"""

from __future__ import annotations

import ast
import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from qasm2parse.ast_nodes import (
    BarrierAST,
    BinaryOpAST,
    CallAST,
    CRef,
    ExprAST,
    GateCallAST,
    GateDefAST,
    IfAST,
    IncludeAST,
    MeasureAST,
    NumberAST,
    OpaqueDefAST,
    ParamRefAST,
    PiAST,
    ProgramAST,
    QRef,
    RegisterDeclAST,
    ResetAST,
    StatementAST,
    UnaryOpAST,
    VersionAST,
)
from qasm2parse.errors import QasmSyntaxError
from qasm2parse.lexer import FUNCTIONS, Token, TokenKind

__all__ = ["ParseMode", "parse_program"]

_VERSION_PATTERN = re.compile(r"^(\d+)(?:\.(\d+))?$")

_STATEMENT_STARTS: Tuple[str, ...] = (
    "'OPENQASM'",
    "'include'",
    "'qreg'",
    "'creg'",
    "'gate'",
    "'opaque'",
    "'measure'",
    "'reset'",
    "'barrier'",
    "'if'",
    "identifier",
)
_LIBRARY_STARTS: Tuple[str, ...] = ("'gate'", "'opaque'")
_ATOM_STARTS: Tuple[str, ...] = ("number", "'pi'", "identifier", "function name", "'('", "'-'")

_ADDITIVE = {"+": "add", "-": "sub"}
_MULTIPLICATIVE = {"*": "mul", "/": "div"}


class ParseMode(Enum):
    """Which statements the parser accepts."""

    LIBRARY = "library"
    CIRCUIT = "circuit"


class _GrammarParser:
    """Single-use parser over one token list."""

    def __init__(self, tokens: Sequence[Token], mode: ParseMode) -> None:
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            raise ValueError("Token sequence must be terminated by an EOF token.")
        self._tokens = tokens
        self._pos = 0
        self._mode = mode
        self._keyword_handlers: Dict[str, Callable[[], StatementAST]] = {
            "OPENQASM": self._parse_version,
            "include": self._parse_include,
            "qreg": self._parse_register,
            "creg": self._parse_register,
            "gate": self._parse_gate_decl,
            "opaque": self._parse_opaque_decl,
            "measure": self._parse_measure,
            "reset": self._parse_reset,
            "barrier": self._parse_barrier,
            "if": self._parse_if,
        }

    # -----------------------------------------------------------------
    # Token stream helpers

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind is not TokenKind.EOF:
            self._pos += 1
        return token

    def _error(self, expected: Sequence[str]) -> QasmSyntaxError:
        token = self._current
        found = token.describe()
        return QasmSyntaxError(
            "E201",
            f"Expected {' or '.join(expected)} but found {found}.",
            token.line,
            token.col,
            expected=tuple(expected),
            found=found,
        )

    def _accept_symbol(self, symbol: str) -> Optional[Token]:
        if self._current.is_symbol(symbol):
            return self._advance()
        return None

    def _expect_symbol(self, symbol: str) -> Token:
        if self._current.is_symbol(symbol):
            return self._advance()
        raise self._error((f"'{symbol}'",))

    def _expect_keyword(self, word: str) -> Token:
        if self._current.is_keyword(word):
            return self._advance()
        raise self._error((f"'{word}'",))

    def _expect_identifier(self) -> Token:
        if self._current.kind is TokenKind.IDENTIFIER:
            return self._advance()
        raise self._error(("identifier",))

    def _expect_integer(self) -> int:
        if self._current.is_integer:
            return int(self._advance().lexeme)
        raise self._error(("integer",))

    # -----------------------------------------------------------------
    # Program and statements

    def parse_program(self) -> ProgramAST:
        statements: List[StatementAST] = []
        try:
            while self._current.kind is not TokenKind.EOF:
                statements.append(self._parse_statement())
        except RecursionError as exc:
            token = self._current
            raise QasmSyntaxError(
                "E201",
                f"Expression nesting too deep at {token.describe()}.",
                token.line,
                token.col,
                found=token.describe(),
            ) from exc
        return ProgramAST(statements=tuple(statements))

    def _parse_statement(self) -> StatementAST:
        token = self._current
        if self._mode is ParseMode.LIBRARY:
            if token.is_keyword("gate"):
                return self._parse_gate_decl()
            if token.is_keyword("opaque"):
                return self._parse_opaque_decl()
            raise self._error(_LIBRARY_STARTS)
        if token.kind is TokenKind.KEYWORD:
            handler = self._keyword_handlers.get(token.lexeme)
            if handler is not None:
                return handler()
        elif token.kind is TokenKind.IDENTIFIER:
            call = self._parse_gate_call(allow_indexed=True)
            self._expect_symbol(";")
            return call
        raise self._error(_STATEMENT_STARTS)

    def _parse_version(self) -> VersionAST:
        keyword = self._expect_keyword("OPENQASM")
        token = self._current
        match = _VERSION_PATTERN.match(token.lexeme) if token.kind is TokenKind.NUMBER else None
        if match is None:
            raise self._error(("version number",))
        self._advance()
        self._expect_symbol(";")
        major = int(match.group(1))
        minor = int(match.group(2)) if match.group(2) else 0
        return VersionAST(major=major, minor=minor, line=keyword.line, col=keyword.col)

    def _parse_include(self) -> IncludeAST:
        keyword = self._expect_keyword("include")
        token = self._current
        if token.kind is not TokenKind.STRING:
            raise self._error(("string",))
        self._advance()
        try:
            path = ast.literal_eval(token.lexeme)
        except (SyntaxError, ValueError) as exc:
            raise QasmSyntaxError(
                "E201",
                f"Invalid include path {token.lexeme}.",
                token.line,
                token.col,
                expected=("string",),
                found=token.describe(),
            ) from exc
        self._expect_symbol(";")
        return IncludeAST(path=path, line=keyword.line, col=keyword.col)

    def _parse_register(self) -> RegisterDeclAST:
        keyword = self._advance()
        name = self._expect_identifier()
        self._expect_symbol("[")
        size = self._expect_integer()
        self._expect_symbol("]")
        self._expect_symbol(";")
        return RegisterDeclAST(kind=keyword.lexeme, name=name.lexeme, size=size, line=keyword.line, col=keyword.col)

    def _parse_gate_decl(self) -> GateDefAST:
        keyword = self._expect_keyword("gate")
        name = self._expect_identifier()
        params = self._parse_formal_params()
        qargs = self._parse_identifier_list()
        self._expect_symbol("{")
        body: List[GateCallAST] = []
        while not self._current.is_symbol("}"):
            if self._current.kind is not TokenKind.IDENTIFIER:
                raise self._error(("identifier", "'}'"))
            body.append(self._parse_gate_call(allow_indexed=False))
            self._expect_symbol(";")
        self._expect_symbol("}")
        return GateDefAST(
            name=name.lexeme,
            params=params,
            qargs=qargs,
            body=tuple(body),
            line=keyword.line,
            col=keyword.col,
        )

    def _parse_opaque_decl(self) -> OpaqueDefAST:
        keyword = self._expect_keyword("opaque")
        name = self._expect_identifier()
        params = self._parse_formal_params()
        qargs = self._parse_identifier_list()
        self._expect_symbol(";")
        return OpaqueDefAST(name=name.lexeme, params=params, qargs=qargs, line=keyword.line, col=keyword.col)

    def _parse_measure(self) -> MeasureAST:
        keyword = self._expect_keyword("measure")
        qref = self._parse_qarg(allow_indexed=True)
        self._expect_symbol("->")
        target = self._parse_qarg(allow_indexed=True)
        self._expect_symbol(";")
        cref = CRef(reg=target.reg, idx=target.idx, line=target.line, col=target.col)
        return MeasureAST(q=qref, c=cref, line=keyword.line, col=keyword.col)

    def _parse_reset(self) -> ResetAST:
        keyword = self._expect_keyword("reset")
        qref = self._parse_qarg(allow_indexed=True)
        self._expect_symbol(";")
        return ResetAST(q=qref, line=keyword.line, col=keyword.col)

    def _parse_barrier(self) -> BarrierAST:
        keyword = self._expect_keyword("barrier")
        qargs = self._parse_qarg_list(allow_indexed=True)
        self._expect_symbol(";")
        return BarrierAST(qargs=qargs, line=keyword.line, col=keyword.col)

    def _parse_if(self) -> IfAST:
        keyword = self._expect_keyword("if")
        self._expect_symbol("(")
        creg = self._expect_identifier()
        self._expect_symbol("==")
        value = self._expect_integer()
        self._expect_symbol(")")
        if self._current.kind is not TokenKind.IDENTIFIER:
            raise self._error(("identifier",))
        body = self._parse_gate_call(allow_indexed=True)
        self._expect_symbol(";")
        return IfAST(creg=creg.lexeme, value=value, body=body, line=keyword.line, col=keyword.col)

    # -----------------------------------------------------------------
    # Gate calls and argument lists

    def _parse_gate_call(self, allow_indexed: bool) -> GateCallAST:
        name = self._expect_identifier()
        params: Tuple[ExprAST, ...] = ()
        if self._accept_symbol("("):
            params = self._parse_expression_list()
            self._expect_symbol(")")
        qargs = self._parse_qarg_list(allow_indexed)
        return GateCallAST(name=name.lexeme, params=params, qargs=qargs, line=name.line, col=name.col)

    def _parse_expression_list(self) -> Tuple[ExprAST, ...]:
        if self._current.is_symbol(")"):
            return ()
        expressions = [self._parse_expression()]
        while self._accept_symbol(","):
            expressions.append(self._parse_expression())
        return tuple(expressions)

    def _parse_formal_params(self) -> Tuple[str, ...]:
        if not self._accept_symbol("("):
            return ()
        if self._accept_symbol(")"):
            return ()
        names = self._parse_identifier_list()
        self._expect_symbol(")")
        return names

    def _parse_identifier_list(self) -> Tuple[str, ...]:
        names = [self._expect_identifier().lexeme]
        while self._accept_symbol(","):
            names.append(self._expect_identifier().lexeme)
        return tuple(names)

    def _parse_qarg_list(self, allow_indexed: bool) -> Tuple[QRef, ...]:
        qargs = [self._parse_qarg(allow_indexed)]
        while self._accept_symbol(","):
            qargs.append(self._parse_qarg(allow_indexed))
        return tuple(qargs)

    def _parse_qarg(self, allow_indexed: bool) -> QRef:
        name = self._expect_identifier()
        index: Optional[int] = None
        if allow_indexed and self._accept_symbol("["):
            index = self._expect_integer()
            self._expect_symbol("]")
        return QRef(reg=name.lexeme, idx=index, line=name.line, col=name.col)

    # -----------------------------------------------------------------
    # Expressions

    def _parse_expression(self) -> ExprAST:
        left = self._parse_term()
        while self._current.kind is TokenKind.SYMBOL and self._current.lexeme in _ADDITIVE:
            op = _ADDITIVE[self._advance().lexeme]
            right = self._parse_term()
            left = BinaryOpAST(op=op, left=left, right=right, line=left.line, col=left.col)
        return left

    def _parse_term(self) -> ExprAST:
        left = self._parse_power()
        while self._current.kind is TokenKind.SYMBOL and self._current.lexeme in _MULTIPLICATIVE:
            op = _MULTIPLICATIVE[self._advance().lexeme]
            right = self._parse_power()
            left = BinaryOpAST(op=op, left=left, right=right, line=left.line, col=left.col)
        return left

    def _parse_power(self) -> ExprAST:
        base = self._parse_unary()
        if self._accept_symbol("^"):
            exponent = self._parse_power()
            return BinaryOpAST(op="pow", left=base, right=exponent, line=base.line, col=base.col)
        return base

    def _parse_unary(self) -> ExprAST:
        minuses: List[Token] = []
        while self._current.is_symbol("-"):
            minuses.append(self._advance())
        expr = self._parse_atom()
        for minus in reversed(minuses):
            expr = UnaryOpAST(op="neg", operand=expr, line=minus.line, col=minus.col)
        return expr

    def _parse_atom(self) -> ExprAST:
        token = self._current
        if token.kind is TokenKind.NUMBER:
            self._advance()
            return NumberAST(value=float(token.lexeme), text=token.lexeme, line=token.line, col=token.col)
        if token.is_keyword("pi"):
            self._advance()
            return PiAST(line=token.line, col=token.col)
        if token.kind is TokenKind.KEYWORD and token.lexeme in FUNCTIONS:
            self._advance()
            self._expect_symbol("(")
            argument = self._parse_expression()
            self._expect_symbol(")")
            return CallAST(func=token.lexeme, arg=argument, line=token.line, col=token.col)
        if token.kind is TokenKind.IDENTIFIER:
            self._advance()
            return ParamRefAST(name=token.lexeme, line=token.line, col=token.col)
        if self._accept_symbol("("):
            inner = self._parse_expression()
            self._expect_symbol(")")
            return inner
        raise self._error(_ATOM_STARTS)


def parse_program(tokens: Sequence[Token], mode: ParseMode = ParseMode.CIRCUIT) -> ProgramAST:
    """Parse a token list into a program AST.

    Parameters
    ----------
    tokens : Sequence[Token]
        Output of :func:`qasm2parse.lexer.tokenize`, terminated by EOF.
    mode : ParseMode
        ``LIBRARY`` restricts the input to gate and opaque declarations.

    Returns
    -------
    ProgramAST
        Unvalidated program in source order.

    Raises
    ------
    QasmSyntaxError
        At the first token that cannot continue any valid derivation.
    """
    return _GrammarParser(tokens, mode).parse_program()
