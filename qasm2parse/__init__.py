"""OpenQASM 2.0 lexer, parser and semantic validator.

Typical use::

    from qasm2parse import Parser

    parser = Parser()
    program = parser.parse('OPENQASM 2.0; include "qelib1.inc"; qreg q[2]; h q[0]; cx q[0],q[1];')
"""

from qasm2parse.ast_nodes import ProgramAST
from qasm2parse.config import ParserOptions, load_options
from qasm2parse.errors import (
    QasmError,
    QasmEvaluationError,
    QasmLexicalError,
    QasmLibraryLoadError,
    QasmMissingArgumentError,
    QasmSemanticError,
    QasmSyntaxError,
)
from qasm2parse.expr_eval import evaluate
from qasm2parse.parser import Parser, parse_qasm, parse_qasm_file

__all__ = [
    "Parser",
    "ParserOptions",
    "ProgramAST",
    "QasmError",
    "QasmEvaluationError",
    "QasmLexicalError",
    "QasmLibraryLoadError",
    "QasmMissingArgumentError",
    "QasmSemanticError",
    "QasmSyntaxError",
    "evaluate",
    "load_options",
    "parse_qasm",
    "parse_qasm_file",
]
