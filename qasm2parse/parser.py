"""Public entry points for parsing OpenQASM 2 programs.

A :class:`Parser` loads the standard gate library once, at construction, and
keeps it as a frozen symbol table. Each :meth:`Parser.parse` call tokenizes,
parses and validates the circuit against a fresh extension of that table, so
one instance can be reused, including from several threads.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from qasm2parse.ast_nodes import ProgramAST
from qasm2parse.config import ParserOptions, options_from_mapping
from qasm2parse.errors import QasmMissingArgumentError
from qasm2parse.grammar import ParseMode, parse_program
from qasm2parse.lexer import tokenize
from qasm2parse.library import LIBRARY_NAME, default_library_text, load_library, read_library_file
from qasm2parse.symbols import SymbolTable
from qasm2parse.validate import validate_program

__all__ = ["Parser", "parse_qasm", "parse_qasm_file"]

_LOG = logging.getLogger(__name__)


class Parser:
    """OpenQASM 2 parser with an optional preloaded standard library.

    Parameters
    ----------
    core : bool
        Preload the standard gate library (``qelib1.inc``). With ``False``
        the symbol table starts empty and programs must declare every gate.
    library_path : str, optional
        Read the gate library from this file instead of the bundled one.

    Raises
    ------
    QasmLibraryLoadError
        If the gate library file cannot be read or its text cannot be parsed.
    """

    def __init__(self, core: bool = True, library_path: Optional[str] = None) -> None:
        self._core = core
        if not core:
            self._library = SymbolTable().freeze()
            return
        if library_path is None:
            self._library = load_library(default_library_text())
        else:
            text = read_library_file(library_path)
            self._library = load_library(text, Path(library_path).name)

    @classmethod
    def from_options(cls, options: Union[ParserOptions, Mapping[str, Any], None] = None) -> "Parser":
        """Create a parser from :class:`ParserOptions` or a mapping like ``{"core": False}``."""
        if options is None:
            options = ParserOptions()
        elif not isinstance(options, ParserOptions):
            options = options_from_mapping(options)
        return cls(core=options.core, library_path=options.library_path)

    @property
    def core(self) -> bool:
        return self._core

    @property
    def library(self) -> SymbolTable:
        """Frozen symbol table holding the preloaded gates."""
        return self._library

    def parse(self, circuit: str) -> ProgramAST:
        """Parse and validate OpenQASM 2 source.

        Parameters
        ----------
        circuit : str
            OpenQASM 2 source code.

        Returns
        -------
        ProgramAST
            Validated program.

        Raises
        ------
        QasmMissingArgumentError
            If ``circuit`` is not a string or contains only whitespace.
        QasmError
            Lexical, syntax or semantic failures (the first one found).
        """
        if not isinstance(circuit, str) or not circuit.strip():
            raise QasmMissingArgumentError("E001", "Required param: circuit", 1, 1)
        program = parse_program(tokenize(circuit), ParseMode.CIRCUIT)
        validate_program(program, self._library.extend())
        unresolved = self.unresolved_includes(program)
        if unresolved:
            _LOG.debug("Includes left for the caller to resolve: %s", ", ".join(unresolved))
        _LOG.debug("Parsed %d statement(s)", len(program.statements))
        return program

    def parse_file(self, file_path: str) -> ProgramAST:
        """Parse a file containing OpenQASM 2 source."""
        text = Path(file_path).read_text(encoding="utf-8")
        return self.parse(text)

    def unresolved_includes(self, program: ProgramAST) -> List[str]:
        """Return include paths not satisfied by the preloaded library."""
        return [path for path in program.includes if not (self._core and path == LIBRARY_NAME)]


@lru_cache(maxsize=2)
def _default_parser(core: bool) -> Parser:
    return Parser(core=core)


def parse_qasm(text: str, core: bool = True) -> ProgramAST:
    """Parse OpenQASM 2 source into a validated AST.

    Parameters
    ----------
    text : str
        OpenQASM 2 source code.
    core : bool
        Whether the standard gate library is available.

    Returns
    -------
    ProgramAST
        Structured representation of the program.

    Raises
    ------
    QasmError
        If parsing fails or semantic checks detect inconsistencies.
    """
    return _default_parser(core).parse(text)


def parse_qasm_file(file_path: str, core: bool = True) -> ProgramAST:
    """Parse a file containing OpenQASM 2 source.

    Parameters
    ----------
    file_path : str
        Path to the file that should be parsed.
    core : bool
        Whether the standard gate library is available.

    Returns
    -------
    ProgramAST
        Structured representation identical to :func:`parse_qasm`.
    """
    return _default_parser(core).parse_file(file_path)
