"""Standard gate library loading.

The bundled ``qelib1.inc`` declares the hardware primitives ``u3``, ``u2``,
``u1`` and ``cx`` as opaque gates and defines the usual composite gates in
terms of them. :func:`load_library` turns library text into a frozen
:class:`~qasm2parse.symbols.SymbolTable` that circuit parses extend.
"""

from __future__ import annotations

import importlib.resources as importlib_resources
import logging
from pathlib import Path

from qasm2parse.errors import QasmError, QasmLibraryLoadError
from qasm2parse.grammar import ParseMode, parse_program
from qasm2parse.lexer import tokenize
from qasm2parse.symbols import SymbolTable
from qasm2parse.validate import validate_program

__all__ = ["LIBRARY_NAME", "default_library_text", "load_library", "read_library_file"]

LIBRARY_NAME = "qelib1.inc"

_LIBRARY_PACKAGE = "qasm2parse"
_LIBRARY_DIR = "core"

_LOG = logging.getLogger(__name__)


def default_library_text() -> str:
    """Read the bundled ``qelib1.inc`` resource.

    Raises
    ------
    QasmLibraryLoadError
        If the resource is missing from the installation.
    """
    try:
        resource = importlib_resources.files(_LIBRARY_PACKAGE).joinpath(_LIBRARY_DIR).joinpath(LIBRARY_NAME)
        return resource.read_text(encoding="utf-8")
    except (AttributeError, FileNotFoundError, ModuleNotFoundError):
        local_fallback = Path(__file__).resolve().parent / _LIBRARY_DIR / LIBRARY_NAME
        try:
            return local_fallback.read_text(encoding="utf-8")
        except OSError as exc:
            raise QasmLibraryLoadError(
                "E501",
                f"Unable to locate packaged {LIBRARY_NAME}; the installation is incomplete.",
                1,
                1,
            ) from exc


def read_library_file(path: str) -> str:
    """Read a gate library from ``path``, reporting I/O failures as ``E501``."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise QasmLibraryLoadError("E501", f"Failed to read gate library '{path}': {exc}", 1, 1) from exc


def load_library(text: str, name: str = LIBRARY_NAME) -> SymbolTable:
    """Parse gate-library text into a frozen symbol table.

    Parameters
    ----------
    text : str
        Library source containing only ``gate`` and ``opaque`` declarations.
    name : str
        Label used in diagnostics.

    Returns
    -------
    SymbolTable
        Read-only table holding the library's gate signatures and definitions.

    Raises
    ------
    QasmLibraryLoadError
        If the text fails to tokenize, parse or validate. The original
        diagnostic is chained as the cause.
    """
    symbols = SymbolTable()
    try:
        program = parse_program(tokenize(text), ParseMode.LIBRARY)
        validate_program(program, symbols)
    except QasmError as exc:
        raise QasmLibraryLoadError(
            "E501",
            f"Failed to load gate library '{name}': {exc}",
            exc.line,
            exc.col,
        ) from exc
    _LOG.debug("Loaded %d gate(s) from %s", len(symbols.gates), name)
    return symbols.freeze()
