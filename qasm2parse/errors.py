"""Error model for OpenQASM 2 parsing and validation.

Every failure surfaced by :mod:`qasm2parse` is a :class:`QasmError` carrying a
stable ``E###`` code, a human-readable message and a one-based source
location. Codes are grouped by category (for example, lexical issues in the
``E10x`` family) and each code maps to a stable ``kind`` name so callers can
branch on the failure category without matching message text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import ClassVar, Dict, Tuple

__all__ = [
    "ERROR_KINDS",
    "QasmError",
    "QasmMissingArgumentError",
    "QasmLexicalError",
    "QasmSyntaxError",
    "QasmSemanticError",
    "QasmEvaluationError",
    "QasmLibraryLoadError",
]

_CODE_PATTERN = re.compile(r"^E\d{3}$")

ERROR_KINDS: Dict[str, str] = {
    "E001": "MissingArgument",
    "E101": "LexError",
    "E201": "SyntaxError",
    "E301": "UnknownRegister",
    "E302": "UnknownGate",
    "E303": "ArityMismatch",
    "E304": "IndexOutOfRange",
    "E305": "DuplicateDeclaration",
    "E306": "MisplacedVersion",
    "E307": "UnknownParameter",
    "E308": "UnsupportedVersion",
    "E309": "InvalidRegisterSize",
    "E310": "DuplicateQubit",
    "E311": "ConditionOutOfRange",
    "E401": "UnboundParameter",
    "E402": "InvalidExpression",
    "E501": "LibraryLoadFault",
}


@dataclass(slots=True)
class QasmError(Exception):
    """Base class for all structured OpenQASM 2 errors.

    Parameters
    ----------
    code : str
        Stable error identifier (for example, ``E302``).
    message : str
        Human-readable explanation of the problem.
    line : int
        One-based line index pointing at the source location.
    col : int
        One-based column index pointing at the source location.
    """

    code: str
    message: str
    line: int
    col: int

    def __post_init__(self) -> None:
        """Validate the common error attributes."""
        if not _CODE_PATTERN.match(self.code):
            raise ValueError("Error codes must follow the `E###` pattern.")
        if self.code not in ERROR_KINDS:
            raise ValueError(f"Unknown error code '{self.code}'.")
        if self.line < 1 or self.col < 1:
            raise ValueError("Source locations are one-based; line and column must be positive integers.")

    @property
    def kind(self) -> str:
        """Stable category name associated with :attr:`code`."""
        return ERROR_KINDS[self.code]

    @property
    def column(self) -> int:
        """Alias of :attr:`col`."""
        return self.col

    def to_dict(self) -> Dict[str, object]:
        """Return the uniform diagnostic payload."""
        return {
            "message": self.message,
            "line": self.line,
            "column": self.col,
            "code": self.code,
            "kind": self.kind,
        }

    def __str__(self) -> str:
        """Return a concise diagnostic string."""
        return f"{self.code} (line {self.line}, col {self.col}): {self.message}"


class _CategorisedQasmError(QasmError):
    """Utility mixin enforcing category-specific validation."""

    CATEGORY_PREFIX: ClassVar[str]
    CATEGORY_LABEL: ClassVar[str]

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.code.startswith(self.CATEGORY_PREFIX):
            raise ValueError(f"{self.CATEGORY_LABEL} must use an error code starting with '{self.CATEGORY_PREFIX}'.")


class QasmMissingArgumentError(_CategorisedQasmError, TypeError):
    """Caller contract violations such as missing source text (``E00x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E00"
    CATEGORY_LABEL: ClassVar[str] = "Missing argument errors"


@dataclass
class QasmLexicalError(_CategorisedQasmError):
    """Lexical analysis failures (``E10x`` family).

    Parameters
    ----------
    char : str
        The character the lexer could not recognise.
    """

    CATEGORY_PREFIX: ClassVar[str] = "E10"
    CATEGORY_LABEL: ClassVar[str] = "Lexical errors"

    char: str = ""


@dataclass
class QasmSyntaxError(_CategorisedQasmError):
    """Grammar and syntax violations (``E20x`` family).

    Parameters
    ----------
    expected : Tuple[str, ...]
        Descriptions of the tokens that could have continued the derivation.
    found : str
        Description of the offending token.
    """

    CATEGORY_PREFIX: ClassVar[str] = "E20"
    CATEGORY_LABEL: ClassVar[str] = "Syntax errors"

    expected: Tuple[str, ...] = field(default_factory=tuple)
    found: str = ""


class QasmSemanticError(_CategorisedQasmError):
    """Semantic consistency issues (``E30x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E30"
    CATEGORY_LABEL: ClassVar[str] = "Semantic errors"


class QasmEvaluationError(_CategorisedQasmError):
    """Expression evaluation failures (``E40x`` family)."""

    CATEGORY_PREFIX: ClassVar[str] = "E40"
    CATEGORY_LABEL: ClassVar[str] = "Evaluation errors"


class QasmLibraryLoadError(_CategorisedQasmError):
    """Bundled gate library failed to load (``E50x`` family).

    This indicates a packaging defect rather than a problem with user input.
    """

    CATEGORY_PREFIX: ClassVar[str] = "E50"
    CATEGORY_LABEL: ClassVar[str] = "Library load faults"
