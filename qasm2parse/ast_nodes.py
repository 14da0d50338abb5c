from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Operands


@dataclass(frozen=True)
class QRef:
    """Reference to a quantum register or qubit.

    Parameters
    ----------
    reg : str
        Name of the quantum register (or formal qubit argument inside a gate body).
    idx : Optional[int]
        Index within the register. ``None`` represents the full register.
    line : int
        Source line number where this reference appears.
    col : int
        Source column number where this reference appears.
    """

    reg: str
    idx: Optional[int]
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class CRef:
    """Reference to a classical register or bit.

    Parameters
    ----------
    reg : str
        Name of the classical register.
    idx : Optional[int]
        Index within the register. ``None`` represents the full register.
    line : int
        Source line number where this reference appears.
    col : int
        Source column number where this reference appears.
    """

    reg: str
    idx: Optional[int]
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


# ---------------------------------------------------------------------------
# Expressions


@dataclass(frozen=True)
class NumberAST:
    """Numeric literal.

    Parameters
    ----------
    value : float
        Literal value.
    text : str
        Literal as written in the source.
    """

    value: float
    text: str = ""
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class PiAST:
    """The constant ``pi``."""

    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class ParamRefAST:
    """Reference to a formal parameter of the enclosing gate definition."""

    name: str
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class UnaryOpAST:
    """Unary operation; ``op`` is always ``"neg"``."""

    op: str
    operand: "ExprAST"
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class BinaryOpAST:
    """Binary arithmetic operation.

    Parameters
    ----------
    op : str
        One of ``"add"``, ``"sub"``, ``"mul"``, ``"div"`` or ``"pow"``.
    left : ExprAST
        Left operand.
    right : ExprAST
        Right operand.
    """

    op: str
    left: "ExprAST"
    right: "ExprAST"
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class CallAST:
    """Application of a unary function (``sin``, ``cos``, ``tan``, ``exp``, ``ln``, ``sqrt``)."""

    func: str
    arg: "ExprAST"
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


ExprAST = Union[NumberAST, PiAST, ParamRefAST, UnaryOpAST, BinaryOpAST, CallAST]


# ---------------------------------------------------------------------------
# Statements


@dataclass(frozen=True)
class VersionAST:
    """``OPENQASM major.minor;`` header."""

    major: int
    minor: int
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)

    @property
    def text(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class IncludeAST:
    """``include "path";`` directive. The path is recorded, never read."""

    path: str
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class RegisterDeclAST:
    """Register declaration.

    Parameters
    ----------
    kind : str
        ``"qreg"`` or ``"creg"``.
    name : str
        Register name.
    size : int
        Number of (qu)bits in the register.
    """

    kind: str
    name: str
    size: int
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class GateCallAST:
    """AST node representing a gate invocation.

    Parameters
    ----------
    name : str
        Name of the gate being invoked.
    params : Tuple[ExprAST, ...]
        Unevaluated parameter expressions.
    qargs : Tuple[QRef, ...]
        Quantum arguments passed to the gate.
    line : int
        Source line number of the gate call.
    col : int
        Source column number of the gate call.
    """

    name: str
    params: Tuple[ExprAST, ...] = ()
    qargs: Tuple[QRef, ...] = ()
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class GateDefAST:
    """AST node representing a user-defined gate declaration.

    Parameters
    ----------
    name : str
        Name of the user-defined gate.
    params : Tuple[str, ...]
        Parameter names for the gate definition.
    qargs : Tuple[str, ...]
        Quantum argument names for the gate definition.
    body : Tuple[GateCallAST, ...]
        Sequence of gate calls forming the body of the definition.
    line : int
        Source line number of the gate definition.
    col : int
        Source column number of the gate definition.
    """

    name: str
    params: Tuple[str, ...] = ()
    qargs: Tuple[str, ...] = ()
    body: Tuple[GateCallAST, ...] = ()
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class OpaqueDefAST:
    """Opaque gate declaration: a signature without a body."""

    name: str
    params: Tuple[str, ...] = ()
    qargs: Tuple[str, ...] = ()
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class MeasureAST:
    """AST node representing a measurement operation.

    Parameters
    ----------
    q : QRef
        Quantum operand being measured.
    c : CRef
        Classical operand receiving the measurement result.
    """

    q: QRef
    c: CRef
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class ResetAST:
    """``reset`` of a qubit or a whole quantum register."""

    q: QRef
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class BarrierAST:
    """AST node representing a barrier over the listed quantum arguments."""

    qargs: Tuple[QRef, ...] = ()
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


@dataclass(frozen=True)
class IfAST:
    """Classically controlled gate call: ``if (creg == value) body;``."""

    creg: str
    value: int
    body: GateCallAST
    line: int = field(default=1, compare=False)
    col: int = field(default=1, compare=False)


StatementAST = Union[
    VersionAST,
    IncludeAST,
    RegisterDeclAST,
    GateDefAST,
    OpaqueDefAST,
    GateCallAST,
    MeasureAST,
    ResetAST,
    BarrierAST,
    IfAST,
]

OperationAST = Union[GateCallAST, MeasureAST, ResetAST, BarrierAST, IfAST]

_OPERATIONS = (GateCallAST, MeasureAST, ResetAST, BarrierAST, IfAST)


@dataclass(frozen=True)
class ProgramAST:
    """AST node representing a full OpenQASM 2 program.

    The statements are kept in source order. The remaining attributes are
    read-only views derived from them.

    Parameters
    ----------
    statements : Tuple[StatementAST, ...]
        Top-level statements in source order.
    """

    statements: Tuple[StatementAST, ...] = ()

    @property
    def version(self) -> Optional[VersionAST]:
        for stmt in self.statements:
            if isinstance(stmt, VersionAST):
                return stmt
        return None

    @property
    def includes(self) -> List[str]:
        return [stmt.path for stmt in self.statements if isinstance(stmt, IncludeAST)]

    @property
    def qregs(self) -> List[Tuple[str, int]]:
        return [
            (stmt.name, stmt.size)
            for stmt in self.statements
            if isinstance(stmt, RegisterDeclAST) and stmt.kind == "qreg"
        ]

    @property
    def cregs(self) -> List[Tuple[str, int]]:
        return [
            (stmt.name, stmt.size)
            for stmt in self.statements
            if isinstance(stmt, RegisterDeclAST) and stmt.kind == "creg"
        ]

    @property
    def gate_defs(self) -> Dict[str, Union[GateDefAST, OpaqueDefAST]]:
        return {stmt.name: stmt for stmt in self.statements if isinstance(stmt, (GateDefAST, OpaqueDefAST))}

    @property
    def body(self) -> List[OperationAST]:
        return [stmt for stmt in self.statements if isinstance(stmt, _OPERATIONS)]
