"""Semantic validator for OpenQASM 2 program ASTs.

A single fail-fast pass in source order. Declarations are entered into the
supplied :class:`~qasm2parse.symbols.SymbolTable` as they are encountered, so
a gate or register used before its declaration is reported as unknown and a
gate body can never refer to the gate being defined.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Set, Tuple, Union

from qasm2parse.ast_nodes import (
    BarrierAST,
    CRef,
    ExprAST,
    GateCallAST,
    GateDefAST,
    IfAST,
    IncludeAST,
    MeasureAST,
    OpaqueDefAST,
    ProgramAST,
    QRef,
    RegisterDeclAST,
    ResetAST,
    VersionAST,
)
from qasm2parse.errors import QasmSemanticError
from qasm2parse.expr_eval import free_parameters
from qasm2parse.symbols import GateSymbol, RegisterSymbol, SymbolTable

__all__ = ["SUPPORTED_VERSION", "validate_program"]

SUPPORTED_VERSION: Tuple[int, int] = (2, 0)


def validate_program(program: ProgramAST, symbols: SymbolTable) -> ProgramAST:
    """Validate a program and record its declarations.

    Parameters
    ----------
    program
        Parsed OpenQASM program.
    symbols
        Writable scope receiving the program's gate and register declarations.
        Lookups fall back to its parent scopes (for example, the standard
        library).

    Returns
    -------
    ProgramAST
        ``program``, unchanged.

    Raises
    ------
    QasmSemanticError
        On the first semantic violation found.
    """
    for position, stmt in enumerate(program.statements):
        if isinstance(stmt, VersionAST):
            _validate_version(stmt, position)
        elif isinstance(stmt, IncludeAST):
            continue
        elif isinstance(stmt, RegisterDeclAST):
            _declare_register(stmt, symbols)
        elif isinstance(stmt, GateDefAST):
            _validate_gate_definition(stmt, symbols)
            symbols.declare_gate(GateSymbol.from_definition(stmt))
        elif isinstance(stmt, OpaqueDefAST):
            _validate_formals(stmt)
            symbols.declare_gate(GateSymbol.from_definition(stmt))
        elif isinstance(stmt, GateCallAST):
            _validate_gate_call(stmt, symbols)
        elif isinstance(stmt, MeasureAST):
            _validate_measurement(stmt, symbols)
        elif isinstance(stmt, ResetAST):
            _resolve_qubits([stmt.q], symbols)
        elif isinstance(stmt, BarrierAST):
            _resolve_qubits(stmt.qargs, symbols)
        elif isinstance(stmt, IfAST):
            _validate_conditional(stmt, symbols)
        else:
            raise TypeError(f"Unsupported statement node: {type(stmt)!r}")
    return program


def _validate_version(stmt: VersionAST, position: int) -> None:
    if position != 0:
        raise QasmSemanticError(
            "E306",
            "OPENQASM version declaration must be the first statement and may appear only once.",
            stmt.line,
            stmt.col,
        )
    if (stmt.major, stmt.minor) != SUPPORTED_VERSION:
        raise QasmSemanticError(
            "E308",
            f"OPENQASM version '{stmt.text}' is not supported; use {SUPPORTED_VERSION[0]}.{SUPPORTED_VERSION[1]}.",
            stmt.line,
            stmt.col,
        )


def _declare_register(stmt: RegisterDeclAST, symbols: SymbolTable) -> None:
    if stmt.size <= 0:
        raise QasmSemanticError(
            "E309",
            f"Register '{stmt.name}' must have size greater than zero.",
            stmt.line,
            stmt.col,
        )
    symbols.declare_register(RegisterSymbol(stmt.name, stmt.kind, stmt.size, stmt.line, stmt.col))


# ---------------------------------------------------------------------------
# Gate declarations


def _validate_formals(decl: Union[GateDefAST, OpaqueDefAST]) -> None:
    seen: Set[str] = set()
    for name in (*decl.params, *decl.qargs):
        if name in seen:
            raise QasmSemanticError(
                "E305",
                f"Duplicate formal argument '{name}' in declaration of gate '{decl.name}'.",
                decl.line,
                decl.col,
            )
        seen.add(name)


def _validate_gate_definition(decl: GateDefAST, symbols: SymbolTable) -> None:
    _validate_formals(decl)
    params = frozenset(decl.params)
    qargs = frozenset(decl.qargs)
    for call in decl.body:
        symbol = _resolve_gate(call, symbols)
        _assert_gate_signature(call, symbol)
        _assert_parameters_bound(call.params, params, decl.name)
        for qref in call.qargs:
            if qref.reg not in qargs:
                raise QasmSemanticError(
                    "E301",
                    f"Unknown gate argument '{qref.reg}' in gate '{decl.name}'.",
                    qref.line,
                    qref.col,
                )
        _assert_distinct_qubits(call)


def _assert_parameters_bound(expressions: Iterable[ExprAST], params: frozenset[str], gate_name: Optional[str]) -> None:
    for expr in expressions:
        for ref in free_parameters(expr):
            if ref.name in params:
                continue
            if gate_name is None:
                message = f"Identifier '{ref.name}' is not defined; parameters are only allowed inside gate definitions."
            else:
                message = f"Unknown parameter '{ref.name}' in gate '{gate_name}'."
            raise QasmSemanticError("E307", message, ref.line, ref.col)


# ---------------------------------------------------------------------------
# Operations


def _resolve_gate(call: GateCallAST, symbols: SymbolTable) -> GateSymbol:
    symbol = symbols.lookup_gate(call.name)
    if symbol is None:
        raise QasmSemanticError(
            "E302",
            f"Gate '{call.name}' is not defined.",
            call.line,
            call.col,
        )
    return symbol


def _assert_gate_signature(call: GateCallAST, symbol: GateSymbol) -> None:
    if len(call.params) != symbol.num_params:
        raise QasmSemanticError(
            "E303",
            f"Gate '{call.name}' expects {symbol.num_params} parameter(s) but received {len(call.params)}.",
            call.line,
            call.col,
        )
    if len(call.qargs) != symbol.num_qubits:
        raise QasmSemanticError(
            "E303",
            f"Gate '{call.name}' expects {symbol.num_qubits} qubit operand(s) but received {len(call.qargs)}.",
            call.line,
            call.col,
        )


def _validate_gate_call(call: GateCallAST, symbols: SymbolTable) -> None:
    symbol = _resolve_gate(call, symbols)
    _assert_gate_signature(call, symbol)
    _assert_parameters_bound(call.params, frozenset(), None)
    registers = _resolve_qubits(call.qargs, symbols)
    sizes = {register.size for qref, register in zip(call.qargs, registers) if qref.idx is None}
    if len(sizes) > 1:
        raise QasmSemanticError(
            "E303",
            f"Register operands of gate '{call.name}' have mismatched sizes {sorted(sizes)}.",
            call.line,
            call.col,
        )
    _assert_distinct_qubits(call)


def _assert_distinct_qubits(call: GateCallAST) -> None:
    # A whole-register operand overlaps every indexed operand of the same register.
    for position, qref in enumerate(call.qargs):
        for earlier in call.qargs[:position]:
            if earlier.reg != qref.reg:
                continue
            if earlier.idx is None or qref.idx is None or earlier.idx == qref.idx:
                raise QasmSemanticError(
                    "E310",
                    f"Qubit operand '{_describe_qref(qref)}' of gate '{call.name}' overlaps an earlier operand.",
                    qref.line,
                    qref.col,
                )


def _describe_qref(qref: QRef) -> str:
    return qref.reg if qref.idx is None else f"{qref.reg}[{qref.idx}]"


def _resolve_register(ref: Union[QRef, CRef], kind: str, symbols: SymbolTable) -> RegisterSymbol:
    register = symbols.lookup_register(ref.reg)
    label = "Quantum" if kind == "qreg" else "Classical"
    if register is None or register.kind != kind:
        raise QasmSemanticError(
            "E301",
            f"{label} register '{ref.reg}' is not defined.",
            ref.line,
            ref.col,
        )
    if ref.idx is not None and (ref.idx < 0 or ref.idx >= register.size):
        raise QasmSemanticError(
            "E304",
            f"Index {ref.idx} is out of range for register '{ref.reg}' of size {register.size}.",
            ref.line,
            ref.col,
        )
    return register


def _resolve_qubits(qargs: Sequence[QRef], symbols: SymbolTable) -> list[RegisterSymbol]:
    return [_resolve_register(qref, "qreg", symbols) for qref in qargs]


def _validate_measurement(measure: MeasureAST, symbols: SymbolTable) -> None:
    qreg = _resolve_register(measure.q, "qreg", symbols)
    creg = _resolve_register(measure.c, "creg", symbols)
    if (measure.q.idx is None) != (measure.c.idx is None):
        raise QasmSemanticError(
            "E303",
            "Measurement must map a register to a register or a qubit to a bit.",
            measure.line,
            measure.col,
        )
    if measure.q.idx is None and qreg.size != creg.size:
        raise QasmSemanticError(
            "E303",
            f"Register sizes do not match for measurement '{qreg.name}' -> '{creg.name}'.",
            measure.line,
            measure.col,
        )


def _validate_conditional(stmt: IfAST, symbols: SymbolTable) -> None:
    register = symbols.lookup_register(stmt.creg)
    if register is None or register.kind != "creg":
        raise QasmSemanticError(
            "E301",
            f"Classical register '{stmt.creg}' is not defined.",
            stmt.line,
            stmt.col,
        )
    if stmt.value >= 2**register.size:
        raise QasmSemanticError(
            "E311",
            f"Condition value {stmt.value} does not fit in classical register '{stmt.creg}' of size {register.size}.",
            stmt.line,
            stmt.col,
        )
    _validate_gate_call(stmt.body, symbols)
