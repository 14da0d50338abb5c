"""Symbol tables for gate signatures and register declarations.

A :class:`SymbolTable` can be chained to a parent. The standard library is
loaded into a root table that is then frozen; every circuit parse works on a
fresh child obtained with :meth:`SymbolTable.extend`, so declarations made
while validating one circuit never leak into the shared library scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

from qasm2parse.ast_nodes import GateDefAST, OpaqueDefAST
from qasm2parse.errors import QasmSemanticError

__all__ = ["GateSymbol", "RegisterSymbol", "SymbolTable"]


@dataclass(frozen=True)
class GateSymbol:
    """Declared signature of a gate.

    Parameters
    ----------
    name : str
        Gate name.
    num_params : int
        Number of classical parameters the gate takes.
    num_qubits : int
        Number of qubit arguments the gate takes.
    definition : GateDefAST | OpaqueDefAST | None
        Declaration the signature was taken from.
    """

    name: str
    num_params: int
    num_qubits: int
    definition: Union[GateDefAST, OpaqueDefAST, None] = None
    line: int = 1
    col: int = 1

    @classmethod
    def from_definition(cls, definition: Union[GateDefAST, OpaqueDefAST]) -> "GateSymbol":
        return cls(
            name=definition.name,
            num_params=len(definition.params),
            num_qubits=len(definition.qargs),
            definition=definition,
            line=definition.line,
            col=definition.col,
        )

    @property
    def opaque(self) -> bool:
        return isinstance(self.definition, OpaqueDefAST)


@dataclass(frozen=True)
class RegisterSymbol:
    """Declared register: ``kind`` is ``"qreg"`` or ``"creg"``."""

    name: str
    kind: str
    size: int
    line: int = 1
    col: int = 1


class SymbolTable:
    """Scoped mapping of gate and register names to their declarations."""

    def __init__(self, parent: Optional["SymbolTable"] = None) -> None:
        self._parent = parent
        self._gates: Dict[str, GateSymbol] = {}
        self._registers: Dict[str, RegisterSymbol] = {}
        self._frozen = False

    @property
    def parent(self) -> Optional["SymbolTable"]:
        return self._parent

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "SymbolTable":
        """Make this scope read-only and return it."""
        self._frozen = True
        return self

    def extend(self) -> "SymbolTable":
        """Return a fresh, writable child scope of this table."""
        return SymbolTable(parent=self)

    # -----------------------------------------------------------------
    # Lookup

    def lookup_gate(self, name: str) -> Optional[GateSymbol]:
        table: Optional[SymbolTable] = self
        while table is not None:
            symbol = table._gates.get(name)
            if symbol is not None:
                return symbol
            table = table._parent
        return None

    def lookup_register(self, name: str) -> Optional[RegisterSymbol]:
        table: Optional[SymbolTable] = self
        while table is not None:
            symbol = table._registers.get(name)
            if symbol is not None:
                return symbol
            table = table._parent
        return None

    @property
    def gates(self) -> Mapping[str, GateSymbol]:
        """Read-only view of every visible gate, outermost scope first."""
        return MappingProxyType(dict(self._iter_items("_gates")))

    @property
    def registers(self) -> Mapping[str, RegisterSymbol]:
        """Read-only view of every visible register."""
        return MappingProxyType(dict(self._iter_items("_registers")))

    def _iter_items(self, attribute: str) -> Iterator[tuple]:
        if self._parent is not None:
            yield from self._parent._iter_items(attribute)
        yield from getattr(self, attribute).items()

    # -----------------------------------------------------------------
    # Declaration

    def declare_gate(self, symbol: GateSymbol) -> None:
        """Add a gate to this scope.

        Raises
        ------
        QasmSemanticError
            ``E305`` if a gate of the same name is already visible, including
            gates preloaded from the standard library.
        RuntimeError
            If this scope has been frozen.
        """
        self._ensure_writable()
        existing = self.lookup_gate(symbol.name)
        if existing is not None:
            raise QasmSemanticError(
                "E305",
                f"Duplicate gate declaration '{symbol.name}' (first declared at line {existing.line}).",
                symbol.line,
                symbol.col,
            )
        self._gates[symbol.name] = symbol

    def declare_register(self, symbol: RegisterSymbol) -> None:
        """Add a register to this scope.

        Raises
        ------
        QasmSemanticError
            ``E305`` if a register of the same name is already visible.
        RuntimeError
            If this scope has been frozen.
        """
        self._ensure_writable()
        existing = self.lookup_register(symbol.name)
        if existing is not None:
            raise QasmSemanticError(
                "E305",
                f"Duplicate register declaration '{symbol.name}' (first declared at line {existing.line}).",
                symbol.line,
                symbol.col,
            )
        self._registers[symbol.name] = symbol

    def _ensure_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("Cannot declare symbols in a frozen symbol table; use extend() first.")

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.lookup_gate(name) is not None or self.lookup_register(name) is not None

    def __repr__(self) -> str:
        return (
            f"SymbolTable(gates={len(self._gates)}, registers={len(self._registers)}, "
            f"frozen={self._frozen}, parent={self._parent is not None})"
        )
