"""Test suite for the OpenQASM 2.0 semantic validator.

This module covers qasm2parse.validate:
- Version header placement and supported version
- Register declarations (size, duplicates, namespaces)
- Gate and opaque declarations (duplicates, formal arguments, bodies)
- Gate calls (resolution, arity, parameters, operand registers)
- Measurement, reset, barrier and conditional statements
- Declaration order and symbol table effects
"""

from __future__ import annotations

import pytest

from qasm2parse.ast_nodes import GateCallAST, ProgramAST, QRef
from qasm2parse.errors import QasmError, QasmSemanticError
from qasm2parse.grammar import parse_program
from qasm2parse.lexer import tokenize
from qasm2parse.library import default_library_text, load_library
from qasm2parse.symbols import SymbolTable
from qasm2parse.validate import SUPPORTED_VERSION, validate_program


@pytest.fixture(scope="module")
def library() -> SymbolTable:
    """Frozen standard library table shared by the tests in this module."""
    return load_library(default_library_text())


def check(source: str, symbols: SymbolTable) -> ProgramAST:
    """Parse *source* and validate it against a child scope of *symbols*."""
    return validate_program(parse_program(tokenize(source)), symbols.extend())


def error_of(source: str, symbols: SymbolTable) -> QasmSemanticError:
    """Return the semantic error raised for *source*."""
    with pytest.raises(QasmSemanticError) as exc_info:
        check(source, symbols)
    return exc_info.value


# =============================================================================
# Version Tests
# =============================================================================


class TestVersion:
    """Tests for the OPENQASM header."""

    def test_supported_version(self) -> None:
        """Only 2.0 is supported."""
        assert SUPPORTED_VERSION == (2, 0)

    def test_header_first_is_accepted(self, library: SymbolTable) -> None:
        """The header as first statement validates."""
        program = check("OPENQASM 2.0;\nqreg q[1];", library)
        assert program.version is not None

    def test_program_without_header_is_accepted(self, library: SymbolTable) -> None:
        """The header is optional."""
        check("qreg q[1];\nh q[0];", library)

    def test_header_after_statement(self, library: SymbolTable) -> None:
        """A header after another statement is misplaced."""
        err = error_of("qreg q[1]; OPENQASM 2.0;", library)
        assert err.code == "E306"
        assert err.kind == "MisplacedVersion"
        assert (err.line, err.col) == (1, 12)

    def test_repeated_header(self, library: SymbolTable) -> None:
        """A second header is misplaced."""
        err = error_of("OPENQASM 2.0;\nOPENQASM 2.0;", library)
        assert err.code == "E306"
        assert err.line == 2

    @pytest.mark.parametrize("version", ["1.0", "2.1", "3.0", "3"])
    def test_unsupported_version(self, version: str, library: SymbolTable) -> None:
        """Versions other than 2.0 are rejected."""
        err = error_of(f"OPENQASM {version};", library)
        assert err.code == "E308"
        assert err.kind == "UnsupportedVersion"
        assert "not supported" in err.message

    def test_includes_are_not_checked(self, library: SymbolTable) -> None:
        """Include paths are recorded only."""
        check('include "qelib1.inc";\ninclude "other.inc";', library)


# =============================================================================
# Register Tests
# =============================================================================


class TestRegisters:
    """Tests for qreg and creg declarations."""

    def test_zero_size_register(self, library: SymbolTable) -> None:
        """Registers need at least one element."""
        err = error_of("qreg q[0];", library)
        assert err.code == "E309"
        assert err.kind == "InvalidRegisterSize"

    def test_duplicate_register(self, library: SymbolTable) -> None:
        """A name can only be declared once."""
        err = error_of("qreg q[2];\nqreg q[3];", library)
        assert err.code == "E305"
        assert err.kind == "DuplicateDeclaration"
        assert (err.line, err.col) == (2, 1)

    def test_quantum_and_classical_share_namespace(self, library: SymbolTable) -> None:
        """A creg cannot reuse a qreg name."""
        assert error_of("qreg q[1];\ncreg q[1];", library).code == "E305"

    def test_register_may_share_gate_name(self, library: SymbolTable) -> None:
        """Registers and gates live in separate namespaces."""
        check("qreg h[1];\nh h[0];", library)

    def test_declarations_are_recorded(self, library: SymbolTable) -> None:
        """Validated declarations land in the supplied scope."""
        scope = library.extend()
        validate_program(parse_program(tokenize("qreg q[2];\ncreg c[2];")), scope)
        register = scope.lookup_register("q")
        assert register is not None
        assert (register.kind, register.size) == ("qreg", 2)
        assert library.lookup_register("q") is None


# =============================================================================
# Gate Declaration Tests
# =============================================================================


class TestGateDeclarations:
    """Tests for gate and opaque declarations."""

    def test_valid_definition(self, library: SymbolTable) -> None:
        """A gate built from library gates validates and is callable."""
        check("gate bell a, b { h a; cx a, b; }\nqreg q[2];\nbell q[0], q[1];", library)

    def test_redefining_library_gate(self, library: SymbolTable) -> None:
        """Library gates cannot be redeclared."""
        err = error_of("gate h a { x a; }", library)
        assert err.code == "E305"

    def test_duplicate_user_gate(self, library: SymbolTable) -> None:
        """A user gate cannot be declared twice."""
        err = error_of("gate g a { x a; }\nopaque g a;", library)
        assert err.code == "E305"
        assert err.line == 2

    def test_duplicate_formal_argument(self, library: SymbolTable) -> None:
        """Formal parameter and qubit names must be distinct."""
        assert error_of("gate g(a) a { }", library).code == "E305"
        assert error_of("opaque g a, a;", library).code == "E305"

    def test_unknown_gate_in_body(self, library: SymbolTable) -> None:
        """Body calls must resolve."""
        err = error_of("gate g a { foo a; }", library)
        assert err.code == "E302"
        assert err.col == 12

    def test_recursive_definition(self, library: SymbolTable) -> None:
        """A gate cannot call itself."""
        assert error_of("gate g a { g a; }", library).code == "E302"

    def test_later_gate_is_not_visible(self, library: SymbolTable) -> None:
        """Gates are visible only after their declaration."""
        err = error_of("gate a1 q { b1 q; }\ngate b1 q { x q; }", library)
        assert err.code == "E302"
        assert err.line == 1

    def test_body_arity(self, library: SymbolTable) -> None:
        """Body calls respect the callee signature."""
        assert error_of("gate g a { cx a; }", library).code == "E303"
        assert error_of("gate g a { rx a; }", library).code == "E303"

    def test_unknown_parameter_in_body(self, library: SymbolTable) -> None:
        """Only the gate's own parameters may be referenced."""
        err = error_of("gate g(theta) a { rx(2*phi) a; }", library)
        assert err.code == "E307"
        assert err.kind == "UnknownParameter"
        assert err.col == 24

    def test_repeated_argument_in_body(self, library: SymbolTable) -> None:
        """Body calls cannot pass one formal qubit twice."""
        err = error_of("gate g a, b { cx a, a; }", library)
        assert err.code == "E310"
        assert err.col == 21

    def test_unknown_qubit_argument_in_body(self, library: SymbolTable) -> None:
        """Only the gate's own qubit arguments may be referenced."""
        err = error_of("gate g a { h b; }", library)
        assert err.code == "E301"
        assert err.col == 14

    def test_opaque_is_callable(self) -> None:
        """Opaque gates can be called without a definition body."""
        check("opaque magic(x) a, b;\nqreg q[2];\nmagic(0.5) q[0], q[1];", SymbolTable().freeze())

    def test_definition_is_recorded(self, library: SymbolTable) -> None:
        """The gate signature is stored with its definition."""
        scope = library.extend()
        validate_program(parse_program(tokenize("gate g(t) a, b { }")), scope)
        symbol = scope.lookup_gate("g")
        assert symbol is not None
        assert (symbol.num_params, symbol.num_qubits) == (1, 2)
        assert not symbol.opaque
        assert library.lookup_gate("g") is None


# =============================================================================
# Gate Call Tests
# =============================================================================


class TestGateCalls:
    """Tests for top-level gate calls."""

    def test_unknown_gate(self, library: SymbolTable) -> None:
        """Calls to undeclared gates are rejected at the call."""
        err = error_of("qreg q[1];\nfoo(0.5) q[0];", library)
        assert err.code == "E302"
        assert err.kind == "UnknownGate"
        assert (err.line, err.col) == (2, 1)

    def test_library_gate_unknown_without_core(self) -> None:
        """An empty table knows no gates."""
        err = error_of("qreg q[1];\nh q[0];", SymbolTable().freeze())
        assert err.code == "E302"

    def test_too_few_qubits(self, library: SymbolTable) -> None:
        """``cx`` needs two qubit operands."""
        err = error_of("qreg q[2];\ncx q[0];", library)
        assert err.code == "E303"
        assert err.kind == "ArityMismatch"

    def test_wrong_parameter_count(self, library: SymbolTable) -> None:
        """``u3`` needs three parameters."""
        assert error_of("qreg q[1];\nu3(0.1, 0.2) q[0];", library).code == "E303"
        assert error_of("qreg q[1];\nh(0.1) q[0];", library).code == "E303"

    def test_identifier_in_top_level_parameter(self, library: SymbolTable) -> None:
        """Outside gate bodies expressions cannot name parameters."""
        err = error_of("qreg q[1];\nrx(2*theta) q[0];", library)
        assert err.code == "E307"
        assert (err.line, err.col) == (2, 6)

    def test_unknown_register(self, library: SymbolTable) -> None:
        """Operands must name declared quantum registers."""
        err = error_of("qreg q[1];\nh r[0];", library)
        assert err.code == "E301"
        assert err.kind == "UnknownRegister"
        assert (err.line, err.col) == (2, 3)

    def test_classical_register_as_qubit(self, library: SymbolTable) -> None:
        """A creg is not a quantum operand."""
        assert error_of("creg c[1];\nh c[0];", library).code == "E301"

    def test_register_used_before_declaration(self, library: SymbolTable) -> None:
        """Registers are visible only after their declaration."""
        assert error_of("h q[0];\nqreg q[1];", library).code == "E301"

    def test_index_out_of_range(self, library: SymbolTable) -> None:
        """The last valid index is size - 1."""
        check("qreg q[2];\nh q[1];", library)
        err = error_of("qreg q[2]; h q[2];", library)
        assert err.code == "E304"
        assert err.kind == "IndexOutOfRange"
        assert (err.line, err.col) == (1, 14)

    def test_whole_register_operands(self, library: SymbolTable) -> None:
        """Whole registers broadcast when sizes agree."""
        check("qreg a[2];\nqreg b[2];\ncx a, b;\ncx a, b[0];\nh a;", library)

    def test_whole_register_size_mismatch(self, library: SymbolTable) -> None:
        """Whole-register operands must have equal sizes."""
        err = error_of("qreg a[2];\nqreg b[3];\ncx a, b;", library)
        assert err.code == "E303"
        assert err.line == 3

    def test_repeated_qubit_operand(self, library: SymbolTable) -> None:
        """A gate call cannot use the same qubit twice."""
        err = error_of("qreg q[2];\ncx q[0], q[0];", library)
        assert err.code == "E310"
        assert err.kind == "DuplicateQubit"
        assert (err.line, err.col) == (2, 10)

    @pytest.mark.parametrize("operands", ["q, q[1]", "q[1], q", "q, q"])
    def test_register_operand_overlaps_its_qubits(self, library: SymbolTable, operands: str) -> None:
        """A whole register overlaps every qubit of that register."""
        assert error_of(f"qreg q[2];\ncx {operands};", library).code == "E310"

    def test_distinct_qubits_of_one_register(self, library: SymbolTable) -> None:
        """Different indices of one register are distinct operands."""
        check("qreg q[3];\nccx q[0], q[1], q[2];", library)

    def test_conditioned_call_with_repeated_qubit(self, library: SymbolTable) -> None:
        """The guarded call gets the same operand check."""
        assert error_of("qreg q[1];\ncreg c[1];\nif (c == 1) cx q[0], q[0];", library).code == "E310"


# =============================================================================
# Other Operation Tests
# =============================================================================


class TestMeasureResetBarrier:
    """Tests for measure, reset and barrier."""

    def test_measure_bit(self, library: SymbolTable) -> None:
        """Qubit to bit measurement."""
        check("qreg q[2];\ncreg c[1];\nmeasure q[1] -> c[0];", library)

    def test_measure_register(self, library: SymbolTable) -> None:
        """Register to register measurement with equal sizes."""
        check("qreg q[2];\ncreg c[2];\nmeasure q -> c;", library)

    def test_measure_register_size_mismatch(self, library: SymbolTable) -> None:
        """Register sizes must match."""
        assert error_of("qreg q[2];\ncreg c[3];\nmeasure q -> c;", library).code == "E303"

    def test_measure_mixed_operands(self, library: SymbolTable) -> None:
        """A register cannot be measured into a single bit."""
        assert error_of("qreg q[2];\ncreg c[2];\nmeasure q -> c[0];", library).code == "E303"

    def test_measure_into_quantum_register(self, library: SymbolTable) -> None:
        """The target must be classical."""
        err = error_of("qreg q[1];\nqreg r[1];\nmeasure q[0] -> r[0];", library)
        assert err.code == "E301"
        assert err.col == 17

    def test_measure_bit_out_of_range(self, library: SymbolTable) -> None:
        """Classical indices are range-checked."""
        assert error_of("qreg q[1];\ncreg c[1];\nmeasure q[0] -> c[1];", library).code == "E304"

    def test_reset_unknown_register(self, library: SymbolTable) -> None:
        """Reset operands must resolve."""
        assert error_of("reset r;", library).code == "E301"

    def test_barrier_out_of_range(self, library: SymbolTable) -> None:
        """Barrier operands are range-checked."""
        assert error_of("qreg q[1];\nbarrier q, q[3];", library).code == "E304"

    def test_barrier_mixed_sizes_allowed(self, library: SymbolTable) -> None:
        """Barriers do not broadcast, so sizes may differ."""
        check("qreg a[1];\nqreg b[3];\nbarrier a, b;", library)


class TestConditionals:
    """Tests for ``if`` statements."""

    def test_valid_conditional(self, library: SymbolTable) -> None:
        """Condition on a declared creg."""
        check("qreg q[1];\ncreg c[1];\nif (c == 1) x q[0];", library)

    def test_unknown_condition_register(self, library: SymbolTable) -> None:
        """The condition register must be declared."""
        err = error_of("qreg q[1];\nif (d == 1) x q[0];", library)
        assert err.code == "E301"
        assert (err.line, err.col) == (2, 1)

    def test_quantum_condition_register(self, library: SymbolTable) -> None:
        """The condition register must be classical."""
        assert error_of("qreg q[1];\nif (q == 1) x q[0];", library).code == "E301"

    def test_conditioned_call_is_checked(self, library: SymbolTable) -> None:
        """The guarded gate call is validated like any other."""
        assert error_of("qreg q[1];\ncreg c[1];\nif (c == 0) foo q[0];", library).code == "E302"

    def test_condition_value_fits_register(self, library: SymbolTable) -> None:
        """The largest representable value is 2**size - 1."""
        check("qreg q[1];\ncreg c[2];\nif (c == 3) x q[0];", library)

    def test_condition_value_out_of_range(self, library: SymbolTable) -> None:
        """Values that need more bits than the register holds are rejected."""
        err = error_of("qreg q[1];\ncreg c[1];\nif (c == 5) x q;", library)
        assert err.code == "E311"
        assert err.kind == "ConditionOutOfRange"
        assert (err.line, err.col) == (3, 1)

    def test_condition_value_two_to_the_size(self, library: SymbolTable) -> None:
        """``2**size`` itself is already out of range."""
        assert error_of("qreg q[1];\ncreg c[3];\nif (c == 8) x q[0];", library).code == "E311"


# =============================================================================
# Direct AST Tests
# =============================================================================


class TestDirectAst:
    """Tests that build the AST without the parser."""

    def test_returns_program_unchanged(self, library: SymbolTable) -> None:
        """Validation returns the program it was given."""
        program = parse_program(tokenize("qreg q[1];\nh q[0];"))
        assert validate_program(program, library.extend()) is program

    def test_hand_built_program(self) -> None:
        """Hand-built nodes carry default positions."""
        program = ProgramAST(statements=(GateCallAST(name="h", qargs=(QRef("q", 0),)),))
        with pytest.raises(QasmError) as exc_info:
            validate_program(program, SymbolTable())
        assert exc_info.value.code == "E302"
        assert (exc_info.value.line, exc_info.value.col) == (1, 1)

    def test_unknown_statement_type(self) -> None:
        """Unknown node types are programming errors."""
        with pytest.raises(TypeError):
            validate_program(ProgramAST(statements=("h q;",)), SymbolTable())  # type: ignore[arg-type]

    def test_frozen_scope_rejects_declarations(self, library: SymbolTable) -> None:
        """Declarations require a writable scope."""
        with pytest.raises(RuntimeError):
            validate_program(parse_program(tokenize("qreg q[1];")), library)
