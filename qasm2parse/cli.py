from __future__ import annotations

import argparse
import dataclasses
import importlib.metadata
import json
import logging
import sys
from typing import Any, Sequence

import yaml

from qasm2parse.ast_nodes import GateCallAST, GateDefAST, OpaqueDefAST, ProgramAST
from qasm2parse.config import ParserOptions, load_options
from qasm2parse.errors import QasmError
from qasm2parse.parser import Parser

_LOG = logging.getLogger("qasm-parse")


def _build_argument_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    examples = (
        "Examples:\n"
        "  qasm-parse --in circuit.qasm\n"
        "  qasm-parse --in circuit.qasm --json > circuit.ast.json\n"
        "  qasm-parse --in circuit.qasm --no-core --config parser.yaml"
    )
    parser = argparse.ArgumentParser(
        prog="qasm-parse",
        description="Parse and validate an OpenQASM 2 circuit.",
        epilog=examples,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-i",
        "--in",
        dest="input_path",
        required=True,
        help="Path to the OpenQASM 2 source file that should be parsed.",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config_path",
        help="YAML file with parser options (core, library_path).",
    )
    parser.add_argument(
        "-l",
        "--library",
        dest="library_path",
        help="Gate library file to preload instead of the bundled qelib1.inc.",
    )
    parser.add_argument(
        "--no-core",
        dest="core",
        action="store_false",
        default=None,
        help="Do not preload the standard gate library.",
    )
    parser.add_argument(
        "--json",
        dest="emit_json",
        action="store_true",
        help="Print the validated AST as JSON on stdout.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Emit verbose logging (debug level).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_distribution_version()}",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    """Configure the logging subsystem for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _distribution_version() -> str:
    """Best-effort lookup of the installed package version."""
    try:
        return importlib.metadata.version("qasm2parse")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _report_qasm_error(err: QasmError) -> None:
    """Print a formatted QASM diagnostic to stderr."""
    print(f"Error {err.code} at line {err.line}, col {err.col}: {err.message}", file=sys.stderr)


def _resolve_options(args: argparse.Namespace) -> ParserOptions:
    options = load_options(args.config_path) if args.config_path else ParserOptions()
    if args.core is not None:
        options = dataclasses.replace(options, core=args.core)
    if args.library_path:
        options = dataclasses.replace(options, library_path=args.library_path)
    return options


def node_to_dict(node: Any) -> Any:
    """Convert AST nodes into JSON-compatible data tagged with their class name."""
    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        data: dict[str, Any] = {"node": type(node).__name__}
        for item in dataclasses.fields(node):
            data[item.name] = node_to_dict(getattr(node, item.name))
        return data
    if isinstance(node, (list, tuple)):
        return [node_to_dict(child) for child in node]
    return node


def _summarize(program: ProgramAST) -> str:
    qubits = sum(size for _, size in program.qregs)
    clbits = sum(size for _, size in program.cregs)
    gate_calls = sum(1 for stmt in program.body if isinstance(stmt, GateCallAST))
    declared = sum(1 for stmt in program.statements if isinstance(stmt, (GateDefAST, OpaqueDefAST)))
    return (
        f"Parsed {len(program.statements)} statements: {qubits} qubits, {clbits} clbits, "
        f"{gate_calls} gate calls, {declared} gate declarations"
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    _LOG.debug("Input file: %s", args.input_path)

    try:
        options = _resolve_options(args)
    except FileNotFoundError as exc:
        print(f"Configuration file not found '{args.config_path}': {exc}", file=sys.stderr)
        return 1
    except (ValueError, yaml.YAMLError) as exc:
        print(f"Invalid configuration file '{args.config_path}': {exc}", file=sys.stderr)
        return 1
    _LOG.debug("Parser options: %s", options)

    try:
        qasm_parser = Parser.from_options(options)
    except QasmError as err:
        _report_qasm_error(err)
        return 1

    try:
        program = qasm_parser.parse_file(args.input_path)
    except (FileNotFoundError, PermissionError) as exc:
        print(f"Failed to read input file '{args.input_path}': {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error reading input file '{args.input_path}': {exc}", file=sys.stderr)
        return 1
    except QasmError as err:
        _report_qasm_error(err)
        return 1

    for path in qasm_parser.unresolved_includes(program):
        _LOG.warning("include '%s' was recorded but not resolved", path)

    if args.emit_json:
        try:
            payload = json.dumps(node_to_dict(program), indent=2)
        except RecursionError:
            print("AST is nested too deeply for JSON output.", file=sys.stderr)
            return 1
        print(payload)
    else:
        print(_summarize(program))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
