"""zkc entrypoint: compile `.zok` programs, compute witnesses, inspect circuits."""

import argparse
import json
import logging
import os
import sys

from zkc_lang import (
    Circuit,
    CompilerConfig,
    Witness,
    ZkcError,
    compile_file,
    compute_witness,
    load_config,
)
from zkc_lang import smt
from zkc_lang.interpreter import witness_summary

__all__ = ["main", "build_parser", "resolve_config"]

logger = logging.getLogger("zkc")


def _write(path, text: str) -> None:
    if path is None:
        print(text)
        return
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info("Wrote %s", path)


def _read_circuit(path: str) -> Circuit:
    with open(path, "r", encoding="utf-8") as f:
        return Circuit.from_json(f.read())


def resolve_config(args) -> CompilerConfig:
    """zkc.toml (explicit or next to the source), then ZKC_* variables, then flags."""
    path = getattr(args, "config", None)
    if path is None and getattr(args, "source", None):
        candidate = os.path.join(os.path.dirname(os.path.abspath(args.source)), "zkc.toml")
        if os.path.isfile(candidate):
            path = candidate
    config = load_config(path)
    return config.merged(
        {
            "curve": getattr(args, "curve", None),
            "comparison_bits": getattr(args, "comparison_bits", None),
            "max_unroll": getattr(args, "max_unroll", None),
        }
    )


def cmd_compile(args) -> None:
    config = resolve_config(args)
    circuit = compile_file(args.source, config)
    _write(args.output, circuit.to_json(indent=2 if args.pretty else None))
    if args.r1cs:
        _write(args.r1cs, json.dumps(circuit.to_r1cs(), sort_keys=True, indent=2))
    if args.abi:
        _write(args.abi, json.dumps(circuit.signature.to_dict(), sort_keys=True, indent=2))
    if args.output is not None:
        print(f"Compiled {args.source}: {circuit.num_constraints} constraints, {circuit.num_wires} wires")


def _load_arguments(args):
    if args.arguments_file:
        with open(args.arguments_file, "r", encoding="utf-8") as f:
            return json.load(f)
    if args.arguments:
        return json.loads(args.arguments)
    return []


def cmd_compute_witness(args) -> None:
    circuit = _read_circuit(args.input)
    witness = compute_witness(circuit, _load_arguments(args))
    if args.output:
        _write(args.output, witness.to_json())
    summary = witness_summary(circuit, witness)
    print(json.dumps(summary["outputs"], default=str))


def cmd_export_smt(args) -> None:
    circuit = _read_circuit(args.input)
    _write(args.output, smt.to_smtlib2(circuit))


def cmd_inspect(args) -> None:
    circuit = _read_circuit(args.input)
    print(f"curve:          {circuit.curve}")
    print(f"wires:          {circuit.num_wires}")
    print(f"constraints:    {circuit.num_constraints}")
    print(f"public inputs:  {len(circuit.public_inputs)}")
    print(f"outputs:        {len(circuit.outputs)}")
    print(f"private inputs: {len(circuit.private_inputs)}")
    for entry in circuit.signature.inputs:
        visibility = "public" if entry.public else "private"
        print(f"  {visibility} {entry.type} {entry.name}")
    for key in circuit.instantiations:
        print(f"  instantiation {key}")
    if args.witness:
        with open(args.witness, "r", encoding="utf-8") as f:
            witness = Witness.from_json(f.read())
        print(f"witness satisfies circuit: {circuit.is_satisfied(list(witness.values))}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="zkc zero-knowledge circuit compiler")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("compile", help="Compile a .zok program into a circuit")
    p.add_argument("source", help="Path to the entry module")
    p.add_argument("-o", "--output", help="Circuit JSON destination (default: stdout)")
    p.add_argument("--r1cs", help="Also write the R1CS rows as JSON")
    p.add_argument("--abi", help="Also write the ABI signature as JSON")
    p.add_argument("--config", help="Path to a zkc.toml file")
    p.add_argument("--curve", help="Curve whose scalar field the circuit targets")
    p.add_argument("--comparison-bits", type=int, help="Bit width of field comparisons")
    p.add_argument("--max-unroll", type=int, help="Maximum total loop iterations")
    p.add_argument("--pretty", action="store_true", help="Indent the circuit JSON")
    p.set_defaults(func=cmd_compile)

    p = sub.add_parser("compute-witness", help="Execute a compiled circuit on arguments")
    p.add_argument("-i", "--input", required=True, help="Circuit JSON")
    p.add_argument("-a", "--arguments", help="Arguments as a JSON list or object")
    p.add_argument("--arguments-file", help="File holding the JSON arguments")
    p.add_argument("-o", "--output", help="Witness JSON destination")
    p.set_defaults(func=cmd_compute_witness)

    p = sub.add_parser("export-smt", help="Print the circuit as SMT-LIB2")
    p.add_argument("-i", "--input", required=True, help="Circuit JSON")
    p.add_argument("-o", "--output", help="Destination (default: stdout)")
    p.set_defaults(func=cmd_export_smt)

    p = sub.add_parser("inspect", help="Summarise a compiled circuit")
    p.add_argument("-i", "--input", required=True, help="Circuit JSON")
    p.add_argument("--witness", help="Also check a witness against the circuit")
    p.set_defaults(func=cmd_inspect)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        args.func(args)
    except (ZkcError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
