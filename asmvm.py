#!/usr/bin/env python3
"""
asmvm — run an asm VM program

Usage:
    python asmvm.py <program.asm> [--trace] [--verbose] [--memory-size N]
                                  [--log-file run.log]

Examples:
    python asmvm.py examples/loop.asm
    python asmvm.py examples/loop.asm --trace          # per-instruction log on stderr
    python asmvm.py big.asm --memory-size 4096
"""

import argparse
import logging
import os
import sys

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from asm_vm import __version__
from asm_vm.config import DEFAULT_CONFIG
from asm_vm.engine import Machine, RunState
from asm_vm.faults import MachineFault
from asm_vm.host import ConsoleHost
from asm_vm.log_setup import setup_logging
from asm_vm.parser import parse_program


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...) or decimal."""
    value = value.strip().replace('_', '')
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asmvm",
        description="Run a program on the asm register VM",
    )
    parser.add_argument("input", help="Assembly source file")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction with register state")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log load/run progress to stderr")
    parser.add_argument("--memory-size", type=parse_int_arg, default=None,
                        help=f"Memory cells (default: {DEFAULT_CONFIG.memory_size})")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"asmvm {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.trace:
        console_level = logging.DEBUG
    elif args.verbose:
        console_level = logging.INFO
    else:
        console_level = logging.WARNING
    logger = setup_logging(console_level=console_level, log_file=args.log_file)

    if not os.path.isfile(args.input):
        print("File not found", file=sys.stderr)
        return 1

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    try:
        config = DEFAULT_CONFIG.with_overrides(memory_size=args.memory_size,
                                               trace=args.trace or None)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        program = parse_program(source, config)
    except MachineFault as e:
        print(f"Link error: {e.report()}", file=sys.stderr)
        return 1

    logger.info("Loaded %s: %d instructions, %d labels",
                args.input, len(program), len(program.labels))

    machine = Machine(program, host=ConsoleHost(), config=config)
    state = machine.run()
    return 1 if state is RunState.FAULTED else 0


if __name__ == "__main__":
    sys.exit(main())
