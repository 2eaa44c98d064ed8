"""
Single-pass parser/linker for asm VM source.

Source format, one statement per line:

    ; comment                  everything after ';' is dropped
    loop:                      label (first token ends with ':')
        add r0, r1             mnemonic + comma-separated operands
        mov [r2],0x10          spacing around commas is irrelevant

Operands are the whitespace tokens after the mnemonic, concatenated and
re-split on ','. An operand therefore cannot contain whitespace.

How linking works:
  Labels never occupy a program slot. When a label is seen it is bound to
  len(instructions) + 1, the 1-based index of the next real instruction.
  The engine increments the program counter before every fetch, so a jump
  stores (label index - 1) and the following step lands on the target.

Link-time checks: duplicate labels, empty label names and an alias defined
to itself (``als x, x``) are rejected here, before anything executes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional
import logging

from .config import DEFAULT_CONFIG, MachineConfig
from .faults import AliasCycle, DuplicateLabel, InvalidLabel
from .operands import Operand, Symbol, parse_operand
from .regs import register_names

__all__ = ['Instruction', 'Program', 'SourceLine', 'parse_line', 'parse_program']

logger = logging.getLogger(__name__)

COMMENT_CHAR = ';'


@dataclass
class SourceLine:
    """One non-blank source line, split but not yet linked."""
    line_num: int
    raw: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Instruction:
    mnemonic: str
    operands: tuple
    line_num: int
    source: str

    def __str__(self) -> str:
        return self.source


@dataclass
class Program:
    instructions: List[Instruction] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.instructions)

    def fetch(self, index: int) -> Instruction:
        """Instruction at a 1-based program index."""
        return self.instructions[index - 1]

    def label_index(self, name: str) -> Optional[int]:
        return self.labels.get(name)


def _strip_comment(line: str) -> str:
    pos = line.find(COMMENT_CHAR)
    if pos >= 0:
        line = line[:pos]
    return line.strip()


def parse_line(line: str, line_num: int) -> Optional[SourceLine]:
    """Split one line into label or mnemonic + raw operand tokens.

    Returns None for blank and comment-only lines.
    """
    text = _strip_comment(line)
    if not text:
        return None

    parts = text.split()
    head = parts[0]
    result = SourceLine(line_num=line_num, raw=text)

    if head.endswith(':'):
        result.label = head[:-1]
        return result

    result.mnemonic = head
    combined = ''.join(parts[1:])
    result.args = [arg for arg in combined.split(',') if arg]
    return result


def parse_program(source: str, config: MachineConfig = DEFAULT_CONFIG) -> Program:
    """Parse and link source text into a Program."""
    names: FrozenSet[str] = register_names(config.register_count)
    program = Program()
    label_lines: Dict[str, int] = {}

    for i, raw_line in enumerate(source.splitlines(), 1):
        line = parse_line(raw_line, i)
        if line is None:
            continue

        if line.label is not None:
            if not line.label:
                raise InvalidLabel("Empty label name", i, line.raw)
            if line.label in program.labels:
                raise DuplicateLabel(
                    f"Duplicate label '{line.label}' "
                    f"(first defined on line {label_lines[line.label]})",
                    i, line.raw)
            program.labels[line.label] = len(program.instructions) + 1
            label_lines[line.label] = i
            continue

        operands = tuple(parse_operand(arg, names) for arg in line.args)
        mnemonic = line.mnemonic.lower()
        if mnemonic == 'als' and len(operands) >= 2:
            _check_alias(operands[0], operands[1], i, line.raw)

        program.instructions.append(
            Instruction(mnemonic=mnemonic, operands=operands,
                        line_num=i, source=line.raw))

    logger.debug("Linked %d instructions, %d labels",
                 len(program.instructions), len(program.labels))
    return program


def _check_alias(name: Operand, target: Operand, line_num: int, raw: str):
    if isinstance(name, Symbol) and isinstance(target, Symbol) and name.text == target.text:
        raise AliasCycle(f"Alias '{name.text}' refers to itself", line_num, raw)
