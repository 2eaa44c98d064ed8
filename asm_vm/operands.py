"""
Operand model and resolution.

Operands are classified once, when the line is parsed:

  [inner]     Indirect  — inner is itself any operand; its value is an address
  r0, EQ      Register  — general register or flag pseudo-register
  0x1f, 2.5   Literal   — numeric literal
  anything    Symbol    — alias name (read/write) or label name (jumps)

Aliases are defined at run time, so a Symbol is only looked up in the alias
table when it is used. Classification order matches use order: bracket
form, register, alias, literal.

Read path:  resolve(op) -> number
Write path: assign(op, value)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union
import re

from .faults import AliasCycle, InvalidLiteral, InvalidTarget
from .literals import Number, try_parse_number
from .regs import register_names

__all__ = ['Operand', 'Literal', 'Register', 'Indirect', 'Symbol',
           'parse_operand', 'OperandResolver']

_BRACKET_RE = re.compile(r'^\[(.*)\]$')


@dataclass(frozen=True)
class Literal:
    text: str
    value: Number


@dataclass(frozen=True)
class Register:
    text: str

    @property
    def name(self) -> str:
        return self.text.lower()


@dataclass(frozen=True)
class Indirect:
    text: str
    inner: "Operand"


@dataclass(frozen=True)
class Symbol:
    text: str

    @property
    def name(self) -> str:
        return self.text


Operand = Union[Literal, Register, Indirect, Symbol]

_DEFAULT_NAMES = register_names()


def parse_operand(token: str, registers: Optional[FrozenSet[str]] = None) -> Operand:
    """Classify one raw operand token."""
    names = _DEFAULT_NAMES if registers is None else registers

    match = _BRACKET_RE.match(token)
    if match:
        return Indirect(token, parse_operand(match.group(1), names))

    if token.lower() in names:
        return Register(token)

    value = try_parse_number(token)
    if value is not None:
        return Literal(token, value)

    return Symbol(token)


class OperandResolver:
    """Reads and writes operands against the machine state.

    Alias chains are followed at most ``depth_limit`` hops; the next hop
    raises AliasCycle instead of recursing forever.
    """

    def __init__(self, regs, memory, aliases, depth_limit: int = 64):
        self.regs = regs
        self.memory = memory
        self.aliases = aliases
        self.depth_limit = depth_limit

    def _alias_target(self, op: Symbol, depth: int) -> Optional[Operand]:
        target = self.aliases.lookup(op.name)
        if target is not None and depth >= self.depth_limit:
            raise AliasCycle(
                f"Alias '{op.name}' exceeds {self.depth_limit} levels of indirection")
        return target

    # --- Read path ---

    def resolve(self, op: Operand, depth: int = 0) -> Number:
        if isinstance(op, Indirect):
            return self.memory.read(self.resolve(op.inner, depth))
        if isinstance(op, Register):
            return self.regs.get(op.name)
        if isinstance(op, Symbol):
            target = self._alias_target(op, depth)
            if target is None:
                raise InvalidLiteral(f"Invalid value: '{op.text}'")
            return self.resolve(target, depth + 1)
        return op.value

    # --- Write path ---

    def assign(self, op: Operand, value, depth: int = 0):
        """Store value into the location named by op.

        ``value`` may be a number or an operand; operands are resolved first.
        """
        if not isinstance(value, (int, float)):
            value = self.resolve(value)

        if isinstance(op, Indirect):
            self.memory.write(self.resolve(op.inner, depth), value)
            return
        if isinstance(op, Register):
            self.regs.set(op.name, value)
            return
        if isinstance(op, Symbol):
            target = self._alias_target(op, depth)
            if target is not None:
                self.assign(target, value, depth + 1)
                return
        raise InvalidTarget(f"Invalid address: '{op.text}'")
