"""
asm VM — Register Bank + Flag Management

Register model:
  r0..r15   — general purpose, hold any number (int or float)

Flag pseudo-registers (read as 1/0, write coerces non-zero to True):
  eq        — last cmp: a == b
  lt        — last cmp: a < b
  gt        — last cmp: a > b
  carry     — addressable, never written by an instruction
  overflow  — addressable, never written by an instruction
  negative  — addressable, never written by an instruction
  zero      — always reads 0, writes are discarded

Both namespaces are looked up through one case-insensitive name.
"""

from __future__ import annotations
from typing import Dict

from .config import REGISTER_COUNT
from .faults import InvalidRegister

__all__ = ['Registers', 'FLAG_NAMES', 'ZERO_REGISTER', 'register_names']

FLAG_NAMES = ('eq', 'lt', 'gt', 'carry', 'overflow', 'negative')
ZERO_REGISTER = 'zero'


class Registers:
    """General registers plus the flag bank."""

    __slots__ = ('_general', 'flags')

    def __init__(self, count: int = REGISTER_COUNT):
        self._general: Dict[str, object] = {f'r{i}': 0 for i in range(count)}
        self.flags: Dict[str, bool] = {name: False for name in FLAG_NAMES}

    # --- Access ---

    def get(self, name: str):
        key = name.lower()
        if key == ZERO_REGISTER:
            return 0
        if key in self.flags:
            return 1 if self.flags[key] else 0
        if key in self._general:
            return self._general[key]
        raise InvalidRegister(f"Invalid register: '{name}'")

    def set(self, name: str, value):
        key = name.lower()
        if key == ZERO_REGISTER:
            return
        if key in self.flags:
            self.flags[key] = value != 0
            return
        if key in self._general:
            self._general[key] = value
            return
        raise InvalidRegister(f"Invalid register: '{name}'")

    # --- Flags ---

    def set_compare(self, a, b):
        """Update eq/lt/gt from comparing a with b. Other flags untouched."""
        self.flags['eq'] = a == b
        self.flags['lt'] = a < b
        self.flags['gt'] = a > b

    @property
    def eq(self) -> bool:
        return self.flags['eq']

    @property
    def lt(self) -> bool:
        return self.flags['lt']

    @property
    def gt(self) -> bool:
        return self.flags['gt']

    # --- Display ---

    def display(self) -> str:
        """One-line register/flag summary for trace output."""
        regs = ' '.join(f"{name}={value}" for name, value in self._general.items())
        flag_chars = ''.join(
            name[0].upper() if self.flags[name] else '.'
            for name in ('eq', 'lt', 'gt', 'carry', 'overflow', 'negative')
        )
        return f"{regs} [{flag_chars}]"


def register_names(count: int = REGISTER_COUNT) -> frozenset:
    """Every name the bank answers to, lower-cased."""
    return frozenset([f'r{i}' for i in range(count)] + list(FLAG_NAMES) + [ZERO_REGISTER])
