"""
Fault taxonomy for the asm VM.

Every fault is fatal to the running program. The engine attaches the
1-based source line number and the original source text of the faulting
instruction before reporting it, so handlers raise faults with just a
message and let the engine fill in the position.

Link-time errors (``LinkError``) are raised by the parser before any
instruction executes.
"""

from __future__ import annotations

__all__ = [
    'MachineFault', 'InvalidLiteral', 'InvalidRegister', 'InvalidTarget',
    'MemoryOutOfBounds', 'MissingOperand', 'UnknownInstruction',
    'InvalidLabel', 'AliasCycle', 'DivisionByZero', 'IntegerRequired',
    'NumberOutOfRange',
    'LinkError', 'DuplicateLabel',
]


class MachineFault(Exception):
    """Base class for every VM error."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(message)

    def at(self, line_num: int, line_text: str) -> "MachineFault":
        """Attach a source position (first one wins)."""
        if not self.line_num:
            self.line_num = line_num
            self.line_text = line_text
        return self

    def report(self) -> str:
        """Format as ``Line N: <source>`` followed by the message."""
        if self.line_num:
            return f"Line {self.line_num}: {self.line_text}\n{self.message}"
        return self.message


class InvalidLiteral(MachineFault):
    """Token is neither a known operand nor a numeric literal."""


class InvalidRegister(MachineFault):
    """Unknown register or flag name."""


class InvalidTarget(MachineFault):
    """Operand cannot be written to (e.g. a raw literal)."""


class MemoryOutOfBounds(MachineFault):
    """Address is non-integral, negative, or past the end of memory."""


class MissingOperand(MachineFault):
    """Instruction received fewer operands than it requires."""


class UnknownInstruction(MachineFault):
    """Mnemonic is not in the instruction table."""


class InvalidLabel(MachineFault):
    """Jump target is not a defined label."""


class AliasCycle(MachineFault):
    """Alias chain refers back to itself or exceeds the depth limit."""


class DivisionByZero(MachineFault):
    """div/idiv/mod with a zero divisor."""


class IntegerRequired(MachineFault):
    """Bitwise operation on a value with no integer representation."""


class NumberOutOfRange(MachineFault):
    """Value the host or the Python runtime cannot represent (e.g. sleeping for inf)."""


class LinkError(MachineFault):
    """Raised while parsing/linking, before execution starts."""


class DuplicateLabel(LinkError):
    """Same label name defined twice."""
