"""
asm VM — Flat Bounds-Checked Memory

A single fixed-size array of number cells, zero-initialised. There are no
regions, no I/O mapping and no allocation: every address in
[0, capacity) is plain read/write storage.

Addresses come from resolved operands, so they may arrive as floats. An
integral float (``5.0``) addresses cell 5; ``5.5`` is out of bounds.
"""

from typing import List

from .config import MEMORY_SIZE
from .faults import MemoryOutOfBounds


class Memory:
    """Fixed-capacity number memory."""

    def __init__(self, capacity: int = MEMORY_SIZE):
        self.capacity = capacity
        self._cells: List[object] = [0] * capacity

    # --- Core read/write ---

    def _check(self, addr) -> int:
        if isinstance(addr, bool) or not isinstance(addr, (int, float)):
            raise MemoryOutOfBounds(f"Memory address must be a number, got {addr!r}")
        if isinstance(addr, float):
            if not addr.is_integer():
                raise MemoryOutOfBounds(f"Memory address {addr} is not an integer")
            addr = int(addr)
        if addr < 0 or addr >= self.capacity:
            raise MemoryOutOfBounds(
                f"Memory address overflow: {addr} (capacity {self.capacity})")
        return addr

    def read(self, addr):
        return self._cells[self._check(addr)]

    def write(self, addr, value):
        self._cells[self._check(addr)] = value

    # --- Dump ---

    def dump(self) -> str:
        """List non-zero cells, one ``[addr] = value`` per line."""
        lines = [f"[{addr}] = {value}"
                 for addr, value in enumerate(self._cells) if value != 0]
        return '\n'.join(lines)
