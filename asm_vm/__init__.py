"""
asm VM — register machine for a line-oriented assembly language
================================================================
Parses assembly text into an instruction list, links labels, and executes
it against 16 registers, a flag bank, 512 cells of memory and an alias
table.

Architecture:
    ┌──────────┐    ┌──────────────┐    ┌──────────┐    ┌───────────────┐
    │ .asm src │───>│ Parser/Linker│───>│ Program  │───>│ Machine (run) │
    │ (text)   │    │ (parser.py)  │    │ + labels │    │ (engine.py)   │
    └──────────┘    └──────────────┘    └──────────┘    └───────┬───────┘
                                                                │
                         operands.py ── regs.py / memory.py / aliases.py

    - literals.py:  numeric literal resolver (hex, underscores, floats)
    - operands.py:  operand classification + read/write resolution
    - alu.py:       arithmetic/bitwise helpers with 64-bit integer wrap
    - host.py:      output / sleep / event collaborators
    - faults.py:    fault taxonomy
"""

__version__ = "0.1.0"

from .config import MachineConfig, DEFAULT_CONFIG
from .faults import *
from .parser import Instruction, Program, parse_program
from .engine import Machine, RunState, StopReason, run_source
from .host import CaptureHost, ConsoleHost
