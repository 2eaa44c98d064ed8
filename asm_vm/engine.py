"""
asm VM — Execution Engine

Integrates:
  - Register + flag bank (regs.py)
  - Flat memory (memory.py)
  - Alias table (aliases.py)
  - Operand resolver (operands.py)
  - ALU helpers (alu.py)
  - Host collaborator for output, sleep and events (host.py)

Execution model:
  1. Increment the program counter (0 = before the first instruction)
  2. Past the last instruction → normal end of program
  3. Fetch the instruction, look up its handler in the dispatch table
  4. Check the operand count against the table entry
  5. Run the handler → registers, memory, flags, aliases or pc change

Run states:
  RUNNING  — steps are executed
  HALTED   — ``hlt`` or ran off the end of the program (see stop_reason)
  FAULTED  — a MachineFault aborted the program; it cannot be resumed
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Optional, Tuple
import logging

from . import alu
from .aliases import AliasTable
from .config import DEFAULT_CONFIG, MachineConfig
from .faults import (
    InvalidLabel, InvalidTarget, MachineFault, MissingOperand, NumberOutOfRange,
    UnknownInstruction,
)
from .host import ConsoleHost
from .literals import format_number
from .memory import Memory
from .operands import OperandResolver, Symbol
from .parser import Instruction, Program, parse_program
from .regs import Registers

__all__ = ['Machine', 'RunState', 'StopReason', 'run_source']

logger = logging.getLogger(__name__)


class RunState(Enum):
    RUNNING = 'RUNNING'
    HALTED = 'HALTED'
    FAULTED = 'FAULTED'


class StopReason(Enum):
    HALT = 'HALT'    # hlt executed
    END = 'END'      # program counter ran past the last instruction
    FAULT = 'FAULT'


class Machine:
    """Fetch-decode-execute loop over a linked Program.

    Usage:
        program = parse_program(source)
        vm = Machine(program)
        state = vm.run()
        if state is RunState.FAULTED:
            print(vm.fault.report())
    """

    def __init__(self, program: Program, host=None,
                 config: MachineConfig = DEFAULT_CONFIG):
        self.program = program
        self.config = config
        self.host = host if host is not None else ConsoleHost()

        self.regs = Registers(config.register_count)
        self.mem = Memory(config.memory_size)
        self.aliases = AliasTable()
        self.operands = OperandResolver(self.regs, self.mem, self.aliases,
                                        depth_limit=config.alias_depth_limit)

        self.pc: int = 0
        self.state = RunState.RUNNING
        self.stop_reason: Optional[StopReason] = None
        self.fault: Optional[MachineFault] = None
        self.steps: int = 0
        self.trace = config.trace

        # mnemonic → (handler, required operand count)
        self._dispatch: Dict[str, Tuple[Callable, int]] = self._build_dispatch()

    @property
    def current(self) -> Optional[Instruction]:
        """Instruction at the program counter, if any."""
        if 1 <= self.pc <= len(self.program):
            return self.program.fetch(self.pc)
        return None

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> RunState:
        """Execute one instruction and return the resulting state."""
        if self.state is not RunState.RUNNING:
            return self.state

        self.pc += 1
        if self.pc > len(self.program):
            self._stop(RunState.HALTED, StopReason.END)
            return self.state

        instr = self.program.fetch(self.pc)
        if self.trace:
            logger.debug("%4d L%-4d %-24s %s", self.pc, instr.line_num,
                         instr.source, self.regs.display())

        try:
            self._execute(instr)
        except MachineFault as fault:
            return self._fault(fault, instr)
        except (OverflowError, ValueError) as e:
            return self._fault(NumberOutOfRange(f"Number out of range: {e}"), instr)

        self.steps += 1
        return self.state

    def _fault(self, fault: MachineFault, instr: Instruction) -> RunState:
        self.fault = fault.at(instr.line_num, instr.source)
        self._stop(RunState.FAULTED, StopReason.FAULT)
        logger.error("Fault at line %d: %s", instr.line_num, fault.message)
        self.host.write(self.fault.report())
        return self.state

    def run(self) -> RunState:
        """Run until halt, end of program or fault."""
        logger.info("Running %d instructions", len(self.program))
        while self.state is RunState.RUNNING:
            self.step()
        logger.info("Stopped: %s after %d steps", self.stop_reason.value, self.steps)
        return self.state

    def _stop(self, state: RunState, reason: StopReason):
        self.state = state
        self.stop_reason = reason

    def _execute(self, instr: Instruction):
        entry = self._dispatch.get(instr.mnemonic)
        if entry is None:
            raise UnknownInstruction(f"Unknown instruction: {instr.mnemonic}")
        handler, arity = entry
        ops = instr.operands
        if len(ops) < arity:
            raise MissingOperand(
                f"{instr.mnemonic} expects {arity} operand(s), got {len(ops)}")
        handler(ops)

    # ══════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════

    def _value(self, op):
        return self.operands.resolve(op)

    def _jump(self, label_op):
        index = self.program.label_index(label_op.text)
        if index is None:
            raise InvalidLabel(f"Invalid label: '{label_op.text}'")
        self.pc = index - 1

    def _binary(self, fn: Callable) -> Callable:
        """Handler for ``op a, b`` → a = fn(a, b)."""
        def handler(ops):
            a, b = ops[0], ops[1]
            self.operands.assign(a, fn(self._value(a), self._value(b)))
        return handler

    def _unary(self, fn: Callable) -> Callable:
        """Handler for ``op a`` → a = fn(a)."""
        def handler(ops):
            a = ops[0]
            self.operands.assign(a, fn(self._value(a)))
        return handler

    def _branch(self, condition: Callable[[], bool]) -> Callable:
        def handler(ops):
            if condition():
                self._jump(ops[0])
        return handler

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════

    def _build_dispatch(self) -> dict:
        regs = self.regs
        return {
            # ── Data / IO ──
            'out':  (self._op_out, 0),
            'mov':  (self._op_mov, 2),
            'als':  (self._op_als, 2),
            'dbg':  (self._op_dbg, 0),

            # ── Control ──
            'hlt':  (self._op_hlt, 0),
            'slp':  (self._op_slp, 1),
            'nop':  (self._op_nop, 0),
            'jmp':  (self._branch(lambda: True), 1),

            # ── Arithmetic ──
            'add':  (self._binary(alu.add), 2),
            'sub':  (self._binary(alu.sub), 2),
            'mul':  (self._binary(alu.mul), 2),
            'div':  (self._binary(alu.div), 2),
            'idiv': (self._binary(alu.idiv), 2),
            'mod':  (self._binary(alu.mod), 2),
            'pow':  (self._binary(alu.pow_), 2),
            'sqrt': (self._unary(alu.sqrt), 1),
            'inc':  (self._unary(alu.inc), 1),
            'dec':  (self._unary(alu.dec), 1),

            # ── Compare / branch ──
            'cmp':  (self._op_cmp, 2),
            'je':   (self._branch(lambda: regs.eq), 1),
            'jne':  (self._branch(lambda: not regs.eq), 1),
            'jl':   (self._branch(lambda: regs.lt), 1),
            'jle':  (self._branch(lambda: regs.lt or regs.eq), 1),
            'jg':   (self._branch(lambda: regs.gt), 1),
            'jge':  (self._branch(lambda: regs.gt or regs.eq), 1),

            # ── Bitwise ──
            'and':  (self._binary(alu.and_), 2),
            'or':   (self._binary(alu.or_), 2),
            'xor':  (self._binary(alu.xor), 2),
            'not':  (self._unary(alu.not_), 1),
            'shl':  (self._binary(alu.shl), 2),
            'shr':  (self._binary(alu.shr), 2),
        }

    def _op_out(self, ops):
        values = [format_number(self._value(op)) for op in ops]
        self.host.write('\t'.join(values))

    def _op_mov(self, ops):
        # Source is resolved before the destination is classified
        self.operands.assign(ops[0], self._value(ops[1]))

    def _op_als(self, ops):
        name, target = ops[0], ops[1]
        if not isinstance(name, Symbol):
            raise InvalidTarget(f"Cannot alias '{name.text}'")
        self.aliases.define(name.name, target)

    def _op_hlt(self, ops):
        self._stop(RunState.HALTED, StopReason.HALT)

    def _op_slp(self, ops):
        self.host.sleep(self._value(ops[0]))

    def _op_nop(self, ops):
        self.host.push_event('nop')
        self.host.pull_event('nop')

    def _op_cmp(self, ops):
        self.regs.set_compare(self._value(ops[0]), self._value(ops[1]))

    def _op_dbg(self, ops):
        self.host.write(f"Registers: {self.regs.display()}")
        for name, target in self.aliases.items():
            self.host.write(f"Alias {name} -> {target.text}")
        dump = self.mem.dump()
        if dump:
            self.host.write("Memory:\n" + dump)


def run_source(source: str, host=None,
               config: MachineConfig = DEFAULT_CONFIG) -> Machine:
    """Parse, link and run source text. Returns the finished Machine."""
    machine = Machine(parse_program(source, config), host=host, config=config)
    machine.run()
    return machine
