"""
Execution engine tests.

Programs run against a CaptureHost, so ``out`` lines, sleeps and event
round-trips can be inspected without touching stdout or the clock.
"""

import io
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from asm_vm import parse_program
from asm_vm.config import MachineConfig
from asm_vm.engine import Machine, RunState, StopReason, run_source
from asm_vm.faults import (
    AliasCycle, DivisionByZero, IntegerRequired, InvalidLabel, InvalidLiteral,
    InvalidTarget, MemoryOutOfBounds, MissingOperand, NumberOutOfRange,
    UnknownInstruction,
)
from asm_vm.host import CaptureHost, ConsoleHost

EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "examples")


def _run(source: str, **config):
    host = CaptureHost()
    vm = run_source(source, host=host, config=MachineConfig(**config))
    return vm, host.output


def _out(source: str) -> list:
    vm, output = _run(source)
    assert vm.state is RunState.HALTED, vm.fault and vm.fault.report()
    return output


def _fault(source: str):
    vm, output = _run(source)
    assert vm.state is RunState.FAULTED
    return vm.fault, output


# ═══════════════════════════════════════════════
# End-to-end programs
# ═══════════════════════════════════════════════

class TestPrograms:
    def test_counting_loop(self):
        vm, output = _run(
            "mov r0,1\n"
            "mov r1,2\n"
            "loop:\n"
            "add r0,r1\n"
            "out r0\n"
            "cmp r0,10\n"
            "jl loop\n"
            "hlt\n"
        )
        assert output == ["3", "5", "7", "9", "11"]
        assert vm.state is RunState.HALTED
        assert vm.stop_reason is StopReason.HALT

    def test_run_off_the_end(self):
        vm, output = _run("out 1\nout 2\n")
        assert output == ["1", "2"]
        assert vm.stop_reason is StopReason.END
        assert vm.steps == 2

    def test_empty_program(self):
        vm, output = _run("; nothing here\n")
        assert output == []
        assert vm.stop_reason is StopReason.END

    def test_hlt_stops_immediately(self):
        assert _out("out 1\nhlt\nout 2\n") == ["1"]

    def test_examples_run(self):
        """Every bundled example should run to a clean halt."""
        for fname in sorted(os.listdir(EXAMPLES_DIR)):
            if fname.endswith(".asm"):
                with open(os.path.join(EXAMPLES_DIR, fname), encoding="utf-8") as f:
                    vm, _ = _run(f.read())
                assert vm.state is RunState.HALTED, f"{fname}: {vm.fault.report()}"

    def test_squares_example(self):
        with open(os.path.join(EXAMPLES_DIR, "table.asm"), encoding="utf-8") as f:
            vm, output = _run(f.read())
        assert output[:8] == [f"{i}\t{i * i}" for i in range(8)]
        assert vm.mem.read(7) == 49


# ═══════════════════════════════════════════════
# Data movement, IO, aliases
# ═══════════════════════════════════════════════

class TestDataMovement:
    def test_out_multiple_values(self):
        assert _out("out 1, 2.5, 0x10\n") == ["1\t2.5\t16"]

    def test_out_no_values(self):
        assert _out("out\n") == [""]

    def test_mov_register_case_insensitive(self):
        assert _out("mov R0, 5\nout r0\n") == ["5"]

    def test_indirect_round_trip(self):
        assert _out("mov [5], 42\nout [5]\n") == ["42"]

    def test_indirect_through_register(self):
        assert _out("mov r0, 3\nmov [r0], 7\nmov [[r0]], 1\nout [7]\n") == ["1"]

    def test_memory_out_of_bounds(self):
        fault, _ = _fault("mov [512], 1\n")
        assert isinstance(fault, MemoryOutOfBounds)

    def test_non_integer_address(self):
        fault, _ = _fault("mov r0, 2.5\nmov [r0], 1\n")
        assert isinstance(fault, MemoryOutOfBounds)

    def test_integral_float_address(self):
        assert _out("mov r0, 4.0\nmov [r0], 9\nout [4]\n") == ["9"]

    def test_memory_size_from_config(self):
        vm, _ = _run("mov [1000], 1\n", memory_size=2048)
        assert vm.state is RunState.HALTED

    def test_alias_is_transparent(self):
        assert _out("als X, r0\nmov X, 7\nout r0, X\n") == ["7\t7"]

    def test_alias_chain(self):
        assert _out("als a, b\nals b, r3\nmov a, 5\nout r3\n") == ["5"]

    def test_alias_redefinition(self):
        assert _out("als x, r0\nals x, r1\nmov x, 4\nout r0, r1\n") == ["0\t4"]

    def test_alias_to_memory(self):
        assert _out("als slot, [10]\nmov slot, 6\nout [10]\n") == ["6"]

    def test_alias_to_literal_is_read_only(self):
        fault, output = _fault("als k, 10\nout k\nmov k, 1\n")
        assert output[0] == "10"
        assert isinstance(fault, InvalidTarget)

    def test_alias_cycle(self):
        fault, _ = _fault("als a, b\nals b, a\nout a\n")
        assert isinstance(fault, AliasCycle)

    def test_alias_name_must_be_symbol(self):
        fault, _ = _fault("als r0, r1\n")
        assert isinstance(fault, InvalidTarget)

    def test_zero_register(self):
        assert _out("mov zero, 5\nout zero\n") == ["0"]

    def test_flag_registers_addressable(self):
        assert _out("mov carry, 3\nout carry, overflow\n") == ["1\t0"]

    def test_literal_destination(self):
        fault, _ = _fault("mov 5, 1\n")
        assert isinstance(fault, InvalidTarget)

    def test_unknown_symbol(self):
        fault, _ = _fault("out foo\n")
        assert isinstance(fault, InvalidLiteral)


# ═══════════════════════════════════════════════
# Arithmetic + bitwise
# ═══════════════════════════════════════════════

class TestArithmetic:
    @pytest.mark.parametrize("op,a,b,expected", [
        ("add", "2", "3", "5"),
        ("sub", "2", "3", "-1"),
        ("mul", "4", "2.5", "10.0"),
        ("div", "7", "2", "3.5"),
        ("div", "8", "2", "4.0"),
        ("idiv", "7", "2", "3"),
        ("idiv", "-7", "2", "-4"),
        ("idiv", "7.5", "2", "3"),
        ("mod", "-7", "3", "2"),
        ("mod", "7", "3", "1"),
        ("pow", "2", "3", "8.0"),
        ("and", "12", "10", "8"),
        ("or", "12", "10", "14"),
        ("xor", "12", "10", "6"),
        ("shl", "1", "4", "16"),
        ("shl", "1", "64", "0"),
        ("shr", "-1", "60", "15"),
        ("shr", "16", "-2", "64"),
    ])
    def test_binary(self, op, a, b, expected):
        assert _out(f"mov r0, {a}\n{op} r0, {b}\nout r0\n") == [expected]

    @pytest.mark.parametrize("op,a,expected", [
        ("inc", "1", "2"),
        ("dec", "1", "0"),
        ("sqrt", "16", "4.0"),
        ("not", "0", "-1"),
        ("not", "5", "-6"),
    ])
    def test_unary(self, op, a, expected):
        assert _out(f"mov r0, {a}\n{op} r0\nout r0\n") == [expected]

    def test_sqrt_negative_is_nan(self):
        assert _out("mov r0, -4\nsqrt r0\nout r0\n") == ["nan"]

    def test_mixed_int_float(self):
        assert _out("mov r0, 1.5\nadd r0, 1\nout r0\n") == ["2.5"]

    def test_integer_wraps_at_64_bits(self):
        assert _out("mov r0, 0x7fff_ffff_ffff_ffff\ninc r0\nout r0\n") == [
            "-9223372036854775808"]

    def test_hex_literal_wraps_to_64_bits(self):
        assert _out("mov r0, 0xffff_ffff_ffff_ffff\nout r0\nadd r0, 0\nout r0\n") == [
            "-1", "-1"]

    def test_oversized_decimal_literal_is_float(self):
        assert _out("mov r0, 99999999999999999999\nout r0\n") == ["1e+20"]

    def test_result_written_to_memory(self):
        assert _out("mov [0], 10\nadd [0], 5\nout [0]\n") == ["15"]

    @pytest.mark.parametrize("op", ["div", "idiv", "mod"])
    def test_division_by_zero(self, op):
        fault, _ = _fault(f"mov r0, 1\n{op} r0, 0\n")
        assert isinstance(fault, DivisionByZero)

    def test_bitwise_needs_integer(self):
        fault, _ = _fault("mov r0, 2.5\nand r0, 1\n")
        assert isinstance(fault, IntegerRequired)

    def test_bitwise_accepts_integral_float(self):
        assert _out("mov r0, 6.0\nand r0, 3\nout r0\n") == ["2"]


# ═══════════════════════════════════════════════
# Compare + branch
# ═══════════════════════════════════════════════

BRANCH_TEMPLATE = "cmp {a},{b}\n{mn} yes\nout 0\nhlt\nyes:\nout 1\n"


class TestBranching:
    @pytest.mark.parametrize("a,b", [(1, 2), (2, 2), (3, 2), (1.5, 1), (-1, -1.0)])
    @pytest.mark.parametrize("mn,predicate", [
        ("je", lambda a, b: a == b),
        ("jne", lambda a, b: a != b),
        ("jl", lambda a, b: a < b),
        ("jle", lambda a, b: a <= b),
        ("jg", lambda a, b: a > b),
        ("jge", lambda a, b: a >= b),
    ])
    def test_conditional_jumps(self, a, b, mn, predicate):
        output = _out(BRANCH_TEMPLATE.format(a=a, b=b, mn=mn))
        assert output == (["1"] if predicate(a, b) else ["0"])

    def test_cmp_sets_flags(self):
        assert _out("cmp 1, 2\nout eq, lt, gt\n") == ["0\t1\t0"]

    def test_flags_persist_until_next_cmp(self):
        assert _out("cmp 5, 5\nmov r0, 1\nje ok\nout 0\nok:\nout eq\n") == ["1"]

    def test_jump_lands_after_labels_comments_and_blanks(self):
        vm, output = _run(
            "jmp target\n"
            "out 99\n"
            "; comment\n"
            "\n"
            "first:\n"
            "second:\n"
            "target:\n"
            "out 1\n"
        )
        assert output == ["1"]
        assert vm.stop_reason is StopReason.END

    def test_backward_jump(self):
        assert _out("mov r0, 0\ntop:\ninc r0\ncmp r0, 3\njne top\nout r0\n") == ["3"]

    def test_jump_to_label_at_end(self):
        vm, output = _run("jmp end\nout 1\nend:\n")
        assert output == []
        assert vm.stop_reason is StopReason.END

    def test_undefined_label(self):
        fault, _ = _fault("jmp nowhere\n")
        assert isinstance(fault, InvalidLabel)

    def test_untaken_branch_to_undefined_label(self):
        assert _out("cmp 1, 2\nje nowhere\nout 1\n") == ["1"]


# ═══════════════════════════════════════════════
# Faults
# ═══════════════════════════════════════════════

class TestFaults:
    def test_unknown_instruction_reports_line(self):
        fault, output = _fault("; header\n\nout 1\nfoo r0\nout 2\n")
        assert isinstance(fault, UnknownInstruction)
        assert fault.line_num == 4
        assert fault.line_text == "foo r0"
        assert output == ["1", "Line 4: foo r0\nUnknown instruction: foo"]

    def test_missing_operand(self):
        fault, _ = _fault("mov r0\n")
        assert isinstance(fault, MissingOperand)
        assert fault.line_num == 1

    @pytest.mark.parametrize("source", ["add r0\n", "jmp\n", "slp\n", "not\n", "als x\n"])
    def test_arity_checked_before_execution(self, source):
        fault, _ = _fault(source)
        assert isinstance(fault, MissingOperand)

    def test_faulted_machine_cannot_resume(self):
        vm, _ = _run("out 1\nbogus\nout 2\n")
        pc = vm.pc
        assert vm.step() is RunState.FAULTED
        assert vm.run() is RunState.FAULTED
        assert vm.pc == pc
        assert vm.stop_reason is StopReason.FAULT

    def test_fault_comment_stripped_from_report(self):
        fault, _ = _fault("mov [600], 1   ; too far\n")
        assert fault.report().startswith("Line 1: mov [600], 1\n")

    def test_oversized_literals_do_not_escape(self):
        huge = "9" * 5000
        output = _out(
            f"mov r0, {huge}\ndiv r0, 3\nout r0\n"
            f"mov r1, 0x{'f' * 40}\nsqrt r1\nout r1\n"
            "mov r2, 1e308\nmul r2, 10\nout r2\n"
        )
        assert output == ["inf", "nan", "inf"]

    @pytest.mark.parametrize("error", [OverflowError, ValueError])
    def test_host_number_error_becomes_fault(self, monkeypatch, error):
        def refuse(seconds):
            raise error("timestamp too large")
        monkeypatch.setattr("asm_vm.host.time.sleep", refuse)
        stream = io.StringIO()
        vm = run_source("out 1\nslp 1e400\nout 2\n", host=ConsoleHost(stream))
        assert vm.state is RunState.FAULTED
        assert isinstance(vm.fault, NumberOutOfRange)
        assert vm.fault.line_num == 2
        assert stream.getvalue() == (
            "1\nLine 2: slp 1e400\nNumber out of range: timestamp too large\n")


# ═══════════════════════════════════════════════
# Host interaction
# ═══════════════════════════════════════════════

class TestHost:
    def test_slp_delegates_to_host(self):
        host = CaptureHost()
        run_source("mov r0, 0.5\nslp r0\nslp 2\n", host=host)
        assert host.sleeps == [0.5, 2]

    def test_nop_round_trips_event(self):
        host = CaptureHost()
        run_source("nop\nnop\n", host=host)
        assert host.event_log == [("push", "nop"), ("pull", "nop")] * 2
        assert len(host.events) == 0

    def test_dbg_dumps_state(self):
        host = CaptureHost()
        run_source("als n, r1\nmov n, 3\nmov [2], 8\ndbg\n", host=host)
        assert host.output[0].startswith("Registers: r0=0 r1=3")
        assert "Alias n -> r1" in host.output
        assert host.output[-1] == "Memory:\n[2] = 8"

    def test_step_by_step(self):
        host = CaptureHost()
        vm = Machine(parse_program("mov r0, 1\nout r0\n"), host=host)
        assert vm.step() is RunState.RUNNING
        assert vm.current.source == "mov r0, 1"
        assert vm.regs.get("r0") == 1
        assert host.output == []
        vm.step()
        assert host.output == ["1"]
        assert vm.step() is RunState.HALTED

    def test_trace_logs_each_step(self, caplog):
        import logging
        caplog.set_level(logging.DEBUG, logger="asm_vm")
        run_source("mov r0, 1\nout r0\n", host=CaptureHost(),
                   config=MachineConfig(trace=True))
        traced = [r.getMessage() for r in caplog.records if "mov r0, 1" in r.getMessage()]
        assert traced
