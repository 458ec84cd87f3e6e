"""Integration tests running whole programs on VirtualMachine."""

import io
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from synacor_vm import (
    Console, VirtualMachine, HaltReason,
    CycleLimitError, InputExhaustedError, InvalidOpcodeError, InvalidOperandError,
    MemoryAddressError, ModuloByZeroError,
)


R0, R1, R2 = 32768, 32769, 32770


def make_vm(words, stdin=b"", **kwargs):
    output = io.BytesIO()
    vm = VirtualMachine(console=Console(io.BytesIO(stdin), output), **kwargs)
    vm.load_words(words)
    return vm, output


class TestStackAddProgram:
    """push 5, push 6, pop both into registers, add, out, halt."""

    PROGRAM = [
        2, 5,
        2, 6,
        3, R0,
        3, R1,
        9, R2, R0, R1,
        19, R2,
        0,
    ]

    def test_prints_one_byte(self):
        vm, output = make_vm(self.PROGRAM)
        assert vm.run() is HaltReason.HALT
        assert output.getvalue() == bytes([11])

    def test_final_state(self):
        vm, _ = make_vm(self.PROGRAM)
        vm.run()
        assert vm.get_register(2) == 11
        assert vm.stack_depth() == 0
        assert vm.get_cycle_count() == 7
        assert vm.is_halted() is True


class TestSimplePrograms:
    """Test edge case programs."""

    def test_zero_image_halts(self):
        """Memory holding only zeros halts immediately with no output."""
        vm, output = make_vm([0])
        assert vm.run() is HaltReason.HALT
        assert output.getvalue() == b""
        assert vm.get_cycle_count() == 1
        assert vm.get_pc() == 1

    def test_empty_image_halts(self):
        vm, output = make_vm([])
        assert vm.run() is HaltReason.HALT
        assert output.getvalue() == b""

    def test_hello(self):
        words = []
        for ch in b"hi\n":
            words += [19, ch]
        vm, output = make_vm(words + [0])
        vm.run()
        assert output.getvalue() == b"hi\n"

    def test_pop_empty_halts(self):
        """Popping an empty stack ends the run normally."""
        vm, _ = make_vm([3, R0, 19, 65])
        assert vm.run() is HaltReason.EMPTY_STACK
        assert vm.state.fault is None

    def test_ret_empty_halts(self):
        vm, output = make_vm([18, 19, 65])
        assert vm.run() is HaltReason.EMPTY_STACK
        assert output.getvalue() == b""

    def test_call_ret_roundtrip(self):
        """RET resumes at the instruction after CALL."""
        vm, output = make_vm([
            17, 6,          # 0: call 6
            19, 66,         # 2: out 'B'
            0,              # 4: halt
            0,              # 5
            19, 65,         # 6: out 'A'
            18,             # 8: ret
        ])
        vm.run()
        assert output.getvalue() == b"AB"

    def test_loop_with_branches(self):
        """Count r0 from 0 to 5 with jf, printing digits."""
        vm, output = make_vm([
            9, R1, R0, 48,      # 0: add r1 r0 '0'
            19, R1,             # 4: out r1
            9, R0, R0, 1,       # 6: add r0 r0 1
            4, R2, R0, 5,       # 10: eq r2 r0 5
            8, R2, 0,           # 14: jf r2 0
            0,                  # 17: halt
        ])
        vm.run()
        assert output.getvalue() == b"01234"

    def test_self_modifying(self):
        """WMEM can rewrite code ahead of the PC."""
        vm, output = make_vm([
            16, 5, 0,       # 0: wmem 5 0   (turn the out below into halt)
            21,             # 3: noop
            21,             # 4: noop
            19, 65,         # 5: out 'A'
            0,
        ])
        vm.run()
        assert output.getvalue() == b""


class TestInput:
    """Test programs that read input."""

    ECHO = [
        20, R0,             # 0: in r0
        19, R0,             # 2: out r0
        4, R1, R0, 10,      # 4: eq r1 r0 '\n'
        8, R1, 0,           # 8: jf r1 0
        0,                  # 11: halt
    ]

    def test_echo_line(self):
        vm, output = make_vm(self.ECHO, stdin=b"look\nrest")
        assert vm.run() is HaltReason.HALT
        assert output.getvalue() == b"look\n"
        assert vm.console.bytes_read == 5

    def test_no_input_is_fatal(self):
        """IN with nothing to read faults instead of reading zero."""
        vm, output = make_vm(self.ECHO)
        with pytest.raises(InputExhaustedError) as exc_info:
            vm.run()
        assert exc_info.value.pc == 0
        assert vm.state.halt_reason is HaltReason.FAULT
        assert vm.state.fault is exc_info.value
        assert vm.get_register(0) == 0


class TestFaults:
    """Test fatal faults through the run loop."""

    def test_invalid_opcode(self):
        vm, _ = make_vm([21, 22])
        with pytest.raises(InvalidOpcodeError) as exc_info:
            vm.run()
        assert exc_info.value.pc == 1
        assert "pc=1" in str(exc_info.value)

    def test_invalid_operand(self):
        vm, _ = make_vm([19, 32776])
        with pytest.raises(InvalidOperandError):
            vm.run()
        assert vm.is_halted() is True

    def test_truncated_instruction_reports_start(self):
        """An instruction cut off by the end of memory faults at its opcode address."""
        vm, _ = make_vm([])
        vm.state.write_memory(32767, 9)
        vm.state.pc = 32767
        with pytest.raises(MemoryAddressError) as exc_info:
            vm.step()
        assert exc_info.value.pc == 32767
        assert exc_info.value.address == 32768
        assert vm.state.halt_reason is HaltReason.FAULT

    def test_fault_not_logged_above_debug(self, caplog):
        """Faults are raised to the caller, not logged as warnings or errors."""
        vm, _ = make_vm([21, 22])
        with caplog.at_level(logging.WARNING, logger="synacor_vm"):
            with pytest.raises(InvalidOpcodeError):
                vm.run()
        assert caplog.records == []

    def test_no_resume_after_halt(self):
        vm, _ = make_vm([0])
        vm.run()
        with pytest.raises(RuntimeError, match="halted"):
            vm.step()

    def test_summary_reports_fault(self):
        vm, _ = make_vm([11, R0, 1, 0])
        with pytest.raises(ModuloByZeroError):
            vm.run()
        summary = vm.get_summary()
        assert summary["halt_reason"] == "fault"
        assert "Modulo by zero" in summary["fault"]


class TestRunControl:
    """Test cycle limit and external stop."""

    def test_max_cycles(self):
        vm, _ = make_vm([6, 0], max_cycles=10)
        with pytest.raises(CycleLimitError, match="Max cycles"):
            vm.run()
        assert vm.get_cycle_count() == 10
        assert vm.is_halted() is True

    def test_run_override(self):
        vm, _ = make_vm([6, 0])
        with pytest.raises(CycleLimitError):
            vm.run(max_cycles=3)
        assert vm.get_cycle_count() == 3

    def test_stop_before_run(self):
        vm, _ = make_vm([6, 0])
        vm.stop()
        assert vm.run() is HaltReason.STOPPED
        assert vm.get_cycle_count() == 0

    def test_stop_from_program_output(self):
        """A stop requested mid-run takes effect before the next instruction."""
        vm, _ = make_vm([19, 65, 6, 0])

        class StoppingOutput(io.BytesIO):
            def write(self, data):
                vm.stop()
                return super().write(data)

        vm.console.output_stream = StoppingOutput()
        assert vm.run() is HaltReason.STOPPED
        assert vm.get_cycle_count() == 1

    def test_step(self):
        vm, _ = make_vm([21, 0])
        assert vm.step() is True
        assert vm.step() is False
        assert vm.is_halted() is True

    def test_independent_machines(self):
        a, out_a = make_vm([19, 65, 0])
        b, out_b = make_vm([19, 66, 0])
        a.run()
        b.run()
        assert out_a.getvalue() == b"A"
        assert out_b.getvalue() == b"B"
