"""Tests for the instruction decoder."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from synacor_vm.decode import Decoder, Instruction, Opcode, OPERAND_ROLES, operand_count
from synacor_vm.errors import MemoryAddressError
from synacor_vm.loader import load_image, encode_words
from synacor_vm.state import MachineState


EXPECTED_COUNTS = {
    0: 0, 1: 2, 2: 1, 3: 1, 4: 3, 5: 3, 6: 1, 7: 2, 8: 2, 9: 3, 10: 3,
    11: 3, 12: 3, 13: 3, 14: 2, 15: 2, 16: 2, 17: 1, 18: 0, 19: 1, 20: 1, 21: 0,
}


def state_with(words):
    state = MachineState()
    load_image(state, encode_words(words))
    return state


class TestOpcodeTable:
    """Test the static opcode table."""

    def test_every_opcode_has_roles(self):
        assert set(OPERAND_ROLES) == set(Opcode)

    @pytest.mark.parametrize("value,count", sorted(EXPECTED_COUNTS.items()))
    def test_operand_counts(self, value, count):
        assert operand_count(Opcode(value)) == count

    def test_mnemonics(self):
        assert Opcode.MULT.mnemonic == "mult"
        assert Opcode.NOOP.mnemonic == "noop"

    def test_roles(self):
        """Destinations come first for register-writing instructions."""
        assert OPERAND_ROLES[Opcode.ADD] == "DSS"
        assert OPERAND_ROLES[Opcode.WMEM] == "SS"
        assert OPERAND_ROLES[Opcode.IN] == "D"


class TestDecoder:
    """Test Decoder.decode."""

    @pytest.fixture
    def decoder(self):
        return Decoder()

    @pytest.mark.parametrize("value,count", sorted(EXPECTED_COUNTS.items()))
    def test_consumes_operands(self, decoder, value, count):
        """PC advances past the opcode and exactly its operands."""
        operands = [100 + i for i in range(count)]
        state = state_with([value] + operands + [0])
        instruction = decoder.decode(state)

        assert instruction.opcode == Opcode(value)
        assert instruction.operands == tuple(operands)
        assert instruction.address == 0
        assert state.pc == 1 + count

    def test_operands_not_resolved(self, decoder):
        """Register selectors are kept raw at decode time."""
        state = state_with([9, 32768, 32769, 32770])
        state.registers[1] = 5
        instruction = decoder.decode(state)
        assert instruction.operands == (32768, 32769, 32770)

    def test_sequential_decode(self, decoder):
        state = state_with([2, 5, 21, 0])
        first = decoder.decode(state)
        second = decoder.decode(state)
        third = decoder.decode(state)
        assert [i.opcode for i in (first, second, third)] == [Opcode.PUSH, Opcode.NOOP, Opcode.HALT]
        assert [i.address for i in (first, second, third)] == [0, 2, 3]

    @pytest.mark.parametrize("word", [22, 100, 32768, 65535])
    def test_invalid_opcode(self, decoder, word):
        """Unknown opcodes decode to an INVALID marker without operands."""
        state = state_with([word, 1, 2])
        instruction = decoder.decode(state)
        assert instruction.opcode is Opcode.INVALID
        assert instruction.valid is False
        assert instruction.raw == word
        assert instruction.operands == ()
        assert state.pc == 1

    def test_operands_past_end(self, decoder):
        """An instruction straddling the end of memory is fatal."""
        state = MachineState(pc=32767)
        state.memory[32767] = 9
        with pytest.raises(MemoryAddressError):
            decoder.decode(state)

    def test_str(self):
        assert str(Instruction(Opcode.SET, (32768, 4), 0, 1)) == "set 32768, 4"
        assert str(Instruction(Opcode.HALT, (), 0, 0)) == "halt"
        assert str(Instruction(Opcode.INVALID, (), 0, 99)) == "<invalid 99>"
