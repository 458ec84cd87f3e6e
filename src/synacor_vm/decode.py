"""Decoder: turns words at the program counter into instructions.

Architecture:
    MEMORY[pc] -> Decoder -> Instruction(opcode, operands) -> Registry

Every opcode has a fixed operand shape. Operands are kept raw: a
destination is a register selector and must never be resolved, while
sources are resolved by the executing primitive.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple

from .state import MachineState


class Opcode(IntEnum):
    """Closed instruction set. INVALID marks any undecodable word."""
    HALT = 0
    SET = 1
    PUSH = 2
    POP = 3
    EQ = 4
    GT = 5
    JMP = 6
    JT = 7
    JF = 8
    ADD = 9
    MULT = 10
    MOD = 11
    AND = 12
    OR = 13
    NOT = 14
    RMEM = 15
    WMEM = 16
    CALL = 17
    RET = 18
    OUT = 19
    IN = 20
    NOOP = 21
    INVALID = -1

    @property
    def mnemonic(self) -> str:
        return self.name.lower()


# Operand roles per opcode: D = destination register selector (raw),
# S = source value (resolved at execution).
OPERAND_ROLES: Dict[Opcode, str] = {
    Opcode.HALT: "",
    Opcode.SET: "DS",
    Opcode.PUSH: "S",
    Opcode.POP: "D",
    Opcode.EQ: "DSS",
    Opcode.GT: "DSS",
    Opcode.JMP: "S",
    Opcode.JT: "SS",
    Opcode.JF: "SS",
    Opcode.ADD: "DSS",
    Opcode.MULT: "DSS",
    Opcode.MOD: "DSS",
    Opcode.AND: "DSS",
    Opcode.OR: "DSS",
    Opcode.NOT: "DS",
    Opcode.RMEM: "DS",
    Opcode.WMEM: "SS",
    Opcode.CALL: "S",
    Opcode.RET: "",
    Opcode.OUT: "S",
    Opcode.IN: "D",
    Opcode.NOOP: "",
    Opcode.INVALID: "",
}


@dataclass(frozen=True)
class Instruction:
    """Result of decoding one instruction.

    Attributes:
        opcode: Decoded opcode (Opcode.INVALID if the word is unknown)
        operands: Raw operand words, in order
        address: Address of the opcode word
        raw: The opcode word as read from memory
    """
    opcode: Opcode
    operands: Tuple[int, ...]
    address: int
    raw: int

    @property
    def valid(self) -> bool:
        return self.opcode is not Opcode.INVALID

    def __str__(self) -> str:
        if not self.valid:
            return f"<invalid {self.raw}>"
        args = ", ".join(str(op) for op in self.operands)
        return f"{self.opcode.mnemonic} {args}".rstrip()


def operand_count(opcode: Opcode) -> int:
    return len(OPERAND_ROLES[opcode])


class Decoder:
    """Fixed-table instruction decoder."""

    def decode(self, state: MachineState) -> Instruction:
        """Decode the instruction at ``state.pc`` and advance PC past it.

        Args:
            state: Machine state to read from

        Returns:
            Instruction with raw (unresolved) operands. Unknown opcode
            words yield an Opcode.INVALID instruction with no operands.

        Raises:
            MemoryAddressError: If PC runs outside the address space
        """
        address = state.pc
        word = state.fetch()
        try:
            opcode = Opcode(word)
        except ValueError:
            opcode = Opcode.INVALID
        operands = tuple(state.fetch() for _ in range(operand_count(opcode)))
        return Instruction(opcode, operands, address, word)
