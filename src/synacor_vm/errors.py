"""Fault hierarchy for the synacor-vm execution engine.

Every fatal condition has its own exception type so callers and tests
can tell them apart. Ordinary halts (HALT, pop/ret on an empty stack,
an external stop request) never raise.
"""

from typing import Optional


class VMError(Exception):
    """Base class for all fatal machine faults.

    Attributes:
        pc: Address of the instruction that faulted, if known
    """

    def __init__(self, message: str, pc: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.pc = pc

    def __str__(self) -> str:
        if self.pc is None:
            return self.message
        return f"{self.message} (at pc={self.pc})"


class InvalidOperandError(VMError):
    """Operand is neither a literal (0..32767) nor a register (32768..32775)."""

    def __init__(self, operand: int, pc: Optional[int] = None):
        self.operand = operand
        super().__init__(f"Invalid operand: {operand}", pc)


class InvalidOpcodeError(VMError):
    """Decoded opcode is outside 0..21."""

    def __init__(self, opcode: int, pc: Optional[int] = None):
        self.opcode = opcode
        super().__init__(f"Invalid opcode: {opcode}", pc)


class MemoryAddressError(VMError):
    """Memory access outside 0..32767."""

    def __init__(self, address: int, pc: Optional[int] = None):
        self.address = address
        super().__init__(f"Memory address out of range: {address}", pc)


class ModuloByZeroError(VMError):
    """MOD with a zero divisor."""

    def __init__(self, pc: Optional[int] = None):
        super().__init__("Modulo by zero", pc)


class InputExhaustedError(VMError):
    """End of input reached while IN was waiting for a byte."""

    def __init__(self, pc: Optional[int] = None):
        super().__init__("End of input while waiting for a byte", pc)


class ProgramLoadError(VMError):
    """Program image could not be read or does not fit in memory."""


class CycleLimitError(VMError):
    """Configured instruction limit reached before the program halted."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max cycles ({limit}) exceeded")
