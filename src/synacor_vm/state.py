"""MachineState: the single mutable aggregate of the virtual machine.

State Components:
    - Memory: 32768 sixteen-bit words, addresses 0..32767
    - Registers: 8 sixteen-bit words, selected by operands 32768..32775
    - Stack: unbounded LIFO of sixteen-bit words
    - PC: address of the next word to decode
    - Halted / halt reason / fault: terminal bookkeeping
    - Cycle count: instructions executed so far

Memory and registers are stored as ``array('H')`` so every cell is
physically a 16-bit word. The state is mutated in place by the
instruction primitives.
"""

from array import array
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidOperandError, MemoryAddressError, VMError


MEMORY_SIZE = 32768
REGISTER_COUNT = 8
REGISTER_BASE = 32768
MODULUS = 32768
WORD_MASK = 0xFFFF
VALUE_MASK = 0x7FFF


class HaltReason(Enum):
    """Why a machine stopped."""
    HALT = "halt"
    EMPTY_STACK = "empty_stack"
    STOPPED = "stopped"
    FAULT = "fault"


def _zeroed(size: int) -> array:
    return array("H", bytes(2 * size))


@dataclass
class MachineState:
    """Mutable machine state.

    Attributes:
        memory: 32768 words of program and data memory
        registers: 8 general purpose words
        stack: LIFO of words, top at the end of the list
        pc: Program counter (next word to decode)
        halted: Whether the machine reached a terminal state
        halt_reason: Why it stopped (None while running)
        fault: Fatal error that stopped the machine, if any
        cycle_count: Number of instructions executed
    """
    memory: array = field(default_factory=lambda: _zeroed(MEMORY_SIZE))
    registers: array = field(default_factory=lambda: _zeroed(REGISTER_COUNT))
    stack: List[int] = field(default_factory=list)
    pc: int = 0
    halted: bool = False
    halt_reason: Optional[HaltReason] = None
    fault: Optional[VMError] = None
    cycle_count: int = 0

    # =========================================================================
    # Operand resolution
    # =========================================================================

    def resolve(self, operand: int) -> int:
        """Resolve a source operand to a value.

        Args:
            operand: Raw operand word

        Returns:
            The operand itself if it is a literal (0..32767), otherwise the
            content of the register it selects

        Raises:
            InvalidOperandError: If operand is not in 0..32775
        """
        if 0 <= operand < REGISTER_BASE:
            return operand
        return self.read_register(operand)

    def read_register(self, selector: int) -> int:
        """Read the register selected by an operand in 32768..32775."""
        return self.registers[self._register_index(selector)]

    def write_register(self, selector: int, value: int) -> None:
        """Write a destination register selected by an operand in 32768..32775."""
        self.registers[self._register_index(selector)] = value

    def _register_index(self, selector: int) -> int:
        index = selector - REGISTER_BASE
        if not 0 <= index < REGISTER_COUNT:
            raise InvalidOperandError(selector)
        return index

    # =========================================================================
    # Memory
    # =========================================================================

    def read_memory(self, address: int) -> int:
        """Read a word; address must be in 0..32767."""
        self._check_address(address)
        return self.memory[address]

    def write_memory(self, address: int, value: int) -> None:
        """Write a word; address must be in 0..32767."""
        self._check_address(address)
        self.memory[address] = value

    def fetch(self) -> int:
        """Return the word at PC and advance PC by one."""
        word = self.read_memory(self.pc)
        self.pc += 1
        return word

    @staticmethod
    def _check_address(address: int) -> None:
        if not 0 <= address < MEMORY_SIZE:
            raise MemoryAddressError(address)

    # =========================================================================
    # Stack
    # =========================================================================

    def push(self, value: int) -> None:
        self.stack.append(value)

    def pop(self) -> Optional[int]:
        """Pop the top of the stack, or return None if it is empty."""
        if not self.stack:
            return None
        return self.stack.pop()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def halt(self, reason: HaltReason, fault: Optional[VMError] = None) -> None:
        """Enter the terminal state."""
        self.halted = True
        self.halt_reason = reason
        self.fault = fault

    def snapshot(self) -> dict:
        """Create a detached snapshot of the state for inspection.

        Returns:
            Dictionary with copies of registers, stack and scalar fields
            (memory excluded for size)
        """
        return {
            "registers": self.dump_registers(),
            "pc": self.pc,
            "stack": list(self.stack),
            "halted": self.halted,
            "halt_reason": self.halt_reason,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate structural invariants.

        Checks:
            - Memory holds exactly 32768 words
            - There are exactly 8 registers
            - Stack entries are 16-bit words
            - PC is within the address space
            - Cycle count is non-negative

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.memory) != MEMORY_SIZE:
            return False
        if len(self.registers) != REGISTER_COUNT:
            return False
        for value in self.stack:
            if not isinstance(value, int) or not 0 <= value <= WORD_MASK:
                return False
        if not 0 <= self.pc <= MEMORY_SIZE:
            return False
        if self.cycle_count < 0:
            return False
        return True

    def dump_registers(self) -> Dict[str, int]:
        """Get register values keyed R0..R7."""
        return {f"R{i}": value for i, value in enumerate(self.registers)}

    def __str__(self) -> str:
        regs = " ".join(f"{k}={v}" for k, v in self.dump_registers().items())
        status = f" HALTED({self.halt_reason.value})" if self.halted else ""
        return f"[Cycle {self.cycle_count}] PC={self.pc} {regs} SP={len(self.stack)}{status}"


def create_initial_state() -> MachineState:
    """Create a zero-filled machine: empty stack, PC at 0."""
    return MachineState()
