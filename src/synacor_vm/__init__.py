"""synacor-vm: a 16-bit word virtual machine.

The machine executes a fixed 22-instruction set over 32768 words of
memory, eight registers and an unbounded stack, loading a binary image
of little-endian words and running it until it halts.

Architecture:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE
               |         |           |              |
             [PC]   [fixed table] [raw operands] [frozen primitives]

Operand encoding:
    0..32767      literal value
    32768..32775  register R0..R7
    anything else fatal

Modules:
    state: MachineState aggregate and operand resolution
    decode: Opcode set and Decoder
    registry: Frozen primitive per opcode
    console: Byte input/output for IN and OUT
    loader: Program image reading and encoding
    machine: VirtualMachine orchestrator
    errors: Fault hierarchy
    cli: Command line entry point
"""

__version__ = "0.1.0"

from .state import MachineState, HaltReason
from .decode import Decoder, Instruction, Opcode
from .registry import InstructionRegistry
from .console import Console
from .loader import load_image, encode_words
from .machine import VirtualMachine
from .errors import (
    VMError,
    InvalidOperandError,
    InvalidOpcodeError,
    MemoryAddressError,
    ModuloByZeroError,
    InputExhaustedError,
    ProgramLoadError,
    CycleLimitError,
)

__all__ = [
    "MachineState", "HaltReason",
    "Decoder", "Instruction", "Opcode",
    "InstructionRegistry", "Console",
    "load_image", "encode_words",
    "VirtualMachine",
    "VMError", "InvalidOperandError", "InvalidOpcodeError", "MemoryAddressError",
    "ModuloByZeroError", "InputExhaustedError", "ProgramLoadError", "CycleLimitError",
]
