"""VirtualMachine: orchestrator for the fetch/decode/execute loop.

Pipeline:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE

One VirtualMachine owns one MachineState. Several machines can run in
the same process; only the frozen instruction registry is shared.
"""

import logging
from typing import Dict, Iterable, Optional

from .console import Console
from .decode import Decoder, Instruction
from .errors import CycleLimitError, VMError
from .loader import ImageSource, encode_words, load_image
from .registry import InstructionRegistry, get_registry
from .state import HaltReason, MachineState, create_initial_state, REGISTER_COUNT


logger = logging.getLogger(__name__)


class VirtualMachine:
    """16-bit word virtual machine.

    Attributes:
        state: The machine state (memory, registers, stack, pc)
        console: Byte I/O used by IN and OUT
        decoder: Instruction decoder
        registry: Frozen InstructionRegistry
        max_cycles: Instruction limit for run(), None for unbounded
    """

    DEFAULT_MAX_CYCLES: Optional[int] = None

    def __init__(
        self,
        console: Optional[Console] = None,
        max_cycles: Optional[int] = DEFAULT_MAX_CYCLES,
        registry: Optional[InstructionRegistry] = None
    ):
        self.state: MachineState = create_initial_state()
        self.console = console if console is not None else Console()
        self.decoder = Decoder()
        self.registry = registry if registry is not None else get_registry()
        self.max_cycles = max_cycles
        self.bytes_loaded = 0
        self._stop_requested = False

    def load_program(self, source: ImageSource) -> int:
        """Load a program image from a path, bytes or binary stream.

        Returns:
            Number of bytes read

        Raises:
            ProgramLoadError: If the image cannot be read or is too large
        """
        self.bytes_loaded = load_image(self.state, source)
        logger.info("Read %d bytes", self.bytes_loaded)
        return self.bytes_loaded

    def load_words(self, words: Iterable[int]) -> int:
        """Load a program given as a sequence of words."""
        return self.load_program(encode_words(words))

    def step(self) -> bool:
        """Execute a single instruction.

        Returns:
            True if execution should continue, False if the machine halted

        Raises:
            RuntimeError: If the machine is already halted
            VMError: On any fatal fault; the machine is halted first
        """
        if self.state.halted:
            raise RuntimeError("Machine is halted")

        start = self.state.pc
        instruction: Optional[Instruction] = None
        try:
            instruction = self.decoder.decode(self.state)
            running = self.registry.execute(self.state, instruction, self.console)
        except VMError as e:
            if e.pc is None:
                e.pc = instruction.address if instruction is not None else start
            self.state.halt(HaltReason.FAULT, fault=e)
            logger.debug("Fault: %s", e)
            raise

        if not running:
            logger.debug(
                "Halted (%s) at pc=%d after %d cycles",
                self.state.halt_reason.value, instruction.address, self.state.cycle_count
            )
        return running

    def run(self, max_cycles: Optional[int] = None) -> HaltReason:
        """Run until the machine halts or a stop is requested.

        Args:
            max_cycles: Override the instance instruction limit

        Returns:
            The reason the machine stopped

        Raises:
            VMError: On a fatal fault
            CycleLimitError: If the instruction limit is reached
        """
        limit = max_cycles if max_cycles is not None else self.max_cycles

        try:
            while not self.state.halted:
                if self._stop_requested:
                    self.state.halt(HaltReason.STOPPED)
                    logger.info("Stopped at pc=%d", self.state.pc)
                    break
                if limit is not None and self.state.cycle_count >= limit:
                    error = CycleLimitError(limit)
                    error.pc = self.state.pc
                    self.state.halt(HaltReason.FAULT, fault=error)
                    raise error
                self.step()
        finally:
            self.console.flush()

        return self.state.halt_reason

    def stop(self) -> None:
        """Request the run loop to stop before the next instruction."""
        self._stop_requested = True

    def get_register(self, index: int) -> int:
        """Get the value of register 0..7."""
        if not 0 <= index < REGISTER_COUNT:
            raise KeyError(f"Invalid register: {index}")
        return self.state.registers[index]

    def dump_registers(self) -> Dict[str, int]:
        return self.state.dump_registers()

    def get_pc(self) -> int:
        return self.state.pc

    def get_cycle_count(self) -> int:
        return self.state.cycle_count

    def stack_depth(self) -> int:
        return len(self.state.stack)

    def is_halted(self) -> bool:
        return self.state.halted

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        reason = self.state.halt_reason
        return {
            "bytes_loaded": self.bytes_loaded,
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "halt_reason": reason.value if reason is not None else None,
            "registers": self.dump_registers(),
            "pc": self.get_pc(),
            "stack_depth": self.stack_depth(),
            "output_bytes": self.console.bytes_written,
            "fault": str(self.state.fault) if self.state.fault else None,
        }
