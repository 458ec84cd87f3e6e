"""InstructionRegistry: one primitive per opcode.

Each primitive has the signature::

    (state, instruction, console) -> bool

It mutates ``state`` in place and returns True to keep running or
False to stop. The registry is frozen once built and refuses to build
unless every Opcode member has a primitive, so dispatch is exhaustive.

Registry Keys:
    HALT, SET, PUSH, POP, EQ, GT, JMP, JT, JF, ADD, MULT, MOD, AND, OR,
    NOT, RMEM, WMEM, CALL, RET, OUT, IN, NOOP, INVALID
"""

from typing import Callable, Dict, Optional, Set

from .console import Console
from .decode import Instruction, Opcode
from .errors import InvalidOpcodeError, ModuloByZeroError
from .state import HaltReason, MachineState, MODULUS, VALUE_MASK


Primitive = Callable[[MachineState, Instruction, Console], bool]


class InstructionRegistry:
    """Frozen registry of instruction primitives.

    Attributes:
        _primitives: Mapping of opcode to handler
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        self._primitives: Dict[Opcode, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        missing = set(Opcode) - set(self._primitives)
        if missing:
            names = ", ".join(sorted(op.name for op in missing))
            raise RuntimeError(f"Opcodes without a primitive: {names}")
        self.freeze()

    def _register_all_primitives(self) -> None:
        # Control
        self.register(Opcode.HALT, self._op_halt)
        self.register(Opcode.NOOP, self._op_noop)
        self.register(Opcode.INVALID, self._op_invalid)

        # Data movement
        self.register(Opcode.SET, self._op_set)
        self.register(Opcode.PUSH, self._op_push)
        self.register(Opcode.POP, self._op_pop)
        self.register(Opcode.RMEM, self._op_rmem)
        self.register(Opcode.WMEM, self._op_wmem)

        # Comparison
        self.register(Opcode.EQ, self._op_eq)
        self.register(Opcode.GT, self._op_gt)

        # Arithmetic and logic
        self.register(Opcode.ADD, self._op_add)
        self.register(Opcode.MULT, self._op_mult)
        self.register(Opcode.MOD, self._op_mod)
        self.register(Opcode.AND, self._op_and)
        self.register(Opcode.OR, self._op_or)
        self.register(Opcode.NOT, self._op_not)

        # Control flow
        self.register(Opcode.JMP, self._op_jmp)
        self.register(Opcode.JT, self._op_jt)
        self.register(Opcode.JF, self._op_jf)
        self.register(Opcode.CALL, self._op_call)
        self.register(Opcode.RET, self._op_ret)

        # I/O
        self.register(Opcode.OUT, self._op_out)
        self.register(Opcode.IN, self._op_in)

    def register(self, opcode: Opcode, handler: Primitive) -> None:
        """Register a primitive.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If opcode already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if opcode in self._primitives:
            raise ValueError(f"Primitive already registered: {opcode.name}")
        self._primitives[opcode] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if registry is frozen."""
        return self._frozen

    def get_valid_keys(self) -> Set[Opcode]:
        """Get set of all registered opcodes."""
        return set(self._primitives.keys())

    def execute(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """Execute a decoded instruction.

        Args:
            state: Machine state, mutated in place
            instruction: Decoded instruction
            console: Byte I/O for OUT and IN

        Returns:
            True to continue, False if the machine should stop
        """
        handler = self._primitives[instruction.opcode]
        state.cycle_count += 1
        return handler(state, instruction, console)

    # =========================================================================
    # Control Primitives
    # =========================================================================

    def _op_halt(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """HALT - stop execution."""
        state.halt(HaltReason.HALT)
        return False

    def _op_noop(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """NOOP - no operation."""
        return True

    def _op_invalid(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """INVALID - unknown opcode word; always fatal."""
        raise InvalidOpcodeError(instruction.raw)

    # =========================================================================
    # Data Movement Primitives
    # =========================================================================

    def _op_set(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """SET a b - register a <- value of b."""
        a, b = instruction.operands
        state.write_register(a, state.resolve(b))
        return True

    def _op_push(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """PUSH a - push value of a."""
        (a,) = instruction.operands
        state.push(state.resolve(a))
        return True

    def _op_pop(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """POP a - pop into register a; an empty stack stops the machine."""
        (a,) = instruction.operands
        value = state.pop()
        if value is None:
            state.halt(HaltReason.EMPTY_STACK)
            return False
        state.write_register(a, value)
        return True

    def _op_rmem(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """RMEM a b - register a <- memory[value of b]."""
        a, b = instruction.operands
        state.write_register(a, state.read_memory(state.resolve(b)))
        return True

    def _op_wmem(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """WMEM a b - memory[value of a] <- value of b."""
        a, b = instruction.operands
        state.write_memory(state.resolve(a), state.resolve(b))
        return True

    # =========================================================================
    # Comparison Primitives
    # =========================================================================

    def _op_eq(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """EQ a b c - register a <- 1 if b == c else 0."""
        a, b, c = instruction.operands
        state.write_register(a, int(state.resolve(b) == state.resolve(c)))
        return True

    def _op_gt(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """GT a b c - register a <- 1 if b > c else 0."""
        a, b, c = instruction.operands
        state.write_register(a, int(state.resolve(b) > state.resolve(c)))
        return True

    # =========================================================================
    # Arithmetic and Logic Primitives
    # =========================================================================

    def _op_add(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """ADD a b c - register a <- (b + c) mod 32768."""
        a, b, c = instruction.operands
        state.write_register(a, (state.resolve(b) + state.resolve(c)) % MODULUS)
        return True

    def _op_mult(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """MULT a b c - register a <- (b * c) mod 32768."""
        a, b, c = instruction.operands
        state.write_register(a, (state.resolve(b) * state.resolve(c)) % MODULUS)
        return True

    def _op_mod(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """MOD a b c - register a <- b mod c.

        Raises:
            ModuloByZeroError: If c resolves to 0
        """
        a, b, c = instruction.operands
        divisor = state.resolve(c)
        if divisor == 0:
            raise ModuloByZeroError()
        state.write_register(a, state.resolve(b) % divisor)
        return True

    def _op_and(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """AND a b c - register a <- b & c."""
        a, b, c = instruction.operands
        state.write_register(a, state.resolve(b) & state.resolve(c))
        return True

    def _op_or(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """OR a b c - register a <- b | c."""
        a, b, c = instruction.operands
        state.write_register(a, state.resolve(b) | state.resolve(c))
        return True

    def _op_not(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """NOT a b - register a <- 15-bit complement of b."""
        a, b = instruction.operands
        state.write_register(a, ~state.resolve(b) & VALUE_MASK)
        return True

    # =========================================================================
    # Control Flow Primitives
    # =========================================================================

    def _op_jmp(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """JMP a - jump to a."""
        (a,) = instruction.operands
        state.pc = state.resolve(a)
        return True

    def _op_jt(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """JT a b - jump to b if a is nonzero."""
        a, b = instruction.operands
        if state.resolve(a) != 0:
            state.pc = state.resolve(b)
        return True

    def _op_jf(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """JF a b - jump to b if a is zero."""
        a, b = instruction.operands
        if state.resolve(a) == 0:
            state.pc = state.resolve(b)
        return True

    def _op_call(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """CALL a - push the return address, jump to a."""
        (a,) = instruction.operands
        target = state.resolve(a)
        state.push(state.pc)
        state.pc = target
        return True

    def _op_ret(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """RET - pop the return address; an empty stack stops the machine."""
        address = state.pop()
        if address is None:
            state.halt(HaltReason.EMPTY_STACK)
            return False
        state.pc = address
        return True

    # =========================================================================
    # I/O Primitives
    # =========================================================================

    def _op_out(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """OUT a - write value of a as one byte."""
        (a,) = instruction.operands
        console.write_byte(state.resolve(a))
        return True

    def _op_in(self, state: MachineState, instruction: Instruction, console: Console) -> bool:
        """IN a - block for one input byte and store it in register a."""
        (a,) = instruction.operands
        state.write_register(a, console.read_byte())
        return True


# Shared registry instance (stateless once frozen)
_registry: Optional[InstructionRegistry] = None


def get_registry() -> InstructionRegistry:
    """Get the shared frozen InstructionRegistry."""
    global _registry
    if _registry is None:
        _registry = InstructionRegistry()
    return _registry
