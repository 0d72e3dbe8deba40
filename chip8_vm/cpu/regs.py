"""
CHIP-8 Virtual Machine — Register Set + Call Stack

Register model:
  V0-VF  16 × 8-bit general registers
         VF doubles as the flag output (carry, borrow, shifted-out bit,
         sprite collision, index overflow)
  I      16-bit index register (memory pointer)
  PC     16-bit program counter, starts at $200
  stack  16 × 16-bit return addresses
  SP     stack pointer, number of occupied slots (0-16)
"""

from ..errors import CallStackOverflow, CallStackUnderflow

NUM_REGISTERS = 16
STACK_DEPTH = 16
FLAG = 0xF
PROGRAM_START = 0x200


class Registers:
    """CHIP-8 register set and call stack."""

    __slots__ = ('V', 'I', 'PC', 'stack', 'SP')

    def __init__(self):
        self.V = bytearray(NUM_REGISTERS)
        self.I: int = 0
        self.PC: int = PROGRAM_START
        self.stack = [0] * STACK_DEPTH
        self.SP: int = 0

    # --- Flag register ---

    @property
    def VF(self) -> int:
        return self.V[FLAG]

    @VF.setter
    def VF(self, value: int):
        self.V[FLAG] = value & 0xFF

    # --- Stack operations ---

    def push(self, address: int, pc: int = None):
        """Push a return address. Raises CallStackOverflow when all slots are used.

        pc is the address of the instruction doing the push, reported in
        the error; defaults to the current PC.
        """
        if self.SP >= STACK_DEPTH:
            raise CallStackOverflow(self.PC if pc is None else pc, self.SP)
        self.stack[self.SP] = address & 0xFFFF
        self.SP += 1

    def pop(self, pc: int = None) -> int:
        """Pop a return address. Raises CallStackUnderflow on an empty stack."""
        if self.SP == 0:
            raise CallStackUnderflow(self.PC if pc is None else pc)
        self.SP -= 1
        return self.stack[self.SP]

    @property
    def depth(self) -> int:
        return self.SP

    # --- Display ---

    def display(self) -> str:
        """Format register state on one line for logs and dumps."""
        vregs = ' '.join(f'V{i:X}={v:02X}' for i, v in enumerate(self.V))
        return (f"PC={self.PC:04X} I={self.I:04X} SP={self.SP:X} "
                f"{vregs}")

    def reset(self):
        """Reset to power-on state."""
        self.V[:] = bytes(NUM_REGISTERS)
        self.I = 0
        self.PC = PROGRAM_START
        self.stack = [0] * STACK_DEPTH
        self.SP = 0
