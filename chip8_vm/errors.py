"""
CHIP-8 Virtual Machine — Error Kinds

Every fatal condition the core can hit is raised as a subclass of
Chip8Error so a host can catch the whole family in one place and
decide whether to halt, log, or reset.

  ProgramLoadError        image missing, unreadable, empty or too large
  UnsupportedInstruction  instruction word matches no handler
  CallStackOverflow       CALL with all 16 stack slots in use
  CallStackUnderflow      RET with an empty stack
  OutOfBoundsAccess       memory / framebuffer / key table index out of range
  KeySourceError          key-state provider returned a malformed table
  MachineHalted           step() called after a fatal error, before reset()
"""


class Chip8Error(Exception):
    """Base class for every error raised by the virtual machine."""
    pass


class ProgramLoadError(Chip8Error):
    """Raised when a program image cannot be placed in memory."""
    pass


class UnsupportedInstruction(Chip8Error):
    """Raised when an instruction word matches no handler."""

    def __init__(self, word: int, pc: int):
        self.word = word
        self.pc = pc
        super().__init__(f"Unsupported instruction ${word:04X} at ${pc:03X}")


class CallStackOverflow(Chip8Error):
    """Raised when CALL would push past the last stack slot."""

    def __init__(self, pc: int, depth: int):
        self.pc = pc
        self.depth = depth
        super().__init__(f"Call stack overflow at ${pc:03X} (depth {depth})")


class CallStackUnderflow(Chip8Error):
    """Raised when RET finds no return address on the stack."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"Call stack underflow at ${pc:03X}")


class OutOfBoundsAccess(Chip8Error):
    """Raised when a computed index falls outside its region.

    region is one of 'memory', 'framebuffer', 'keypad'.
    """

    def __init__(self, region: str, index: int, limit: int):
        self.region = region
        self.index = index
        self.limit = limit
        super().__init__(
            f"{region} index ${index:X} out of range (limit ${limit:X})")


class MachineHalted(Chip8Error):
    """Raised by step() once the machine has halted on a fatal error."""
    pass


class KeySourceError(Chip8Error, ValueError):
    """Raised when the key-state provider does not return 16 entries."""
    pass
