"""
CHIP-8 Virtual Machine
======================
An interpreter for the CHIP-8 instruction set: 4K memory, sixteen 8-bit
registers, a 16-bit index register, a 16-level call stack, a 64x32
monochrome framebuffer, two 60 Hz countdown timers and a 16-key hex
keypad.

Architecture:
    ┌───────────┐    ┌───────────┐    ┌────────────┐    ┌──────────────┐
    │  Memory   │───>│  Decoder  │───>│ Dispatcher │───>│ Machine state│
    │ (fetch)   │    │ (fields)  │    │ (handlers) │    │ regs/fb/tmrs │
    └───────────┘    └───────────┘    └────────────┘    └──────────────┘

    - cpu/decoder.py:  operand fields + two-level opcode table
    - cpu/regs.py:     V0-VF, I, PC, call stack
    - cpu/alu.py:      flagged / unflagged arithmetic
    - mem/memory.py:   4K memory, font table, program loading
    - periph/:         framebuffer, timers, keypad
    - emu.py:          handler table + cycle driver
    - host.py:         paced real-time loop with a terminal renderer

The core never sleeps, renders or reads a keyboard. A host calls
step() for instruction cycles and tick_timers() at its timer rate.
"""

__version__ = "0.1.0"

from .config import EmulatorConfig, PROFILES, get_profile
from .cpu.decoder import Operands, decode_fields, identify
from .emu import Chip8Emulator, CycleState, StopReason
from .errors import (
    Chip8Error, ProgramLoadError, UnsupportedInstruction, CallStackOverflow,
    CallStackUnderflow, OutOfBoundsAccess, KeySourceError, MachineHalted,
)
from .periph.display import SpritePolicy
