"""
CHIP-8 Virtual Machine — 4K Memory Map

Memory map:
  $000–$04F  Built-in font (16 glyphs × 5 bytes, hex digits 0–F)
  $050–$1FF  Unused (interpreter area on original hardware)
  $200–$FFF  Program image (max 3584 bytes)

Every access is bounds-checked. Reads and writes outside $000–$FFF
raise OutOfBoundsAccess instead of wrapping, so a runaway index register
is reported rather than silently corrupting the font area.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple, Union

from ..errors import OutOfBoundsAccess, ProgramLoadError

log = logging.getLogger(__name__)

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
FONT_ADDR = 0x000
GLYPH_SIZE = 5

FONT_SET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class Memory:
    """4096-byte flat memory with the font table preloaded.

    Accessors take plain ints. check_range() lets a handler validate a
    whole span before it writes anything, so a failing instruction
    leaves memory untouched.
    """

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)
        self._mem[FONT_ADDR:FONT_ADDR + len(FONT_SET)] = FONT_SET
        self.program_size = 0
        self.program_base = PROGRAM_START

    # --- Bounds ---

    @staticmethod
    def check_range(addr: int, length: int = 1):
        """Raise OutOfBoundsAccess unless addr..addr+length-1 is addressable."""
        if addr < 0 or addr + length > MEMORY_SIZE:
            bad = addr if addr < 0 or addr >= MEMORY_SIZE else MEMORY_SIZE
            raise OutOfBoundsAccess('memory', bad, MEMORY_SIZE)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        self.check_range(addr)
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        self.check_range(addr)
        self._mem[addr] = value & 0xFF

    def read16(self, addr: int) -> int:
        """Read a big-endian instruction word."""
        self.check_range(addr, 2)
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def read_block(self, addr: int, length: int) -> bytes:
        self.check_range(addr, length)
        return bytes(self._mem[addr:addr + length])

    def write_block(self, addr: int, data: bytes):
        self.check_range(addr, len(data))
        self._mem[addr:addr + len(data)] = data

    # --- Program image ---

    def load_program(self, data: bytes, base_addr: int = PROGRAM_START):
        """Copy a program image verbatim into memory at base_addr.

        Refuses (ProgramLoadError) rather than truncating an image that
        does not fit. Bytes past the new image are cleared so a smaller
        image never runs into the tail of a previous one.
        """
        data = bytes(data)
        if not data:
            raise ProgramLoadError("Program image is empty")
        room = MEMORY_SIZE - base_addr
        if len(data) > room:
            raise ProgramLoadError(
                f"Program image is {len(data)} bytes, only {room} fit at ${base_addr:03X}")
        self._mem[base_addr:] = bytes(room)
        self._mem[base_addr:base_addr + len(data)] = data
        self.program_size = len(data)
        self.program_base = base_addr
        log.info("Loaded %d-byte program at $%03X", len(data), base_addr)

    @staticmethod
    def read_image(path: Union[str, Path]) -> bytes:
        """Read a program image file, mapping OS errors to ProgramLoadError."""
        path = Path(path)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ProgramLoadError(f"Program image not found: {path}") from None
        except OSError as e:
            raise ProgramLoadError(f"Cannot read program image {path}: {e}") from e

    @staticmethod
    def glyph_address(digit: int) -> int:
        """Address of the font glyph for a hex digit."""
        return FONT_ADDR + digit * GLYPH_SIZE

    # --- Snapshots ---

    def snapshot(self, start: int = 0x000, end: int = MEMORY_SIZE - 1) -> bytes:
        """Copy of memory start..end inclusive."""
        self.check_range(start, end - start + 1)
        return bytes(self._mem[start:end + 1])

    @staticmethod
    def diff_snapshots(before: bytes, after: bytes,
                       base_addr: int = 0x000) -> Dict[int, Tuple[int, int]]:
        """Map address -> (before, after) for every byte that differs."""
        return {base_addr + offset: (old, new)
                for offset, (old, new) in enumerate(zip(before, after))
                if old != new}

    def reset(self, keep_program: bool = True):
        """Zero everything except the font (and the program image if asked)."""
        base = self.program_base
        program = bytes(self._mem[base:base + self.program_size])
        self._mem[:] = bytes(MEMORY_SIZE)
        self._mem[FONT_ADDR:FONT_ADDR + len(FONT_SET)] = FONT_SET
        if keep_program and program:
            self._mem[base:base + len(program)] = program
        else:
            self.program_size = 0
            self.program_base = PROGRAM_START

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        end = min(start + length, MEMORY_SIZE)
        for addr in range(start, end, 16):
            row = self._mem[addr:min(addr + 16, end)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes:<47}  {ascii_bytes}')
        return '\n'.join(lines)

    def __len__(self):
        return MEMORY_SIZE
