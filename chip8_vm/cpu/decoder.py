"""
CHIP-8 Virtual Machine — Instruction Decoder / Opcode Table

Every instruction is one big-endian 16-bit word. Operand fields sit at
fixed positions regardless of opcode, so field extraction is a pure
function of the word:

  nnn  bits 0-11   12-bit address
  nn   bits 0-7    8-bit immediate
  n    bits 0-3    4-bit count
  x    bits 8-11   register index
  y    bits 4-7    register index

Naming an instruction is a two-level lookup. The top nibble selects a
group; groups 0x0, 0x8, 0xE and 0xF hold several instructions and need a
secondary key:

  group 0x0   full word      (00E0, 00EE)
  group 0x8   low nibble     (8XY0 .. 8XYE)
  group 0xE   low byte       (EX9E, EXA1)
  group 0xF   low byte       (FX07 .. FX65)

Groups 0x5 and 0x9 take the low nibble as-is (no secondary key).
"""

from typing import NamedTuple

from ..errors import UnsupportedInstruction


class Operands(NamedTuple):
    """Operand fields of one instruction word."""
    nnn: int
    nn: int
    n: int
    x: int
    y: int


def decode_fields(word: int) -> Operands:
    """Split an instruction word into its operand fields. Total over 0..0xFFFF."""
    return Operands(
        nnn=word & 0x0FFF,
        nn=word & 0x00FF,
        n=word & 0x000F,
        x=(word >> 8) & 0x0F,
        y=(word >> 4) & 0x0F,
    )


# ──────────────────────────────────────────────
# Single-instruction groups (top nibble only)
# ──────────────────────────────────────────────

OPCODES = {
    0x1: 'JP',        # 1NNN  jump nnn
    0x2: 'CALL',      # 2NNN  call nnn
    0x3: 'SE_IMM',    # 3XNN  skip if Vx == nn
    0x4: 'SNE_IMM',   # 4XNN  skip if Vx != nn
    0x5: 'SE_REG',    # 5XY0  skip if Vx == Vy
    0x6: 'LD_IMM',    # 6XNN  Vx = nn
    0x7: 'ADD_IMM',   # 7XNN  Vx += nn, no flag
    0x9: 'SNE_REG',   # 9XY0  skip if Vx != Vy
    0xA: 'LD_I',      # ANNN  I = nnn
    0xB: 'JP_V0',     # BNNN  jump nnn + V0
    0xC: 'RND',       # CXNN  Vx = rand & nn
    0xD: 'DRW',       # DXYN  draw n-row sprite at (Vx, Vy)
}

# ──────────────────────────────────────────────
# Multi-instruction groups
# ──────────────────────────────────────────────

OPCODES_GROUP_0 = {
    0x00E0: 'CLS',
    0x00EE: 'RET',
}

OPCODES_GROUP_8 = {
    0x0: 'LD_REG',    # 8XY0  Vx = Vy
    0x1: 'OR',        # 8XY1
    0x2: 'AND',       # 8XY2
    0x3: 'XOR',       # 8XY3
    0x4: 'ADD',       # 8XY4  VF = carry
    0x5: 'SUB',       # 8XY5  Vx = Vx - Vy, VF = borrow
    0x6: 'SHR',       # 8XY6  VF = lsb
    0x7: 'SUBN',      # 8XY7  Vx = Vy - Vx, VF = borrow
    0xE: 'SHL',       # 8XYE  VF = msb
}

OPCODES_GROUP_E = {
    0x9E: 'SKP',      # EX9E  skip if key Vx down
    0xA1: 'SKNP',     # EXA1  skip if key Vx up
}

OPCODES_GROUP_F = {
    0x07: 'LD_VX_DT', # FX07  Vx = delay timer
    0x0A: 'LD_KEY',   # FX0A  wait for key, Vx = key
    0x15: 'LD_DT',    # FX15  delay timer = Vx
    0x18: 'LD_ST',    # FX18  sound timer = Vx
    0x1E: 'ADD_I',    # FX1E  I += Vx, VF = 16-bit overflow
    0x29: 'LD_F',     # FX29  I = font glyph for Vx
    0x33: 'LD_B',     # FX33  BCD of Vx at I..I+2
    0x55: 'LD_DUMP',  # FX55  mem[I..I+x] = V0..Vx
    0x65: 'LD_LOAD',  # FX65  V0..Vx = mem[I..I+x]
}


def identify(word: int, pc: int = 0) -> str:
    """Return the mnemonic for an instruction word.

    Raises UnsupportedInstruction (carrying word and pc) when neither
    the group nor the leaf inside a multi-instruction group matches.
    """
    group = (word >> 12) & 0xF

    if group == 0x0:
        mnem = OPCODES_GROUP_0.get(word)
    elif group == 0x8:
        mnem = OPCODES_GROUP_8.get(word & 0x000F)
    elif group == 0xE:
        mnem = OPCODES_GROUP_E.get(word & 0x00FF)
    elif group == 0xF:
        mnem = OPCODES_GROUP_F.get(word & 0x00FF)
    else:
        mnem = OPCODES.get(group)

    if mnem is None:
        raise UnsupportedInstruction(word, pc)
    return mnem


def all_mnemonics() -> set:
    """Every mnemonic the table can produce."""
    names = set(OPCODES.values())
    for table in (OPCODES_GROUP_0, OPCODES_GROUP_8,
                  OPCODES_GROUP_E, OPCODES_GROUP_F):
        names.update(table.values())
    return names
