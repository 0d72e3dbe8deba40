"""
CHIP-8 Virtual Machine — ALU Operations

Flag-producing and plain arithmetic are kept as separate functions so a
handler always says which one it wants:

  wrap8      plain 8-bit wraparound (ADD_IMM), no flag
  add8       8-bit add, flag = carry out of bit 7
  sub8       8-bit subtract, flag = 1 on borrow
  shr8/shl8  shift by one, flag = bit shifted out
  add16      16-bit add for the index register, flag = carry out of bit 15
  bcd        three decimal digits of a byte

Each flagged function returns (result, flag) with flag in {0, 1}. The
caller reads both operands first and writes VF last, so an operand that
is VF itself is never clobbered early.
"""


def wrap8(a: int, b: int) -> int:
    """Add modulo 256 with no flag side effect."""
    return (a + b) & 0xFF


def add8(a: int, b: int) -> tuple:
    """Add two bytes. Flag = 1 if the sum does not fit in 8 bits."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """Compute a - b modulo 256. Flag = 1 if a borrow occurred (a < b)."""
    result = a - b
    return (result & 0xFF, 1 if result < 0 else 0)


def shr8(a: int) -> tuple:
    """Logical shift right. Flag = old bit 0."""
    return ((a >> 1) & 0x7F, a & 0x01)


def shl8(a: int) -> tuple:
    """Shift left modulo 256. Flag = old bit 7."""
    return ((a << 1) & 0xFF, (a >> 7) & 0x01)


def add16(a: int, b: int) -> tuple:
    """Add modulo 65536. Flag = 1 on carry out of bit 15."""
    result = a + b
    return (result & 0xFFFF, 1 if result > 0xFFFF else 0)


def bcd(value: int) -> tuple:
    """(hundreds, tens, ones) of an 8-bit value."""
    return (value // 100 % 10, value // 10 % 10, value % 10)
