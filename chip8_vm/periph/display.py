"""
CHIP-8 Virtual Machine — Monochrome Framebuffer

64 × 32 pixels, one byte per pixel (0 = off, 1 = on), row-major,
pixel (x, y) at index x + y*64.

Sprites are 8 pixels wide and 1–15 rows tall, one byte per row with
bit 7 the leftmost pixel. Each set bit is XORed into the framebuffer;
a pixel that goes from on to off is a collision.

What happens at the screen edge is an explicit policy:

  WRAP  every pixel wraps modulo 64 / 32
  CLIP  the start position wraps, pixels past the right or bottom
        edge are dropped
  FAIL  any set pixel landing off-screen (or an off-screen start
        position) raises OutOfBoundsAccess; nothing is drawn
"""

from enum import Enum
from typing import List

from ..errors import OutOfBoundsAccess

WIDTH = 64
HEIGHT = 32
SIZE = WIDTH * HEIGHT
SPRITE_WIDTH = 8


class SpritePolicy(Enum):
    WRAP = 'wrap'
    CLIP = 'clip'
    FAIL = 'fail'


class Display:
    """Pixel-state buffer read by a renderer."""

    def __init__(self, policy: SpritePolicy = SpritePolicy.WRAP):
        self._pixels = bytearray(SIZE)
        self.policy = policy
        self.draw_count = 0

    @property
    def pixels(self) -> memoryview:
        """Read-only view of the framebuffer for consumers."""
        return memoryview(self._pixels).toreadonly()

    def pixel(self, x: int, y: int) -> int:
        if not (0 <= x < WIDTH and 0 <= y < HEIGHT):
            raise OutOfBoundsAccess('framebuffer', x + y * WIDTH, SIZE)
        return self._pixels[x + y * WIDTH]

    def fill(self, value: int = 1):
        """Set every pixel to value (test and host helper)."""
        self._pixels[:] = bytes([value & 1]) * SIZE

    def clear(self):
        self._pixels[:] = bytes(SIZE)
        self.draw_count += 1

    def _targets(self, x: int, y: int, rows: bytes) -> List[int]:
        """Framebuffer indices touched by the set bits of a sprite."""
        policy = self.policy
        if policy is SpritePolicy.FAIL and (x >= WIDTH or y >= HEIGHT):
            raise OutOfBoundsAccess('framebuffer', x + y * WIDTH, SIZE)
        if policy is SpritePolicy.CLIP:
            x %= WIDTH
            y %= HEIGHT

        targets = []
        for row, bits in enumerate(rows):
            for col in range(SPRITE_WIDTH):
                if not bits & (0x80 >> col):
                    continue
                px = x + col
                py = y + row
                if policy is SpritePolicy.WRAP:
                    px %= WIDTH
                    py %= HEIGHT
                elif px >= WIDTH or py >= HEIGHT:
                    if policy is SpritePolicy.CLIP:
                        continue
                    raise OutOfBoundsAccess('framebuffer', px + py * WIDTH, SIZE)
                targets.append(px + py * WIDTH)
        return targets

    def draw_sprite(self, x: int, y: int, rows: bytes) -> int:
        """XOR a sprite into the framebuffer at (x, y).

        Returns 1 if any pixel was turned off, else 0. All target
        positions are resolved before the first pixel changes.
        """
        targets = self._targets(x, y, rows)
        collision = 0
        for index in targets:
            if self._pixels[index]:
                collision = 1
            self._pixels[index] ^= 1
        self.draw_count += 1
        return collision

    # --- Rendering ---

    def rows(self) -> List[bytes]:
        return [bytes(self._pixels[r * WIDTH:(r + 1) * WIDTH]) for r in range(HEIGHT)]

    def render(self, on: str = '█', off: str = ' ') -> str:
        """Text rendering, one character per pixel."""
        return '\n'.join(
            ''.join(on if p else off for p in row) for row in self.rows())

    def render_halfblocks(self) -> str:
        """Two pixel rows per text line using half-block characters."""
        lines = []
        for r in range(0, HEIGHT, 2):
            top = self._pixels[r * WIDTH:(r + 1) * WIDTH]
            bottom = self._pixels[(r + 1) * WIDTH:(r + 2) * WIDTH]
            lines.append(''.join(
                '█' if t and b else '▀' if t else '▄' if b else ' '
                for t, b in zip(top, bottom)))
        return '\n'.join(lines)

    def reset(self):
        self._pixels[:] = bytes(SIZE)
        self.draw_count = 0
