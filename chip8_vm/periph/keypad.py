"""
CHIP-8 Virtual Machine — Hex Keypad

16 keys, 0–F, each pressed or not. The core only reads this table.
A host either writes it directly (press / release) or hands the
emulator a key-state provider: a callable returning 16 truthy/falsy
values, polled once at the start of every cycle via refresh().
"""

from typing import Callable, Optional, Sequence

from ..errors import KeySourceError, OutOfBoundsAccess

NUM_KEYS = 16

KeySource = Callable[[], Sequence[int]]


class Keypad:
    """Pressed / not-pressed table for the 16 hex keys."""

    def __init__(self):
        self._keys = bytearray(NUM_KEYS)

    def _check(self, key: int):
        if not 0 <= key < NUM_KEYS:
            raise OutOfBoundsAccess('keypad', key, NUM_KEYS)

    def press(self, key: int):
        self._check(key)
        self._keys[key] = 1

    def release(self, key: int):
        self._check(key)
        self._keys[key] = 0

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        return bool(self._keys[key])

    def first_pressed(self) -> Optional[int]:
        """Lowest-numbered key currently down, or None."""
        for key, down in enumerate(self._keys):
            if down:
                return key
        return None

    def refresh(self, source: KeySource):
        """Replace the whole table from a key-state provider."""
        state = list(source())
        if len(state) != NUM_KEYS:
            raise KeySourceError(f"Key source returned {len(state)} entries, expected {NUM_KEYS}")
        self._keys[:] = bytes(1 if down else 0 for down in state)

    @property
    def state(self) -> bytes:
        return bytes(self._keys)

    def reset(self):
        self._keys[:] = bytes(NUM_KEYS)
