"""
CHIP-8 Virtual Machine — Delay and Sound Timers

Two 8-bit countdown registers. Each call to tick() decrements both
toward zero. The sound timer going from 1 to 0 is the beep event:
tick() returns True on exactly that call and notifies every listener
registered with on_beep().

How often tick() runs is the host's decision (conventionally 60 Hz).
The emulator only ticks from inside step() when configured to couple
timers to instruction cycles.
"""

import logging
from typing import Callable, List

log = logging.getLogger(__name__)


class Timers:
    """Delay / sound timer pair with beep listeners."""

    def __init__(self):
        self.delay = 0
        self.sound = 0
        self.beeps = 0
        self._listeners: List[Callable[[], None]] = []

    def on_beep(self, callback: Callable[[], None]):
        """Register a callable invoked once per beep event."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]):
        self._listeners = [cb for cb in self._listeners if cb != callback]

    def tick(self) -> bool:
        """Decrement both timers. Returns True if this tick is a beep."""
        if self.delay > 0:
            self.delay -= 1

        beep = False
        if self.sound > 0:
            beep = self.sound == 1
            self.sound -= 1

        if beep:
            self.beeps += 1
            log.info("Beep (#%d)", self.beeps)
            for cb in self._listeners:
                cb()
        return beep

    def reset(self):
        """Zero both timers. Listeners stay registered."""
        self.delay = 0
        self.sound = 0
        self.beeps = 0
