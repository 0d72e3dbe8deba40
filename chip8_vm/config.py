"""
CHIP-8 Virtual Machine — Run Configuration

EmulatorConfig holds every knob the core and the host loop read.
PROFILES are named presets; a CLI picks one and overrides fields.

  default  700 Hz CPU, 60 Hz timers, sprites wrap, timers decoupled
  classic  one timer tick per instruction, sprites clip at the edges
  strict   like default but off-screen sprite pixels are an error
"""

from dataclasses import dataclass, replace
from typing import Optional

from .periph.display import SpritePolicy
from .mem.memory import FONT_SET, MEMORY_SIZE, PROGRAM_START


@dataclass
class EmulatorConfig:
    cpu_hz: int = 700              # instruction cycles per second (host pacing)
    timer_hz: int = 60             # timer ticks per second (host pacing)
    sprite_policy: SpritePolicy = SpritePolicy.WRAP
    couple_timers: bool = False    # tick timers inside every step()
    seed: Optional[int] = None     # RNG seed for RND, None = nondeterministic
    load_address: int = PROGRAM_START

    def __post_init__(self):
        if self.cpu_hz <= 0 or self.timer_hz <= 0:
            raise ValueError("cpu_hz and timer_hz must be positive")
        if not len(FONT_SET) <= self.load_address < MEMORY_SIZE or self.load_address % 2:
            raise ValueError(
                f"load_address must be even and in ${len(FONT_SET):03X}..${MEMORY_SIZE - 2:03X}")
        if isinstance(self.sprite_policy, str):
            self.sprite_policy = SpritePolicy(self.sprite_policy.lower())

    @property
    def cycles_per_tick(self) -> float:
        """Instruction cycles between two timer ticks."""
        return self.cpu_hz / self.timer_hz


PROFILES = {
    "default": {
        "description": "700 Hz CPU, 60 Hz timers, wrapping sprites",
        "config": EmulatorConfig(),
    },
    "classic": {
        "description": "Timers tick once per instruction, sprites clip at the edge",
        "config": EmulatorConfig(sprite_policy=SpritePolicy.CLIP, couple_timers=True),
    },
    "strict": {
        "description": "Off-screen sprite pixels halt the machine",
        "config": EmulatorConfig(sprite_policy=SpritePolicy.FAIL),
    },
}


def get_profile(name: str, **overrides) -> EmulatorConfig:
    """Copy of a named profile with non-None overrides applied."""
    if name not in PROFILES:
        raise KeyError(f"Unknown profile {name!r} (choose from {', '.join(PROFILES)})")
    fields = {k: v for k, v in overrides.items() if v is not None}
    return replace(PROFILES[name]["config"], **fields)
