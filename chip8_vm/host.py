"""
CHIP-8 Virtual Machine — Real-Time Host Loop

Drives an emulator at wall-clock speed:
  - cpu_hz instruction cycles per second
  - timer_hz timer ticks per second, independent of the CPU rate
  - framebuffer redrawn with rich.live whenever a draw happened
  - beep events ring the terminal bell

Both rates come from the emulator's EmulatorConfig. The loop catches
up after a slow iteration instead of drifting, and stops on a machine
error, after max_cycles, or after max_seconds.
"""

import logging
import time
from typing import Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .emu import Chip8Emulator, StopReason, stop_reason_for
from .errors import Chip8Error
from .periph.keypad import NUM_KEYS, KeySource

log = logging.getLogger(__name__)

# Longest sleep between loop iterations
IDLE_SLEEP = 0.001


def held_keys(keys: Iterable[int]) -> KeySource:
    """Key-state provider that reports a fixed set of keys as held down."""
    table = [0] * NUM_KEYS
    for key in keys:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key {key} is not a hex keypad key (0-F)")
        table[key] = 1
    return lambda: table


def render_panel(emu: Chip8Emulator) -> Panel:
    """Framebuffer as a rich Panel, two pixel rows per text line."""
    title = f"CHIP-8  PC=${emu.regs.PC:03X}  cycles={emu.cycles}"
    return Panel(Text(emu.display.render_halfblocks(), style="bright_green"),
                 title=title, expand=False)


def run_realtime(emu: Chip8Emulator,
                 max_cycles: Optional[int] = None,
                 max_seconds: Optional[float] = None,
                 console: Optional[Console] = None,
                 render: bool = True) -> StopReason:
    """Run emu paced to its configured CPU and timer rates."""
    cfg = emu.config
    console = console or Console()

    def beep():
        console.bell()

    emu.timers.on_beep(beep)
    log.info("Running at %d Hz CPU, %d Hz timers", cfg.cpu_hz, cfg.timer_hz)

    start = time.perf_counter()
    executed = 0
    ticks = 0
    last_draw = -1
    reason = StopReason.TIMEOUT

    live = Live(render_panel(emu), console=console, auto_refresh=False) if render else None
    try:
        if live is not None:
            live.start()
        while True:
            elapsed = time.perf_counter() - start
            if max_seconds is not None and elapsed >= max_seconds:
                break

            due_cycles = int(elapsed * cfg.cpu_hz) - executed
            if max_cycles is not None:
                due_cycles = min(due_cycles, max_cycles - executed)
            for _ in range(due_cycles):
                emu.step()
                executed += 1

            if not cfg.couple_timers:
                due_ticks = int(elapsed * cfg.timer_hz) - ticks
                for _ in range(due_ticks):
                    emu.tick_timers()
                    ticks += 1

            if live is not None and emu.display.draw_count != last_draw:
                last_draw = emu.display.draw_count
                live.update(render_panel(emu), refresh=True)

            if max_cycles is not None and executed >= max_cycles:
                break
            time.sleep(IDLE_SLEEP)
    except Chip8Error as e:
        reason = stop_reason_for(e)
    finally:
        if live is not None:
            live.stop()
        emu.timers.remove_listener(beep)

    log.info("Stopped (%s) after %d cycles, %d timer ticks", reason.value, executed, ticks)
    return reason
