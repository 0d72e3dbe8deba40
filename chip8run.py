#!/usr/bin/env python3
"""
chip8run — CHIP-8 Virtual Machine CLI

Usage:
    python chip8run.py <program.ch8> [--profile default|classic|strict]
                       [--cycles N] [--seconds S] [--headless] [--dump]
                       [--cpu-hz HZ] [--timer-hz HZ] [--sprite-policy wrap|clip|fail]
                       [--couple-timers] [--seed N] [--hold KEY ...]
                       [--verbose] [--log-file PATH]

Examples:
    python chip8run.py pong.ch8                      # live terminal display
    python chip8run.py test.ch8 --headless --cycles 500 --dump
    python chip8run.py maze.ch8 --profile strict --seed 1
    python chip8run.py keypad.ch8 --hold 5 --hold A

Exit status: 0 = ran to the cycle/time limit, 1 = program could not be
loaded, 2 = machine halted on an error.
"""

import argparse
import logging
import sys
from typing import Optional

from chip8_vm import __version__
from chip8_vm.config import PROFILES, get_profile
from chip8_vm.emu import Chip8Emulator, StopReason
from chip8_vm.errors import ProgramLoadError
from chip8_vm.host import held_keys, run_realtime
from chip8_vm.log_setup import setup_logging
from chip8_vm.periph.display import SpritePolicy


def parse_key(value: str) -> int:
    """Parse a hex keypad key: 0-9, A-F (case-insensitive)."""
    try:
        key = int(value, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex key: {value!r}")
    if not 0 <= key <= 0xF:
        raise argparse.ArgumentTypeError(f"key out of range 0-F: {value!r}")
    return key


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8run",
        description="CHIP-8 virtual machine",
        epilog="Profiles: " + "; ".join(
            f"{name} = {p['description']}" for name, p in PROFILES.items()),
    )
    parser.add_argument("program", help="Program image (raw bytes, loaded at $200)")
    parser.add_argument("--profile", default="default", choices=list(PROFILES.keys()),
                        help="Configuration preset (default: default)")
    parser.add_argument("--cycles", type=int, default=None,
                        help="Stop after N instruction cycles")
    parser.add_argument("--seconds", type=float, default=None,
                        help="Stop after S seconds of real time")
    parser.add_argument("--headless", action="store_true",
                        help="Run unpaced with no display (needs --cycles)")
    parser.add_argument("--dump", action="store_true",
                        help="Print registers, framebuffer and memory when done")
    parser.add_argument("--cpu-hz", type=int, default=None,
                        help="Instruction cycles per second")
    parser.add_argument("--timer-hz", type=int, default=None,
                        help="Timer ticks per second")
    parser.add_argument("--sprite-policy", default=None,
                        choices=[p.value for p in SpritePolicy],
                        help="Sprite edge handling")
    parser.add_argument("--couple-timers", action="store_true", default=None,
                        help="Tick timers once per instruction")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for RND")
    parser.add_argument("--hold", type=parse_key, action="append", default=[],
                        metavar="KEY", help="Hold a hex key down for the whole run")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="-v = info, -vv = per-instruction trace")
    parser.add_argument("--log-file", default=None,
                        help="Write a full DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"chip8run {__version__}")
    return parser


def dump_state(emu: Chip8Emulator, before: Optional[bytes] = None):
    """Print machine state to stdout.

    With a memory snapshot taken after loading, also list every byte
    of memory the run changed.
    """
    print(emu.regs.display())
    print(f"DT={emu.timers.delay:02X} ST={emu.timers.sound:02X} "
          f"cycles={emu.cycles} state={emu.state.value}")
    print(emu.display.render(on='#', off='.'))
    print(emu.mem.hexdump(emu.mem.program_base, max(emu.mem.program_size, 16)))
    if before is not None:
        changes = emu.mem.diff_snapshots(before, emu.mem.snapshot())
        print(f"Memory writes: {len(changes)}")
        for addr, (old, new) in sorted(changes.items()):
            print(f"  ${addr:03X}: {old:02X} -> {new:02X}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.headless and args.cycles is None:
        parser.error("--headless needs --cycles")

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(level=logging.DEBUG if args.verbose > 1 or args.log_file else logging.INFO,
                  console_level=console_level, log_file=args.log_file)

    sprite_policy = SpritePolicy(args.sprite_policy) if args.sprite_policy else None
    config = get_profile(args.profile, cpu_hz=args.cpu_hz, timer_hz=args.timer_hz,
                         sprite_policy=sprite_policy, couple_timers=args.couple_timers,
                         seed=args.seed)

    key_source = held_keys(args.hold) if args.hold else None
    emu = Chip8Emulator(config, key_source=key_source)

    try:
        emu.load_program(args.program)
    except ProgramLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    before = emu.mem.snapshot() if args.dump else None

    if args.headless:
        reason = emu.run(max_cycles=args.cycles)
    else:
        try:
            reason = run_realtime(emu, max_cycles=args.cycles, max_seconds=args.seconds)
        except KeyboardInterrupt:
            reason = StopReason.TIMEOUT

    if args.dump:
        dump_state(emu, before)

    if reason is not StopReason.TIMEOUT:
        print(f"Halted ({reason.value}): {emu.last_error}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
