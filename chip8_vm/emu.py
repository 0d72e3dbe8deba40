"""
CHIP-8 Virtual Machine — Main Emulator Class

Integrates:
  - Register set + call stack (cpu/regs.py)
  - 4K memory with font table (mem/memory.py)
  - Instruction decoder / opcode table (cpu/decoder.py)
  - ALU operations (cpu/alu.py)
  - Framebuffer, timers, keypad (periph/)

Execution model, one step():
  1. Refresh the key table from the key-state provider (if any)
  2. FETCHING   read the big-endian word at PC
  3. EXECUTING  decode fields, name the instruction, advance PC by 2,
                run the handler (jumps overwrite PC, skips add 2,
                wait-for-key steps back 2)
  4. TIMER_TICK only when timers are coupled to instruction cycles
  5. back to IDLE

A handler validates every index before it mutates anything. When
step() raises, PC is put back on the faulting instruction, the machine
enters HALTED and the error is kept in last_error. Further step() calls
raise MachineHalted until reset().

Termination reasons for run():
  - TIMEOUT:  max_cycles executed
  - ILLEGAL:  unsupported instruction
  - STACK:    call stack overflow / underflow
  - BOUNDS:   memory, framebuffer or keypad index out of range
  - HALT:     machine was already halted
"""

import logging
import random
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .config import EmulatorConfig
from .cpu import alu
from .cpu.decoder import Operands, decode_fields, identify
from .cpu.regs import Registers, FLAG
from .errors import (
    Chip8Error, UnsupportedInstruction, CallStackOverflow,
    CallStackUnderflow, OutOfBoundsAccess, MachineHalted,
)
from .mem.memory import Memory
from .periph.display import Display
from .periph.keypad import Keypad, KeySource
from .periph.timer import Timers

log = logging.getLogger(__name__)


class CycleState(Enum):
    IDLE = 'IDLE'
    FETCHING = 'FETCHING'
    EXECUTING = 'EXECUTING'
    TIMER_TICK = 'TIMER_TICK'
    HALTED = 'HALTED'


class StopReason(Enum):
    TIMEOUT = 'TIMEOUT'
    ILLEGAL = 'ILLEGAL'
    STACK = 'STACK'
    BOUNDS = 'BOUNDS'
    HALT = 'HALT'


def stop_reason_for(error: Chip8Error) -> StopReason:
    if isinstance(error, UnsupportedInstruction):
        return StopReason.ILLEGAL
    if isinstance(error, (CallStackOverflow, CallStackUnderflow)):
        return StopReason.STACK
    if isinstance(error, OutOfBoundsAccess):
        return StopReason.BOUNDS
    return StopReason.HALT


class Chip8Emulator:
    """CHIP-8 virtual machine.

    Usage:
        emu = Chip8Emulator()
        emu.load_program('pong.ch8')
        emu.step()             # one instruction cycle
        emu.tick_timers()      # one 60 Hz timer tick
        emu.display.pixels     # 64x32 framebuffer
    """

    def __init__(self, config: Optional[EmulatorConfig] = None,
                 key_source: Optional[KeySource] = None):
        self.config = config or EmulatorConfig()

        # Core components
        self.regs = Registers()
        self.mem = Memory()
        self.regs.PC = self.config.load_address

        # Peripherals
        self.display = Display(self.config.sprite_policy)
        self.timers = Timers()
        self.keypad = Keypad()
        self.key_source = key_source

        self._rng = random.Random(self.config.seed)

        # Decoded-instruction scratch, recomputed every cycle
        self.opcode = 0x0000
        self.operands = decode_fields(0x0000)

        self.state = CycleState.IDLE
        self.last_error: Optional[Chip8Error] = None
        self.cycles = 0

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, path_or_data: Union[str, Path, bytes, bytearray]):
        """Load a program image from a file path or raw bytes.

        Raises ProgramLoadError for a missing/unreadable file, an empty
        image, or one larger than the program area.
        """
        if isinstance(path_or_data, (str, Path)):
            data = Memory.read_image(path_or_data)
        else:
            data = bytes(path_or_data)
        self.mem.load_program(data, self.config.load_address)
        self.regs.PC = self.config.load_address

    def reset(self):
        """Return to power-on state, keeping the loaded program image."""
        self.regs.reset()
        self.regs.PC = self.config.load_address
        self.mem.reset(keep_program=True)
        self.display.reset()
        self.timers.reset()
        self.keypad.reset()
        self.opcode = 0x0000
        self.operands = decode_fields(0x0000)
        self.state = CycleState.IDLE
        self.last_error = None
        self.cycles = 0

    @property
    def halted(self) -> bool:
        return self.state is CycleState.HALTED

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> str:
        """Execute one instruction cycle. Returns the executed mnemonic.

        Raises a Chip8Error subclass on a fatal condition; the machine
        is then HALTED with PC left on the faulting instruction.
        """
        if self.halted:
            raise MachineHalted(f"Machine halted: {self.last_error}")

        pc = self.regs.PC
        try:
            if self.key_source is not None:
                self.keypad.refresh(self.key_source)

            self.state = CycleState.FETCHING
            word = self.mem.read16(pc)

            self.state = CycleState.EXECUTING
            self.opcode = word
            self.operands = decode_fields(word)
            mnem = identify(word, pc)

            if log.isEnabledFor(logging.DEBUG):
                log.debug("$%03X: %04X %-8s %s", pc, word, mnem, self.regs.display())

            self.regs.PC = pc + 2
            self._dispatch[mnem](self.operands)
        except Chip8Error as e:
            self.regs.PC = pc
            self.state = CycleState.HALTED
            self.last_error = e
            log.warning("Halted at $%03X: %s", pc, e)
            raise

        if self.config.couple_timers:
            self.state = CycleState.TIMER_TICK
            self.timers.tick()

        self.state = CycleState.IDLE
        self.cycles += 1
        return mnem

    def tick_timers(self) -> bool:
        """One timer tick, independent of instruction cycles. True on beep."""
        return self.timers.tick()

    def run(self, max_cycles: int = 10_000) -> StopReason:
        """Run headless until an error or max_cycles instructions.

        Unless timers are coupled, they tick once every
        config.cycles_per_tick instructions so timed programs behave as
        they would at the configured rates. Never raises machine errors;
        the error is left in last_error.
        """
        if self.halted:
            return StopReason.HALT

        per_tick = self.config.cycles_per_tick
        budget = 0.0
        for _ in range(max_cycles):
            try:
                self.step()
            except Chip8Error as e:
                return stop_reason_for(e)
            if not self.config.couple_timers:
                budget += 1
                while budget >= per_tick:
                    budget -= per_tick
                    self.timers.tick()
        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ops)
    # PC already points past the current instruction when a handler runs.

    def _build_dispatch(self) -> dict:
        """Build mnemonic → handler dispatch table."""
        return {
            # ── Flow control ──
            'CLS':      self._op_cls,
            'RET':      self._op_ret,
            'JP':       self._op_jp,
            'CALL':     self._op_call,
            'JP_V0':    self._op_jp_v0,

            # ── Conditional skips ──
            'SE_IMM':   self._op_se_imm,
            'SNE_IMM':  self._op_sne_imm,
            'SE_REG':   self._op_se_reg,
            'SNE_REG':  self._op_sne_reg,
            'SKP':      self._op_skp,
            'SKNP':     self._op_sknp,

            # ── Loads / arithmetic ──
            'LD_IMM':   self._op_ld_imm,
            'ADD_IMM':  self._op_add_imm,
            'LD_REG':   self._op_ld_reg,
            'OR':       self._op_or,
            'AND':      self._op_and,
            'XOR':      self._op_xor,
            'ADD':      self._op_add,
            'SUB':      self._op_sub,
            'SHR':      self._op_shr,
            'SUBN':     self._op_subn,
            'SHL':      self._op_shl,
            'RND':      self._op_rnd,

            # ── Index register / memory ──
            'LD_I':     self._op_ld_i,
            'ADD_I':    self._op_add_i,
            'LD_F':     self._op_ld_f,
            'LD_B':     self._op_ld_b,
            'LD_DUMP':  self._op_ld_dump,
            'LD_LOAD':  self._op_ld_load,

            # ── Display ──
            'DRW':      self._op_drw,

            # ── Timers / keypad ──
            'LD_VX_DT': self._op_ld_vx_dt,
            'LD_DT':    self._op_ld_dt,
            'LD_ST':    self._op_ld_st,
            'LD_KEY':   self._op_ld_key,
        }

    def _skip_if(self, condition: bool):
        if condition:
            self.regs.PC += 2

    # --- Flow control ---

    def _op_cls(self, ops: Operands):
        self.display.clear()

    def _op_ret(self, ops: Operands):
        self.regs.PC = self.regs.pop(pc=self.regs.PC - 2)

    def _op_jp(self, ops: Operands):
        self.regs.PC = ops.nnn

    def _op_call(self, ops: Operands):
        # Return address is the instruction after the CALL
        self.regs.push(self.regs.PC, pc=self.regs.PC - 2)
        self.regs.PC = ops.nnn

    def _op_jp_v0(self, ops: Operands):
        self.regs.PC = ops.nnn + self.regs.V[0]

    # --- Conditional skips ---

    def _op_se_imm(self, ops: Operands):
        self._skip_if(self.regs.V[ops.x] == ops.nn)

    def _op_sne_imm(self, ops: Operands):
        self._skip_if(self.regs.V[ops.x] != ops.nn)

    def _op_se_reg(self, ops: Operands):
        self._skip_if(self.regs.V[ops.x] == self.regs.V[ops.y])

    def _op_sne_reg(self, ops: Operands):
        self._skip_if(self.regs.V[ops.x] != self.regs.V[ops.y])

    def _op_skp(self, ops: Operands):
        self._skip_if(self.keypad.is_pressed(self.regs.V[ops.x]))

    def _op_sknp(self, ops: Operands):
        self._skip_if(not self.keypad.is_pressed(self.regs.V[ops.x]))

    # --- Loads / arithmetic ---

    def _op_ld_imm(self, ops: Operands):
        self.regs.V[ops.x] = ops.nn

    def _op_add_imm(self, ops: Operands):
        self.regs.V[ops.x] = alu.wrap8(self.regs.V[ops.x], ops.nn)

    def _op_ld_reg(self, ops: Operands):
        self.regs.V[ops.x] = self.regs.V[ops.y]

    def _op_or(self, ops: Operands):
        self.regs.V[ops.x] |= self.regs.V[ops.y]

    def _op_and(self, ops: Operands):
        self.regs.V[ops.x] &= self.regs.V[ops.y]

    def _op_xor(self, ops: Operands):
        self.regs.V[ops.x] ^= self.regs.V[ops.y]

    def _op_add(self, ops: Operands):
        result, carry = alu.add8(self.regs.V[ops.x], self.regs.V[ops.y])
        self.regs.V[ops.x] = result
        self.regs.V[FLAG] = carry

    def _op_sub(self, ops: Operands):
        result, borrow = alu.sub8(self.regs.V[ops.x], self.regs.V[ops.y])
        self.regs.V[ops.x] = result
        self.regs.V[FLAG] = borrow

    def _op_subn(self, ops: Operands):
        result, borrow = alu.sub8(self.regs.V[ops.y], self.regs.V[ops.x])
        self.regs.V[ops.x] = result
        self.regs.V[FLAG] = borrow

    def _op_shr(self, ops: Operands):
        result, bit = alu.shr8(self.regs.V[ops.x])
        self.regs.V[ops.x] = result
        self.regs.V[FLAG] = bit

    def _op_shl(self, ops: Operands):
        result, bit = alu.shl8(self.regs.V[ops.x])
        self.regs.V[ops.x] = result
        self.regs.V[FLAG] = bit

    def _op_rnd(self, ops: Operands):
        self.regs.V[ops.x] = self._rng.randrange(256) & ops.nn

    # --- Index register / memory ---

    def _op_ld_i(self, ops: Operands):
        self.regs.I = ops.nnn

    def _op_add_i(self, ops: Operands):
        result, carry = alu.add16(self.regs.I, self.regs.V[ops.x])
        self.regs.I = result
        self.regs.V[FLAG] = carry

    def _op_ld_f(self, ops: Operands):
        self.regs.I = self.mem.glyph_address(self.regs.V[ops.x])

    def _op_ld_b(self, ops: Operands):
        self.mem.write_block(self.regs.I, bytes(alu.bcd(self.regs.V[ops.x])))

    def _op_ld_dump(self, ops: Operands):
        self.mem.write_block(self.regs.I, bytes(self.regs.V[:ops.x + 1]))

    def _op_ld_load(self, ops: Operands):
        data = self.mem.read_block(self.regs.I, ops.x + 1)
        self.regs.V[:ops.x + 1] = data

    # --- Display ---

    def _op_drw(self, ops: Operands):
        rows = self.mem.read_block(self.regs.I, ops.n)
        collision = self.display.draw_sprite(
            self.regs.V[ops.x], self.regs.V[ops.y], rows)
        self.regs.V[FLAG] = collision

    # --- Timers / keypad ---

    def _op_ld_vx_dt(self, ops: Operands):
        self.regs.V[ops.x] = self.timers.delay

    def _op_ld_dt(self, ops: Operands):
        self.timers.delay = self.regs.V[ops.x]

    def _op_ld_st(self, ops: Operands):
        self.timers.sound = self.regs.V[ops.x]

    def _op_ld_key(self, ops: Operands):
        key = self.keypad.first_pressed()
        if key is None:
            # Run this instruction again next cycle
            self.regs.PC -= 2
        else:
            self.regs.V[ops.x] = key
