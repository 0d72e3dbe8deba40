"""
Memory map, program loading, framebuffer edge policies, timers, keypad
and register set, exercised directly without the cycle driver.
"""

import pytest

from chip8_vm import Chip8Emulator, ProgramLoadError, OutOfBoundsAccess
from chip8_vm.cpu.regs import Registers
from chip8_vm.errors import CallStackOverflow, CallStackUnderflow
from chip8_vm.mem.memory import Memory, FONT_SET, MAX_PROGRAM_SIZE
from chip8_vm.periph.display import Display, SpritePolicy, WIDTH, HEIGHT
from chip8_vm.periph.keypad import Keypad
from chip8_vm.periph.timer import Timers


# =============================================================================
#  MEMORY
# =============================================================================

class TestMemory:
    def test_font_preloaded(self):
        mem = Memory()
        assert mem.read_block(0x000, 80) == FONT_SET
        assert mem.read_block(0x000, 5) == bytes([0xF0, 0x90, 0x90, 0x90, 0xF0])

    def test_load_program_at_0x200(self):
        mem = Memory()
        mem.load_program(b'\x12\x34\x56')
        assert mem.read16(0x200) == 0x1234
        assert mem.read8(0x202) == 0x56
        assert mem.program_size == 3

    def test_largest_program_fits(self):
        mem = Memory()
        mem.load_program(bytes([0xAA]) * MAX_PROGRAM_SIZE)
        assert mem.read8(0xFFF) == 0xAA

    def test_oversized_program_refused(self):
        mem = Memory()
        with pytest.raises(ProgramLoadError):
            mem.load_program(bytes(MAX_PROGRAM_SIZE + 1))
        assert mem.program_size == 0

    def test_empty_program_refused(self):
        with pytest.raises(ProgramLoadError):
            Memory().load_program(b'')

    def test_reload_clears_previous_tail(self):
        mem = Memory()
        mem.load_program(b'\x11\x11\x11\x11')
        mem.load_program(b'\x22\x22')
        assert mem.read_block(0x200, 4) == b'\x22\x22\x00\x00'

    def test_missing_file(self, tmp_path):
        emu = Chip8Emulator()
        with pytest.raises(ProgramLoadError, match="not found"):
            emu.load_program(tmp_path / "nope.ch8")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "prog.ch8"
        path.write_bytes(b'\x00\xE0')
        emu = Chip8Emulator()
        emu.load_program(str(path))
        assert emu.mem.read16(0x200) == 0x00E0
        assert emu.regs.PC == 0x200

    @pytest.mark.parametrize("addr", [-1, 0x1000, 0x1234])
    def test_out_of_range(self, addr):
        mem = Memory()
        with pytest.raises(OutOfBoundsAccess):
            mem.read8(addr)
        with pytest.raises(OutOfBoundsAccess):
            mem.write8(addr, 1)

    def test_block_write_is_all_or_nothing(self):
        mem = Memory()
        with pytest.raises(OutOfBoundsAccess):
            mem.write_block(0xFFE, b'\x01\x02\x03')
        assert mem.read_block(0xFFE, 2) == b'\x00\x00'

    def test_snapshot_diff(self):
        mem = Memory()
        before = mem.snapshot(0x300, 0x30F)
        mem.write8(0x305, 0x99)
        after = mem.snapshot(0x300, 0x30F)
        assert mem.diff_snapshots(before, after, 0x300) == {0x305: (0x00, 0x99)}

    def test_reset_keeps_program(self):
        mem = Memory()
        mem.load_program(b'\xAB\xCD')
        mem.write8(0x500, 7)
        mem.reset()
        assert mem.read16(0x200) == 0xABCD
        assert mem.read8(0x500) == 0
        assert mem.read_block(0, 80) == FONT_SET

    def test_hexdump(self):
        mem = Memory()
        mem.load_program(b'HI')
        text = mem.hexdump(0x200, 16)
        assert text.startswith('200  48 49 00')
        assert text.endswith('HI..............')


# =============================================================================
#  FRAMEBUFFER
# =============================================================================

GLYPH_ROW = bytes([0xF0])   # four lit pixels


class TestDisplay:
    def test_wrap_horizontal(self):
        d = Display(SpritePolicy.WRAP)
        assert d.draw_sprite(62, 0, GLYPH_ROW) == 0
        lit = [x for x in range(WIDTH) if d.pixel(x, 0)]
        assert lit == [0, 1, 62, 63]

    def test_wrap_vertical(self):
        d = Display(SpritePolicy.WRAP)
        d.draw_sprite(0, 30, bytes([0x80] * 4))
        lit = [y for y in range(HEIGHT) if d.pixel(0, y)]
        assert lit == [0, 1, 30, 31]

    def test_wrap_start_beyond_screen(self):
        d = Display(SpritePolicy.WRAP)
        d.draw_sprite(64 + 3, 32 + 2, bytes([0x80]))
        assert d.pixel(3, 2) == 1

    def test_clip(self):
        d = Display(SpritePolicy.CLIP)
        d.draw_sprite(62, 31, bytes([0xF0, 0xF0]))
        assert d.pixel(62, 31) == 1 and d.pixel(63, 31) == 1
        assert sum(d.pixels) == 2

    def test_clip_wraps_start_position(self):
        d = Display(SpritePolicy.CLIP)
        d.draw_sprite(70, 0, bytes([0x80]))
        assert d.pixel(6, 0) == 1

    def test_fail_leaves_framebuffer_untouched(self):
        d = Display(SpritePolicy.FAIL)
        with pytest.raises(OutOfBoundsAccess):
            d.draw_sprite(60, 0, GLYPH_ROW + bytes([0xFF]))
        assert not any(d.pixels)
        assert d.draw_count == 0

    def test_fail_on_start_position(self):
        d = Display(SpritePolicy.FAIL)
        with pytest.raises(OutOfBoundsAccess):
            d.draw_sprite(0, 32, bytes([0x00]))

    def test_fail_allows_sprite_touching_edge(self):
        d = Display(SpritePolicy.FAIL)
        d.draw_sprite(56, 31, bytes([0xFF]))
        assert sum(d.pixels) == 8

    def test_collision_only_when_pixel_turns_off(self):
        d = Display()
        d.draw_sprite(0, 0, bytes([0x80]))
        assert d.draw_sprite(1, 0, bytes([0x80])) == 0
        assert d.draw_sprite(0, 0, bytes([0xC0])) == 1
        assert d.pixel(0, 0) == 0 and d.pixel(1, 0) == 0

    def test_pixels_read_only(self):
        d = Display()
        with pytest.raises(TypeError):
            d.pixels[0] = 1

    def test_render(self):
        d = Display()
        d.draw_sprite(0, 0, bytes([0xA0]))
        first = d.render(on='#', off='.').splitlines()[0]
        assert first.startswith('#.#.')
        assert len(first) == WIDTH
        assert len(d.render_halfblocks().splitlines()) == HEIGHT // 2


# =============================================================================
#  TIMERS
# =============================================================================

class TestTimers:
    def test_delay_counts_down_to_zero(self):
        t = Timers()
        t.delay = 2
        t.tick(); t.tick(); t.tick()
        assert t.delay == 0

    def test_beep_exactly_on_one_to_zero(self):
        t = Timers()
        t.sound = 3
        assert [t.tick() for _ in range(5)] == [False, False, True, False, False]
        assert t.beeps == 1

    def test_listener_removed(self):
        t = Timers()
        heard = []
        cb = lambda: heard.append(1)
        t.on_beep(cb)
        t.remove_listener(cb)
        t.sound = 1
        assert t.tick() is True
        assert heard == []


# =============================================================================
#  KEYPAD + REGISTERS
# =============================================================================

class TestKeypad:
    def test_press_release(self):
        k = Keypad()
        k.press(0xF)
        assert k.is_pressed(0xF)
        assert k.first_pressed() == 0xF
        k.release(0xF)
        assert k.first_pressed() is None

    def test_refresh_from_source(self):
        k = Keypad()
        k.refresh(lambda: [True] + [False] * 15)
        assert k.state == b'\x01' + bytes(15)

    def test_refresh_wrong_length(self):
        with pytest.raises(ValueError):
            Keypad().refresh(lambda: [0] * 8)

    def test_bad_key(self):
        with pytest.raises(OutOfBoundsAccess):
            Keypad().is_pressed(16)


class TestRegisters:
    def test_power_on(self):
        r = Registers()
        assert r.PC == 0x200
        assert r.I == 0 and r.SP == 0
        assert r.V == bytearray(16)

    def test_stack_limits(self):
        r = Registers()
        with pytest.raises(CallStackUnderflow):
            r.pop()
        for i in range(16):
            r.push(0x200 + i)
        with pytest.raises(CallStackOverflow):
            r.push(0x300)
        assert r.pop() == 0x20F
        assert r.depth == 15

    def test_display(self):
        r = Registers()
        r.V[0xA] = 0x5C
        text = r.display()
        assert 'PC=0200' in text
        assert 'VA=5C' in text
