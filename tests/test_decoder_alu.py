"""
Decoder field extraction, opcode naming and ALU arithmetic.
"""

import pytest

from chip8_vm.cpu import alu
from chip8_vm.cpu.decoder import decode_fields, identify
from chip8_vm.errors import UnsupportedInstruction


# ─── Field extraction ─────────────────────

class TestDecodeFields:
    def test_all_fields(self):
        ops = decode_fields(0xD123)
        assert ops.nnn == 0x123
        assert ops.nn == 0x23
        assert ops.n == 0x3
        assert ops.x == 0x1
        assert ops.y == 0x2

    def test_extremes(self):
        assert decode_fields(0x0000) == (0, 0, 0, 0, 0)
        assert decode_fields(0xFFFF) == (0xFFF, 0xFF, 0xF, 0xF, 0xF)

    def test_fields_in_range_across_words(self):
        for word in range(0, 0x10000, 0x0101):
            ops = decode_fields(word)
            assert ops.nnn == word & 0xFFF
            assert 0 <= ops.x <= 0xF and 0 <= ops.y <= 0xF


# ─── Opcode table ─────────────────────

class TestIdentify:
    @pytest.mark.parametrize("word,mnem", [
        (0x00E0, 'CLS'), (0x00EE, 'RET'), (0x1ABC, 'JP'), (0x2ABC, 'CALL'),
        (0x3A12, 'SE_IMM'), (0x4A12, 'SNE_IMM'), (0x5AB0, 'SE_REG'),
        (0x6A12, 'LD_IMM'), (0x7A12, 'ADD_IMM'),
        (0x8AB0, 'LD_REG'), (0x8AB1, 'OR'), (0x8AB2, 'AND'), (0x8AB3, 'XOR'),
        (0x8AB4, 'ADD'), (0x8AB5, 'SUB'), (0x8AB6, 'SHR'), (0x8AB7, 'SUBN'),
        (0x8ABE, 'SHL'), (0x9AB0, 'SNE_REG'), (0xA123, 'LD_I'),
        (0xB123, 'JP_V0'), (0xCA12, 'RND'), (0xDAB5, 'DRW'),
        (0xEA9E, 'SKP'), (0xEAA1, 'SKNP'),
        (0xFA07, 'LD_VX_DT'), (0xFA0A, 'LD_KEY'), (0xFA15, 'LD_DT'),
        (0xFA18, 'LD_ST'), (0xFA1E, 'ADD_I'), (0xFA29, 'LD_F'),
        (0xFA33, 'LD_B'), (0xFA55, 'LD_DUMP'), (0xFA65, 'LD_LOAD'),
    ])
    def test_known(self, word, mnem):
        assert identify(word) == mnem

    def test_groups_5_and_9_ignore_low_nibble(self):
        assert identify(0x5AB7) == 'SE_REG'
        assert identify(0x9AB1) == 'SNE_REG'

    @pytest.mark.parametrize("word", [0x0000, 0x00E1, 0x0FFF, 0x8AB8, 0x8ABD, 0xEA9F, 0xEAA2, 0xFA00, 0xFA66])
    def test_unsupported(self, word):
        with pytest.raises(UnsupportedInstruction) as exc:
            identify(word, pc=0x2A4)
        assert exc.value.word == word
        assert exc.value.pc == 0x2A4
        assert "$2A4" in str(exc.value)


# ─── ALU ─────────────────────

class TestALU:
    def test_add8_all_pairs(self):
        for a in range(256):
            for b in range(256):
                result, flag = alu.add8(a, b)
                assert result == (a + b) % 256
                assert flag == (1 if a + b >= 256 else 0)

    def test_sub8_all_pairs(self):
        for a in range(256):
            for b in range(256):
                result, flag = alu.sub8(a, b)
                assert result == (a - b) % 256
                assert flag == (1 if a < b else 0)

    def test_wrap8_has_no_flag(self):
        assert alu.wrap8(0xFF, 0x01) == 0x00
        assert alu.wrap8(0x10, 0x20) == 0x30

    def test_shifts(self):
        assert alu.shr8(0x01) == (0x00, 1)
        assert alu.shr8(0xFE) == (0x7F, 0)
        assert alu.shl8(0x80) == (0x00, 1)
        assert alu.shl8(0x7F) == (0xFE, 0)

    def test_add16(self):
        assert alu.add16(0xFFFF, 0x01) == (0x0000, 1)
        assert alu.add16(0x0FFF, 0xFF) == (0x10FE, 0)

    def test_bcd(self):
        assert alu.bcd(234) == (2, 3, 4)
        assert alu.bcd(5) == (0, 0, 5)
        assert alu.bcd(0) == (0, 0, 0)
