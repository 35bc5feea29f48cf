from types import SimpleNamespace

import pytest

from nanoboy.arm.alu import Access, AluMixin
from nanoboy.arm.state import Bank, Condition, Mode, RegisterFile
from nanoboy.arm.thumb import ThumbDataOp, ThumbMixin, build_thumb_table, thumb_handler

START_PC = 0x1000


class FakeBus:
    def __init__(self):
        self.memory = bytearray(0x10000)
        self.idles = 0

    @staticmethod
    def _addr(address, size):
        return (address & ~(size - 1)) & 0xFFFF

    def _read(self, address, size):
        a = self._addr(address, size)
        return int.from_bytes(self.memory[a:a + size], "little")

    def _write(self, address, value, size):
        a = self._addr(address, size)
        self.memory[a:a + size] = value.to_bytes(size, "little")

    def read_byte(self, address, access):
        return self._read(address, 1)

    def read_half(self, address, access):
        return self._read(address, 2)

    def read_word(self, address, access):
        return self._read(address, 4)

    def write_byte(self, address, value, access):
        self._write(address, value, 1)

    def write_half(self, address, value, access):
        self._write(address, value, 2)

    def write_word(self, address, value, access):
        self._write(address, value, 4)

    def idle(self):
        self.idles += 1


class FakeCPU(ThumbMixin, AluMixin):
    def __init__(self):
        self.state = RegisterFile()
        self.state.cpsr.thumb = 1
        self.state.r15 = START_PC
        self.bus = FakeBus()
        self.pipe = SimpleNamespace(access=0, opcode=[0, 0])
        self.reloads = []

    def switch_mode(self, mode):
        self.state.cpsr.mode = mode

    def check_condition(self, condition):
        if condition == Condition.EQ:
            return bool(self.state.cpsr.z)
        if condition == Condition.NE:
            return not self.state.cpsr.z
        return True

    def reload_pipeline16(self):
        self.reloads.append((16, self.state.r15))
        self.state.r15 += 4

    def reload_pipeline32(self):
        self.reloads.append((32, self.state.r15))
        self.state.r15 += 8


@pytest.fixture
def cpu():
    return FakeCPU()


def test_table_matches_decoder():
    table = build_thumb_table()
    assert len(table) == 1024
    for index, handler in enumerate(table):
        expected = thumb_handler(index << 6)
        assert handler.func is expected.func
        assert handler.keywords == expected.keywords


def test_mov_immediate(cpu):
    thumb_handler(0x2005)(cpu, 0x2005)  # MOV r0, #5
    assert cpu.state.reg[0] == 5
    assert cpu.state.cpsr.n == 0
    assert cpu.state.cpsr.z == 0
    assert cpu.state.r15 == START_PC + 2
    assert cpu.pipe.access == int(Access.CODE | Access.SEQUENTIAL)


def test_mov_zero_sets_zero_flag(cpu):
    thumb_handler(0x2100)(cpu, 0x2100)  # MOV r1, #0
    assert cpu.state.reg[1] == 0
    assert cpu.state.cpsr.z == 1


def test_cmp_equal_sets_zero_and_carry(cpu):
    cpu.state.reg[2] = 0x42
    thumb_handler(0x2A42)(cpu, 0x2A42)  # CMP r2, #0x42
    assert cpu.state.cpsr.z == 1
    assert cpu.state.cpsr.c == 1
    assert cpu.state.reg[2] == 0x42


def test_add_then_sub_immediate_round_trip(cpu):
    cpu.state.reg[3] = 0x1234
    thumb_handler(0x3310)(cpu, 0x3310)  # ADD r3, #0x10
    assert cpu.state.reg[3] == 0x1244
    thumb_handler(0x3B10)(cpu, 0x3B10)  # SUB r3, #0x10
    assert cpu.state.reg[3] == 0x1234


def test_add_sub_register_round_trip(cpu):
    cpu.state.reg[1] = 100
    cpu.state.reg[2] = 27
    thumb_handler(0x1888)(cpu, 0x1888)  # ADD r0, r1, r2
    cpu.state.reg[3] = cpu.state.reg[0]
    thumb_handler(0x1A9C)(cpu, 0x1A9C)  # SUB r4, r3, r2
    assert cpu.state.reg[4] == 100


def test_eor_twice_is_identity(cpu):
    cpu.state.reg[0] = 0xDEADBEEF
    cpu.state.reg[1] = 0x12345678
    thumb_handler(0x4048)(cpu, 0x4048)  # EOR r0, r1
    thumb_handler(0x4048)(cpu, 0x4048)
    assert cpu.state.reg[0] == 0xDEADBEEF


def test_mvn_twice_is_identity(cpu):
    cpu.state.reg[1] = 0xCAFEBABE
    thumb_handler(0x43C8)(cpu, 0x43C8)  # MVN r0, r1
    cpu.state.reg[1] = cpu.state.reg[0]
    thumb_handler(0x43C8)(cpu, 0x43C8)
    assert cpu.state.reg[0] == 0xCAFEBABE


def test_neg_zero_sets_zero_flag(cpu):
    cpu.state.reg[1] = 0
    thumb_handler(0x4248)(cpu, 0x4248)  # NEG r0, r1
    assert cpu.state.reg[0] == 0
    assert cpu.state.cpsr.z == 1


def test_neg_twice_is_identity(cpu):
    cpu.state.reg[1] = 77
    thumb_handler(0x4248)(cpu, 0x4248)  # NEG r0, r1
    cpu.state.reg[1] = cpu.state.reg[0]
    thumb_handler(0x4248)(cpu, 0x4248)
    assert cpu.state.reg[0] == 77


def test_shift_immediate_round_trip(cpu):
    cpu.state.reg[1] = 0x1234
    thumb_handler(0x0108)(cpu, 0x0108)  # LSL r0, r1, #4
    cpu.state.reg[1] = cpu.state.reg[0]
    thumb_handler(0x090A)(cpu, 0x090A)  # LSR r2, r1, #4
    assert cpu.state.reg[2] == 0x1234
    assert cpu.state.r15 == START_PC + 4


def test_lsl_by_register_over_32_clears_result_and_carry(cpu):
    cpu.state.reg[0] = 0xFFFFFFFF
    cpu.state.reg[1] = 40
    cpu.state.cpsr.c = 1
    thumb_handler(0x4088)(cpu, 0x4088)  # LSL r0, r1
    assert cpu.state.reg[0] == 0
    assert cpu.state.cpsr.c == 0
    assert cpu.state.cpsr.z == 1
    assert cpu.bus.idles == 1
    assert cpu.pipe.access == int(Access.CODE | Access.NONSEQUENTIAL)


def test_mul_by_one_clears_carry(cpu):
    cpu.state.reg[0] = 1
    cpu.state.reg[1] = 0x89ABCDEF
    cpu.state.cpsr.c = 1
    thumb_handler(0x4348)(cpu, 0x4348)  # MUL r0, r1
    assert cpu.state.reg[0] == 0x89ABCDEF
    assert cpu.state.cpsr.c == 0
    assert cpu.state.cpsr.n == 1
    assert cpu.bus.idles >= 1


def test_mov_high_register(cpu):
    cpu.state.reg[0] = 0x55AA
    thumb_handler(0x4680)(cpu, 0x4680)  # MOV r8, r0
    assert cpu.state.reg[8] == 0x55AA
    assert cpu.state.r15 == START_PC + 2


def test_bx_to_arm(cpu):
    cpu.state.reg[1] = 0x2000
    thumb_handler(0x4708)(cpu, 0x4708)  # BX r1
    assert cpu.state.cpsr.thumb == 0
    assert cpu.reloads == [(32, 0x2000)]


def test_bx_stays_thumb_on_odd_address(cpu):
    cpu.state.reg[1] = 0x2001
    thumb_handler(0x4708)(cpu, 0x4708)
    assert cpu.state.cpsr.thumb == 1
    assert cpu.reloads == [(16, 0x2000)]


def test_str_ldr_register_offset_round_trip(cpu):
    cpu.state.reg[0] = 0x11223344
    cpu.state.reg[1] = 0x400
    cpu.state.reg[2] = 0x20
    thumb_handler(0x5088)(cpu, 0x5088)  # STR r0, [r1, r2]
    thumb_handler(0x588B)(cpu, 0x588B)  # LDR r3, [r1, r2]
    assert cpu.state.reg[3] == 0x11223344
    assert cpu.bus.idles == 1


def test_strb_ldrb_keeps_low_byte(cpu):
    cpu.state.reg[0] = 0x11223344
    cpu.state.reg[1] = 0x400
    cpu.state.reg[2] = 0x3
    thumb_handler(0x5488)(cpu, 0x5488)  # STRB r0, [r1, r2]
    thumb_handler(0x5C8B)(cpu, 0x5C8B)  # LDRB r3, [r1, r2]
    assert cpu.state.reg[3] == 0x44


def test_ldsb_sign_extends(cpu):
    cpu.state.reg[0] = 0x80
    cpu.state.reg[1] = 0x400
    cpu.state.reg[2] = 0
    thumb_handler(0x5488)(cpu, 0x5488)  # STRB r0, [r1, r2]
    thumb_handler(0x568B)(cpu, 0x568B)  # LDSB r3, [r1, r2]
    assert cpu.state.reg[3] == 0xFFFFFF80


def test_strh_ldrh_round_trip(cpu):
    cpu.state.reg[0] = 0xBEEF
    cpu.state.reg[1] = 0x500
    thumb_handler(0x8088)(cpu, 0x8088)  # STRH r0, [r1, #4]
    thumb_handler(0x888A)(cpu, 0x888A)  # LDRH r2, [r1, #4]
    assert cpu.state.reg[2] == 0xBEEF


def test_str_ldr_immediate_offset_round_trip(cpu):
    cpu.state.reg[0] = 0xA5A5A5A5
    cpu.state.reg[1] = 0x600
    thumb_handler(0x6088)(cpu, 0x6088)  # STR r0, [r1, #8]
    thumb_handler(0x688A)(cpu, 0x688A)  # LDR r2, [r1, #8]
    assert cpu.state.reg[2] == 0xA5A5A5A5


def test_sp_relative_round_trip(cpu):
    cpu.state.r13 = 0x800
    cpu.state.reg[0] = 0x0BADF00D
    thumb_handler(0x9002)(cpu, 0x9002)  # STR r0, [sp, #8]
    thumb_handler(0x9902)(cpu, 0x9902)  # LDR r1, [sp, #8]
    assert cpu.state.reg[1] == 0x0BADF00D


def test_add_offset_to_sp_round_trip(cpu):
    cpu.state.r13 = 0x3000
    thumb_handler(0xB010)(cpu, 0xB010)  # ADD sp, #0x40
    assert cpu.state.r13 == 0x3040
    thumb_handler(0xB090)(cpu, 0xB090)  # SUB sp, #0x40
    assert cpu.state.r13 == 0x3000


def test_load_address_from_sp(cpu):
    cpu.state.r13 = 0x3000
    thumb_handler(0xA801)(cpu, 0xA801)  # ADD r0, sp, #4
    assert cpu.state.reg[0] == 0x3000 + 4


def test_push_pop_round_trip(cpu):
    cpu.state.r13 = 0x4000
    cpu.state.reg[0] = 0x1111
    cpu.state.reg[1] = 0x2222
    cpu.state.r14 = 0x3001
    thumb_handler(0xB503)(cpu, 0xB503)  # PUSH {r0, r1, lr}
    assert cpu.state.r13 < 0x4000
    thumb_handler(0xBD0C)(cpu, 0xBD0C)  # POP {r2, r3, pc}
    assert cpu.state.r13 == 0x4000
    assert cpu.state.reg[2] == 0x1111
    assert cpu.state.reg[3] == 0x2222
    assert cpu.reloads == [(16, 0x3000)]


def test_stmia_ldmia_round_trip(cpu):
    cpu.state.reg[4] = 0x700
    cpu.state.reg[0] = 0xAAAA
    cpu.state.reg[1] = 0xBBBB
    thumb_handler(0xC403)(cpu, 0xC403)  # STMIA r4!, {r0, r1}
    assert cpu.state.reg[4] == 0x700 + 8
    cpu.state.reg[5] = 0x700
    thumb_handler(0xCD0C)(cpu, 0xCD0C)  # LDMIA r5!, {r2, r3}
    assert cpu.state.reg[2] == 0xAAAA
    assert cpu.state.reg[3] == 0xBBBB
    assert cpu.state.reg[5] == cpu.state.reg[4]


def test_conditional_branch_not_taken(cpu):
    cpu.state.cpsr.z = 0
    thumb_handler(0xD004)(cpu, 0xD004)  # BEQ
    assert cpu.reloads == []
    assert cpu.state.r15 == START_PC + 2


def test_conditional_branch_taken(cpu):
    cpu.state.cpsr.z = 1
    thumb_handler(0xD004)(cpu, 0xD004)  # BEQ +8
    assert cpu.reloads == [(16, START_PC + 8)]


def test_unconditional_branch_backwards(cpu):
    thumb_handler(0xE7FE)(cpu, 0xE7FE)  # B -4
    assert cpu.reloads == [(16, START_PC - 4)]


def test_swi_enters_supervisor_mode(cpu):
    cpu.state.cpsr.mode = Mode.SYS
    old_cpsr = cpu.state.cpsr.value
    thumb_handler(0xDF00)(cpu, 0xDF00)
    assert cpu.state.spsr[Bank.SVC].value == old_cpsr
    assert cpu.state.cpsr.mode == Mode.SVC
    assert cpu.state.cpsr.thumb == 0
    assert cpu.state.cpsr.mask_irq == 1
    assert cpu.state.r14 == START_PC - 2
    assert cpu.reloads == [(32, 0x08)]


def test_long_branch_with_link(cpu):
    thumb_handler(0xF000)(cpu, 0xF000)  # BL prefix, offset 0
    assert cpu.state.r14 == START_PC
    pc_before = cpu.state.r15
    thumb_handler(0xF810)(cpu, 0xF810)  # BL suffix, offset 0x10 halfwords
    assert cpu.state.r14 == (pc_before - 2) | 1
    assert cpu.reloads == [(16, START_PC + 0x20)]


def test_undefined_leaves_state_untouched(cpu):
    before = list(cpu.state.reg)
    ThumbMixin.thumb_undefined(cpu, 0xFFFF)
    assert cpu.state.reg == before
    assert cpu.reloads == []