import pytest

from nanoboy.arm.state import (
    BANK_COUNT,
    Bank,
    Mode,
    RegisterFile,
    StatusRegister,
    bank_for_mode,
)


def test_reset_enters_supervisor_mode_with_interrupts_masked():
    regs = RegisterFile()
    assert regs.cpsr.mode == Mode.SVC
    assert regs.cpsr.mask_irq == 1
    assert regs.cpsr.mask_fiq == 1
    assert regs.cpsr.thumb == 0
    assert regs.reg == [0] * 16
    assert all(spsr.value == 0 for spsr in regs.spsr)
    assert len(regs.bank) == BANK_COUNT


def test_reset_restores_after_changes():
    regs = RegisterFile()
    cpsr = regs.cpsr
    regs.reg[3] = 99
    regs.bank[Bank.IRQ][5] = 7
    regs.cpsr.value = Mode.USR
    regs.reset()
    assert regs.reg[3] == 0
    assert regs.bank[Bank.IRQ][5] == 0
    assert regs.cpsr is cpsr
    assert regs.cpsr.mode == Mode.SVC


def test_named_registers_alias_the_list():
    regs = RegisterFile()
    regs.r15 = 0x08000000
    regs.r13 = 0x03007F00
    assert regs.reg[15] == 0x08000000
    assert regs.reg[13] == 0x03007F00
    regs.reg[14] = 5
    assert regs.r14 == 5


@pytest.mark.parametrize("name", ["n", "z", "c", "v", "q", "thumb", "mask_irq", "mask_fiq"])
def test_flag_fields_are_independent(name):
    sr = StatusRegister(Mode.SYS)
    setattr(sr, name, True)
    assert getattr(sr, name) == 1
    assert sr.mode == Mode.SYS
    setattr(sr, name, 0)
    assert sr == StatusRegister(Mode.SYS)


def test_flags_live_in_top_bits():
    sr = StatusRegister(0)
    sr.n = 1
    assert sr.value >> 31 == 1
    sr.value = 0xFFFFFFFF
    assert (sr.n, sr.z, sr.c, sr.v) == (1, 1, 1, 1)
    assert sr.mode == 0x1F


def test_mode_change_keeps_flags():
    sr = StatusRegister(0)
    sr.z = 1
    sr.mode = Mode.IRQ
    assert sr.mode == Mode.IRQ
    assert sr.z == 1


@pytest.mark.parametrize(
    "mode, bank",
    [
        (Mode.USR, Bank.NONE),
        (Mode.SYS, Bank.NONE),
        (Mode.FIQ, Bank.FIQ),
        (Mode.IRQ, Bank.IRQ),
        (Mode.SVC, Bank.SVC),
        (Mode.ABT, Bank.ABT),
        (Mode.UND, Bank.UND),
        (0x00, Bank.INVALID),
        (0x14, Bank.INVALID),
    ],
)
def test_bank_for_mode(mode, bank):
    assert bank_for_mode(mode) == bank