"""ARM7TDMI interpreter core: pipeline, mode switching and instruction dispatch."""

from dataclasses import dataclass, field

from nanoboy.arm.alu import Access, AluMixin
from nanoboy.arm.arm import ArmMixin, build_arm_table
from nanoboy.arm.state import (
    BANK_COUNT,
    Bank,
    Condition,
    RegisterFile,
    StatusRegister,
    bank_for_mode,
)
from nanoboy.arm.thumb import ThumbMixin, build_thumb_table
from nanoboy.scheduler import EventClass

_MASK32 = 0xFFFFFFFF

_CODE_SEQ = int(Access.CODE | Access.SEQUENTIAL)
_CODE_NONSEQ = int(Access.CODE | Access.NONSEQUENTIAL)


def build_condition_table() -> list:
    """Truth table indexed by ``(condition << 4) | NZCV``."""
    table = [False] * 256
    for flags in range(16):
        n = bool(flags & 8)
        z = bool(flags & 4)
        c = bool(flags & 2)
        v = bool(flags & 1)
        results = {
            Condition.EQ: z,
            Condition.NE: not z,
            Condition.CS: c,
            Condition.CC: not c,
            Condition.MI: n,
            Condition.PL: not n,
            Condition.VS: v,
            Condition.VC: not v,
            Condition.HI: c and not z,
            Condition.LS: not c or z,
            Condition.GE: n == v,
            Condition.LT: n != v,
            Condition.GT: not (z or n != v),
            Condition.LE: z or n != v,
            Condition.AL: True,
            Condition.NV: False,
        }
        for condition, result in results.items():
            table[(condition << 4) | flags] = result
    return table


_CONDITION_TABLE = build_condition_table()
_THUMB_TABLE = build_thumb_table()
_ARM_TABLE = build_arm_table()


@dataclass
class _Pipeline:
    access: int = _CODE_NONSEQ
    opcode: list = field(default_factory=lambda: [0xF0000000, 0xF0000000])


class ARM7TDMI(AluMixin, ThumbMixin, ArmMixin):
    """An ARM7TDMI CPU attached to a scheduler and a memory bus."""

    def __init__(self, scheduler, bus):
        self.scheduler = scheduler
        self.bus = bus
        self.state = RegisterFile()
        self.pipe = _Pipeline()
        self.irq_line = False
        self.latch_irq_disable = False
        self.ldm_usermode_conflict = False
        self.cpu_mode_is_invalid = False
        # Storage used while the CPU is in an undefined mode.
        self._invalid_bank = [0] * 7
        self._invalid_spsr = StatusRegister()
        self.p_spsr = self.state.cpsr

        scheduler.register(EventClass.ARM_LDM_USERMODE_CONFLICT, self._clear_ldm_usermode_conflict)
        self.reset()

    def reset(self) -> None:
        self.state.reset()
        self.switch_mode(self.state.cpsr.mode)

        self.pipe.opcode[0] = 0xF0000000
        self.pipe.opcode[1] = 0xF0000000
        self.pipe.access = _CODE_NONSEQ
        self.irq_line = False
        self.latch_irq_disable = bool(self.state.cpsr.mask_irq)
        self.ldm_usermode_conflict = False
        self.cpu_mode_is_invalid = False

    def get_fetched_opcode(self, slot: int) -> int:
        return self.pipe.opcode[slot]

    def run(self) -> None:
        """Execute one instruction, servicing a pending IRQ first."""
        if self.irq_line:
            self.signal_irq()

        state = self.state
        pipe = self.pipe
        instruction = pipe.opcode[0]

        self.latch_irq_disable = bool(state.cpsr.mask_irq)
        state.r15 &= ~1

        if state.cpsr.thumb:
            pipe.opcode[0] = pipe.opcode[1]
            pipe.opcode[1] = self.read_half(state.r15, pipe.access)
            instruction &= 0xFFFF
            _THUMB_TABLE[instruction >> 6](self, instruction)
        else:
            pipe.opcode[0] = pipe.opcode[1]
            pipe.opcode[1] = self.read_word(state.r15, pipe.access)
            if self.check_condition(instruction >> 28):
                index = ((instruction >> 16) & 0xFF0) | ((instruction >> 4) & 0x00F)
                _ARM_TABLE[index](self, instruction)
            else:
                pipe.access = _CODE_SEQ
                state.r15 += 4

    def _bank_row(self, bank: Bank) -> list:
        return self.state.bank[bank] if bank < BANK_COUNT else self._invalid_bank

    def _spsr_for(self, bank: Bank) -> StatusRegister:
        return self.state.spsr[bank] if bank < BANK_COUNT else self._invalid_spsr

    def switch_mode(self, new_mode) -> None:
        """Enter ``new_mode``, swapping banked registers as needed."""
        state = self.state
        old_bank = bank_for_mode(state.cpsr.mode)
        new_bank = bank_for_mode(new_mode)

        state.cpsr.mode = new_mode

        # In user/system mode SPSR reads return CPSR; writes are ignored elsewhere.
        self.p_spsr = state.cpsr if new_bank == Bank.NONE else self._spsr_for(new_bank)

        if old_bank == new_bank:
            return

        if old_bank == Bank.FIQ:
            state.bank[Bank.FIQ][:5] = state.reg[8:13]
            state.reg[8:13] = state.bank[Bank.NONE][:5]
        elif new_bank == Bank.FIQ:
            state.bank[Bank.NONE][:5] = state.reg[8:13]
            state.reg[8:13] = state.bank[Bank.FIQ][:5]

        old_row = self._bank_row(old_bank)
        new_row = self._bank_row(new_bank)
        old_row[5] = state.r13
        old_row[6] = state.r14
        state.r13 = new_row[5]
        state.r14 = new_row[6]

        self.cpu_mode_is_invalid = new_bank == Bank.INVALID

    def get_reg(self, reg_id: int) -> int:
        state = self.state
        is_banked = reg_id >= 8 and reg_id != 15
        result = 0
        if self.ldm_usermode_conflict and is_banked:
            result |= state.bank[Bank.NONE][reg_id - 8]
        if not self.cpu_mode_is_invalid or not is_banked:
            result |= state.reg[reg_id]
        return result

    def set_reg(self, reg_id: int, value: int) -> None:
        state = self.state
        value &= _MASK32
        is_banked = reg_id >= 8 and reg_id != 15
        if self.ldm_usermode_conflict and is_banked:
            state.bank[Bank.NONE][reg_id - 8] = value
        if not self.cpu_mode_is_invalid or not is_banked:
            state.reg[reg_id] = value

    def get_spsr(self) -> StatusRegister:
        # Bit 4 of CPSR/SPSR is forced to one on the ARM7TDMI.
        spsr = 0x00000010
        if self.ldm_usermode_conflict:
            spsr |= self.state.cpsr.value
        if not self.cpu_mode_is_invalid:
            spsr |= self.p_spsr.value
        return StatusRegister(spsr)

    def signal_irq(self) -> None:
        """Take the IRQ exception unless IRQs are latched as disabled."""
        if self.latch_irq_disable:
            return

        state = self.state

        # Prefetch of the next instruction; discarded, but it costs bus time.
        if state.cpsr.thumb:
            self.read_half(state.r15 & ~1, self.pipe.access)
        else:
            self.read_word(state.r15 & ~3, self.pipe.access)

        state.spsr[Bank.IRQ].value = state.cpsr.value

        self.switch_mode(0x12)
        state.cpsr.mask_irq = 1

        if state.cpsr.thumb:
            state.cpsr.thumb = 0
            self.set_reg(14, state.r15)
        else:
            self.set_reg(14, state.r15 - 4)

        state.r15 = 0x18
        self.reload_pipeline32()

    def check_condition(self, condition) -> bool:
        condition = int(condition)
        if condition == Condition.AL:
            return True
        return _CONDITION_TABLE[(condition << 4) | (self.state.cpsr.value >> 28)]

    def reload_pipeline16(self) -> None:
        state = self.state
        self.pipe.opcode[0] = self.read_half(state.r15, _CODE_NONSEQ)
        self.pipe.opcode[1] = self.read_half((state.r15 + 2) & _MASK32, _CODE_SEQ)
        self.pipe.access = _CODE_SEQ
        state.r15 += 4
        self.latch_irq_disable = bool(state.cpsr.mask_irq)

    def reload_pipeline32(self) -> None:
        state = self.state
        self.pipe.opcode[0] = self.read_word(state.r15, _CODE_NONSEQ)
        self.pipe.opcode[1] = self.read_word((state.r15 + 4) & _MASK32, _CODE_SEQ)
        self.pipe.access = _CODE_SEQ
        state.r15 += 8
        self.latch_irq_disable = bool(state.cpsr.mask_irq)

    def _clear_ldm_usermode_conflict(self, user_data: int) -> None:
        self.ldm_usermode_conflict = False

    def load_state(self, save_state) -> None:
        state = self.state
        regs = save_state.arm.regs

        state.reg[:] = [value & _MASK32 for value in regs.gpr[:16]]
        for i in range(BANK_COUNT):
            state.bank[i][:] = regs.bank[i][:7]
            state.spsr[i].value = regs.spsr[i]
        state.cpsr.value = regs.cpsr

        bank = bank_for_mode(state.cpsr.mode)
        self.p_spsr = state.cpsr if bank == Bank.NONE else self._spsr_for(bank)

        self.pipe.access = save_state.arm.pipe.access
        self.pipe.opcode[:] = save_state.arm.pipe.opcode[:2]
        self.irq_line = bool(save_state.arm.irq_line)

        self.ldm_usermode_conflict = False
        self.cpu_mode_is_invalid = False
        self.latch_irq_disable = bool(state.cpsr.mask_irq)

    def copy_state(self, save_state) -> None:
        state = self.state
        regs = save_state.arm.regs

        regs.gpr = list(state.reg)
        regs.bank = [list(row) for row in state.bank]
        regs.spsr = [spsr.value for spsr in state.spsr]
        regs.cpsr = state.cpsr.value

        save_state.arm.pipe.access = self.pipe.access
        save_state.arm.pipe.opcode = list(self.pipe.opcode)
        save_state.arm.irq_line = self.irq_line