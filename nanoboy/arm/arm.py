"""ARM (32-bit) instruction handlers and the decode table for ARM opcodes."""

import enum
from functools import partial

from nanoboy.arm.alu import Access, do_shift
from nanoboy.arm.state import Bank, Mode
from nanoboy.scheduler import EventClass

_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1

_NONSEQ = int(Access.NONSEQUENTIAL)
_SEQ = int(Access.SEQUENTIAL)
_LOCK = int(Access.LOCK)
_CODE_SEQ = int(Access.CODE | Access.SEQUENTIAL)
_CODE_NONSEQ = int(Access.CODE | Access.NONSEQUENTIAL)


class DataOp(enum.IntEnum):
    AND = 0
    EOR = 1
    SUB = 2
    RSB = 3
    ADD = 4
    ADC = 5
    SBC = 6
    RSC = 7
    TST = 8
    TEQ = 9
    CMP = 10
    CMN = 11
    ORR = 12
    MOV = 13
    BIC = 14
    MVN = 15


_LOGICAL = {
    DataOp.AND: lambda a, b: a & b,
    DataOp.EOR: lambda a, b: a ^ b,
    DataOp.ORR: lambda a, b: a | b,
    DataOp.MOV: lambda a, b: b,
    DataOp.BIC: lambda a, b: a & ~b & _MASK32,
    DataOp.MVN: lambda a, b: ~b & _MASK32,
}

# Arithmetic operations: (ALU method name, operands swapped)
_ARITHMETIC = {
    DataOp.SUB: ("sub", False),
    DataOp.RSB: ("sub", True),
    DataOp.ADD: ("add", False),
    DataOp.ADC: ("adc", False),
    DataOp.SBC: ("sbc", False),
    DataOp.RSC: ("sbc", True),
}

_COMPARISONS = (DataOp.TST, DataOp.TEQ, DataOp.CMP, DataOp.CMN)


def _rotated_immediate(instruction: int) -> tuple[int, int]:
    """Return (value, rotation) of an 8-bit immediate with 4-bit rotate field."""
    return instruction & 0xFF, ((instruction >> 8) & 0xF) * 2


class ArmMixin:
    """ARM handlers for a CPU.

    The host class provides ``state``, ``bus``, ``pipe``, ``scheduler``,
    ``p_spsr``, ``cpu_mode_is_invalid``, ``ldm_usermode_conflict``,
    ``switch_mode``, ``get_reg``, ``set_reg``, ``get_spsr``,
    ``reload_pipeline16``, ``reload_pipeline32`` and the AluMixin methods.
    """

    def _reload_pipeline(self) -> None:
        if self.state.cpsr.thumb:
            self.reload_pipeline16()
        else:
            self.reload_pipeline32()

    def arm_data_processing(self, instruction: int, immediate: bool, opcode: int,
                            set_flags: bool, field4: int) -> None:
        opcode = DataOp(opcode)
        shift_type = (field4 >> 1) & 3
        shift_imm = not (field4 & 1)

        state = self.state
        cpsr = state.cpsr
        reg_dst = (instruction >> 12) & 0xF
        reg_op1 = (instruction >> 16) & 0xF
        reg_op2 = instruction & 0xF

        carry = cpsr.c
        self.pipe.access = _CODE_SEQ

        if immediate:
            value, shift = _rotated_immediate(instruction)
            if shift != 0:
                carry = (value >> (shift - 1)) & 1
                op2 = ((value >> shift) | (value << (32 - shift))) & _MASK32
            else:
                op2 = value
            op1 = self.get_reg(reg_op1)
        else:
            if shift_imm:
                shift = (instruction >> 7) & 0x1F
            else:
                shift = self.get_reg((instruction >> 8) & 0xF)
                state.r15 += 4
                self.bus.idle()
                self.pipe.access = _CODE_NONSEQ
            op1 = self.get_reg(reg_op1)
            op2 = self.get_reg(reg_op2)
            op2, carry = do_shift(shift_type, op2, shift, carry, shift_imm)

        if opcode in _LOGICAL:
            result = _LOGICAL[opcode](op1, op2)
            if set_flags:
                self.set_zero_and_sign_flag(result)
                cpsr.c = carry
            self.set_reg(reg_dst, result)
        elif opcode in _ARITHMETIC:
            name, swapped = _ARITHMETIC[opcode]
            lhs, rhs = (op2, op1) if swapped else (op1, op2)
            self.set_reg(reg_dst, getattr(self, name)(lhs, rhs, set_flags))
        elif opcode is DataOp.TST:
            self.set_zero_and_sign_flag(op1 & op2)
            cpsr.c = carry
        elif opcode is DataOp.TEQ:
            self.set_zero_and_sign_flag(op1 ^ op2)
            cpsr.c = carry
        elif opcode is DataOp.CMP:
            self.sub(op1, op2, True)
        else:
            self.add(op1, op2, True)

        if reg_dst == 15:
            if set_flags:
                spsr = self.get_spsr()
                self.switch_mode(spsr.mode)
                state.cpsr.value = spsr.value
            if opcode not in _COMPARISONS:
                self._reload_pipeline()
            elif immediate or shift_imm:
                state.r15 += 4
        elif immediate or shift_imm:
            state.r15 += 4

    def arm_status_transfer(self, instruction: int, immediate: bool, use_spsr: bool,
                            to_status: bool) -> None:
        state = self.state

        if to_status:
            mask = 0
            if instruction & (1 << 16):
                mask |= 0x000000FF
            if instruction & (1 << 17):
                mask |= 0x0000FF00
            if instruction & (1 << 18):
                mask |= 0x00FF0000
            if instruction & (1 << 19):
                mask |= 0xFF000000

            if immediate:
                value, shift = _rotated_immediate(instruction)
                op = ((value >> shift) | (value << (32 - shift))) & _MASK32
            else:
                op = self.get_reg(instruction & 0xF)

            if not use_spsr:
                # User mode may only change the condition code bits.
                if state.cpsr.mode == Mode.USR:
                    mask &= 0xFF000000
                if mask & 0xFF:
                    # Bit 4 of CPSR/SPSR is forced to one on the ARM7TDMI.
                    op |= 0x00000010
                    self.switch_mode(op & 0x1F)
                state.cpsr.value = (state.cpsr.value & ~mask) | (op & mask)
            elif self.p_spsr is not state.cpsr and not self.cpu_mode_is_invalid:
                self.p_spsr.value = (self.get_spsr().value & ~mask) | (op & mask)
        else:
            dst = (instruction >> 12) & 0xF
            if use_spsr:
                self.set_reg(dst, self.get_spsr().value)
            else:
                self.set_reg(dst, state.cpsr.value)

        self.pipe.access = _CODE_SEQ
        state.r15 += 4

    def arm_multiply(self, instruction: int, accumulate: bool, set_flags: bool) -> None:
        op1 = instruction & 0xF
        op2 = (instruction >> 8) & 0xF
        op3 = (instruction >> 12) & 0xF
        dst = (instruction >> 16) & 0xF

        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 4

        lhs = self.get_reg(op1)
        rhs = self.get_reg(op2)
        result = (lhs * rhs) & _MASK32

        self.tick_multiply(rhs)

        if accumulate:
            result = (result + self.get_reg(op3)) & _MASK32
            self.bus.idle()

        if set_flags:
            self.set_zero_and_sign_flag(result)

        self.set_reg(dst, result)

        if dst == 15:
            self.reload_pipeline32()

    def arm_multiply_long(self, instruction: int, sign_extend: bool, accumulate: bool,
                          set_flags: bool) -> None:
        op1 = instruction & 0xF
        op2 = (instruction >> 8) & 0xF
        dst_lo = (instruction >> 12) & 0xF
        dst_hi = (instruction >> 16) & 0xF

        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 4

        lhs = self.get_reg(op1)
        rhs = self.get_reg(op2)

        if sign_extend:
            signed_lhs = lhs - (1 << 32) if lhs & 0x80000000 else lhs
            signed_rhs = rhs - (1 << 32) if rhs & 0x80000000 else rhs
            result = (signed_lhs * signed_rhs) & _MASK64
        else:
            result = (lhs * rhs) & _MASK64

        self.tick_multiply(rhs, sign_extend)
        self.bus.idle()

        if accumulate:
            value = (self.get_reg(dst_hi) << 32) | self.get_reg(dst_lo)
            result = (result + value) & _MASK64
            self.bus.idle()

        result_hi = result >> 32

        if set_flags:
            self.state.cpsr.n = result_hi >> 31
            self.state.cpsr.z = result == 0

        self.set_reg(dst_lo, result & _MASK32)
        self.set_reg(dst_hi, result_hi)

        if dst_lo == 15 or dst_hi == 15:
            self.reload_pipeline32()

    def arm_single_data_swap(self, instruction: int, byte: bool) -> None:
        src = instruction & 0xF
        dst = (instruction >> 12) & 0xF
        base = (instruction >> 16) & 0xF

        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 4

        if byte:
            tmp = self.read_byte(self.get_reg(base), _NONSEQ)
            self.write_byte(self.get_reg(base), self.get_reg(src) & 0xFF, _NONSEQ | _LOCK)
        else:
            tmp = self.read_word_rotate(self.get_reg(base), _NONSEQ)
            self.write_word(self.get_reg(base), self.get_reg(src), _NONSEQ | _LOCK)

        self.bus.idle()
        self.set_reg(dst, tmp)

        if dst == 15:
            self.reload_pipeline32()

    def arm_branch_and_exchange(self, instruction: int) -> None:
        state = self.state
        address = self.get_reg(instruction & 0xF)

        if address & 1:
            state.r15 = address & ~1
            state.cpsr.thumb = 1
            self.reload_pipeline16()
        else:
            state.r15 = address
            self.reload_pipeline32()

    def _write_back(self, base: int, offset: int) -> None:
        self.set_reg(base, (self.get_reg(base) + offset) & _MASK32)

    def arm_halfword_signed_transfer(self, instruction: int, pre: bool, add: bool,
                                     immediate: bool, writeback: bool, load: bool,
                                     opcode: int) -> None:
        dst = (instruction >> 12) & 0xF
        base = (instruction >> 16) & 0xF
        address = self.get_reg(base)

        if immediate:
            offset = (instruction & 0xF) | ((instruction >> 4) & 0xF0)
        else:
            offset = self.get_reg(instruction & 0xF)

        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 4

        if not add:
            offset = -offset & _MASK32
        if pre:
            address = (address + offset) & _MASK32

        update_base = writeback or not pre

        if opcode == 1:
            if load:
                value = self.read_half_rotate(address, _NONSEQ)
                if update_base:
                    self._write_back(base, offset)
                self.bus.idle()
                self.set_reg(dst, value)
            else:
                self.write_half(address, self.get_reg(dst), _NONSEQ)
                if update_base:
                    self._write_back(base, offset)
        elif opcode == 2:
            if load:
                value = self.read_byte_signed(address, _NONSEQ)
                if update_base:
                    self._write_back(base, offset)
                self.bus.idle()
                self.set_reg(dst, value)
            else:
                # LDRD is unpredictable on ARMv4T; no memory access is performed.
                self.bus.idle()
                if update_base:
                    self._write_back(base, offset)
                self.bus.idle()
        elif opcode == 3:
            if load:
                value = self.read_half_signed(address, _NONSEQ)
                if update_base:
                    self._write_back(base, offset)
                self.bus.idle()
                self.set_reg(dst, value)
            else:
                # STRD is unpredictable on ARMv4T; no memory access is performed.
                self.bus.idle()
                if update_base:
                    self._write_back(base, offset)

        if load and dst == 15:
            self.reload_pipeline32()

    def arm_branch_and_link(self, instruction: int, link: bool) -> None:
        state = self.state
        offset = instruction & 0xFFFFFF
        if offset & 0x800000:
            offset |= 0xFF000000

        if link:
            self.set_reg(14, (state.r15 - 4) & _MASK32)

        state.r15 = state.r15 + offset * 4
        self.reload_pipeline32()

    def arm_single_data_transfer(self, instruction: int, immediate: bool, pre: bool,
                                 add: bool, byte: bool, writeback: bool, load: bool) -> None:
        dst = (instruction >> 12) & 0xF
        base = (instruction >> 16) & 0xF
        address = self.get_reg(base)

        if immediate:
            offset = instruction & 0xFFF
        else:
            shift_type = (instruction >> 5) & 3
            amount = (instruction >> 7) & 0x1F
            offset, _ = do_shift(shift_type, self.get_reg(instruction & 0xF), amount,
                                 self.state.cpsr.c, True)

        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 4

        if not add:
            offset = -offset & _MASK32
        if pre:
            address = (address + offset) & _MASK32

        update_base = writeback or not pre

        if load:
            if byte:
                value = self.read_byte(address, _NONSEQ)
            else:
                value = self.read_word_rotate(address, _NONSEQ)
            if update_base:
                self._write_back(base, offset)
            self.bus.idle()
            self.set_reg(dst, value)
        else:
            if byte:
                self.write_byte(address, self.get_reg(dst) & 0xFF, _NONSEQ)
            else:
                self.write_word(address, self.get_reg(dst), _NONSEQ)
            if update_base:
                self._write_back(base, offset)

        if load and dst == 15:
            self.reload_pipeline32()

    def arm_block_data_transfer(self, instruction: int, pre: bool, add: bool,
                                user_mode: bool, writeback: bool, load: bool) -> None:
        state = self.state
        base = (instruction >> 16) & 0xF
        register_list = instruction & 0xFFFF

        transfer_pc = bool(register_list & (1 << 15))
        address = self.get_reg(base)

        if register_list:
            first = next(i for i in range(16) if register_list & (1 << i))
            size = 4 * bin(register_list).count("1")
        else:
            # An empty list transfers r15 only, but moves the base by 64 bytes.
            register_list = 1 << 15
            first = 15
            transfer_pc = True
            size = 64

        use_user_bank = user_mode and (not load or not transfer_pc)
        old_mode = state.cpsr.mode
        if use_user_bank:
            self.switch_mode(Mode.USR)

        # Registers are always transferred with ascending addresses; decrementing
        # modes start from the final address and swap pre- and post-indexing.
        if add:
            base_new = (address + size) & _MASK32
        else:
            pre = not pre
            address = (address - size) & _MASK32
            base_new = address

        access = _NONSEQ
        self.pipe.access = _CODE_NONSEQ
        state.r15 += 4

        for i in range(first, 16):
            if not register_list & (1 << i):
                continue
            if pre:
                address = (address + 4) & _MASK32
            if load:
                value = self.read_word(address, access)
                if writeback and i == first:
                    self.set_reg(base, base_new)
                self.set_reg(i, value)
            else:
                self.write_word(address, self.get_reg(i), access)
                if writeback and i == first:
                    self.set_reg(base, base_new)
            if not pre:
                address = (address + 4) & _MASK32
            access = _SEQ

        if load:
            self.bus.idle()

            if use_user_bank:
                # For the next two cycles register accesses hit both banks.
                self.ldm_usermode_conflict = True
                self.scheduler.add(2, EventClass.ARM_LDM_USERMODE_CONFLICT)

            if transfer_pc:
                if user_mode:
                    spsr = self.get_spsr()
                    self.switch_mode(spsr.mode)
                    state.cpsr.value = spsr.value
                self._reload_pipeline()

        if use_user_bank:
            self.switch_mode(old_mode)

    def _enter_exception(self, mode: Mode, bank: Bank, vector: int) -> None:
        state = self.state
        state.spsr[bank].value = state.cpsr.value
        self.switch_mode(mode)
        state.cpsr.mask_irq = 1
        self.set_reg(14, (state.r15 - 4) & _MASK32)
        state.r15 = vector
        self.reload_pipeline32()

    def arm_undefined(self, instruction: int) -> None:
        self._enter_exception(Mode.UND, Bank.UND, 0x04)

    def arm_swi(self, instruction: int) -> None:
        self._enter_exception(Mode.SVC, Bank.SVC, 0x08)


def _data_processing_or_psr(instruction: int, immediate: bool) -> partial:
    set_flags = bool(instruction & (1 << 20))
    opcode = (instruction >> 21) & 0xF

    if not set_flags and 0b1000 <= opcode <= 0b1011:
        return partial(
            ArmMixin.arm_status_transfer,
            immediate=immediate,
            use_spsr=bool(instruction & (1 << 22)),
            to_status=bool(instruction & (1 << 21)),
        )
    return partial(
        ArmMixin.arm_data_processing,
        immediate=immediate,
        opcode=DataOp(opcode),
        set_flags=set_flags,
        field4=(instruction >> 4) & 0xF,
    )


def arm_handler(instruction: int) -> partial:
    """Decode an ARM opcode into a handler called as ``handler(cpu, instruction)``."""
    instruction &= 0xFFFFFFFF
    opcode = instruction & 0x0FFFFFFF

    pre = bool(instruction & (1 << 24))
    add = bool(instruction & (1 << 23))
    wb = bool(instruction & (1 << 21))
    load = bool(instruction & (1 << 20))

    group = opcode >> 26

    if group == 0b00:
        if opcode & (1 << 25):
            return _data_processing_or_psr(instruction, True)
        if (opcode & 0xFF000F0) == 0x1200010:
            return partial(ArmMixin.arm_branch_and_exchange)
        if (opcode & 0x10000F0) == 0x0000090:
            accumulate = bool(instruction & (1 << 21))
            set_flags = bool(instruction & (1 << 20))
            if opcode & (1 << 23):
                return partial(
                    ArmMixin.arm_multiply_long,
                    sign_extend=bool(instruction & (1 << 22)),
                    accumulate=accumulate,
                    set_flags=set_flags,
                )
            return partial(ArmMixin.arm_multiply, accumulate=accumulate, set_flags=set_flags)
        if (opcode & 0x10000F0) == 0x1000090:
            return partial(ArmMixin.arm_single_data_swap, byte=bool(instruction & (1 << 22)))
        if (opcode & 0xF0) == 0xB0 or (opcode & 0xD0) == 0xD0:
            return partial(
                ArmMixin.arm_halfword_signed_transfer,
                pre=pre,
                add=add,
                immediate=bool(instruction & (1 << 22)),
                writeback=wb,
                load=load,
                opcode=(instruction >> 5) & 3,
            )
        return _data_processing_or_psr(instruction, False)

    if group == 0b01:
        if (opcode & 0x2000010) == 0x2000010:
            return partial(ArmMixin.arm_undefined)
        return partial(
            ArmMixin.arm_single_data_transfer,
            immediate=not (instruction & (1 << 25)),
            pre=pre,
            add=add,
            byte=bool(instruction & (1 << 22)),
            writeback=wb,
            load=load,
        )

    if group == 0b10:
        if opcode & (1 << 25):
            return partial(ArmMixin.arm_branch_and_link, link=bool((opcode >> 24) & 1))
        return partial(
            ArmMixin.arm_block_data_transfer,
            pre=pre,
            add=add,
            user_mode=bool(instruction & (1 << 22)),
            writeback=wb,
            load=load,
        )

    # Coprocessor instructions are undefined; only SWI is handled here.
    if opcode & (1 << 25) and opcode & (1 << 24):
        return partial(ArmMixin.arm_swi)
    return partial(ArmMixin.arm_undefined)


def build_arm_table() -> list:
    """Handlers for all 4096 values of bits 27-20 and 7-4 of an opcode."""
    return [
        arm_handler(((index & 0xFF0) << 16) | ((index & 0xF) << 4))
        for index in range(4096)
    ]