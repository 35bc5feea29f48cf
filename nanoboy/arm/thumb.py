"""Thumb instruction handlers and the decode table for 16-bit opcodes."""

import enum
from functools import partial

from nanoboy.arm.alu import Access, do_shift, lsl, lsr, asr, ror
from nanoboy.arm.state import Bank, Condition, Mode

_MASK32 = 0xFFFFFFFF

_NONSEQ = int(Access.NONSEQUENTIAL)
_SEQ = int(Access.SEQUENTIAL)
_CODE_SEQ = int(Access.CODE | Access.SEQUENTIAL)
_CODE_NONSEQ = int(Access.CODE | Access.NONSEQUENTIAL)


class ThumbDataOp(enum.IntEnum):
    AND = 0
    EOR = 1
    LSL = 2
    LSR = 3
    ASR = 4
    ADC = 5
    SBC = 6
    ROR = 7
    TST = 8
    NEG = 9
    CMP = 10
    CMN = 11
    ORR = 12
    MUL = 13
    BIC = 14
    MVN = 15


def _registers(register_list: int):
    """Yield the numbers of the low registers set in an 8-bit register list."""
    return (reg for reg in range(8) if register_list & (1 << reg))


class ThumbMixin:
    """Thumb handlers for a CPU.

    The host class provides ``state`` (a RegisterFile), ``bus``, ``pipe``
    (with an ``access`` attribute), ``switch_mode``, ``check_condition``,
    ``reload_pipeline16``, ``reload_pipeline32`` and the AluMixin methods.
    """

    def _next_sequential(self) -> None:
        self.pipe.access = _CODE_SEQ
        self.state.r15 += 2

    def _next_nonsequential(self) -> None:
        self.pipe.access = _CODE_NONSEQ
        self.state.r15 += 2

    def thumb_move_shifted_register(self, instruction: int, op: int, imm: int) -> None:
        state = self.state
        dst = instruction & 7
        src = (instruction >> 3) & 7

        result, carry = do_shift(op, state.reg[src], imm, state.cpsr.c, True)

        state.cpsr.c = carry
        state.cpsr.z = result == 0
        state.cpsr.n = result >> 31
        state.reg[dst] = result
        self._next_sequential()

    def thumb_add_sub(self, instruction: int, immediate: bool, subtract: bool, field3: int) -> None:
        state = self.state
        dst = instruction & 7
        src = (instruction >> 3) & 7
        operand = field3 if immediate else state.reg[field3]

        if subtract:
            state.reg[dst] = self.sub(state.reg[src], operand, True)
        else:
            state.reg[dst] = self.add(state.reg[src], operand, True)
        self._next_sequential()

    def thumb_op3(self, instruction: int, op: int, dst: int) -> None:
        state = self.state
        imm = instruction & 0xFF

        if op == 0:
            state.reg[dst] = imm
            state.cpsr.n = 0
            state.cpsr.z = imm == 0
        elif op == 1:
            self.sub(state.reg[dst], imm, True)
        elif op == 2:
            state.reg[dst] = self.add(state.reg[dst], imm, True)
        else:
            state.reg[dst] = self.sub(state.reg[dst], imm, True)
        self._next_sequential()

    def _thumb_shift_by_register(self, dst: int, src: int, shifter) -> None:
        state = self.state
        shift = state.reg[src]
        self.bus.idle()
        self.pipe.access = _CODE_NONSEQ
        state.reg[dst], carry = shifter(state.reg[dst], shift, state.cpsr.c)
        self.set_zero_and_sign_flag(state.reg[dst])
        state.cpsr.c = carry

    def thumb_alu(self, instruction: int, op: int) -> None:
        state = self.state
        reg = state.reg
        dst = instruction & 7
        src = (instruction >> 3) & 7

        self._next_sequential()

        op = ThumbDataOp(op)
        if op is ThumbDataOp.AND:
            reg[dst] &= reg[src]
            self.set_zero_and_sign_flag(reg[dst])
        elif op is ThumbDataOp.EOR:
            reg[dst] ^= reg[src]
            self.set_zero_and_sign_flag(reg[dst])
        elif op is ThumbDataOp.LSL:
            self._thumb_shift_by_register(dst, src, lsl)
        elif op is ThumbDataOp.LSR:
            self._thumb_shift_by_register(dst, src, lambda v, a, c: lsr(v, a, c, False))
        elif op is ThumbDataOp.ASR:
            self._thumb_shift_by_register(dst, src, lambda v, a, c: asr(v, a, c, False))
        elif op is ThumbDataOp.ADC:
            reg[dst] = self.adc(reg[dst], reg[src], True)
        elif op is ThumbDataOp.SBC:
            reg[dst] = self.sbc(reg[dst], reg[src], True)
        elif op is ThumbDataOp.ROR:
            self._thumb_shift_by_register(dst, src, lambda v, a, c: ror(v, a, c, False))
        elif op is ThumbDataOp.TST:
            self.set_zero_and_sign_flag(reg[dst] & reg[src])
        elif op is ThumbDataOp.NEG:
            reg[dst] = self.sub(0, reg[src], True)
        elif op is ThumbDataOp.CMP:
            self.sub(reg[dst], reg[src], True)
        elif op is ThumbDataOp.CMN:
            self.add(reg[dst], reg[src], True)
        elif op is ThumbDataOp.ORR:
            reg[dst] |= reg[src]
            self.set_zero_and_sign_flag(reg[dst])
        elif op is ThumbDataOp.MUL:
            self.tick_multiply(reg[dst])
            self.pipe.access = _CODE_NONSEQ
            reg[dst] = (reg[dst] * reg[src]) & _MASK32
            self.set_zero_and_sign_flag(reg[dst])
            state.cpsr.c = 0
        elif op is ThumbDataOp.BIC:
            reg[dst] &= ~reg[src] & _MASK32
            self.set_zero_and_sign_flag(reg[dst])
        else:
            reg[dst] = ~reg[src] & _MASK32
            self.set_zero_and_sign_flag(reg[dst])

    def thumb_high_register_ops_bx(self, instruction: int, op: int, high1: bool, high2: bool) -> None:
        state = self.state
        dst = instruction & 7
        src = (instruction >> 3) & 7
        if high1:
            dst |= 8
        if high2:
            src |= 8

        operand = state.reg[src]
        if src == 15:
            operand &= ~1 & _MASK32

        if op == 3:
            # The lowest bit selects the instruction set: 0 = ARM, 1 = Thumb.
            if operand & 1:
                state.r15 = operand & ~1
                self.reload_pipeline16()
            else:
                state.cpsr.thumb = 0
                state.r15 = operand
                self.reload_pipeline32()
        elif op == 1:
            self.sub(state.reg[dst], operand, True)
            self._next_sequential()
        else:
            if op == 0:
                state.reg[dst] = (state.reg[dst] + operand) & _MASK32
            else:
                state.reg[dst] = operand

            if dst == 15:
                state.r15 &= ~1
                self.reload_pipeline16()
            else:
                self._next_sequential()

    def thumb_load_store_relative_pc(self, instruction: int, dst: int) -> None:
        state = self.state
        offset = instruction & 0xFF
        address = ((state.r15 & ~2) + (offset << 2)) & _MASK32

        self._next_nonsequential()

        state.reg[dst] = self.read_word(address, _NONSEQ)
        self.bus.idle()

    def thumb_load_store_offset_reg(self, instruction: int, op: int, off: int) -> None:
        state = self.state
        dst = instruction & 7
        base = (instruction >> 3) & 7
        address = (state.reg[base] + state.reg[off]) & _MASK32

        self._next_nonsequential()

        if op == 0:
            self.write_word(address, state.reg[dst], _NONSEQ)
        elif op == 1:
            self.write_byte(address, state.reg[dst] & 0xFF, _NONSEQ)
        elif op == 2:
            state.reg[dst] = self.read_word_rotate(address, _NONSEQ)
            self.bus.idle()
        else:
            state.reg[dst] = self.read_byte(address, _NONSEQ)
            self.bus.idle()

    def thumb_load_store_signed(self, instruction: int, op: int, off: int) -> None:
        state = self.state
        dst = instruction & 7
        base = (instruction >> 3) & 7
        address = (state.reg[base] + state.reg[off]) & _MASK32

        self._next_nonsequential()

        if op == 0:
            self.write_half(address, state.reg[dst], _NONSEQ)
        elif op == 1:
            state.reg[dst] = self.read_byte_signed(address, _NONSEQ)
            self.bus.idle()
        elif op == 2:
            state.reg[dst] = self.read_half_rotate(address, _NONSEQ)
            self.bus.idle()
        else:
            state.reg[dst] = self.read_half_signed(address, _NONSEQ)
            self.bus.idle()

    def thumb_load_store_offset_imm(self, instruction: int, op: int, imm: int) -> None:
        state = self.state
        dst = instruction & 7
        base = (instruction >> 3) & 7

        self._next_nonsequential()

        if op == 0:
            self.write_word((state.reg[base] + imm * 4) & _MASK32, state.reg[dst], _NONSEQ)
        elif op == 1:
            state.reg[dst] = self.read_word_rotate((state.reg[base] + imm * 4) & _MASK32, _NONSEQ)
            self.bus.idle()
        elif op == 2:
            self.write_byte((state.reg[base] + imm) & _MASK32, state.reg[dst], _NONSEQ)
        else:
            state.reg[dst] = self.read_byte((state.reg[base] + imm) & _MASK32, _NONSEQ)
            self.bus.idle()

    def thumb_load_store_hword(self, instruction: int, load: bool, imm: int) -> None:
        state = self.state
        dst = instruction & 7
        base = (instruction >> 3) & 7
        address = (state.reg[base] + imm * 2) & _MASK32

        self._next_nonsequential()

        if load:
            state.reg[dst] = self.read_half_rotate(address, _NONSEQ)
            self.bus.idle()
        else:
            self.write_half(address, state.reg[dst], _NONSEQ)

    def thumb_load_store_relative_to_sp(self, instruction: int, load: bool, dst: int) -> None:
        state = self.state
        offset = instruction & 0xFF
        address = (state.r13 + offset * 4) & _MASK32

        self._next_nonsequential()

        if load:
            state.reg[dst] = self.read_word_rotate(address, _NONSEQ)
            self.bus.idle()
        else:
            self.write_word(address, state.reg[dst], _NONSEQ)

    def thumb_load_address(self, instruction: int, stackptr: bool, dst: int) -> None:
        state = self.state
        offset = (instruction & 0xFF) << 2

        if stackptr:
            state.reg[dst] = (state.r13 + offset) & _MASK32
        else:
            state.reg[dst] = ((state.r15 & ~2) + offset) & _MASK32
        self._next_sequential()

    def thumb_add_offset_to_sp(self, instruction: int, sub: bool) -> None:
        state = self.state
        offset = (instruction & 0x7F) * 4
        state.r13 = state.r13 - offset if sub else state.r13 + offset
        self._next_sequential()

    def thumb_push_pop(self, instruction: int, pop: bool, rbit: bool) -> None:
        state = self.state
        register_list = instruction & 0xFF

        self._next_nonsequential()

        # An empty list transfers only r15 but moves the stack by 64 bytes.
        if register_list == 0 and not rbit:
            if pop:
                state.r15 = self.read_word(state.r13, _NONSEQ)
                self.reload_pipeline16()
                state.r13 += 0x40
            else:
                state.r13 -= 0x40
                self.write_word(state.r13, state.r15, _NONSEQ)
            return

        address = state.r13
        access = _NONSEQ

        if pop:
            for reg in _registers(register_list):
                state.reg[reg] = self.read_word(address, access)
                access = _SEQ
                address = (address + 4) & _MASK32

            if rbit:
                state.r15 = self.read_word(address, access) & ~1
                state.r13 = address + 4
                self.bus.idle()
                self.reload_pipeline16()
                return

            self.bus.idle()
            state.r13 = address
        else:
            count = sum(1 for _ in _registers(register_list)) + (1 if rbit else 0)
            address = (address - 4 * count) & _MASK32

            # The final stack pointer is stored before the transfer.
            state.r13 = address

            for reg in _registers(register_list):
                self.write_word(address, state.reg[reg], access)
                access = _SEQ
                address = (address + 4) & _MASK32

            if rbit:
                self.write_word(address, state.r14, access)

    def thumb_load_store_multiple(self, instruction: int, load: bool, base: int) -> None:
        state = self.state
        register_list = instruction & 0xFF

        self._next_nonsequential()

        if register_list == 0:
            if load:
                state.r15 = self.read_word(state.reg[base], _NONSEQ)
                self.reload_pipeline16()
            else:
                self.write_word(state.reg[base], state.r15, _NONSEQ)
            state.reg[base] = (state.reg[base] + 0x40) & _MASK32
            return

        if load:
            address = state.reg[base]
            access = _NONSEQ
            for reg in _registers(register_list):
                state.reg[reg] = self.read_word(address, access)
                access = _SEQ
                address = (address + 4) & _MASK32
            self.bus.idle()
            if not register_list & (1 << base):
                state.reg[base] = address
        else:
            registers = list(_registers(register_list))
            first, rest = registers[0], registers[1:]

            address = state.reg[base]
            base_new = (address + len(registers) * 4) & _MASK32

            self.write_word(address, state.reg[first], _NONSEQ)
            state.reg[base] = base_new
            address = (address + 4) & _MASK32

            for reg in rest:
                self.write_word(address, state.reg[reg], _SEQ)
                address = (address + 4) & _MASK32

    def thumb_conditional_branch(self, instruction: int, cond: int) -> None:
        state = self.state
        if self.check_condition(Condition(cond)):
            imm = instruction & 0xFF
            if imm & 0x80:
                imm |= 0xFFFFFF00
            state.r15 += imm * 2
            self.reload_pipeline16()
        else:
            self._next_sequential()

    def thumb_swi(self, instruction: int) -> None:
        state = self.state
        state.spsr[Bank.SVC].value = state.cpsr.value

        self.switch_mode(Mode.SVC)
        state.cpsr.thumb = 0
        state.cpsr.mask_irq = 1

        state.r14 = state.r15 - 2
        state.r15 = 0x08
        self.reload_pipeline32()

    def thumb_unconditional_branch(self, instruction: int) -> None:
        imm = (instruction & 0x3FF) * 2
        if instruction & 0x400:
            imm |= 0xFFFFF800
        self.state.r15 += imm
        self.reload_pipeline16()

    def thumb_long_branch_link(self, instruction: int, second_instruction: bool) -> None:
        state = self.state
        imm = instruction & 0x7FF

        if not second_instruction:
            imm <<= 12
            if imm & 0x400000:
                imm |= 0xFF800000
            state.r14 = state.r15 + imm
            self._next_sequential()
        else:
            temp = (state.r15 - 2) & _MASK32
            state.r15 = (state.r14 + imm * 2) & ~1
            state.r14 = temp | 1
            self.reload_pipeline16()

    def thumb_undefined(self, instruction: int) -> None:
        pass


def thumb_handler(instruction: int) -> partial:
    """Decode a Thumb opcode into a handler called as ``handler(cpu, instruction)``."""
    instruction &= 0xFFFF

    if (instruction & 0xF800) < 0x1800:
        return partial(
            ThumbMixin.thumb_move_shifted_register,
            op=(instruction >> 11) & 3,
            imm=(instruction >> 6) & 0x1F,
        )
    if (instruction & 0xF800) == 0x1800:
        return partial(
            ThumbMixin.thumb_add_sub,
            immediate=bool((instruction >> 10) & 1),
            subtract=bool((instruction >> 9) & 1),
            field3=(instruction >> 6) & 7,
        )
    if (instruction & 0xE000) == 0x2000:
        return partial(ThumbMixin.thumb_op3, op=(instruction >> 11) & 3, dst=(instruction >> 8) & 7)
    if (instruction & 0xFC00) == 0x4000:
        return partial(ThumbMixin.thumb_alu, op=(instruction >> 6) & 0xF)
    if (instruction & 0xFC00) == 0x4400:
        return partial(
            ThumbMixin.thumb_high_register_ops_bx,
            op=(instruction >> 8) & 3,
            high1=bool((instruction >> 7) & 1),
            high2=bool((instruction >> 6) & 1),
        )
    if (instruction & 0xF800) == 0x4800:
        return partial(ThumbMixin.thumb_load_store_relative_pc, dst=(instruction >> 8) & 7)
    if (instruction & 0xF200) == 0x5000:
        return partial(
            ThumbMixin.thumb_load_store_offset_reg,
            op=(instruction >> 10) & 3,
            off=(instruction >> 6) & 7,
        )
    if (instruction & 0xF200) == 0x5200:
        return partial(
            ThumbMixin.thumb_load_store_signed,
            op=(instruction >> 10) & 3,
            off=(instruction >> 6) & 7,
        )
    if (instruction & 0xE000) == 0x6000:
        return partial(
            ThumbMixin.thumb_load_store_offset_imm,
            op=(instruction >> 11) & 3,
            imm=(instruction >> 6) & 0x1F,
        )
    if (instruction & 0xF000) == 0x8000:
        return partial(
            ThumbMixin.thumb_load_store_hword,
            load=bool((instruction >> 11) & 1),
            imm=(instruction >> 6) & 0x1F,
        )
    if (instruction & 0xF000) == 0x9000:
        return partial(
            ThumbMixin.thumb_load_store_relative_to_sp,
            load=bool((instruction >> 11) & 1),
            dst=(instruction >> 8) & 7,
        )
    if (instruction & 0xF000) == 0xA000:
        return partial(
            ThumbMixin.thumb_load_address,
            stackptr=bool((instruction >> 11) & 1),
            dst=(instruction >> 8) & 7,
        )
    if (instruction & 0xFF00) == 0xB000:
        return partial(ThumbMixin.thumb_add_offset_to_sp, sub=bool((instruction >> 7) & 1))
    if (instruction & 0xF600) == 0xB400:
        return partial(
            ThumbMixin.thumb_push_pop,
            pop=bool((instruction >> 11) & 1),
            rbit=bool((instruction >> 8) & 1),
        )
    if (instruction & 0xF000) == 0xC000:
        return partial(
            ThumbMixin.thumb_load_store_multiple,
            load=bool((instruction >> 11) & 1),
            base=(instruction >> 8) & 7,
        )
    if (instruction & 0xFF00) < 0xDF00:
        return partial(ThumbMixin.thumb_conditional_branch, cond=(instruction >> 8) & 0xF)
    if (instruction & 0xFF00) == 0xDF00:
        return partial(ThumbMixin.thumb_swi)
    if (instruction & 0xF800) == 0xE000:
        return partial(ThumbMixin.thumb_unconditional_branch)
    if (instruction & 0xF000) == 0xF000:
        return partial(
            ThumbMixin.thumb_long_branch_link,
            second_instruction=bool((instruction >> 11) & 1),
        )
    return partial(ThumbMixin.thumb_undefined)


def build_thumb_table() -> list:
    """Handlers for all 1024 values of an opcode's upper ten bits."""
    return [thumb_handler(index << 6) for index in range(1024)]