"""Barrel shifter, flag-setting arithmetic and memory helpers of the CPU."""

import enum
from typing import Protocol

_MASK32 = 0xFFFFFFFF


class Access(enum.IntFlag):
    NONSEQUENTIAL = 0
    SEQUENTIAL = 1
    CODE = 2
    DMA = 4
    LOCK = 8


class BusInterface(Protocol):
    """The memory bus as seen by the CPU."""

    def read_byte(self, address: int, access: int) -> int: ...

    def read_half(self, address: int, access: int) -> int: ...

    def read_word(self, address: int, access: int) -> int: ...

    def write_byte(self, address: int, value: int, access: int) -> None: ...

    def write_half(self, address: int, value: int, access: int) -> None: ...

    def write_word(self, address: int, value: int, access: int) -> None: ...

    def idle(self) -> None: ...


def lsl(operand: int, amount: int, carry: int) -> tuple[int, int]:
    """Logical shift left; returns (result, carry)."""
    amount &= 0xFF
    if amount == 0:
        return operand, carry
    if amount >= 32:
        return 0, (0 if amount > 32 else operand & 1)
    carry = ((operand << (amount - 1)) & _MASK32) >> 31
    return (operand << amount) & _MASK32, carry


def lsr(operand: int, amount: int, carry: int, immediate: bool) -> tuple[int, int]:
    """Logical shift right; an immediate shift of 0 means 32."""
    amount &= 0xFF
    if amount == 0:
        if not immediate:
            return operand, carry
        amount = 32
    if amount >= 32:
        return 0, (0 if amount > 32 else operand >> 31)
    return operand >> amount, (operand >> (amount - 1)) & 1


def asr(operand: int, amount: int, carry: int, immediate: bool) -> tuple[int, int]:
    """Arithmetic shift right; an immediate shift of 0 means 32."""
    amount &= 0xFF
    if amount == 0:
        if not immediate:
            return operand, carry
        amount = 32
    msb = operand >> 31
    fill = _MASK32 * msb
    if amount >= 32:
        return fill, msb
    carry = (operand >> (amount - 1)) & 1
    return ((operand >> amount) | (fill << (32 - amount))) & _MASK32, carry


def ror(operand: int, amount: int, carry: int, immediate: bool) -> tuple[int, int]:
    """Rotate right; an immediate rotation of 0 is RRX."""
    amount &= 0xFF
    if amount != 0 or not immediate:
        if amount == 0:
            return operand, carry
        amount %= 32
        operand = ((operand >> amount) | (operand << (32 - amount))) & _MASK32
        return operand, operand >> 31
    lsb = operand & 1
    return ((operand >> 1) | (carry << 31)) & _MASK32, lsb


_SHIFTS = (
    lambda operand, amount, carry, immediate: lsl(operand, amount, carry),
    lsr,
    asr,
    ror,
)


def do_shift(opcode: int, operand: int, amount: int, carry: int, immediate: bool) -> tuple[int, int]:
    """Apply shift type ``opcode`` (0 LSL, 1 LSR, 2 ASR, 3 ROR)."""
    return _SHIFTS[opcode & 3](operand, amount, carry, immediate)


class AluMixin:
    """Arithmetic and memory access for a CPU with ``state`` and ``bus`` attributes."""

    def set_zero_and_sign_flag(self, value: int) -> None:
        cpsr = self.state.cpsr
        cpsr.n = value >> 31
        cpsr.z = value == 0

    def tick_multiply(self, multiplier: int, is_signed: bool = True) -> None:
        """Spend the internal cycles of the multiplier's early termination."""
        mask = 0xFFFFFF00
        self.bus.idle()
        while True:
            multiplier &= mask
            if multiplier == 0:
                break
            if is_signed and multiplier == mask:
                break
            mask = (mask << 8) & _MASK32
            self.bus.idle()

    def add(self, op1: int, op2: int, set_flags: bool) -> int:
        result = (op1 + op2) & _MASK32
        if set_flags:
            cpsr = self.state.cpsr
            self.set_zero_and_sign_flag(result)
            cpsr.c = result < op1
            cpsr.v = ((~(op1 ^ op2)) & (op2 ^ result) & _MASK32) >> 31
        return result

    def adc(self, op1: int, op2: int, set_flags: bool) -> int:
        cpsr = self.state.cpsr
        total = op1 + op2 + cpsr.c
        result = total & _MASK32
        if set_flags:
            self.set_zero_and_sign_flag(result)
            cpsr.c = total >> 32
            cpsr.v = ((~(op1 ^ op2)) & (op2 ^ result) & _MASK32) >> 31
        return result

    def sub(self, op1: int, op2: int, set_flags: bool) -> int:
        result = (op1 - op2) & _MASK32
        if set_flags:
            cpsr = self.state.cpsr
            self.set_zero_and_sign_flag(result)
            cpsr.c = op1 >= op2
            cpsr.v = ((op1 ^ op2) & (op1 ^ result) & _MASK32) >> 31
        return result

    def sbc(self, op1: int, op2: int, set_flags: bool) -> int:
        cpsr = self.state.cpsr
        op3 = cpsr.c ^ 1
        result = (op1 - op2 - op3) & _MASK32
        if set_flags:
            self.set_zero_and_sign_flag(result)
            cpsr.c = op1 >= op2 + op3
            cpsr.v = ((op1 ^ op2) & (op1 ^ result) & _MASK32) >> 31
        return result

    def read_byte(self, address: int, access: int) -> int:
        return self.bus.read_byte(address, access)

    def read_half(self, address: int, access: int) -> int:
        return self.bus.read_half(address, access)

    def read_word(self, address: int, access: int) -> int:
        return self.bus.read_word(address, access)

    def read_byte_signed(self, address: int, access: int) -> int:
        value = self.bus.read_byte(address, access)
        if value & 0x80:
            value |= 0xFFFFFF00
        return value

    def read_half_rotate(self, address: int, access: int) -> int:
        value = self.bus.read_half(address, access)
        if address & 1:
            value = ((value >> 8) | (value << 24)) & _MASK32
        return value

    def read_half_signed(self, address: int, access: int) -> int:
        if address & 1:
            value = self.bus.read_byte(address, access)
            if value & 0x80:
                value |= 0xFFFFFF00
        else:
            value = self.bus.read_half(address, access)
            if value & 0x8000:
                value |= 0xFFFF0000
        return value

    def read_word_rotate(self, address: int, access: int) -> int:
        value = self.bus.read_word(address, access)
        shift = (address & 3) * 8
        return ((value >> shift) | (value << (32 - shift))) & _MASK32

    def write_byte(self, address: int, value: int, access: int) -> None:
        self.bus.write_byte(address, value & 0xFF, access)

    def write_half(self, address: int, value: int, access: int) -> None:
        self.bus.write_half(address, value & 0xFFFF, access)

    def write_word(self, address: int, value: int, access: int) -> None:
        self.bus.write_word(address, value & _MASK32, access)