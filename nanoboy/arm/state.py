"""Register file and program status registers of the ARM7TDMI."""

import enum

_MASK32 = 0xFFFFFFFF


class Mode(enum.IntEnum):
    USR = 0x10
    FIQ = 0x11
    IRQ = 0x12
    SVC = 0x13
    ABT = 0x17
    UND = 0x1B
    SYS = 0x1F


class Bank(enum.IntEnum):
    NONE = 0
    FIQ = 1
    SVC = 2
    ABT = 3
    IRQ = 4
    UND = 5
    INVALID = 7


BANK_COUNT = 6


class Condition(enum.IntEnum):
    EQ = 0
    NE = 1
    CS = 2
    CC = 3
    MI = 4
    PL = 5
    VS = 6
    VC = 7
    HI = 8
    LS = 9
    GE = 10
    LT = 11
    GT = 12
    LE = 13
    AL = 14
    NV = 15


class BankedRegister(enum.IntEnum):
    R8 = 0
    R9 = 1
    R10 = 2
    R11 = 3
    R12 = 4
    R13 = 5
    R14 = 6


def _bits(shift: int, width: int = 1) -> property:
    mask = (1 << width) - 1

    def getter(self) -> int:
        return (self.value >> shift) & mask

    def setter(self, bits) -> None:
        self.value = (self.value & ~(mask << shift)) | ((int(bits) & mask) << shift)

    return property(getter, setter)


class StatusRegister:
    """A CPSR/SPSR word with access to its individual fields."""

    __slots__ = ("_value",)

    def __init__(self, value: int = 0):
        self._value = int(value) & _MASK32

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, value: int) -> None:
        self._value = int(value) & _MASK32

    mode = _bits(0, 5)
    thumb = _bits(5)
    mask_fiq = _bits(6)
    mask_irq = _bits(7)
    q = _bits(27)
    v = _bits(28)
    c = _bits(29)
    z = _bits(30)
    n = _bits(31)

    def __eq__(self, other) -> bool:
        if isinstance(other, StatusRegister):
            return self._value == other._value
        return NotImplemented

    def __repr__(self) -> str:
        return f"StatusRegister(0x{self._value:08X})"


class RegisterFile:
    """General purpose, banked and status registers."""

    def __init__(self):
        self.reg = [0] * 16
        self.bank = [[0] * 7 for _ in range(BANK_COUNT)]
        self.cpsr = StatusRegister()
        self.spsr = [StatusRegister() for _ in range(BANK_COUNT)]
        self.reset()

    def reset(self) -> None:
        self.reg[:] = [0] * 16
        for row in self.bank:
            row[:] = [0] * 7
        for spsr in self.spsr:
            spsr.value = 0
        self.cpsr.value = Mode.SVC
        self.cpsr.mask_irq = 1
        self.cpsr.mask_fiq = 1

    @property
    def r13(self) -> int:
        return self.reg[13]

    @r13.setter
    def r13(self, value: int) -> None:
        self.reg[13] = value & _MASK32

    @property
    def r14(self) -> int:
        return self.reg[14]

    @r14.setter
    def r14(self, value: int) -> None:
        self.reg[14] = value & _MASK32

    @property
    def r15(self) -> int:
        return self.reg[15]

    @r15.setter
    def r15(self, value: int) -> None:
        self.reg[15] = value & _MASK32


_BANK_BY_MODE = {
    Mode.USR: Bank.NONE,
    Mode.SYS: Bank.NONE,
    Mode.FIQ: Bank.FIQ,
    Mode.IRQ: Bank.IRQ,
    Mode.SVC: Bank.SVC,
    Mode.ABT: Bank.ABT,
    Mode.UND: Bank.UND,
}


def bank_for_mode(mode: int) -> Bank:
    """Register bank used by a processor mode; INVALID for undefined modes."""
    return _BANK_BY_MODE.get(mode, Bank.INVALID)