"""Game Pak ROM with its backup memory and GPIO port."""

import abc
import enum

_ROM_ADDRESS_MASK = 0x01FFFFFF


class Backup(abc.ABC):
    """Save memory of a cartridge.

    Serial EEPROM chips are mapped into the ROM address space rather than
    the SRAM area; such implementations set ``is_eeprom`` to True.
    """

    is_eeprom: bool = False

    @abc.abstractmethod
    def reset(self) -> None:
        """Return the chip to its power-on state."""

    @abc.abstractmethod
    def read(self, address: int) -> int:
        """Read one byte."""

    @abc.abstractmethod
    def write(self, address: int, value: int) -> None:
        """Write one byte."""

    @abc.abstractmethod
    def load_state(self, state) -> None:
        """Restore from a SaveState."""

    @abc.abstractmethod
    def copy_state(self, state) -> None:
        """Store into a SaveState."""


class PortDirection(enum.IntEnum):
    IN = 0  # device -> console
    OUT = 1  # console -> device


class GPIODevice(abc.ABC):
    """A device attached to the cartridge's general purpose I/O port."""

    def __init__(self):
        self._port_directions = 0

    @abc.abstractmethod
    def reset(self) -> None:
        """Return the device to its power-on state."""

    @abc.abstractmethod
    def read(self) -> int:
        """Read the port pins."""

    @abc.abstractmethod
    def write(self, value: int) -> None:
        """Drive the port pins."""

    def load_state(self, state) -> None:
        pass

    def copy_state(self, state) -> None:
        pass

    def set_port_directions(self, port_directions: int) -> None:
        self._port_directions = port_directions

    def get_port_direction(self, pin: int) -> PortDirection:
        return PortDirection((self._port_directions >> pin) & 1)


class ROM:
    """Cartridge ROM image plus optional backup chip and GPIO controller.

    ``gpio`` is any object offering ``is_readable()``, ``read(address)``,
    ``write(address, value)``, ``get(kind)``, ``load_state(state)`` and
    ``copy_state(state)``.
    """

    def __init__(self, data=b"", backup=None, gpio=None, rom_mask=_ROM_ADDRESS_MASK):
        self._data = bytearray(data)
        self._gpio = gpio
        self._rom_mask = rom_mask
        self._backup_sram = None
        self._backup_eeprom = None
        self._eeprom_mask = 0
        self.rom_address_latch = 0

        if backup is not None:
            if backup.is_eeprom:
                self._backup_eeprom = backup
                if len(self._data) >= 0x01000001:
                    self._eeprom_mask = 0x01FFFF00
                else:
                    self._eeprom_mask = 0x01000000
            else:
                self._backup_sram = backup

    def raw(self) -> bytearray:
        """The ROM image as stored."""
        return self._data

    def get_gpio_device(self, kind):
        if self._gpio is not None:
            return self._gpio.get(kind)
        return None

    def load_state(self, state) -> None:
        self.rom_address_latch = state.rom_address_latch
        for part in (self._backup_sram, self._backup_eeprom, self._gpio):
            if part is not None:
                part.load_state(state)

    def copy_state(self, state) -> None:
        state.rom_address_latch = self.rom_address_latch
        for part in (self._backup_sram, self._backup_eeprom, self._gpio):
            if part is not None:
                part.copy_state(state)

    def set_eeprom_size_hint(self, size) -> None:
        if self._backup_eeprom is not None:
            self._backup_eeprom.set_size_hint(size)

    def _is_gpio(self, address: int) -> bool:
        return self._gpio is not None and 0xC4 <= address <= 0xC8

    def _is_eeprom(self, address: int) -> bool:
        return self._backup_eeprom is not None and (address & self._eeprom_mask) == self._eeprom_mask

    def _read_data(self, width: int) -> int:
        latch = self.rom_address_latch
        return int.from_bytes(self._data[latch:latch + width], "little")

    def read_rom16(self, address: int, sequential: bool) -> int:
        address &= 0x01FFFFFE

        if self._is_gpio(address) and self._gpio.is_readable():
            return self._gpio.read(address)

        if self._is_eeprom(address):
            return self._backup_eeprom.read(0)

        if not sequential:
            self.rom_address_latch = address & self._rom_mask

        if self.rom_address_latch < len(self._data):
            data = self._read_data(2)
        else:
            data = (self.rom_address_latch >> 1) & 0xFFFF

        self.rom_address_latch = (self.rom_address_latch + 2) & self._rom_mask
        return data

    def read_rom32(self, address: int, sequential: bool) -> int:
        address &= 0x01FFFFFC

        if self._is_gpio(address) and self._gpio.is_readable():
            lsw = self._gpio.read(address | 0)
            msw = self._gpio.read(address | 2)
            return (msw << 16) | lsw

        if self._is_eeprom(address):
            lsw = self._backup_eeprom.read(0)
            msw = self._backup_eeprom.read(0)
            return (msw << 16) | lsw

        if not sequential:
            self.rom_address_latch = address & self._rom_mask

        if self.rom_address_latch < len(self._data):
            data = self._read_data(4)
        else:
            lsw = (self.rom_address_latch >> 1) & 0xFFFF
            msw = (lsw + 1) & 0xFFFF
            data = (msw << 16) | lsw

        self.rom_address_latch = (self.rom_address_latch + 4) & self._rom_mask
        return data

    def write_rom(self, address: int, value: int, sequential: bool) -> None:
        address &= 0x01FFFFFE

        if self._is_gpio(address):
            self._gpio.write(address, value & 0xFF)

        if self._is_eeprom(address):
            self._backup_eeprom.write(0, value & 0xFF)
        elif not sequential:
            self.rom_address_latch = address & self._rom_mask

    def read_sram(self, address: int) -> int:
        if self._backup_sram is not None:
            return self._backup_sram.read(address & 0x0EFFFFFF)
        return 0xFF

    def write_sram(self, address: int, value: int) -> None:
        if self._backup_sram is not None:
            self._backup_sram.write(address & 0x0EFFFFFF, value & 0xFF)