"""Emulator configuration and output device interfaces."""

import abc
import enum
from dataclasses import dataclass, field


class BackupType(enum.Enum):
    DETECT = enum.auto()
    NONE = enum.auto()
    SRAM = enum.auto()
    FLASH_64 = enum.auto()
    FLASH_128 = enum.auto()
    EEPROM_4 = enum.auto()
    EEPROM_64 = enum.auto()
    EEPROM_DETECT = enum.auto()

    def __str__(self) -> str:
        return _BACKUP_LABELS.get(self, "EEPROM_64")


_BACKUP_LABELS = {
    BackupType.DETECT: "Detect",
    BackupType.NONE: "None",
    BackupType.SRAM: "SRAM",
    BackupType.FLASH_64: "FLASH_64",
    BackupType.FLASH_128: "FLASH_128",
    BackupType.EEPROM_4: "EEPROM_4",
}


class Interpolation(enum.Enum):
    COSINE = enum.auto()
    CUBIC = enum.auto()
    SINC_32 = enum.auto()
    SINC_64 = enum.auto()
    SINC_128 = enum.auto()
    SINC_256 = enum.auto()


class AudioDevice(abc.ABC):
    """An audio output that pulls samples through a callback."""

    @abc.abstractmethod
    def get_sample_rate(self) -> int: ...

    @abc.abstractmethod
    def get_block_size(self) -> int: ...

    @abc.abstractmethod
    def open(self, callback) -> bool: ...

    @abc.abstractmethod
    def set_pause(self, value: bool) -> None: ...

    @abc.abstractmethod
    def close(self) -> None: ...


class NullAudioDevice(AudioDevice):
    """An audio device that never plays anything; it only tracks its state."""

    def __init__(self) -> None:
        self.callback = None
        self.paused = False

    @property
    def is_open(self) -> bool:
        return self.callback is not None

    def get_sample_rate(self) -> int:
        return 32768

    def get_block_size(self) -> int:
        return 4096

    def open(self, callback) -> bool:
        self.callback = callback
        return True

    def set_pause(self, value: bool) -> None:
        self.paused = bool(value)

    def close(self) -> None:
        self.callback = None


class VideoDevice(abc.ABC):
    """A video output that receives finished frames."""

    @abc.abstractmethod
    def draw(self, buffer) -> None: ...


class NullVideoDevice(VideoDevice):
    """A video device that shows nothing; it only counts frames."""

    def __init__(self) -> None:
        self.frames_drawn = 0

    def draw(self, buffer) -> None:
        self.frames_drawn += 1


@dataclass
class AudioConfig:
    interpolation: Interpolation = Interpolation.CUBIC
    volume: int = 100  # between 0 and 100
    mp2k_hle_enable: bool = False
    mp2k_hle_cubic: bool = True
    mp2k_hle_force_reverb: bool = True


@dataclass
class Config:
    skip_bios: bool = False
    audio: AudioConfig = field(default_factory=AudioConfig)
    audio_dev: AudioDevice = field(default_factory=NullAudioDevice)
    video_dev: VideoDevice = field(default_factory=NullVideoDevice)