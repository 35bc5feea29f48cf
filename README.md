# nanoboy

Building blocks of a handheld game console emulator, in plain Python with no
third-party dependencies.

## What is inside

- `nanoboy.arm.cpu.ARM7TDMI`: an ARM7TDMI interpreter for both the ARM and
  Thumb instruction sets, with register banking, mode switching, IRQ entry
  (`signal_irq`) and `load_state` / `copy_state` against a `SaveState`.
  Its instruction handlers live in `nanoboy.arm.arm` (`ArmMixin`,
  `arm_handler`, `build_arm_table`) and `nanoboy.arm.thumb` (`ThumbMixin`,
  `thumb_handler`, `build_thumb_table`); the barrel shifter (`lsl`, `lsr`,
  `asr`, `ror`, `do_shift`), flag-setting arithmetic and memory helpers are in
  `nanoboy.arm.alu`; the register file, `StatusRegister`, `Mode`, `Bank` and
  `Condition` are in `nanoboy.arm.state`.
- `nanoboy.scheduler.Scheduler`: a min-heap of up to 64 events ordered by
  timestamp and priority (0 to 3), with callbacks registered per `EventClass`.
  Misuse raises `SchedulerError`.
- `nanoboy.rom.ROM`: cartridge ROM reads with address latching, open-bus
  values past the end of the image, an EEPROM window and a GPIO window, plus
  SRAM hooks. `Backup` and `GPIODevice` are the abstract interfaces for save
  chips and GPIO devices.
- `nanoboy.backup_file.BackupFile`: save memory mirrored in a file that is
  written through on every change (usable as a context manager).
- `nanoboy.save_state.SaveState`: dataclasses describing a full machine snapshot.
- `nanoboy.dsp`: `StereoSample`, stream interfaces, `RingBuffer`, and the
  `NearestResampler`, `CosineResampler`, `CubicResampler` and `SincResampler`.
- `nanoboy.config.Config` (with `AudioConfig`, `Interpolation`, `BackupType`,
  and null audio/video devices), `nanoboy.log` (`log`, `check`, `Level`,
  `FatalError`) and `nanoboy.crc32.crc32`.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example: running ARM code

The CPU talks to any object with `read_byte`, `read_half`, `read_word`,
`write_byte`, `write_half`, `write_word` and `idle` (see
`nanoboy.arm.alu.BusInterface`).

```python
from nanoboy.arm.cpu import ARM7TDMI
from nanoboy.scheduler import Scheduler


class FlatBus:
    def __init__(self, size=0x1000):
        self.memory = bytearray(size)
        self.mask = size - 1

    def _read(self, address, width):
        address &= self.mask
        return int.from_bytes(self.memory[address:address + width], "little")

    def _write(self, address, value, width):
        address &= self.mask
        self.memory[address:address + width] = value.to_bytes(width, "little")

    def read_byte(self, address, access): return self._read(address, 1)
    def read_half(self, address, access): return self._read(address, 2)
    def read_word(self, address, access): return self._read(address, 4)
    def write_byte(self, address, value, access): self._write(address, value, 1)
    def write_half(self, address, value, access): self._write(address, value, 2)
    def write_word(self, address, value, access): self._write(address, value, 4)
    def idle(self): pass


bus = FlatBus()
bus.write_word(0, 0xE3A00005, 0)  # MOV r0, #5
bus.write_word(4, 0xE2801003, 0)  # ADD r1, r0, #3

cpu = ARM7TDMI(Scheduler(), bus)
cpu.reload_pipeline32()
cpu.run()
cpu.run()
assert cpu.state.reg[1] == 8
```

## Example: resampling audio

```python
from nanoboy.dsp.resampler import CubicResampler
from nanoboy.dsp.stereo import StereoSample, WriteStream


class Collect(WriteStream):
    def __init__(self):
        self.samples = []

    def write(self, value):
        self.samples.append(value)


sink = Collect()
resampler = CubicResampler(sink)
resampler.set_sample_rates(32768, 48000)
for i in range(100):
    resampler.write(StereoSample(float(i), float(-i)))
print(len(sink.samples))
```

## Example: scheduling events

```python
from nanoboy.scheduler import EventClass, Scheduler

scheduler = Scheduler()
scheduler.register(EventClass.TM_OVERFLOW, lambda user_data: print("overflow", user_data))
scheduler.add(100, EventClass.TM_OVERFLOW, 0, 3)
scheduler.add_cycles(100)
```

## Example: checksums

```python
from nanoboy.crc32 import crc32

assert crc32(b"123456789") == 0xCBF43926
```

## What this package does not do

This is not a complete emulator and has no command to run games. There is no
memory bus, graphics, sound mixing, DMA, timers, interrupt controller or
keypad; the CPU needs a bus object supplied by the caller. `Backup` and
`GPIODevice` are interfaces only: no SRAM, FLASH or EEPROM chip, real-time
clock or solar sensor is included, and `ROM` expects a GPIO controller object
to be passed in. The null audio and video devices produce no sound or picture.