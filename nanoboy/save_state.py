"""Snapshot of the complete emulator state."""

from dataclasses import dataclass, field


def _zeros(count: int):
    return field(default_factory=lambda: [0] * count)


def _many(count: int, factory):
    return field(default_factory=lambda: [factory() for _ in range(count)])


@dataclass
class ArmRegisters:
    gpr: list = _zeros(16)
    bank: list = field(default_factory=lambda: [[0] * 7 for _ in range(6)])
    cpsr: int = 0
    spsr: list = _zeros(6)


@dataclass
class ArmPipeline:
    access: int = 0
    opcode: list = _zeros(2)


@dataclass
class ArmState:
    regs: ArmRegisters = field(default_factory=ArmRegisters)
    pipe: ArmPipeline = field(default_factory=ArmPipeline)
    irq_line: bool = False


@dataclass
class BusMemory:
    wram: bytearray = field(default_factory=lambda: bytearray(0x40000))
    iram: bytearray = field(default_factory=lambda: bytearray(0x8000))
    pram: bytearray = field(default_factory=lambda: bytearray(0x400))
    oam: bytearray = field(default_factory=lambda: bytearray(0x400))
    vram: bytearray = field(default_factory=lambda: bytearray(0x18000))
    bios_latch: int = 0


@dataclass
class WaitstateControl:
    sram: int = 0
    ws0: list = _zeros(2)
    ws1: list = _zeros(2)
    ws2: list = _zeros(2)
    phi: int = 0
    prefetch: bool = False


@dataclass
class BusIO:
    waitcnt: WaitstateControl = field(default_factory=WaitstateControl)
    haltcnt: int = 0
    rcnt: list = _zeros(2)
    postflg: int = 0


@dataclass
class PrefetchState:
    active: bool = False
    head_address: int = 0
    last_address: int = 0
    count: int = 0
    countdown: int = 0
    thumb: bool = False


@dataclass
class BusState:
    memory: BusMemory = field(default_factory=BusMemory)
    io: BusIO = field(default_factory=BusIO)
    prefetch: PrefetchState = field(default_factory=PrefetchState)
    last_access: int = 0
    parallel_internal_cpu_cycle_limit: int = 0
    prefetch_buffer_was_disabled: bool = False


@dataclass
class IRQState:
    pending_ime: int = 0
    pending_ie: int = 0
    pending_if: int = 0
    reg_ime: int = 0
    reg_ie: int = 0
    reg_if: int = 0
    irq_available: bool = False


@dataclass
class PPUIO:
    dispcnt: int = 0
    greenswap: int = 0
    dispstat: int = 0
    vcount: int = 0
    bgcnt: list = _zeros(4)
    bghofs: list = _zeros(4)
    bgvofs: list = _zeros(4)
    bgpa: list = _zeros(2)
    bgpb: list = _zeros(2)
    bgpc: list = _zeros(2)
    bgpd: list = _zeros(2)
    bgx: list = _zeros(2)
    bgy: list = _zeros(2)
    winh: list = _zeros(2)
    winv: list = _zeros(2)
    winin: int = 0
    winout: int = 0
    mosaic: int = 0
    bldcnt: int = 0
    bldalpha: int = 0
    bldy: int = 0


@dataclass
class ReferencePoint:
    current: int = 0
    written: bool = False


@dataclass
class PPUState:
    io: PPUIO = field(default_factory=PPUIO)
    bgx: list = _many(2, ReferencePoint)
    bgy: list = _many(2, ReferencePoint)
    vram_bg_latch: int = 0
    dma3_video_transfer_running: bool = False


@dataclass
class LengthState:
    enabled: bool = False
    counter: int = 0


@dataclass
class EnvelopeState:
    active: bool = False
    direction: int = 0
    initial_volume: int = 0
    current_volume: int = 0
    divider: int = 0
    step: int = 0


@dataclass
class SweepState:
    active: bool = False
    direction: int = 0
    initial_freq: int = 0
    current_freq: int = 0
    shadow_freq: int = 0
    divider: int = 0
    shift: int = 0
    step: int = 0


@dataclass
class PSGState:
    enabled: bool = False
    step: int = 0
    length: LengthState = field(default_factory=LengthState)
    envelope: EnvelopeState = field(default_factory=EnvelopeState)
    sweep: SweepState = field(default_factory=SweepState)
    event_uid: int = 0


@dataclass
class QuadChannelState(PSGState):
    dac_enable: bool = False
    phase: int = 0
    wave_duty: int = 0
    sample: int = 0


@dataclass
class WaveChannelState(PSGState):
    playing: bool = False
    force_volume: bool = False
    phase: int = 0
    volume: int = 0
    frequency: int = 0
    dimension: int = 0
    wave_bank: int = 0
    wave_ram: list = field(default_factory=lambda: [[0] * 16 for _ in range(2)])


@dataclass
class NoiseChannelState(PSGState):
    dac_enable: bool = False
    frequency_shift: int = 0
    frequency_ratio: int = 0
    width: int = 0


@dataclass
class APUIO:
    quad: list = _many(2, QuadChannelState)
    wave: WaveChannelState = field(default_factory=WaveChannelState)
    noise: NoiseChannelState = field(default_factory=NoiseChannelState)
    soundcnt: int = 0
    soundbias: int = 0


@dataclass
class FIFOPipe:
    word: int = 0
    size: int = 0


@dataclass
class FIFOState:
    data: list = _zeros(7)
    pending: int = 0
    count: int = 0
    pipe: FIFOPipe = field(default_factory=FIFOPipe)


@dataclass
class APUState:
    io: APUIO = field(default_factory=APUIO)
    fifo: list = _many(2, FIFOState)
    resolution_old: int = 0


@dataclass
class TimerPending:
    reload: int = 0
    control: int = 0


@dataclass
class TimerState:
    counter: int = 0
    reload: int = 0
    control: int = 0
    pending: TimerPending = field(default_factory=TimerPending)
    event_uid: int = 0


@dataclass
class DMALatch:
    length: int = 0
    dst_address: int = 0
    src_address: int = 0
    bus: int = 0


@dataclass
class DMAChannelState:
    dst_address: int = 0
    src_address: int = 0
    length: int = 0
    control: int = 0
    latch: DMALatch = field(default_factory=DMALatch)
    is_fifo_dma: bool = False
    event_uid: int = 0


@dataclass
class DMAState:
    channels: list = _many(4, DMAChannelState)
    hblank_set: int = 0
    vblank_set: int = 0
    video_set: int = 0
    runnable_set: int = 0
    latch: int = 0


@dataclass
class FlashState:
    current_bank: int = 0
    phase: int = 0
    enable_chip_id: bool = False
    enable_erase: bool = False
    enable_write: bool = False
    enable_select: bool = False


@dataclass
class EEPROMState:
    state: int = 0
    address: int = 0
    serial_buffer: int = 0
    transmitted_bits: int = 0


@dataclass
class BackupState:
    data: bytearray = field(default_factory=lambda: bytearray(131072))
    flash: FlashState = field(default_factory=FlashState)
    eeprom: EEPROMState = field(default_factory=EEPROMState)


@dataclass
class RTCPort:
    sck: int = 0
    sio: int = 0
    cs: int = 0


@dataclass
class RTCControl:
    unknown1: bool = False
    per_minute_irq: bool = False
    unknown2: bool = False
    mode_24h: bool = False
    poweroff: bool = False


@dataclass
class RTCState:
    current_bit: int = 0
    current_byte: int = 0
    reg: int = 0
    data: int = 0
    buffer: list = _zeros(7)
    port: RTCPort = field(default_factory=RTCPort)
    state: int = 0
    control: RTCControl = field(default_factory=RTCControl)


@dataclass
class SolarSensorState:
    old_clk: bool = False
    counter: int = 0


@dataclass
class GPIOState:
    rtc: RTCState = field(default_factory=RTCState)
    solar_sensor: SolarSensorState = field(default_factory=SolarSensorState)
    allow_reads: bool = False
    rd_mask: int = 0
    port_data: int = 0


@dataclass
class SchedulerEvent:
    key: int = 0
    uid: int = 0
    user_data: int = 0
    event_class: int = 0


@dataclass
class SchedulerState:
    events: list = field(default_factory=list)
    event_count: int = 0
    next_uid: int = 0


MAGIC_NUMBER = 0x5353424E  # "NBSS"
CURRENT_VERSION = 9


@dataclass
class SaveState:
    MAGIC_NUMBER = MAGIC_NUMBER
    CURRENT_VERSION = CURRENT_VERSION

    magic: int = MAGIC_NUMBER
    version: int = CURRENT_VERSION
    timestamp: int = 0
    arm: ArmState = field(default_factory=ArmState)
    bus: BusState = field(default_factory=BusState)
    irq: IRQState = field(default_factory=IRQState)
    ppu: PPUState = field(default_factory=PPUState)
    apu: APUState = field(default_factory=APUState)
    timer: list = _many(4, TimerState)
    dma: DMAState = field(default_factory=DMAState)
    rom_address_latch: int = 0
    backup: BackupState = field(default_factory=BackupState)
    gpio: GPIOState = field(default_factory=GPIOState)
    keycnt: int = 0
    scheduler: SchedulerState = field(default_factory=SchedulerState)