import copy

from nanoboy.save_state import (
    CURRENT_VERSION,
    MAGIC_NUMBER,
    NoiseChannelState,
    QuadChannelState,
    SaveState,
    WaveChannelState,
)


def test_header_defaults():
    state = SaveState()
    assert state.magic == 0x5353424E
    assert state.version == CURRENT_VERSION == 9
    assert SaveState.MAGIC_NUMBER == MAGIC_NUMBER


def test_memory_sizes_match_hardware():
    state = SaveState()
    assert len(state.bus.memory.wram) == 0x40000
    assert len(state.bus.memory.iram) == 0x8000
    assert len(state.bus.memory.vram) == 0x18000
    assert len(state.backup.data) == 131072


def test_array_shapes():
    state = SaveState()
    assert len(state.arm.regs.gpr) == 16
    assert [len(row) for row in state.arm.regs.bank] == [7] * 6
    assert len(state.timer) == 4
    assert len(state.dma.channels) == 4
    assert len(state.apu.fifo) == 2
    assert len(state.apu.io.wave.wave_ram) == 2


def test_instances_do_not_share_mutable_defaults():
    first = SaveState()
    second = SaveState()
    first.bus.memory.wram[0] = 0x42
    first.timer[0].counter = 7
    first.arm.regs.bank[1][2] = 9
    assert second.bus.memory.wram[0] == 0
    assert second.timer[0].counter == 0
    assert second.arm.regs.bank[1][2] == 0
    assert first.timer[1].counter == 0


def test_channel_states_carry_common_psg_fields():
    for cls in (QuadChannelState, WaveChannelState, NoiseChannelState):
        channel = cls()
        channel.envelope.current_volume = 5
        assert channel.envelope.current_volume == 5
        assert channel.event_uid == 0


def test_deepcopy_round_trip():
    state = SaveState()
    state.arm.regs.cpsr = 0x1F
    state.scheduler.next_uid = 12
    clone = copy.deepcopy(state)
    assert clone == state
    clone.arm.regs.cpsr = 0
    assert clone != state