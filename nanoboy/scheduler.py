"""Event scheduler driving all timed hardware activity."""

import enum
from dataclasses import dataclass

from nanoboy.log import FatalError, Level, log
from nanoboy.save_state import SchedulerEvent

MAX_EVENTS = 64
_MASK64 = (1 << 64) - 1


class EventClass(enum.IntEnum):
    ARM_LDM_USERMODE_CONFLICT = 0
    PPU_HDRAW_VDRAW = 1
    PPU_HBLANK_VDRAW = 2
    PPU_HDRAW_VBLANK = 3
    PPU_HBLANK_VBLANK = 4
    PPU_BEGIN_SPRITE_FETCH = 5
    PPU_UPDATE_VCOUNT_FLAG = 6
    PPU_VIDEO_DMA = 7
    PPU_LATCH_DISPCNT = 8
    PPU_HBLANK_IRQ = 9
    PPU_VBLANK_IRQ = 10
    PPU_VCOUNT_IRQ = 11
    APU_MIXER = 12
    APU_SEQUENCER = 13
    APU_PSG1_GENERATE = 14
    APU_PSG2_GENERATE = 15
    APU_PSG3_GENERATE = 16
    APU_PSG4_GENERATE = 17
    IRQ_WRITE_IO = 18
    IRQ_UPDATE_IE_AND_IF = 19
    IRQ_UPDATE_IRQ_LINE = 20
    TM_OVERFLOW = 21
    TM_WRITE_RELOAD = 22
    TM_WRITE_CONTROL = 23
    DMA_ACTIVATED = 24
    EEPROM_READY = 25
    SIO_TRANSFER_DONE = 26
    END_OF_QUEUE = 27


class SchedulerError(FatalError):
    """Raised when the scheduler is misused or runs out of events."""


@dataclass(eq=False)
class Event:
    """A scheduled event; instances are pooled and reused by the scheduler."""

    handle: int
    timestamp: int = 0
    key: int = 0
    uid: int = 0
    user_data: int = 0
    event_class: EventClass = EventClass.END_OF_QUEUE


def _fail(message: str) -> None:
    log(Level.FATAL, "{}", message)
    raise SchedulerError(message)


class Scheduler:
    """Binary min-heap of events keyed by timestamp and priority."""

    def __init__(self):
        self._heap = [Event(handle=i) for i in range(MAX_EVENTS)]
        self._heap_size = 0
        self._callbacks = {}
        self.timestamp_now = 0
        self._next_uid = 1
        self.register(EventClass.END_OF_QUEUE, self._end_of_queue)
        self.reset()

    def reset(self) -> None:
        self._heap_size = 0
        self.timestamp_now = 0
        self._next_uid = 1
        self.add(_MASK64, EventClass.END_OF_QUEUE)

    def timestamp_target(self) -> int:
        return self._heap[0].timestamp

    def remaining_cycle_count(self) -> int:
        """Cycles until the next event, as a signed 32-bit value."""
        value = (self.timestamp_target() - self.timestamp_now) & 0xFFFFFFFF
        return value - (1 << 32) if value & 0x80000000 else value

    def add_cycles(self, cycles: int) -> None:
        timestamp_next = self.timestamp_now + cycles
        self._step(timestamp_next)
        self.timestamp_now = timestamp_next

    def register(self, event_class: EventClass, callback) -> None:
        """Set the handler of an event class; it is called with the event's user data."""
        self._callbacks[EventClass(event_class)] = callback

    def add(self, delay: int, event_class: EventClass, priority: int = 0, user_data: int = 0) -> Event:
        if self._heap_size >= MAX_EVENTS:
            _fail("Scheduler: reached maximum number of events.")
        if not 0 <= priority <= 3:
            _fail("Scheduler: priority must be between 0 and 3.")

        n = self._heap_size
        self._heap_size += 1

        event = self._heap[n]
        event.timestamp = (self.timestamp_now + delay) & _MASK64
        event.key = ((event.timestamp << 2) | priority) & _MASK64
        event.uid = self._next_uid
        self._next_uid += 1
        event.user_data = user_data
        event.event_class = EventClass(event_class)

        self._sift_up(n)
        return event

    def cancel(self, event: Event) -> None:
        self._remove(event.handle)

    def get_event_by_uid(self, uid: int):
        for event in self._heap[:self._heap_size]:
            if event.uid == uid:
                return event
        return None

    def load_state(self, state) -> None:
        saved = state.scheduler
        for entry in saved.events[:saved.event_count]:
            event_class = EventClass(entry.event_class)
            # The end-of-queue event was already created by reset().
            if event_class == EventClass.END_OF_QUEUE:
                continue
            timestamp = entry.key >> 2
            priority = entry.key & 3
            delay = (timestamp - state.timestamp) & _MASK64
            self.add(delay, event_class, priority, entry.user_data).uid = entry.uid
        # Must come last, because add() advances the UID counter.
        self._next_uid = saved.next_uid

    def copy_state(self, state) -> None:
        saved = state.scheduler
        saved.events = [
            SchedulerEvent(event.key, event.uid, event.user_data, int(event.event_class))
            for event in self._heap[:self._heap_size]
        ]
        saved.event_count = self._heap_size
        saved.next_uid = self._next_uid

    def _step(self, timestamp_next: int) -> None:
        while self._heap[0].timestamp <= timestamp_next and self._heap_size > 0:
            event = self._heap[0]
            self.timestamp_now = event.timestamp
            callback = self._callbacks.get(event.event_class)
            if callback is None:
                _fail(f"Scheduler: unhandled event class: {int(event.event_class)}")
            callback(event.user_data)
            self._remove(event.handle)

    def _end_of_queue(self, user_data: int) -> None:
        _fail("Scheduler: reached end of the event queue.")

    def _sift_up(self, n: int) -> None:
        heap = self._heap
        while n != 0:
            p = (n - 1) // 2
            if heap[p].key <= heap[n].key:
                break
            self._swap(n, p)
            n = p

    def _remove(self, n: int) -> None:
        self._heap_size -= 1
        self._swap(n, self._heap_size)
        if n != 0 and self._heap[(n - 1) // 2].key > self._heap[n].key:
            self._sift_up(n)
        else:
            self._heapify(n)

    def _swap(self, i: int, j: int) -> None:
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        heap[i].handle = i
        heap[j].handle = j

    def _heapify(self, n: int) -> None:
        heap = self._heap
        left = n * 2 + 1
        right = n * 2 + 2
        if left < self._heap_size and heap[left].key < heap[n].key:
            self._swap(left, n)
            self._heapify(left)
        if right < self._heap_size and heap[right].key < heap[n].key:
            self._swap(right, n)
            self._heapify(right)


def event_uid(event) -> int:
    """UID of an event, or 0 when there is none."""
    return event.uid if event is not None else 0