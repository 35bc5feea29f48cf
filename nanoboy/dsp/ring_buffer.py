"""Fixed-capacity FIFO of samples."""

from nanoboy.dsp.stereo import Stream


class RingBuffer(Stream):
    """A circular buffer; reading an empty buffer returns the slot under the read pointer."""

    def __init__(self, length: int, blocking: bool = False):
        self._length = length
        self._blocking = blocking
        self._data = [0] * length
        self._rd = 0
        self._wr = 0
        self._count = 0

    def available(self) -> int:
        return self._count

    def reset(self) -> None:
        self._rd = 0
        self._wr = 0
        self._count = 0
        self._data = [0] * self._length

    def peek(self, offset: int):
        return self._data[(self._rd + offset) % self._length]

    def read(self):
        value = self._data[self._rd]
        if self._count > 0:
            self._rd = (self._rd + 1) % self._length
            self._count -= 1
        return value

    def write(self, value) -> None:
        if self._blocking and self._count == self._length:
            return
        self._data[self._wr] = value
        self._wr = (self._wr + 1) % self._length
        self._count += 1