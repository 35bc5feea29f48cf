"""Stereo samples and the stream interfaces of the audio pipeline."""

import abc
from dataclasses import dataclass


@dataclass
class StereoSample:
    """A pair of left/right values with element-wise arithmetic."""

    left: float = 0
    right: float = 0

    def __getitem__(self, index: int):
        if index == 0:
            return self.left
        if index == 1:
            return self.right
        raise IndexError("StereoSample: bad index")

    def _pair(self, other):
        if isinstance(other, StereoSample):
            return other.left, other.right
        return other, other

    def __add__(self, other):
        left, right = self._pair(other)
        return StereoSample(self.left + left, self.right + right)

    def __radd__(self, other):
        return self + other

    def __sub__(self, other):
        left, right = self._pair(other)
        return StereoSample(self.left - left, self.right - right)

    def __rsub__(self, other):
        left, right = self._pair(other)
        return StereoSample(left - self.left, right - self.right)

    def __mul__(self, other):
        left, right = self._pair(other)
        return StereoSample(self.left * left, self.right * right)

    def __rmul__(self, other):
        return self * other


class ReadStream(abc.ABC):
    @abc.abstractmethod
    def read(self): ...


class WriteStream(abc.ABC):
    @abc.abstractmethod
    def write(self, value) -> None: ...


class Stream(ReadStream, WriteStream):
    """A stream that can be both read and written."""