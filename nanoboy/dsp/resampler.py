"""Sample-rate converters that push their output into a WriteStream."""

import math

from nanoboy.dsp.ring_buffer import RingBuffer
from nanoboy.dsp.stereo import WriteStream


class Resampler(WriteStream):
    """Base class holding the output stream and the phase increment."""

    def __init__(self, output: WriteStream):
        self.output = output
        self.resample_phase_shift = 1.0

    def set_sample_rates(self, samplerate_in, samplerate_out) -> None:
        self.resample_phase_shift = samplerate_in / samplerate_out


class NearestResampler(Resampler):
    def __init__(self, output: WriteStream):
        super().__init__(output)
        self._phase = 0.0

    def write(self, value) -> None:
        while self._phase < 1.0:
            self.output.write(value)
            self._phase += self.resample_phase_shift
        self._phase -= 1.0


_COSINE_LUT_SIZE = 512
_COSINE_LUT = [
    (math.cos(math.pi * i / (_COSINE_LUT_SIZE - 1)) + 1.0) * 0.5
    for i in range(_COSINE_LUT_SIZE)
]


class CosineResampler(Resampler):
    def __init__(self, output: WriteStream):
        super().__init__(output)
        self._phase = 0.0
        self._previous = 0

    def write(self, value) -> None:
        while self._phase < 1.0:
            index = self._phase * (_COSINE_LUT_SIZE - 1)
            whole = int(index)
            a0 = _COSINE_LUT[whole]
            a1 = _COSINE_LUT[whole + 1]
            a = a0 + (a1 - a0) * (index - whole)
            self.output.write(self._previous * a + value * (1.0 - a))
            self._phase += self.resample_phase_shift
        self._phase -= 1.0
        self._previous = value


class CubicResampler(Resampler):
    def __init__(self, output: WriteStream):
        super().__init__(output)
        self._phase = 0.0
        self._previous = [0, 0, 0]

    def write(self, value) -> None:
        p0, p1, p2 = self._previous
        while self._phase < 1.0:
            mu = self._phase
            mu2 = mu * mu
            a0 = value - p0 - p2 + p1
            a1 = p2 - p1 - a0
            a2 = p0 - p2
            a3 = p1
            self.output.write(a0 * mu * mu2 + a1 * mu2 + a2 * mu + a3)
            self._phase += self.resample_phase_shift
        self._phase -= 1.0
        self._previous = [value, p0, p1]


_SINC_RESOLUTION = 512


class SincResampler(Resampler):
    """Windowed-sinc resampler with a Blackman window over ``points`` taps."""

    def __init__(self, output: WriteStream, points: int):
        if points % 4 != 0:
            raise ValueError("SincResampler: points must be divisible by four")
        super().__init__(output)
        self._points = points
        self._phase = 0.0
        self._lut: list[float] = []
        self._taps = RingBuffer(points)
        for _ in range(points - 1):
            self._taps.write(0)
        self.set_sample_rates(1, 1)

    def set_sample_rates(self, samplerate_in, samplerate_out) -> None:
        super().set_sample_rates(samplerate_in, samplerate_out)
        points = self._points
        cutoff = 0.9
        if self.resample_phase_shift > 1.0:
            cutoff /= self.resample_phase_shift

        lut = []
        for n in range(points):
            for m in range(_SINC_RESOLUTION):
                t = m / _SINC_RESOLUTION
                x1 = math.pi * (t - n + points / 2) + 1e-6
                x2 = 2 * math.pi * (n + t) / points
                sinc = math.sin(cutoff * x1) / x1
                blackman = 0.42 - 0.49 * math.cos(x2) + 0.076 * math.cos(2 * x2)
                lut.append(sinc * blackman)

        kernel_sum = sum(lut) / _SINC_RESOLUTION
        self._lut = [tap / kernel_sum for tap in lut]

    def write(self, value) -> None:
        self._taps.write(value)
        while self._phase < 1.0:
            x = int(self._phase * _SINC_RESOLUTION)
            sample = self._taps.peek(0) * self._lut[x]
            for n in range(1, self._points):
                sample = sample + self._taps.peek(n) * self._lut[x + n * _SINC_RESOLUTION]
            self.output.write(sample)
            self._phase += self.resample_phase_shift
        self._taps.read()
        self._phase -= 1.0