"""Smooth FIR filters built from the transfer function (1 + t)^p (1 - t)^q."""

from __future__ import annotations

import logging
import math
from typing import BinaryIO

import numpy as np

from dsppipe.poly import Polynomial

log = logging.getLogger(__name__)

OUTPUTS_PER_BLOCK = 1024


def _smoothness_powers(cutoff: float) -> tuple[int, int]:
    """Choose p and q so that (p - q) / (p + q) approximates cos(pi * cutoff)."""
    k = math.cos(math.pi * cutoff)
    a = int(k * 8.0 + 0.5)
    b = 16 if a == 0 else int(a / k + 0.5)
    p, q = a + b, b - a
    log.info(
        "input cutoff was %f, K was %f, a/b(%d/%d) is %f, p is %d, and q is %d",
        cutoff, k, a, b, a / b, p, q,
    )
    return p, q


def _to_cosine_series(poly: tuple[float, ...]) -> list[float]:
    """Rewrite a power series in t = cos(w) as a series in cos(k w)."""
    n = len(poly)
    acc = [0.0] * n
    acc[0], acc[1] = poly[-2], poly[-1]
    for order in range(2, n):
        split = [0.0] * n
        split[1] = acc[0]
        for index, value in enumerate(acc[1:order], start=1):
            split[index - 1] += value / 2.0
            split[index + 1] += value / 2.0
        split[0] += poly[n - 1 - order]
        acc = split
    return acc


def design_coefficients(cutoff: float, high_pass: bool = False) -> np.ndarray:
    """Return the symmetric taps of a smooth low- or high-pass filter.

    ``cutoff`` is a fraction of the Nyquist frequency.
    """
    p, q = _smoothness_powers(cutoff)
    m = p + q
    shape = Polynomial([1.0, 1.0]).power(p).multiply(Polynomial([1.0, -1.0]).power(q))
    integral = shape.integrate(0.0, -1.0)
    fourier = _to_cosine_series(integral.coefficients)
    total = sum(fourier)

    centre = m + 1
    side = np.asarray(fourier[1:], dtype=np.float64) / 2.0 / total
    taps = np.empty(2 * m + 3, dtype=np.float64)
    taps[centre] = fourier[0] / total
    taps[centre + 1:] = side
    taps[:centre] = side[::-1]
    if high_pass:
        taps = -taps
        taps[centre] = 1.0 - fourier[0] / total
    return taps


def _read_exact(source: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = source.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class SmoothFIRFilter:
    """A decimating smooth FIR filter for real or complex (I/Q) float32 samples.

    Each block of ``input_length`` samples produces ``OUTPUTS_PER_BLOCK`` outputs;
    the tail of each block is kept as history for the next one.
    """

    def __init__(
        self,
        cutoff: float,
        decimation: int = 1,
        high_pass: bool = False,
        complex_filter: bool = True,
    ) -> None:
        if decimation < 1:
            raise ValueError("decimation must be at least 1")
        self.cutoff = cutoff
        self.decimation = decimation
        self.high_pass = high_pass
        self.complex_filter = complex_filter
        self.coefficients = design_coefficients(cutoff, high_pass)
        self.input_length = OUTPUTS_PER_BLOCK * decimation
        self._dtype = np.dtype(np.complex64 if complex_filter else np.float32)
        self._history = np.zeros((len(self.coefficients) - 1) * decimation, dtype=self._dtype)

    def filter_block(self, samples) -> np.ndarray:
        """Filter one block of ``input_length`` samples and return the outputs."""
        block = np.asarray(samples, dtype=self._dtype)
        if block.shape != (self.input_length,):
            raise ValueError(
                f"expected a block of {self.input_length} samples, got shape {block.shape}"
            )
        signal = np.concatenate((self._history, block))
        self._history = signal[len(signal) - len(self._history):].copy()
        spaced = signal[:: self.decimation]
        out = np.correlate(spaced, self.coefficients, mode="valid")
        return out.astype(self._dtype)

    def filter_stream(self, source: BinaryIO, sink: BinaryIO) -> int:
        """Filter raw float32 samples from ``source`` to ``sink``.

        Returns the number of blocks processed; a partial final block raises
        ``EOFError``.
        """
        block_bytes = self.input_length * self._dtype.itemsize
        blocks = 0
        while True:
            data = _read_exact(source, block_bytes)
            if not data:
                return blocks
            if len(data) < block_bytes:
                raise EOFError(f"short read: {len(data)} of {block_bytes} bytes")
            out = self.filter_block(np.frombuffer(data, dtype=self._dtype))
            sink.write(out.tobytes())
            blocks += 1