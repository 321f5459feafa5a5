"""Conversion of real float32 sample streams into complex (I/Q) form."""

from __future__ import annotations

import logging
from typing import BinaryIO

import numpy as np

log = logging.getLogger(__name__)

_SAMPLE = np.dtype(np.float32)
_ROTATION = np.array([1.0, -1.0j, -1.0, 1.0j], dtype=np.complex128)


def _as_block(samples) -> np.ndarray:
    block = np.asarray(samples, dtype=np.float32).ravel()
    if block.size == 0:
        raise ValueError("a block needs at least one sample")
    return block


def hilbert_block(samples) -> np.ndarray:
    """Form I/Q from one block using an FFT-based Hilbert transform.

    Positive frequencies are doubled, negative ones cleared and DC kept; the
    inverse transform is unnormalised.  I is the input minus the imaginary part
    of that result and Q its real part.
    """
    raw = _as_block(samples)
    n = raw.size
    spectrum = np.fft.fft(raw.astype(np.float64))
    half = n // 2
    spectrum[1:half] *= 2.0
    spectrum[max(half, 1):] = 0.0
    transformed = np.fft.ifft(spectrum) * n
    out = np.empty(n, dtype=np.complex64)
    out.real = raw.astype(np.float64) - transformed.imag
    out.imag = transformed.real
    return out


def downconvert_block(samples) -> np.ndarray:
    """Mix one block down by a quarter of the sample rate.

    Samples are multiplied by 1, -j, -1, j in turn, starting afresh each block.
    """
    raw = _as_block(samples)
    rotation = _ROTATION[np.arange(raw.size) % 4]
    return (raw.astype(np.float64) * rotation).astype(np.complex64)


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


class RealToQuadrature:
    """Converts a stream of real float32 samples, ``size`` at a time, into I/Q pairs."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("block size must be at least 1")
        self.size = size

    def _process(self, source: BinaryIO, sink: BinaryIO, convert) -> int:
        block_bytes = self.size * _SAMPLE.itemsize
        blocks = 0
        while True:
            data = _read_exact(source, block_bytes)
            if len(data) < block_bytes:
                log.info("short pipe, processSampleSet")
                return blocks
            out = convert(np.frombuffer(data, dtype=_SAMPLE))
            sink.write(out.astype(np.complex64).tobytes())
            blocks += 1

    def process_hilbert(self, source: BinaryIO, sink: BinaryIO) -> int:
        """Convert with the Hilbert method; returns the number of blocks written."""
        return self._process(source, sink, hilbert_block)

    def process_downconversion(self, source: BinaryIO, sink: BinaryIO) -> int:
        """Convert by quarter-rate mixing; returns the number of blocks written."""
        return self._process(source, sink, downconvert_block)