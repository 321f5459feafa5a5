import io

import numpy as np
import pytest

from dsppipe.real_to_quadrature import (
    RealToQuadrature,
    downconvert_block,
    hilbert_block,
)


def test_downconvert_rotation():
    out = downconvert_block([1.0, 2.0, 3.0, 4.0, 5.0])
    np.testing.assert_allclose(out, [1, -2j, -3, 4j, 5])


def test_hilbert_constant_signal():
    n = 8
    out = hilbert_block(np.full(n, 2.0))
    np.testing.assert_allclose(out.real, np.full(n, 2.0), atol=1e-4)
    np.testing.assert_allclose(out.imag, np.full(n, n * 2.0), atol=1e-4)


def test_hilbert_cosine_identity():
    n, k = 64, 5
    t = np.arange(n)
    x = np.cos(2 * np.pi * k * t / n)
    out = hilbert_block(x)
    np.testing.assert_allclose(out.imag, n * x, atol=1e-3)
    np.testing.assert_allclose(out.real, x - n * np.sin(2 * np.pi * k * t / n), atol=1e-3)


def test_empty_blocks_rejected():
    with pytest.raises(ValueError):
        hilbert_block([])
    with pytest.raises(ValueError):
        downconvert_block([])


def test_invalid_size():
    with pytest.raises(ValueError):
        RealToQuadrature(0)


def test_downconversion_stream_restarts_phase_each_block():
    data = np.array([1, 1, 1, 1, 1, 1, 9], dtype=np.float32)
    sink = io.BytesIO()
    blocks = RealToQuadrature(3).process_downconversion(io.BytesIO(data.tobytes()), sink)
    out = np.frombuffer(sink.getvalue(), dtype=np.complex64)
    assert blocks == 2
    np.testing.assert_allclose(out, [1, -1j, -1, 1, -1j, -1])


def test_hilbert_stream_matches_blocks():
    rng = np.random.default_rng(7)
    data = rng.standard_normal(40).astype(np.float32)
    sink = io.BytesIO()
    blocks = RealToQuadrature(16).process_hilbert(io.BytesIO(data.tobytes()), sink)
    out = np.frombuffer(sink.getvalue(), dtype=np.complex64)
    expected = np.concatenate([hilbert_block(data[:16]), hilbert_block(data[16:32])])
    assert blocks == 2
    np.testing.assert_allclose(out, expected, rtol=1e-6)


def test_stream_output_is_interleaved_float32():
    data = np.array([1, 2, 3, 4], dtype=np.float32)
    sink = io.BytesIO()
    RealToQuadrature(4).process_downconversion(io.BytesIO(data.tobytes()), sink)
    floats = np.frombuffer(sink.getvalue(), dtype=np.float32)
    assert floats.size == 2 * data.size
    np.testing.assert_allclose(floats[0::2], [1, 0, -3, 0])
    np.testing.assert_allclose(floats[1::2], [0, -2, 0, 4])