import io

import numpy as np
import pytest

from dsppipe.sfir_filter import OUTPUTS_PER_BLOCK, SmoothFIRFilter, design_coefficients

CUTOFFS = [0.1, 0.25, 0.5, 0.7]


def test_half_band_tap_count():
    assert len(design_coefficients(0.5)) == 67


@pytest.mark.parametrize("cutoff", CUTOFFS)
def test_low_pass_has_unit_dc_gain(cutoff):
    taps = design_coefficients(cutoff)
    assert np.sum(taps) == pytest.approx(1.0)


@pytest.mark.parametrize("cutoff", CUTOFFS)
def test_low_pass_rejects_nyquist(cutoff):
    taps = design_coefficients(cutoff)
    signs = (-1.0) ** np.arange(len(taps))
    assert np.sum(taps * signs) == pytest.approx(0.0, abs=1e-9)


@pytest.mark.parametrize("cutoff", CUTOFFS)
def test_taps_are_symmetric_and_odd_length(cutoff):
    taps = design_coefficients(cutoff)
    assert len(taps) % 2 == 1
    np.testing.assert_allclose(taps, taps[::-1])


@pytest.mark.parametrize("cutoff", CUTOFFS)
def test_high_pass_complements_low_pass(cutoff):
    low = design_coefficients(cutoff)
    high = design_coefficients(cutoff, high_pass=True)
    impulse = np.zeros_like(low)
    impulse[len(low) // 2] = 1.0
    np.testing.assert_allclose(low + high, impulse, atol=1e-12)
    assert np.sum(high) == pytest.approx(0.0, abs=1e-9)


def test_real_low_pass_passes_dc():
    filt = SmoothFIRFilter(0.25, complex_filter=False)
    ones = np.ones(filt.input_length, dtype=np.float32)
    filt.filter_block(ones)
    out = filt.filter_block(ones)
    assert out.shape == (OUTPUTS_PER_BLOCK,)
    np.testing.assert_allclose(out, 1.0, atol=1e-5)


def test_complex_low_pass_passes_dc():
    filt = SmoothFIRFilter(0.25)
    block = np.full(filt.input_length, 1.0 + 2.0j, dtype=np.complex64)
    filt.filter_block(block)
    out = filt.filter_block(block)
    assert out.dtype == np.complex64
    np.testing.assert_allclose(out, 1.0 + 2.0j, atol=1e-5)


def test_high_pass_blocks_dc():
    filt = SmoothFIRFilter(0.25, high_pass=True, complex_filter=False)
    ones = np.ones(filt.input_length, dtype=np.float32)
    filt.filter_block(ones)
    out = filt.filter_block(ones)
    np.testing.assert_allclose(out, 0.0, atol=1e-5)


def test_impulse_response_equals_taps():
    filt = SmoothFIRFilter(0.25, complex_filter=False)
    block = np.zeros(filt.input_length, dtype=np.float32)
    block[0] = 1.0
    out = filt.filter_block(block)
    taps = filt.coefficients
    np.testing.assert_allclose(out[: len(taps)], taps.astype(np.float32), atol=1e-7)
    np.testing.assert_allclose(out[len(taps):], 0.0)


def test_decimation_sets_block_length():
    filt = SmoothFIRFilter(0.25, decimation=2, complex_filter=False)
    assert filt.input_length == 2 * OUTPUTS_PER_BLOCK
    out = filt.filter_block(np.ones(filt.input_length, dtype=np.float32))
    assert out.shape == (OUTPUTS_PER_BLOCK,)


def test_wrong_block_length_rejected():
    filt = SmoothFIRFilter(0.25, complex_filter=False)
    with pytest.raises(ValueError):
        filt.filter_block(np.ones(filt.input_length - 1, dtype=np.float32))


def test_bad_decimation_rejected():
    with pytest.raises(ValueError):
        SmoothFIRFilter(0.25, decimation=0)


def test_stream_matches_block_filtering():
    rng = np.random.default_rng(7)
    filt = SmoothFIRFilter(0.3, complex_filter=False)
    data = rng.standard_normal(2 * filt.input_length).astype(np.float32)
    sink = io.BytesIO()
    blocks = filt.filter_stream(io.BytesIO(data.tobytes()), sink)
    assert blocks == 2

    reference = SmoothFIRFilter(0.3, complex_filter=False)
    expected = np.concatenate(
        [reference.filter_block(chunk) for chunk in np.split(data, 2)]
    )
    got = np.frombuffer(sink.getvalue(), dtype=np.float32)
    np.testing.assert_array_equal(got, expected)


def test_complex_stream_output_size():
    filt = SmoothFIRFilter(0.25)
    data = np.zeros(2 * filt.input_length, dtype=np.float32)
    sink = io.BytesIO()
    assert filt.filter_stream(io.BytesIO(data.tobytes()), sink) == 1
    assert len(sink.getvalue()) == OUTPUTS_PER_BLOCK * 8


def test_partial_stream_block_raises():
    filt = SmoothFIRFilter(0.25, complex_filter=False)
    data = np.zeros(filt.input_length + 10, dtype=np.float32)
    with pytest.raises(EOFError):
        filt.filter_stream(io.BytesIO(data.tobytes()), io.BytesIO())