"""Soft-decision Fano sequential decoder for the K=32, rate 1/2 WSPR code."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

# Layland-Lushbaugh polynomials, both odd so the two branches are complementary.
POLY1 = 0xF2D05351
POLY2 = 0xE4613C47

DEFAULT_BIAS = 0.42
INTERLEAVED_LENGTH = 162
_TAIL_BITS = 31
_STATE_MASK = 0xFFFFFFFF

# Probability-derived log metrics for received soft symbols 0..255, given a
# transmitted zero.
_SYMBOL_METRICS = (
    0.9999, 0.9998, 0.9998, 0.9998, 0.9998, 0.9998, 0.9997, 0.9997, 0.9997, 0.9997,
    0.9997, 0.9996, 0.9996, 0.9996, 0.9995, 0.9995, 0.9994, 0.9994, 0.9994, 0.9993,
    0.9993, 0.9992, 0.9991, 0.9991, 0.9990, 0.9989, 0.9988, 0.9988, 0.9988, 0.9986,
    0.9985, 0.9984, 0.9983, 0.9982, 0.9980, 0.9979, 0.9977, 0.9976, 0.9974, 0.9971,
    0.9969, 0.9968, 0.9965, 0.9962, 0.9960, 0.9957, 0.9953, 0.9950, 0.9947, 0.9941,
    0.9937, 0.9933, 0.9928, 0.9922, 0.9917, 0.9911, 0.9904, 0.9897, 0.9890, 0.9882,
    0.9874, 0.9863, 0.9855, 0.9843, 0.9832, 0.9819, 0.9806, 0.9792, 0.9777, 0.9760,
    0.9743, 0.9724, 0.9704, 0.9683, 0.9659, 0.9634, 0.9609, 0.9581, 0.9550, 0.9516,
    0.9481, 0.9446, 0.9406, 0.9363, 0.9317, 0.9270, 0.9218, 0.9160, 0.9103, 0.9038,
    0.8972, 0.8898, 0.8822, 0.8739, 0.8647, 0.8554, 0.8457, 0.8357, 0.8231, 0.8115,
    0.7984, 0.7854, 0.7704, 0.7556, 0.7391, 0.7210, 0.7038, 0.6840, 0.6633, 0.6408,
    0.6174, 0.5939, 0.5678, 0.5410, 0.5137, 0.4836, 0.4524, 0.4193, 0.3850, 0.3482,
    0.3132, 0.2733, 0.2315, 0.1891, 0.1435, 0.0980, 0.0493, 0.0000, -0.0510, -0.1052,
    -0.1593, -0.2177, -0.2759, -0.3374, -0.4005, -0.4599, -0.5266, -0.5935, -0.6626, -0.7328,
    -0.8051, -0.8757, -0.9498, -1.0271, -1.1019, -1.1816, -1.2642, -1.3459, -1.4295, -1.5077,
    -1.5958, -1.6818, -1.7647, -1.8548, -1.9387, -2.0295, -2.1152, -2.2154, -2.3011, -2.3904,
    -2.4820, -2.5786, -2.6730, -2.7652, -2.8616, -2.9546, -3.0526, -3.1445, -3.2445, -3.3416,
    -3.4357, -3.5325, -3.6324, -3.7313, -3.8225, -3.9209, -4.0248, -4.1278, -4.2261, -4.3193,
    -4.4220, -4.5262, -4.6214, -4.7242, -4.8234, -4.9245, -5.0298, -5.1250, -5.2232, -5.3267,
    -5.4332, -5.5342, -5.6431, -5.7270, -5.8401, -5.9350, -6.0407, -6.1418, -6.2363, -6.3384,
    -6.4536, -6.5429, -6.6582, -6.7433, -6.8438, -6.9478, -7.0789, -7.1894, -7.2714, -7.3815,
    -7.4810, -7.5575, -7.6852, -7.8071, -7.8580, -7.9724, -8.1000, -8.2207, -8.2867, -8.4017,
    -8.5287, -8.6347, -8.7082, -8.8319, -8.9448, -9.0355, -9.1885, -9.2095, -9.2863, -9.4186,
    -9.5064, -9.6386, -9.7207, -9.8286, -9.9453, -10.0701, -10.1735, -10.3001, -10.2858, -10.5427,
    -10.5982, -10.7361, -10.7042, -10.9212, -11.0097, -11.0469, -11.1155, -11.2812, -11.3472, -11.4988,
    -11.5327, -11.6692, -11.9376, -11.8606, -12.1372, -13.2539,
)


@dataclass(frozen=True)
class FanoResult:
    """Outcome of a Fano decode: decoded bytes, final path metric and progress."""

    data: bytes
    metric: int
    cycles: int
    max_np: int


class FanoTimeoutError(Exception):
    """Raised when the decoder runs out of cycles; ``result`` holds the partial decode."""

    def __init__(self, result: FanoResult) -> None:
        super().__init__(
            f"Fano decoder timed out after {result.cycles - 1} cycles "
            f"(reached node {result.max_np})"
        )
        self.result = result


def _parity(value: int) -> int:
    return bin(value).count("1") & 1


def _branch_symbol(state: int) -> int:
    """Return the two-bit symbol pair (POLY1 bit high, POLY2 bit low) for ``state``."""
    return (_parity(state & POLY1) << 1) | _parity(state & POLY2)


def metric_table(bias: float = DEFAULT_BIAS) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Return integer branch metrics for transmitted 0 and 1, indexed by soft symbol."""
    return _metric_table(float(bias))


@lru_cache(maxsize=8)
def _metric_table(bias: float) -> tuple[tuple[int, ...], tuple[int, ...]]:
    table = np.asarray(_SYMBOL_METRICS, dtype=np.float32)
    scaled = np.float32(10) * (table - np.float32(bias))
    rounded = np.sign(scaled) * np.floor(np.abs(scaled) + np.float32(0.5))
    zero = tuple(int(v) for v in rounded)
    return zero, zero[::-1]


def encode(data: bytes) -> bytes:
    """Convolutionally encode ``data``, high bit first, one output symbol per byte."""
    symbols = bytearray()
    state = 0
    for byte in data:
        for shift in range(7, -1, -1):
            state = ((state << 1) | ((byte >> shift) & 1)) & _STATE_MASK
            sym = _branch_symbol(state)
            symbols.append(sym >> 1)
            symbols.append(sym & 1)
    return bytes(symbols)


def decode(
    symbols: Sequence[int],
    nbits: int,
    delta: int,
    max_cycles: int,
) -> FanoResult:
    """Decode ``nbits`` bits from deinterleaved soft symbols with the Fano algorithm.

    ``max_cycles`` is the budget per decoded bit.  The last 31 bits are taken to be
    the zero tail.  Returns ``nbits // 8`` decoded bytes; raises
    ``FanoTimeoutError`` when the cycle budget is exhausted.
    """
    if nbits <= _TAIL_BITS:
        raise ValueError(f"nbits must exceed the {_TAIL_BITS}-bit tail, got {nbits}")
    if len(symbols) < 2 * nbits:
        raise ValueError(f"need {2 * nbits} symbols for {nbits} bits, got {len(symbols)}")
    mettab0, mettab1 = metric_table()

    branch_metrics = []
    for s0, s1 in zip(symbols[0: 2 * nbits: 2], symbols[1: 2 * nbits: 2]):
        s0, s1 = int(s0), int(s1)
        branch_metrics.append((
            mettab0[s0] + mettab0[s1],
            mettab0[s0] + mettab1[s1],
            mettab1[s0] + mettab0[s1],
            mettab1[s0] + mettab1[s1],
        ))

    size = nbits + 1
    encstate = [0] * size
    gamma = [0] * size
    sorted_metrics = [[0, 0] for _ in range(size)]
    branch = [0] * size
    tail = nbits - _TAIL_BITS

    def sort_branches(pos: int) -> None:
        lsym = _branch_symbol(encstate[pos])
        m0 = branch_metrics[pos][lsym]
        m1 = branch_metrics[pos][3 ^ lsym]
        if m0 > m1:
            sorted_metrics[pos][0], sorted_metrics[pos][1] = m0, m1
        else:
            sorted_metrics[pos][0], sorted_metrics[pos][1] = m1, m0
            encstate[pos] += 1

    pos = 0
    sort_branches(0)
    threshold = 0
    max_np = 0
    total = max_cycles * nbits

    for cycle in range(1, total + 1):
        max_np = max(max_np, pos)

        ngamma = gamma[pos] + sorted_metrics[pos][branch[pos]]
        if ngamma >= threshold:
            if gamma[pos] < threshold + delta:
                while ngamma >= threshold + delta:
                    threshold += delta
            gamma[pos + 1] = ngamma
            encstate[pos + 1] = (encstate[pos] << 1) & _STATE_MASK
            pos += 1
            if pos == nbits:
                break
            if pos >= tail:
                sorted_metrics[pos][0] = branch_metrics[pos][_branch_symbol(encstate[pos])]
            else:
                sort_branches(pos)
            branch[pos] = 0
            continue

        while True:
            if pos == 0 or gamma[pos - 1] < threshold:
                threshold -= delta
                if branch[pos] != 0:
                    branch[pos] = 0
                    encstate[pos] ^= 1
                break
            pos -= 1
            if pos < tail and branch[pos] != 1:
                branch[pos] += 1
                encstate[pos] ^= 1
                break
    else:
        cycle = total + 1

    data = bytes(encstate[index] & 0xFF for index in range(7, 8 * (nbits >> 3), 8))
    result = FanoResult(data=data, metric=gamma[pos], cycles=cycle + 1, max_np=max_np)
    if cycle >= total:
        raise FanoTimeoutError(result)
    return result


def _bit_reverse8(value: int) -> int:
    return int(f"{value:08b}"[::-1], 2)


_DEINTERLEAVE_ORDER = tuple(
    j for j in (_bit_reverse8(i) for i in range(256)) if j < INTERLEAVED_LENGTH
)


def deinterleave(symbols: Sequence[int]) -> bytes:
    """Undo the WSPR bit-reversal interleaving of 162 symbols."""
    if len(symbols) != INTERLEAVED_LENGTH:
        raise ValueError(f"expected {INTERLEAVED_LENGTH} symbols, got {len(symbols)}")
    return bytes(int(symbols[j]) for j in _DEINTERLEAVE_ORDER)