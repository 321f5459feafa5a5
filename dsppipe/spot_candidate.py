"""Candidate WSPR spots assembled from per-frame centroid samples."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from dsppipe.regression import Regression

log = logging.getLogger(__name__)

WINDOW = 7
HALF_WINDOW = 3
MIN_SEQUENCE = 162

INTERLEAVED_SYNC = (
    1, 1, 0, 0, 0, 0, 0, 0, 1, 0, 0, 0, 1, 1, 1, 0, 0, 0, 1, 0,
    0, 1, 0, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0, 1, 0, 0, 1, 0, 1,
    0, 0, 0, 0, 0, 0, 1, 0, 1, 1, 0, 0, 1, 1, 0, 1, 0, 0, 0, 1,
    1, 0, 1, 0, 0, 0, 0, 1, 1, 0, 1, 0, 1, 0, 1, 0, 1, 0, 0, 1,
    0, 0, 1, 0, 1, 1, 0, 0, 0, 1, 1, 0, 1, 0, 1, 0, 0, 0, 1, 0,
    0, 0, 0, 0, 1, 0, 0, 1, 0, 0, 1, 1, 1, 0, 1, 1, 0, 0, 1, 1,
    0, 1, 0, 0, 0, 1, 1, 1, 0, 0, 0, 0, 0, 1, 0, 1, 0, 0, 1, 1,
    0, 0, 0, 0, 0, 0, 0, 1, 1, 0, 1, 0, 1, 1, 0, 0, 0, 1, 1, 0,
    0, 0,
)


@dataclass
class SampleRecord:
    """One frame's observation of a candidate."""

    centroid: float
    magnitude: float = 0.0
    time_stamp: int = 0
    time_seconds: float = 0.0
    r: list[float] = field(default_factory=list)
    i: list[float] = field(default_factory=list)
    mag_slice: list[float] = field(default_factory=list)


@dataclass
class TimeSpan:
    """An inclusive run of consecutive time stamps."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


class SpotCandidate:
    """A sequence of samples that may turn out to be a WSPR transmission.

    A candidate becomes valid once it holds a run of at least 162 consecutive
    time stamps; its centroids are then fitted with a straight line.
    """

    def __init__(self, candidate_id: int, delta_freq: float) -> None:
        self.candidate_id = candidate_id
        self.delta_freq = delta_freq
        self.count = 0
        self.longest_sequence = 0
        self.valid = False
        self.slope = 0.0
        self.y_intercept = 0.0
        self.min_centroid = 0.0
        self.max_centroid = 0.0
        self.frequency = 0.0
        self.samples: list[SampleRecord] = []
        self.sequences: list[TimeSpan] = []
        self.fit: Regression | None = None
        self._last_time_stamp = -2
        self._current_sequence = 0

    @classmethod
    def from_samples(
        cls, candidate_id: int, samples: Iterable[SampleRecord], delta_freq: float
    ) -> SpotCandidate:
        """Build a candidate from samples taken to form one consecutive run."""
        candidate = cls(candidate_id, delta_freq)
        span = TimeSpan(0, 0)
        for record in samples:
            candidate.samples.append(record)
            if candidate._last_time_stamp < 0:
                span.start = record.time_stamp
            else:
                span.end = record.time_stamp
            candidate._current_sequence += 1
            candidate._last_time_stamp = record.time_stamp
        candidate.sequences.append(span)
        candidate.longest_sequence = candidate._current_sequence
        candidate.count = candidate._current_sequence
        if candidate.longest_sequence >= MIN_SEQUENCE:
            fit = candidate._refit()
            offset = candidate_id - 256 if candidate_id > 127 else candidate_id
            candidate.frequency = (candidate.y_intercept - HALF_WINDOW + offset) * delta_freq
            candidate.min_centroid = fit.min_centroid
            candidate.max_centroid = fit.max_centroid
        return candidate

    def _refit(self) -> Regression:
        self.fit = Regression(self.centroid_vector())
        self.slope = self.fit.slope
        self.y_intercept = self.fit.y_intercept
        self.valid = True
        return self.fit

    def log_sample(
        self, centroid: float, magnitude: float, time_stamp: int, time_seconds: float
    ) -> bool:
        """Add a sample; returns False if this time stamp was just logged."""
        if time_stamp == self._last_time_stamp:
            return False
        if self._last_time_stamp + 1 == time_stamp and self.sequences:
            self._current_sequence += 1
            self.sequences[-1].end = time_stamp
        else:
            self.sequences.append(TimeSpan(time_stamp, time_stamp))
            self._current_sequence = 1
        self.longest_sequence = max(self.longest_sequence, self._current_sequence)
        self.samples.append(
            SampleRecord(
                centroid=centroid,
                magnitude=magnitude,
                time_stamp=time_stamp,
                time_seconds=time_seconds,
            )
        )
        self.count += 1
        self._last_time_stamp = time_stamp
        if self.longest_sequence >= MIN_SEQUENCE:
            self._refit()
        return True

    def merge_vector(self, other: Sequence[SampleRecord]) -> bool:
        """Merge ``other`` into this candidate by time stamp.

        Where both hold a time stamp, this candidate's sample is kept.  Returns
        False when either side is empty.
        """
        if not other or not self.samples:
            return False
        target = self.samples
        merged_samples: list[SampleRecord] = []
        self.sequences = []
        i1 = i2 = 0
        one, two = target[0], other[0]
        finish_with_target = finish_with_other = False
        working = 0
        last_working = -2
        longest = 0
        current = 1
        count = 0
        merged = 0
        done = False
        while not done:
            if i1 < len(target):
                one = target[i1]
            else:
                finish_with_other = True
            if i2 < len(other):
                two = other[i2]
            else:
                finish_with_target = True

            if finish_with_target or finish_with_other:
                if finish_with_target:
                    working = one.time_stamp
                    merged_samples.append(one)
                    i1 += 1
                else:
                    working = two.time_stamp
                    merged_samples.append(two)
                    merged += 1
                    i2 += 1
                count += 1
            else:
                working = min(one.time_stamp, two.time_stamp)
                if working == one.time_stamp:
                    merged_samples.append(one)
                    count += 1
                    i1 += 1
                    if working >= two.time_stamp:
                        while i2 < len(other) and working >= other[i2].time_stamp:
                            i2 += 1
                else:
                    merged_samples.append(two)
                    merged += 1
                    count += 1
                    i2 += 1

            if self.sequences and working == last_working + 1:
                self.sequences[-1].end = working
                current += 1
            else:
                current = 1
                self.sequences.append(TimeSpan(working, working))
            longest = max(longest, current)
            last_working = working
            done = i1 >= len(target) and i2 >= len(other)

        self.longest_sequence = longest
        self.count = count
        self.samples = merged_samples
        if longest >= MIN_SEQUENCE:
            self._refit()
        else:
            self.valid = False
        log.debug("Merged %d samples from other list", merged)
        return True

    def valid_subvector(self, vector_number: int) -> list[SampleRecord]:
        """Return the samples of the ``vector_number``-th (from 1) long enough run."""
        span = TimeSpan(0, 0)
        valid_count = 0
        for candidate_span in self.sequences:
            span = candidate_span
            if span.length >= MIN_SEQUENCE:
                valid_count += 1
                if valid_count == vector_number:
                    break
            span = TimeSpan(0, 0)
        if span.start == span.end:
            return []
        return [r for r in self.samples if span.start <= r.time_stamp <= span.end]

    def centroid_vector(self) -> list[float]:
        return [r.centroid for r in self.samples]

    def magnitude_vector(self) -> list[float]:
        return [r.magnitude for r in self.samples]

    def report(self) -> str:
        """Describe the candidate and its samples as readable text."""
        lines = [
            f"Potential Candidate {self.candidate_id} Report - samples: {self.count:5d}, "
            f"longest sequence: {self.longest_sequence:5d}, "
            f"status: {'  valid' if self.valid else 'invalid'}, slope: {self.slope:7.4f}, "
            f"y-intercept: {self.y_intercept:7.2f}, "
            f"uncompensated center frequency of spot: {self.frequency:8.5f}"
        ]
        if not self.samples:
            lines.append("No information on candidate")
            return "\n".join(lines) + "\n"
        last = -1
        for index, r in enumerate(self.samples):
            marker = "*" if r.time_stamp - last == 1 else " "
            lines.append(
                f"{index:3d}: centroid: {r.centroid:7.2f}, magnitude: {r.magnitude:10.0f}, "
                f"time stamp: {r.time_stamp:5d}, time in seconds: {r.time_seconds:7.2f} {marker}"
            )
            last = r.time_stamp
        lines.extend(
            f"sequence start {s.start}, sequence end {s.end}"
            for s in self.sequences
            if s.start != s.end
        )
        lines.append("Magnitude slice")
        total = 0.0
        for line, r in enumerate(self.samples):
            values = r.mag_slice[:WINDOW]
            total += sum(values)
            lines.append("".join(f"{v:9.0f}," for v in values) + f" {line}")
        average = total / (len(self.samples) * WINDOW)
        lines.append("Magnitude graphic")
        for line, r in enumerate(self.samples):
            if len(r.mag_slice) < WINDOW:
                break
            lines.append(f" {_peak_graphic(r.mag_slice[:WINDOW], average)} {line}")
        return "\n".join(lines) + "\n"


def _peak_graphic(values: Sequence[float], average: float) -> str:
    padded = [float("-inf"), *values, float("-inf")]
    return "".join(
        "*" if padded[k - 1] < padded[k] > padded[k + 1] and padded[k] > average else "_"
        for k in range(1, len(padded) - 1)
    )


def tokenize(samples: Sequence[SampleRecord]) -> tuple[list[int], float]:
    """Turn a valid run of samples into WSPR channel symbols 0..3.

    Returns the tokens and the fitted centroid slope; the token list is empty when
    the tracked tone falls outside the magnitude window.
    """
    if not samples:
        raise ValueError("cannot tokenize an empty sample run")
    candidate = SpotCandidate.from_samples(1000, samples, 0.0)
    averages = [
        sum(r.mag_slice[k] for r in samples) / len(samples) for k in range(WINDOW)
    ]
    slope = candidate.slope
    base = candidate.y_intercept - 1.5
    tokens: list[int] = []
    metric = 0
    for index, record in enumerate(samples):
        low = int(base - 0.5)
        if low < 0 or low + 3 >= WINDOW:
            log.warning("Can not tokenize this vector")
            tokens = []
            break
        levels = [record.mag_slice[low + k] - averages[low + k] for k in range(4)]
        token = 3
        for k in range(3):
            if all(levels[k] > levels[j] for j in range(4) if j != k):
                token = k
                break
        tokens.append(token)
        base += slope
        if index < len(INTERLEAVED_SYNC) and INTERLEAVED_SYNC[index] == (token & 1):
            metric += 1
    log.debug("Tokens metric: %d", metric)
    return tokens, slope