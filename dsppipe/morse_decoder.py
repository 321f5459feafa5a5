"""Decode on/off keyed Morse code from a stream of float32 envelope samples."""

from __future__ import annotations

import argparse
import enum
import logging
import struct
import sys
from collections.abc import Sequence
from itertools import groupby
from typing import BinaryIO, TextIO

log = logging.getLogger(__name__)

BUFFER_SIZE = 4096
MAX_DAH = 64
THRESHOLD_GAIN = 1.25
_PATTERN_LIMIT = 9
_MESSAGE_LIMIT = 99
_SAMPLE = struct.Struct("=f")

TRANSLATION_TABLE: tuple[tuple[str, str], ...] = (
    (" ", "    "),
    ("0", "-----  "),
    ("1", ".----  "),
    ("2", "..---  "),
    ("3", "...--  "),
    ("4", "....-  "),
    ("5", ".....  "),
    ("6", "-....  "),
    ("7", "--...  "),
    ("8", "---..  "),
    ("9", "----.  "),
    ("A", ".-  "),
    ("B", "-...  "),
    ("C", "-.-.  "),
    ("D", "-..  "),
    ("E", ".  "),
    ("F", "..-.  "),
    ("G", "--.  "),
    ("H", "....  "),
    ("I", "..  "),
    ("J", ".---  "),
    ("K", "-.-  "),
    ("L", ".-..  "),
    ("M", "--  "),
    ("N", "-.  "),
    ("O", "---  "),
    ("P", ".--.  "),
    ("Q", "--.-  "),
    ("R", ".-.  "),
    ("S", "...  "),
    ("T", "-  "),
    ("U", "..-  "),
    ("V", "...-  "),
    ("W", ".--  "),
    ("X", "-..-  "),
    ("Y", "-.--  "),
    ("Z", "--..  "),
)


class Entity(enum.Enum):
    """What a run of samples above or below the threshold stands for."""

    DIT = enum.auto()
    DAH = enum.auto()
    SPACE = enum.auto()
    CHARACTER_SEPARATION = enum.auto()
    WORD_SEPARATION = enum.auto()
    ERROR = enum.auto()


def to_char(pattern: str) -> str:
    """Translate a dit/dah pattern such as ``".- "`` into its character.

    The first table entry that starts with ``pattern`` wins; an empty or unknown
    pattern gives ``""``.
    """
    if not pattern:
        return ""
    return next((ch for ch, code in TRANSLATION_TABLE if code.startswith(pattern)), "")


def _lower_mode(histogram: Sequence[int], classifier: list[bool]) -> None:
    """Mark the contiguous non-zero bins at the short end of the plus histogram."""
    nonzero = [i for i, n in enumerate(histogram) if n > 0]
    if not nonzero:
        return
    smallest, largest = nonzero[0], nonzero[-1]
    for i in range(smallest, largest):
        if histogram[i] <= 0:
            break
        classifier[i] = True


def _upper_mode(histogram: Sequence[int], classifier: list[bool]) -> None:
    """Mark the contiguous non-zero bins at the long end of the plus histogram."""
    nonzero = [i for i, n in enumerate(histogram) if n > 0]
    if not nonzero:
        return
    smallest, largest = nonzero[0], nonzero[-1]
    for i in range(largest, smallest, -1):
        if histogram[i] <= 0:
            break
        classifier[i] = True


def _first_cluster(histogram: Sequence[int], classifier: list[bool], start: int) -> int:
    """Mark the first cluster of non-zero bins from ``start``; return its last bin."""
    mode = 0
    for i in range(start, MAX_DAH):
        if histogram[i] > 0:
            mode = i
            classifier[i] = True
        elif mode != 0:
            break
    return mode


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


class MorseDecoder:
    """Adaptive Morse decoder reading float32 envelope samples from ``source``.

    Decoded messages are written to the text stream ``out``.
    """

    def __init__(self, source: BinaryIO | None = None, out: TextIO | None = None) -> None:
        self.source = source if source is not None else sys.stdin.buffer
        self.out = out if out is not None else sys.stdout
        self.threshold = 0.0
        self.delta_threshold = 0.0
        self.historical_threshold = 0.0
        self._signal = [0.0] * BUFFER_SIZE
        self._last_count = 0
        self._pattern = ""
        self._message = ""
        self._last_message = ""
        self._reset_classifier()

    def _reset_classifier(self) -> None:
        self.plus_histogram = [0] * MAX_DAH
        self.minus_histogram = [0] * MAX_DAH
        self.dit_classifier = [False] * MAX_DAH
        self.dah_classifier = [False] * MAX_DAH
        self.space_classifier = [False] * MAX_DAH
        self.character_classifier = [False] * MAX_DAH
        self.word_classifier = [False] * MAX_DAH

    def _read_buffer(self) -> int:
        log.debug("Reading a buffer")
        data = _read_exact(self.source, BUFFER_SIZE * _SAMPLE.size)
        count = len(data) // _SAMPLE.size
        values = struct.unpack(f"={count}f", data[: count * _SAMPLE.size])
        self._signal[:count] = values
        self._last_count = count
        return count

    def generate_classifier(
        self, threshold: float = 0.0, just_read: bool = False
    ) -> tuple[int, float]:
        """Build run-length classifiers for the current buffer.

        Returns the number of samples in the buffer (0 at end of input, -1 when
        the threshold has climbed above the peak) and the threshold used.  With
        ``just_read`` a new buffer is read and the classifiers are left alone.
        """
        if just_read:
            return self._read_buffer(), threshold
        while True:
            if self.delta_threshold == 0.0 or threshold == 0.0:
                count = self._read_buffer()
                self.delta_threshold = 0.0
            else:
                count = self._last_count
            if count <= 0:
                return count, threshold

            signal = self._signal[:count]
            self._reset_classifier()
            peak = 0.0
            average = 0.0
            if threshold == 0.0:
                if self.historical_threshold == 0.0:
                    threshold = signal[0] * THRESHOLD_GAIN
                else:
                    threshold = self.historical_threshold
                peak = signal[0]
            else:
                threshold += self.delta_threshold
            for sample in signal:
                if sample > peak:
                    peak = sample
                if sample < threshold:
                    average = 0.9 * average + 0.1 * sample
            if threshold > peak:
                log.debug(
                    "Threshold has been set above peak value, peak %f, threshold %f",
                    peak, threshold,
                )
                return -1, threshold
            if self.delta_threshold == 0.0:
                self.delta_threshold = (peak - average) / 20.0
                threshold = average + self.delta_threshold
                self.historical_threshold = threshold
                log.debug(
                    "Peak = %f, average = %f, delta threshold = %f",
                    peak, average, self.delta_threshold,
                )
            log.debug("Threshold was: %f", threshold)

            level = threshold
            runs = [
                (above, sum(1 for _ in group))
                for above, group in groupby(signal, key=lambda s: not s < level)
            ]
            for above, length in runs[:-1]:
                if length < MAX_DAH:
                    (self.plus_histogram if above else self.minus_histogram)[length] += 1
            log.debug("plus histogram: %s", self.plus_histogram)
            log.debug("minus histogram: %s", self.minus_histogram)

            _lower_mode(self.plus_histogram, self.dit_classifier)
            _upper_mode(self.plus_histogram, self.dah_classifier)
            if any(d and h for d, h in zip(self.dit_classifier, self.dah_classifier)):
                log.debug("overlap of dit dah found, try next threshold")
                continue

            first = _first_cluster(self.minus_histogram, self.space_classifier, 0)
            second = _first_cluster(self.minus_histogram, self.character_classifier, first + 1)
            third = 0
            for i in range(second + 1, MAX_DAH):
                if self.minus_histogram[i] > 0 or third != 0:
                    third = i
                    self.word_classifier[i] = True
            return count, threshold

    def classify(self, plus_count: int, minus_count: int) -> Entity:
        """Classify a run of ``plus_count`` marks or ``minus_count`` spaces."""
        if plus_count > 0 and minus_count == 0:
            if plus_count < MAX_DAH:
                if self.dit_classifier[plus_count]:
                    return Entity.DIT
                if self.dah_classifier[plus_count]:
                    return Entity.DAH
        elif minus_count > 0 and plus_count == 0:
            if minus_count < MAX_DAH:
                if self.space_classifier[minus_count]:
                    return Entity.SPACE
                if self.word_classifier[minus_count]:
                    return Entity.WORD_SEPARATION
                if self.character_classifier[minus_count]:
                    return Entity.CHARACTER_SEPARATION
        elif plus_count > 0 and minus_count > 0:
            raise ValueError("plus and minus counts are both non-zero")
        return Entity.ERROR

    def _add_to_pattern(self, element: str) -> None:
        if len(self._pattern) < _PATTERN_LIMIT:
            self._pattern += element
        else:
            log.debug("No room for %s", element)

    def _add_to_message(self, ch: str) -> None:
        if ch and len(self._message) < _MESSAGE_LIMIT:
            self._message += ch

    def _finish_character(self) -> None:
        self._add_to_pattern(" ")
        self._add_to_message(to_char(self._pattern))
        self._pattern = ""

    def decode_buffer(self, count: int) -> bool:
        """Decode buffers until the input ends.

        Returns True once the same message was decoded twice in a row, which
        freezes the threshold for the rest of the input.
        """
        counting_pluses = False
        counting_minuses = False
        pluses = 0
        minuses = 0
        data_observed = False
        frozen = False
        status = False
        while True:
            threshold = self.threshold
            for sample in self._signal[: max(count, 0)]:
                if sample < threshold:
                    if counting_minuses:
                        minuses += 1
                        if (
                            self.classify(pluses, minuses) is Entity.WORD_SEPARATION
                            and data_observed
                        ):
                            self._finish_character()
                            self._add_to_message(" ")
                            counting_pluses = counting_minuses = False
                            pluses = minuses = 0
                            data_observed = False
                    elif counting_pluses:
                        data_observed = True
                        entity = self.classify(pluses, minuses)
                        if entity is Entity.DAH:
                            self._add_to_pattern("-")
                        elif entity is Entity.DIT:
                            self._add_to_pattern(".")
                        else:
                            log.debug("Plus to minus transition error")
                        counting_pluses = False
                        counting_minuses = True
                        pluses = 0
                        minuses += 1
                    else:
                        counting_minuses = True
                        pluses = 0
                        minuses += 1
                elif counting_pluses:
                    pluses += 1
                elif counting_minuses:
                    entity = self.classify(pluses, minuses)
                    log.debug("transition observed - to +: %s", entity.name)
                    if entity is Entity.WORD_SEPARATION:
                        self._finish_character()
                        self._add_to_message(" ")
                    elif entity is Entity.CHARACTER_SEPARATION:
                        self._finish_character()
                    elif entity is not Entity.SPACE:
                        self._pattern = ""
                    counting_pluses = True
                    counting_minuses = False
                    pluses += 1
                    minuses = 0
                else:
                    counting_pluses = True
                    pluses += 1
                    minuses = 0

            message = self._message
            self.out.write(
                f"Message({len(message)}, {count}, {self.threshold:5.2f}): {message}\n"
            )
            if (
                len(message) > 2
                and message == self._last_message
                and message.strip(" ")
            ):
                self.out.write(
                    "Messages match, freeze thrshold and advance to another record\n"
                )
                self._last_message = ""
                status = True
            elif message:
                self._last_message = message
            frozen = frozen or status
            self._message = ""
            count, self.threshold = self.generate_classifier(self.threshold, frozen)
            if count == -1:
                self.threshold = 0.0
                count, self.threshold = self.generate_classifier(self.threshold, frozen)
            if count == 0:
                return status


def main(argv: Sequence[str] | None = None) -> int:
    """Decode Morse code from float32 samples on standard input."""
    parser = argparse.ArgumentParser(
        prog="morse-decoder",
        description="Decode Morse code from float32 envelope samples on standard input.",
    )
    parser.parse_args(argv)
    decoder = MorseDecoder()
    count, threshold = decoder.generate_classifier(0.0)
    decoder.threshold = threshold
    decoder.decode_buffer(count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())