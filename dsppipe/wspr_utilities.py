"""Signal capture files and spot reporting for the WSPR decoder."""

from __future__ import annotations

import logging
import os
import struct
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import numpy as np

log = logging.getLogger(__name__)

BUFFER_SIZE = 2 * 116 * 375
HEADER = struct.Struct("<14sIQ")
SPOT_ENDPOINT = "http://wsprnet.org/post"
REPORT_TIMEOUT = 30.0
_SAMPLE = np.dtype("<f4")


def write_file(path: str | os.PathLike, samples) -> None:
    """Write the first ``BUFFER_SIZE`` samples after a zeroed header."""
    data = np.asarray(samples, dtype=_SAMPLE).ravel()
    if data.size < BUFFER_SIZE:
        raise ValueError(
            f"illegal buffer size - need {BUFFER_SIZE} samples, got {data.size}"
        )
    with open(path, "wb") as fh:
        fh.write(HEADER.pack(b"", 0, 0))
        fh.write(data[:BUFFER_SIZE].tobytes())


def read_file(path: str | os.PathLike) -> np.ndarray:
    """Read ``BUFFER_SIZE`` float32 samples, zero-filling a short file."""
    with open(path, "rb") as fh:
        fh.read(HEADER.size)
        raw = fh.read(BUFFER_SIZE * _SAMPLE.itemsize)
    usable = len(raw) - len(raw) % _SAMPLE.itemsize
    samples = np.zeros(BUFFER_SIZE, dtype=np.float32)
    samples[: usable // _SAMPLE.itemsize] = np.frombuffer(raw[:usable], dtype=_SAMPLE)
    return samples


def spot_url(
    reporter_id: str,
    reporter_location: str,
    freq: float,
    delta_t: float,
    drift: float,
    call_id: str,
    call_location: str,
    call_power: str,
    snr: str,
    spot_date: str,
    spot_time: str,
) -> str:
    """Return the spot-report URL; ``freq`` is in hertz."""
    mhz = f"{freq / 1000000.0:.6f}"
    return (
        f"{SPOT_ENDPOINT}?function=wspr&rcall={reporter_id}&rgrid={reporter_location}"
        f"&rqrg={mhz}&date={spot_date}&time={spot_time}&sig={snr}&dt={delta_t:.1f}"
        f"&drift={int(drift)}&tqrg={mhz}&tcall={call_id}&tgrid={call_location}"
        f"&dbm={call_power}&version=0.1r_wsprwindow&mode=2"
    )


def report_spot(
    reporter_id: str,
    reporter_location: str,
    freq: float,
    delta_t: float,
    drift: float,
    call_id: str,
    call_location: str,
    call_power: str,
    snr: str,
    spot_date: str,
    spot_time: str,
) -> int:
    """Send a spot report as a HEAD request and return the HTTP status.

    Raises ``URLError`` when the server cannot be reached.
    """
    url = spot_url(
        reporter_id, reporter_location, freq, delta_t, drift, call_id,
        call_location, call_power, snr, spot_date, spot_time,
    )
    request = Request(url, method="HEAD")
    try:
        with urlopen(request, timeout=REPORT_TIMEOUT) as response:
            return response.status
    except HTTPError as exc:
        return exc.code
    except URLError as exc:
        log.error("spot report failed: %s (%s)", exc.reason, url)
        raise