"""Unpacking of decoded 50-bit WSPR messages into callsign, locator and power."""

from __future__ import annotations

import logging
import string
import struct
from collections.abc import Sequence
from dataclasses import dataclass

log = logging.getLogger(__name__)

HASH_SEED = 146
HASH_TABLE_SIZE = 32768
MAX_CALL = 262177560
GRID_LIMIT = 32400

_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ "
_MASK32 = 0xFFFFFFFF
_CALL_LENGTH = 12
_TEXT_LENGTH = 22
_VALID_POWER_UNITS = (0, 3, 7, 10)


def _rot(x: int, k: int) -> int:
    return ((x << k) | (x >> (32 - k))) & _MASK32


def _mix(a: int, b: int, c: int) -> tuple[int, int, int]:
    for shift_a, shift_b, shift_c in ((4, 6, 8), (16, 19, 4)):
        a = (a - c) & _MASK32
        a ^= _rot(c, shift_a)
        c = (c + b) & _MASK32
        b = (b - a) & _MASK32
        b ^= _rot(a, shift_b)
        a = (a + c) & _MASK32
        c = (c - b) & _MASK32
        c ^= _rot(b, shift_c)
        b = (b + a) & _MASK32
    return a, b, c


def _final(a: int, b: int, c: int) -> tuple[int, int, int]:
    c ^= b
    c = (c - _rot(b, 14)) & _MASK32
    a ^= c
    a = (a - _rot(c, 11)) & _MASK32
    b ^= a
    b = (b - _rot(a, 25)) & _MASK32
    c ^= b
    c = (c - _rot(b, 16)) & _MASK32
    a ^= c
    a = (a - _rot(c, 4)) & _MASK32
    b ^= a
    b = (b - _rot(a, 14)) & _MASK32
    c ^= b
    c = (c - _rot(b, 24)) & _MASK32
    return a, b, c


def nhash(key: str | bytes, initval: int = HASH_SEED) -> int:
    """Hash ``key`` with the little-endian lookup3 hash, reduced to 15 bits.

    An empty key returns the unmixed, unreduced initial state.
    """
    data = key.encode("ascii") if isinstance(key, str) else bytes(key)
    length = len(data)
    a = b = c = (0xDEADBEEF + length + initval) & _MASK32
    if not data:
        return c
    full_blocks = (length - 1) // 12
    for x, y, z in struct.iter_unpack("<3I", data[: full_blocks * 12]):
        a = (a + x) & _MASK32
        b = (b + y) & _MASK32
        c = (c + z) & _MASK32
        a, b, c = _mix(a, b, c)
    x, y, z = struct.unpack("<3I", data[full_blocks * 12:].ljust(12, b"\0"))
    a = (a + x) & _MASK32
    b = (b + y) & _MASK32
    c = (c + z) & _MASK32
    a, b, c = _final(a, b, c)
    return c & 0x7FFF


def unpack50(data: Sequence[int]) -> tuple[int, int]:
    """Split the first seven bytes of a message into the 28-bit call and 22-bit grid fields."""
    if len(data) < 7:
        raise ValueError(f"a packed message needs 7 bytes, got {len(data)}")
    b0, b1, b2, b3, b4, b5, b6 = (int(v) & 0xFF for v in data[:7])
    n1 = (b0 << 20) + (b1 << 12) + (b2 << 4) + ((b3 >> 4) & 15)
    n2 = ((b3 & 15) << 18) + (b4 << 10) + (b5 << 2) + ((b6 >> 6) & 3)
    return n1, n2


def _call_field(ncall: int) -> str:
    """Return the six-character callsign field, leading blanks removed and right padded."""
    if not 0 <= ncall < MAX_CALL:
        raise ValueError(f"invalid packed callsign {ncall:#010x}")
    n = ncall
    chars = []
    for _ in range(3):
        chars.append(_ALPHABET[n % 27 + 10])
        n //= 27
    chars.append(_ALPHABET[n % 10])
    n //= 10
    chars.append(_ALPHABET[n % 36])
    n //= 36
    chars.append(_ALPHABET[n])
    field = "".join(reversed(chars))
    start = next((i for i in range(5) if field[i] != " "), 5)
    return field[start:].ljust(6)


def unpack_call(ncall: int) -> str:
    """Unpack a 28-bit callsign value; raises ``ValueError`` when out of range."""
    return _call_field(ncall).partition(" ")[0]


def unpack_grid(ngrid: int) -> str:
    """Unpack the four-character Maidenhead locator held above the low 7 bits of ``ngrid``."""
    value = ngrid >> 7
    if not 0 <= value < GRID_LIMIT:
        raise ValueError(f"invalid packed grid {ngrid:#x}")
    dlat = value % 180 - 90
    dlong = (value // 180) * 2 - 180 + 2
    if dlong < -180:
        dlong += 360
    nlong = 12 * (180 - dlong)
    long_major, long_minor = divmod(nlong, 240)
    nlat = 24 * (dlat + 90)
    lat_major, lat_minor = divmod(nlat, 240)
    return (
        _ALPHABET[10 + long_major]
        + _ALPHABET[10 + lat_major]
        + _ALPHABET[long_minor // 24]
        + _ALPHABET[lat_minor // 24]
    )


def unpack_prefix(nprefix: int, call: str) -> str:
    """Attach the prefix or suffix encoded in ``nprefix`` to ``call``.

    Values below 60000 hold a three-character prefix; larger values hold a one- or
    two-character suffix.  Raises ``ValueError`` for an unusable suffix.
    """
    base = call[:6]
    if nprefix < 0:
        raise ValueError(f"invalid packed prefix {nprefix}")
    if nprefix < 60000:
        n = nprefix
        chars = []
        for _ in range(3):
            chars.append(_ALPHABET[n % 37])
            n //= 37
        prefix = "".join(reversed(chars))
        return f"{prefix}/{base}"[:_CALL_LENGTH]
    code = (nprefix - 60000) & 0xFF
    if code >= 128:
        code -= 256
    if 0 <= code <= 35:
        suffix = _ALPHABET[code]
    elif 36 <= code <= 125:
        suffix = str(code - 26)
    else:
        raise ValueError(f"invalid packed suffix {nprefix}")
    return f"{base}/{suffix}"[:_CALL_LENGTH]


class CallsignHashTable:
    """Callsigns remembered by their 15-bit hash, for resolving hashed messages."""

    def __init__(self) -> None:
        self._entries: dict[int, str] = {}

    def add(self, callsign: str) -> int:
        """Remember ``callsign`` and return the index it was stored under."""
        index = nhash(callsign, HASH_SEED)
        self._entries[index] = callsign[:_CALL_LENGTH]
        return index

    def lookup(self, index: int) -> str | None:
        """Return the callsign stored under ``index``, or ``None``."""
        return self._entries.get(index) or None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, index: object) -> bool:
        return bool(self._entries.get(index))  # type: ignore[call-overload]


@dataclass(frozen=True)
class WsprMessage:
    """A decoded WSPR message.

    ``text`` is the combined "call locator power" line; ``printable`` is false for
    messages whose contents fail the plausibility checks.
    """

    text: str
    call: str
    locator: str
    power: str
    callsign: str
    message_type: int
    printable: bool


def _power_text(dbm: int) -> str:
    return f"{dbm:2d}"[:2]


def _is_letter(ch: str) -> bool:
    return ch in string.ascii_letters


def _is_digit(ch: str) -> bool:
    return ch in string.digits


def unpack_message(message: Sequence[int], hashtable: CallsignHashTable) -> WsprMessage:
    """Unpack a decoded message, updating and consulting ``hashtable``.

    Raises ``ValueError`` when a field cannot be unpacked or the type is unknown.
    """
    n1, n2 = unpack50(message)
    field = _call_field(n1)
    callsign = field.partition(" ")[0]
    grid = unpack_grid(n2)
    ntype = (n2 & 127) - 64

    if 0 <= ntype <= 62:
        units = ntype % 10
        if units in (0, 3, 7):
            dbm = ntype
            hashtable.add(callsign)
            return WsprMessage(
                text=f"{callsign} {grid} {dbm:2d}"[:_TEXT_LENGTH],
                call=callsign[:_CALL_LENGTH],
                locator=grid,
                power=_power_text(dbm),
                callsign=callsign,
                message_type=1,
                printable=True,
            )
        nadd = units
        if units > 3:
            nadd = units - 3
        if units > 7:
            nadd = units - 7
        n3 = n2 // 128 + 32768 * (nadd - 1)
        callsign = unpack_prefix(n3, callsign)
        dbm = ntype - nadd
        printable = dbm % 10 in _VALID_POWER_UNITS
        if printable:
            hashtable.add(callsign)
        return WsprMessage(
            text=f"{callsign} {dbm:2d}"[:_TEXT_LENGTH],
            call=f"{callsign} {dbm:2d}"[:_CALL_LENGTH],
            locator="",
            power=_power_text(dbm),
            callsign=callsign,
            message_type=2,
            printable=printable,
        )

    if ntype < 0:
        dbm = -(ntype + 1)
        grid6 = (field[5] if field[5] != " " else "") + callsign[:5]
        grid_ok = (
            len(grid6) >= 4
            and _is_letter(grid6[0])
            and _is_letter(grid6[1])
            and _is_digit(grid6[2])
            and _is_digit(grid6[3])
        )
        printable = dbm % 10 in _VALID_POWER_UNITS and grid_ok
        if printable:
            index = hashtable.add(callsign)
            log.debug("ihash: %04x", index * 13)
        found = hashtable.lookup((n2 - ntype - 64) // 128)
        if found is not None:
            log.debug("hash found")
            hashed = f"<{found}>"[:_CALL_LENGTH]
        else:
            log.debug("hash NOT found")
            hashed = "<...>"
        if ntype == -64:
            printable = False
        return WsprMessage(
            text=f"{hashed} {grid6} {dbm:2d}"[:_TEXT_LENGTH],
            call=hashed[:_CALL_LENGTH],
            locator=grid6[:6],
            power=_power_text(dbm),
            callsign=hashed,
            message_type=3,
            printable=printable,
        )

    raise ValueError(f"unsupported message type {ntype}")