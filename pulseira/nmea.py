"""Streaming parser for NMEA 0183 statements from a GPS receiver."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Iterable

from .gps import EventId, GpsFix, Satellite, Statement, GPS_MAX_SATELLITES_IN_VIEW
from .settings import NMEA_MAX_STATEMENT_ITEM_LENGTH, NMEA_PARSER_RUNTIME_BUFFER_SIZE

_log = logging.getLogger(__name__)

Handler = Callable[[EventId, Any], None]

DEFAULT_STATEMENTS = (
    Statement.GGA,
    Statement.GSA,
    Statement.RMC,
    Statement.GSV,
    Statement.GLL,
    Statement.VTG,
)

# Order in which a statement's talker+type item is matched.
_MATCH_ORDER = (
    Statement.GGA,
    Statement.GSA,
    Statement.RMC,
    Statement.GSV,
    Statement.GLL,
    Statement.VTG,
)

_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_HEX_PREFIX = re.compile(r"\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)")
_DIGITS = "0123456789"


def _to_float(text: str) -> float:
    """Value of the longest leading decimal number, or 0.0 when there is none."""
    match = _FLOAT_PREFIX.match(text)
    return float(match.group()) if match else 0.0


def _to_int(text: str) -> int:
    """Value of the longest leading decimal integer, or 0 when there is none."""
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def _to_hex(text: str) -> int:
    """Value of the leading hexadecimal number, or 0 when there is none."""
    match = _HEX_PREFIX.match(text)
    if not match:
        return 0
    value = int(match.group(2), 16)
    return -value if match.group(1) == "-" else value


def parse_lat_long(text: str) -> float:
    """Convert an NMEA ``ddmm.mmm`` / ``dddmm.mmm`` field to decimal degrees."""
    value = _to_float(text)
    degrees = math.trunc(math.trunc(value) / 100)
    minutes = value - degrees * 100
    return degrees + minutes / 60.0


def parse_two_digits(text: str) -> int:
    """Read the number formed by the first two characters, which must be digits."""
    if len(text) < 2 or text[0] not in _DIGITS or text[1] not in _DIGITS:
        raise ValueError(f"expected two digits, got {text!r}")
    return 10 * int(text[0]) + int(text[1])


class NmeaParser:
    """Decodes NMEA statements into a GpsFix and emits events to handlers.

    A GPS_UPDATE event, carrying a copy of the fix, is emitted once every
    enabled statement has been received with a valid checksum. Statements that
    are not enabled are reported as GPS_UNKNOWN, carrying the raw line.
    """

    def __init__(self, statements: Iterable[Statement] | None = None) -> None:
        chosen = DEFAULT_STATEMENTS if statements is None else statements
        self.statements = frozenset(
            Statement(s) for s in chosen if Statement(s) is not Statement.UNKNOWN
        )
        mask = 0
        for statement in self.statements:
            mask |= statement.bit
        self.all_statements = mask & 0xFE
        self.parsed_statement = 0
        self.gps = GpsFix()
        self._handlers: list[Handler] = []
        self._pending = bytearray()
        self._item_parsers = {
            Statement.GGA: self._parse_gga,
            Statement.GSA: self._parse_gsa,
            Statement.GSV: self._parse_gsv,
            Statement.RMC: self._parse_rmc,
            Statement.GLL: self._parse_gll,
            Statement.VTG: self._parse_vtg,
        }
        self._reset_statement()
        self._item = ""

    def add_handler(self, handler: Handler) -> None:
        """Register a callable taking (event_id, data)."""
        self._handlers.append(handler)

    def remove_handler(self, handler: Handler) -> None:
        """Unregister a handler; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def decode(self, line: str | bytes) -> None:
        """Feed one or more characters of NMEA text through the state machine."""
        text = bytes(line).decode("latin-1") if not isinstance(line, str) else line
        text = text.split("\0", 1)[0]
        for ch in text:
            if ch == "$":
                self._reset_statement()
                self._item = "$"
            elif ch == ",":
                self._parse_item()
                self._crc ^= ord(",")
                self._next_item()
            elif ch == "*":
                self._parse_item()
                self._asterisk = True
                self._next_item()
            elif ch == "\r":
                self._end_statement(text)
            else:
                if not self._asterisk:
                    self._crc ^= ord(ch) & 0xFF
                if len(self._item) < NMEA_MAX_STATEMENT_ITEM_LENGTH - 1:
                    self._item += ch

    def feed(self, data: bytes) -> int:
        """Accept raw serial bytes; decode each complete line and return how many were decoded."""
        self._pending += bytes(data)
        count = 0
        while (pos := self._pending.find(b"\n")) != -1:
            line = bytes(self._pending[: pos + 1])
            del self._pending[: pos + 1]
            if len(line) > NMEA_PARSER_RUNTIME_BUFFER_SIZE:
                _log.warning("NMEA line too long, dropped")
                continue
            self.decode(line)
            count += 1
        if len(self._pending) > NMEA_PARSER_RUNTIME_BUFFER_SIZE:
            _log.warning("NMEA input without line end overflowed, flushed")
            self._pending.clear()
        return count

    # state machine internals

    def _reset_statement(self) -> None:
        self._asterisk = False
        self._item_num = 0
        self._cur_statement = Statement.UNKNOWN
        self._crc = 0
        self._sat_count = 0
        self._sat_num = 0

    def _next_item(self) -> None:
        self._item = ""
        self._item_num = (self._item_num + 1) & 0xFF

    def _emit(self, event_id: EventId, data: Any) -> None:
        for handler in list(self._handlers):
            handler(event_id, data)

    def _end_statement(self, line: str) -> None:
        received = _to_hex(self._item) & 0xFF
        if self._crc == received:
            statement = self._cur_statement
            if statement is Statement.GSV:
                if self._sat_num == self._sat_count:
                    self.parsed_statement |= statement.bit
            elif statement is not Statement.UNKNOWN:
                self.parsed_statement |= statement.bit
            if self.parsed_statement & self.all_statements == self.all_statements:
                self.parsed_statement = 0
                self._emit(EventId.GPS_UPDATE, self.gps.copy())
        else:
            _log.debug("CRC error for statement: %s", line)
        if self._cur_statement is Statement.UNKNOWN:
            self._emit(EventId.GPS_UNKNOWN, line)

    def _parse_item(self) -> None:
        if self._item_num == 0 and self._item.startswith("$"):
            self._cur_statement = next(
                (s for s in _MATCH_ORDER if s in self.statements and s.name in self._item),
                Statement.UNKNOWN,
            )
            return
        if self._cur_statement is Statement.UNKNOWN:
            return
        self._item_parsers[self._cur_statement]()

    # field helpers

    def _parse_utc_time(self) -> None:
        item = self._item
        try:
            hour = parse_two_digits(item[0:2])
            minute = parse_two_digits(item[2:4])
            second = parse_two_digits(item[4:6])
        except ValueError:
            return
        tim = self.gps.tim
        tim.hour, tim.minute, tim.second = hour, minute, second
        if len(item) > 6 and item[6] == ".":
            value = 0
            for ch in item[7:]:
                value = (10 * value + ord(ch) - ord("0")) & 0xFFFF
            tim.thousand = value

    def _parse_date(self) -> None:
        item = self._item
        try:
            day = parse_two_digits(item[0:2])
            month = parse_two_digits(item[2:4])
            year = parse_two_digits(item[4:6])
        except ValueError:
            return
        date = self.gps.date
        date.day, date.month, date.year = day, month, year

    def _set_latitude(self) -> None:
        self.gps.latitude = parse_lat_long(self._item)

    def _set_longitude(self) -> None:
        self.gps.longitude = parse_lat_long(self._item)

    def _apply_north_south(self) -> None:
        if self._item[:1] in ("S", "s"):
            self.gps.latitude *= -1

    def _apply_east_west(self) -> None:
        if self._item[:1] in ("W", "w"):
            self.gps.longitude *= -1

    def _set_valid(self) -> None:
        self.gps.valid = self._item[:1] == "A"

    # statement parsers

    def _parse_gga(self) -> None:
        gps, n, item = self.gps, self._item_num, self._item
        if n == 1:
            self._parse_utc_time()
        elif n == 2:
            self._set_latitude()
        elif n == 3:
            self._apply_north_south()
        elif n == 4:
            self._set_longitude()
        elif n == 5:
            self._apply_east_west()
        elif n == 6:
            gps.fix = _to_int(item)
        elif n == 7:
            gps.sats_in_use = _to_int(item) & 0xFF
        elif n == 8:
            gps.dop_h = _to_float(item)
        elif n == 9:
            gps.altitude = _to_float(item)
        elif n == 11:
            gps.altitude += _to_float(item)

    def _parse_gsa(self) -> None:
        gps, n, item = self.gps, self._item_num, self._item
        if n == 2:
            gps.fix_mode = _to_int(item)
        elif n == 15:
            gps.dop_p = _to_float(item)
        elif n == 16:
            gps.dop_h = _to_float(item)
        elif n == 17:
            gps.dop_v = _to_float(item)
        elif 3 <= n <= 14:
            gps.sats_id_in_use[n - 3] = _to_int(item) & 0xFF

    def _parse_gsv(self) -> None:
        gps, n, item = self.gps, self._item_num, self._item
        if n == 1:
            self._sat_count = _to_int(item) & 0xFF
        elif n == 2:
            self._sat_num = _to_int(item) & 0xFF
        elif n == 3:
            gps.sats_in_view = _to_int(item) & 0xFF
        elif 4 <= n <= 19:
            offset = n - 4
            index = (4 * (self._sat_num - 1) + offset // 4) & 0xFF
            if index >= GPS_MAX_SATELLITES_IN_VIEW:
                return
            value = _to_int(item) & 0xFFFFFFFF
            sat: Satellite = gps.sats_desc_in_view[index]
            kind = offset % 4
            if kind == 0:
                sat.num = value & 0xFF
            elif kind == 1:
                sat.elevation = value & 0xFF
            elif kind == 2:
                sat.azimuth = value & 0xFFFF
            else:
                sat.snr = value & 0xFF

    def _parse_rmc(self) -> None:
        gps, n, item = self.gps, self._item_num, self._item
        if n == 1:
            self._parse_utc_time()
        elif n == 2:
            self._set_valid()
        elif n == 3:
            self._set_latitude()
        elif n == 4:
            self._apply_north_south()
        elif n == 5:
            self._set_longitude()
        elif n == 6:
            self._apply_east_west()
        elif n == 7:
            gps.speed = _to_float(item) * 1.852
        elif n == 8:
            gps.cog = _to_float(item)
        elif n == 9:
            self._parse_date()
        elif n == 10:
            gps.variation = _to_float(item)

    def _parse_gll(self) -> None:
        n = self._item_num
        if n == 1:
            self._set_latitude()
        elif n == 2:
            self._apply_north_south()
        elif n == 3:
            self._set_longitude()
        elif n == 4:
            self._apply_east_west()
        elif n == 5:
            self._parse_utc_time()
        elif n == 6:
            self._set_valid()

    def _parse_vtg(self) -> None:
        gps, n, item = self.gps, self._item_num, self._item
        if n == 1:
            gps.cog = _to_float(item)
        elif n == 3:
            gps.variation = _to_float(item)
        elif n == 5:
            gps.speed = _to_float(item) * 1.852
        elif n == 7:
            gps.speed = _to_float(item) / 3.6