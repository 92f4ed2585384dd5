"""GPS data model: fix, time, date and satellites as reported by NMEA statements."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field
from enum import IntEnum

GPS_MAX_SATELLITES_IN_USE = 12
GPS_MAX_SATELLITES_IN_VIEW = 16


class FixType(IntEnum):
    """Quality of the position fix."""

    INVALID = 0
    GPS = 1
    DGPS = 2


class FixMode(IntEnum):
    """Dimension of the position fix."""

    INVALID = 1
    MODE_2D = 2
    MODE_3D = 3


class Statement(IntEnum):
    """NMEA statement kinds the parser knows."""

    UNKNOWN = 0
    GGA = 1
    GSA = 2
    RMC = 3
    GSV = 4
    GLL = 5
    VTG = 6

    @property
    def bit(self) -> int:
        """Bit of this statement in a mask of parsed statements."""
        return 1 << self.value


class EventId(IntEnum):
    """Events the NMEA parser emits."""

    GPS_UPDATE = 0
    GPS_UNKNOWN = 1


@dataclass
class Satellite:
    """One satellite in view."""

    num: int = 0
    elevation: int = 0
    azimuth: int = 0
    snr: int = 0


@dataclass
class GpsTime:
    """UTC time of day; ``thousand`` holds the fractional-second digits."""

    hour: int = 0
    minute: int = 0
    second: int = 0
    thousand: int = 0


@dataclass
class GpsDate:
    """Date of the fix; ``year`` counts from 2000."""

    day: int = 0
    month: int = 0
    year: int = 0


def _sats_in_use() -> list[int]:
    return [0] * GPS_MAX_SATELLITES_IN_USE


def _sats_in_view() -> list[Satellite]:
    return [Satellite() for _ in range(GPS_MAX_SATELLITES_IN_VIEW)]


@dataclass
class GpsFix:
    """Everything known about the current GPS solution.

    ``fix`` and ``fix_mode`` hold the numbers the receiver sent; they match
    FixType and FixMode when the receiver sends a known value, and ``fix_mode``
    is 0 until a GSA statement has been seen.
    """

    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    fix: int = FixType.INVALID
    sats_in_use: int = 0
    tim: GpsTime = field(default_factory=GpsTime)
    fix_mode: int = 0
    sats_id_in_use: list[int] = field(default_factory=_sats_in_use)
    dop_h: float = 0.0
    dop_p: float = 0.0
    dop_v: float = 0.0
    sats_in_view: int = 0
    sats_desc_in_view: list[Satellite] = field(default_factory=_sats_in_view)
    date: GpsDate = field(default_factory=GpsDate)
    valid: bool = False
    speed: float = 0.0
    cog: float = 0.0
    variation: float = 0.0

    def copy(self) -> GpsFix:
        """Return an independent deep copy."""
        return _copy.deepcopy(self)