"""Bluetooth Location and Navigation "Location and Speed" characteristic."""

from __future__ import annotations

import logging
import math
import struct
from enum import IntEnum
from typing import Callable, Optional

from .gps import GpsFix
from .settings import TIME_ZONE, YEAR_BASE

_log = logging.getLogger(__name__)

# GATT server identifiers
DEVICE_NAME = "Pulseira"
GATT_SVR_SVC_ALERT_UUID = 0x1811
GATT_SVR_CHR_SUP_NEW_ALERT_CAT_UUID = 0x2A47
GATT_SVR_CHR_NEW_ALERT = 0x2A46
GATT_SVR_CHR_SUP_UNR_ALERT_CAT_UUID = 0x2A48
GATT_SVR_CHR_UNR_ALERT_STAT_UUID = 0x2A45
GATT_SVR_CHR_ALERT_NOT_CTRL_PT = 0x2A44

# GAP appearance values
BLE_SVC_GAP_APPEARANCE_CATEGORY_GPS = 0x044C
BLE_APPEARANCE_GENERIC_WATCH = 0x00C0

GNSS_SERVER_SVC_UUID = 0x1136
GNSS_SVC_UUID = 0x1135
LATITUDE_CHR_UUID = 0x2A67
LONGITUDE_CHR_UUID = 0x2A68

BLE_UUID_LOCATION_NAV_SVC = 0x1819
BLE_UUID_LOC_SPEED_CHR = 0x2A67

# Flags of the Location and Speed value
LN_FLAG_SPEED_PRESENT = 1 << 0
LN_FLAG_LOCATION_PRESENT = 1 << 2
LN_FLAG_ELEVATION_PRESENT = 1 << 3
LN_FLAG_TIME_PRESENT = 1 << 6

LN_FLAGS = (
    LN_FLAG_LOCATION_PRESENT
    | LN_FLAG_ELEVATION_PRESENT
    | LN_FLAG_TIME_PRESENT
    | LN_FLAG_SPEED_PRESENT
)

LOCATION_SPEED_SIZE = 20

# ATT error codes
ATT_ERR_UNLIKELY = 0x0E
ATT_ERR_INSUFFICIENT_RES = 0x11

_LAYOUT = struct.Struct("<BIIHHHBBBBB")


class AccessOp(IntEnum):
    """Kind of access a GATT client makes to an attribute."""

    READ_CHR = 0
    WRITE_CHR = 1
    READ_DSC = 2
    WRITE_DSC = 3


class AttError(Exception):
    """An access refused with an ATT error code."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"ATT error 0x{code:02X}")
        self.code = code


def _wrap(value: float, bits: int) -> int:
    if not math.isfinite(value):
        raise ValueError(f"value must be finite, got {value!r}")
    return math.trunc(value) & ((1 << bits) - 1)


def encode_location_speed(fix: GpsFix) -> bytes:
    """Encode a fix as the 20-byte Location and Speed value.

    Latitude and longitude in 1e-7 degrees, elevation in decimetres, speed
    truncated to whole units, then year, month, day, hour, minute, second.
    """
    year = (fix.date.year + YEAR_BASE) & 0xFFFF
    return _LAYOUT.pack(
        LN_FLAGS,
        _wrap(fix.latitude * 1e7, 32),
        _wrap(fix.longitude * 1e7, 32),
        _wrap(fix.altitude * 10, 16),
        _wrap(fix.speed, 16),
        year,
        fix.date.month & 0xFF,
        fix.date.day & 0xFF,
        (fix.tim.hour + TIME_ZONE) & 0xFF,
        fix.tim.minute & 0xFF,
        fix.tim.second & 0xFF,
    )


class LocationSpeedCharacteristic:
    """Holds the current Location and Speed value and serves reads of it."""

    uuid = BLE_UUID_LOC_SPEED_CHR
    service_uuid = BLE_UUID_LOCATION_NAV_SVC

    def __init__(self, on_update: Optional[Callable[[bytes], None]] = None) -> None:
        self._value = bytes(LOCATION_SPEED_SIZE)
        self._on_update = on_update

    @property
    def value(self) -> bytes:
        return self._value

    def update(self, fix: GpsFix) -> None:
        """Store a new fix and signal that the characteristic changed."""
        _log.info("location and speed updated")
        self._value = encode_location_speed(fix)
        if self._on_update is not None:
            self._on_update(self._value)

    def access(self, op: AccessOp) -> bytes:
        """Answer a client access: reads get the value, anything else is refused."""
        if AccessOp(op) is AccessOp.READ_CHR:
            return self._value
        raise AttError(ATT_ERR_UNLIKELY, f"unsupported access {AccessOp(op).name}")