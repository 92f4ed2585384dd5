"""UBX binary protocol helpers for u-blox receivers: framing, checksums and CFG messages."""

from __future__ import annotations

import struct
from enum import Enum
from typing import Iterable

# UBX header
UBX_SYNC_CHAR1 = 0xB5
UBX_SYNC_CHAR2 = 0x62
UBX_FRAME_OVERHEAD = 8  # sync (2) + class/id (2) + length (2) + checksum (2)
UBX_MAX_PAYLOAD = 0xFFFF

# ACK (0x05) - acknowledge messages
UBX_CLASS_ACK = 0x05
UBX_ID_ACK_NAK = 0x00
UBX_ID_ACK_ACK = 0x01

# AID (0x0B) - AssistNow aiding messages
UBX_CLASS_AID = 0x0B
UBX_ID_AID_REQ = 0x00
UBX_ID_AID_INI = 0x01
UBX_ID_AID_HUI = 0x02
UBX_ID_AID_DATA = 0x10
UBX_ID_AID_ALM = 0x30
UBX_ID_AID_EPH = 0x31
UBX_ID_AID_ALPSRV = 0x32
UBX_ID_AID_AOP = 0x33
UBX_ID_AID_ALP = 0x50

# CFG (0x06) - configuration messages
UBX_CLASS_CFG = 0x06
UBX_ID_CFG_PRT = 0x00
UBX_ID_CFG_MSG = 0x01
UBX_ID_CFG_INF = 0x02
UBX_ID_CFG_RST = 0x04
UBX_ID_CFG_DAT = 0x06
UBX_ID_CFG_TP = 0x07
UBX_ID_CFG_RATE = 0x08
UBX_ID_CFG_CFG = 0x09
UBX_ID_CFG_FXN = 0x0E
UBX_ID_CFG_RXM = 0x11
UBX_ID_CFG_EKF = 0x12
UBX_ID_CFG_ANT = 0x13
UBX_ID_CFG_SBAS = 0x16
UBX_ID_CFG_NMEA = 0x17
UBX_ID_CFG_USB = 0x1B
UBX_ID_CFG_TMODE = 0x1D
UBX_ID_CFG_NVS = 0x22
UBX_ID_CFG_NAVX5 = 0x23
UBX_ID_CFG_NAV5 = 0x24
UBX_ID_CFG_ESFGWT = 0x29
UBX_ID_CFG_TP5 = 0x31
UBX_ID_CFG_PM = 0x32
UBX_ID_CFG_RINV = 0x34
UBX_ID_CFG_ITFM = 0x39
UBX_ID_CFG_PM2 = 0x3B
UBX_ID_CFG_TMODE2 = 0x3D

# ESF (0x10) - external sensor fusion
UBX_CLASS_ESF = 0x10
UBX_ID_ESF_MEAS = 0x02
UBX_ID_ESF_STATUS = 0x10

# INF (0x04) - information messages
UBX_CLASS_INF = 0x04
UBX_ID_INF_ERROR = 0x00
UBX_ID_INF_WARNING = 0x01
UBX_ID_INF_NOTICE = 0x02
UBX_ID_INF_TEST = 0x03
UBX_ID_INF_DEBUG = 0x04

# MON (0x0A) - monitoring messages
UBX_CLASS_MON = 0x0A
UBX_ID_MON_IO = 0x02
UBX_ID_MON_VER = 0x04
UBX_ID_MON_MSGPP = 0x06
UBX_ID_MON_RXBUF = 0x07
UBX_ID_MON_TXBUF = 0x08
UBX_ID_MON_HW = 0x09
UBX_ID_MON_HW2 = 0x0B
UBX_ID_MON_RXR = 0x21

# NAV (0x01) - navigation results
UBX_CLASS_NAV = 0x01
UBX_ID_NAV_POSECEF = 0x01
UBX_ID_NAV_POSLLH = 0x02
UBX_ID_NAV_STATUS = 0x03
UBX_ID_NAV_DOP = 0x04
UBX_ID_NAV_SOL = 0x06
UBX_ID_NAV_VELECEF = 0x11
UBX_ID_NAV_VELNED = 0x12
UBX_ID_NAV_TIMEGPS = 0x20
UBX_ID_NAV_TIMEUTC = 0x21
UBX_ID_NAV_CLOCK = 0x22
UBX_ID_NAV_SVINFO = 0x30
UBX_ID_NAV_DGPS = 0x31
UBX_ID_NAV_SBAS = 0x32
UBX_ID_NAV_EKFSTATUS = 0x40
UBX_ID_NAV_AOPSTATUS = 0x60

# RXM (0x02) - receiver manager messages
UBX_CLASS_RXM = 0x02
UBX_ID_RXM_RAW = 0x10
UBX_ID_RXM_SFRB = 0x11
UBX_ID_RXM_SVSI = 0x20
UBX_ID_RXM_ALM = 0x30
UBX_ID_RXM_EPH = 0x31
UBX_ID_RXM_PMREQ = 0x41

# TIM (0x0D) - timing messages
UBX_CLASS_TIM = 0x0D
UBX_ID_TIM_TP = 0x01
UBX_ID_TIM_TM2 = 0x03
UBX_ID_TIM_SVIN = 0x04
UBX_ID_TIM_VRFY = 0x06

# NEO-6M proprietary NMEA (PUBX) messages
MSG_CLASS_NMEA_PROPRIETARY = 0xF1
MSG_ID_UBX00 = 0x00
MSG_ID_UBX03 = 0x03
MSG_ID_UBX04 = 0x04
MSG_ID_UBX05 = 0x05
MSG_ID_UBX06 = 0x06
MSG_ID_UBX40 = 0x40
MSG_ID_UBX41 = 0x41

# Standard NMEA messages
MSG_CLASS_NMEA_STANDARD = 0xF0
MSG_ID_DTM = 0x0A
MSG_ID_GBS = 0x09
MSG_ID_GGA = 0x00
MSG_ID_GLL = 0x01
MSG_ID_GPQ = 0x40
MSG_ID_GRS = 0x06
MSG_ID_GSA = 0x02
MSG_ID_GST = 0x07
MSG_ID_GSV = 0x03
MSG_ID_RMC = 0x04
MSG_ID_THS = 0x0E
MSG_ID_TXT = 0x41
MSG_ID_VTG = 0x05
MSG_ID_ZDA = 0x08


class UbxStatus(Enum):
    """Outcome of inspecting a UBX frame, with a numeric code and a message."""

    CHECKSUM_VALID = (0xFFF0100, "Checksum valid")
    CHECKSUM_FAILED = (0xFFF0101, "Checksum failed")
    UBX_PACKAGE = (0xFFF0200, "UBX package received")
    NOT_UBX_PACKAGE = (0xFFF0201, "Not a UBX package")
    ACK = (0xFFF0300, "Acknowledgment received")
    NACK = (0xFFF0301, "Negative acknowledgment")
    INVALID_CLASS = (0xFFF0400, "Invalid Class")
    INVALID_ID = (0xFFF0500, "Invalid ID")

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message


def _fletcher8(body: Iterable[int]) -> tuple[int, int]:
    ck_a = ck_b = 0
    for byte in body:
        ck_a = (ck_a + byte) & 0xFF
        ck_b = (ck_b + ck_a) & 0xFF
    return ck_a, ck_b


def verify_checksum(data: bytes) -> bool:
    """Check the two trailing checksum bytes against everything after the sync bytes."""
    frame = bytes(data)
    if len(frame) < 4:
        return False
    return _fletcher8(frame[2:-2]) == (frame[-2], frame[-1])


def is_ubx_packet(data: bytes) -> bool:
    """True when the data is long enough for a UBX frame and starts with the sync bytes."""
    frame = bytes(data)
    if len(frame) < UBX_FRAME_OVERHEAD:
        return False
    return frame[0] == UBX_SYNC_CHAR1 and frame[1] == UBX_SYNC_CHAR2


def cfg_acknowledged(data: bytes) -> UbxStatus:
    """Classify a reply to a CFG command.

    Any frame of the ACK class with a valid checksum counts as acknowledged,
    whatever its message ID.
    """
    frame = bytes(data)
    if not is_ubx_packet(frame):
        return UbxStatus.NOT_UBX_PACKAGE
    if not verify_checksum(frame):
        return UbxStatus.CHECKSUM_FAILED
    if frame[2] != UBX_CLASS_ACK:
        return UbxStatus.INVALID_CLASS
    return UbxStatus.ACK


def compute_checksum(ubx_class: int, ubx_id: int, payload: bytes) -> tuple[int, int]:
    """Return (ck_a, ck_b) over class, id, little-endian length and payload."""
    body = bytes(payload)
    if len(body) > UBX_MAX_PAYLOAD:
        raise ValueError(f"payload too long: {len(body)} bytes")
    header = bytes([ubx_class, ubx_id]) + struct.pack("<H", len(body))
    return _fletcher8(header + body)


def create_ubx_cmd(ubx_class: int, ubx_id: int, payload: bytes) -> bytes:
    """Build a complete UBX frame: sync, class, id, length, payload, checksum."""
    body = bytes(payload)
    ck_a, ck_b = compute_checksum(ubx_class, ubx_id, body)
    header = bytes([UBX_SYNC_CHAR1, UBX_SYNC_CHAR2, ubx_class, ubx_id])
    return header + struct.pack("<H", len(body)) + body + bytes([ck_a, ck_b])


def create_config_nmea_message(
    msg_class: int,
    msg_id: int,
    i2c_rate: int,
    uart1_rate: int,
    uart2_rate: int,
    usb_rate: int,
    spi_rate: int,
    reserved: int,
) -> bytes:
    """Build a UBX-CFG-MSG frame setting a message's output rate on each port."""
    payload = bytes(
        [msg_class, msg_id, i2c_rate, uart1_rate, uart2_rate, usb_rate, spi_rate, reserved]
    )
    return create_ubx_cmd(UBX_CLASS_CFG, UBX_ID_CFG_MSG, payload)


def create_config_rate_message(meas_rate_ms: int, nav_rate: int, time_ref: int) -> bytes:
    """Build a UBX-CFG-RATE frame (measurement period, navigation rate, time reference)."""
    try:
        payload = struct.pack("<HHH", meas_rate_ms, nav_rate, time_ref)
    except struct.error as exc:
        raise ValueError(f"rate values must fit in 16 bits: {exc}") from exc
    return create_ubx_cmd(UBX_CLASS_CFG, UBX_ID_CFG_RATE, payload)