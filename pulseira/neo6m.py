"""Configuration of a u-blox NEO-6M receiver over its serial link."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .settings import GPS_UART_RX_BUFFER_SIZE
from .ubx import (
    MSG_CLASS_NMEA_STANDARD,
    MSG_ID_GGA,
    MSG_ID_GLL,
    MSG_ID_GSA,
    MSG_ID_GSV,
    MSG_ID_RMC,
    MSG_ID_VTG,
    UBX_SYNC_CHAR1,
    UbxStatus,
    cfg_acknowledged,
    create_config_nmea_message,
    create_config_rate_message,
)

_log = logging.getLogger(__name__)

ACK_TIMEOUT = 0.2
ACK_FRAME_SIZE = 10


@dataclass(frozen=True)
class RateSetup:
    """Measurement period in ms, cycles per solution, time reference (0 = UTC)."""

    meas_rate: int = 1000
    nav_rate: int = 1
    time_ref: int = 0


@dataclass(frozen=True)
class NmeaSetup:
    """Output rate of one NMEA message on each receiver port."""

    msg_class: int
    msg_id: int
    i2c_rate: int = 0
    uart1_rate: int = 0
    uart2_rate: int = 0
    usb_rate: int = 0
    spi_rate: int = 0
    reserved: int = 0

    def message(self) -> bytes:
        return create_config_nmea_message(
            self.msg_class,
            self.msg_id,
            self.i2c_rate,
            self.uart1_rate,
            self.uart2_rate,
            self.usb_rate,
            self.spi_rate,
            self.reserved,
        )


RATE_CONFIG = RateSetup()

# Only GGA is left on, once per solution, on UART1.
NMEA_CONFIGS = (
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_GGA, uart1_rate=1),
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_GLL),
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_GSA),
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_GSV),
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_RMC),
    NmeaSetup(MSG_CLASS_NMEA_STANDARD, MSG_ID_VTG),
)


class ConfigurationError(Exception):
    """The receiver did not accept a configuration command."""

    def __init__(self, message: str, status: Optional[UbxStatus] = None) -> None:
        super().__init__(message)
        self.status = status


def extract_ack(data: bytes) -> bytes:
    """Find the first UBX frame in received data and check it acknowledges.

    Returns the 10-byte acknowledgement frame.
    """
    received = bytes(data)
    if not received:
        raise ConfigurationError("no data received")
    start = received.find(bytes([UBX_SYNC_CHAR1]))
    if start == -1:
        raise ConfigurationError("no UBX package found")
    if start + ACK_FRAME_SIZE > len(received):
        raise ConfigurationError("incomplete UBX package")
    frame = received[start : start + ACK_FRAME_SIZE]
    status = cfg_acknowledged(frame)
    if status is not UbxStatus.ACK:
        raise ConfigurationError(f"configuration error: {status.message}", status)
    return frame


class Neo6mConfigurator:
    """Sends rate and NMEA output configuration to the receiver.

    ``port`` is a serial port object offering ``write``, ``read``,
    ``reset_input_buffer``, ``reset_output_buffer`` and a ``timeout``
    attribute, such as a pyserial ``Serial``.
    """

    def __init__(
        self,
        port: Any,
        rate: Optional[RateSetup] = None,
        nmea_configs: Optional[Iterable[NmeaSetup]] = None,
    ) -> None:
        self.port = port
        self.rate = RATE_CONFIG if rate is None else rate
        self.nmea_configs = tuple(NMEA_CONFIGS if nmea_configs is None else nmea_configs)
        self.port.timeout = ACK_TIMEOUT

    def send_command(self, message: bytes) -> bytes:
        """Write one UBX command and wait for its acknowledgement frame."""
        self.port.reset_input_buffer()
        self.port.reset_output_buffer()
        written = self.port.write(message)
        if written != len(message):
            raise ConfigurationError(
                f"short write: {written} of {len(message)} bytes"
            )
        _log.info("sent %d bytes", len(message))
        received = self.port.read(GPS_UART_RX_BUFFER_SIZE)
        _log.debug("received %d bytes: %s", len(received), bytes(received).hex(" "))
        return extract_ack(received)

    def setup(self) -> None:
        """Configure the update rate, then each NMEA message's output rate."""
        rate = self.rate
        self.send_command(
            create_config_rate_message(rate.meas_rate, rate.nav_rate, rate.time_ref)
        )
        _log.info(
            "update rate set: meas_rate=%u nav_rate=%u time_ref=%u",
            rate.meas_rate,
            rate.nav_rate,
            rate.time_ref,
        )
        for index, config in enumerate(self.nmea_configs):
            try:
                self.send_command(config.message())
            except ConfigurationError:
                _log.error(
                    "NMEA %d (cls=0x%02X, id=0x%02X) not configured",
                    index,
                    config.msg_class,
                    config.msg_id,
                )
                raise
            _log.info("NMEA %d configured with rate %u", index, config.uart1_rate)