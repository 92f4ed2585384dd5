"""GPS service: configures the receiver, parses its NMEA output and publishes location data."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Optional, Sequence

from .gps import EventId, GpsFix, Statement
from .location import LocationSpeedCharacteristic
from .neo6m import ACK_TIMEOUT, NMEA_CONFIGS, ConfigurationError, Neo6mConfigurator, NmeaSetup
from .nmea import NmeaParser
from .settings import TIME_ZONE, YEAR_BASE, GpsConfig, gps_configuration
from .ubx import (
    MSG_CLASS_NMEA_STANDARD,
    MSG_ID_GGA,
    MSG_ID_GLL,
    MSG_ID_GSA,
    MSG_ID_GSV,
    MSG_ID_RMC,
    MSG_ID_VTG,
)

_log = logging.getLogger(__name__)

_STATEMENT_FOR_MSG_ID = {
    MSG_ID_GGA: Statement.GGA,
    MSG_ID_GLL: Statement.GLL,
    MSG_ID_GSA: Statement.GSA,
    MSG_ID_GSV: Statement.GSV,
    MSG_ID_RMC: Statement.RMC,
    MSG_ID_VTG: Statement.VTG,
}


def _enabled_statements(configs: Sequence[NmeaSetup]) -> list[Statement]:
    """Statements the receiver is configured to send on the port we listen to."""
    return [
        _STATEMENT_FOR_MSG_ID[config.msg_id]
        for config in configs
        if config.msg_class == MSG_CLASS_NMEA_STANDARD
        and config.msg_id in _STATEMENT_FOR_MSG_ID
        and config.uart1_rate > 0
    ]


class GpsService:
    """Ties the receiver's serial port to the NMEA parser and the BLE characteristic.

    ``port`` is a serial port object such as a pyserial ``Serial``.
    """

    def __init__(
        self,
        port: Any,
        characteristic: Optional[LocationSpeedCharacteristic] = None,
        config: Optional[GpsConfig] = None,
    ) -> None:
        self.port = port
        self.characteristic = (
            LocationSpeedCharacteristic() if characteristic is None else characteristic
        )
        self.config = gps_configuration() if config is None else config
        self.nmea_configs = tuple(NMEA_CONFIGS)
        self.parser: Optional[NmeaParser] = None

    def start(self) -> None:
        """Configure the receiver and set up the parser; raises ConfigurationError on failure."""
        Neo6mConfigurator(self.port, nmea_configs=self.nmea_configs).setup()
        parser = NmeaParser(_enabled_statements(self.nmea_configs))
        parser.add_handler(self.handle_event)
        self.parser = parser
        _log.info("GPS setup completed successfully")

    def handle_event(self, event_id: EventId, data: Any) -> None:
        """React to a parser event: publish updates, log unknown statements."""
        if event_id == EventId.GPS_UPDATE:
            fix: GpsFix = data
            _log.info(
                "%d/%d/%d %d:%d:%d => latitude=%.05f°N longitude=%.05f°E "
                "altitude=%.02fm speed=%fm/s",
                fix.date.year + YEAR_BASE,
                fix.date.month,
                fix.date.day,
                fix.tim.hour + TIME_ZONE,
                fix.tim.minute,
                fix.tim.second,
                fix.latitude,
                fix.longitude,
                fix.altitude,
                fix.speed,
            )
            self.characteristic.update(fix.copy())
        elif event_id == EventId.GPS_UNKNOWN:
            _log.warning("Unknown statement: %s", data)

    def process(self, data: bytes) -> int:
        """Feed received bytes to the parser; return the number of lines decoded."""
        if self.parser is None:
            raise RuntimeError("service not started")
        return self.parser.feed(data)

    def run(self) -> None:
        """Read from the port and process data until the port is closed."""
        if self.parser is None:
            raise RuntimeError("service not started")
        size = self.config.driver.rx_buffer_size
        while getattr(self.port, "is_open", True):
            data = self.port.read(size)
            if data:
                self.process(data)


_PARITY = {"N": "N", "E": "E", "O": "O"}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Open the receiver's serial port, configure it and publish fixes until interrupted."""
    import serial

    config = gps_configuration()
    parser = argparse.ArgumentParser(
        prog="pulseira", description="Read a NEO-6M GPS and publish location and speed."
    )
    parser.add_argument("port", help="serial device of the GPS receiver")
    parser.add_argument("--baud", type=int, default=config.uart.baud_rate, help="baud rate")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        port = serial.Serial(
            args.port,
            baudrate=args.baud,
            bytesize=config.uart.data_bits,
            parity=_PARITY.get(config.uart.parity, "N"),
            stopbits=config.uart.stop_bits,
            rtscts=config.uart.flow_ctrl,
            timeout=ACK_TIMEOUT,
        )
    except (serial.SerialException, ValueError) as exc:
        _log.error("cannot open %s: %s", args.port, exc)
        return 1

    with port:
        service = GpsService(port, config=config)
        try:
            service.start()
        except ConfigurationError as exc:
            _log.error("GPS setup failed: %s", exc)
            return 1
        try:
            service.run()
        except KeyboardInterrupt:
            pass
    return 0