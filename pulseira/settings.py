"""Project-wide settings for the GPS receiver link and NMEA parsing."""

from __future__ import annotations

from dataclasses import dataclass

# Serial link to the GPS receiver
GPS_UART_NUM = 2
GPS_UART_TX = 17
GPS_UART_RX = 16
GPS_UART_BUFFER_SIZE = 1024 * 2
GPS_UART_RX_BUFFER_SIZE = 1024 * 2
# Zero makes writes block until everything has been sent.
GPS_UART_TX_BUFFER_SIZE = 0
GPS_UART_BAUD_RATE = 9600
GPS_EVENT_QUEUE_SIZE = 16

# Task placement for the GPS reader
MAX_PRIORITIES = 25
GPS_TASK_CORE = 1
GPS_TASK_PRIO = MAX_PRIORITIES - 1

# Pin value meaning "leave this pin as it is"
UART_PIN_NO_CHANGE = -1

# NMEA parser limits
NMEA_PARSER_RUNTIME_BUFFER_SIZE = GPS_UART_RX_BUFFER_SIZE // 2
NMEA_MAX_STATEMENT_ITEM_LENGTH = 16
NMEA_EVENT_LOOP_QUEUE_SIZE = 16

# Local time offset from UTC, in hours
TIME_ZONE = 0
# GPS dates count years from 2000
YEAR_BASE = 2000

PARITY_NONE = "N"
PARITY_EVEN = "E"
PARITY_ODD = "O"


@dataclass(frozen=True)
class UartParams:
    """Line parameters of the serial link."""

    baud_rate: int = GPS_UART_BAUD_RATE
    data_bits: int = 8
    parity: str = PARITY_NONE
    stop_bits: int = 1
    flow_ctrl: bool = False
    source_clk: str = "default"


@dataclass(frozen=True)
class UartPins:
    """Which port and pins the receiver is wired to."""

    uart_port: int = GPS_UART_NUM
    rx_pin: int = GPS_UART_RX
    tx_pin: int = GPS_UART_TX
    rts_pin: int = UART_PIN_NO_CHANGE
    cts_pin: int = UART_PIN_NO_CHANGE


@dataclass(frozen=True)
class DriverParams:
    """Buffering used by the serial driver."""

    uart_port: int = GPS_UART_NUM
    rx_buffer_size: int = GPS_UART_RX_BUFFER_SIZE
    tx_buffer_size: int = GPS_UART_TX_BUFFER_SIZE
    event_queue_size: int = GPS_EVENT_QUEUE_SIZE
    flags: int = 0


@dataclass(frozen=True)
class GpsConfig:
    """Complete configuration of the GPS link."""

    uart: UartParams
    uart_pins: UartPins
    driver: DriverParams


def gps_configuration() -> GpsConfig:
    """Return the default GPS link configuration."""
    return GpsConfig(uart=UartParams(), uart_pins=UartPins(), driver=DriverParams())