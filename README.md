# pulseira

Tools for a GPS wristband built around a u-blox NEO-6M receiver.

- **UBX messages** (`pulseira.ubx`): build `CFG-RATE` and `CFG-MSG`
  configuration frames with `create_config_rate_message` and
  `create_config_nmea_message`, build any frame with `create_ubx_cmd`, and
  compute or check checksums with `compute_checksum` and `verify_checksum`.
  `cfg_acknowledged` classifies a reply as a `UbxStatus`; any frame of the
  ACK class with a valid checksum is reported as `UbxStatus.ACK`.
- **Receiver setup** (`pulseira.neo6m`): `Neo6mConfigurator` sends the update
  rate (`RateSetup`, 1000 ms, UTC by default) and the NMEA output rates
  (`NmeaSetup`; by default only GGA is left on, on UART1) over a serial port
  and checks each reply with `extract_ack`, raising `ConfigurationError` when
  a command is not acknowledged.
- **NMEA parsing** (`pulseira.nmea`): `NmeaParser` decodes GGA, GSA, GSV, RMC,
  GLL and VTG statements into a `GpsFix` (`pulseira.gps`) and calls its
  handlers with `EventId.GPS_UPDATE` once every enabled statement has arrived
  with a valid checksum, and with `EventId.GPS_UNKNOWN` for statements it is
  not set to parse.
- **Location and Speed** (`pulseira.location`): `encode_location_speed` packs
  a fix into the 20-byte Location and Speed value;
  `LocationSpeedCharacteristic` keeps the latest value and answers reads.
- **Service** (`pulseira.service`): `GpsService` configures the receiver, feeds
  what it reads to the parser and updates the characteristic on each fix.
- **Helpers**: a fixed-capacity `CircularBuffer` (`pulseira.circular_buffer`),
  address and advertising-data formatting (`pulseira.formatting`), a passkey
  console `KeyConsole` (`pulseira.console`), and a `PeerRegistry` of connected
  peers and their discovered GATT services (`pulseira.peer`).

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

The `pulseira` command opens the receiver's serial port, configures the
receiver and then parses its output until the port closes or it is
interrupted:

```
pulseira /dev/ttyUSB0
pulseira /dev/ttyUSB0 --baud 9600 --verbose
```

`--baud` sets the baud rate (9600 by default) and `-v`/`--verbose` turns on
debug logging. Each fix is logged and stored in a `LocationSpeedCharacteristic`.
The command exits with status 1 if the port cannot be opened or the receiver
does not acknowledge its configuration.

## Library use

Build a configuration command for one fix per second, referenced to UTC:

```python
from pulseira.ubx import create_config_rate_message, verify_checksum

message = create_config_rate_message(1000, 1, 0)
assert verify_checksum(message)
```

Check a receiver's reply:

```python
from pulseira.ubx import (
    UBX_CLASS_ACK, UBX_ID_ACK_ACK, UbxStatus, cfg_acknowledged, create_ubx_cmd,
)

reply = create_ubx_cmd(UBX_CLASS_ACK, UBX_ID_ACK_ACK, bytes([0x06, 0x08]))
assert cfg_acknowledged(reply) is UbxStatus.ACK
```

Parse NMEA text and encode the resulting fix:

```python
from pulseira.gps import EventId, Statement
from pulseira.location import encode_location_speed
from pulseira.nmea import NmeaParser

fixes = []
parser = NmeaParser([Statement.GGA])
parser.add_handler(lambda event, data: fixes.append(data) if event == EventId.GPS_UPDATE else None)
parser.decode("$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47\r\n")

value = encode_location_speed(fixes[0])
assert len(value) == 20
```

`NmeaParser.feed` accepts raw serial bytes instead, decoding each complete
line and returning how many it decoded.

Keep the most recent bytes of a stream:

```python
from pulseira.circular_buffer import CircularBuffer

buffer = CircularBuffer(8)
buffer.write_block(b"$GPGGA,123519")  # older bytes are overwritten
print(len(buffer), buffer.read_block(4))  # 8 b'A,12'
```

## What it does not do

The package has no Bluetooth stack. It does not advertise, accept
connections or send notifications: `LocationSpeedCharacteristic` only holds
the encoded value, calls an optional `on_update` callback and answers the
accesses passed to its `access` method. Likewise `PeerRegistry` does not talk
to a radio; it records discovery results and asks a caller-supplied client
object to start each discovery step.