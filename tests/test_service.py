import pytest

from pulseira.gps import EventId, GpsFix, Statement
from pulseira.location import LocationSpeedCharacteristic, encode_location_speed
from pulseira.neo6m import ConfigurationError
from pulseira.service import GpsService, main
from pulseira.ubx import create_config_rate_message

# Acknowledgement of CFG-RATE as documented for the receiver.
ACK_FRAME = bytes([0xB5, 0x62, 0x05, 0x01, 0x02, 0x00, 0x06, 0x08, 0x16, 0x3F])
GGA_LINE = b"$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47\r\n"


class FakePort:
    def __init__(self, replies, stream=()):
        self.replies = list(replies)
        self.stream = list(stream)
        self.written = []
        self.timeout = None
        self.is_open = True

    def reset_input_buffer(self):
        pass

    def reset_output_buffer(self):
        pass

    def write(self, data):
        self.written.append(bytes(data))
        return len(data)

    def read(self, size):
        if self.replies:
            return self.replies.pop(0)
        if self.stream:
            return self.stream.pop(0)
        self.is_open = False
        return b""


def make_service(stream=()):
    updates = []
    characteristic = LocationSpeedCharacteristic(on_update=updates.append)
    port = FakePort([ACK_FRAME] * 7, stream)
    return GpsService(port, characteristic), port, updates


def test_start_sends_rate_then_nmea_commands():
    service, port, _ = make_service()
    service.start()
    assert len(port.written) == 7
    assert port.written[0] == create_config_rate_message(1000, 1, 0)


def test_start_enables_configured_statements():
    service, _, _ = make_service()
    service.start()
    assert service.parser.statements == frozenset({Statement.GGA})


def test_start_fails_without_ack():
    port = FakePort([])
    service = GpsService(port)
    with pytest.raises(ConfigurationError):
        service.start()
    with pytest.raises(RuntimeError):
        service.process(GGA_LINE)


def test_process_before_start_raises():
    service, _, _ = make_service()
    with pytest.raises(RuntimeError):
        service.process(GGA_LINE)


def test_process_gga_updates_characteristic():
    service, _, updates = make_service()
    service.start()
    assert service.process(GGA_LINE) == 1
    assert len(updates) == 1
    assert service.characteristic.value == encode_location_speed(service.parser.gps)


def test_bad_checksum_does_not_update():
    service, _, updates = make_service()
    service.start()
    bad = GGA_LINE.replace(b"*47", b"*00")
    assert service.process(bad) == 1
    assert updates == []
    assert service.characteristic.value == bytes(20)


def test_run_processes_until_port_closes():
    service, port, updates = make_service(stream=[GGA_LINE[:20], GGA_LINE[20:]])
    service.start()
    service.run()
    assert port.is_open is False
    assert len(updates) == 1


def test_run_before_start_raises():
    service, _, _ = make_service()
    with pytest.raises(RuntimeError):
        service.run()


def test_handle_update_event_publishes_copy():
    service, _, updates = make_service()
    fix = GpsFix(latitude=10.5, longitude=-3.25, altitude=12.0, speed=4.0)
    expected = encode_location_speed(fix)
    service.handle_event(EventId.GPS_UPDATE, fix)
    fix.latitude = 0.0
    assert service.characteristic.value == expected
    assert updates == [expected]


def test_handle_unknown_event_leaves_value():
    service, _, updates = make_service()
    service.handle_event(EventId.GPS_UNKNOWN, "$GPXYZ,1*00\r\n")
    assert updates == []
    assert service.characteristic.value == bytes(20)


def test_main_fails_on_missing_port():
    assert main(["/nonexistent/serial/device"]) == 1