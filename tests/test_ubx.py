import pytest

from pulseira import ubx
from pulseira.ubx import UbxStatus

# Replies documented for the receiver: ACK-ACK for CFG-RATE and for CFG-MSG.
ACK_CFG_RATE = bytes.fromhex("B5 62 05 01 02 00 06 08 16 3F")
ACK_CFG_MSG = bytes.fromhex("B5 62 05 01 02 00 06 01 0F 38")


def test_verify_checksum_accepts_documented_acks():
    assert ubx.verify_checksum(ACK_CFG_RATE) is True
    assert ubx.verify_checksum(ACK_CFG_MSG) is True


def test_verify_checksum_rejects_corrupted_frame():
    corrupted = bytearray(ACK_CFG_RATE)
    corrupted[-1] ^= 0x01
    assert ubx.verify_checksum(bytes(corrupted)) is False


def test_verify_checksum_too_short():
    assert ubx.verify_checksum(b"\xb5\x62") is False


def test_is_ubx_packet():
    assert ubx.is_ubx_packet(ACK_CFG_RATE) is True
    assert ubx.is_ubx_packet(ACK_CFG_RATE[:7]) is False
    assert ubx.is_ubx_packet(b"$GPGGA,1") is False


def test_compute_checksum_matches_documented_ack():
    assert ubx.compute_checksum(ubx.UBX_CLASS_ACK, ubx.UBX_ID_ACK_ACK, b"\x06\x08") == (
        ACK_CFG_RATE[-2],
        ACK_CFG_RATE[-1],
    )


def test_create_ubx_cmd_reproduces_documented_ack():
    frame = ubx.create_ubx_cmd(ubx.UBX_CLASS_ACK, ubx.UBX_ID_ACK_ACK, bytes([0x06, 0x01]))
    assert frame == ACK_CFG_MSG


def test_create_ubx_cmd_layout():
    payload = bytes(range(5))
    frame = ubx.create_ubx_cmd(0x0A, 0x04, payload)
    assert len(frame) == len(payload) + ubx.UBX_FRAME_OVERHEAD
    assert frame[:2] == bytes([ubx.UBX_SYNC_CHAR1, ubx.UBX_SYNC_CHAR2])
    assert frame[2:4] == bytes([0x0A, 0x04])
    assert int.from_bytes(frame[4:6], "little") == len(payload)
    assert frame[6:-2] == payload
    assert ubx.verify_checksum(frame)


def test_create_ubx_cmd_rejects_oversized_payload():
    with pytest.raises(ValueError):
        ubx.create_ubx_cmd(0x06, 0x01, bytes(ubx.UBX_MAX_PAYLOAD + 1))


def test_create_config_rate_message_one_hertz_utc():
    frame = ubx.create_config_rate_message(1000, 1, 0)
    assert frame == bytes.fromhex("B5 62 06 08 06 00 E8 03 01 00 00 00 00 37")


def test_create_config_rate_message_rejects_out_of_range():
    with pytest.raises(ValueError):
        ubx.create_config_rate_message(70000, 1, 0)


def test_create_config_nmea_message():
    frame = ubx.create_config_nmea_message(
        ubx.MSG_CLASS_NMEA_STANDARD, ubx.MSG_ID_GGA, 0, 1, 0, 0, 0, 0
    )
    assert len(frame) == 16
    assert frame[2] == ubx.UBX_CLASS_CFG
    assert frame[3] == ubx.UBX_ID_CFG_MSG
    assert frame[6:14] == bytes([ubx.MSG_CLASS_NMEA_STANDARD, ubx.MSG_ID_GGA, 0, 1, 0, 0, 0, 0])
    assert ubx.verify_checksum(frame)


def test_create_config_nmea_message_rejects_out_of_range():
    with pytest.raises(ValueError):
        ubx.create_config_nmea_message(0xF0, 0x00, 0, 256, 0, 0, 0, 0)


def test_cfg_acknowledged_ack():
    assert ubx.cfg_acknowledged(ACK_CFG_RATE) is UbxStatus.ACK


def test_cfg_acknowledged_nak_counts_as_ack():
    nak = ubx.create_ubx_cmd(ubx.UBX_CLASS_ACK, ubx.UBX_ID_ACK_NAK, b"\x06\x08")
    assert ubx.cfg_acknowledged(nak) is UbxStatus.ACK


def test_cfg_acknowledged_not_ubx():
    assert ubx.cfg_acknowledged(b"$GPGGA,123519") is UbxStatus.NOT_UBX_PACKAGE
    assert ubx.cfg_acknowledged(ACK_CFG_RATE[:6]) is UbxStatus.NOT_UBX_PACKAGE


def test_cfg_acknowledged_checksum_failed():
    corrupted = bytearray(ACK_CFG_MSG)
    corrupted[6] = 0x07
    assert ubx.cfg_acknowledged(bytes(corrupted)) is UbxStatus.CHECKSUM_FAILED


def test_cfg_acknowledged_invalid_class():
    frame = ubx.create_config_rate_message(1000, 1, 0)
    assert ubx.cfg_acknowledged(frame) is UbxStatus.INVALID_CLASS


def test_status_messages_from_acknowledgement():
    assert ubx.cfg_acknowledged(ACK_CFG_RATE).message == "Acknowledgment received"
    assert ubx.cfg_acknowledged(b"$GPGGA,123519").message == "Not a UBX package"