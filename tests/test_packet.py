import pytest

from iapmodem.packet import (
    PACKET_1K_SIZE,
    PACKET_SIZE,
    PAD_BYTE,
    SOH,
    STX,
    Packet,
    build_initial_packet,
    build_packet,
    checksum,
    crc16,
    update_crc16,
)


def test_crc16_standard_check_value():
    assert crc16(b"123456789") == 0x31C3


def test_crc16_of_empty_data_is_zero():
    assert crc16(b"") == 0


@pytest.mark.parametrize("data", [b"a", b"hello world", bytes(range(256)), b"\xff" * 1024])
def test_crc16_residue_is_zero(data):
    crc = crc16(data)
    assert crc16(data + bytes((crc >> 8, crc & 0xFF))) == 0


def test_update_crc16_stays_sixteen_bits():
    crc = 0
    for byte in bytes(range(256)) * 4:
        crc = update_crc16(crc, byte)
        assert 0 <= crc <= 0xFFFF


def test_checksum_empty():
    assert checksum(b"") == 0


@pytest.mark.parametrize("data", [b"abc", bytes(range(256)), b"\xff" * 300])
def test_checksum_complement_sums_to_zero(data):
    total = checksum(data)
    assert 0 <= total <= 0xFF
    assert checksum(data + bytes(((-total) & 0xFF,))) == 0


def test_build_packet_short_block_is_padded():
    packet = build_packet(b"abc", 1)
    assert packet.start == SOH
    assert len(packet.data) == PACKET_SIZE
    assert packet.data[:3] == b"abc"
    assert set(packet.data[3:]) == {PAD_BYTE}


def test_build_packet_full_kilobyte_uses_stx():
    data = bytes(range(256)) * 4
    packet = build_packet(data, 2)
    assert packet.start == STX
    assert packet.data == data


def test_build_packet_takes_only_head_of_long_data():
    data = bytes(range(256)) * 5
    packet = build_packet(data, 3)
    assert packet.data == data[:PACKET_1K_SIZE]


def test_build_packet_number_wraps():
    assert build_packet(b"x", 256).number == 0


def test_wire_format_of_data_packet():
    packet = build_packet(b"data", 5)
    wire = bytes(packet)
    assert wire[:3] == bytes((SOH, 5, 0xFA))
    assert len(wire) == 3 + PACKET_SIZE + 2
    assert wire[3:-2] == packet.data
    assert crc16(wire[3:]) == 0


def test_initial_packet_layout():
    packet = build_initial_packet("image.bin", 1234)
    assert packet.number == 0
    assert bytes(packet)[:3] == bytes((SOH, 0x00, 0xFF))
    assert packet.data.startswith(b"image.bin\x001234")
    assert set(packet.data[len(b"image.bin\x001234"):]) == {0}


def test_initial_packet_truncates_long_name():
    packet = build_initial_packet("n" * 100, 7)
    assert packet.data[:64] == b"n" * 64
    assert packet.data[64:67] == b"\x007\x00"


def test_initial_packet_stops_name_at_nul():
    packet = build_initial_packet(b"ab\0cd", 0)
    assert packet.data[:5] == b"ab\x000\x00"


def test_initial_packet_rejects_negative_size():
    with pytest.raises(ValueError):
        build_initial_packet("f", -1)


def test_packet_rejects_bad_number():
    with pytest.raises(ValueError):
        Packet(256, bytes(PACKET_SIZE))


def test_packet_rejects_bad_size():
    with pytest.raises(ValueError):
        Packet(1, bytes(100))