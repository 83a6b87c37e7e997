from collections import deque

import pytest

from iapmodem.flash import APPLICATION_ADDRESS, FLASH_START, USER_FLASH_SIZE, Flash, Protection
from iapmodem.menu import Bootloader, SerialChannel
from iapmodem.packet import (
    ACK,
    CA,
    EOT,
    PACKET_SIZE,
    Packet,
    build_initial_packet,
    build_packet,
)


class FakeChannel:
    def __init__(self, incoming=b""):
        self.incoming = deque(incoming)
        self.output = bytearray()

    def read(self, timeout):
        return self.incoming.popleft() if self.incoming else None

    def write(self, data):
        self.output += data

    @property
    def text(self):
        return self.output.decode("latin-1")


def _session(name, data):
    return (
        bytes(build_initial_packet(name, len(data)))
        + bytes(build_packet(data, 1))
        + bytes((EOT,))
        + bytes(Packet(0, bytes(PACKET_SIZE)))
    )


def test_download_programs_flash_and_reports():
    data = bytes(range(1, 9))
    channel = FakeChannel(_session("app.bin", data))
    flash = Flash()
    result = Bootloader(channel, flash).download()
    assert result.name == "app.bin"
    assert result.size == len(data)
    assert flash.read(APPLICATION_ADDRESS, len(data)) == data
    assert "Programming Completed Successfully!" in channel.text
    assert "Name: app.bin" in channel.text
    assert f"Size: {len(data)} Bytes" in channel.text


def test_download_aborted_by_user():
    channel = FakeChannel(b"a")
    assert Bootloader(channel, Flash()).download() is None
    assert "Aborted by user." in channel.text
    assert bytes((CA, CA)) in channel.output


def test_download_too_large():
    header = bytes(build_initial_packet("big.bin", USER_FLASH_SIZE + 2))
    channel = FakeChannel(header)
    assert Bootloader(channel, Flash()).download() is None
    assert "The image size is higher than the allowed space memory!" in channel.text


def test_download_into_protected_flash_fails_verification():
    flash = Flash()
    flash.configure_write_protection(True)
    channel = FakeChannel(_session("app.bin", b"\x00" * 8))
    assert Bootloader(channel, flash).download() is None
    assert "Verification failed!" in channel.text


def test_upload_sends_flash_image():
    acks = bytes((ACK,)) * (1 + USER_FLASH_SIZE // 1024 + 1)
    channel = FakeChannel(b"C" + acks)
    flash = Flash()
    flash.write(APPLICATION_ADDRESS, b"\x12\x34\x56\x78")
    assert Bootloader(channel, flash).upload() is True
    header = bytes(build_initial_packet("UploadedFlashImage.bin", USER_FLASH_SIZE))
    assert header in channel.output
    first_block = bytes(build_packet(flash.read(APPLICATION_ADDRESS, 1024), 1))
    assert first_block in channel.output
    assert "File uploaded successfully" in channel.text


def test_upload_without_acknowledgement_reports_error():
    channel = FakeChannel(b"C")
    assert Bootloader(channel, Flash()).upload() is False
    assert "Error Occurred while Transmitting File" in channel.text


def test_upload_waits_for_crc_request():
    channel = FakeChannel(b"x")
    assert Bootloader(channel, Flash()).upload() is False
    assert channel.text == "\n\n\rSelect Receive File\n\r"


def test_handle_key_execute_stops_menu():
    channel = FakeChannel()
    assert Bootloader(channel, Flash()).handle_key("3") is False
    assert "Start program execution" in channel.text


def test_handle_key_invalid():
    channel = FakeChannel()
    assert Bootloader(channel, Flash()).handle_key(ord("9")) is True
    assert "Invalid Number" in channel.text


def test_handle_key_toggles_protection_on_and_off():
    flash = Flash()
    channel = FakeChannel()
    loader = Bootloader(channel, flash)
    assert loader.handle_key("4") is False
    assert flash.write_protection_status() == Protection.WRP
    assert "Write Protection enabled..." in channel.text
    assert loader.handle_key("4") is False
    assert flash.write_protection_status() == Protection.NONE
    assert "Write Protection disabled..." in channel.text


def test_handle_key_protection_failure_keeps_menu():
    flash = Flash(start=FLASH_START, end=FLASH_START + 4 * 0x800, page_size=0x800)
    channel = FakeChannel()
    assert Bootloader(channel, flash).handle_key("4") is True
    assert "Error: Flash write protection failed..." in channel.text


def test_run_menu_offers_enable_when_unprotected():
    channel = FakeChannel(b"9")
    Bootloader(channel, Flash()).run_menu()
    assert "Main Menu" in channel.text
    assert "Enable the write protection" in channel.text
    assert "Invalid Number" in channel.text


def test_run_menu_offers_disable_when_protected():
    flash = Flash()
    flash.configure_write_protection(True)
    channel = FakeChannel()
    Bootloader(channel, flash).run_menu()
    assert "Disable the write protection" in channel.text


def test_run_menu_stops_on_execute():
    channel = FakeChannel(b"39")
    Bootloader(channel, Flash()).run_menu()
    assert "Start program execution" in channel.text
    assert "Invalid Number" not in channel.text
    assert list(channel.incoming) == [ord("9")]


def test_serial_channel_loopback():
    with SerialChannel("loop://") as channel:
        channel.write(b"ab")
        assert channel.read(0.5) == ord("a")
        assert channel.read(0.5) == ord("b")
        assert channel.read(0.01) is None


def test_serial_channel_flush_input_discards_pending():
    with SerialChannel("loop://") as channel:
        channel.write(b"zz")
        channel.flush_input()
        assert channel.read(0.01) is None


@pytest.mark.parametrize("key", ["1", ord("1")])
def test_handle_key_download_accepts_str_and_int(key):
    channel = FakeChannel(b"A")
    assert Bootloader(channel, Flash()).handle_key(key) is True
    assert "Aborted by user." in channel.text