"""YMODEM-CRC receiver and transmitter over a byte-oriented channel.

A channel is any object with ``read(timeout)``, returning one byte as an
``int`` or ``None`` when the timeout expires, and ``write(data)``.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import Protocol

from iapmodem.common import str_to_int
from iapmodem.flash import APPLICATION_ADDRESS, USER_FLASH_SIZE, Flash, FlashError
from iapmodem.packet import (
    ABORT1,
    ABORT2,
    ACK,
    CA,
    CRC16,
    DOWNLOAD_TIMEOUT,
    EOT,
    FILE_NAME_LENGTH,
    FILE_SIZE_LENGTH,
    MAX_ERRORS,
    NAK,
    NAK_TIMEOUT,
    NEGATIVE_BYTE,
    PACKET_1K_SIZE,
    PACKET_OVERHEAD_SIZE,
    PACKET_SIZE,
    SOH,
    STX,
    Packet,
    build_initial_packet,
    build_packet,
    crc16,
)

_PACKET_SIZES = {SOH: PACKET_SIZE, STX: PACKET_1K_SIZE}
_CANCEL = bytes((CA, CA))
_MAX_BLOCKS = USER_FLASH_SIZE // PACKET_1K_SIZE


class Channel(Protocol):
    def read(self, timeout: float) -> int | None: ...

    def write(self, data: bytes) -> None: ...


class YmodemError(Exception):
    """The transfer failed."""


class TransferAborted(YmodemError):
    """The transfer was cancelled, by the other end or by the local user."""

    def __init__(self, by_peer: bool, message: str | None = None) -> None:
        if message is None:
            message = "aborted by the other end" if by_peer else "aborted by user"
        super().__init__(message)
        self.by_peer = by_peer


class SizeLimitExceeded(YmodemError):
    """The image is larger than the space reserved for it."""


class VerificationFailed(YmodemError):
    """Received data could not be programmed into flash."""


@dataclass(frozen=True)
class ReceivedFile:
    """Name and announced size of a received file."""

    name: str
    size: int


def _read_exact(channel: Channel, count: int, timeout: float) -> bytes | None:
    received = bytearray()
    while len(received) < count:
        byte = channel.read(timeout)
        if byte is None:
            return None
        received.append(byte)
    return bytes(received)


def receive_packet(channel: Channel, timeout: float = DOWNLOAD_TIMEOUT) -> Packet | None:
    """Read one packet from ``channel``.

    Returns the packet, or ``None`` for end of transmission. Raises
    ``TransferAborted`` on a double CA from the sender or an ``a``/``A`` typed
    by the user, and ``YmodemError`` on a timeout or a damaged packet.
    """
    start = channel.read(timeout)
    if start is None:
        raise YmodemError("timed out waiting for a packet")
    if start == EOT:
        return None
    if start == CA:
        if channel.read(timeout) == CA:
            raise TransferAborted(by_peer=True)
        raise YmodemError("incomplete cancel sequence")
    if start in (ABORT1, ABORT2):
        raise TransferAborted(by_peer=False)
    size = _PACKET_SIZES.get(start)
    if size is None:
        raise YmodemError(f"unexpected start byte 0x{start:02X}")

    body = _read_exact(channel, size + PACKET_OVERHEAD_SIZE, timeout)
    if body is None:
        raise YmodemError("timed out inside a packet")
    number, complement = body[0], body[1]
    if number != complement ^ NEGATIVE_BYTE:
        raise YmodemError("packet number and its complement disagree")
    data = body[2 : 2 + size]
    crc = (body[-2] << 8) | body[-1]
    if crc16(data) != crc:
        raise YmodemError("packet CRC mismatch")
    return Packet(number, data)


def _parse_header(data: bytes) -> tuple[str, int]:
    end = data.find(b"\0", 0, FILE_NAME_LENGTH)
    if end < 0:
        end = FILE_NAME_LENGTH
    name = data[:end].decode("utf-8", errors="replace")
    rest = data[end + 1 :]
    field_end = rest.find(b" ", 0, FILE_SIZE_LENGTH)
    if field_end < 0:
        field_end = FILE_SIZE_LENGTH
    return name, str_to_int(rest[:field_end])


def receive(
    channel: Channel, flash: Flash, destination: int = APPLICATION_ADDRESS
) -> ReceivedFile:
    """Receive a YMODEM session and program its data into ``flash``.

    Returns the name and size announced for the last file of the session.
    """
    received = ReceivedFile("", 0)
    address = destination
    errors = 0
    session_begun = False

    while True:
        packets_received = 0
        while True:
            try:
                packet = receive_packet(channel, DOWNLOAD_TIMEOUT)
            except TransferAborted as exc:
                channel.write(bytes((ACK,)) if exc.by_peer else _CANCEL)
                raise
            except YmodemError as exc:
                if session_begun:
                    errors += 1
                if errors > MAX_ERRORS:
                    channel.write(_CANCEL)
                    raise YmodemError("too many errors") from exc
                channel.write(bytes((CRC16,)))
                continue

            errors = 0
            if packet is None:
                channel.write(bytes((ACK,)))
                break
            if packet.number != packets_received & 0xFF:
                channel.write(bytes((NAK,)))
                continue

            if packets_received == 0:
                if packet.data[0] == 0:
                    # An empty header closes the session.
                    channel.write(bytes((ACK,)))
                    return received
                try:
                    name, size = _parse_header(packet.data)
                except ValueError as exc:
                    channel.write(_CANCEL)
                    raise YmodemError(f"invalid file size in header: {exc}") from exc
                if size > USER_FLASH_SIZE + 1:
                    channel.write(_CANCEL)
                    raise SizeLimitExceeded(
                        f"image of {size} bytes exceeds {USER_FLASH_SIZE} bytes"
                    )
                # A failed erase shows up as a write failure further on.
                with contextlib.suppress(FlashError):
                    flash.erase(destination)
                received = ReceivedFile(name, size)
                channel.write(bytes((ACK, CRC16)))
            else:
                try:
                    flash.write(address, packet.data)
                except FlashError as exc:
                    channel.write(_CANCEL)
                    raise VerificationFailed(str(exc)) from exc
                address += len(packet.data)
                channel.write(bytes((ACK,)))
            packets_received += 1
            session_begun = True


def _send_until_ack(channel: Channel, frame: bytes, what: str) -> None:
    """Send ``frame`` until it is acknowledged, cancelled or errors run out."""
    errors = 0
    while True:
        channel.write(frame)
        reply = channel.read(NAK_TIMEOUT)
        if reply is None:
            errors += 1
        elif reply == ACK:
            return
        elif reply == CA and channel.read(NAK_TIMEOUT) == CA:
            raise TransferAborted(by_peer=True)
        if errors >= MAX_ERRORS:
            raise YmodemError(f"no acknowledgement for {what}")


def transmit(
    channel: Channel, data: bytes, file_name: str | bytes = "UploadedFlashImage.bin"
) -> None:
    """Send ``data`` as one YMODEM file named ``file_name``."""
    _send_until_ack(channel, bytes(build_initial_packet(file_name, len(data))), "header")

    offset = 0
    remaining = len(data)
    block = 1
    while remaining:
        packet = build_packet(data[offset:], block)
        frame = bytes(packet)
        size = len(packet.data)
        errors = 0
        while True:
            channel.write(frame)
            if channel.read(NAK_TIMEOUT) == ACK:
                break
            errors += 1
            if errors >= MAX_ERRORS:
                raise YmodemError(f"no acknowledgement for block {block}")
        offset += size
        if remaining > size:
            remaining -= size
            if block == _MAX_BLOCKS:
                raise SizeLimitExceeded(f"more than {_MAX_BLOCKS} blocks to send")
            block += 1
        else:
            remaining = 0

    _send_until_ack(channel, bytes((EOT,)), "end of transmission")

    # Some terminal emulators need an empty header to close the session.
    channel.write(bytes(Packet(0, bytes(PACKET_SIZE))))
    if channel.read(NAK_TIMEOUT) == CA:
        raise TransferAborted(by_peer=True)