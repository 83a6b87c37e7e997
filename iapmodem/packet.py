"""YMODEM packet framing: constants, CRC-16, checksum and packet builders."""

from __future__ import annotations

from dataclasses import dataclass

from iapmodem.common import int_to_str

SOH = 0x01
"""Start of a 128-byte data packet."""
STX = 0x02
"""Start of a 1024-byte data packet."""
EOT = 0x04
"""End of transmission."""
ACK = 0x06
NAK = 0x15
CA = 0x18
"""Two of these in succession abort the transfer."""
CRC16 = 0x43
"""``'C'``: request a packet protected by a 16-bit CRC."""
NEGATIVE_BYTE = 0xFF
ABORT1 = 0x41
"""``'A'``: abort by the user."""
ABORT2 = 0x61
"""``'a'``: abort by the user."""

PACKET_HEADER_SIZE = 3
PACKET_TRAILER_SIZE = 2
PACKET_OVERHEAD_SIZE = PACKET_HEADER_SIZE + PACKET_TRAILER_SIZE - 1
PACKET_SIZE = 128
PACKET_1K_SIZE = 1024

FILE_NAME_LENGTH = 64
FILE_SIZE_LENGTH = 16

NAK_TIMEOUT = 0x100000 / 1000
"""Timeout for acknowledgements, in seconds."""
DOWNLOAD_TIMEOUT = 1.0
"""Retry delay while waiting for a packet, in seconds."""
MAX_ERRORS = 5

PAD_BYTE = 0x1A
"""Filler after the end of a short data block."""


def update_crc16(crc: int, byte: int) -> int:
    """Feed one byte into a CRC-16 (polynomial 0x1021) shift register."""
    crc &= 0xFFFF
    bits = (byte & 0xFF) | 0x100
    while True:
        crc <<= 1
        bits <<= 1
        if bits & 0x100:
            crc += 1
        if crc & 0x10000:
            crc ^= 0x1021
        if bits & 0x10000:
            return crc & 0xFFFF


def crc16(data: bytes) -> int:
    """Return the CRC-16 that YMODEM appends to a packet's data."""
    crc = 0
    for byte in data:
        crc = update_crc16(crc, byte)
    crc = update_crc16(crc, 0)
    crc = update_crc16(crc, 0)
    return crc


def checksum(data: bytes) -> int:
    """Return the 8-bit arithmetic checksum of ``data``."""
    return sum(data) & 0xFF


@dataclass(frozen=True)
class Packet:
    """One YMODEM block: a sequence number and 128 or 1024 bytes of data."""

    number: int
    data: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.number <= 0xFF:
            raise ValueError(f"packet number {self.number} does not fit in a byte")
        if len(self.data) not in (PACKET_SIZE, PACKET_1K_SIZE):
            raise ValueError(
                f"packet data must be {PACKET_SIZE} or {PACKET_1K_SIZE} bytes, "
                f"not {len(self.data)}"
            )
        object.__setattr__(self, "data", bytes(self.data))

    @property
    def start(self) -> int:
        """The start byte: SOH for 128-byte blocks, STX for 1024-byte blocks."""
        return STX if len(self.data) == PACKET_1K_SIZE else SOH

    @property
    def crc(self) -> int:
        return crc16(self.data)

    def __bytes__(self) -> bytes:
        crc = self.crc
        return (
            bytes((self.start, self.number, self.number ^ NEGATIVE_BYTE))
            + self.data
            + bytes((crc >> 8, crc & 0xFF))
        )


def build_initial_packet(file_name: str | bytes, length: int) -> Packet:
    """Build block 0, carrying the file name and its decimal size."""
    name = file_name.encode("utf-8") if isinstance(file_name, str) else bytes(file_name)
    end = name.find(b"\0")
    if end >= 0:
        name = name[:end]
    name = name[:FILE_NAME_LENGTH]
    payload = name + b"\0" + int_to_str(length).encode("ascii")
    return Packet(0, payload.ljust(PACKET_SIZE, b"\0"))


def build_packet(data: bytes, number: int) -> Packet:
    """Build a data block from the head of ``data``.

    A 1024-byte block is used when at least 1024 bytes remain, otherwise a
    128-byte one; a short block is padded with 0x1A. The number wraps to a byte.
    """
    size = PACKET_1K_SIZE if len(data) >= PACKET_1K_SIZE else PACKET_SIZE
    block = bytes(data[:size])
    return Packet(number & 0xFF, block.ljust(size, bytes((PAD_BYTE,))))