"""In-memory model of the on-chip program flash used by the loader."""

from __future__ import annotations

import enum

FLASH_START = 0x08000000
USER_FLASH_END_ADDRESS = 0x08040000
APPLICATION_ADDRESS = 0x08004000
USER_FLASH_SIZE = 0x00003000
FLASH_PAGE_SIZE = 0x800

PROTECTABLE_PAGES = range(8, 40)
"""Pages of the user area that write protection covers."""

_ERASED = 0xFF
_WORD = 4


class FlashError(Exception):
    """Base class for flash failures."""


class FlashEraseError(FlashError):
    """Erasing the user area failed."""


class FlashWriteError(FlashError):
    """Programming a word failed."""


class FlashVerifyError(FlashError):
    """A programmed word reads back differently from what was written."""


class ProtectionError(FlashError):
    """Changing the write protection failed."""


class Protection(enum.IntFlag):
    NONE = 0
    PCROP = 0x1
    WRP = 0x2
    RDP = 0x4


class Flash:
    """Page-erasable, word-programmable NOR memory with page write protection."""

    def __init__(
        self,
        start: int = FLASH_START,
        end: int = USER_FLASH_END_ADDRESS,
        page_size: int = FLASH_PAGE_SIZE,
    ) -> None:
        if page_size <= 0 or page_size % _WORD:
            raise ValueError("page size must be a positive multiple of 4")
        if end <= start or (end - start) % page_size:
            raise ValueError("flash size must be a positive multiple of the page size")
        self.start = start
        self.end = end
        self.page_size = page_size
        self._memory = bytearray([_ERASED]) * (end - start)
        self._protected: set[int] = set()

    @property
    def page_count(self) -> int:
        return (self.end - self.start) // self.page_size

    def _page_of(self, address: int) -> int:
        return (address - self.start) // self.page_size

    def _protectable(self) -> set[int]:
        return {page for page in PROTECTABLE_PAGES if page < self.page_count}

    def erase(self, start: int) -> None:
        """Erase every page from ``start`` to the end of flash."""
        if not self.start <= start < self.end or (start - self.start) % self.page_size:
            raise FlashEraseError(f"0x{start:08X} is not the start of a page")
        for page in range(self._page_of(start), self.page_count):
            if page in self._protected:
                raise FlashEraseError(f"page {page} is write protected")
            offset = page * self.page_size
            self._memory[offset : offset + self.page_size] = bytes([_ERASED]) * self.page_size

    def write(self, destination: int, data: bytes) -> int:
        """Program ``data`` word by word, verifying each word.

        Writing stops silently at the end of flash; the number of bytes
        written is returned.
        """
        if len(data) % _WORD:
            raise ValueError("data length must be a multiple of 4")
        if destination % _WORD or not self.start <= destination:
            raise FlashWriteError(f"0x{destination:08X} is not a valid word address")
        written = 0
        for index in range(0, len(data), _WORD):
            if destination > self.end - _WORD:
                break
            if self._page_of(destination) in self._protected:
                raise FlashWriteError(f"0x{destination:08X} is write protected")
            word = data[index : index + _WORD]
            offset = destination - self.start
            # Programming can only clear bits.
            self._memory[offset : offset + _WORD] = bytes(
                old & new for old, new in zip(self._memory[offset : offset + _WORD], word)
            )
            if self._memory[offset : offset + _WORD] != word:
                raise FlashVerifyError(f"verification failed at 0x{destination:08X}")
            destination += _WORD
            written += _WORD
        return written

    def read(self, address: int, length: int) -> bytes:
        """Return ``length`` bytes starting at ``address``."""
        if length < 0 or address < self.start or address + length > self.end:
            raise ValueError("read outside flash")
        offset = address - self.start
        return bytes(self._memory[offset : offset + length])

    def write_protection_status(self) -> Protection:
        """Report whether any page of the user area is write protected."""
        if self._protected & self._protectable():
            return Protection.WRP
        return Protection.NONE

    def configure_write_protection(self, enable: bool) -> None:
        """Turn write protection of the user area on or off."""
        pages = self._protectable()
        if not pages:
            raise ProtectionError("no protectable pages in this flash")
        if enable:
            self._protected |= pages
        else:
            self._protected -= pages