"""Serial command-line menu of the in-application programming loader."""

from __future__ import annotations

import argparse
from pathlib import Path

import serial

from iapmodem.common import int_to_str
from iapmodem.flash import (
    APPLICATION_ADDRESS,
    USER_FLASH_SIZE,
    Flash,
    FlashError,
    Protection,
)
from iapmodem.packet import CRC16
from iapmodem.ymodem import (
    Channel,
    ReceivedFile,
    SizeLimitExceeded,
    TransferAborted,
    VerificationFailed,
    YmodemError,
    receive,
    transmit,
)

BAUD_RATE = 115200
UPLOAD_FILE_NAME = "UploadedFlashImage.bin"

_BANNER = (
    "\r\n======================================================================"
    "\r\n=                                                                    ="
    "\r\n=        In-Application Programming Application  (Version 1.0.0)     ="
    "\r\n=                                                                    ="
    "\r\n======================================================================"
    "\r\n\r\n"
)


class SerialChannel:
    """A byte channel over a serial port, 115200 baud, 8N1, no flow control."""

    def __init__(self, port: str) -> None:
        self._serial = serial.serial_for_url(
            port,
            baudrate=BAUD_RATE,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            rtscts=False,
            timeout=None,
        )

    def read(self, timeout: float | None) -> int | None:
        """Read one byte; ``None`` when ``timeout`` seconds pass without one."""
        self._serial.timeout = timeout
        data = self._serial.read(1)
        return data[0] if data else None

    def write(self, data: bytes) -> None:
        self._serial.write(bytes(data))
        self._serial.flush()

    def flush_input(self) -> None:
        """Discard anything waiting in the receive buffer."""
        self._serial.reset_input_buffer()

    def close(self) -> None:
        self._serial.close()

    def __enter__(self) -> SerialChannel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Bootloader:
    """The loader's main menu: download, upload, run, and write protection."""

    def __init__(self, channel: Channel, flash: Flash) -> None:
        self.channel = channel
        self.flash = flash
        self.protection = flash.write_protection_status()

    def _say(self, text: str) -> None:
        self.channel.write(text.encode("latin-1"))

    def download(self) -> ReceivedFile | None:
        """Receive an image by YMODEM into the application area of flash."""
        self._say("Waiting for the file to be sent ... (press 'a' to abort)\n\r")
        try:
            received = receive(self.channel, self.flash, APPLICATION_ADDRESS)
        except SizeLimitExceeded:
            self._say("\n\n\rThe image size is higher than the allowed space memory!\n\r")
        except VerificationFailed:
            self._say("\n\n\rVerification failed!\n\r")
        except TransferAborted:
            self._say("\r\n\nAborted by user.\n\r")
        except YmodemError:
            self._say("\n\rFailed to receive the file!\n\r")
        else:
            self._say(
                "\n\n\r Programming Completed Successfully!\n\r"
                "--------------------------------\r\n Name: "
            )
            self._say(received.name)
            self._say("\n\r Size: ")
            self._say(int_to_str(received.size))
            self._say(" Bytes\r\n")
            self._say("-------------------\n")
            return received
        return None

    def upload(self) -> bool:
        """Send the application area of flash by YMODEM once the peer asks for it."""
        self._say("\n\n\rSelect Receive File\n\r")
        if self.channel.read(None) != CRC16:
            return False
        image = self.flash.read(APPLICATION_ADDRESS, USER_FLASH_SIZE)
        try:
            transmit(self.channel, image, UPLOAD_FILE_NAME)
        except YmodemError:
            self._say("\n\rError Occurred while Transmitting File\n\r")
            return False
        self._say("\n\rFile uploaded successfully \n\r")
        return True

    def _toggle_protection(self) -> bool:
        enable = self.protection == Protection.NONE
        try:
            self.flash.configure_write_protection(enable)
        except FlashError:
            if enable:
                self._say("Error: Flash write protection failed...\r\n")
            else:
                self._say("Error: Flash write un-protection failed...\r\n")
            return True
        self.protection = self.flash.write_protection_status()
        self._say("Write Protection enabled...\r\n" if enable else "Write Protection disabled...\r\n")
        self._say("System will now restart...\r\n")
        return False

    def handle_key(self, key: int | str) -> bool:
        """Act on one menu key; return ``False`` when the menu should stop."""
        if isinstance(key, int):
            key = chr(key)
        if key == "1":
            self.download()
        elif key == "2":
            self.upload()
        elif key == "3":
            self._say("Start program execution......\r\n\n")
            return False
        elif key == "4":
            return self._toggle_protection()
        else:
            self._say("Invalid Number ! ==> The number should be either 1, 2, 3 or 4\r")
        return True

    def _show_menu(self) -> None:
        self._say("\r\n=================== Main Menu ============================\r\n\n")
        self._say("  Download image to the internal Flash ----------------- 1\r\n\n")
        self._say("  Upload image from the internal Flash ----------------- 2\r\n\n")
        self._say("  Execute the loaded application ----------------------- 3\r\n\n")
        if self.protection != Protection.NONE:
            self._say("  Disable the write protection ------------------------- 4\r\n\n")
        else:
            self._say("  Enable the write protection -------------------------- 4\r\n\n")
        self._say("==========================================================\r\n\n")

    def run_menu(self) -> None:
        """Show the menu and serve keys until one stops it or input ends."""
        self._say(_BANNER)
        self.protection = self.flash.write_protection_status()
        flush = getattr(self.channel, "flush_input", None)
        while True:
            self._show_menu()
            if flush is not None:
                flush()
            key = self.channel.read(None)
            if key is None:
                return
            if not self.handle_key(key):
                return


def _load_image(flash: Flash, path: Path) -> None:
    image = path.read_bytes()
    if len(image) > USER_FLASH_SIZE:
        raise SystemExit(f"{path}: image larger than {USER_FLASH_SIZE} bytes")
    padding = -len(image) % 4
    flash.write(APPLICATION_ADDRESS, image + b"\xff" * padding)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="iapmodem",
        description="Serve the in-application programming menu on a serial port.",
    )
    parser.add_argument("port", help="serial port name or pyserial URL")
    parser.add_argument("--image", type=Path, help="application image to preload into flash")
    parser.add_argument("--save", type=Path, help="file to store the application area in afterwards")
    args = parser.parse_args(argv)

    flash = Flash()
    if args.image is not None:
        _load_image(flash, args.image)

    with SerialChannel(args.port) as channel:
        Bootloader(channel, flash).run_menu()

    if args.save is not None:
        args.save.write_bytes(flash.read(APPLICATION_ADDRESS, USER_FLASH_SIZE))
    return 0