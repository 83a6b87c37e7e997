# iapmodem

An in-application programming loader that speaks YMODEM (CRC-16) over a
serial line. It keeps a simulated program flash in memory. From a text menu
you can receive a firmware image into that flash, send the application area
back, and switch write protection of the user pages on or off.

## Installation

```
pip install iapmodem
```

## Command line

```
iapmodem PORT [--image FILE] [--save FILE]
```

`PORT` is a serial port name or any pyserial URL, such as `/dev/ttyUSB0`,
`COM3` or `socket://localhost:7000`. The line runs at 115200 baud, 8N1, with
no flow control. Connect a terminal emulator that supports YMODEM to the
other end.

- `--image FILE` preloads an application image, at most 12288 bytes, into
  flash at `0x08004000` before the menu starts.
- `--save FILE` writes the 12288-byte application area to a file once the
  menu stops.

The menu offers:

1. Download an image into flash by YMODEM (press `a` to abort the wait).
2. Upload the application area as `UploadedFlashImage.bin` after the peer
   sends `C`.
3. Execute the loaded application: prints a message and stops the menu.
4. Enable or disable write protection of pages 8 to 39: on success prints
   that the system will restart and stops the menu.

Any other key prints an error and shows the menu again.

## Library use

```python
from iapmodem.common import int_to_str, str_to_int
from iapmodem.packet import crc16, build_packet
from iapmodem.flash import Flash

str_to_int("0x1F")    # 31
str_to_int("4K")      # 4096
str_to_int("2M")      # 2097152
int_to_str(1234)      # "1234"

crc16(b"123456789")   # CRC-16/XMODEM of the data

packet = build_packet(b"hello", 1)   # 128-byte block padded with 0x1A
frame = bytes(packet)                # start, number, ~number, data, CRC

flash = Flash(0x08004000, 0x08040000, 2048)
flash.erase(0x08004000)
flash.write(0x08004000, b"\x00\x10\x00\x20")
flash.read(0x08004000, 4)
```

### Modules

- `iapmodem.common`: `int_to_str` and `str_to_int` for unsigned 32-bit
  values; `str_to_int` accepts decimal, `0x` hex and `k`/`M` suffixes and
  raises `ValueError` on bad input.
- `iapmodem.flash`: `Flash`, a page-erasable, word-programmable memory
  whose writes can only clear bits, with `erase`, `write`, `read`,
  `write_protection_status` and `configure_write_protection`. Failures raise
  `FlashEraseError`, `FlashWriteError`, `FlashVerifyError` or
  `ProtectionError`, all subclasses of `FlashError`. `Protection` is the flag
  set the status is reported in.
- `iapmodem.packet`: protocol constants, `update_crc16`, `crc16`,
  `checksum`, the `Packet` dataclass, `build_initial_packet` and
  `build_packet`.
- `iapmodem.ymodem`: `receive_packet`, `receive` (programs the data into a
  `Flash` and returns a `ReceivedFile` with name and size) and `transmit`.
  They work over any object with `read(timeout)`, returning one byte as an
  `int` or `None` on timeout, and `write(data)`. Failures raise
  `TransferAborted`, `SizeLimitExceeded`, `VerificationFailed` or, more
  generally, `YmodemError`.
- `iapmodem.menu`: `SerialChannel`, a pyserial-backed channel usable as a
  context manager; `Bootloader`, with `download`, `upload`, `handle_key`
  and `run_menu`; and `main`, behind the `iapmodem` command.
- `iapmodem.display`: `convert_into_char` splits a number into five ASCII
  digit codes; `format_current` lays out a microampere reading as seven
  segment-LCD characters, for example `format_current(3500)` gives
  `"3"` with the colon flag, `"5"`, `"0"`, `"0"`, then `" UA"`.

## What it does not do

The flash is simulated in memory only; nothing is written to real hardware.
The "execute" and "restart" menu actions do not run or reset anything: they
stop the menu. `iapmodem.display` only computes the characters to show; it
does not drive an LCD.

## Tests

```
pip install "iapmodem[test]"
pytest
```