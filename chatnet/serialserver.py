"""UDP listener that forwards "led" commands to a serial port."""

from __future__ import annotations

import socket
import sys
from typing import BinaryIO, TextIO

import serial

PORT = 12345
BUFLEN = 1024


def handle_datagram(data: bytes, serial_port: BinaryIO, out: TextIO) -> str:
    """Print a received datagram and write "led" to the serial port if asked.

    Returns the text of the datagram.
    """
    raw = data[:BUFLEN].split(b"\0", 1)[0]
    text = raw.decode("utf-8", errors="replace")
    out.write(f"{text}\n")
    out.flush()
    if b"led" in raw:
        serial_port.write(b"led")
    return text


def open_serial(path: str) -> serial.Serial:
    """Open a serial port at 9600 baud, 8 data bits, ignoring parity errors."""
    port = serial.Serial(
        path,
        baudrate=9600,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
    )
    port.reset_input_buffer()
    return port


def serve(sock: socket.socket, serial_port: BinaryIO, out: TextIO) -> None:
    """Receive datagrams forever; errors on the socket propagate."""
    while True:
        data, _ = sock.recvfrom(BUFLEN)
        handle_datagram(data, serial_port, out)


def main(argv: list[str] | None = None) -> int:
    """Start the listener: the argument is the serial port path."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 1:
        print("Usage: serialserver serial_port")
        return 1
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        print(f"Error creating socket: {exc}", file=sys.stderr)
        return 1
    with sock:
        try:
            sock.bind(("", PORT))
        except OSError as exc:
            print(f"Error binding: {exc}", file=sys.stderr)
            return 1
        try:
            serial_port = open_serial(args[0])
        except OSError as exc:
            print(f"Error opening serial port: {exc}", file=sys.stderr)
            return 1
        with serial_port:
            try:
                serve(sock, serial_port, sys.stdout)
            except OSError as exc:
                print(f"Error receiving: {exc}", file=sys.stderr)
                return 1
            except KeyboardInterrupt:
                return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())