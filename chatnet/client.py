"""Interactive chat client."""

from __future__ import annotations

import selectors
import socket
import sys
from typing import TextIO

from .protocol import ConnectionClosed, Message, read_message, send_message

SERVER_ADDR = "127.0.0.1"


class InvalidPrivateMessage(ValueError):
    """A line starting with '@' has no message after the recipient."""


def parse_input(line: str, nickname: str) -> Message:
    """Turn a line typed by the user into an outgoing message.

    "@name text" is a private message to name; anything else is broadcast.
    """
    line = line.split("\n", 1)[0]
    if line.startswith("@"):
        recipient, sep, text = line[1:].partition(" ")
        if not sep:
            raise InvalidPrivateMessage(
                "Invalid private message format. Use @recipient message"
            )
        return Message(nickname=nickname, message=text, recipient=recipient)
    return Message(nickname=nickname, message=line)


def connect(port: int, host: str = SERVER_ADDR) -> socket.socket:
    """Open a TCP connection to the chat server."""
    sock = socket.create_connection((host, port))
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    except OSError:
        sock.close()
        raise
    return sock


def run_client(
    nickname: str, sock: socket.socket, stdin: TextIO, stdout: TextIO
) -> None:
    """Relay lines from stdin to the server and print what it sends back.

    Returns when stdin ends, the server closes or sending fails.
    """
    prompt = f"{nickname}> "
    with selectors.DefaultSelector() as selector:
        selector.register(stdin, selectors.EVENT_READ, "stdin")
        selector.register(sock, selectors.EVENT_READ, "sock")
        while True:
            stdout.write(prompt)
            stdout.flush()
            ready = {key.data for key, _ in selector.select()}
            if "stdin" in ready:
                line = stdin.readline()
                if not line:
                    return
                try:
                    outgoing = parse_input(line, nickname)
                except InvalidPrivateMessage as exc:
                    stdout.write(f"{exc}\n")
                    continue
                try:
                    send_message(sock, outgoing)
                except OSError as exc:
                    print(f"Error sending message: {exc}", file=sys.stderr)
                    return
            elif "sock" in ready:
                try:
                    incoming = read_message(sock)
                except ConnectionClosed as exc:
                    print(f"Error reading message: {exc}", file=sys.stderr)
                    return
                stdout.write(f"\r{incoming.nickname}> {incoming.message}\n")
                stdout.write(prompt)
                stdout.flush()


def main(argv: list[str] | None = None) -> int:
    """Start the client: arguments are a nickname and a port number."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print("Please specify a nickname and/or PORT number")
        return 0
    nickname = args[0]
    print(f"Welcome {nickname}")
    try:
        port = int(args[1])
    except ValueError:
        print(f"Invalid port number: {args[1]}", file=sys.stderr)
        return 1
    try:
        sock = connect(port)
    except (OSError, OverflowError) as exc:
        print(f"Error connecting to server: {exc}", file=sys.stderr)
        return 1
    with sock:
        run_client(nickname, sock, sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())