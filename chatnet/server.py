"""Chat server relaying messages between connected clients."""

from __future__ import annotations

import select
import socket
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from .protocol import (
    MAX_NICKNAME_LENGTH,
    ConnectionClosed,
    Message,
    read_message,
    send_message,
    server_address,
)

DEFAULT_LOG_PATH = "chat_log.txt"
LISTEN_BACKLOG = 32
POLL_INTERVAL = 0.1
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RecipientNotFound(LookupError):
    """A private message names a nickname nobody connected uses."""


class SendFailed(ConnectionError):
    """A broadcast could not be delivered to one of the clients."""


def format_log_line(message: Message, when: datetime) -> str:
    """Return the chat-log line for a message, without the newline."""
    return f"{when.strftime(_LOG_DATE_FORMAT)} > {message.nickname}> {message.message}"


def append_log(
    message: Message,
    path: str | Path = DEFAULT_LOG_PATH,
    when: datetime | None = None,
) -> bool:
    """Append a message to the chat log.

    Empty messages are not logged. Returns True when a line was written.
    """
    if not message.message:
        return False
    stamp = datetime.now() if when is None else when
    try:
        with open(path, "a", encoding="utf-8") as history:
            history.write(format_log_line(message, stamp) + "\n")
    except OSError as exc:
        print(f"Error opening chat log file: {exc}", file=sys.stderr)
        return False
    return True


@dataclass(eq=False)
class ClientConnection:
    """A connected client and the nickname it announced."""

    sock: socket.socket
    nickname: str
    alive: bool = True


class ChatServer:
    """Accepts clients and relays their messages to one another."""

    def __init__(
        self,
        port: int,
        log_path: str | Path = DEFAULT_LOG_PATH,
        out: TextIO | None = None,
    ) -> None:
        self.out = sys.stdout if out is None else out
        self.log_path = Path(log_path)
        self.clients: list[ClientConnection] = []
        self._stop = threading.Event()
        self._running = False
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(server_address(port))
            listener.setblocking(False)
            listener.listen(LISTEN_BACKLOG)
        except BaseException:
            listener.close()
            raise
        self.listener = listener

    def __enter__(self) -> "ChatServer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def address(self) -> tuple[str, int]:
        """The address the server listens on."""
        return self.listener.getsockname()

    def _print(self, text: str) -> None:
        self.out.write(text + "\n")
        self.out.flush()

    def accept_new_client(self) -> ClientConnection | None:
        """Accept one pending connection and read the client's nickname.

        Returns None when no connection is pending.
        """
        try:
            conn, _ = self.listener.accept()
        except BlockingIOError:
            return None
        conn.setblocking(True)
        try:
            raw = conn.recv(MAX_NICKNAME_LENGTH - 1)
        except OSError:
            conn.close()
            raise
        nickname = raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        client = ClientConnection(conn, nickname)
        self.clients.append(client)
        self._print(f"Client '{nickname}' connected")
        return client

    def find_client_by_name(self, nickname: str) -> ClientConnection | None:
        """Return the first client using the nickname, or None."""
        return next(
            (client for client in self.clients if client.nickname == nickname), None
        )

    def receive_and_broadcast(self, sock: socket.socket) -> Message:
        """Read a message from a client and deliver it.

        A message starting with '@' goes only to the named client; any other
        is sent to every client but the sender. Raises ConnectionClosed when
        nothing can be read, RecipientNotFound for an unknown recipient and
        SendFailed when a broadcast cannot be delivered.
        """
        message = read_message(sock)
        append_log(message, self.log_path)
        if message.message.startswith("@"):
            words = message.message[1:].split()
            name = words[0] if words else ""
            recipient = self.find_client_by_name(name)
            if recipient is None:
                raise RecipientNotFound(name)
            try:
                send_message(recipient.sock, message)
            except OSError:
                pass
            return message
        for client in self.clients:
            if not client.alive or client.sock is sock:
                continue
            try:
                send_message(client.sock, message)
            except OSError as exc:
                client.alive = False
                raise SendFailed(client.nickname) from exc
        self._print(f"{message.nickname}> {message.message}")
        return message

    def compact(self) -> list[str]:
        """Drop disconnected clients; return their nicknames in order."""
        removed: list[str] = []
        remaining: list[ClientConnection] = []
        for client in self.clients:
            if client.alive:
                remaining.append(client)
                continue
            client.sock.close()
            removed.append(client.nickname)
            self._print(f"Client '{client.nickname}' disconnected")
            self._print(f"Current online clients: {len(self.clients) - len(removed)}")
        self.clients = remaining
        return removed

    def run(self) -> None:
        """Serve clients until close() is called or polling fails."""
        self._running = True
        current = len(self.clients)
        try:
            while not self._stop.is_set():
                watched = [self.listener] + [c.sock for c in self.clients if c.alive]
                try:
                    readable, _, _ = select.select(watched, [], [], POLL_INTERVAL)
                except (OSError, ValueError) as exc:
                    if not self._stop.is_set():
                        print(f"Call to poll failed: {exc}", file=sys.stderr)
                    break
                if not readable:
                    continue
                if len(self.clients) != current:
                    self._print("Checking 1 fds")
                    current = len(self.clients)
                if self.listener in readable:
                    try:
                        self.accept_new_client()
                    except OSError as exc:
                        print(f"Error accepting new clients: {exc}", file=sys.stderr)
                        break
                    if len(self.clients) != current:
                        self._print(f"Current online clients: {len(self.clients)}")
                        current = len(self.clients)
                for client in list(self.clients):
                    if not client.alive or client.sock not in readable:
                        continue
                    try:
                        self.receive_and_broadcast(client.sock)
                    except ConnectionClosed as exc:
                        print(f"Error reading message: {exc}", file=sys.stderr)
                        client.alive = False
                        break
                    except (RecipientNotFound, SendFailed):
                        continue
                self.compact()
        finally:
            self._running = False
            self._close_sockets()

    def _close_sockets(self) -> None:
        for client in self.clients:
            client.sock.close()
        self.listener.close()

    def close(self) -> None:
        """Stop serving and close every socket."""
        self._stop.set()
        if not self._running:
            self._close_sockets()


def main(argv: list[str] | None = None) -> int:
    """Start the server on a port given as argument or typed in."""
    args = sys.argv[1:] if argv is None else argv
    if args:
        text = args[0]
    else:
        try:
            text = input("Enter The PORT Number: ")
        except EOFError:
            return 1
    try:
        port = int(text.strip())
    except ValueError:
        print(f"Invalid port number: {text}", file=sys.stderr)
        return 1
    try:
        server = ChatServer(port)
    except (OSError, ValueError, OverflowError) as exc:
        print(f"Error binding: {exc}", file=sys.stderr)
        return 1
    with server:
        try:
            server.run()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())