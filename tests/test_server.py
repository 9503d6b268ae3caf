import io
import select
import socket
import threading
import time
from datetime import datetime

import pytest

from chatnet.protocol import ConnectionClosed, Message, read_message, send_message
from chatnet.server import (
    ChatServer,
    RecipientNotFound,
    append_log,
    format_log_line,
    main,
)


@pytest.fixture
def server(tmp_path):
    srv = ChatServer(0, log_path=tmp_path / "chat_log.txt", out=io.StringIO())
    yield srv
    srv.close()


@pytest.fixture
def sockets():
    opened = []
    yield opened
    for sock in opened:
        sock.close()


def _open(server, nickname, sockets):
    sock = socket.create_connection(("127.0.0.1", server.address[1]))
    sock.settimeout(2)
    sockets.append(sock)
    sock.sendall(nickname.encode())
    return sock


def _join(server, nickname, sockets):
    sock = _open(server, nickname, sockets)
    select.select([server.listener], [], [], 2)
    client = server.accept_new_client()
    return sock, client


def _has_data(sock):
    readable, _, _ = select.select([sock], [], [], 0.1)
    return bool(readable)


def _wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_format_log_line():
    line = format_log_line(Message("alice", "hi"), datetime(2024, 1, 2, 3, 4, 5))
    assert line == "2024-01-02 03:04:05 > alice> hi"


def test_append_log_appends_lines(tmp_path):
    path = tmp_path / "log.txt"
    when = datetime(2024, 1, 2, 3, 4, 5)
    assert append_log(Message("alice", "one"), path, when) is True
    assert append_log(Message("bob", "two"), path, when) is True
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == [
        format_log_line(Message("alice", "one"), when),
        format_log_line(Message("bob", "two"), when),
    ]


def test_append_log_skips_empty_message(tmp_path):
    path = tmp_path / "log.txt"
    assert append_log(Message("alice", ""), path) is False
    assert not path.exists()


def test_append_log_unwritable_path(tmp_path):
    assert append_log(Message("alice", "hi"), tmp_path) is False


def test_accept_reads_nickname(server, sockets):
    _, client = _join(server, "alice", sockets)
    assert client.nickname == "alice"
    assert [c.nickname for c in server.clients] == ["alice"]
    assert "Client 'alice' connected" in server.out.getvalue()


def test_accept_without_pending_connection(server):
    assert server.accept_new_client() is None
    assert server.clients == []


def test_find_client_by_name(server, sockets):
    _, alice = _join(server, "alice", sockets)
    _, bob = _join(server, "bob", sockets)
    assert server.find_client_by_name("bob") is bob
    assert server.find_client_by_name("alice") is alice
    assert server.find_client_by_name("carol") is None


def test_broadcast_reaches_others_only(server, sockets):
    alice_sock, alice = _join(server, "alice", sockets)
    bob_sock, _ = _join(server, "bob", sockets)
    carol_sock, _ = _join(server, "carol", sockets)
    send_message(alice_sock, Message("alice", "hello"))
    result = server.receive_and_broadcast(alice.sock)
    assert result == Message("alice", "hello")
    assert read_message(bob_sock) == Message("alice", "hello")
    assert read_message(carol_sock) == Message("alice", "hello")
    assert not _has_data(alice_sock)
    assert "alice> hello" in server.out.getvalue()


def test_broadcast_is_logged(server, sockets):
    alice_sock, alice = _join(server, "alice", sockets)
    send_message(alice_sock, Message("alice", "logged"))
    server.receive_and_broadcast(alice.sock)
    text = server.log_path.read_text(encoding="utf-8")
    assert text.endswith(" > alice> logged\n")


def test_private_message_goes_to_recipient(server, sockets):
    alice_sock, alice = _join(server, "alice", sockets)
    bob_sock, _ = _join(server, "bob", sockets)
    carol_sock, _ = _join(server, "carol", sockets)
    send_message(alice_sock, Message("alice", "@bob psst"))
    server.receive_and_broadcast(alice.sock)
    assert read_message(bob_sock) == Message("alice", "@bob psst")
    assert not _has_data(carol_sock)
    assert not _has_data(alice_sock)


def test_private_message_unknown_recipient(server, sockets):
    alice_sock, alice = _join(server, "alice", sockets)
    send_message(alice_sock, Message("alice", "@nobody hi"))
    with pytest.raises(RecipientNotFound):
        server.receive_and_broadcast(alice.sock)


def test_closed_sender_raises(server, sockets):
    alice_sock, alice = _join(server, "alice", sockets)
    alice_sock.close()
    with pytest.raises(ConnectionClosed):
        server.receive_and_broadcast(alice.sock)


def test_compact_removes_dead_clients(server, sockets):
    _join(server, "alice", sockets)
    _join(server, "bob", sockets)
    _join(server, "carol", sockets)
    server.clients[1].alive = False
    removed = server.compact()
    assert removed == ["bob"]
    assert [c.nickname for c in server.clients] == ["alice", "carol"]
    output = server.out.getvalue()
    assert "Client 'bob' disconnected" in output
    assert "Current online clients: 2" in output


def test_close_closes_listener(tmp_path):
    srv = ChatServer(0, log_path=tmp_path / "log.txt", out=io.StringIO())
    srv.close()
    assert srv.listener.fileno() == -1


def test_run_relays_and_drops(server, sockets):
    thread = threading.Thread(target=server.run)
    thread.start()
    try:
        alice_sock = _open(server, "alice", sockets)
        assert _wait_until(lambda: len(server.clients) == 1)
        bob_sock = _open(server, "bob", sockets)
        assert _wait_until(lambda: len(server.clients) == 2)
        send_message(alice_sock, Message("alice", "from run"))
        assert read_message(bob_sock) == Message("alice", "from run")
        bob_sock.close()
        assert _wait_until(lambda: len(server.clients) == 1)
        assert server.clients[0].nickname == "alice"
    finally:
        server.close()
        thread.join(3)
    assert not thread.is_alive()
    assert "Client 'bob' disconnected" in server.out.getvalue()


def test_main_rejects_bad_port():
    assert main(["notaport"]) == 1