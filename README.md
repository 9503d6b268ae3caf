# chatnet

A small multi-user chat over TCP. It has three commands:

- **chatnet-server** accepts many clients. It relays each message to all the
  other clients, or to one client only when the message body starts with
  `@name`. Every non-empty message is appended to `chat_log.txt` in the
  working directory. Each line has the form
  `YYYY-MM-DD HH:MM:SS > nickname> message`.
- **chatnet-client** is a terminal client. It reads lines from standard input
  and prints incoming messages as they arrive.
- **chatnet-serialserver** listens for UDP datagrams on port 12345 and prints
  each one. When a datagram contains `led`, it writes `led` to a serial port.
  The port runs at 9600 baud, 8N1.

Messages go over the wire as fixed-size records. Each record holds a
nickname, a message body, a flags field and a recipient. Text longer than its
field is cut short.

## Installation

```
pip install .
```

## Running a chat

Start the server. Give the port as an argument:

```
chatnet-server 12345
```

If you leave the argument out, the server asks for the port:

```
chatnet-server
Enter The PORT Number: 12345
```

Connect clients to the server on `127.0.0.1`. Give each one a nickname and
the server's port:

```
chatnet-client alice 12345
chatnet-client bob 12345
```

In the client:

- Type a line to send it as a broadcast.
- Type `@bob hello` to send `hello` with its recipient field set to `bob`.
- A line that starts with `@` but has no space after the name is rejected.
  The client then prints a reminder of the format.
- The client stops when standard input ends, when the server closes the
  connection, or when a send fails.

The server prints a line each time a client connects or disconnects. It also
prints the number of clients online and every broadcast message.

## Serial relay

```
chatnet-serialserver /dev/ttyUSB0
```

## Using it as a library

```python
from chatnet.protocol import Message, read_message, send_message
from chatnet.client import parse_input

msg = parse_input("@bob see you at noon", "alice")
# msg.recipient == "bob", msg.message == "see you at noon"
data = msg.pack()
assert Message.from_bytes(data) == msg
```

Other parts you can use from your own code:

- `chatnet.server.ChatServer(port, log_path, out)` binds a listening socket.
  Call `run()` to serve clients and `close()` to stop and close every socket.
  It can also be used as a context manager.
- `chatnet.server.format_log_line` and `append_log` write chat-log lines.
- `chatnet.serialserver.handle_datagram` handles a single datagram. It takes
  any writable binary object as the serial port.

## Limitations

- The server takes the first bytes it receives from a new connection, up to
  49, as that client's nickname. `chatnet-client` sends no separate nickname
  when it connects, so the server reads the start of the client's first
  message as its nickname.
- The server decides between private and broadcast delivery by the message
  body only. It ignores the recipient field. A private message typed as
  `@bob hello` in `chatnet-client` reaches the server with the body `hello`,
  so the server broadcasts it to everyone.
- The server does not reply to the sender when a private message names a
  nickname that is not connected. The message is dropped.
- There is no authentication, no encryption, and no chat history for clients
  that join late. The log file is kept on the server only.

## Development

```
pip install .[test]
pytest
```