"""Event names carried in the ``type`` field of live envelopes."""
from __future__ import annotations

# Client → Server
JOIN = "join"
SEND = "message.send"
MARK_READ = "mark_read"
PING = "ping"

# Server → Client
WELCOME = "welcome"
JOINED = "joined"
SENT = "message.sent"
SEND_ERROR = "message.error"
RECEIVED = "message.received"
READ = "message.read"
ERROR = "error"
PONG = "pong"
