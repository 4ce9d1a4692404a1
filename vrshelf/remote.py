"""Length-prefixed JSON protocol for the DeoVR player remote."""

from __future__ import annotations

import json
import logging
import socket
import struct
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

log = logging.getLogger(__name__)

DEFAULT_PORT = 23554


class PlayerState(IntEnum):
    PLAYING = 0
    PAUSED = 1
    FINISHED = 2


@dataclass
class DeoPacket:
    path: str = ""
    duration: float = 0.0
    current_time: float = 0.0
    playback_speed: float = 0.0
    player_state: int = 0


_FIELDS = (
    ("path", "path"),
    ("duration", "duration"),
    ("current_time", "currentTime"),
    ("playback_speed", "playbackSpeed"),
    ("player_state", "playerState"),
)


def _number(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def encode_packet(packet: DeoPacket) -> bytes:
    """Encode a packet as a little-endian length header followed by JSON."""
    body = {
        key: _number(getattr(packet, attr))
        for attr, key in _FIELDS
        if getattr(packet, attr)
    }
    data = json.dumps(body, separators=(",", ":")).encode("utf-8")
    return struct.pack("<I", len(data)) + data


def decode_packet(data: bytes) -> DeoPacket:
    """Decode a JSON packet body; malformed input gives an empty packet."""
    packet = DeoPacket()
    try:
        raw = json.loads(data)
    except (ValueError, UnicodeDecodeError):
        return packet
    if not isinstance(raw, dict):
        return packet
    for attr, key in _FIELDS:
        if key in raw:
            default = getattr(packet, attr)
            try:
                setattr(packet, attr, type(default)(raw[key]))
            except (TypeError, ValueError):
                pass
    return packet


def _recv_exact(conn: socket.socket, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = conn.recv(size - len(buf))
        if not chunk:
            raise ConnectionError("connection closed")
        buf.extend(chunk)
    return bytes(buf)


class DeoRemoteClient:
    """Polls a DeoVR player, forwarding packets and connection state."""

    def __init__(
        self,
        host: str,
        on_packet: Callable[[DeoPacket], None],
        on_state: Optional[Callable[[dict], None]] = None,
        port: int = DEFAULT_PORT,
    ):
        self.host = host
        self.on_packet = on_packet
        self.on_state = on_state
        self.port = port

    def _publish(self, connected: bool) -> None:
        if self.on_state is not None:
            state = {"connected": connected}
            if connected:
                state["deovrHost"] = self.host
            self.on_state(state)

    def exchange(self, conn: socket.socket) -> Optional[DeoPacket]:
        """Read one packet, answer with a ping and return what was read."""
        conn.settimeout(2.0)
        (length,) = struct.unpack("<I", _recv_exact(conn, 4))
        packet = None
        if length > 0:
            packet = decode_packet(_recv_exact(conn, length))
            self.on_packet(packet)
        conn.settimeout(1.0)
        conn.sendall(encode_packet(DeoPacket()))
        self._publish(True)
        return packet

    def run_once(self) -> None:
        """Connect and exchange packets until the connection fails."""
        if not self.host:
            return
        with socket.create_connection((self.host, self.port), timeout=2.0) as conn:
            log.info("Connected to DeoVR")
            while True:
                self.exchange(conn)

    def run_forever(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self._publish(False)
            try:
                self.run_once()
            except OSError as exc:
                log.error("%s", exc)
            stop_event.wait(1.0)