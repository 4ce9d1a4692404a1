import socket
import struct

from vrshelf.remote import (
    DeoPacket,
    DeoRemoteClient,
    PlayerState,
    decode_packet,
    encode_packet,
)


def test_empty_packet_bytes():
    assert encode_packet(DeoPacket()) == b"\x02\x00\x00\x00{}"


def test_round_trip():
    p = DeoPacket(path="/api/dms/file/12", duration=100.5, current_time=3.25,
                  playback_speed=1.0, player_state=PlayerState.PAUSED)
    data = encode_packet(p)
    assert struct.unpack("<I", data[:4])[0] == len(data) - 4
    assert decode_packet(data[4:]) == p


def test_decode_garbage():
    assert decode_packet(b"not json") == DeoPacket()


def test_exchange_over_socketpair():
    a, b = socket.socketpair()
    received, states = [], []
    client = DeoRemoteClient("localhost", received.append, states.append)
    try:
        b.sendall(encode_packet(DeoPacket(path="/x/5", duration=10)))
        client.exchange(a)
        reply = b.recv(64)
    finally:
        a.close()
        b.close()
    assert received[0].path == "/x/5"
    assert reply == encode_packet(DeoPacket())
    assert states == [{"connected": True, "deovrHost": "localhost"}]


def test_run_once_without_host():
    calls = []
    DeoRemoteClient("", calls.append).run_once()
    assert calls == []