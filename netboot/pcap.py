"""Reading and writing the classic libpcap capture format."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator

_FILE_HEADER = "IHHQII"
_PACKET_HEADER = "IIII"
_MAGIC_USEC = 0xA1B2C3D4
_MAGIC_NSEC = 0xA1B23C4D
_UINT32 = 0xFFFFFFFF
_NS_PER_SEC = 1_000_000_000

_ORDER_PREFIX = {"little": "<", "big": ">"}


class LinkType(enum.IntEnum):
    """Describes the contents of each packet in a capture."""

    ETHERNET = 1
    RAW = 101


class PcapError(Exception):
    """Raised when pcap data is malformed or truncated."""


@dataclass
class Packet:
    """One captured packet.

    ``timestamp`` is in nanoseconds since the Unix epoch, ``length`` is the
    original length on the wire and ``data`` the captured bytes.
    """

    timestamp: int
    length: int
    data: bytes


def _link_type(value: int) -> LinkType | int:
    try:
        return LinkType(value)
    except ValueError:
        return value


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _prefix(byte_order: str | None) -> str:
    if byte_order is None:
        return "<"
    try:
        return _ORDER_PREFIX[byte_order]
    except KeyError:
        raise ValueError(f"unknown byte order {byte_order!r}") from None


class Reader:
    """Iterates over the packets of a pcap stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        size = struct.calcsize("<" + _FILE_HEADER)
        header = _read_exact(stream, size)
        if len(header) < size:
            raise PcapError(
                f"reading pcap header: expected {size} bytes, got {len(header)}"
            )

        # The magic number only says "same" or "opposite" endianness, so
        # the version numbers are what tell us the byte order.
        self.byte_order = "little"
        magic, major, minor, _, snap_len, link = struct.unpack("<" + _FILE_HEADER, header)
        if major == 0x200 and minor == 0x400:
            self.byte_order = "big"
            magic, major, minor, _, snap_len, link = struct.unpack(
                ">" + _FILE_HEADER, header
            )

        if magic == _MAGIC_USEC:
            self._multiplier = 1000
        elif magic == _MAGIC_NSEC:
            self._multiplier = 1
        else:
            raise PcapError("bad magic")

        if major != 2 or minor != 4:
            raise PcapError(f"unknown pcap version {major}.{minor}")

        self.snap_len = snap_len
        self.link_type = _link_type(link)
        self._packet_format = _ORDER_PREFIX[self.byte_order] + _PACKET_HEADER

    def __iter__(self) -> Iterator[Packet]:
        size = struct.calcsize(self._packet_format)
        while True:
            header = _read_exact(self._stream, size)
            if not header:
                return
            if len(header) < size:
                raise PcapError("truncated packet header")
            sec, subsec, captured, original = struct.unpack(self._packet_format, header)
            data = _read_exact(self._stream, captured)
            if len(data) < captured:
                if not data:
                    return
                raise PcapError("truncated packet data")
            yield Packet(
                timestamp=sec * _NS_PER_SEC + self._multiplier * subsec,
                length=original,
                data=data,
            )


class Writer:
    """Serializes packets to a binary stream in nanosecond pcap format."""

    def __init__(
        self,
        stream: BinaryIO,
        link_type: LinkType | int = LinkType.ETHERNET,
        snap_len: int = 65535,
        byte_order: str | None = None,
    ) -> None:
        self.stream = stream
        self.link_type = link_type
        self.snap_len = snap_len
        self._prefix = _prefix(byte_order)
        self._header_written = False

    def _write_header(self) -> None:
        header = struct.pack(
            self._prefix + _FILE_HEADER,
            _MAGIC_NSEC,
            2,
            4,
            0,
            self.snap_len & _UINT32,
            int(self.link_type) & _UINT32,
        )
        self.stream.write(header)
        self._header_written = True

    def put(self, packet: Packet) -> None:
        """Write one packet, preceded by the file header on first use."""
        if not self._header_written:
            self._write_header()
        sec, nsec = divmod(packet.timestamp, _NS_PER_SEC)
        header = struct.pack(
            self._prefix + _PACKET_HEADER,
            sec & _UINT32,
            nsec,
            len(packet.data) & _UINT32,
            packet.length & _UINT32,
        )
        self.stream.write(header)
        self.stream.write(bytes(packet.data))