import io
import struct
import time

import pytest

from netboot.pcap import LinkType, Packet, PcapError, Reader, Writer


def _packets():
    return [
        Packet(timestamp=time.time_ns(), length=42, data=bytes([1, 2, 3, 4])),
        Packet(timestamp=time.time_ns(), length=30, data=bytes([2, 3, 4, 5])),
        Packet(timestamp=time.time_ns(), length=20, data=bytes([3, 4, 5, 6])),
        Packet(timestamp=time.time_ns(), length=10, data=bytes([4, 5, 6, 7])),
    ]


def test_readback_all_byte_orders():
    pkts = _packets()
    serializations = set()
    for order in (None, "little", "big"):
        buf = io.BytesIO()
        writer = Writer(buf, LinkType.ETHERNET, 65535, order)
        for pkt in pkts:
            writer.put(pkt)
        serializations.add(buf.getvalue())

        buf.seek(0)
        reader = Reader(buf)
        assert reader.link_type == LinkType.ETHERNET
        assert list(reader) == pkts

    assert len(serializations) == 2


def test_writer_header_bytes():
    little = io.BytesIO()
    Writer(little, LinkType.ETHERNET, 65535, "little").put(
        Packet(timestamp=0, length=3, data=b"abc")
    )
    big = io.BytesIO()
    Writer(big, LinkType.ETHERNET, 65535, "big").put(
        Packet(timestamp=0, length=3, data=b"abc")
    )
    assert little.getvalue()[:4] == b"\x4d\x3c\xb2\xa1"
    assert big.getvalue()[:4] == b"\xa1\xb2\x3c\x4d"
    assert len(little.getvalue()) == 24 + 16 + 3
    assert little.getvalue().endswith(b"abc")


def test_header_written_once():
    buf = io.BytesIO()
    writer = Writer(buf, LinkType.RAW, 100, None)
    writer.put(Packet(timestamp=1, length=1, data=b"x"))
    writer.put(Packet(timestamp=2, length=1, data=b"y"))
    assert len(buf.getvalue()) == 24 + 2 * (16 + 1)


def test_bad_byte_order():
    with pytest.raises(ValueError):
        Writer(io.BytesIO(), LinkType.ETHERNET, 65535, "middle")


def test_reads_microsecond_format():
    header = struct.pack("<IHHQII", 0xA1B2C3D4, 2, 4, 0, 65535, 1)
    record = struct.pack("<IIII", 10, 5, 2, 60) + b"\xaa\xbb"
    reader = Reader(io.BytesIO(header + record))
    pkts = list(reader)
    assert pkts == [Packet(timestamp=10_000_005_000, length=60, data=b"\xaa\xbb")]


def test_reads_big_endian_nanosecond_format():
    header = struct.pack(">IHHQII", 0xA1B23C4D, 2, 4, 0, 65535, 101)
    record = struct.pack(">IIII", 7, 123, 1, 1) + b"\x01"
    reader = Reader(io.BytesIO(header + record))
    assert reader.link_type == LinkType.RAW
    assert reader.byte_order == "big"
    assert list(reader) == [Packet(timestamp=7_000_000_123, length=1, data=b"\x01")]


def test_unknown_link_type_kept_as_int():
    buf = io.BytesIO()
    Writer(buf, 147, 65535, None).put(Packet(timestamp=5, length=0, data=b""))
    buf.seek(0)
    reader = Reader(buf)
    assert reader.link_type == 147
    assert list(reader) == [Packet(timestamp=5, length=0, data=b"")]


def test_bad_magic():
    header = struct.pack("<IHHQII", 0xDEADBEEF, 2, 4, 0, 65535, 1)
    with pytest.raises(PcapError, match="bad magic"):
        Reader(io.BytesIO(header))


def test_bad_version():
    header = struct.pack("<IHHQII", 0xA1B23C4D, 3, 0, 0, 65535, 1)
    with pytest.raises(PcapError, match="version"):
        Reader(io.BytesIO(header))


def test_short_header():
    with pytest.raises(PcapError, match="header"):
        Reader(io.BytesIO(b"\x4d\x3c\xb2\xa1"))


def test_truncated_packet_header():
    header = struct.pack("<IHHQII", 0xA1B23C4D, 2, 4, 0, 65535, 1)
    record = struct.pack("<IIII", 3, 9, 1, 1) + b"\x07"
    packets = iter(Reader(io.BytesIO(header + record + b"\x00\x00\x00")))
    assert next(packets) == Packet(timestamp=3_000_000_009, length=1, data=b"\x07")
    with pytest.raises(PcapError):
        next(packets)


def test_truncated_packet_data():
    header = struct.pack("<IHHQII", 0xA1B23C4D, 2, 4, 0, 65535, 1)
    good = struct.pack("<IIII", 2, 0, 2, 2) + b"\x05\x06"
    bad = struct.pack("<IIII", 1, 0, 4, 4) + b"\x01\x02"
    packets = iter(Reader(io.BytesIO(header + good + bad)))
    assert next(packets) == Packet(timestamp=2_000_000_000, length=2, data=b"\x05\x06")
    with pytest.raises(PcapError):
        next(packets)


def test_empty_capture_has_no_packets():
    header = struct.pack("<IHHQII", 0xA1B23C4D, 2, 4, 0, 65535, 1)
    assert list(Reader(io.BytesIO(header))) == []