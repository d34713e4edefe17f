import struct

import pytest

from netboot.dhcp6.options import (
    OPT_BOOTFILE_URL,
    OPT_CLIENT_ID,
    OPT_IA_NA,
    OPT_ORO,
    OPT_SERVER_ID,
    Option,
    OptionError,
    Options,
)
from netboot.dhcp6.packet import DiscardError, MessageType, Packet, unmarshal

TID = b"123"


def _oro(codes):
    return Option(OPT_ORO, b"".join(struct.pack(">H", code) for code in codes))


def _packet(message_type, *options):
    opts = Options()
    for option in options:
        opts.add(option)
    return Packet(type=message_type, transaction_id=TID, options=opts)


def test_discard_solicit_without_bootfile_url_option():
    packet = _packet(MessageType.SOLICIT, Option(OPT_CLIENT_ID, b"clientid"))
    with pytest.raises(DiscardError, match="file url"):
        packet.validate(b"serverid")


def test_discard_solicit_without_client_id_option():
    packet = _packet(MessageType.SOLICIT, _oro([OPT_BOOTFILE_URL]))
    with pytest.raises(DiscardError, match="Client id"):
        packet.validate(b"serverid")


def test_discard_solicit_with_server_id_option():
    packet = _packet(
        MessageType.SOLICIT,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_CLIENT_ID, b"clientid"),
        Option(OPT_SERVER_ID, b"serverid"),
    )
    with pytest.raises(DiscardError, match="has server id"):
        packet.validate(b"serverid")


def test_discard_request_without_bootfile_url_option():
    packet = _packet(
        MessageType.REQUEST,
        Option(OPT_CLIENT_ID, b"clientid"),
        Option(OPT_SERVER_ID, b"serverid"),
    )
    with pytest.raises(DiscardError, match="file url"):
        packet.validate(b"serverid")


def test_discard_request_without_client_id_option():
    packet = _packet(
        MessageType.REQUEST, _oro([OPT_BOOTFILE_URL]), Option(OPT_SERVER_ID, b"serverid")
    )
    with pytest.raises(DiscardError, match="Client id"):
        packet.validate(b"serverid")


def test_discard_request_without_server_id_option():
    packet = _packet(
        MessageType.REQUEST, _oro([OPT_BOOTFILE_URL]), Option(OPT_CLIENT_ID, b"clientid")
    )
    with pytest.raises(DiscardError, match="no server id"):
        packet.validate(b"serverid")


def test_discard_request_with_wrong_server_id():
    packet = _packet(
        MessageType.REQUEST,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_CLIENT_ID, b"clientid"),
        Option(OPT_SERVER_ID, b"serverid"),
    )
    with pytest.raises(DiscardError, match="different from ours"):
        packet.validate(b"wrongid")


def test_valid_request_is_accepted():
    packet = _packet(
        MessageType.REQUEST,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_CLIENT_ID, b"clientid"),
        Option(OPT_SERVER_ID, b"serverid"),
    )
    assert packet.validate(b"serverid") is None


def test_discard_information_request_with_ia():
    packet = _packet(
        MessageType.INFORMATION_REQUEST,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_IA_NA, b"id-1" + bytes(8)),
    )
    with pytest.raises(DiscardError, match="IA option"):
        packet.validate(b"serverid")


def test_discard_information_request_with_wrong_server_id():
    packet = _packet(
        MessageType.INFORMATION_REQUEST,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_SERVER_ID, b"other"),
    )
    with pytest.raises(DiscardError, match="different from ours"):
        packet.validate(b"serverid")


def test_discard_unknown_type():
    packet = _packet(MessageType.ADVERTISE)
    with pytest.raises(DiscardError, match="Unknown packet"):
        packet.validate(b"serverid")


def test_marshal_layout():
    packet = _packet(MessageType.SOLICIT, Option(OPT_CLIENT_ID, b"ab"))
    assert packet.marshal() == bytes([1]) + b"123" + bytes([0, 1, 0, 2]) + b"ab"


def test_round_trip():
    packet = _packet(
        MessageType.REQUEST,
        _oro([OPT_BOOTFILE_URL]),
        Option(OPT_CLIENT_ID, b"clientid"),
        Option(OPT_SERVER_ID, b"serverid"),
    )
    parsed = unmarshal(packet.marshal())
    assert parsed == packet
    assert parsed.type is MessageType.REQUEST


def test_unmarshal_malformed_options():
    with pytest.raises(OptionError, match="malformed options section"):
        unmarshal(bytes([1, 1, 2, 3, 0, 1, 0, 9, 1]))


def test_unmarshal_too_short():
    with pytest.raises(OptionError):
        unmarshal(bytes([1, 2]))


def test_marshal_rejects_bad_transaction_id():
    packet = Packet(type=MessageType.SOLICIT, transaction_id=b"12")
    with pytest.raises(ValueError):
        packet.marshal()