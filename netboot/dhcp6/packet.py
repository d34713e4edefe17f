"""DHCPv6 packets: encoding, decoding and validation of client messages."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from netboot.dhcp6.options import OptionError, Options, unmarshal_options


class MessageType(enum.IntEnum):
    """DHCPv6 message types from RFC 3315."""

    SOLICIT = 1
    ADVERTISE = 2
    REQUEST = 3
    CONFIRM = 4
    RENEW = 5
    REBIND = 6
    REPLY = 7
    RELEASE = 8
    DECLINE = 9
    RECONFIGURE = 10
    INFORMATION_REQUEST = 11
    RELAY_FORW = 12
    RELAY_REPL = 13


class DiscardError(ValueError):
    """Raised when a received packet fails validation and must be discarded."""


def _message_type(value: int) -> MessageType | int:
    try:
        return MessageType(value)
    except ValueError:
        return value


@dataclass
class Packet:
    """A DHCPv6 packet."""

    type: MessageType | int
    transaction_id: bytes = bytes(3)
    options: Options = field(default_factory=Options)

    def marshal(self) -> bytes:
        """Return the wire encoding of the packet."""
        transaction_id = bytes(self.transaction_id)
        if len(transaction_id) != 3:
            raise ValueError("transaction ID must be 3 bytes")
        try:
            encoded = self.options.marshal()
        except OptionError as err:
            raise OptionError(f"packet has malformed options section: {err}") from err
        return bytes([int(self.type)]) + transaction_id + encoded

    def validate(self, server_duid: bytes) -> None:
        """Raise DiscardError if this server should not answer the packet."""
        if self.type == MessageType.SOLICIT:
            self._validate_solicit()
        elif self.type == MessageType.REQUEST:
            self._validate_request(bytes(server_duid))
        elif self.type == MessageType.INFORMATION_REQUEST:
            self._validate_information_request(bytes(server_duid))
        elif self.type == MessageType.RELEASE:
            return
        else:
            raise DiscardError("Unknown packet")

    def _validate_solicit(self) -> None:
        options = self.options
        if not options.has_boot_file_url_option():
            raise DiscardError("'Solicit' packet doesn't have file url option")
        if not options.has_client_id():
            raise DiscardError("'Solicit' packet has no Client id option")
        if options.has_server_id():
            raise DiscardError("'Solicit' packet has server id option")

    def _validate_request(self, server_duid: bytes) -> None:
        options = self.options
        if not options.has_boot_file_url_option():
            raise DiscardError("'Request' packet doesn't have file url option")
        if not options.has_client_id():
            raise DiscardError("'Request' packet has no Client id option")
        if not options.has_server_id():
            raise DiscardError("'Request' packet has no server id option")
        if options.server_id() != server_duid:
            raise DiscardError(
                f"'Request' packet's server id option ({list(options.server_id())}) "
                f"is different from ours ({list(server_duid)})"
            )

    def _validate_information_request(self, server_duid: bytes) -> None:
        options = self.options
        if not options.has_boot_file_url_option():
            raise DiscardError(
                "'Information-request' packet doesn't have boot file url option"
            )
        if options.has_ia_na() or options.has_ia_ta():
            raise DiscardError("'Information-request' packet has an IA option present")
        if options.has_server_id() and options.server_id() != server_duid:
            raise DiscardError(
                f"'Information-request' packet's server id option "
                f"({list(options.server_id())}) is different from ours ({list(server_duid)})"
            )


def unmarshal(data: bytes) -> Packet:
    """Parse a DHCPv6 message into a Packet."""
    data = bytes(data)
    if len(data) < 4:
        raise OptionError("packet too short")
    try:
        options = unmarshal_options(data[4:])
    except OptionError as err:
        raise OptionError(f"packet has malformed options section: {err}") from err
    return Packet(type=_message_type(data[0]), transaction_id=data[1:4], options=options)