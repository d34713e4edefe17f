"""Building server responses to DHCPv6 client messages."""

from __future__ import annotations

import datetime
import ipaddress
import struct
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from netboot.dhcp6.options import (
    OPT_BOOTFILE_URL,
    OPT_CLIENT_ID,
    OPT_PREFERENCE,
    OPT_SERVER_ID,
    OPT_STATUS_CODE,
    OPT_VENDOR_CLASS,
    Option,
    Options,
    make_dns_servers_option,
    make_ia_addr_option,
    make_ia_na_option,
    make_option,
    make_status_option,
)
from netboot.dhcp6.packet import MessageType, Packet

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_UINT64 = 0xFFFFFFFFFFFFFFFF
_UINT32 = 0xFFFFFFFF

_STATUS_NO_ADDRS_AVAIL = 2
_ARCH_HTTP_CLIENT = 0x10
_HTTP_CLIENT_VENDOR_CLASS = bytes([0, 0, 0, 0, 0, 10]) + b"HTTPClient"
_RELEASE_STATUS = bytes(2) + b"Release received."

IPLike = ipaddress.IPv4Address | ipaddress.IPv6Address | str | bytes


@dataclass
class IdentityAssociation:
    """Ties an IP address to one network interface of a client."""

    ip_address: IPLike
    client_id: bytes = b""
    interface_id: bytes = b""
    created_at: datetime.datetime | None = None


class NoAddressesAvailable(Exception):
    """Raised when the address pool cannot serve every requested interface.

    ``associations`` holds the associations that were made before the pool
    ran out; ``response`` holds the reply to send to the client, if any.
    """

    def __init__(
        self,
        message: str,
        associations: Iterable[IdentityAssociation] = (),
        response: Packet | None = None,
    ) -> None:
        super().__init__(message)
        self.associations = list(associations)
        self.response = response


class AddressPool(Protocol):
    """Keeps track of assigned and available addresses."""

    def reserve_addresses(
        self, client_id: bytes, interface_ids: Sequence[bytes]
    ) -> list[IdentityAssociation]:
        """Return associations for each interface, or raise NoAddressesAvailable."""

    def release_addresses(self, client_id: bytes, interface_ids: Sequence[bytes]) -> None:
        """Return the addresses of the given interfaces to the pool."""


class BootConfiguration(Protocol):
    """Provides the values of options served to clients."""

    def get_boot_url(self, client_id: bytes, client_arch_type: int) -> bytes:
        """Return the boot file URL for a client."""

    def get_preference(self) -> bytes | None:
        """Return the preference option value, or None to omit it."""

    def get_recursive_dns(self) -> list[IPLike]:
        """Return the recursive DNS servers to announce."""


def iaid_hash(interface_id: bytes) -> int:
    """Return the 64-bit FNV-1a hash of an interface ID."""
    value = _FNV_OFFSET
    for byte in bytes(interface_id):
        value ^= byte
        value = (value * _FNV_PRIME) & _UINT64
    return value


def ias_without_addresses(
    associations: Iterable[IdentityAssociation], all_ias: Iterable[bytes]
) -> list[bytes]:
    """Return the interface IDs in ``all_ias`` that have no association."""
    served = {iaid_hash(association.interface_id) for association in associations}
    return [bytes(ia) for ia in all_ias if iaid_hash(ia) not in served]


class PacketBuilder:
    """Generates responses to packets received from DHCPv6 clients."""

    def __init__(self, preferred_lifetime: int = 0, valid_lifetime: int = 0) -> None:
        self.preferred_lifetime = preferred_lifetime
        self.valid_lifetime = valid_lifetime

    def build_response(
        self,
        packet: Packet,
        server_duid: bytes,
        configuration: BootConfiguration,
        addresses: AddressPool,
    ) -> Packet | None:
        """Return the response to ``packet``, or None for unhandled types.

        When the pool runs out of addresses, NoAddressesAvailable is raised
        with the response to send in its ``response`` attribute.
        """
        options = packet.options
        client_id = options.client_id()
        arch = options.client_arch_type()
        tid = packet.transaction_id

        if packet.type == MessageType.SOLICIT:
            url = configuration.get_boot_url(self.extract_ll_address_or_id(client_id), arch)
            try:
                associations = addresses.reserve_addresses(client_id, options.ia_na_ids())
            except NoAddressesAvailable as err:
                response = self.make_advertise_no_addresses(tid, server_duid, client_id, err)
                raise NoAddressesAvailable(str(err), err.associations, response) from err
            return self.make_advertise(
                tid,
                server_duid,
                client_id,
                arch,
                associations,
                url,
                configuration.get_preference(),
                configuration.get_recursive_dns(),
            )

        if packet.type == MessageType.REQUEST:
            url = configuration.get_boot_url(self.extract_ll_address_or_id(client_id), arch)
            error: NoAddressesAvailable | None = None
            try:
                associations = addresses.reserve_addresses(client_id, options.ia_na_ids())
            except NoAddressesAvailable as err:
                associations = err.associations
                error = err
            response = self.make_reply(
                tid,
                server_duid,
                client_id,
                arch,
                associations,
                ias_without_addresses(associations, options.ia_na_ids()),
                url,
                configuration.get_recursive_dns(),
                error,
            )
            if error is not None:
                raise NoAddressesAvailable(str(error), associations, response) from error
            return response

        if packet.type == MessageType.INFORMATION_REQUEST:
            url = configuration.get_boot_url(self.extract_ll_address_or_id(client_id), arch)
            return self.make_information_request_reply(
                tid, server_duid, client_id, arch, url, configuration.get_recursive_dns()
            )

        if packet.type == MessageType.RELEASE:
            addresses.release_addresses(client_id, options.ia_na_ids())
            return self.make_release_reply(tid, server_duid, client_id)

        return None

    def _ia_na(self, association: IdentityAssociation) -> Option:
        return make_ia_na_option(
            association.interface_id,
            self.t1(),
            self.t2(),
            make_ia_addr_option(
                association.ip_address, self.preferred_lifetime, self.valid_lifetime
            ),
        )

    @staticmethod
    def _add_boot_options(
        options: Options, client_arch_type: int, boot_file_url: bytes
    ) -> None:
        if client_arch_type == _ARCH_HTTP_CLIENT:
            options.add(make_option(OPT_VENDOR_CLASS, _HTTP_CLIENT_VENDOR_CLASS))
        options.add(make_option(OPT_BOOTFILE_URL, boot_file_url))

    def make_advertise(
        self,
        transaction_id: bytes,
        server_duid: bytes,
        client_id: bytes,
        client_arch_type: int,
        associations: Iterable[IdentityAssociation],
        boot_file_url: bytes,
        preference: bytes | None,
        dns_servers: Sequence[IPLike],
    ) -> Packet:
        """Build an Advertise message offering the given associations."""
        options = Options()
        options.add(make_option(OPT_CLIENT_ID, client_id))
        for association in associations:
            options.add(self._ia_na(association))
        options.add(make_option(OPT_SERVER_ID, server_duid))
        self._add_boot_options(options, client_arch_type, boot_file_url)
        if preference is not None:
            options.add(make_option(OPT_PREFERENCE, preference))
        if dns_servers:
            options.add(make_dns_servers_option(dns_servers))
        return Packet(MessageType.ADVERTISE, bytes(transaction_id), options)

    def make_reply(
        self,
        transaction_id: bytes,
        server_duid: bytes,
        client_id: bytes,
        client_arch_type: int,
        associations: Iterable[IdentityAssociation],
        ias_without_addresses: Iterable[bytes],
        boot_file_url: bytes,
        dns_servers: Sequence[IPLike],
        error: BaseException | None,
    ) -> Packet:
        """Build a Reply to a Request, with a status for unserved interfaces."""
        options = Options()
        options.add(make_option(OPT_CLIENT_ID, client_id))
        for association in associations:
            options.add(self._ia_na(association))
        message = "" if error is None else str(error)
        for ia in ias_without_addresses:
            options.add(
                make_ia_na_option(
                    ia,
                    self.t1(),
                    self.t2(),
                    make_status_option(_STATUS_NO_ADDRS_AVAIL, message),
                )
            )
        options.add(make_option(OPT_SERVER_ID, server_duid))
        self._add_boot_options(options, client_arch_type, boot_file_url)
        if dns_servers:
            options.add(make_dns_servers_option(dns_servers))
        return Packet(MessageType.REPLY, bytes(transaction_id), options)

    def make_information_request_reply(
        self,
        transaction_id: bytes,
        server_duid: bytes,
        client_id: bytes,
        client_arch_type: int,
        boot_file_url: bytes,
        dns_servers: Sequence[IPLike],
    ) -> Packet:
        """Build a Reply to an Information-request."""
        options = Options()
        options.add(make_option(OPT_CLIENT_ID, client_id))
        options.add(make_option(OPT_SERVER_ID, server_duid))
        self._add_boot_options(options, client_arch_type, boot_file_url)
        if dns_servers:
            options.add(make_dns_servers_option(dns_servers))
        return Packet(MessageType.REPLY, bytes(transaction_id), options)

    def make_release_reply(
        self, transaction_id: bytes, server_duid: bytes, client_id: bytes
    ) -> Packet:
        """Build a Reply acknowledging a Release."""
        options = Options()
        options.add(make_option(OPT_CLIENT_ID, client_id))
        options.add(make_option(OPT_SERVER_ID, server_duid))
        options.add(make_option(OPT_STATUS_CODE, _RELEASE_STATUS))
        return Packet(MessageType.REPLY, bytes(transaction_id), options)

    def make_advertise_no_addresses(
        self,
        transaction_id: bytes,
        server_duid: bytes,
        client_id: bytes,
        error: BaseException,
    ) -> Packet:
        """Build an Advertise saying that no addresses are available."""
        options = Options()
        options.add(make_option(OPT_CLIENT_ID, client_id))
        options.add(make_option(OPT_SERVER_ID, server_duid))
        options.add(make_status_option(_STATUS_NO_ADDRS_AVAIL, str(error)))
        return Packet(MessageType.ADVERTISE, bytes(transaction_id), options)

    def t1(self) -> int:
        """Renewal time: half the preferred lifetime."""
        return (self.preferred_lifetime & _UINT32) // 2

    def t2(self) -> int:
        """Rebinding time: four fifths of the preferred lifetime."""
        return ((self.preferred_lifetime * 4) & _UINT32) // 5

    def extract_ll_address_or_id(self, client_id: bytes | None) -> bytes:
        """Return the link-layer address or identifier carried in a DUID."""
        if client_id is None or len(client_id) < 2:
            raise ValueError("client ID is missing or shorter than 2 bytes")
        client_id = bytes(client_id)
        (duid_type,) = struct.unpack_from(">H", client_id)
        if duid_type == 1:
            return client_id[8:]
        if duid_type == 3:
            return client_id[4:]
        return client_id[2:]