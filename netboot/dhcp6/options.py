"""DHCPv6 options: codes, encoding, decoding and lookups."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import Iterable

OPT_CLIENT_ID = 1
OPT_SERVER_ID = 2
OPT_IA_NA = 3
OPT_IA_TA = 4
OPT_IA_ADDR = 5
OPT_ORO = 6
OPT_PREFERENCE = 7
OPT_ELAPSED_TIME = 8
OPT_RELAY_MESSAGE = 9
OPT_AUTH = 11
OPT_UNICAST = 12
OPT_STATUS_CODE = 13
OPT_RAPID_COMMIT = 14
OPT_USER_CLASS = 15
OPT_VENDOR_CLASS = 16
OPT_VENDOR_OPTS = 17
OPT_INTERFACE_ID = 18
OPT_RECONF_MSG = 19
OPT_RECONF_ACCEPT = 20
OPT_RECURSIVE_DNS = 23
OPT_BOOTFILE_URL = 59
OPT_BOOTFILE_PARAM = 60
OPT_CLIENT_ARCH_TYPE = 61

_HEADER = ">HH"
_HEADER_LEN = 4
_MAX_LENGTH = 0xFFFF

IPLike = ipaddress.IPv4Address | ipaddress.IPv6Address | str | bytes


class OptionError(ValueError):
    """Raised for malformed or unencodable DHCPv6 options."""


@dataclass
class Option:
    """A single DHCPv6 option."""

    id: int
    value: bytes = b""

    @property
    def length(self) -> int:
        """Length of the option value in bytes."""
        return len(self.value)

    def marshal(self) -> bytes:
        """Return the wire encoding of the option."""
        value = bytes(self.value)
        if len(value) > _MAX_LENGTH:
            raise OptionError(f"option {self.id} value is longer than {_MAX_LENGTH} bytes")
        return struct.pack(_HEADER, self.id, len(value)) + value


def make_option(option_id: int, value: bytes) -> Option:
    """Create an option with the given code and value."""
    return Option(option_id, bytes(value))


def unmarshal_option(data: bytes) -> Option:
    """Decode the option at the start of ``data``."""
    data = bytes(data)
    if len(data) < _HEADER_LEN:
        raise OptionError(f"option header needs {_HEADER_LEN} bytes, only has {len(data)}")
    option_id, length = struct.unpack_from(_HEADER, data)
    if option_id == OPT_ORO and length % 2 != 0:
        raise OptionError(
            "OptionID request for options (6) length should be even number "
            f"of bytes: {length}"
        )
    available = len(data) - _HEADER_LEN
    if available < length:
        raise OptionError(
            f"option {option_id} claims to have {length} bytes of payload, "
            f"but only has {available} bytes"
        )
    return Option(option_id, data[_HEADER_LEN : _HEADER_LEN + length])


def unmarshal_options(data: bytes) -> Options:
    """Decode a sequence of options into a new Options collection."""
    data = bytes(data)
    ret = Options()
    pos = 0
    while pos < len(data):
        option = unmarshal_option(data[pos:])
        ret.add(option)
        pos += _HEADER_LEN + option.length
    return ret


def _ip16(addr: IPLike) -> bytes:
    if isinstance(addr, (bytes, bytearray)):
        address = ipaddress.ip_address(bytes(addr))
    elif isinstance(addr, str):
        address = ipaddress.ip_address(addr)
    else:
        address = addr
    if isinstance(address, ipaddress.IPv4Address):
        return bytes(10) + b"\xff\xff" + address.packed
    return address.packed


def make_ia_na_option(iaid: bytes, t1: int, t2: int, ia_option: Option) -> Option:
    """Create an IA_NA option wrapping an IA address or status option."""
    iaid = bytes(iaid)
    if len(iaid) < 4:
        raise OptionError("identity association ID must be at least 4 bytes")
    value = iaid[:4] + struct.pack(">II", t1, t2) + ia_option.marshal()
    return make_option(OPT_IA_NA, value)


def make_ia_addr_option(addr: IPLike, preferred_lifetime: int, valid_lifetime: int) -> Option:
    """Create an IA address option with preferred and valid lifetimes."""
    value = _ip16(addr) + struct.pack(">II", preferred_lifetime, valid_lifetime)
    return make_option(OPT_IA_ADDR, value)


def make_status_option(status_code: int, message: str) -> Option:
    """Create a status code option carrying a message."""
    return make_option(OPT_STATUS_CODE, struct.pack(">H", status_code) + message.encode("utf-8"))


def make_dns_servers_option(addresses: Iterable[IPLike]) -> Option:
    """Create a recursive DNS servers option from a list of addresses."""
    return make_option(OPT_RECURSIVE_DNS, b"".join(_ip16(address) for address in addresses))


def _byte_list(data: bytes) -> str:
    return "[" + " ".join(str(b) for b in data) + "]"


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class Options(dict):
    """DHCPv6 options of a packet, keyed by option code, in arrival order."""

    def add(self, option: Option) -> None:
        """Append an option; repeated codes are kept in order."""
        self.setdefault(option.id, []).append(option)

    def marshal(self) -> bytes:
        """Return the wire encoding of every option."""
        return b"".join(option.marshal() for options in self.values() for option in options)

    def human_readable(self) -> list[str]:
        """Describe each option on its own line."""
        ret: list[str] = []
        for options in self.values():
            for option in options:
                if option.id == OPT_IA_NA:
                    ret.extend(self._human_readable_ia_na(option))
                else:
                    value = bytes(option.value)
                    ret.append(
                        f"Option: {option.id} | {option.length} | "
                        f"{_byte_list(value)} | {_text(value)}\n"
                    )
        return ret

    @staticmethod
    def _human_readable_ia_na(option: Option) -> list[str]:
        value = bytes(option.value)
        if len(value) < 12:
            raise OptionError("IA_NA option is shorter than 12 bytes")
        t1, t2 = struct.unpack_from(">II", value, 4)
        ret = [
            f"Option: OptIaNa | len {option.length} | iaid {value[:4].hex()} "
            f"| t1 {t1} | t2 {t2}\n"
        ]
        rest = value[12:]
        while len(rest) >= _HEADER_LEN:
            sub_id, length = struct.unpack_from(_HEADER, rest)
            if sub_id == OPT_IA_ADDR and len(rest) >= 28:
                ip = ipaddress.IPv6Address(rest[4:20])
                preferred, valid = struct.unpack_from(">II", rest, 20)
                ret.append(
                    f"\tOption: IA_ADDR | len {length} | ip {ip} | preferred {preferred} "
                    f"| valid {valid} | {_byte_list(rest[28 : 4 + length])} \n"
                )
            else:
                ret.append(
                    f"\tOption: id {sub_id} | len {length} | {_text(rest[4 : 4 + length])}\n"
                )
            rest = rest[_HEADER_LEN + length :]
        return ret

    def requested_options(self) -> set[int]:
        """Return the codes listed in the Option Request option."""
        options = self.get(OPT_ORO)
        if not options:
            return set()
        value = bytes(options[0].value)
        return {
            struct.unpack_from(">H", value, pos)[0] for pos in range(0, len(value) - 1, 2)
        }

    def has_boot_file_url_option(self) -> bool:
        """True if the client requested the boot file URL option."""
        return OPT_BOOTFILE_URL in self.requested_options()

    def has_client_id(self) -> bool:
        return OPT_CLIENT_ID in self

    def has_server_id(self) -> bool:
        return OPT_SERVER_ID in self

    def has_ia_na(self) -> bool:
        return OPT_IA_NA in self

    def has_ia_ta(self) -> bool:
        return OPT_IA_TA in self

    def has_client_arch_type(self) -> bool:
        return OPT_CLIENT_ARCH_TYPE in self

    def _first_value(self, option_id: int) -> bytes | None:
        options = self.get(option_id)
        if not options:
            return None
        return bytes(options[0].value)

    def client_id(self) -> bytes | None:
        """The Client ID option value, or None."""
        return self._first_value(OPT_CLIENT_ID)

    def server_id(self) -> bytes | None:
        """The Server ID option value, or None."""
        return self._first_value(OPT_SERVER_ID)

    def ia_na_ids(self) -> list[bytes]:
        """The interface IDs of all IA_NA options."""
        return [bytes(option.value[:4]) for option in self.get(OPT_IA_NA, [])]

    def client_arch_type(self) -> int:
        """The Client Architecture Type, or 0 if absent."""
        value = self._first_value(OPT_CLIENT_ARCH_TYPE)
        if value is None:
            return 0
        if len(value) < 2:
            raise OptionError("client architecture type option is shorter than 2 bytes")
        return struct.unpack_from(">H", value)[0]

    def boot_file_url(self) -> bytes | None:
        """The Boot File URL option value, or None."""
        return self._first_value(OPT_BOOTFILE_URL)