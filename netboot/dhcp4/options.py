"""DHCPv4 option codes and the option collection of a packet."""

from __future__ import annotations

import enum
import ipaddress
import struct


class Option(enum.IntEnum):
    """Commonly seen DHCP option codes."""

    SUBNET_MASK = 1
    TIME_OFFSET = 2
    ROUTERS = 3
    DNS_SERVERS = 6
    HOSTNAME = 12
    BOOT_FILE_SIZE = 13
    DOMAIN_NAME = 15
    INTERFACE_MTU = 26
    BROADCAST_ADDR = 28
    NTP_SERVERS = 42
    VENDOR_SPECIFIC = 43
    REQUESTED_IP = 50
    LEASE_TIME = 51
    OVERLOAD = 52
    DHCP_MESSAGE_TYPE = 53
    SERVER_IDENTIFIER = 54
    REQUESTED_OPTIONS = 55
    MESSAGE = 56
    MAXIMUM_MESSAGE_SIZE = 57
    RENEWAL_TIME = 58
    REBINDING_TIME = 59
    VENDOR_IDENTIFIER = 60
    CLIENT_IDENTIFIER = 61
    TFTP_SERVER = 66
    BOOT_FILE = 67
    FQDN = 81


class OptionError(ValueError):
    """Raised for malformed or unusable DHCP options."""


class OptionNotPresentError(OptionError):
    """Raised when a requested option is absent."""


class OptionSizeError(OptionError):
    """Raised when an option value has the wrong size for its type."""


class Options(dict):
    """DHCP options keyed by option code, with raw byte values."""

    def unmarshal(self, data: bytes) -> None:
        """Parse wire-encoded options into this collection."""
        data = bytes(data)
        pos = 0
        while pos < len(data):
            opt = data[pos]
            if opt == 0:
                pos += 1
                continue
            if opt == 255:
                return
            # Repeated options are rejected, except option 56.
            if opt in self and opt != 56:
                raise OptionError(
                    f"packet has duplicate option {opt} (please file a bug with a pcap!)"
                )
            if len(data) - pos < 2:
                raise OptionError(f"option {opt} has no length byte")
            length = data[pos + 1]
            available = len(data) - pos - 2
            if available < length:
                raise OptionError(
                    f"option {opt} claims to have {length} bytes of payload, "
                    f"but only has {available} bytes"
                )
            self[opt] = data[pos + 2 : pos + 2 + length]
            pos += 2 + length
        raise OptionError("options are not terminated by a 255 byte")

    def marshal(self) -> bytes:
        """Return the wire encoding of all options, end marker included."""
        encoded, leftover = self.marshal_limited(0, False)
        if leftover:
            raise OptionError("some options not written, but no limit was given")
        return encoded

    def marshal_limited(self, nbytes: int, skip_overload: bool) -> tuple[bytes, Options]:
        """Encode options into at most ``nbytes`` bytes, padded to fill them.

        A ``nbytes`` of 0 means no limit. Returns the encoding and the options
        that did not fit. With ``skip_overload`` the overload option is never
        written.
        """
        for code in self:
            if not 0 < code < 255:
                raise OptionError(f"invalid DHCP option number {int(code)}")

        out = bytearray()
        leftover = Options()
        for code in sorted(self):
            value = bytes(self[code])
            if len(value) > 255:
                raise OptionError(f"DHCP option {int(code)} has value >255 bytes")
            # Leave room for the option and the end-of-options marker.
            if nbytes > 0 and (
                (skip_overload and code == Option.OVERLOAD) or len(value) + 3 > nbytes
            ):
                leftover[code] = value
                continue
            out += bytes([int(code), len(value)]) + value
            nbytes -= len(value) + 2

        out.append(255)
        nbytes -= 1
        if nbytes > 0:
            out += bytes(nbytes)
        return bytes(out), leftover

    def copy(self) -> Options:
        """Return a shallow copy."""
        return Options(self)

    def raw(self, n: int) -> bytes:
        """Return the value of option ``n`` as bytes."""
        try:
            return bytes(self[n])
        except KeyError:
            raise OptionNotPresentError(f"option {int(n)} not present in Options") from None

    def string(self, n: int) -> str:
        """Return the value of option ``n`` as text."""
        return self.raw(n).decode("utf-8", errors="surrogateescape")

    def _sized(self, n: int, size: int) -> bytes:
        value = self.raw(n)
        if len(value) != size:
            raise OptionSizeError(f"option {int(n)} value is the wrong size")
        return value

    def byte(self, n: int) -> int:
        """Return the value of option ``n`` as a single byte."""
        return self._sized(n, 1)[0]

    def uint16(self, n: int) -> int:
        """Return the value of option ``n`` as a big-endian uint16."""
        return struct.unpack(">H", self._sized(n, 2))[0]

    def uint32(self, n: int) -> int:
        """Return the value of option ``n`` as a big-endian uint32."""
        return struct.unpack(">I", self._sized(n, 4))[0]

    def int32(self, n: int) -> int:
        """Return the value of option ``n`` as a big-endian int32."""
        return struct.unpack(">i", self._sized(n, 4))[0]

    def ips(self, n: int) -> list[ipaddress.IPv4Address]:
        """Return the value of option ``n`` as a list of IPv4 addresses."""
        value = self.raw(n)
        if len(value) < 4 or len(value) % 4 != 0:
            raise OptionSizeError(f"option {int(n)} value is the wrong size")
        return [ipaddress.IPv4Address(chunk) for chunk in _chunks(value, 4)]

    def ip(self, n: int) -> ipaddress.IPv4Address:
        """Return the value of option ``n`` as a single IPv4 address."""
        addresses = self.ips(n)
        if len(addresses) != 1:
            raise OptionSizeError(f"option {int(n)} value is the wrong size")
        return addresses[0]

    def ip_mask(self, n: int) -> ipaddress.IPv4Address:
        """Return the value of option ``n`` as a dotted IPv4 netmask."""
        value = self.raw(n)
        if len(value) != 4:
            raise OptionSizeError(f"option {int(n)} is the wrong size for an IPMask")
        return ipaddress.IPv4Address(value)


def _chunks(data: bytes, size: int):
    return (data[start : start + size] for start in range(0, len(data), size))