# netboot

Building blocks for network boot services, in pure Python with no
third-party dependencies.

- `netboot.pcap` reads and writes classic libpcap capture files
  (`Reader`, `Writer`, `Packet`, `LinkType`, `PcapError`).
- `netboot.dhcp4.options` holds the DHCPv4 option codes (`Option`) and an
  option collection (`Options`) that parses and encodes the options
  section and reads values as bytes, text, integers and IPv4 addresses.
- `netboot.dhcp6.options` builds, encodes and decodes DHCPv6 options
  (`Option`, `Options`, `make_option`, `make_ia_na_option`,
  `make_ia_addr_option`, `make_status_option`, `make_dns_servers_option`,
  `unmarshal_option`, `unmarshal_options`).
- `netboot.dhcp6.packet` encodes and decodes DHCPv6 packets (`Packet`,
  `unmarshal`, `MessageType`) and checks whether a server should answer
  them (`Packet.validate`, raising `DiscardError`).
- `netboot.dhcp6.packet_builder` builds server responses for PXE and HTTP
  boot clients (`PacketBuilder`), given a `BootConfiguration` and an
  `AddressPool`.
- `netboot.dhcp6.pool` hands out random addresses from a range, with
  expiry (`RandomAddressPool`).

## Installation

```
pip install .
```

Running the tests:

```
pip install ".[test]"
pytest
```

## Examples

Reading a capture file (timestamps are nanoseconds since the epoch):

```python
from netboot.pcap import Reader

with open("capture.pcap", "rb") as f:
    reader = Reader(f)
    print(reader.link_type)
    for packet in reader:
        print(packet.timestamp, packet.length, len(packet.data))
```

Writing one:

```python
from netboot.pcap import LinkType, Packet, Writer

with open("out.pcap", "wb") as f:
    writer = Writer(f, LinkType.ETHERNET, 65535, "big")
    writer.put(Packet(timestamp=1_500_000_000_000_000_000, length=4, data=b"\x01\x02\x03\x04"))
```

DHCPv4 options:

```python
from netboot.dhcp4.options import Option, Options

wire = Options({Option.LEASE_TIME: bytes([0, 0, 0x0E, 0x10])}).marshal()
parsed = Options()
parsed.unmarshal(wire)
print(parsed.uint32(Option.LEASE_TIME))  # 3600
```

Missing options raise `OptionNotPresentError`, values of the wrong size
raise `OptionSizeError`; both are `OptionError`s.

Answering DHCPv6 clients:

```python
from netboot.dhcp6.packet import DiscardError, unmarshal
from netboot.dhcp6.packet_builder import NoAddressesAvailable, PacketBuilder
from netboot.dhcp6.pool import RandomAddressPool


class BootConfig:
    def get_boot_url(self, client_id, client_arch_type):
        return b"http://boot.example.com/ipxe.efi"

    def get_preference(self):
        return None

    def get_recursive_dns(self):
        return ["2001:db8::53"]


pool = RandomAddressPool("2001:db8::1", 1 << 16, 43200)
builder = PacketBuilder(27000, 43200)

request = unmarshal(payload)
try:
    request.validate(server_duid)
    reply = builder.build_response(request, server_duid, BootConfig(), pool)
except DiscardError:
    reply = None
except NoAddressesAvailable as err:
    reply = err.response

if reply is not None:
    data = reply.marshal()
```

`build_response` returns `None` for message types it does not handle.

## What this package does not do

It has no sockets: nothing here listens on the DHCP ports, joins the
DHCPv6 multicast group or sends packets. It also has no DHCPv4 packet
type; `netboot.dhcp4` covers the options section only. Receiving and
sending packets is left to the caller, who passes payload bytes to
`netboot.dhcp6.packet.unmarshal` and sends the bytes from `Packet.marshal`.