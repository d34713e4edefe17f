"""Building blocks for network booting: DHCPv4 options, DHCPv6 and pcap."""

__version__ = "0.1.0"