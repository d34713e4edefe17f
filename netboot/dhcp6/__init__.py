"""DHCPv6 options, packets, server responses and address pools."""