"""DHCPv4 option codes and option encoding and decoding."""