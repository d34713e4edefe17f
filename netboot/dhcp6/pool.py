"""An address pool that hands out random addresses from a range."""

from __future__ import annotations

import datetime
import ipaddress
import random
import threading
from collections import deque
from typing import Callable, Sequence

from netboot.dhcp6.packet_builder import IdentityAssociation, NoAddressesAvailable, iaid_hash

_UINT64 = 0xFFFFFFFFFFFFFFFF

IPLike = ipaddress.IPv4Address | ipaddress.IPv6Address | str | bytes


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _address_to_int(address: IPLike) -> int:
    if isinstance(address, (bytes, bytearray)):
        parsed = ipaddress.ip_address(bytes(address))
    elif isinstance(address, str):
        parsed = ipaddress.ip_address(address)
    else:
        parsed = address
    if isinstance(parsed, ipaddress.IPv4Address):
        return (0xFFFF << 32) | int(parsed)
    return int(parsed)


def _host_key(address: IPLike) -> int:
    # Hosts are told apart by the low 64 bits of their address.
    return _address_to_int(address) & _UINT64


class RandomAddressPool:
    """Hands out random addresses from ``pool_size`` addresses after ``pool_start``."""

    def __init__(
        self,
        pool_start: IPLike,
        pool_size: int,
        valid_lifetime: int,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._start = _address_to_int(pool_start)
        self._size = pool_size
        self._valid_lifetime = valid_lifetime
        self._clock = clock or _utc_now
        self._associations: dict[int, IdentityAssociation] = {}
        self._used: set[int] = set()
        self._expirations: deque[tuple[datetime.datetime, IdentityAssociation]] = deque()
        self._lock = threading.Lock()
        self._rng = random.Random()

    def reserve_addresses(
        self, client_id: bytes, interface_ids: Sequence[bytes]
    ) -> list[IdentityAssociation]:
        """Create or return the active association of each interface.

        Raises NoAddressesAvailable, carrying the associations made so far,
        when the pool is exhausted.
        """
        client_id = bytes(client_id)
        with self._lock:
            self._expire()
            ret: list[IdentityAssociation] = []
            for interface_id in interface_ids:
                interface_id = bytes(interface_id)
                key = self.association_hash(client_id, interface_id)
                existing = self._associations.get(key)
                if existing is not None:
                    ret.append(existing)
                    continue
                if len(self._used) == self._size:
                    raise NoAddressesAvailable(
                        "No more free ip addresses are currently available in the pool", ret
                    )
                while True:
                    value = self._start + self._rng.randrange(self._size)
                    host = value & _UINT64
                    if host in self._used:
                        continue
                    now = self._clock()
                    association = IdentityAssociation(
                        ip_address=ipaddress.IPv6Address(value),
                        client_id=client_id,
                        interface_id=interface_id,
                        created_at=now,
                    )
                    self._associations[key] = association
                    self._used.add(host)
                    self._expirations.append((self.expiration_time(now), association))
                    ret.append(association)
                    break
            return ret

    def release_addresses(self, client_id: bytes, interface_ids: Sequence[bytes]) -> None:
        """Return the addresses of the given interfaces to the pool."""
        client_id = bytes(client_id)
        with self._lock:
            for interface_id in interface_ids:
                key = self.association_hash(client_id, bytes(interface_id))
                association = self._associations.pop(key, None)
                if association is None:
                    continue
                self._used.discard(_host_key(association.ip_address))

    def association_hash(self, client_id: bytes, interface_id: bytes) -> int:
        """Return the key of a client's interface association."""
        return iaid_hash(bytes(client_id) + bytes(interface_id))

    def expiration_time(self, now: datetime.datetime) -> datetime.datetime:
        """Return when an association created at ``now`` expires."""
        return now + datetime.timedelta(seconds=self._valid_lifetime)

    def _expire(self) -> None:
        while self._expirations:
            expires_at, association = self._expirations[0]
            if self._clock() < expires_at:
                break
            self._expirations.popleft()
            self._associations.pop(
                self.association_hash(association.client_id, association.interface_id), None
            )
            self._used.discard(_host_key(association.ip_address))