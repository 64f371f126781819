# app/ip_allowlist.py
"""Admission decision for inbound requests based on the caller's address.

Private and platform-internal traffic is always admitted. Public traffic is
admitted only when it matches ``ALLOWED_HOME_IP``, which is either a bare
address (compared as an exact string) or a CIDR range.
"""
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network, ip_address, ip_network
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from app.config import ALLOWED_HOME_IP, logger
from app.security_config import PRIVATE_NETWORKS

IPAddress = Union[IPv4Address, IPv6Address]
IPNetwork = Union[IPv4Network, IPv6Network]


class AllowedHomeIP(BaseModel):
    """Immutable view of the ALLOWED_HOME_IP setting.

    ``raw`` keeps the configured string for literal matching. When it holds a
    CIDR range, ``network`` is the parsed range, or ``None`` with ``error``
    set when the range could not be parsed.
    """

    model_config = ConfigDict(frozen=True)

    raw: str = ""
    network: Optional[IPNetwork] = None
    error: Optional[str] = None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "AllowedHomeIP":
        raw = raw or ""
        if "/" not in raw:
            return cls(raw=raw)
        address, _, prefix = raw.partition("/")
        # Only <ip>/<prefix-length> is accepted; netmask and hostmask forms are not
        if not (prefix.isascii() and prefix.isdigit()):
            return cls(raw=raw, error=f"invalid prefix length {prefix!r} in {raw!r}")
        if parse_ip(address) is None:
            return cls(raw=raw, error=f"invalid address {address!r} in {raw!r}")
        try:
            # Host bits are allowed, "203.0.113.5/24" means 203.0.113.0/24
            return cls(raw=raw, network=ip_network(raw, strict=False))
        except ValueError as e:
            return cls(raw=raw, error=str(e))

    @classmethod
    def from_env(cls) -> "AllowedHomeIP":
        return cls.parse(ALLOWED_HOME_IP)

    @property
    def is_cidr(self) -> bool:
        return "/" in self.raw


def parse_ip(value) -> Optional[IPAddress]:
    """Parses an address string, returning None when it is not a valid IP.

    Zoned IPv6 addresses ("fe80::1%eth0") are not valid client addresses.
    """
    try:
        address = ip_address(value)
    except (TypeError, ValueError):
        return None
    if getattr(address, "scope_id", None):
        return None
    return address


def _contains(network: IPNetwork, address: IPAddress) -> bool:
    # IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) match IPv4 ranges
    if isinstance(address, IPv6Address) and address.ipv4_mapped is not None:
        if address.ipv4_mapped in network:
            return True
    return address in network


def is_private_network(address: Optional[IPAddress]) -> bool:
    if address is None:
        return False
    return any(_contains(network, address) for network in PRIVATE_NETWORKS)


def is_allowed_ip(client_ip: str, allowed: AllowedHomeIP) -> bool:
    """
    Decides whether a request from ``client_ip`` may proceed.

    Args:
        client_ip (str): The resolved "real" client address.
        allowed (AllowedHomeIP): The configured external allowlist entry.

    Returns:
        bool: True to admit the request, False to reject it. Never raises for
        a malformed client address; such callers are rejected.
    """
    address = parse_ip(client_ip)
    if address is None:
        logger.debug(f"Unparsable client address: {client_ip!r}")

    if is_private_network(address):
        return True

    # If not set, only allow private network
    if not allowed.raw:
        return False

    if allowed.is_cidr:
        if allowed.network is None:
            logger.error(f"Invalid ALLOWED_HOME_IP CIDR: {allowed.error}")
            return False
        if address is None:
            return False
        return _contains(allowed.network, address)

    # Direct match on the literal string, no normalization
    return client_ip == allowed.raw
