# app/security_config.py
# Security configuration for IP filtering and the middleware pipeline
from enum import IntEnum
from ipaddress import ip_network

# Fly.io private network (6PN) range
FLY_PRIVATE_NETWORK_CIDR = "fdaa::/48"

# Internal traffic is always admitted, whatever ALLOWED_HOME_IP says
PRIVATE_NETWORK_CIDRS = (
    FLY_PRIVATE_NETWORK_CIDR,
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "fc00::/7",  # IPv6 ULA
)

PRIVATE_NETWORKS = tuple(ip_network(cidr) for cidr in PRIVATE_NETWORK_CIDRS)

# Message returned to denied callers
ACCESS_DENIED_MESSAGE = "Access denied from your IP address"
RATE_LIMIT_MESSAGE = "Too Many Requests."


class MiddlewarePriority(IntEnum):
    """Position of a middleware in the request pipeline; lower runs first."""

    IP_FILTER = 1
    RATE_LIMIT = 10
    CORS = 20
