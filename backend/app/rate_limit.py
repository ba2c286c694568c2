"""Rate limiting for the GigFlow backend.

Authenticated requests are limited per user, anonymous ones per client IP.
X-Forwarded-For is only honoured when the direct peer is a trusted proxy,
configured through GIGFLOW_TRUSTED_PROXIES (comma-separated CIDRs).
"""

import ipaddress
import os
from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from gigflow.errors import AuthenticationError

_DEFAULT_TRUSTED_CIDRS = "127.0.0.0/8,::1/128,10.0.0.0/8,172.16.0.0/12,192.168.0.0/16"


@lru_cache
def _trusted_networks() -> tuple:
    raw = os.environ.get("GIGFLOW_TRUSTED_PROXIES", _DEFAULT_TRUSTED_CIDRS)
    networks = []
    for cidr in raw.split(","):
        cidr = cidr.strip()
        if not cidr:
            continue
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _is_trusted_proxy(ip_str: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(addr in network for network in _trusted_networks())


def get_client_ip(request) -> str:
    """Resolve the client IP, using X-Forwarded-For only behind a trusted proxy."""
    direct_ip = get_remote_address(request)
    if _is_trusted_proxy(direct_ip):
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            client_ip = forwarded_for.split(",")[0].strip()
            if client_ip:
                return client_ip
    return direct_ip


def rate_limit_key(request) -> str:
    """Key by user id when the request carries a valid token, else by IP."""
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        # Import here to avoid circular imports
        from .auth import user_id_from_token

        try:
            return f"user:{user_id_from_token(header[7:].strip())}"
        except AuthenticationError:
            pass
    return f"ip:{get_client_ip(request)}"


limiter = Limiter(key_func=rate_limit_key)
