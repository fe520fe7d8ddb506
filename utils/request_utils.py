"""
PantryPal Request Utilities
Client address and agent extraction behind proxies
"""

import ipaddress
from fastapi import Request

# Checked in order; the first valid address wins
FORWARDING_HEADERS = (
    "cf-connecting-ip",  # Cloudflare
    "x-forwarded-for",   # Standard proxy header
    "x-real-ip",         # Nginx proxy
)


def get_client_ip(request: Request) -> str:
    """Extract client IP address from proxy headers, falling back to the socket peer"""
    for header in FORWARDING_HEADERS:
        ip = request.headers.get(header)
        if ip:
            # X-Forwarded-For can contain multiple IPs, take the first (original client)
            ip = ip.split(",")[0].strip()
            if _is_valid_ip(ip):
                return ip

    if request.client and request.client.host:
        return request.client.host

    return "127.0.0.1"


def _is_valid_ip(ip: str) -> bool:
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False
