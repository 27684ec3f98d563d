"""
Client IP extraction for requests arriving through proxies or load balancers.
"""
from typing import Optional

from fastapi import Request

# Checked in order; the first non-empty value wins
_PROXY_HEADERS = ("X-Real-IP", "CF-Connecting-IP", "True-Client-IP")


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the real client IP.

    Order: X-Forwarded-For (first entry), X-Real-IP, CF-Connecting-IP,
    True-Client-IP, then the direct peer address.

    Security:
        These headers are client-controlled unless the proxy strips them from
        external requests. Only trust them behind a proxy that does.
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        # "client, proxy1, proxy2"
        client_ip = x_forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    for header in _PROXY_HEADERS:
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    if request.client:
        return request.client.host

    return None

