"""Best-effort client identification from connection/proxy headers.

Header names are looked up lower-case; Starlette's Headers mapping is
case-insensitive and plain dicts are expected to use lower-case keys.
"""

from collections.abc import Mapping

# Priority order for IP detection
_CDN_IP_HEADER = "cf-connecting-ip"
_REAL_IP_HEADER = "x-real-ip"
_FORWARDED_FOR_HEADER = "x-forwarded-for"

UNKNOWN = "unknown"


def client_ip(headers: Mapping[str, str]) -> str:
    """Pick the client IP: CDN header, then real-ip, then first forwarded-for hop."""
    cdn_ip = headers.get(_CDN_IP_HEADER)
    if cdn_ip:
        return cdn_ip

    real_ip = headers.get(_REAL_IP_HEADER)
    if real_ip:
        return real_ip

    forwarded = headers.get(_FORWARDED_FOR_HEADER)
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    return UNKNOWN


def client_key(headers: Mapping[str, str]) -> str:
    """Rate-limit bucket key: client IP plus raw user agent."""
    user_agent = headers.get("user-agent") or UNKNOWN
    return f"{client_ip(headers)}:{user_agent}"
