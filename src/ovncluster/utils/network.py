"""Address parsing and OVN endpoint formatting.

OVN connection methods are written ``<protocol>:<host>:<port>`` where an
IPv6 host must be wrapped in brackets (``ssl:[fd00::1]:6641``). Member
addresses in the membership store are stored as ``host:port`` strings
(``10.0.0.1:6443``, ``[fd00::1]:6443``); only the host part is used here,
the OVN database ports are fixed.
"""

from __future__ import annotations

import ipaddress


IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def parse_member_address(value: str) -> IPAddress:
    """Extract the IP address from a member address string.

    Accepts ``ip``, ``ip:port``, ``[ipv6]`` and ``[ipv6]:port``. IPv6 zone
    identifiers are not supported.

    Raises:
        ValueError: If ``value`` does not contain a valid IP address.

    Examples:
        ```python
        parse_member_address("10.0.0.1:6443")   # IPv4Address('10.0.0.1')
        parse_member_address("[fd00::1]:6443")  # IPv6Address('fd00::1')
        ```
    """
    text = value.strip()
    if not text:
        raise ValueError("empty address")

    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or (rest and not _is_port_suffix(rest)):
            raise ValueError(f"malformed bracketed address: {value!r}")
        addr = ipaddress.ip_address(host)
        if addr.version != 6:
            raise ValueError(f"only IPv6 addresses may be bracketed: {value!r}")
        return addr

    # A bare IPv6 literal contains several colons and no port.
    if text.count(":") > 1:
        return ipaddress.ip_address(text)

    host, sep, port = text.partition(":")
    if sep and not _is_port_suffix(":" + port):
        raise ValueError(f"malformed port in address: {value!r}")
    return ipaddress.ip_address(host)


def _is_port_suffix(text: str) -> bool:
    return text.startswith(":") and text[1:].isdigit() and 0 <= int(text[1:]) <= 65535


def format_host(address: IPAddress) -> str:
    """Return the address as OVN expects it, bracketed when IPv6."""
    if address.version == 6:
        return f"[{address}]"
    return str(address)


def bracket_if_ipv6(value: str) -> str:
    """Bracket ``value`` if it is an IPv6 literal, otherwise return it unchanged.

    Used for the locally configured address, which may also be a hostname.
    Already-bracketed values are returned as-is.
    """
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return value
    return format_host(address)


def format_endpoint(protocol: str, address: IPAddress, port: int) -> str:
    """Format one OVN connection method, e.g. ``ssl:[fd00::1]:6641``."""
    if not 0 < port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return f"{protocol}:{format_host(address)}:{port}"
