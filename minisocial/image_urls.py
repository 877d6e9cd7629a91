"""Make stored image references resolvable by the client that is reading them.

Images may have been stored under a different deployment than the one serving
the current request: a local-disk URL pointing at ``localhost`` from a dev
machine, or a bare filesystem path from a misconfigured upload. The rules:

1. an absolute http(s) URL on a public host is returned unchanged;
2. an absolute URL on a local/loopback host is moved onto the current origin,
   keeping its path, query and fragment;
3. anything else is dropped.
"""
import ipaddress
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

LOCAL_HOSTNAMES = {"localhost", "0.0.0.0"}


def is_absolute_url(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def is_local_host(hostname: str) -> bool:
    hostname = hostname.lower().rstrip(".")
    if hostname in LOCAL_HOSTNAMES or hostname.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


def normalize_image_url(stored: Optional[str], origin: str) -> Optional[str]:
    """Apply the rules above to ``stored`` for a request served from ``origin``."""
    if not is_absolute_url(stored):
        return None

    parts = urlsplit(stored)
    if not is_local_host(parts.hostname):
        return stored

    current = urlsplit(origin)
    if not current.scheme or not current.netloc:
        return None
    return urlunsplit((current.scheme, current.netloc, parts.path, parts.query, parts.fragment))
