from typing import Optional, Tuple
from urllib.parse import urlsplit

import tldextract

from plg.features.config import DEFAULT_SCHEME

# Bundled public-suffix snapshot only: no fetch, no cache on disk.
# Private suffixes (github.io, blogspot.com, ...) count as public ones.
_EXTRACT = tldextract.TLDExtract(
    cache_dir=None,
    suffix_list_urls=(),
    include_psl_private_domains=True,
)


def with_scheme(u: str) -> str:
    return u if "://" in u else f"{DEFAULT_SCHEME}://{u}"


def hostname(u: str) -> Optional[str]:
    """Lower-cased host of ``u`` or None when it cannot be parsed."""
    try:
        return urlsplit(with_scheme(u.strip())).hostname or None
    except ValueError:
        return None


def top_domain(host: str) -> str:
    """
    Registrable domain (public suffix + one label) of ``host``.
    Hosts outside every public suffix (IP literals, localhost, unknown TLDs)
    come back unchanged.
    """
    ext = _EXTRACT(host)
    # Newer tldextract renamed registered_domain; keep both
    domain = getattr(ext, "top_domain_under_public_suffix", None)
    if domain is None:
        domain = ext.registered_domain
    return domain or host


def split_host(u: str) -> Tuple[Optional[str], str]:
    """
    (host, registrable domain) for a URL, scheme optional.
    When no host can be parsed the host is None and the raw input stands in
    for the domain. Never raises.
    """
    if not isinstance(u, str):
        return None, ""
    host = hostname(u)
    if host is None:
        return None, u.lower()
    return host, top_domain(host).lower()


def registrable_domain(u: str) -> str:
    return split_host(u)[1]
