"""Decides which links discovered on a page a simulated user may follow."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import tldextract

from ..browser.base import PageHandle
from ..core.config import ConfigurationError, RunSettings

LINK_SELECTOR = "a[href]"
ALLOWED_SCHEMES = frozenset({"http", "https"})

# Bundled Public Suffix List snapshot; never fetched over the network.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def split_domain(host: str) -> Tuple[str, str]:
    """Splits ``host`` into ``(registrable root domain, subdomain prefix)``.

    Hosts without a public suffix (IP addresses, ``localhost``) are their own
    root and have an empty prefix.
    """

    host = host.lower().rstrip(".")
    extracted = _EXTRACT(host)
    if not extracted.suffix:
        return host, ""
    root = f"{extracted.domain}.{extracted.suffix}" if extracted.domain else extracted.suffix
    return root, extracted.subdomain


@dataclass(frozen=True, slots=True)
class ScopePolicy:
    """Scheme and domain rules derived once from the seed URL."""

    scheme: str
    domain_root: str
    domain_prefix: str
    same_domain: bool = True
    same_subdomain: bool = True

    @classmethod
    def from_seed(cls, seed_url: str, settings: RunSettings) -> "ScopePolicy":
        parsed = urlparse(seed_url)
        if parsed.scheme not in ALLOWED_SCHEMES or not parsed.hostname:
            raise ConfigurationError(f"Seed URL must be an absolute http(s) URL: {seed_url!r}")

        root, prefix = split_domain(parsed.hostname)
        return cls(
            scheme=parsed.scheme,
            domain_root=root,
            domain_prefix=prefix,
            same_domain=settings.same_domain,
            same_subdomain=settings.same_subdomain,
        )

    def admits(self, url: str) -> bool:
        try:
            parsed = urlparse(url)
            host = parsed.hostname
        except ValueError:
            return False

        if not parsed.scheme or not host:
            return False
        if parsed.scheme not in ALLOWED_SCHEMES or parsed.scheme != self.scheme:
            return False

        root, prefix = split_domain(host)
        if self.same_domain and root != self.domain_root:
            return False
        if self.same_subdomain and prefix != self.domain_prefix:
            return False
        return True


def resolve_reference(href: str, base_url: str) -> str:
    """Resolves root-relative references; anything else is taken as-is."""

    if href.startswith("/"):
        return urljoin(base_url, href)
    return href


def filter_links(
    page: PageHandle,
    policy: ScopePolicy,
    base_url: str,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Returns the admissible absolute URLs of ``page`` in random order.

    Malformed references, non-web schemes and host-less values are skipped
    silently. Duplicates are kept.
    """

    links: List[str] = []
    for element in page.find_all(LINK_SELECTOR):
        href = element.attribute("href")
        if not href:
            continue

        link = resolve_reference(href.strip(), base_url)
        if policy.admits(link):
            links.append(link)

    (rng or random).shuffle(links)
    return links
