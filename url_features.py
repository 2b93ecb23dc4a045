# url_features.py
# URL normalization and host decomposition shared by the analyzers

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import Tuple
from urllib.parse import urlparse

import idna
import tldextract

from errors import ParseError

# Bundled public-suffix snapshot only; never fetches the list over the network.
_EXTRACT = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_LABEL_RE = re.compile(r"^[\w-]{1,63}$", re.UNICODE)

DEFAULT_PORTS = {"http": 80, "https": 443}

# Digit/symbol look-alikes and common Cyrillic/Greek confusables folded to ASCII.
_MULTI_CHAR_LOOKALIKES = (("rn", "m"), ("vv", "w"))
_CHAR_LOOKALIKES = str.maketrans({
    "0": "o", "1": "l", "3": "e", "4": "a", "5": "s", "7": "t", "8": "b",
    "а": "a", "е": "e", "о": "o", "р": "p", "с": "c", "у": "y", "х": "x",
    "і": "i", "ј": "j", "ѕ": "s", "ԁ": "d", "һ": "h", "ӏ": "l", "ɡ": "g",
    "ο": "o", "α": "a", "ν": "v", "ι": "i", "κ": "k", "ρ": "p", "τ": "t",
})


@dataclass(frozen=True)
class UrlParts:
    normalized: str
    scheme: str
    host: str              # display form (IDN decoded)
    ascii_host: str        # host as it appeared on the wire
    port: int
    path: str
    registrable_domain: str
    domain_label: str
    subdomain_labels: Tuple[str, ...]
    tld: str               # full public suffix, e.g. "co.uk"
    is_ip: bool

    @property
    def top_level(self) -> str:
        return self.tld.rsplit(".", 1)[-1] if self.tld else ""

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"


def normalize_url(url: str) -> str:
    """Trim and infer a scheme so the URL can be parsed."""
    url = (url or "").strip()
    if url and not _SCHEME_RE.match(url):
        url = "http://" + url
    return url


def decode_idn(host: str) -> str:
    """Return the display form of a possibly punycoded host."""
    labels = []
    for label in host.split("."):
        if label.startswith("xn--"):
            try:
                label = idna.decode(label)
            except (idna.IDNAError, UnicodeError):
                pass
        labels.append(label)
    return ".".join(labels)


def skeleton(text: str) -> str:
    """Fold look-alike characters so 'paypa1' and 'pаypal' compare equal to 'paypal'."""
    folded = text.lower()
    for seq, repl in _MULTI_CHAR_LOOKALIKES:
        folded = folded.replace(seq, repl)
    return folded.translate(_CHAR_LOOKALIKES)


def is_ascii(text: str) -> bool:
    return all(ord(ch) < 128 for ch in text)


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def parse_url(url: str) -> UrlParts:
    """Normalize and split a URL. Raises ParseError when no usable host exists."""
    normalized = normalize_url(url)
    if not normalized:
        raise ParseError("empty URL")

    try:
        parsed = urlparse(normalized)
        raw_host = (parsed.hostname or "").rstrip(".")
        port = parsed.port
    except ValueError as exc:
        raise ParseError(f"malformed URL: {exc}") from exc

    scheme = parsed.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise ParseError(f"unsupported scheme '{scheme}'")
    if not raw_host:
        raise ParseError("URL has no host")

    is_ip = _is_ip(raw_host)
    host = raw_host if is_ip else decode_idn(raw_host)
    if not is_ip and not all(_LABEL_RE.match(label) for label in host.split(".")):
        raise ParseError(f"invalid characters in host '{raw_host}'")

    if is_ip:
        registrable, domain_label, subdomain, suffix = raw_host, raw_host, "", ""
    else:
        ext = _EXTRACT(host)
        domain_label, subdomain, suffix = ext.domain, ext.subdomain, ext.suffix
        registrable = f"{domain_label}.{suffix}" if domain_label and suffix else host

    return UrlParts(
        normalized=normalized,
        scheme=scheme,
        host=host,
        ascii_host=raw_host,
        port=port or DEFAULT_PORTS[scheme],
        path=parsed.path or "",
        registrable_domain=registrable.lower(),
        domain_label=domain_label.lower(),
        subdomain_labels=tuple(label for label in subdomain.lower().split(".") if label),
        tld=suffix.lower(),
        is_ip=is_ip,
    )


def origin(url: str) -> Tuple[str, str, int]:
    """(scheme, host, port) of a URL, with default ports filled in."""
    parsed = urlparse(url)
    scheme = (parsed.scheme or "").lower()
    try:
        port = parsed.port
    except ValueError:
        port = None
    return scheme, (parsed.hostname or "").lower(), port or DEFAULT_PORTS.get(scheme, 0)
