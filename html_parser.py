from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Comment

from config import AnalyzerConfig, Brand
from errors import ParseError
from models import ContentFinding, ContentFlag
from url_features import origin, parse_url

logger = logging.getLogger(__name__)


OBFUSCATION_PATTERNS = (
    ("eval()", re.compile(r"\beval\s*\(")),
    ("new Function()", re.compile(r"\bnew\s+Function\s*\(")),
    ("String.fromCharCode", re.compile(r"fromCharCode\s*\(")),
    ("unescape()", re.compile(r"\bunescape\s*\(")),
    ("escape()", re.compile(r"(?<![\w.])escape\s*\(")),
    ("atob()", re.compile(r"\batob\s*\(")),
    ("document.write()", re.compile(r"document\.write(?:ln)?\s*\(")),
    ("hex escape run", re.compile(r"(?:\\x[0-9a-fA-F]{2}){8,}")),
    ("unicode escape run", re.compile(r"(?:\\u[0-9a-fA-F]{4}){6,}")),
    ("percent-encoded run", re.compile(r"(?:%[0-9a-fA-F]{2}){12,}")),
)

EVENT_HANDLER_RE = re.compile(r"^on[a-z]+$")

CARD_FIELD_HINTS = {
    "card", "cardnumber", "card_number", "cc-number", "cc_number",
    "ccnumber", "cvv", "cvc", "cc-csc", "expiry", "cc-exp",
}
PASSWORD_HINTS = ("password", "passwd", "pwd")

IDENTITY_META = ("og:site_name", "og:title", "application-name")
NON_PROSE_TAGS = ["a", "button", "script", "style", "noscript", "template", "option"]


def unavailable_content(note: str) -> ContentFinding:
    """All-false finding used when no HTML could be inspected."""
    flag = ContentFlag(detected=False, details=note)
    return ContentFinding(
        suspicious_forms=flag,
        suspicious_links=flag,
        suspicious_scripts=flag,
        ssl_issues=flag,
        brand_impersonation=flag,
        available=False,
        note=note,
    )


def _form_field_kinds(form) -> Tuple[bool, bool]:
    has_password = False
    has_card = False
    for inp in form.find_all("input"):
        kind = (inp.get("type") or "").lower()
        name = " ".join(
            (inp.get(attr) or "").lower() for attr in ("name", "id", "autocomplete")
        )
        if kind == "password" or any(h in name for h in PASSWORD_HINTS):
            has_password = True
        if any(h in name for h in CARD_FIELD_HINTS):
            has_card = True
    return has_password, has_card


def _check_forms(soup, page_url: str, page_origin) -> Tuple[ContentFlag, ContentFlag, bool]:
    page_secure = page_origin[0] == "https"
    form_notes: List[str] = []
    ssl_notes: List[str] = []
    sensitive_seen = False

    for form in soup.find_all("form"):
        has_password, has_card = _form_field_kinds(form)
        if not (has_password or has_card):
            continue
        sensitive_seen = True
        what = " and ".join(
            label for label, present in (("password", has_password), ("payment card", has_card)) if present
        )
        action = (form.get("action") or "").strip()
        # Script-handled forms post wherever the page itself lives.
        if not action or action.lower().startswith("javascript:"):
            target = page_url
        else:
            target = urljoin(page_url, action)
        target_origin = origin(target)

        if not page_secure:
            form_notes.append(f"{what} form on a page served without HTTPS")
            ssl_notes.append(f"{what} fields collected over plain HTTP")
        if target_origin != page_origin:
            form_notes.append(f"{what} form submits to a different origin: {target}")
        if page_secure and target_origin[0] == "http":
            ssl_notes.append(f"{what} form on an HTTPS page posts to insecure {target}")

    forms = ContentFlag(bool(form_notes), "; ".join(dict.fromkeys(form_notes)) or "No credential or payment forms at risk")
    ssl = ContentFlag(bool(ssl_notes), "; ".join(dict.fromkeys(ssl_notes)) or "No transport issues for sensitive forms")
    return forms, ssl, sensitive_seen


def _script_sources(soup) -> Iterable[Tuple[str, str]]:
    for script in soup.find_all("script"):
        src = (script.get("src") or "").strip()
        if src.lower().startswith(("data:", "javascript:")):
            yield "script src", src
        text = script.string or script.get_text() or ""
        if text.strip():
            yield "inline script", text
    for tag in soup.find_all(True):
        for attr, value in tag.attrs.items():
            if EVENT_HANDLER_RE.match(attr) and isinstance(value, str):
                yield f"{attr} handler", value
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith("javascript:"):
            yield "javascript: link", href


def _check_scripts(soup) -> ContentFlag:
    hits: List[str] = []
    for where, text in _script_sources(soup):
        for label, pattern in OBFUSCATION_PATTERNS:
            if pattern.search(text):
                note = f"{label} in {where}"
                if note not in hits:
                    hits.append(note)
    if hits:
        return ContentFlag(True, "Obfuscation markers: " + "; ".join(hits))
    return ContentFlag(False, "No obfuscation markers in scripts")


def _check_links(soup, page_url: str, page_origin, threshold: int) -> ContentFlag:
    external: Set[str] = set()
    for a in soup.find_all("a", href=True):
        href = urljoin(page_url, a.get("href", "").strip())
        if urlparse(href).scheme not in ("http", "https"):
            continue
        if origin(href) != page_origin:
            external.add(href.split("#", 1)[0])
    count = len(external)
    if count > threshold:
        return ContentFlag(True, f"{count} distinct external links (threshold {threshold})")
    return ContentFlag(False, f"{count} distinct external links")


def _identity_text(soup) -> str:
    chunks = []
    if soup.title and soup.title.string:
        chunks.append(soup.title.string)
    for meta in soup.find_all("meta"):
        key = (meta.get("property") or meta.get("name") or "").lower()
        if key in IDENTITY_META and meta.get("content"):
            chunks.append(meta["content"])
    return " ".join(chunks).lower()


def _prose_text(soup) -> str:
    # Sign-in-with buttons and outbound links name third-party brands on honest pages.
    chunks = [
        text for text in soup.find_all(string=True)
        if text.strip() and not isinstance(text, Comment) and not text.find_parent(NON_PROSE_TAGS)
    ]
    return " ".join(chunks).lower()


def _mentions(brand: Brand, text: str) -> bool:
    return any(re.search(rf"\b{re.escape(k)}\b", text) for k in brand.all_keywords())


def _check_brand(soup, registrable: str, config: AnalyzerConfig, sensitive_form: bool) -> ContentFlag:
    if config.is_trusted(registrable):
        return ContentFlag(False, f"Page is served from trusted domain {registrable}")

    identity = _identity_text(soup)
    body = _prose_text(soup) if sensitive_form else ""
    notes = []
    for brand in config.brands:
        # A passing mention is not enough: the page must claim the brand or ask for secrets.
        if _mentions(brand, identity):
            notes.append(f"title/metadata presents the page as '{brand.name}'")
        elif body and _mentions(brand, body):
            notes.append(f"credential form on a page referencing '{brand.name}'")
    if notes:
        return ContentFlag(True, f"Served from {registrable} but " + "; ".join(notes))
    return ContentFlag(False, "No brand claims in page content")


def analyze_html(html: Optional[str], url: str, config: Optional[AnalyzerConfig] = None) -> ContentFinding:
    """Inspect fetched markup for credential harvesting, obfuscation and brand misuse."""
    config = config or AnalyzerConfig()
    if html is None:
        return unavailable_content("No page content was available; analysis is domain-only")
    try:
        parts = parse_url(url)
    except ParseError as exc:
        return unavailable_content(f"Page URL could not be parsed ({exc}); content checks skipped")

    soup = BeautifulSoup(html, "html.parser")
    page_url = parts.normalized
    page_origin = origin(page_url)

    forms, ssl, sensitive_seen = _check_forms(soup, page_url, page_origin)
    finding = ContentFinding(
        suspicious_forms=forms,
        suspicious_links=_check_links(soup, page_url, page_origin, config.external_link_threshold),
        suspicious_scripts=_check_scripts(soup),
        ssl_issues=ssl,
        brand_impersonation=_check_brand(soup, parts.registrable_domain, config, sensitive_seen),
    )
    logger.debug("content flags for %s: %s", page_url, finding.triggered())
    return finding
