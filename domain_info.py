"""Domain heuristics: brand look-alikes, suspicious TLDs and deceptive subdomains."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import Levenshtein

from config import AnalyzerConfig, Brand
from errors import ParseError
from models import BrandMatch, DomainFinding
from url_features import UrlParts, is_ascii, parse_url, skeleton

logger = logging.getLogger(__name__)

SUBSTITUTION_CONFIDENCE = 95
TLD_SWAP_CONFIDENCE = 70
TYPO_STEP = 15


def _add_signal(signals: List[Tuple[str, str]], flag: str, reason: str) -> None:
    if (flag, reason) not in signals:
        signals.append((flag, reason))


def _distance_limit(target: str) -> int:
    # Five-letter brands sit one edit away from ordinary words (apple: apply, ample).
    if len(target) <= 5:
        return 0
    return 1 if len(target) <= 7 else 2


class DomainAnalyzer:
    """Pure, total analyzer over a URL's host. Never raises on bad input."""

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()

    def analyze(self, url: str) -> DomainFinding:
        try:
            parts = parse_url(url)
        except ParseError as exc:
            logger.debug("unparseable URL %r: %s", url, exc)
            return DomainFinding(
                is_suspicious=True,
                signals=(("unparseable", f"unparseable URL: {exc}"),),
            )

        signals: List[Tuple[str, str]] = []
        match: Optional[BrandMatch] = None

        # Canonical brand domains and allow-listed domains are clean whatever their subdomains say.
        if not self.config.is_trusted(parts.registrable_domain):
            if parts.is_ip:
                _add_signal(signals, "ip_host", "URL uses an IP address instead of a domain name")
            else:
                match = self._match_brand(parts)
                if match:
                    _add_signal(signals, "brand_impersonation", self._describe_match(parts, match))
                self._check_tld(parts, signals)
                self._check_subdomains(parts, signals)
                self._check_lure(parts, match, signals)

        finding = DomainFinding(
            is_suspicious=bool(signals) or match is not None,
            brand_impersonation=match,
            signals=tuple(signals),
            host=parts.host,
            registrable_domain=parts.registrable_domain,
            subdomain=".".join(parts.subdomain_labels),
            tld=parts.tld,
        )
        logger.debug("domain finding for %s: %s", parts.host, sorted(finding.flags))
        return finding

    # brand impersonation

    def _match_brand(self, parts: UrlParts) -> Optional[BrandMatch]:
        label = parts.domain_label
        folded = skeleton(label)
        best: Optional[BrandMatch] = None
        for brand in self.config.brands:
            for target in brand.all_keywords():
                candidate = self._compare(label, folded, target, parts)
                if candidate and (best is None or candidate.confidence > best.confidence):
                    best = BrandMatch(brand.name, candidate.confidence, candidate.technique)
        return best

    @staticmethod
    def _compare(label: str, folded: str, target: str, parts: UrlParts) -> Optional[BrandMatch]:
        if label == target:
            # Country-code variants (google.co.uk, amazon.fr) are usually the brand's own.
            if len(parts.top_level) > 2:
                return BrandMatch(target, TLD_SWAP_CONFIDENCE, "tld-swap")
            return None
        target_folded = skeleton(target)
        if folded == target_folded:
            technique = "substitution" if is_ascii(label) else "homograph"
            return BrandMatch(target, SUBSTITUTION_CONFIDENCE, technique)
        if len(label) < max(4, len(target) - 1):
            return None
        distance = Levenshtein.distance(folded, target_folded)
        if 0 < distance <= _distance_limit(target_folded):
            return BrandMatch(target, min(100, 100 - TYPO_STEP * distance), "typo")
        return None

    @staticmethod
    def _describe_match(parts: UrlParts, match: BrandMatch) -> str:
        if match.technique == "homograph":
            return (
                f"Domain '{parts.registrable_domain}' uses look-alike Unicode characters "
                f"to imitate '{match.brand}' (homograph attack)"
            )
        if match.technique == "substitution":
            return (
                f"Domain '{parts.registrable_domain}' substitutes look-alike characters "
                f"for the brand '{match.brand}'"
            )
        if match.technique == "tld-swap":
            return (
                f"Domain '{parts.registrable_domain}' uses the brand name '{match.brand}' "
                f"on a domain the brand does not own"
            )
        return f"Domain '{parts.registrable_domain}' is a near-miss spelling of '{match.brand}' (typosquatting)"

    # keyword helpers

    def _brands_in(self, text: str) -> List[Brand]:
        folded = skeleton(text)
        found = []
        for brand in self.config.brands:
            if any(skeleton(k) in folded for k in brand.all_keywords()):
                found.append(brand)
        return found

    # TLD / subdomain / lure checks

    def _check_tld(self, parts: UrlParts, signals: List[Tuple[str, str]]) -> None:
        top = parts.top_level
        if top not in self.config.suspicious_tlds:
            return
        brands = self._brands_in(parts.host)
        if brands:
            _add_signal(
                signals,
                "suspicious_tld_brand",
                f"Suspicious top-level domain '.{top}' combined with brand keyword "
                f"'{brands[0].name}' in the hostname",
            )
        else:
            _add_signal(signals, "suspicious_tld", f"Suspicious top-level domain '.{top}'")

    def _check_subdomains(self, parts: UrlParts, signals: List[Tuple[str, str]]) -> None:
        labels = list(parts.subdomain_labels)
        if labels and labels[0] == "www":
            labels = labels[1:]

        if len(labels) > self.config.max_subdomain_labels:
            _add_signal(
                signals,
                "deep_subdomain",
                f"Deceptive subdomain nesting: {len(labels)} subdomain levels in front of "
                f"'{parts.registrable_domain}'",
            )

        for label in labels:
            for brand in self._brands_in(label):
                if brand.owns(parts.registrable_domain):
                    continue
                _add_signal(
                    signals,
                    "brand_subdomain",
                    f"Deceptive subdomain nesting: subdomain '{label}' carries brand keyword "
                    f"'{brand.name}' but the registered domain is '{parts.registrable_domain}'",
                )
                return

    def _check_lure(
        self,
        parts: UrlParts,
        match: Optional[BrandMatch],
        signals: List[Tuple[str, str]],
    ) -> None:
        brands = self._brands_in(parts.domain_label)
        if not brands or match is not None:
            return
        host = parts.host.lower()
        lures = [word for word in self.config.lure_keywords if word in host]
        if not lures:
            return
        _add_signal(
            signals,
            "brand_lure",
            f"Brand keyword '{brands[0].name}' combined with lure wording "
            f"'{', '.join(lures)}' in a domain the brand does not own",
        )


def analyze_domain(url: str, config: Optional[AnalyzerConfig] = None) -> DomainFinding:
    """Return the domain finding for a URL."""
    return DomainAnalyzer(config).analyze(url)
