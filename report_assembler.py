# report_assembler.py
# Deterministic mapping from domain/content flags to report findings

from __future__ import annotations

import json
import logging
from typing import List, Optional

from models import ContentFinding, DomainFinding, Finding, ScanReport

logger = logging.getLogger(__name__)

# (flag, finding id, title, severity, confidence, fix)
DOMAIN_RULES = (
    (
        "suspicious_tld_brand", "domain-suspicious-tld-brand",
        "Brand keyword on a high-abuse top-level domain", "high", 0.8,
        "Do not sign in or pay here; reach the brand through its official domain instead.",
    ),
    (
        "suspicious_tld", "domain-suspicious-tld",
        "High-abuse top-level domain", "medium", 0.55,
        "Treat the site with caution and verify who operates it before sharing any data.",
    ),
    (
        "brand_lure", "domain-brand-lure",
        "Brand name combined with login/verification wording", "high", 0.75,
        "Brands do not host account pages on look-alike domains; use the official site.",
    ),
    (
        "ip_host", "domain-ip-host",
        "URL points at a raw IP address", "medium", 0.6,
        "Legitimate services use domain names; avoid entering credentials on IP-addressed pages.",
    ),
    (
        "unparseable", "domain-unparseable",
        "URL could not be parsed", "medium", 0.5,
        "Check the link for typos or hidden characters before opening it.",
    ),
)

# content category -> (finding id, title, severity, confidence, fix)
CONTENT_RULES = {
    "suspicious_forms": (
        "content-suspicious-forms", "Credential or payment form at risk", "high", 0.85,
        "Never submit passwords or card details on this page.",
    ),
    "suspicious_scripts": (
        "content-suspicious-scripts", "Obfuscated script code", "medium", 0.6,
        "Avoid interacting with the page; obfuscated code often hides redirects or data theft.",
    ),
    "ssl_issues": (
        "content-ssl-issues", "Sensitive data sent without HTTPS", "high", 0.8,
        "Only enter sensitive data on pages served and submitted over HTTPS.",
    ),
    "suspicious_links": (
        "content-suspicious-links", "Unusually many external links", "medium", 0.5,
        "Hover links before clicking and confirm where they lead.",
    ),
    "brand_impersonation": (
        "content-brand-impersonation", "Page content claims a brand it is not served by", "high", 0.75,
        "Navigate to the brand's official site directly rather than through this page.",
    ),
}

NO_ISSUES = Finding(
    id="no-issues",
    title="No phishing indicators detected",
    severity="low",
    confidence=0.2,
    evidence="No domain or content heuristic was triggered.",
    fix="No action needed; stay alert for unexpected login or payment prompts.",
)


def _clamp(value: float) -> float:
    return max(0.0, min(float(value), 1.0))


def _domain_findings(domain: DomainFinding) -> List[Finding]:
    findings: List[Finding] = []
    match = domain.brand_impersonation
    if match is not None:
        findings.append(
            Finding(
                id="domain-brand-impersonation",
                title=f"Domain imitates {match.brand} ({match.technique})",
                severity="high",
                confidence=_clamp(match.confidence / 100),
                evidence="; ".join(domain.reasons_for("brand_impersonation"))
                or f"{domain.registrable_domain} resembles {match.brand}",
                fix=f"Type {match.brand}'s address yourself instead of following this link.",
            )
        )

    flags = domain.flags
    if "brand_subdomain" in flags or "deep_subdomain" in flags:
        branded = "brand_subdomain" in flags
        findings.append(
            Finding(
                id="domain-deceptive-subdomain",
                title="Deceptive subdomain nesting" + (" with brand keyword" if branded else ""),
                severity="high" if branded else "medium",
                confidence=0.8 if branded else 0.6,
                evidence="; ".join(domain.reasons_for("brand_subdomain", "deep_subdomain")),
                fix="Read the hostname right to left: the part before the public suffix is who owns the site.",
            )
        )

    for flag, finding_id, title, severity, confidence, fix in DOMAIN_RULES:
        if flag in flags:
            findings.append(
                Finding(
                    id=finding_id,
                    title=title,
                    severity=severity,
                    confidence=confidence,
                    evidence="; ".join(domain.reasons_for(flag)),
                    fix=fix,
                )
            )
    return findings


def _content_findings(content: ContentFinding) -> List[Finding]:
    findings = []
    for category in content.triggered():
        finding_id, title, severity, confidence, fix = CONTENT_RULES[category]
        findings.append(
            Finding(
                id=finding_id,
                title=title,
                severity=severity,
                confidence=confidence,
                evidence=getattr(content, category).details,
                fix=fix,
            )
        )
    return findings


def _verdict(confidence: float) -> str:
    if confidence >= 0.8:
        return "High risk"
    if confidence >= 0.5:
        return "Suspicious"
    return "Low risk"


def _summary(domain: DomainFinding, content: Optional[ContentFinding], findings: List[Finding], confidence: float) -> str:
    target = domain.host or "the submitted URL"
    if findings == [NO_ISSUES]:
        text = f"Low risk: no phishing indicators were found for {target}."
    else:
        high = sum(1 for f in findings if f.severity == "high")
        text = (
            f"{_verdict(confidence)}: {len(findings)} indicator(s) for {target}"
            f" ({high} high severity). Strongest signal: {findings[0].title}."
        )
    if content is None:
        text += " Page content was not analyzed; findings are domain-only."
    elif not content.available:
        text += f" {content.note}."
    return text


def assemble_report(
    domain: DomainFinding,
    content: Optional[ContentFinding],
    url: str = "",
    raw_outputs: Optional[str] = None,
) -> ScanReport:
    """Merge domain and content findings into a ScanReport. Never raises on degraded input."""
    findings = _domain_findings(domain)
    if content is not None:
        findings.extend(_content_findings(content))
    if not findings:
        findings = [NO_ISSUES]

    # Strongest signal first; ties keep rule order.
    findings.sort(key=lambda f: -f.confidence)
    confidence = round(max(f.confidence for f in findings), 3)

    if raw_outputs is None:
        raw_outputs = json.dumps(
            {
                "domain": domain.to_dict(),
                "content": content.to_dict() if content is not None else None,
            },
            ensure_ascii=False,
        )

    report = ScanReport(
        url=url or domain.host,
        summary=_summary(domain, content, findings, confidence),
        confidence=confidence,
        findings=tuple(findings),
        raw_outputs=raw_outputs,
    )
    logger.debug("assembled report for %s: %d findings, confidence %.2f", report.url, len(findings), confidence)
    return report
