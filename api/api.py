"""Programmatic API entrypoint for the phishing triage tool."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import AnalyzerConfig, Settings, default_analyzer_config, get_settings
from content_fetcher import FetchResult, fetch_website_content
from domain_info import DomainAnalyzer
from errors import ParseError
from html_parser import analyze_html, unavailable_content
from models import ContentFinding, DomainFinding, ScanReport
from report_assembler import assemble_report
from url_features import parse_url

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, Settings], FetchResult]


@dataclass(frozen=True)
class ScanResult:
    url: str
    domain: DomainFinding
    content: ContentFinding
    report: ScanReport
    fetch: Optional[FetchResult] = None

    def to_dict(self) -> Dict:
        return {
            "url": self.url,
            "domain": self.domain.to_dict(),
            "fetch": self.fetch.to_dict() if self.fetch is not None else None,
            "content": self.content.to_dict(),
            "report": self.report.to_dict(),
        }


def _fetch(url: str, settings: Settings) -> FetchResult:
    return fetch_website_content(url, settings)


def run_scan(
    url: str,
    settings: Optional[Settings] = None,
    config: Optional[AnalyzerConfig] = None,
    fetcher: Optional[Fetcher] = None,
) -> ScanResult:
    """Domain checks, best-effort fetch, content checks, report. Never raises on bad URLs or fetch failures."""
    settings = settings or get_settings()
    config = config or default_analyzer_config(settings)
    fetcher = fetcher or _fetch

    domain = DomainAnalyzer(config).analyze(url)
    try:
        normalized = parse_url(url).normalized
    except ParseError as exc:
        content = unavailable_content(f"URL could not be parsed ({exc}); content was not fetched")
        report = assemble_report(domain, content, url=(url or "").strip())
        return ScanResult(url=(url or "").strip(), domain=domain, content=content, report=report)

    fetch = fetcher(normalized, settings)
    if fetch.ok:
        content = analyze_html(fetch.html, fetch.final_url or normalized, config)
    else:
        content = unavailable_content(f"Page content unavailable ({fetch.error}); analysis is domain-only")

    report = assemble_report(domain, content, url=normalized)
    logger.info("scanned %s: confidence %.2f", normalized, report.confidence)
    return ScanResult(url=normalized, domain=domain, content=content, report=report, fetch=fetch)


def analyze_url(
    url: str,
    settings: Optional[Settings] = None,
    config: Optional[AnalyzerConfig] = None,
) -> Dict:
    """Run the full heuristic pipeline and return a structured response."""
    return run_scan(url, settings, config).to_dict()
