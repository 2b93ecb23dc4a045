"""Shared data records for the triage pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Tuple
import uuid


SEVERITIES = ("low", "medium", "high")
ROLES = ("user", "assistant")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BrandMatch:
    brand: str
    confidence: int        # 0..100
    technique: str         # "substitution", "homograph", "typo", "tld-swap"

    def to_dict(self) -> Dict:
        return {"brand": self.brand, "confidence": self.confidence, "technique": self.technique}


@dataclass(frozen=True)
class DomainFinding:
    """Result of the domain heuristics for one URL."""
    is_suspicious: bool
    brand_impersonation: Optional[BrandMatch] = None
    signals: Tuple[Tuple[str, str], ...] = ()    # (flag, reason) pairs in report order
    host: str = ""
    registrable_domain: str = ""
    subdomain: str = ""
    tld: str = ""

    @property
    def reasons(self) -> Tuple[str, ...]:
        return tuple(reason for _, reason in self.signals)

    @property
    def flags(self) -> FrozenSet[str]:
        return frozenset(flag for flag, _ in self.signals)

    def reasons_for(self, *flags: str) -> Tuple[str, ...]:
        return tuple(reason for flag, reason in self.signals if flag in flags)

    def to_dict(self) -> Dict:
        return {
            "is_suspicious": self.is_suspicious,
            "reasons": list(self.reasons),
            "brand_impersonation": (
                self.brand_impersonation.to_dict() if self.brand_impersonation else None
            ),
            "flags": sorted(self.flags),
            "host": self.host,
            "registrable_domain": self.registrable_domain,
            "subdomain": self.subdomain,
            "tld": self.tld,
        }


@dataclass(frozen=True)
class ContentFlag:
    detected: bool = False
    details: str = ""

    def to_dict(self) -> Dict:
        return {"detected": self.detected, "details": self.details}


CONTENT_CATEGORIES = (
    "suspicious_forms",
    "suspicious_links",
    "suspicious_scripts",
    "ssl_issues",
    "brand_impersonation",
)


@dataclass(frozen=True)
class ContentFinding:
    """Independent page-content flags; all false when no HTML was available."""
    suspicious_forms: ContentFlag = ContentFlag()
    suspicious_links: ContentFlag = ContentFlag()
    suspicious_scripts: ContentFlag = ContentFlag()
    ssl_issues: ContentFlag = ContentFlag()
    brand_impersonation: ContentFlag = ContentFlag()
    available: bool = True
    note: str = ""

    def flags(self) -> Dict[str, ContentFlag]:
        return {name: getattr(self, name) for name in CONTENT_CATEGORIES}

    def triggered(self) -> Tuple[str, ...]:
        return tuple(name for name, flag in self.flags().items() if flag.detected)

    def to_dict(self) -> Dict:
        data = {name: flag.to_dict() for name, flag in self.flags().items()}
        data["available"] = self.available
        data["note"] = self.note
        return data


@dataclass(frozen=True)
class Finding:
    id: str
    title: str
    severity: str          # "low", "medium", "high"
    confidence: float      # 0..1
    evidence: str = ""
    fix: str = ""

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "severity": self.severity,
            "confidence": self.confidence,
            "evidence": self.evidence,
            "fix": self.fix,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Finding":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            severity=str(data.get("severity", "low")),
            confidence=float(data.get("confidence", 0.0)),
            evidence=str(data.get("evidence", "")),
            fix=str(data.get("fix", "")),
        )


@dataclass(frozen=True)
class ScanReport:
    summary: str
    confidence: float
    findings: Tuple[Finding, ...]
    url: str = ""
    raw_outputs: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def severity_counts(self) -> Dict[str, int]:
        counts = {s: 0 for s in SEVERITIES}
        for finding in self.findings:
            counts[finding.severity] = counts.get(finding.severity, 0) + 1
        return counts

    def to_dict(self) -> Dict:
        return {
            "url": self.url,
            "summary": self.summary,
            "confidence": self.confidence,
            "findings": [f.to_dict() for f in self.findings],
            "raw_outputs": self.raw_outputs,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ScanReport":
        return cls(
            url=str(data.get("url", "")),
            summary=str(data.get("summary", "")),
            confidence=float(data.get("confidence", 0.0)),
            findings=tuple(Finding.from_dict(f) for f in data.get("findings", [])),
            raw_outputs=data.get("raw_outputs"),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else utcnow(),
        )


@dataclass(frozen=True)
class Message:
    role: str              # "user" or "assistant"
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"unknown message role: {self.role!r}")

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Message":
        return cls(
            id=str(data["id"]),
            role=str(data["role"]),
            content=str(data.get("content", "")),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
