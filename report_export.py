"""Human-readable report export with an embedded JSON blob for resuming a session."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from models import Message, ScanReport

BEGIN_MARKER = "-----BEGIN TRIAGE DATA-----"
END_MARKER = "-----END TRIAGE DATA-----"
RULE = "=" * 72


def render_report_text(
    messages: Sequence[Message],
    report: Optional[ScanReport],
    url: str = "",
) -> str:
    lines = [
        "PHISHING TRIAGE REPORT",
        RULE,
        f"Generated: {datetime.now(timezone.utc).isoformat()}",
        f"Scanned URL: {url or (report.url if report else 'n/a')}",
        "",
    ]

    if report is not None:
        counts = report.severity_counts()
        lines += [
            "SUMMARY",
            report.summary,
            f"Confidence: {round(report.confidence * 100)}%",
            f"Findings: {len(report.findings)} (high {counts['high']}, medium {counts['medium']}, low {counts['low']})",
            "",
            "FINDINGS",
        ]
        for i, finding in enumerate(report.findings, 1):
            lines += [
                f"{i}. [{finding.severity.upper()}] {finding.title} ({round(finding.confidence * 100)}%)",
                f"   ID: {finding.id}",
                f"   Evidence: {finding.evidence}",
                f"   Fix: {finding.fix}",
            ]
        lines.append("")
    else:
        lines += ["No scan report available.", ""]

    lines += ["CONVERSATION", RULE]
    for msg in messages:
        lines += [f"[{msg.timestamp.isoformat()}] {msg.role.upper()}:", msg.content, ""]

    blob = {
        "url": url,
        "report": report.to_dict() if report is not None else None,
        "messages": [m.to_dict() for m in messages],
    }
    lines += [BEGIN_MARKER, json.dumps(blob, ensure_ascii=False, indent=2), END_MARKER, ""]
    return "\n".join(lines)


def write_report(
    path: Path,
    messages: Sequence[Message],
    report: Optional[ScanReport],
    url: str = "",
) -> None:
    Path(path).write_text(render_report_text(messages, report, url), encoding="utf-8")


def load_report(text: str) -> Tuple[List[Message], Optional[ScanReport]]:
    """Recover the message log and report from an exported document."""
    # Newlines inside JSON strings are escaped, so this only matches the blob.
    start = text.rfind(BEGIN_MARKER + "\n{")
    end = text.rfind(END_MARKER)
    if start == -1 or end < start:
        raise ValueError("no embedded triage data found")
    data = json.loads(text[start + len(BEGIN_MARKER):end])
    messages = [Message.from_dict(m) for m in data.get("messages", [])]
    report = ScanReport.from_dict(data["report"]) if data.get("report") else None
    return messages, report
