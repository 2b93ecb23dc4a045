"""Relay of scan evidence and chat history to the Gemini generateContent API."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import requests

from config import Settings, get_settings
from deadline import run_with_deadline
from errors import DeadlineExceeded, EmptyCompletionError, RelayError
from models import ContentFinding, DomainFinding, Message, ScanReport

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 2000

SYSTEM_PROMPT = """\
You are a phishing triage assistant. You receive heuristic evidence about a URL
(domain analysis and, when the page could be fetched, HTML inspection) and give
a short, evidence-backed risk verdict.

Rules:
- Verdict bands: HIGH RISK (80-100%), SUSPICIOUS (50-79%), SAFE (0-49%).
- Domains that copy or misspell a major brand, brand keywords nested in the
  subdomains of an unrelated domain, brand keywords on high-abuse TLDs, and
  password or card forms without HTTPS are high risk.
- Do not raise alarms on brand keywords alone: community chapters, partners
  and campus groups often use a brand name legitimately. Look for corroborating
  signals before calling a site dangerous.
- Missing page content is not evidence of phishing; say when the analysis is
  domain-only.
- Never invent findings that are not in the evidence.

Format:
Line 1: verdict emoji (red/yellow/green) and a one-sentence verdict.
Line 2: [CONFIDENCE: XX%]
Then sections: Summary, Critical Findings, Evidence, Recommendations.
"""


def build_evidence_text(
    url: str,
    domain: DomainFinding,
    content: Optional[ContentFinding],
    report: ScanReport,
) -> str:
    """Render the analyzer output as the user turn sent to the model."""
    lines = [f"Scan {url} for phishing.", "", "## Domain analysis"]
    lines.append(f"- Host: {domain.host or 'n/a'} (registered domain: {domain.registrable_domain or 'n/a'})")
    if domain.brand_impersonation:
        match = domain.brand_impersonation
        lines.append(
            f"- Brand impersonation: {match.brand} via {match.technique} "
            f"(confidence {match.confidence}%)"
        )
    if domain.reasons:
        lines.extend(f"- {reason}" for reason in domain.reasons)
    else:
        lines.append("- No domain-level indicators")

    lines.extend(["", "## Content analysis"])
    if content is None or not content.available:
        note = content.note if content is not None else "Content was not fetched"
        lines.append(f"- Unavailable: {note}")
    else:
        for name, flag in content.flags().items():
            state = "DETECTED" if flag.detected else "clear"
            lines.append(f"- {name.replace('_', ' ')}: {state} - {flag.details}")

    lines.extend(["", "## Heuristic findings", f"- Headline confidence: {round(report.confidence * 100)}%"])
    for finding in report.findings:
        lines.append(
            f"- [{finding.severity.upper()}] {finding.title} "
            f"({round(finding.confidence * 100)}%): {finding.evidence}"
        )
    return "\n".join(lines)


class AssistantRelay:
    """Send evidence plus prior turns; return the model's text. No retries."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.settings.gemini_api_base}/models/{self.settings.gemini_model}:generateContent"

    def build_payload(self, prior_messages: Sequence[Message], new_text: str) -> Dict:
        contents: List[Dict] = [{"role": "user", "parts": [{"text": SYSTEM_PROMPT}]}]
        for msg in prior_messages:
            contents.append({
                "role": "user" if msg.role == "user" else "model",
                "parts": [{"text": msg.content}],
            })
        contents.append({"role": "user", "parts": [{"text": new_text}]})
        return {
            "contents": contents,
            "generationConfig": {
                "temperature": self.settings.temperature,
                "topK": self.settings.top_k,
                "topP": self.settings.top_p,
                "maxOutputTokens": self.settings.max_output_tokens,
            },
        }

    def send(self, prior_messages: Sequence[Message], new_text: str) -> str:
        if not self.settings.gemini_api_key:
            raise RelayError("GEMINI_API_KEY is not configured")

        payload = self.build_payload(prior_messages, new_text)
        try:
            r = run_with_deadline(
                lambda cancelled: self.session.post(
                    self.endpoint,
                    json=payload,
                    headers={"x-goog-api-key": self.settings.gemini_api_key},
                    timeout=self.settings.relay_timeout,
                ),
                self.settings.relay_timeout,
                name="assistant-request",
            )
        except (requests.exceptions.Timeout, DeadlineExceeded) as exc:
            logger.warning("assistant request timed out after %ss", self.settings.relay_timeout)
            raise RelayError(f"assistant request timed out after {self.settings.relay_timeout:g}s") from exc
        except requests.RequestException as exc:
            logger.warning("assistant request failed: %s", exc)
            raise RelayError(f"assistant request failed: {exc}") from exc

        body = r.text[:MAX_ERROR_BODY] if r.text else ""
        if not 200 <= r.status_code < 300:
            logger.warning("assistant API returned HTTP %s", r.status_code)
            raise RelayError("assistant API error", status=r.status_code, body=body)

        try:
            data = r.json()
        except ValueError as exc:
            raise RelayError("assistant API returned invalid JSON", status=r.status_code, body=body) from exc

        return self._extract_text(data, r.status_code, body)

    @staticmethod
    def _extract_text(data: Dict, status: int, body: str) -> str:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates or not isinstance(candidates, list):
            raise EmptyCompletionError("assistant returned no candidates", status=status, body=body)
        first = candidates[0] if isinstance(candidates[0], dict) else {}
        content = first.get("content") if isinstance(first.get("content"), dict) else {}
        parts = content.get("parts") if isinstance(content.get("parts"), list) else []
        text = "".join(
            part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
        if not text.strip():
            raise EmptyCompletionError("assistant candidate contained no text", status=status, body=body)
        return text


def send_to_assistant(
    prior_messages: Sequence[Message],
    evidence_text: str,
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Forward the ordered history plus the new evidence prompt; return the completion text."""
    return AssistantRelay(settings, session).send(prior_messages, evidence_text)
