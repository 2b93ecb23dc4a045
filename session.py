"""Chat session state: the append-only message log and the latest scan report."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from api.api import Fetcher, ScanResult, run_scan
from assistant_relay import AssistantRelay, build_evidence_text
from config import AnalyzerConfig, Settings, default_analyzer_config, get_settings
from models import Message, ScanReport
from report_export import write_report

logger = logging.getLogger(__name__)


class TriageSession:
    """
    Owns one conversation. Messages are only appended, and only after the
    assistant answered, so a failed relay call leaves the session as it was.
    A newer scan replaces ``current_report``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        config: Optional[AnalyzerConfig] = None,
        relay: Optional[AssistantRelay] = None,
        fetcher: Optional[Fetcher] = None,
        messages: Optional[List[Message]] = None,
        report: Optional[ScanReport] = None,
    ):
        self.settings = settings or get_settings()
        self.config = config or default_analyzer_config(self.settings)
        self.relay = relay or AssistantRelay(self.settings)
        self.fetcher = fetcher
        self._messages: List[Message] = list(messages or [])
        self.current_report: Optional[ScanReport] = report
        self.last_scan: Optional[ScanResult] = None

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def _exchange(self, prompt: str) -> str:
        reply = self.relay.send(self._messages, prompt)
        self._messages.append(Message(role="user", content=prompt))
        self._messages.append(Message(role="assistant", content=reply))
        return reply

    def scan(self, url: str) -> Tuple[ScanReport, str]:
        """Run the heuristics, ask the assistant for a verdict, and record both."""
        result = run_scan(url, self.settings, self.config, self.fetcher)
        evidence = build_evidence_text(result.url, result.domain, result.content, result.report)
        reply = self._exchange(evidence)
        self.current_report = result.report
        self.last_scan = result
        return result.report, reply

    def ask(self, text: str) -> str:
        """Follow-up question in the same conversation."""
        return self._exchange(text)

    def export(self, path: Path) -> Path:
        url = self.current_report.url if self.current_report else ""
        write_report(path, self._messages, self.current_report, url)
        logger.info("report written to %s", path)
        return path
