# main.py
# Interactive chat front end: paste a URL to scan it, anything else is a follow-up question
import logging
import re
import sys
from pathlib import Path

from config import get_settings
from errors import RelayError
from session import TriageSession

URL_LIKE = re.compile(r"^(https?://)?[^\s/]+\.[^\s/]{2,}(/\S*)?$", re.IGNORECASE)

HELP = "Enter a URL to scan, ask a follow-up question, /export PATH to save a report, /quit to exit."


def print_report(report):
    print(f"\n{report.summary}")
    print(f"Heuristic confidence: {round(report.confidence * 100)}%")
    for finding in report.findings:
        print(f"  [{finding.severity.upper()}] {finding.title} - {finding.evidence}")
    print()


def handle_line(session: TriageSession, line: str) -> bool:
    if line in ("/quit", "/exit"):
        return False
    if line == "/help":
        print(HELP)
        return True
    if line.startswith("/export"):
        target = line[len("/export"):].strip() or "triage-report.txt"
        try:
            written = session.export(Path(target))
        except OSError as exc:
            print(f"Could not write report: {exc}", file=sys.stderr)
            return True
        print(f"Report written to {written}")
        return True

    try:
        if URL_LIKE.match(line):
            report, reply = session.scan(line)
            print_report(report)
        else:
            reply = session.ask(line)
    except RelayError as exc:
        print(f"Assistant request failed: {exc}", file=sys.stderr)
        return True
    print(reply)
    print()
    return True


def main_loop():
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    session = TriageSession(settings)
    print("Phishing Triage Assistant\n")
    print(HELP)
    while True:
        try:
            line = input("> ").strip()
            if line == "":
                continue
            if not handle_line(session, line):
                break
        except (KeyboardInterrupt, EOFError):
            break


if __name__ == "__main__":
    main_loop()
