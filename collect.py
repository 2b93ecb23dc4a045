"""Batch triage of URL lists with the heuristic pipeline (no assistant calls)."""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from api.api import analyze_url
from config import default_analyzer_config, get_settings

logger = logging.getLogger(__name__)

JSON_COLUMNS = ("findings", "domain_reasons", "content_flags")


def _detect_input_format(path: Path, explicit: Optional[str]) -> str:
    if explicit:
        return explicit.lower()
    suffix = path.suffix.lower()
    if suffix in {".txt", ".list"}:
        return "txt"
    if suffix == ".jsonl":
        return "jsonl"
    return "csv"


def _detect_output_format(path: Path, explicit: Optional[str]) -> str:
    if explicit:
        return explicit.lower()
    return "csv" if path.suffix.lower() == ".csv" else "jsonl"


def _read_txt(path: Path) -> Iterator[Dict]:
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            url = line.strip()
            if url and not url.startswith("#"):
                yield {"url": url}


def _read_csv(path: Path) -> Iterator[Dict]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        for row in csv.DictReader(handle):
            url = (row.get("url") or row.get("URL") or "").strip()
            if not url:
                continue
            entry = {"url": url}
            label = row.get("label")
            if label is not None and str(label).strip() != "":
                entry["label"] = label
            yield entry


def _read_jsonl(path: Path) -> Iterator[Dict]:
    with path.open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, 1):
            raw = line.strip()
            if not raw or raw.startswith("#"):
                continue
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("%s:%d: skipping invalid JSON", path, lineno)
                continue
            if isinstance(data, str):
                data = {"url": data}
            if not isinstance(data, dict) or not str(data.get("url", "")).strip():
                continue
            entry = {"url": str(data["url"]).strip()}
            if "label" in data:
                entry["label"] = data["label"]
            yield entry


READERS = {"txt": _read_txt, "csv": _read_csv, "jsonl": _read_jsonl}


def summarize_result(result: Dict, label=None) -> Dict:
    report = result["report"]
    domain = result["domain"]
    content = result["content"]
    fetch = result.get("fetch") or {}
    return {
        "url": result["url"],
        "label": label,
        "confidence": report["confidence"],
        "top_severity": report["findings"][0]["severity"] if report["findings"] else None,
        "summary": report["summary"],
        "domain_suspicious": domain["is_suspicious"],
        "brand_impersonation": (domain["brand_impersonation"] or {}).get("brand"),
        "content_available": content["available"],
        "fetch_error": fetch.get("error"),
        "findings": [f["id"] for f in report["findings"]],
        "domain_reasons": domain["reasons"],
        "content_flags": [k for k, v in content.items() if isinstance(v, dict) and v.get("detected")],
    }


def _write_jsonl(rows: Iterable[Dict], path: Path) -> None:
    with path.open("w", encoding="utf-8") as handle:
        for row in rows:
            handle.write(json.dumps(row, ensure_ascii=False))
            handle.write("\n")


def _write_csv(rows: Iterable[Dict], path: Path) -> None:
    rows = list(rows)
    if not rows:
        return
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        for row in rows:
            row = dict(row)
            for column in JSON_COLUMNS:
                if column in row:
                    row[column] = json.dumps(row[column], ensure_ascii=False)
            writer.writerow(row)


def run_collect(input_path: Path, output_path: Path, input_format: str, output_format: str) -> int:
    settings = get_settings()
    config = default_analyzer_config(settings)
    outputs = []
    for entry in READERS[input_format](input_path):
        result = analyze_url(entry["url"], settings, config)
        outputs.append(summarize_result(result, entry.get("label")))
        logger.info("collected %s", entry["url"])

    if output_format == "csv":
        _write_csv(outputs, output_path)
    else:
        _write_jsonl(outputs, output_path)
    return len(outputs)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run heuristic phishing triage over a list of URLs.")
    parser.add_argument("input", help="Path to input list (.txt, .csv, .jsonl)")
    parser.add_argument("output", help="Path to output file (.jsonl or .csv)")
    parser.add_argument("--input-format", choices=sorted(READERS), help="Override input format detection")
    parser.add_argument("--output-format", choices=["jsonl", "csv"], help="Override output format detection")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=get_settings().log_level, format="%(levelname)s %(name)s: %(message)s")
    input_path = Path(args.input)
    output_path = Path(args.output)

    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    count = run_collect(
        input_path,
        output_path,
        _detect_input_format(input_path, args.input_format),
        _detect_output_format(output_path, args.output_format),
    )
    print(f"Wrote {count} result(s) to {output_path}")


if __name__ == "__main__":
    main()
