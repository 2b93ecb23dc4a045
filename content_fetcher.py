"""Best-effort page retrieval. Every failure is reported, never raised."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from config import Settings, get_settings
from deadline import run_with_deadline
from errors import DeadlineExceeded, FetchError, ParseError
from url_features import parse_url

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
READ_CHUNK = 8192


@dataclass(frozen=True)
class FetchResult:
    html: Optional[str] = None
    error: Optional[str] = None
    final_url: Optional[str] = None
    status_code: Optional[int] = None
    redirect_count: int = 0
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.html is not None and self.error is None

    def to_dict(self) -> Dict:
        return {
            "fetched": self.ok,
            "error": self.error,
            "final_url": self.final_url,
            "status_code": self.status_code,
            "redirect_count": self.redirect_count,
            "content_type": self.content_type,
        }


def _is_html(content_type: str) -> bool:
    # Servers that omit the header usually serve HTML.
    if not content_type:
        return True
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime in HTML_CONTENT_TYPES


def _request_error(exc: requests.RequestException, settings: Settings) -> FetchError:
    if isinstance(exc, requests.exceptions.Timeout):
        return FetchError(f"timed out after {settings.request_timeout:g}s")
    if isinstance(exc, requests.exceptions.TooManyRedirects):
        return FetchError("too many redirects")
    if isinstance(exc, requests.exceptions.SSLError):
        return FetchError(f"TLS error: {exc}")
    if isinstance(exc, requests.exceptions.ConnectionError):
        return FetchError(f"connection failed: {exc}")
    return FetchError(f"request failed: {exc}")


def _read_capped(r, limit: int, cancelled: threading.Event) -> bytes:
    chunks = []
    size = 0
    for chunk in r.iter_content(chunk_size=READ_CHUNK):
        if cancelled.is_set():
            raise FetchError("fetch abandoned after deadline")
        if not chunk:
            continue
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]


def _decode(raw: bytes, content_type: str, encoding: Optional[str]) -> str:
    # Without a declared charset requests assumes latin-1 for text/*; UTF-8 is the better guess for HTML.
    if encoding and "charset=" in content_type.lower():
        try:
            return raw.decode(encoding, errors="replace")
        except LookupError:
            pass
    return raw.decode("utf-8", errors="replace")


def _get(url: str, settings: Settings, session: requests.Session, cancelled: threading.Event) -> FetchResult:
    try:
        r = session.get(
            url,
            timeout=settings.request_timeout,
            headers={"User-Agent": settings.user_agent, "Accept": "text/html,application/xhtml+xml"},
            allow_redirects=True,
            stream=True,
        )
    except requests.RequestException as exc:
        raise _request_error(exc, settings) from exc

    try:
        content_type = r.headers.get("Content-Type", "")
        meta = {
            "final_url": r.url,
            "status_code": r.status_code,
            "redirect_count": len(r.history),
            "content_type": content_type or None,
        }
        # Status and type come from the headers; the body is only read for HTML.
        if not 200 <= r.status_code < 300:
            return FetchResult(error=f"HTTP {r.status_code}", **meta)
        if not _is_html(content_type):
            return FetchResult(error=f"non-HTML content type '{content_type}'", **meta)

        try:
            raw = _read_capped(r, settings.max_content_chars, cancelled)
        except requests.RequestException as exc:
            raise _request_error(exc, settings) from exc
        html = _decode(raw, content_type, r.encoding)[: settings.max_content_chars]
        return FetchResult(html=html, **meta)
    finally:
        r.close()


def fetch_website_content(
    url: str,
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """Single GET for the page markup, bounded by ``request_timeout`` overall; failures come back in ``error``."""
    settings = settings or get_settings()
    try:
        normalized = parse_url(url).normalized
    except ParseError as exc:
        return FetchResult(error=f"unparseable URL: {exc}")

    owns_session = session is None
    session = session or requests.Session()
    try:
        result = run_with_deadline(
            lambda cancelled: _get(normalized, settings, session, cancelled),
            settings.request_timeout,
            name="content-fetch",
        )
    except DeadlineExceeded:
        result = FetchResult(error=f"timed out after {settings.request_timeout:g}s")
    except FetchError as exc:
        result = FetchResult(error=str(exc))
    finally:
        if owns_session:
            session.close()

    if result.error:
        logger.info("content fetch for %s failed: %s", normalized, result.error)
    return result
