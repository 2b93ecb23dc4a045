import time

import requests

from config import Settings
from content_fetcher import READ_CHUNK, fetch_website_content
from tests.fakes import FakeResponse, FakeSession


def test_html_page_is_returned(settings, clean_html):
    session = FakeSession(FakeResponse(text=clean_html, url="https://amazon.com/"))

    result = fetch_website_content("amazon.com", settings, session)

    assert result.ok
    assert result.html == clean_html
    assert result.final_url == "https://amazon.com/"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "http://amazon.com")
    assert kwargs["timeout"] == settings.request_timeout
    assert kwargs["headers"]["User-Agent"] == settings.user_agent


def test_non_2xx_is_reported_not_raised(settings):
    session = FakeSession(FakeResponse(status_code=503, text="down"))

    result = fetch_website_content("https://example.com", settings, session)

    assert not result.ok
    assert result.error == "HTTP 503"
    assert result.status_code == 503


def test_non_html_content_type_is_rejected(settings):
    session = FakeSession(FakeResponse(text="%PDF", headers={"Content-Type": "application/pdf"}))

    result = fetch_website_content("https://example.com/file.pdf", settings, session)

    assert result.html is None
    assert "application/pdf" in result.error


def test_missing_content_type_is_treated_as_html(settings):
    session = FakeSession(FakeResponse(text="<p>hi</p>", headers={}))

    assert fetch_website_content("https://example.com", settings, session).ok


def test_timeout_becomes_error_string(settings):
    session = FakeSession(exc=requests.exceptions.ConnectTimeout("slow"))

    result = fetch_website_content("https://example.com", settings, session)

    assert result.error == "timed out after 2s"


def test_connection_failure_becomes_error_string(settings):
    session = FakeSession(exc=requests.exceptions.ConnectionError("refused"))

    result = fetch_website_content("https://example.com", settings, session)

    assert result.error.startswith("connection failed")


def test_redirect_loop_becomes_error_string(settings):
    session = FakeSession(exc=requests.exceptions.TooManyRedirects("loop"))

    assert fetch_website_content("https://example.com", settings, session).error == "too many redirects"


def test_large_pages_are_truncated(settings):
    small = settings.__class__(max_content_chars=10)
    session = FakeSession(FakeResponse(text="<p>" + "x" * 100 + "</p>"))

    result = fetch_website_content("https://example.com", small, session)

    assert len(result.html) == 10


def test_unparseable_url_skips_the_network(settings):
    session = FakeSession(FakeResponse(text="never"))

    result = fetch_website_content("ftp://example.com/file", settings, session)

    assert result.error.startswith("unparseable URL")
    assert session.calls == []


def test_caller_session_is_left_open(settings):
    session = FakeSession(FakeResponse(text="<p>ok</p>"))

    fetch_website_content("https://example.com", settings, session)

    assert not session.closed


def test_body_is_streamed(settings):
    response = FakeResponse(text="<p>ok</p>")
    session = FakeSession(response)

    fetch_website_content("https://example.com", settings, session)

    assert session.calls[0][2]["stream"] is True
    assert response.closed


def test_trickling_server_is_cut_off_at_the_deadline():
    slow = FakeResponse(chunks=[b"<"] * 12, chunk_delay=0.25)
    session = FakeSession(slow)

    started = time.monotonic()
    result = fetch_website_content("https://example.com", Settings(request_timeout=0.5), session)
    elapsed = time.monotonic() - started

    assert not result.ok
    assert result.error == "timed out after 0.5s"
    assert elapsed < 2.0


def test_stalled_headers_are_cut_off_at_the_deadline():
    session = FakeSession(FakeResponse(text="<p>late</p>"), delay=2.0)

    started = time.monotonic()
    result = fetch_website_content("https://example.com", Settings(request_timeout=0.3), session)

    assert result.error == "timed out after 0.3s"
    assert time.monotonic() - started < 1.5


def test_non_html_body_is_never_read(settings):
    response = FakeResponse(text="x" * 50_000, headers={"Content-Type": "application/octet-stream"})

    result = fetch_website_content("https://example.com/big.bin", settings, FakeSession(response))

    assert "application/octet-stream" in result.error
    assert response.bytes_read == 0
    assert response.closed


def test_error_status_body_is_never_read(settings):
    response = FakeResponse(status_code=404, text="<p>missing</p>" * 1000)

    fetch_website_content("https://example.com/gone", settings, FakeSession(response))

    assert response.bytes_read == 0


def test_oversized_page_stops_reading_at_the_cap():
    response = FakeResponse(text="x" * 200_000)

    result = fetch_website_content("https://example.com", Settings(max_content_chars=1000), FakeSession(response))

    assert len(result.html) == 1000
    assert response.bytes_read <= 1000 + READ_CHUNK


def test_declared_charset_is_used_for_decoding(settings):
    body = "<p>café</p>".encode("latin-1")
    response = FakeResponse(
        chunks=[body],
        headers={"Content-Type": "text/html; charset=ISO-8859-1"},
        encoding="ISO-8859-1",
    )

    result = fetch_website_content("https://example.com", settings, FakeSession(response))

    assert result.html == "<p>café</p>"
