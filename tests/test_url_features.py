import idna
import pytest

from errors import ParseError
from url_features import decode_idn, normalize_url, origin, parse_url, skeleton


def test_normalize_url_adds_scheme_when_missing():
    assert normalize_url("  example.com/login ") == "http://example.com/login"


def test_normalize_url_keeps_existing_scheme():
    assert normalize_url("https://example.com") == "https://example.com"


def test_parse_url_splits_subdomains_from_registrable_domain():
    parts = parse_url("https://login.google.verify.com/path")

    assert parts.registrable_domain == "verify.com"
    assert parts.subdomain_labels == ("login", "google")
    assert parts.domain_label == "verify"
    assert parts.tld == "com"
    assert parts.path == "/path"
    assert parts.port == 443


def test_parse_url_understands_multi_label_suffixes():
    parts = parse_url("www.amazon.co.uk")

    assert parts.registrable_domain == "amazon.co.uk"
    assert parts.tld == "co.uk"
    assert parts.top_level == "uk"
    assert parts.scheme == "http"


def test_parse_url_detects_ip_hosts():
    parts = parse_url("http://192.168.10.4/login")

    assert parts.is_ip is True
    assert parts.registrable_domain == "192.168.10.4"


@pytest.mark.parametrize("bad", ["", "   ", "ftp://example.com", "http://", "http://exa mple.com", "http://[::1"])
def test_parse_url_rejects_unusable_input(bad):
    with pytest.raises(ParseError):
        parse_url(bad)


def test_decode_idn_returns_display_form():
    host = idna.encode("аpple").decode("ascii") + ".com"

    assert host.startswith("xn--")
    assert decode_idn(host) == "аpple.com"


def test_decode_idn_leaves_undecodable_labels():
    assert decode_idn("xn--.example.com") == "xn--.example.com"


def test_skeleton_folds_lookalikes():
    assert skeleton("paypa1") == "paypal"
    assert skeleton("amaz0n") == "amazon"
    assert skeleton("rnicrosoft") == "microsoft"
    assert skeleton("аpple") == "apple"


def test_origin_fills_default_ports():
    assert origin("https://Example.com/a") == ("https", "example.com", 443)
    assert origin("http://example.com:8080/") == ("http", "example.com", 8080)
