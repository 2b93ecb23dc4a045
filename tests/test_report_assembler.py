import json

from html_parser import unavailable_content
from models import BrandMatch, ContentFinding, ContentFlag, DomainFinding
from report_assembler import assemble_report

CLEAN_DOMAIN = DomainFinding(is_suspicious=False, host="example.org", registrable_domain="example.org")


def _domain(*signals, match=None):
    return DomainFinding(
        is_suspicious=True,
        brand_impersonation=match,
        signals=tuple(signals),
        host="host.example",
        registrable_domain="host.example",
    )


def test_no_flags_gives_single_low_finding():
    report = assemble_report(CLEAN_DOMAIN, ContentFinding())

    assert [f.id for f in report.findings] == ["no-issues"]
    assert report.findings[0].severity == "low"
    assert report.confidence == 0.2


def test_brand_impersonation_confidence_is_scaled_and_clamped():
    report = assemble_report(
        _domain(("brand_impersonation", "looks like paypal"), match=BrandMatch("paypal", 95, "substitution")),
        None,
    )

    finding = report.findings[0]
    assert finding.id == "domain-brand-impersonation"
    assert finding.severity == "high"
    assert finding.confidence == 0.95
    assert finding.evidence == "looks like paypal"

    over = assemble_report(_domain(match=BrandMatch("paypal", 140, "typo")), None)
    assert over.findings[0].confidence == 1.0


def test_severity_table_for_domain_flags():
    report = assemble_report(
        _domain(
            ("suspicious_tld_brand", "tld+brand"),
            ("deep_subdomain", "nesting"),
        ),
        None,
    )

    by_id = {f.id: f for f in report.findings}
    assert (by_id["domain-suspicious-tld-brand"].severity, by_id["domain-suspicious-tld-brand"].confidence) == ("high", 0.8)
    assert (by_id["domain-deceptive-subdomain"].severity, by_id["domain-deceptive-subdomain"].confidence) == ("medium", 0.6)


def test_brand_keyword_in_subdomain_escalates_to_high():
    report = assemble_report(_domain(("brand_subdomain", "google in subdomain")), None)

    finding = report.findings[0]
    assert finding.id == "domain-deceptive-subdomain"
    assert finding.severity == "high"
    assert finding.confidence == 0.8


def test_each_content_flag_maps_to_exactly_one_finding():
    content = ContentFinding(
        suspicious_forms=ContentFlag(True, "login form over http"),
        suspicious_scripts=ContentFlag(True, "eval()"),
        ssl_issues=ContentFlag(True, "plain http"),
    )

    report = assemble_report(CLEAN_DOMAIN, content)

    ids = [f.id for f in report.findings]
    assert sorted(ids) == ["content-ssl-issues", "content-suspicious-forms", "content-suspicious-scripts"]
    assert report.findings[0].id == "content-suspicious-forms"
    assert report.findings[0].confidence == 0.85


def test_headline_confidence_is_the_strongest_signal():
    content = ContentFinding(suspicious_scripts=ContentFlag(True, "eval()"))

    report = assemble_report(_domain(("suspicious_tld", "odd tld")), content)

    assert report.confidence == 0.6
    assert len(report.findings) == 2


def test_degraded_content_still_produces_domain_report():
    content = unavailable_content("Page content unavailable (HTTP 503); analysis is domain-only")

    report = assemble_report(_domain(("suspicious_tld", "odd tld")), content)

    assert [f.id for f in report.findings] == ["domain-suspicious-tld"]
    assert "HTTP 503" in report.summary


def test_missing_content_is_called_out_in_summary():
    report = assemble_report(CLEAN_DOMAIN, None)

    assert "domain-only" in report.summary
    assert json.loads(report.raw_outputs)["content"] is None


def test_ids_are_stable_between_scans():
    first = assemble_report(_domain(("ip_host", "ip")), None)
    second = assemble_report(_domain(("ip_host", "ip")), None)

    assert [f.id for f in first.findings] == [f.id for f in second.findings] == ["domain-ip-host"]
