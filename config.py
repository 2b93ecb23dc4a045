"""Configuration for the phishing triage tool."""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple
import os


@dataclass(frozen=True)
class Settings:
    request_timeout: float = 6.0
    relay_timeout: float = 30.0
    user_agent: str = "PhishTriage/1.0 (+https://example.com)"
    max_content_chars: int = 2_000_000
    log_level: str = "WARNING"
    trusted_domains: Tuple[str, ...] = ()
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 2048


@dataclass(frozen=True)
class Brand:
    name: str
    canonical_domains: Tuple[str, ...]
    keywords: Tuple[str, ...] = ()

    def all_keywords(self) -> Tuple[str, ...]:
        return (self.name,) + tuple(k for k in self.keywords if k != self.name)

    def owns(self, registrable_domain: str) -> bool:
        return registrable_domain.lower() in self.canonical_domains


DEFAULT_BRANDS: Tuple[Brand, ...] = (
    Brand("google", ("google.com", "youtube.com", "gmail.com", "withgoogle.com")),
    Brand("paypal", ("paypal.com", "paypal.me")),
    Brand(
        "amazon",
        ("amazon.com", "amazon.co.uk", "amazon.de", "amazon.in", "amazon.ca", "amazonaws.com"),
    ),
    Brand(
        "microsoft",
        ("microsoft.com", "live.com", "outlook.com", "office.com", "microsoftonline.com"),
        ("office365", "outlook"),
    ),
    Brand("apple", ("apple.com", "icloud.com"), ("icloud",)),
    Brand("facebook", ("facebook.com", "fb.com", "meta.com")),
    Brand("instagram", ("instagram.com",)),
    Brand("netflix", ("netflix.com",)),
    Brand("linkedin", ("linkedin.com",)),
    Brand("ebay", ("ebay.com", "ebay.co.uk")),
    Brand("dropbox", ("dropbox.com",)),
    Brand("coinbase", ("coinbase.com",)),
)

DEFAULT_SUSPICIOUS_TLDS: FrozenSet[str] = frozenset(
    {"zip", "top", "xyz", "tk", "click", "gq", "ml", "cf", "ga", "work", "country", "mov"}
)

DEFAULT_LURE_KEYWORDS: Tuple[str, ...] = (
    "login", "signin", "verify", "secure", "account", "update", "billing", "support",
)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable heuristic tables handed to the analyzers at construction."""

    brands: Tuple[Brand, ...] = DEFAULT_BRANDS
    suspicious_tlds: FrozenSet[str] = DEFAULT_SUSPICIOUS_TLDS
    lure_keywords: Tuple[str, ...] = DEFAULT_LURE_KEYWORDS
    trusted_domains: FrozenSet[str] = field(default_factory=frozenset)
    max_subdomain_labels: int = 2
    external_link_threshold: int = 10

    def owner_of(self, registrable_domain: str) -> Optional[Brand]:
        for brand in self.brands:
            if brand.owns(registrable_domain):
                return brand
        return None

    def is_trusted(self, registrable_domain: str) -> bool:
        domain = registrable_domain.lower()
        return domain in self.trusted_domains or self.owner_of(domain) is not None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_list(name: str) -> Tuple[str, ...]:
    value = os.getenv(name, "")
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


def get_settings() -> Settings:
    """Load settings from environment variables with safe defaults."""
    return Settings(
        request_timeout=_env_float("PHISH_REQUEST_TIMEOUT", Settings.request_timeout),
        relay_timeout=_env_float("PHISH_RELAY_TIMEOUT", Settings.relay_timeout),
        user_agent=os.getenv("PHISH_USER_AGENT", Settings.user_agent),
        max_content_chars=_env_int("PHISH_MAX_CONTENT_CHARS", Settings.max_content_chars),
        log_level=os.getenv("PHISH_LOG_LEVEL", Settings.log_level).upper(),
        trusted_domains=_env_list("PHISH_TRUSTED_DOMAINS"),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", Settings.gemini_model),
        gemini_api_base=os.getenv("GEMINI_API_BASE", Settings.gemini_api_base).rstrip("/"),
        temperature=_env_float("GEMINI_TEMPERATURE", Settings.temperature),
        top_k=_env_int("GEMINI_TOP_K", Settings.top_k),
        top_p=_env_float("GEMINI_TOP_P", Settings.top_p),
        max_output_tokens=_env_int("GEMINI_MAX_OUTPUT_TOKENS", Settings.max_output_tokens),
    )


def default_analyzer_config(settings: Optional[Settings] = None) -> AnalyzerConfig:
    settings = settings or get_settings()
    return AnalyzerConfig(trusted_domains=frozenset(settings.trusted_domains))
