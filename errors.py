"""Error types raised across the triage pipeline."""

from __future__ import annotations

from typing import Optional


class TriageError(Exception):
    """Base class for pipeline errors."""


class ParseError(TriageError):
    """The submitted URL cannot be parsed into a usable host."""


class FetchError(TriageError):
    """Page content could not be retrieved (network, TLS, status, content type)."""


class RelayError(TriageError):
    """The generative API call failed or returned nothing usable."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        text = super().__str__()
        if self.status is not None:
            text = f"{text} (HTTP {self.status})"
        return text


class EmptyCompletionError(RelayError):
    """The API answered but produced no candidate text."""


class DeadlineExceeded(TriageError):
    """A network call ran past its total time budget."""
