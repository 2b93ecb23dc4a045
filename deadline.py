"""Cap the total wall-clock time of a blocking network call."""

from __future__ import annotations

import threading
from typing import Callable, TypeVar

from errors import DeadlineExceeded

T = TypeVar("T")


def run_with_deadline(func: Callable[[threading.Event], T], seconds: float, name: str = "network-call") -> T:
    """
    Run ``func(cancelled)`` on a daemon thread and wait at most ``seconds``.

    requests' ``timeout`` bounds each socket operation, not the whole exchange,
    so a server trickling bytes can hold a call open indefinitely. On expiry the
    ``cancelled`` event is set for the worker to notice at its next chunk and
    DeadlineExceeded is raised here; the worker is abandoned.
    """
    cancelled = threading.Event()
    outcome = {}

    def work():
        try:
            outcome["value"] = func(cancelled)
        except Exception as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=work, name=name, daemon=True)
    worker.start()
    worker.join(seconds)
    if worker.is_alive():
        cancelled.set()
        raise DeadlineExceeded(f"{name} exceeded {seconds:g}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
