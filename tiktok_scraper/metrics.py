"""Timing instrumentation for scraper operations.

Timing events go to an injected TimingSink instead of a process-wide flag, so
two clients (or two tests) never interfere. LoggingTimingSink writes one
"[perf]" line per event at DEBUG level on the tiktok_scraper.perf logger;
NullTimingSink drops everything.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

PERF_LOGGER_NAME = "tiktok_scraper.perf"


class TimingSink(Protocol):
    """Receives named timing events with their measurements."""

    def record(self, event: str, **fields: Any) -> None:
        ...


class NullTimingSink:
    """Discards all timing events."""

    def record(self, event: str, **fields: Any) -> None:
        pass


class LoggingTimingSink:
    """Writes timing events to the perf logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(PERF_LOGGER_NAME)

    def record(self, event: str, **fields: Any) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        details = " ".join(f"{key}={_format_value(value)}" for key, value in fields.items())
        self.logger.debug("[perf] %s: %s", event, details)


@dataclass
class TimingEvent:
    event: str
    fields: Dict[str, Any] = field(default_factory=dict)


class RecordingTimingSink:
    """Keeps events in memory; useful for inspecting timing in tests."""

    def __init__(self):
        self.events: List[TimingEvent] = []

    def record(self, event: str, **fields: Any) -> None:
        self.events.append(TimingEvent(event, dict(fields)))

    def named(self, event: str) -> List[TimingEvent]:
        return [e for e in self.events if e.event == event]


def create_timing_sink(debug_timing: bool) -> TimingSink:
    """Pick the sink matching the debug_timing configuration flag."""
    return LoggingTimingSink() if debug_timing else NullTimingSink()


class Timer:
    """High-precision timer for performance measurements."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def start(self) -> None:
        """Start the timer."""
        self.start_time = time.perf_counter()

    def stop(self) -> float:
        """Stop the timer and return elapsed time."""
        if self.start_time is None:
            raise ValueError("Timer not started")
        self.end_time = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.perf_counter()
        return end - self.start_time

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value * 1000.0:.1f}ms" if value < 60 else f"{value:.1f}s"
    return str(value)
