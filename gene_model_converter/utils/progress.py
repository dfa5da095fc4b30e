#!/usr/bin/env python3

"""
Progress and warning sink for the conversion engine.

The parser and engine never write to a stream directly; they report line
counts and recoverable anomalies to a ProgressReporter. The default one
forwards everything to the logging module, tests can inspect what was
collected.
"""

import logging
from typing import List, Optional


class ProgressReporter:
    """Collects warnings and emits periodic progress messages."""

    def __init__(self, verbose: bool = False, interval: int = 100000,
                 logger: Optional[logging.Logger] = None):
        self.verbose = verbose
        self.interval = max(1, interval)
        self.logger = logger or logging.getLogger("gene_model_converter")
        self.warnings: List[str] = []
        self.counters = {}

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def warning(self, message: str, line_number: int = 0) -> None:
        """Record a recoverable problem, with the input line when known."""
        if line_number:
            message = f"line {line_number}: {message}"
        self.warnings.append(message)
        self.logger.warning(message)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def tick(self, label: str, count: int = 1) -> None:
        """Advance a named counter, reporting every `interval` units in verbose mode."""
        previous = self.counters.get(label, 0)
        current = previous + count
        self.counters[label] = current
        if self.verbose and current // self.interval > previous // self.interval:
            self.logger.info(f"Processed {current:,} {label}")

    def count(self, label: str) -> int:
        return self.counters.get(label, 0)
