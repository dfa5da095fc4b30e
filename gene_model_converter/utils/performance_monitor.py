#!/usr/bin/env python3

"""
Resource tracking for the converter's passes.

A run has three passes: indexing (parse the file into the record store,
position index and lineage graph), conversion (ordered traversal) and
writing. The whole annotation stays in memory between the first two, so
resident memory is sampled at each pass boundary and a run that grows past
the configured limit is stopped with MemoryLimitError.
"""

import time
import logging
import psutil
from dataclasses import dataclass
from typing import Optional, Dict, Any, List
from contextlib import contextmanager

from ..core.exceptions import MemoryLimitError

INDEXING = "indexing"
CONVERSION = "conversion"
WRITING = "writing"


@dataclass
class PassStats:
    """Timing, item count and resident memory of one pass."""
    name: str
    unit: str = "records"
    started: float = 0.0
    finished: Optional[float] = None
    items: int = 0
    rss_before_mb: float = 0.0
    rss_peak_mb: float = 0.0

    @property
    def seconds(self) -> float:
        end = self.finished if self.finished is not None else time.time()
        return end - self.started

    @property
    def rate(self) -> float:
        seconds = self.seconds
        return self.items / seconds if seconds > 0 else 0.0

    @property
    def rss_growth_mb(self) -> float:
        return max(0.0, self.rss_peak_mb - self.rss_before_mb)


class PerformanceMonitor:
    """Per-pass timing and resident-memory ceiling backed by psutil."""

    def __init__(self, memory_limit_mb: int = 4096, enabled: bool = True):
        self.memory_limit_mb = memory_limit_mb
        self.enabled = enabled
        self.created = time.time()
        self.passes: List[PassStats] = []
        self._active: Optional[PassStats] = None
        self._process = psutil.Process() if enabled else None

    def rss_mb(self) -> float:
        """Resident set size of this process in MB; 0 when disabled."""
        if self._process is None:
            return 0.0
        try:
            rss = self._process.memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logging.warning(f"Cannot read process memory: {e}")
            return 0.0
        if self._active is not None:
            self._active.rss_peak_mb = max(self._active.rss_peak_mb, rss)
        return rss

    def enforce_limit(self) -> float:
        """Raise MemoryLimitError when resident memory is over the limit."""
        rss = self.rss_mb()
        if self.enabled and rss > self.memory_limit_mb:
            pass_name = self._active.name if self._active else "startup"
            raise MemoryLimitError(
                f"Memory limit exceeded during {pass_name} pass", rss, self.memory_limit_mb
            )
        return rss

    def count(self, items: int) -> None:
        """Add to the item count of the running pass."""
        if self._active is not None:
            self._active.items += items

    @contextmanager
    def track(self, name: str, unit: str = "records"):
        """Time one pass; the limit is checked when the pass finishes."""
        stats = PassStats(name=name, unit=unit, started=time.time())
        self._active = stats
        stats.rss_before_mb = self.rss_mb()
        stats.rss_peak_mb = stats.rss_before_mb
        logging.debug(f"Starting {name} pass")
        try:
            yield stats
            self.enforce_limit()
        finally:
            self.rss_mb()
            stats.finished = time.time()
            self._active = None
            self.passes.append(stats)
            logging.info(f"{name.capitalize()} pass: {stats.items} {unit} "
                         f"in {stats.seconds:.2f}s")

    def get(self, name: str) -> Optional[PassStats]:
        for stats in self.passes:
            if stats.name == name:
                return stats
        return None

    def peak_rss_mb(self) -> float:
        if not self.passes:
            return self.rss_mb()
        return max(stats.rss_peak_mb for stats in self.passes)

    def summary(self) -> Dict[str, Any]:
        return {
            "wall_seconds": time.time() - self.created,
            "peak_rss_mb": self.peak_rss_mb(),
            "memory_limit_mb": self.memory_limit_mb,
            "passes": [
                {
                    "name": stats.name,
                    "unit": stats.unit,
                    "items": stats.items,
                    "seconds": stats.seconds,
                    "rate": stats.rate,
                    "rss_growth_mb": stats.rss_growth_mb,
                }
                for stats in self.passes
            ],
        }

    def log_report(self) -> None:
        """Log one line per pass at debug level."""
        summary = self.summary()
        logging.debug(f"Resource usage: {summary['wall_seconds']:.2f}s wall, "
                      f"peak RSS {summary['peak_rss_mb']:.1f}/{summary['memory_limit_mb']} MB")
        for entry in summary["passes"]:
            logging.debug(f"  {entry['name']:<10} {entry['items']:>10} {entry['unit']:<8} "
                          f"{entry['seconds']:8.2f}s {entry['rate']:10.1f}/s "
                          f"+{entry['rss_growth_mb']:.1f} MB")
