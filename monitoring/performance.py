"""Resource usage of a batch job.

:class:`PerformanceMonitor` is a context manager measuring wall time, CPU
time and resident memory of the current process with :mod:`psutil`.  The
``--stats`` option of :mod:`main` wraps a whole run in it and reports the
number of files, games and moves processed alongside.
"""

from __future__ import annotations

import csv
import json
import logging
import os
import time
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Context manager for monitoring CPU and memory usage.

    Parameters
    ----------
    output : str, optional
        Path to an output file. If provided, metrics will be stored when the
        context exits. The format is determined by the file extension (``.json``
        or ``.csv``).
    """

    def __init__(self, output: Optional[str] = None) -> None:
        self.output = output
        self.stats: Dict[str, Any] = {}
        self.counters: Dict[str, int] = {}
        self._process = psutil.Process(os.getpid())
        self._start_cpu = None
        self._start_mem = None
        self._start_time = None

    def count(self, name: str, amount: int = 1) -> None:
        """Add ``amount`` to the counter ``name`` (files, games, moves...)."""
        self.counters[name] = self.counters.get(name, 0) + amount

    # ------------------------------------------------------------------
    def __enter__(self) -> "PerformanceMonitor":
        self._start_time = time.perf_counter()
        self._start_cpu = self._process.cpu_times()
        self._start_mem = self._process.memory_info().rss
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        end_time = time.perf_counter()
        end_cpu = self._process.cpu_times()
        end_mem = self._process.memory_info().rss

        cpu_start = (self._start_cpu.user + self._start_cpu.system) if self._start_cpu else 0
        cpu_end = end_cpu.user + end_cpu.system

        self.stats = {
            "duration": end_time - (self._start_time or end_time),
            "cpu_time": cpu_end - cpu_start,
            "memory_start": self._start_mem,
            "memory_end": end_mem,
            "memory_diff": end_mem - (self._start_mem or end_mem),
        }
        self.stats.update(self.counters)

        if self.output:
            self.log_performance(self.output)
        return False

    # ------------------------------------------------------------------
    def summary(self) -> str:
        """Return a one-line human readable report."""
        parts = [f"{k}={v}" for k, v in sorted(self.counters.items())]
        parts.append(f"time={self.stats.get('duration', 0.0):.3f}s")
        parts.append(f"cpu={self.stats.get('cpu_time', 0.0):.3f}s")
        parts.append(f"rss={self.stats.get('memory_end', 0) // 1024}KiB")
        return " ".join(parts)

    def log_performance(self, output_file: Optional[str] = None) -> Dict[str, Any]:
        """Save the collected metrics as JSON or CSV and return them."""
        path = output_file or self.output
        if not path:
            return self.stats

        ext = os.path.splitext(path)[1].lower()
        if ext == ".json":
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.stats, f, indent=2)
        elif ext == ".csv":
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(["metric", "value"])
                for k, v in self.stats.items():
                    writer.writerow([k, v])
        else:
            raise ValueError(f"Unsupported output format: {ext}")
        logger.debug("Wrote performance metrics to %s", path)
        return self.stats


__all__ = ["PerformanceMonitor"]
