import csv
import json
import pathlib
import sys
import types
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[2]))

from monitoring.performance import PerformanceMonitor


class _Proc:
    def __init__(self):
        self._rss = iter([1000, 5096])

    def cpu_times(self):
        return types.SimpleNamespace(user=0.5, system=0.25)

    def memory_info(self):
        return types.SimpleNamespace(rss=next(self._rss))


def test_context_monitor_records_and_writes(tmp_path):
    out_file = tmp_path / "perf.json"
    with patch("monitoring.performance.psutil.Process", return_value=_Proc()):
        with PerformanceMonitor(output=str(out_file)) as mon:
            mon.count("games")
            mon.count("moves", 120)
    data = json.loads(out_file.read_text())
    assert data["duration"] >= 0
    assert data["memory_diff"] == 4096
    assert data["games"] == 1
    assert data["moves"] == 120


def test_csv_output(tmp_path):
    out_file = tmp_path / "perf.csv"
    with patch("monitoring.performance.psutil.Process", return_value=_Proc()):
        with PerformanceMonitor() as mon:
            mon.count("files", 3)
    mon.log_performance(str(out_file))
    with out_file.open(newline="") as fh:
        rows = list(csv.reader(fh))
    assert rows[0] == ["metric", "value"]
    assert ["files", "3"] in rows


def test_unsupported_format(tmp_path):
    with patch("monitoring.performance.psutil.Process", return_value=_Proc()):
        with PerformanceMonitor() as mon:
            pass
    with pytest.raises(ValueError):
        mon.log_performance(str(tmp_path / "perf.txt"))


def test_summary_lists_counters():
    with patch("monitoring.performance.psutil.Process", return_value=_Proc()):
        with PerformanceMonitor() as mon:
            mon.count("games", 2)
            mon.count("files")
    text = mon.summary()
    assert text.startswith("files=1 games=2 ")
    assert "rss=4KiB" in text
