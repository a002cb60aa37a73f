"""Tests for the auxiliary scripts' helpers."""

import pytest

from scripts.benchmark import percentile, run_scenario
from scripts.index_stats import collect_breakdown


def test_collect_breakdown(index_service, vector_store, make_file, tmp_path):
    make_file(tmp_path, "a.py", "def run():\n    return 1\n")
    make_file(tmp_path, "README.md", "# Readme\n")
    index_service.index_codebase(tmp_path)

    breakdown = collect_breakdown(vector_store, page_size=1)

    assert breakdown.total == 3
    assert breakdown.by_type == {"code": 2, "doc": 1}
    assert breakdown.by_language == {"python": 2, "markdown": 1}
    assert breakdown.by_file == {"a.py": 2, "README.md": 1}


def test_collect_breakdown_empty(vector_store):
    breakdown = collect_breakdown(vector_store)
    assert breakdown.total == 0
    assert not breakdown.by_type


@pytest.mark.parametrize(
    "samples, pct, expected",
    [([5.0], 95, 5.0), ([1.0, 2.0, 3.0, 4.0], 50, 2.0), ([1.0, 2.0, 3.0, 4.0], 95, 4.0), ([], 95, 0.0)],
)
def test_percentile(samples, pct, expected):
    assert percentile(samples, pct) == expected


def test_run_scenario_times_every_query():
    seen = []
    result = run_scenario("warm", ["a", "b"], seen.append, iterations=3)

    assert seen == ["a", "b"] * 3
    assert result.scenario == "warm"
    assert result.iterations == 6
    assert result.min_ms <= result.average_ms <= result.max_ms
