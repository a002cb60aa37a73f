"""
Search latency benchmark: cold queries (embedding computed) versus warm
queries (embedding served from the cache).

Example:
    python -m scripts.benchmark --iterations 3
    python -m scripts.benchmark --path ./my-project --query "session management"
"""

from __future__ import annotations

import argparse
import logging
import math
import statistics
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Sequence

from tqdm import tqdm

from coderag.config import setup_logging
from coderag.indexing.pipeline import IndexService
from coderag.vector_store import get_store_adapter

DEFAULT_QUERIES = [
    "authentication middleware",
    "database connection pool",
    "user registration process",
    "JWT token verification",
    "API error handling",
    "order creation workflow",
    "product stock management",
    "session management",
    "CORS configuration",
    "transaction handling",
]


@dataclass
class BenchmarkResult:
    scenario: str
    iterations: int
    average_ms: float
    p95_ms: float
    min_ms: float
    max_ms: float
    throughput: float


def percentile(samples: Sequence[float], pct: float) -> float:
    ordered = sorted(samples)
    if not ordered:
        return 0.0
    # nearest-rank
    rank = min(len(ordered) - 1, max(0, math.ceil(pct / 100 * len(ordered)) - 1))
    return ordered[rank]


def run_scenario(scenario: str, queries: Sequence[str], search: Callable[[str], object], iterations: int = 1) -> BenchmarkResult:
    timings: List[float] = []
    for _ in range(iterations):
        for query in tqdm(queries, desc=scenario, unit="query", leave=False):
            started = time.perf_counter()
            search(query)
            timings.append((time.perf_counter() - started) * 1000)

    total_sec = sum(timings) / 1000
    return BenchmarkResult(
        scenario=scenario,
        iterations=len(timings),
        average_ms=statistics.fmean(timings),
        p95_ms=percentile(timings, 95),
        min_ms=min(timings),
        max_ms=max(timings),
        throughput=len(timings) / total_sec if total_sec > 0 else 0.0,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark semantic search latency and cache impact.")
    parser.add_argument("--path", default=None, help="Index this directory before benchmarking")
    parser.add_argument("--query", "-q", action="append", default=None, help="Query to run (repeatable)")
    parser.add_argument("--iterations", type=int, default=3, help="Warm passes over the query set")
    parser.add_argument("--top-k", type=int, default=5, help="Results per query")
    return parser.parse_args()


def main() -> None:
    setup_logging(logging.WARNING)
    logger = logging.getLogger(__name__)
    args = parse_args()
    queries = args.query or DEFAULT_QUERIES

    try:
        adapter = get_store_adapter()
        if args.path:
            summary = IndexService(adapter, show_progress=True).index_codebase(args.path)
            print(f"Indexed {summary.documents_indexed} documents in {summary.elapsed_sec:.2f}s")

        def search(query: str):
            return adapter.query(query, k=args.top_k)

        adapter.cache.clear()
        cold = run_scenario("cold", queries, search, iterations=1)
        warm = run_scenario("warm", queries, search, iterations=args.iterations)
    except Exception:
        logger.exception("Benchmark failed")
        sys.exit(1)

    print(f"Documents in index: {adapter.count()}")
    for result in (cold, warm):
        print(f"\n{result.scenario}")
        print(f"   Queries: {result.iterations}")
        print(f"   Average: {result.average_ms:.2f}ms (min {result.min_ms:.2f}, max {result.max_ms:.2f})")
        print(f"   P95: {result.p95_ms:.2f}ms")
        print(f"   Throughput: {result.throughput:.2f} queries/sec")
    print(f"\nCache: {adapter.cache.stats()}")
    if warm.average_ms > 0:
        print(f"Cache impact: {cold.average_ms / warm.average_ms:.2f}x speedup")


if __name__ == "__main__":
    main()
