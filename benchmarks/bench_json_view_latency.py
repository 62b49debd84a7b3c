"""Benchmark: JSON view latency, per-view p50/p99.

Measures the per-call latency of PolicyEnforcer.build_view() on a thing
document with many features, for both view strategies.
"""
from __future__ import annotations

import json
import time
from pathlib import Path

from bench_enforcement_throughput import _FEATURES, _make_policy

from twin_policy_enforcer.config import EnforcerConfig
from twin_policy_enforcer.enforcement.enforcer import PolicyEnforcer

_WARMUP: int = 20
_ITERATIONS: int = 300


def _make_document(features: int = _FEATURES) -> dict[str, object]:
    """Build a thing document matching the benchmark policy."""
    return {
        "thingId": "bench:twin",
        "policyId": "bench:twin",
        "attributes": {"location": "hall", "internal": {"serial": "X-1"}},
        "features": {
            f"f{i}": {
                "properties": {"value": i, "unit": "lux", "secret": {"pin": i * 7}},
                "desiredProperties": {"value": i + 1},
            }
            for i in range(features)
        },
    }


def bench_json_view_latency(view_strategy: str = "subtree") -> dict[str, object]:
    """Benchmark PolicyEnforcer.build_view() per-call latency.

    Returns
    -------
    dict with keys: operation, view_strategy, iterations, total_seconds,
    ops_per_second, avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    enforcer = PolicyEnforcer.from_policy(
        _make_policy(), EnforcerConfig(view_strategy=view_strategy)
    )
    document = _make_document()
    context = ["bench:observer"]

    for _ in range(_WARMUP):
        enforcer.build_view("thing:/", document, context, ["READ"])

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        enforcer.build_view("thing:/", document, context, ["READ"])
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "json_view_latency",
        "view_strategy": view_strategy,
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_json_view_latency] {result['operation']} ({view_strategy}): "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark(view_strategy: str = "subtree") -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_json_view_latency(view_strategy)


if __name__ == "__main__":
    results = [run_benchmark(strategy) for strategy in ("subtree", "exhaustive")]
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
