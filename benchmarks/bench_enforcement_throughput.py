"""Benchmark: Permission check throughput, checks per second.

Measures how many PolicyEnforcer.has_unrestricted_permissions() calls can be
completed per second against a policy with many features, each with its own
grants and revokes, for both compiled policy implementations.
"""
from __future__ import annotations

import json
import time
from pathlib import Path

from twin_policy_enforcer.enforcement.enforcer import PolicyEnforcer
from twin_policy_enforcer.policies.model import Policy

_ITERATIONS: int = 10_000
_FEATURES: int = 50


def _make_policy(features: int = _FEATURES) -> Policy:
    """Build a realistic per-feature policy for benchmarking."""
    resources: dict[str, object] = {
        "thing:/": {"grant": ["READ"], "revoke": []},
        "thing:/attributes/internal": {"grant": [], "revoke": ["READ"]},
    }
    for i in range(features):
        resources[f"thing:/features/f{i}/properties"] = {"grant": ["WRITE"], "revoke": []}
        resources[f"thing:/features/f{i}/properties/secret"] = {"grant": [], "revoke": ["READ"]}
    return Policy.from_dict(
        {
            "policyId": "bench:twin",
            "entries": {
                "owner": {"subjects": ["bench:owner"], "resources": resources},
                "observer": {
                    "subjects": ["bench:observer", "bench:group"],
                    "resources": {"thing:/features": {"grant": ["READ"], "revoke": []}},
                },
            },
        }
    )


def bench_permission_check_throughput(algorithm: str = "trie") -> dict[str, object]:
    """Benchmark PolicyEnforcer.has_unrestricted_permissions() throughput.

    Returns
    -------
    dict with keys: operation, algorithm, iterations, total_seconds,
    ops_per_second, avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    enforcer = PolicyEnforcer.from_policy(_make_policy(), algorithm=algorithm)
    context = ["bench:owner", "bench:observer"]
    keys = [f"thing:/features/f{i}/properties/value" for i in range(_FEATURES)]

    start = time.perf_counter()
    for i in range(_ITERATIONS):
        enforcer.has_unrestricted_permissions(keys[i % len(keys)], context, ["READ", "WRITE"])
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "permission_check_throughput",
        "algorithm": algorithm,
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
        "p99_latency_ms": 0.0,
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_enforcement_throughput] {result['operation']} ({algorithm}): "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark(algorithm: str = "trie") -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_permission_check_throughput(algorithm)


if __name__ == "__main__":
    results = [run_benchmark(algorithm) for algorithm in ("trie", "flat")]
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "throughput_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
