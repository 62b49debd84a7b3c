"""Benchmark: Memory footprint of compiled policies.

Compiles policies of growing size with tracemalloc enabled and reports the
memory each compiled policy keeps alive, next to the compile time.
"""
from __future__ import annotations

import gc
import json
import time
import tracemalloc
from pathlib import Path

from bench_enforcement_throughput import _make_policy

from twin_policy_enforcer.enforcement.compiler import compile_policy

_POLICY_SIZES: tuple[int, ...] = (10, 50, 200)


def bench_compiled_policy_footprint(algorithm: str = "trie") -> dict[str, object]:
    """Measure retained and peak memory of compiled policies.

    Returns
    -------
    dict with keys: operation, algorithm, iterations, ops_per_second,
    avg_latency_ms, peak_memory_kb and ``by_size``, one row per policy size
    with the retained KB per compiled declaration.
    """
    by_size: list[dict[str, object]] = []
    peak_kb = 0.0
    elapsed = 0.0

    for features in _POLICY_SIZES:
        policy = _make_policy(features)
        gc.collect()
        tracemalloc.start()
        start = time.perf_counter()
        compiled = compile_policy(policy, algorithm)
        elapsed += time.perf_counter() - start
        retained, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()

        peak_kb = max(peak_kb, peak / 1024)
        by_size.append(
            {
                "features": features,
                "declarations": len(compiled),
                "retained_kb": round(retained / 1024, 2),
                "kb_per_declaration": round(retained / 1024 / max(len(compiled), 1), 4),
            }
        )

    compilations = len(_POLICY_SIZES)
    result: dict[str, object] = {
        "operation": "compiled_policy_footprint",
        "algorithm": algorithm,
        "iterations": compilations,
        "ops_per_second": round(compilations / elapsed, 1) if elapsed > 0 else 0.0,
        "avg_latency_ms": round(elapsed / compilations * 1000, 4),
        "peak_memory_kb": round(peak_kb, 2),
        "by_size": by_size,
    }
    largest = by_size[-1]
    print(
        f"[bench_memory_usage] {algorithm}: {largest['retained_kb']} KB retained for "
        f"{largest['declarations']} declarations (peak {result['peak_memory_kb']} KB)"
    )
    return result


def run_benchmark(algorithm: str = "trie") -> dict[str, object]:
    return bench_compiled_policy_footprint(algorithm)


if __name__ == "__main__":
    output_path = Path(__file__).parent / "results" / "memory_baseline.json"
    output_path.parent.mkdir(exist_ok=True)
    output_path.write_text(
        json.dumps([run_benchmark(a) for a in ("trie", "flat")], indent=2), encoding="utf-8"
    )
    print(f"Results saved to {output_path}")
